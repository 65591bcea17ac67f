"""
Mermaid gitGraph format.

Every node becomes a branch holding one commit. Children branch off their
parent's branch, so the rendered graph mirrors the tree. Branch names are
reduced to Mermaid-safe identifiers and made unique with _2, _3... suffixes.
"""

from __future__ import annotations

import re

from ..config import ExportConfig
from ..dom import Document
from .base import ExportFormat, registry

DEFAULT_BRANCH = "main"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_UNSAFE_BRANCH_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_REPEATED_UNDERSCORES = re.compile(r"_+")
_VALID_BRANCH_START = re.compile(r"^[A-Za-z_]")


def escape_mermaid_string(value: str) -> str:
    return str(value).replace("\\", "\\\\").replace('"', '\\"')


def short_id(node_id: str) -> str:
    """First 8 alphanumerics of a node id."""
    normalized = _NON_ALNUM.sub("", str(node_id))
    return normalized[:8] if normalized else "node"


def sanitize_branch_base(name: str, node_id: str) -> str:
    raw = name if isinstance(name, str) else ""
    sanitized = _UNSAFE_BRANCH_CHARS.sub("_", raw)
    sanitized = _REPEATED_UNDERSCORES.sub("_", sanitized).strip("_")
    base = sanitized or f"b_{short_id(node_id)}"
    return base if _VALID_BRANCH_START.match(base) else f"b_{base}"


def unique_branch_name(base: str, used: set[str]) -> str:
    """Claim base, or base_2, base_3... whichever is free first."""
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}_{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def safe_commit_id(name: str, node_id: str) -> str:
    raw = name if isinstance(name, str) and name else f"node-{short_id(node_id)}"
    return escape_mermaid_string(raw)


def serialize_mermaid_gitgraph(doc: Document) -> str:
    if doc.root_id not in doc.nodes:
        return "gitGraph"

    root = doc.nodes[doc.root_id]
    lines = ["gitGraph", f'  commit id:"{safe_commit_id(root.name, root.id)}"']

    used = {DEFAULT_BRANCH}
    root_branch = DEFAULT_BRANCH
    root_base = sanitize_branch_base(root.name, root.id)
    if root_base != DEFAULT_BRANCH:
        root_branch = unique_branch_name(root_base, used)
        lines.append(f"  branch {root_branch}")
        lines.append(f"  checkout {root_branch}")

    visited = {root.id}
    # (parent branch, remaining child ids) per open level; preorder without recursion
    stack = [(root_branch, iter(root.children_ids))]
    while stack:
        parent_branch, children = stack[-1]
        child_id = next(children, None)
        if child_id is None:
            stack.pop()
            continue
        child = doc.nodes.get(child_id)
        if child is None or child.id in visited:
            continue
        visited.add(child.id)

        child_branch = unique_branch_name(sanitize_branch_base(child.name, child.id), used)
        lines.append(f"  checkout {parent_branch}")
        lines.append(f"  branch {child_branch}")
        lines.append(f"  checkout {child_branch}")
        lines.append(f'  commit id:"{safe_commit_id(child.name, child.id)}"')
        stack.append((child_branch, iter(child.children_ids)))

    return "\n".join(lines)


class MermaidFormat(ExportFormat):
    """Mermaid gitGraph script."""

    @property
    def name(self) -> str:
        return "mermaid"

    @property
    def extensions(self) -> list[str]:
        return [".mmd", ".mermaid"]

    @property
    def fence_language(self) -> str | None:
        return "mermaid"

    def render(self, doc: Document, config: ExportConfig | None = None) -> str:
        return serialize_mermaid_gitgraph(doc)


registry.register(MermaidFormat())

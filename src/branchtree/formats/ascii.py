"""
ASCII tree format.

Draws the document with box-drawing guides, one row per node in preorder:

    main
    ├── develop          # integration
    │   └── feat-a
    └── release

Comments are aligned into a single column. Widths are measured in grapheme
clusters so combining marks and emoji sequences count as one character.
"""

from __future__ import annotations

from dataclasses import dataclass

import regex

from ..config import ExportConfig, get_config
from ..dom import Document
from ..traversal import VisibleRow, compute_visible_rows
from .base import ExportFormat, registry

GUIDE_BAR = "│   "
GUIDE_BLANK = "    "

_GRAPHEME = regex.compile(r"\X")


@dataclass
class AsciiRow:
    """A rendered row: the tree label on the left, the final line with comment."""
    id: str
    left: str
    left_length: int
    comment: str
    max_left_length: int
    line: str


def display_length(text: str) -> int:
    """User-perceived character count."""
    return len(_GRAPHEME.findall(text))


def branch_prefix(row: VisibleRow) -> str:
    """Guides and connector in front of a row's name. The root's guide slot is skipped."""
    visible_guides = row.prefix_guides[1:] if row.depth > 0 else row.prefix_guides
    guides = "".join(GUIDE_BAR if has_guide else GUIDE_BLANK for has_guide in visible_guides)
    if row.is_root:
        return guides
    return f"{guides}{row.connector} "


def build_ascii_rows(doc: Document, comment_gap: int | None = None) -> list[AsciiRow]:
    if doc.root_id not in doc.nodes:
        return []
    if comment_gap is None:
        comment_gap = get_config().export.comment_gap

    partial = []
    for row in compute_visible_rows(doc):
        node = doc.nodes[row.id]
        left = f"{branch_prefix(row)}{node.name}"
        comment = node.comment if isinstance(node.comment, str) else ""
        partial.append((row.id, left, display_length(left), comment))

    max_left = max((length for _, _, length, _ in partial), default=0)

    rows = []
    for node_id, left, length, comment in partial:
        line = left
        if comment:
            line = f"{left}{' ' * (max_left - length + comment_gap)}# {comment}"
        rows.append(AsciiRow(
            id=node_id,
            left=left,
            left_length=length,
            comment=comment,
            max_left_length=max_left,
            line=line,
        ))
    return rows


def serialize_ascii_tree(doc: Document, comment_gap: int | None = None) -> str:
    return "\n".join(row.line for row in build_ascii_rows(doc, comment_gap))


class AsciiFormat(ExportFormat):
    """Indented box-drawing tree with an aligned comment column."""

    @property
    def name(self) -> str:
        return "ascii"

    @property
    def extensions(self) -> list[str]:
        return [".txt", ".tree"]

    def render(self, doc: Document, config: ExportConfig | None = None) -> str:
        return serialize_ascii_tree(doc, config.comment_gap if config is not None else None)


registry.register(AsciiFormat())

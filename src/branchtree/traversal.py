"""
Traversal over a Document.

Preorder (parent first, children left to right) defines navigation order,
history-independent cursor movement and the row order of every export.
All walks carry a visited guard so a corrupted, cyclic document still
terminates.
"""

from __future__ import annotations

from dataclasses import dataclass

from .dom import Document

CONNECTOR_MID = "├──"
CONNECTOR_LAST = "└──"


@dataclass
class VisibleRow:
    """One preorder row with the metadata needed to draw tree guides."""
    id: str
    depth: int
    is_root: bool
    prefix_guides: tuple[bool, ...]
    connector: str


def _preorder(doc: Document, start_id: str) -> list[str]:
    result: list[str] = []
    visited: set[str] = set()
    stack = [start_id]
    while stack:
        node_id = stack.pop()
        if node_id in visited:
            continue
        node = doc.nodes.get(node_id)
        if node is None:
            continue
        visited.add(node_id)
        result.append(node_id)
        stack.extend(reversed(node.children_ids))
    return result


def compute_visible_list(doc: Document) -> list[str]:
    """Preorder ids of every node reachable from the root."""
    if doc.root_id not in doc.nodes:
        return []
    return _preorder(doc, doc.root_id)


def get_subtree_ids(doc: Document, node_id: str) -> list[str]:
    """Preorder ids of node_id and all its descendants."""
    return _preorder(doc, node_id)


def get_depth(doc: Document, node_id: str) -> int:
    """Number of parent hops from node_id to the root (0 for root or unknown ids)."""
    if node_id not in doc.nodes:
        return 0
    depth = 0
    current_id = node_id
    visited: set[str] = set()
    while current_id in doc.nodes and doc.nodes[current_id].parent_id:
        if current_id in visited:
            break
        visited.add(current_id)
        depth += 1
        current_id = doc.nodes[current_id].parent_id
    return depth


def is_descendant(doc: Document, node_id: str | None, ancestor_id: str) -> bool:
    """True if ancestor_id is node_id itself or appears on its parent chain."""
    visited: set[str] = set()
    current_id = node_id
    while current_id:
        if current_id == ancestor_id:
            return True
        if current_id in visited:
            return False
        visited.add(current_id)
        node = doc.nodes.get(current_id)
        current_id = node.parent_id if node is not None else None
    return False


def compute_visible_rows(doc: Document) -> list[VisibleRow]:
    """
    Preorder rows with guide bits.

    prefix_guides[i] is True when the ancestor at level i still has siblings
    after it, i.e. a continuation bar must be drawn in that column. The first
    bit belongs to the root and is always False.
    """
    if doc.root_id not in doc.nodes:
        return []

    rows: list[VisibleRow] = []
    visited: set[str] = set()
    # (node_id, guides, is_root, is_last)
    stack: list[tuple[str, tuple[bool, ...], bool, bool]] = [(doc.root_id, (), True, True)]

    while stack:
        node_id, guides, is_root, is_last = stack.pop()
        if node_id in visited:
            continue
        node = doc.nodes.get(node_id)
        if node is None:
            continue
        visited.add(node_id)

        if is_root:
            connector = ""
        else:
            connector = CONNECTOR_LAST if is_last else CONNECTOR_MID
        rows.append(VisibleRow(
            id=node_id,
            depth=len(guides),
            is_root=is_root,
            prefix_guides=guides,
            connector=connector,
        ))

        children = [child_id for child_id in node.children_ids if child_id in doc.nodes]
        child_guides = guides + (not is_last,)
        for index in range(len(children) - 1, -1, -1):
            stack.append((children[index], child_guides, False, index == len(children) - 1))

    return rows


def find_named(doc: Document, name: str) -> str | None:
    """Id of the first node in preorder with this name."""
    for node_id in compute_visible_list(doc):
        if doc.nodes[node_id].name == name:
            return node_id
    return None

"""
Structural edit engine.

Each operation reads a document without touching it, applies its change to a
clone, and returns an EditResult, or None when the edit does not apply (root
boundaries, first child, cycle-introducing moves, unknown ids). A None result
is an ordinary outcome of navigating into a boundary, not an error.

EditResult.mode tells the editor what to do with its edit mode afterwards:
a concrete mode switches to it, None keeps whatever mode and buffers the
caller had (editing continues on the moved node).
"""

from __future__ import annotations

from dataclasses import dataclass

from .dom import Document, Node, clone_document, remove_node_and_promote_children
from .ids import generate_node_id
from .traversal import compute_visible_list, is_descendant

MODE_FOCUS = "focus"
MODE_NAME = "name"
MODE_COMMENT = "comment"


@dataclass
class EditResult:
    """A committed edit: the new document plus cursor and mode hints."""
    doc: Document
    cursor_id: str
    mode: str | None = None


def _add_empty_node(doc: Document, parent_id: str) -> Node:
    node_id = generate_node_id()
    node = Node(id=node_id, name="", parent_id=parent_id)
    doc.nodes[node_id] = node
    return node


def insert_below(doc: Document, cursor_id: str) -> EditResult | None:
    """New empty sibling right after the cursor (or last child of the root)."""
    next_doc = clone_document(doc)
    cursor = next_doc.get(cursor_id)
    if cursor is None:
        return None

    if cursor.id == next_doc.root_id:
        node = _add_empty_node(next_doc, cursor.id)
        cursor.children_ids.append(node.id)
    else:
        parent = next_doc.get(cursor.parent_id)
        if parent is None:
            return None
        node = _add_empty_node(next_doc, parent.id)
        if cursor.id in parent.children_ids:
            insert_index = parent.children_ids.index(cursor.id) + 1
        else:
            insert_index = len(parent.children_ids)
        parent.children_ids.insert(insert_index, node.id)

    return EditResult(doc=next_doc, cursor_id=node.id, mode=MODE_NAME)


def insert_child_top(doc: Document, cursor_id: str) -> EditResult | None:
    """New empty node as the cursor's first child."""
    next_doc = clone_document(doc)
    cursor = next_doc.get(cursor_id)
    if cursor is None:
        return None
    node = _add_empty_node(next_doc, cursor.id)
    cursor.children_ids.insert(0, node.id)
    return EditResult(doc=next_doc, cursor_id=node.id, mode=MODE_NAME)


def indent_right(doc: Document, cursor_id: str) -> EditResult | None:
    """Make the node the last child of its preceding sibling."""
    next_doc = clone_document(doc)
    node = next_doc.get(cursor_id)
    if node is None or node.parent_id is None:
        return None
    parent = next_doc.get(node.parent_id)
    if parent is None or node.id not in parent.children_ids:
        return None

    index = parent.children_ids.index(node.id)
    if index <= 0:
        return None
    new_parent = next_doc.get(parent.children_ids[index - 1])
    if new_parent is None:
        return None

    del parent.children_ids[index]
    node.parent_id = new_parent.id
    new_parent.children_ids.append(node.id)
    return EditResult(doc=next_doc, cursor_id=node.id)


def can_outdent(doc: Document, cursor_id: str) -> bool:
    """Outdent needs a grandparent: direct children of the root stay put."""
    node = doc.get(cursor_id)
    return node is not None and node.parent_id is not None and node.parent_id != doc.root_id


def outdent_left(doc: Document, cursor_id: str) -> EditResult | None:
    """Move the node into its grandparent, right after its former parent."""
    if not can_outdent(doc, cursor_id):
        return None

    next_doc = clone_document(doc)
    node = next_doc.nodes[cursor_id]
    parent = next_doc.get(node.parent_id)
    if parent is None or node.id not in parent.children_ids:
        return None
    grandparent = next_doc.get(parent.parent_id)
    if grandparent is None:
        return None

    parent.children_ids.remove(node.id)
    if parent.id in grandparent.children_ids:
        insert_index = grandparent.children_ids.index(parent.id) + 1
    else:
        insert_index = len(grandparent.children_ids)
    grandparent.children_ids.insert(insert_index, node.id)
    node.parent_id = grandparent.id
    return EditResult(doc=next_doc, cursor_id=node.id)


def delete_node(doc: Document, cursor_id: str) -> EditResult | None:
    """Remove the node; its children take its place in the parent."""
    if cursor_id == doc.root_id or cursor_id not in doc.nodes:
        return None
    next_doc = clone_document(doc)
    promotion = remove_node_and_promote_children(next_doc, cursor_id)
    if promotion is None:
        return None
    return EditResult(doc=next_doc, cursor_id=promotion.cursor_id, mode=MODE_FOCUS)


def rename_node(doc: Document, node_id: str, name: str) -> EditResult | None:
    next_doc = clone_document(doc)
    node = next_doc.get(node_id)
    if node is None:
        return None
    node.name = name
    return EditResult(doc=next_doc, cursor_id=node.id, mode=MODE_FOCUS)


def set_comment(
    doc: Document,
    node_id: str,
    comment: str,
    target_id: str | None = None,
    keep_mode: bool = False,
) -> EditResult | None:
    """
    Store a comment on node_id.

    The cursor lands on target_id when it exists (moving while editing),
    otherwise stays on the edited node. keep_mode re-enters comment mode there.
    """
    next_doc = clone_document(doc)
    node = next_doc.get(node_id)
    if node is None:
        return None
    node.comment = comment
    cursor_id = target_id if target_id in next_doc.nodes else node.id
    return EditResult(doc=next_doc, cursor_id=cursor_id, mode=MODE_COMMENT if keep_mode else MODE_FOCUS)


def _move_node_to(doc: Document, node_id: str, anchor_id: str, after: bool) -> bool:
    """Relocate node_id next to anchor_id under the anchor's parent. In place."""
    node = doc.get(node_id)
    anchor = doc.get(anchor_id)
    if node is None or anchor is None or node.parent_id is None or anchor.parent_id is None:
        return False
    source = doc.get(node.parent_id)
    target = doc.get(anchor.parent_id)
    if source is None or target is None:
        return False
    if is_descendant(doc, target.id, node.id):
        return False
    if node.id not in source.children_ids or anchor.id not in target.children_ids:
        return False

    source_index = source.children_ids.index(node.id)
    target_index = target.children_ids.index(anchor.id) + (1 if after else 0)
    del source.children_ids[source_index]
    if source.id == target.id and source_index < target_index:
        target_index -= 1
    target.children_ids.insert(target_index, node.id)
    node.parent_id = target.id
    return True


def move_branch_up(doc: Document, cursor_id: str) -> EditResult | None:
    """Move the node (with its subtree) in front of the row above it."""
    if cursor_id == doc.root_id or cursor_id not in doc.nodes:
        return None
    visible = compute_visible_list(doc)
    if cursor_id not in visible:
        return None
    index = visible.index(cursor_id)
    if index <= 0:
        return None
    previous_id = visible[index - 1]
    if previous_id == doc.root_id:
        return None

    next_doc = clone_document(doc)
    if not _move_node_to(next_doc, cursor_id, previous_id, after=False):
        return None
    return EditResult(doc=next_doc, cursor_id=cursor_id)


def move_branch_down(doc: Document, cursor_id: str) -> EditResult | None:
    """
    Move the node (with its subtree) past the row below it.

    The row below is either the node's own first child (they swap levels),
    a node with children (the mover becomes its first child), or a leaf
    (the mover becomes its next sibling).
    """
    if cursor_id == doc.root_id or cursor_id not in doc.nodes:
        return None
    visible = compute_visible_list(doc)
    if cursor_id not in visible:
        return None
    index = visible.index(cursor_id)
    if index >= len(visible) - 1:
        return None
    next_row_id = visible[index + 1]

    next_doc = clone_document(doc)
    node = next_doc.get(cursor_id)
    following = next_doc.get(next_row_id)
    if node is None or following is None or node.parent_id is None:
        return None

    if following.parent_id == node.id:
        parent = next_doc.get(node.parent_id)
        if parent is None or node.id not in parent.children_ids:
            return None
        if not node.children_ids or node.children_ids[0] != following.id:
            return None
        parent.children_ids[parent.children_ids.index(node.id)] = following.id
        del node.children_ids[0]
        following.parent_id = parent.id
        following.children_ids.insert(0, node.id)
        node.parent_id = following.id
    elif following.children_ids:
        parent = next_doc.get(node.parent_id)
        if parent is None or node.id not in parent.children_ids:
            return None
        if is_descendant(next_doc, following.id, node.id):
            return None
        parent.children_ids.remove(node.id)
        following.children_ids.insert(0, node.id)
        node.parent_id = following.id
    elif not _move_node_to(next_doc, node.id, following.id, after=True):
        return None

    return EditResult(doc=next_doc, cursor_id=cursor_id)

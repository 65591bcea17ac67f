"""
Legacy migration.

Older documents could persist nodes whose name was cleared but never
confirmed. Those nodes are dissolved: their children take their place in the
parent's list, in order.
"""

from __future__ import annotations

from .dom import Document, clone_document, remove_node_and_promote_children
from .traversal import compute_visible_list


def _promote_first_empty(doc: Document) -> bool:
    """Dissolve the first empty-named non-root node in preorder. False if none could be."""
    for node_id in compute_visible_list(doc):
        if node_id == doc.root_id or doc.nodes[node_id].name != "":
            continue
        if remove_node_and_promote_children(doc, node_id) is not None:
            return True
    return False


def migrate_legacy_empty_nodes(doc: Document) -> Document:
    """Return a clone with every empty-named non-root node promoted away."""
    migrated = clone_document(doc)
    while _promote_first_empty(migrated):
        pass
    return migrated

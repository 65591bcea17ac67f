"""
DOM - Document Object Model for branchtree

A document is a rooted, ordered tree of branch nodes stored as a flat id -> Node
map. Order lives only in each node's children_ids; parent_id is the reverse
edge and must always agree with it.

Key invariant: every node except the root is listed exactly once in its
parent's children_ids, and the parent chain of any node ends at the root.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from .ids import generate_node_id


class MalformedDocument(ValueError):
    """Raised when an external document value fails structural requirements."""


@dataclass
class Node:
    """One branch entry in the tree."""
    id: str
    name: str
    comment: str = ""
    parent_id: str | None = None
    children_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "comment": self.comment,
            "parentId": self.parent_id,
            "childrenIds": list(self.children_ids),
        }


@dataclass
class Document:
    """The whole tree: root id plus an unordered id -> Node map."""
    root_id: str
    nodes: dict[str, Node] = field(default_factory=dict)

    @property
    def root(self) -> Node:
        return self.nodes[self.root_id]

    def get(self, node_id: str | None) -> Node | None:
        """Look up a node, tolerating None and unknown ids."""
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def to_dict(self) -> dict:
        """Serialize to the wire shape accepted by normalize_document."""
        return {
            "rootId": self.root_id,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
        }


@dataclass
class ValidationResult:
    """Outcome of validate_document: either a parsed document or a failure reason."""
    document: Document | None = None
    failure: str | None = None

    @property
    def ok(self) -> bool:
        return self.document is not None


@dataclass
class Promotion:
    """Result of removing a node and promoting its children into its slot."""
    parent_id: str
    index: int
    promoted_ids: list[str]
    cursor_id: str


def create_initial_document(root_name: str = "main") -> Document:
    """Fresh document holding a single root node."""
    root_id = generate_node_id()
    return Document(root_id=root_id, nodes={root_id: Node(id=root_id, name=root_name)})


def clone_document(doc: Document) -> Document:
    """Deep copy; the clone shares no mutable state with the input."""
    nodes = {
        node_id: Node(
            id=node.id,
            name=node.name,
            comment=node.comment if isinstance(node.comment, str) else "",
            parent_id=node.parent_id,
            children_ids=list(node.children_ids),
        )
        for node_id, node in doc.nodes.items()
    }
    return Document(root_id=doc.root_id, nodes=nodes)


def _is_valid_node_shape(value: object) -> bool:
    if not isinstance(value, Mapping):
        return False
    parent_id = value.get("parentId")
    return (
        isinstance(value.get("id"), str)
        and isinstance(value.get("name"), str)
        and (parent_id is None or isinstance(parent_id, str))
        and isinstance(value.get("childrenIds"), (list, tuple))
    )


def _sanitize_children(children_ids: list, nodes: dict[str, Node], owner_id: str) -> list[str]:
    """Drop non-string, self-referencing, dangling and repeated child ids."""
    seen: set[str] = set()
    result: list[str] = []
    for child_id in children_ids:
        if not isinstance(child_id, str):
            continue
        if child_id == owner_id or child_id not in nodes or child_id in seen:
            continue
        seen.add(child_id)
        result.append(child_id)
    return result


def validate_document(raw: object) -> ValidationResult:
    """
    Validate and normalize an untrusted document value.

    Invalid node entries are silently dropped. parentId is never trusted: it is
    rebuilt from the sanitized children lists, and when several parents list the
    same child the first one encountered keeps it.
    """
    if not isinstance(raw, Mapping):
        return ValidationResult(failure="Document must be an object")
    root_id = raw.get("rootId")
    if not isinstance(root_id, str):
        return ValidationResult(failure="Document rootId must be a string")
    raw_nodes = raw.get("nodes")
    if not isinstance(raw_nodes, Mapping):
        return ValidationResult(failure="Document nodes must be an object")

    nodes: dict[str, Node] = {}
    for node_id, raw_node in raw_nodes.items():
        if not isinstance(node_id, str) or not _is_valid_node_shape(raw_node):
            continue
        comment = raw_node.get("comment")
        nodes[node_id] = Node(
            id=node_id,
            name=raw_node["name"],
            comment=comment if isinstance(comment, str) else "",
            children_ids=list(raw_node["childrenIds"]),
        )

    if root_id not in nodes:
        return ValidationResult(failure="rootId node is missing")

    for node in nodes.values():
        node.children_ids = _sanitize_children(node.children_ids, nodes, node.id)

    assigned: set[str] = set()
    for node in nodes.values():
        for child_id in node.children_ids:
            if child_id in assigned:
                continue
            nodes[child_id].parent_id = node.id
            assigned.add(child_id)

    nodes[root_id].parent_id = None
    return ValidationResult(document=Document(root_id=root_id, nodes=nodes))


def normalize_document(raw: object) -> Document:
    """Like validate_document, but raises MalformedDocument on failure."""
    result = validate_document(raw)
    if result.document is None:
        raise MalformedDocument(result.failure)
    return result.document


def remove_node_and_promote_children(doc: Document, node_id: str) -> Promotion | None:
    """
    Remove a node in place, splicing its children into the vacated slot.

    Operates on an already cloned document. Returns None (and leaves doc
    untouched) for the root, unknown ids, or a node its parent does not list.
    """
    node = doc.get(node_id)
    if node is None or node.parent_id is None:
        return None
    parent = doc.get(node.parent_id)
    if parent is None or node.id not in parent.children_ids:
        return None

    index = parent.children_ids.index(node.id)
    promoted = [child_id for child_id in node.children_ids if child_id in doc.nodes]
    parent.children_ids[index:index + 1] = promoted
    for child_id in promoted:
        doc.nodes[child_id].parent_id = parent.id
    del doc.nodes[node.id]

    if promoted:
        cursor_id = promoted[0]
    elif index < len(parent.children_ids):
        cursor_id = parent.children_ids[index]
    elif index > 0:
        cursor_id = parent.children_ids[index - 1]
    else:
        cursor_id = parent.id

    return Promotion(parent_id=parent.id, index=index, promoted_ids=promoted, cursor_id=cursor_id)

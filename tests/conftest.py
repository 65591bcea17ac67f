"""Shared helpers for building documents and checking tree invariants."""

import pytest

from branchtree import config as config_module
from branchtree.dom import Document, Node


def build_document(children: dict[str, list[str]], root: str = "root", names: dict[str, str] | None = None,
                   comments: dict[str, str] | None = None) -> Document:
    """
    Build a consistent document from a parent -> children map.

    Node names default to their ids; the root defaults to "main".
    """
    names = {root: "main", **(names or {})}
    comments = comments or {}
    ids = {root} | set(children) | {c for kids in children.values() for c in kids}
    nodes = {
        node_id: Node(id=node_id, name=names.get(node_id, node_id), comment=comments.get(node_id, ""))
        for node_id in ids
    }
    for parent_id, kids in children.items():
        nodes[parent_id].children_ids = list(kids)
        for kid in kids:
            nodes[kid].parent_id = parent_id
    return Document(root_id=root, nodes=nodes)


def assert_invariants(doc: Document, allow_empty_names: bool = False) -> None:
    assert doc.root_id in doc.nodes
    assert doc.nodes[doc.root_id].parent_id is None

    for node in doc.nodes.values():
        assert len(node.children_ids) == len(set(node.children_ids)), node.id
        for child_id in node.children_ids:
            assert child_id in doc.nodes
            assert child_id != node.id
            assert doc.nodes[child_id].parent_id == node.id

        if node.id != doc.root_id:
            parent = doc.nodes[node.parent_id]
            assert parent.children_ids.count(node.id) == 1
            if not allow_empty_names:
                assert node.name != "", node.id

        # acyclic: climbing always reaches the root
        seen = set()
        current = node
        while current.parent_id is not None:
            assert current.id not in seen
            seen.add(current.id)
            current = doc.nodes[current.parent_id]
        assert current.id == doc.root_id


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config files and env vars out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    for key in ("BRANCHTREE_HISTORY_LIMIT", "BRANCHTREE_ROOT_NAME", "BRANCHTREE_STORAGE_PATH",
                "BRANCHTREE_DEFAULT_FORMAT", "BRANCHTREE_COMMENT_GAP", "BRANCHTREE_FENCE_MERMAID"):
        monkeypatch.delenv(key, raising=False)
    config_module.reset_config()
    yield
    config_module.reset_config()

"""
Tier 0: Data Model Contract Tests

Pin down the document shape, its load-time validation, and the
remove-and-promote primitive every deletion is built on.
"""

import json
from pathlib import Path

import pytest

from branchtree.dom import (
    Document,
    MalformedDocument,
    Node,
    clone_document,
    create_initial_document,
    normalize_document,
    remove_node_and_promote_children,
    validate_document,
)
from conftest import assert_invariants, build_document

FIXTURES = Path(__file__).parent.parent.parent / "fixtures"


def raw_node(node_id, name, children=(), parent=None, **extra):
    return {"id": node_id, "name": name, "parentId": parent, "childrenIds": list(children), **extra}


class TestInitialDocument:
    def test_single_root_named_main(self):
        doc = create_initial_document()
        assert list(doc.nodes) == [doc.root_id]
        assert doc.root.name == "main"
        assert doc.root.parent_id is None
        assert doc.root.children_ids == []
        assert doc.root.comment == ""

    def test_custom_root_name(self):
        doc = create_initial_document("trunk")
        assert doc.root.name == "trunk"

    def test_ids_are_unique_per_document(self):
        assert create_initial_document().root_id != create_initial_document().root_id


class TestClone:
    def test_clone_is_equal(self):
        doc = build_document({"root": ["a", "b"], "a": ["c"]})
        assert clone_document(doc) == doc

    def test_clone_shares_no_mutable_state(self):
        doc = build_document({"root": ["a", "b"]})
        clone = clone_document(doc)

        clone.nodes["root"].children_ids.append("x")
        clone.nodes["a"].name = "renamed"
        del clone.nodes["b"]

        assert doc.nodes["root"].children_ids == ["a", "b"]
        assert doc.nodes["a"].name == "a"
        assert "b" in doc.nodes

    def test_clone_coerces_non_string_comment(self):
        doc = build_document({"root": ["a"]})
        doc.nodes["a"].comment = None
        assert clone_document(doc).nodes["a"].comment == ""


class TestToDict:
    def test_wire_shape(self):
        doc = build_document({"root": ["a"]}, comments={"a": "note"})
        data = doc.to_dict()
        assert data["rootId"] == "root"
        assert data["nodes"]["a"] == {
            "id": "a",
            "name": "a",
            "comment": "note",
            "parentId": "root",
            "childrenIds": [],
        }

    def test_round_trips_through_normalize(self):
        doc = build_document({"root": ["a", "b"], "a": ["c"]}, comments={"c": "hi"})
        assert normalize_document(json.loads(json.dumps(doc.to_dict()))) == doc


class TestValidateFailures:
    @pytest.mark.parametrize("raw", [None, "doc", 42, ["rootId"]])
    def test_non_object(self, raw):
        result = validate_document(raw)
        assert not result.ok
        assert result.failure

    def test_missing_root_id(self):
        assert not validate_document({"nodes": {}}).ok

    def test_non_string_root_id(self):
        assert not validate_document({"rootId": 1, "nodes": {}}).ok

    def test_nodes_not_object(self):
        assert not validate_document({"rootId": "r", "nodes": []}).ok

    def test_root_node_missing(self):
        raw = {"rootId": "r", "nodes": {"a": raw_node("a", "a")}}
        assert not validate_document(raw).ok

    def test_root_node_invalid_shape_counts_as_missing(self):
        raw = {"rootId": "r", "nodes": {"r": {"id": "r", "name": 5, "childrenIds": []}}}
        assert not validate_document(raw).ok

    def test_normalize_raises(self):
        with pytest.raises(MalformedDocument):
            normalize_document({"rootId": "r", "nodes": {}})

    def test_malformed_document_is_value_error(self):
        with pytest.raises(ValueError):
            normalize_document(None)


class TestValidateRepairs:
    def test_fixture_loads(self):
        raw = json.loads((FIXTURES / "branch_tree.json").read_text())
        doc = normalize_document(raw)
        assert doc.root_id == "root"
        assert doc.nodes["develop"].comment == "integration"
        assert_invariants(doc)

    def test_invalid_nodes_dropped(self):
        raw = {
            "rootId": "r",
            "nodes": {
                "r": raw_node("r", "main", ["a", "bad1", "bad2"]),
                "a": raw_node("a", "a"),
                "bad1": {"id": "bad1", "name": None, "childrenIds": []},
                "bad2": "not a node",
            },
        }
        doc = normalize_document(raw)
        assert set(doc.nodes) == {"r", "a"}
        assert doc.nodes["r"].children_ids == ["a"]

    def test_node_without_children_list_dropped(self):
        raw = {"rootId": "r", "nodes": {"r": raw_node("r", "main", ["a"]), "a": {"id": "a", "name": "a"}}}
        doc = normalize_document(raw)
        assert "a" not in doc.nodes
        assert doc.nodes["r"].children_ids == []

    def test_children_sanitized(self):
        raw = {
            "rootId": "r",
            "nodes": {
                "r": raw_node("r", "main", ["a", "r", "ghost", 7, "a", "b"]),
                "a": raw_node("a", "a"),
                "b": raw_node("b", "b"),
            },
        }
        doc = normalize_document(raw)
        assert doc.nodes["r"].children_ids == ["a", "b"]

    def test_parent_ids_rebuilt_from_children(self):
        raw = {
            "rootId": "r",
            "nodes": {
                "r": raw_node("r", "main", ["a"], parent="bogus"),
                "a": raw_node("a", "a", ["b"], parent="nowhere"),
                "b": raw_node("b", "b", parent="r"),
            },
        }
        doc = normalize_document(raw)
        assert doc.nodes["r"].parent_id is None
        assert doc.nodes["a"].parent_id == "r"
        assert doc.nodes["b"].parent_id == "a"

    def test_shared_child_first_writer_wins(self):
        raw = {
            "rootId": "r",
            "nodes": {
                "r": raw_node("r", "main", ["a", "b"]),
                "a": raw_node("a", "a", ["c"]),
                "b": raw_node("b", "b", ["c"]),
                "c": raw_node("c", "c"),
            },
        }
        doc = normalize_document(raw)
        assert doc.nodes["c"].parent_id == "a"

    def test_root_listed_as_child_keeps_no_parent(self):
        raw = {
            "rootId": "r",
            "nodes": {
                "r": raw_node("r", "main", ["a"]),
                "a": raw_node("a", "a", ["r"]),
            },
        }
        doc = normalize_document(raw)
        assert doc.nodes["r"].parent_id is None

    def test_map_key_is_node_id(self):
        raw = {"rootId": "r", "nodes": {"r": raw_node("other", "main")}}
        doc = normalize_document(raw)
        assert doc.nodes["r"].id == "r"

    def test_non_string_comment_coerced(self):
        raw = json.loads((FIXTURES / "legacy_tree.json").read_text())
        doc = normalize_document(raw)
        assert doc.nodes["hotfix"].comment == ""
        assert doc.nodes["root"].comment == ""


class TestRemoveAndPromote:
    def test_children_take_the_vacated_slot(self):
        doc = build_document({"root": ["x", "t", "y"], "t": ["c1", "c2"]})
        promotion = remove_node_and_promote_children(doc, "t")

        assert promotion.parent_id == "root"
        assert promotion.index == 1
        assert promotion.promoted_ids == ["c1", "c2"]
        assert promotion.cursor_id == "c1"
        assert doc.nodes["root"].children_ids == ["x", "c1", "c2", "y"]
        assert doc.nodes["c1"].parent_id == "root"
        assert "t" not in doc.nodes
        assert_invariants(doc)

    def test_grandchildren_untouched(self):
        doc = build_document({"root": ["t"], "t": ["c"], "c": ["g"]})
        remove_node_and_promote_children(doc, "t")
        assert doc.nodes["c"].children_ids == ["g"]
        assert doc.nodes["g"].parent_id == "c"

    def test_leaf_cursor_goes_to_next_sibling(self):
        doc = build_document({"root": ["a", "b", "c"]})
        assert remove_node_and_promote_children(doc, "b").cursor_id == "c"

    def test_last_leaf_cursor_goes_to_previous_sibling(self):
        doc = build_document({"root": ["a", "b"]})
        assert remove_node_and_promote_children(doc, "b").cursor_id == "a"

    def test_only_child_cursor_goes_to_parent(self):
        doc = build_document({"root": ["a"], "a": ["b"]})
        assert remove_node_and_promote_children(doc, "b").cursor_id == "a"

    def test_root_not_removable(self):
        doc = build_document({"root": ["a"]})
        assert remove_node_and_promote_children(doc, "root") is None
        assert "root" in doc.nodes

    def test_unknown_id(self):
        doc = build_document({"root": ["a"]})
        assert remove_node_and_promote_children(doc, "missing") is None

    def test_orphan_not_removed(self):
        doc = build_document({"root": ["a"]})
        doc.nodes["stray"] = Node(id="stray", name="stray", parent_id="a")
        assert remove_node_and_promote_children(doc, "stray") is None
        assert "stray" in doc.nodes


class TestDocumentAccess:
    def test_get_tolerates_none(self):
        doc = Document(root_id="r", nodes={"r": Node(id="r", name="main")})
        assert doc.get(None) is None
        assert doc.get("missing") is None
        assert doc.get("r") is doc.root

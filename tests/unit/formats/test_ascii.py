"""
Tests for the ASCII tree format.
"""

from branchtree.formats.ascii import (
    AsciiFormat,
    build_ascii_rows,
    display_length,
    serialize_ascii_tree,
)
from branchtree.formats.base import registry
from conftest import build_document


def commented_tree():
    return build_document(
        {"root": ["test", "ok", "subarasii"], "test": ["test2"]},
        names={"subarasii": "subarasii!"},
        comments={"test": "test", "test2": "test2", "ok": "ok", "subarasii": "subara"},
    )


class TestPlainTree:
    def test_guides_and_connectors(self):
        doc = build_document({"root": ["develop", "release"], "develop": ["feat-a"]})
        assert serialize_ascii_tree(doc) == "main\n├── develop\n│   └── feat-a\n└── release"

    def test_blank_guide_under_last_child(self):
        doc = build_document({"root": ["a"], "a": ["b", "c"], "b": ["d"]})
        assert serialize_ascii_tree(doc) == "main\n└── a\n    ├── b\n    │   └── d\n    └── c"

    def test_root_only(self):
        assert serialize_ascii_tree(build_document({})) == "main"

    def test_missing_root(self):
        doc = build_document({})
        doc.root_id = "gone"
        assert serialize_ascii_tree(doc) == ""

    def test_deterministic(self):
        doc = build_document({"root": ["a", "b"], "a": ["c"]})
        assert serialize_ascii_tree(doc) == serialize_ascii_tree(doc)


class TestComments:
    def test_aligned_rows(self):
        rows = build_ascii_rows(commented_tree())
        assert [row.id for row in rows] == ["root", "test", "test2", "ok", "subarasii"]
        assert rows[0].max_left_length == 14
        assert rows[1].line == "├── test          # test"
        assert rows[2].line == "│   └── test2     # test2"
        assert rows[3].line == "├── ok            # ok"
        assert rows[4].line == "└── subarasii!    # subara"

    def test_uncommented_rows_unpadded(self):
        rows = build_ascii_rows(commented_tree())
        assert rows[0].line == "main"

    def test_serialized(self):
        assert serialize_ascii_tree(commented_tree()) == (
            "main\n"
            "├── test          # test\n"
            "│   └── test2     # test2\n"
            "├── ok            # ok\n"
            "└── subarasii!    # subara"
        )

    def test_custom_gap(self):
        rows = build_ascii_rows(commented_tree(), comment_gap=1)
        assert rows[1].line == "├── test       # test"

    def test_gap_from_config(self, monkeypatch):
        monkeypatch.setenv("BRANCHTREE_COMMENT_GAP", "2")
        rows = build_ascii_rows(commented_tree())
        assert rows[4].line == "└── subarasii!  # subara"

    def test_graphemes_measured_as_one(self):
        doc = build_document(
            {"root": ["a", "b"]},
            names={"a": "cafe\u0301", "b": "cafe"},
            comments={"a": "x", "b": "y"},
        )
        rows = build_ascii_rows(doc)
        assert rows[1].left_length == rows[2].left_length
        # one extra code point, same visual column
        assert rows[1].line.index("#") == rows[2].line.index("#") + 1


class TestDisplayLength:
    def test_ascii(self):
        assert display_length("main") == 4

    def test_combining_mark(self):
        assert display_length("e\u0301") == 1

    def test_emoji_sequence(self):
        assert display_length("\U0001F468\u200d\U0001F469\u200d\U0001F467") == 1


class TestAsciiFormat:
    def test_registered(self):
        assert isinstance(registry.get_by_name("ascii"), AsciiFormat)
        assert registry.for_filename("tree.txt").name == "ascii"

    def test_render_uses_config_gap(self):
        from branchtree.config import ExportConfig

        text = AsciiFormat().render(commented_tree(), ExportConfig(comment_gap=0))
        assert "├── test      # test" in text

    def test_no_fence(self):
        assert AsciiFormat().fence_language is None

"""
Tests for savescribe.walker
===========================
Run with:  pytest tests/test_walker.py -v
"""

from __future__ import annotations

import json

import pytest

from savescribe.models import DetectedStructure, StructureKind
from savescribe.walker import (
    WALKERS, json_child_path, json_path_tokens, leaf_text, walk, walk_json, walk_key_value, walk_xml,
)


def _triples(entries):
    return [(e.key, e.value, e.path) for e in entries]


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

class TestWalkJson:
    def test_paths_and_array_items(self):
        text = '{"player": {"gold": 100, "items": [{"count": 3}, 7]}, "name": null}'
        assert _triples(walk_json(text)) == [
            ("gold", 100, "player.gold"),
            ("count", 3, "player.items[0].count"),
            ("item_1", 7, "player.items[1]"),
        ]

    def test_booleans_and_strings_are_leaves(self):
        entries = list(walk_json('{"sound": true, "name": "hero"}'))
        assert [(e.key, e.value) for e in entries] == [("sound", True), ("name", "hero")]

    def test_containers_never_yielded(self):
        entries = list(walk_json('{"a": {}, "b": []}'))
        assert entries == []

    def test_depth_limit(self):
        doc = {"gold": 1}
        for _ in range(70):
            doc = {"n": doc}
        text = json.dumps(doc)
        assert list(walk_json(text)) == []
        assert len(list(walk_json(text, max_depth=100))) == 1

    def test_unparseable_yields_nothing(self):
        assert list(walk_json("{ nope")) == []

    def test_dotted_key_kept_apart_from_nesting(self):
        entries = list(walk_json('{"a.b": 1, "a": {"b": 2}}'))
        assert [(e.value, e.path) for e in entries] == [(1, '["a.b"]'), (2, "a.b")]


# ---------------------------------------------------------------------------
# JSON paths
# ---------------------------------------------------------------------------

class TestJsonPaths:
    @pytest.mark.parametrize("parent, key, expected", [
        ("",       "gold", "gold"),
        ("player", "gold", "player.gold"),
        ("",       "a.b",  '["a.b"]'),
        ("p",      "x[1]", 'p["x[1]"]'),
        ("p",      "",     'p[""]'),
    ])
    def test_child_path(self, parent, key, expected):
        assert json_child_path(parent, key) == expected

    @pytest.mark.parametrize("path, tokens", [
        ("player.items[0].count", ["player", "items", 0, "count"]),
        ('["a.b"].c',             ["a.b", "c"]),
        ("[2]",                   [2]),
    ])
    def test_tokens(self, path, tokens):
        assert json_path_tokens(path) == tokens

    def test_quote_in_key_parses_back(self):
        path = json_child_path("root", 'say "hi"')
        assert json_path_tokens(path) == ["root", 'say "hi"']

    @pytest.mark.parametrize("path", ["", "a..b", ".a", 'a["b'])
    def test_not_a_path(self, path):
        assert json_path_tokens(path) is None

    def test_leaf_text(self):
        assert [leaf_text(v) for v in (True, 1.5, 7, "x")] == ["true", "1.5", "7", "x"]


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

class TestWalkXml:
    def test_attributes_then_elements(self):
        text = '<save gold="500"><level>7</level></save>'
        assert _triples(walk_xml(text)) == [
            ("gold", "500", "attribute: gold (char 12)"),
            ("level", "7", "element: level (char 24)"),
        ]

    def test_single_quotes(self):
        entries = list(walk_xml("<hero hp='40'/>"))
        assert entries[0].key == "hp"
        assert entries[0].value == "40"


# ---------------------------------------------------------------------------
# Key / value
# ---------------------------------------------------------------------------

class TestWalkKeyValue:
    def test_sections_prefix_keys(self):
        text = "[player]\ngold=5000\n; comment\nlevel: 10\n"
        assert _triples(walk_key_value(text)) == [
            ("player.gold", "5000", "Line 2 [player]"),
            ("player.level", "10", "Line 4 [player]"),
        ]

    def test_no_section(self):
        entries = list(walk_key_value("gold = 5\n"))
        assert entries[0].path == "Line 1"
        assert entries[0].context == ""


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_every_kind_has_a_walker(self):
        assert set(WALKERS) == set(StructureKind)

    def test_binary_yields_nothing(self):
        assert list(walk(DetectedStructure.binary(), "gold=5")) == []

    def test_empty_text(self):
        assert list(walk(DetectedStructure.json(["a"]), "")) == []

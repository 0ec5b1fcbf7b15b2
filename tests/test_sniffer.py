"""
Tests for savescribe.sniffer
============================
Run with:  pytest tests/test_sniffer.py -v
"""

from __future__ import annotations

import codecs

from savescribe import sniffer
from savescribe.models import StructureKind
from savescribe.sniffer import classify, decode_text, load_json, printable_ratio, sniff, split_pair


# ---------------------------------------------------------------------------
# decode_text
# ---------------------------------------------------------------------------

class TestDecodeText:
    def test_plain_utf8(self):
        doc = decode_text(b'{"gold": 1}')
        assert doc is not None
        assert doc.encoding == "utf-8"
        assert doc.text == '{"gold": 1}'

    def test_utf8_bom_is_remembered(self):
        raw = codecs.BOM_UTF8 + b"gold=5\n"
        doc = decode_text(raw)
        assert doc.display_encoding == "utf-8-sig"
        assert doc.text == "gold=5\n"
        assert doc.encode(doc.text) == raw

    def test_utf16_le_with_bom(self):
        raw = codecs.BOM_UTF16_LE + "gold=5\n".encode("utf-16-le")
        doc = decode_text(raw)
        assert doc.encoding == "utf-16-le"
        assert doc.text == "gold=5\n"

    def test_binary_is_not_text(self):
        assert decode_text(b"\x00\x01\x02\x03" * 16) is None

    def test_empty(self):
        assert decode_text(b"") is None

    def test_printable_ratio(self):
        assert printable_ratio("abc") == 1.0
        assert printable_ratio("") == 0.0
        assert printable_ratio("a\x00") == 0.5


# ---------------------------------------------------------------------------
# load_json / split_pair
# ---------------------------------------------------------------------------

class TestLoadJson:
    def test_strict_object(self):
        assert load_json('{"a": 1}') == {"a": 1}

    def test_comments_and_trailing_commas(self):
        text = '{\n  // gold\n  "gold": 5, # inline\n  /* block */ "url": "http://x",\n}'
        assert load_json(text) == {"gold": 5, "url": "http://x"}

    def test_top_level_array_accepted_tolerantly(self):
        assert load_json("[1, 2]") == [1, 2]

    def test_scalar_rejected(self):
        assert load_json("5") is None

    def test_garbage(self):
        assert load_json("{ invalid json content }") is None

    def test_deep_nesting_does_not_raise(self):
        assert load_json("[" * 100_000 + "]" * 100_000) is None


class TestSplitPair:
    def test_equals(self):
        assert split_pair("gold = 500") == ("gold", "500")

    def test_colon(self):
        assert split_pair("level: 3") == ("level", "3")

    def test_equals_wins_over_colon(self):
        assert split_pair("time=12:30") == ("time", "12:30")

    def test_comment_and_header_are_not_pairs(self):
        assert split_pair("# gold=5") is None
        assert split_pair("; gold=5") is None
        assert split_pair("[player]") is None

    def test_empty_key(self):
        assert split_pair("=5") is None


# ---------------------------------------------------------------------------
# classify / sniff
# ---------------------------------------------------------------------------

class TestClassify:
    def test_json(self):
        structure = classify(b'{"player": {"gold": 100}}')
        assert structure.kind is StructureKind.JSON
        assert {"player", "gold"} <= structure.keys

    def test_invalid_json_is_plain_text(self):
        assert classify(b"{ invalid json content }").kind is StructureKind.PLAIN_TEXT

    def test_xml(self):
        structure = classify(b'<?xml version="1.0"?><save><gold>100</gold></save>')
        assert structure.kind is StructureKind.XML
        assert {"save", "gold"} <= structure.elements

    def test_key_value(self):
        structure = classify(b"[player]\ngold=5000\nlevel: 10\n")
        assert structure.kind is StructureKind.KEY_VALUE
        assert dict(structure.pairs) == {"gold": "5000", "level": "10"}

    def test_plain_text(self):
        assert classify(b"The hero carries 500 gold").kind is StructureKind.PLAIN_TEXT

    def test_binary(self):
        assert classify(b"\x00\x01\x02\x03" * 16).kind is StructureKind.BINARY

    def test_sqlite(self):
        data = b"SQLite format 3\x00" + b"\x00" * 100 + b"CREATE TABLE players (id INTEGER)"
        structure = classify(data)
        assert structure.kind is StructureKind.DATABASE
        assert structure.tables == ("players",)

    def test_empty_is_binary(self):
        structure, document = sniff(b"")
        assert structure.kind is StructureKind.BINARY
        assert document is None

    def test_only_one_payload_populated(self):
        structure = classify(b"gold=1\n")
        assert structure.keys == frozenset()
        assert structure.elements == frozenset()
        assert structure.tables == ()

    def test_failed_classification_keeps_the_text(self, monkeypatch):
        def boom(text):
            raise RuntimeError("boom")

        monkeypatch.setattr(sniffer, "_classify_text", boom)
        structure, document = sniff(b"gold = 500\n")
        assert structure.kind is StructureKind.UNKNOWN
        assert document.text == "gold = 500\n"

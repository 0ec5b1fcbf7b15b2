"""
Tests for savescribe.models
===========================
Run with:  pytest tests/test_models.py -v
"""

from __future__ import annotations

import pytest

from savescribe.models import Candidate, Category, DataType, DetectedStructure, StructureKind


class TestDetectedStructure:
    def test_default_pairs_empty(self):
        assert dict(DetectedStructure(StructureKind.BINARY).pairs) == {}

    def test_default_pairs_read_only(self):
        with pytest.raises(TypeError):
            DetectedStructure(StructureKind.BINARY).pairs["gold"] = "1"

    def test_key_value_pairs_copied_and_read_only(self):
        source = {"gold": "100"}
        structure = DetectedStructure.key_value(source)
        source["gold"] = "999"
        assert structure.pairs["gold"] == "100"
        with pytest.raises(TypeError):
            structure.pairs["gold"] = "1"

    def test_frozen(self):
        with pytest.raises(AttributeError):
            DetectedStructure.binary().kind = StructureKind.JSON


class TestCandidate:
    def test_confidence_clamped(self):
        assert Candidate("k", "1", DataType.INTEGER, Category.UNKNOWN, 1.7, "Line 1").confidence == 1.0

    def test_with_edit_keeps_first_original(self):
        candidate = Candidate("gold", "5", DataType.INTEGER, Category.CURRENCY, 0.9, "gold")
        twice = candidate.with_edit("6").with_edit("7")
        assert (twice.raw_value, twice.original_value) == ("7", "5")

    def test_scalar_of_aliases(self):
        assert DataType.CURRENCY.scalar is DataType.INTEGER
        assert DataType.FLOAT.scalar is DataType.FLOAT

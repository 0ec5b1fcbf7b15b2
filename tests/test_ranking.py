"""
Tests for savescribe.ranking
============================
Run with:  pytest tests/test_ranking.py -v
"""

from __future__ import annotations

from savescribe.models import Candidate, Category, DataType
from savescribe.ranking import deduplicate, rank


def _c(key: str, confidence: float, value: str = "1", location: str = "Line 1") -> Candidate:
    return Candidate(key, value, DataType.INTEGER, Category.UNKNOWN, confidence, location)


class TestDeduplicate:
    def test_first_occurrence_wins(self):
        first, second = _c("gold", 0.4), _c("gold", 0.9)
        assert deduplicate([first, second]) == [first]

    def test_location_is_part_of_identity(self):
        assert len(deduplicate([_c("gold", 0.5), _c("gold", 0.5, location="Line 2")])) == 2


class TestRank:
    def test_descending(self):
        ranked = rank([_c("a", 0.2), _c("b", 0.9), _c("c", 0.5)])
        assert [c.key for c in ranked] == ["b", "c", "a"]

    def test_stable_for_ties(self):
        ranked = rank([_c("a", 0.5), _c("b", 0.5), _c("c", 0.5)])
        assert [c.key for c in ranked] == ["a", "b", "c"]

    def test_limit(self):
        many = [_c(f"k{i}", i / 300, location=f"Line {i}") for i in range(300)]
        ranked = rank(many)
        assert len(ranked) == 150
        assert ranked[0].key == "k299"

    def test_custom_limit(self):
        assert len(rank([_c(f"k{i}", 0.5) for i in range(10)], limit=3)) == 3

    def test_empty(self):
        assert rank([]) == []

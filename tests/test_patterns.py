"""
Tests for savescribe.patterns
=============================
Run with:  pytest tests/test_patterns.py -v
"""

from __future__ import annotations

import pytest

from savescribe.models import Category, DataType, SourceKind
from savescribe.patterns import (
    detect,
    detect_candidates,
    detect_contextual,
    detect_keyword_patterns,
    detect_loose_numbers,
    detect_text_pairs,
    difference_relationship,
    experience_curve,
    extract_numbers,
    fibonacci_like,
    level_sequence,
    multiplication_relationship,
    percentage_values,
    power_of_two,
    ratio_relationship,
    sum_relationship,
)


# ---------------------------------------------------------------------------
# extract_numbers
# ---------------------------------------------------------------------------

class TestExtractNumbers:
    def test_values_lines_columns(self):
        found = extract_numbers("gold: 500\nlevel 7 and 3.5")
        assert [(c.value, c.line, c.column) for c in found] == [
            (500.0, 1, 7), (7.0, 2, 7), (3.5, 2, 13),
        ]

    def test_raw_text_kept(self):
        assert extract_numbers("ratio 2.50")[0].raw == "2.50"

    def test_context(self):
        ctx = extract_numbers("gold: 500 coins")[0]
        assert ctx.text_before == "gold: "
        assert ctx.text_after == " coins"

    def test_digits_inside_identifiers_ignored(self):
        found = extract_numbers('{"stage1": 1, "stage2": 2, "stage3": 3}')
        assert [(c.raw, c.column) for c in found] == [("1", 12), ("2", 25), ("3", 38)]

    def test_only_ascii_digits(self):
        assert extract_numbers("gold \u0661\u0662") == []


# ---------------------------------------------------------------------------
# Scorers
# ---------------------------------------------------------------------------

class TestScorers:
    def test_level_sequence(self):
        assert level_sequence([1, 2, 3, 4]) == pytest.approx(0.9)

    def test_experience_curve(self):
        assert experience_curve([100, 200, 400, 800]) == pytest.approx(0.86)

    def test_experience_curve_needs_four_values(self):
        assert experience_curve([100, 200, 400]) == 0.0

    def test_percentage_values(self):
        assert percentage_values([10, 50, 200]) == pytest.approx(2 / 3)

    def test_power_of_two(self):
        assert power_of_two([1, 2, 4, 8]) == 1.0
        assert power_of_two([3, 5]) == 0.0

    def test_fibonacci_like(self):
        assert fibonacci_like([1, 2, 3, 5, 8]) == 1.0

    def test_relationships(self):
        assert sum_relationship([1, 2, 3, 5, 8]) == 1.0
        assert difference_relationship([10, 20, 30, 40]) == 1.0
        assert ratio_relationship([2, 4, 8, 16]) == 1.0
        assert multiplication_relationship([2, 3, 6, 18]) == 1.0

    def test_constant_values_have_no_difference_relationship(self):
        assert difference_relationship([5, 5, 5]) == 0.0

    def test_all_scores_bounded(self):
        samples = [[0, 0, 0], [1e9, 1, 0.001], [7, 7, 7, 7], [3, 1, 4, 1, 5, 9, 2, 6]]
        scorers = (level_sequence, experience_curve, percentage_values, power_of_two,
                   fibonacci_like, sum_relationship, difference_relationship,
                   ratio_relationship, multiplication_relationship)
        for values in samples:
            for scorer in scorers:
                assert 0.0 <= scorer([float(v) for v in values]) <= 1.0


# ---------------------------------------------------------------------------
# detect / detect_candidates
# ---------------------------------------------------------------------------

class TestDetect:
    def test_needs_three_values(self):
        assert detect([1.0, 2.0]) == []

    def test_representative_is_a_member(self):
        values = [1.0, 2.0, 3.0, 4.0, 5.0]
        hits = {h.name: h for h in detect(values)}
        assert "level_sequence" in hits
        assert hits["level_sequence"].value in values
        assert hits["level_sequence"].confidence == pytest.approx(0.9)

    def test_candidates_point_at_representative(self):
        contexts = extract_numbers("level 1\nlevel 2\nlevel 3\nlevel 4\n")
        by_key = {c.key: c for c in detect_candidates(contexts)}

        level = by_key["level_sequence"]
        assert level.raw_value == "2"
        assert level.location == "Line 2, column 7"
        assert level.source is SourceKind.PATTERN
        assert level.category is Category.PROGRESS

        rel = by_key["difference_relationship"]
        assert rel.raw_value == "1, 2, 3"
        assert rel.data_type is DataType.STRING
        assert rel.location == "Lines 1-3 (relationship pattern)"
        assert rel.source is SourceKind.RELATIONSHIP

    def test_embedded_locations(self):
        from savescribe.models import NumericContext
        contexts = [NumericContext(float(v), 0, 10 * v, "", "", str(v)) for v in (1, 2, 3, 4)]
        by_key = {c.key: c for c in detect_candidates(contexts, source=SourceKind.EMBEDDED)}
        assert by_key["level_sequence"].location == "Embedded offset 20"
        assert by_key["level_sequence"].source is SourceKind.EMBEDDED


# ---------------------------------------------------------------------------
# Text detectors
# ---------------------------------------------------------------------------

class TestTextDetectors:
    def test_text_pairs(self):
        candidates = detect_text_pairs("gold = 500\nname: bob\n")
        assert len(candidates) == 1
        gold = candidates[0]
        assert (gold.key, gold.raw_value, gold.location) == ("gold", "500", "Line 1, column 8")
        assert gold.source is SourceKind.TEXT

    def test_quoted_pairs(self):
        keys = {c.key for c in detect_text_pairs("\"coins\": 40\nhp='25'\n")}
        assert {"coins", "hp"} <= keys

    def test_loose_numbers(self):
        candidates = detect_loose_numbers("abc 0 12 2000000")
        assert [c.raw_value for c in candidates] == ["12"]

    def test_loose_numbers_skip_decimal_fragments(self):
        candidates = detect_loose_numbers("ratio 1.5 and 7 and x9")
        assert [c.raw_value for c in candidates] == ["7"]

    def test_text_pair_needs_a_whole_number(self):
        assert detect_text_pairs("gold=12abc\n") == []

    def test_keyword_phrase(self):
        hits = {c.key: c for c in detect_keyword_patterns("attack 45\n")}
        stat = hits["stat_block_1"]
        assert stat.raw_value == "45"
        assert stat.location == "Line 1, column 8"
        assert stat.confidence == pytest.approx(0.85)
        assert stat.category is Category.STATS

    def test_contextual(self):
        hits = detect_contextual("The player has 250 gold\n")
        assert [(c.key, c.raw_value, c.location) for c in hits] == [
            ("player_value", "250", "Line 1, column 16"),
        ]

    def test_contextual_level_bonus(self):
        hit = detect_contextual("level 12")[0]
        assert hit.confidence == pytest.approx(1.0)

"""
Tests for savescribe.keywords
=============================
Run with:  pytest tests/test_keywords.py -v
"""

from __future__ import annotations

import pytest

from savescribe.keywords import (
    CATEGORY_KEYWORDS,
    CATEGORY_WEIGHTS,
    classify,
    context_score,
    describe,
    is_boolean_like,
    match_keywords,
    normalize_key,
    range_score,
)
from savescribe.models import Category


class TestTables:
    def test_every_table_has_a_weight(self):
        assert set(CATEGORY_KEYWORDS) == set(CATEGORY_WEIGHTS)

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            CATEGORY_WEIGHTS[Category.CURRENCY] = 0.1


class TestMatchKeywords:
    def test_normalize(self):
        assert normalize_key("Player_Gold-Count") == "playergoldcount"

    def test_single_match(self):
        match = match_keywords("gold")
        assert match.category is Category.CURRENCY
        assert match.score == pytest.approx(0.9)

    def test_extra_matches_add_bonus(self):
        match = match_keywords("player_gold_coins")
        assert match.category is Category.CURRENCY
        assert match.score == pytest.approx(0.95)

    def test_no_match(self):
        match = match_keywords("zzz")
        assert match.category is Category.UNKNOWN
        assert match.score == 0.0

    def test_score_never_exceeds_one(self):
        assert match_keywords("gold_coin_money_cash_gem_exp_hp_level").score <= 1.0


class TestRangeScore:
    def test_round_thousand(self):
        assert range_score(5000) == pytest.approx(1.0)

    def test_small_integer(self):
        assert range_score(5) == pytest.approx(0.7)

    def test_zero_and_negative_penalised(self):
        assert range_score(0) == pytest.approx(-0.3)
        assert range_score(-5) == pytest.approx(-0.4)

    def test_numeric_string(self):
        assert range_score("250") == range_score(250)

    def test_boolean_like(self):
        assert range_score("true") == 0.5

    def test_non_numeric(self):
        assert range_score("abc") == 0.0


class TestBooleans:
    @pytest.mark.parametrize("text", ["true", "False", "YES", "no", "on", "Off", "enabled", "disabled"])
    def test_aliases(self, text):
        assert is_boolean_like(text)

    @pytest.mark.parametrize("text", ["1", "0", "maybe", ""])
    def test_not_boolean(self, text):
        assert not is_boolean_like(text)


class TestClassify:
    def test_keyword(self):
        assert classify("volume", "80") == (Category.SETTINGS, pytest.approx(0.5))

    def test_boolean_without_keyword(self):
        assert classify("foo", "true") == (Category.SETTINGS, 0.0)

    def test_range_fallback(self):
        assert classify("foo", "5000")[0] is Category.CURRENCY
        assert classify("foo", "7")[0] is Category.PROGRESS

    def test_context_fallback(self):
        assert classify("foo", "abc", "inventory")[0] is Category.INVENTORY

    def test_context_score(self):
        assert context_score("player save") == pytest.approx(0.9)
        assert context_score("player game save") == 1.0
        assert context_score("") == 0.0

    def test_describe(self):
        text = describe("gold", "500", Category.CURRENCY, "player")
        assert "gold = 500" in text
        assert "player" in text

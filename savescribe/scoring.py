"""
savescribe.scoring
==================
Confidence fusion.

Sub-scores are combined additively and the running total is clamped to
``[0, 1]`` after every step, so no intermediate value ever leaves the range::

    confidence = clamp(keyword * w_kw)
    confidence = clamp(confidence + range * w_range)
    confidence = clamp(confidence + context * w_ctx)
    confidence = clamp(confidence + frequency)

Binary candidates have no key to match against; they are scored from value
range, byte alignment and the density of non-zero bytes around the offset.
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import PurePath
from typing import Any, Iterable

from savescribe.config import DEFAULT_CONFIG, EngineConfig
from savescribe.keywords import classify, context_score, range_score
from savescribe.models import Candidate, Category

logger = logging.getLogger(__name__)

GAME_FILE_PATTERNS: tuple[str, ...] = (
    "save", "player", "profile", "progress", "config", "settings",
    "data", "game", "user", "stats", "inventory", "character",
)

DENSITY_WINDOW = 16


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def fuse(
    keyword:   float,
    range_:    float,
    context:   float,
    frequency: float = 0.0,
    config:    EngineConfig = DEFAULT_CONFIG,
) -> float:
    """Weighted additive fusion, clamped after each addition."""
    confidence = clamp(keyword * config.keyword_weight)
    confidence = clamp(confidence + range_ * config.range_weight)
    confidence = clamp(confidence + context * config.context_weight)
    return clamp(confidence + frequency)


def frequency_score(key: str, text: str) -> float:
    """
    Correction for how often *key* appears in *text*.  A key seen exactly
    once is favoured; one seen more than ten times is treated as generic.
    """
    if not key or not text:
        return 0.0
    occurrences = len(re.findall(re.escape(key), text, re.IGNORECASE))
    if occurrences == 1:
        return 0.1
    if 2 <= occurrences <= 5:
        return 0.05
    if occurrences > 10:
        return -0.2
    return 0.0


def score_entry(
    key:     str,
    value:   Any,
    context: str = "",
    text:    str = "",
    config:  EngineConfig = DEFAULT_CONFIG,
) -> tuple[Category, float]:
    """Category and fused confidence for one structured key/value entry."""
    category, keyword = classify(key, value, context)
    confidence = fuse(
        keyword,
        range_score(value),
        context_score(f"{context} {key}"),
        frequency_score(key, text),
        config,
    )
    return category, confidence


# ---------------------------------------------------------------------------
# Binary
# ---------------------------------------------------------------------------

def alignment_bonus(offset: int) -> float:
    if offset % 8 == 0:
        return 0.3
    if offset % 4 == 0:
        return 0.2
    return 0.0


def _density(data: bytes, offset: int) -> float:
    half = DENSITY_WINDOW // 2
    window = data[max(0, offset - half):offset + half]
    if not window:
        return 0.0
    return sum(1 for b in window if b) / len(window)


def binary_confidence(value: int, offset: int, data: bytes) -> float:
    if 1 <= value <= 100:
        confidence = 0.6
    elif value <= 10_000:
        confidence = 0.7
    elif value <= 1_000_000:
        confidence = 0.5
    else:
        confidence = 0.3
    confidence = clamp(confidence + alignment_bonus(offset))
    return clamp(confidence + _density(data, offset) * 0.2)


def float_confidence(value: float, offset: int) -> float:
    magnitude = abs(value)
    if magnitude < 0.001:
        confidence = -0.3
    elif magnitude <= 1.0:
        confidence = 0.7
    elif magnitude <= 100.0:
        confidence = 0.5
    elif magnitude <= 10_000.0:
        confidence = 0.4
    else:
        confidence = 0.2
    confidence = clamp(confidence)
    if offset % 4 == 0:
        confidence = clamp(confidence + 0.2)
    return confidence


# ---------------------------------------------------------------------------
# File name
# ---------------------------------------------------------------------------

def file_name_bonus(name: str, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """Small bonus when the file name itself looks like game data."""
    if not name:
        return 0.0
    stem = PurePath(name).name.lower()
    hits = sum(1 for pattern in GAME_FILE_PATTERNS if pattern in stem)
    return min(config.file_name_bonus_cap, hits * config.file_name_bonus)


def boost(candidates: Iterable[Candidate], bonus: float) -> list[Candidate]:
    if bonus <= 0:
        return list(candidates)
    return [replace(c, confidence=clamp(c.confidence + bonus)) for c in candidates]

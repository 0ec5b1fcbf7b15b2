"""
savescribe.patterns
===================
Detection that does not rely on a parsed structure.

Statistical detectors look at the whole population of numbers in a file
(typical currency progressions, level sequences, XP curves, arithmetic
relationships between neighbours).  Text detectors scan line by line:
``key: value`` pairs in loose text, regex families for common game phrases,
and numbers appearing shortly after a game keyword.

Scorers take a plain list of floats and return a score in ``[0, 1]``.
"""

from __future__ import annotations

import logging
import re
import statistics
from typing import Callable, NamedTuple

from savescribe.config import DEFAULT_CONFIG, EngineConfig
from savescribe.keywords import describe
from savescribe.models import Candidate, Category, DataType, NumericContext, SourceKind
from savescribe.scoring import clamp, score_entry
from savescribe.walker import text_location

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 50

# Whole numbers only: digits inside identifiers ("stage2") or fragments of a
# longer decimal never count.
NUMBER_PATTERN  = r"(?<![\w.])[0-9]+(?:\.[0-9]+)?(?!\w|\.[0-9])"
INTEGER_PATTERN = r"(?<![\w.])[0-9]+(?!\w|\.[0-9])"

_RE_NUMBER      = re.compile(NUMBER_PATTERN)
_RE_LOOSE_INT   = re.compile(INTEGER_PATTERN)

_TEXT_PAIR_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(\w+)\s*[=:]\s*({NUMBER_PATTERN})"),
    re.compile(rf"\"(\w+)\"\s*[=:]\s*({NUMBER_PATTERN})"),
    re.compile(rf"'(\w+)'\s*[=:]\s*({NUMBER_PATTERN})"),
    re.compile(rf"(\w+)\s*=\s*\"({NUMBER_PATTERN})\""),
    re.compile(rf"(\w+)\s*=\s*'({NUMBER_PATTERN})'"),
)


def _data_type(raw: str) -> DataType:
    return DataType.FLOAT if "." in raw else DataType.INTEGER


# ---------------------------------------------------------------------------
# Number extraction
# ---------------------------------------------------------------------------

def extract_numbers(text: str) -> list[NumericContext]:
    """Every unsigned decimal number in *text* with 1-based line/column."""
    found: list[NumericContext] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        for match in _RE_NUMBER.finditer(line):
            found.append(NumericContext(
                value       = float(match.group()),
                line        = line_number,
                column      = match.start() + 1,
                text_before = line[max(0, match.start() - CONTEXT_CHARS):match.start()],
                text_after  = line[match.end():match.end() + CONTEXT_CHARS],
                raw         = match.group(),
            ))
    return found


# ---------------------------------------------------------------------------
# Population scorers
# ---------------------------------------------------------------------------

def _is_round(value: float, *bases: int) -> bool:
    return any(value % base == 0 for base in bases)


def currency_progression(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    ordered = sorted(values)
    score = sum(1 for v in ordered if _is_round(v, 10, 100, 1000)) / len(values) * 0.4
    if values == ordered:
        score += 0.3
    score += sum(1 for v in values if 1 <= v <= 10_000_000) / len(values) * 0.3
    return clamp(score)


def level_sequence(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    ints = sorted(int(v) for v in values)
    gaps = [b - a for a, b in zip(ints, ints[1:])]
    if all(gap == 1 for gap in gaps):
        return 0.9
    sequential = sum(1 for gap in gaps if 1 <= gap <= 3) / len(gaps)
    in_range = sum(1 for v in ints if 1 <= v <= 1000) / len(ints)
    return clamp(sequential * 0.6 + in_range * 0.4)


def experience_curve(values: list[float], min_values: int = 4) -> float:
    """Average growth ratio between sorted values; 1.1 to 3.0 looks like an XP table."""
    if len(values) < min_values:
        return 0.0
    ordered = sorted(values)
    ratios = [b / a for a, b in zip(ordered, ordered[1:]) if a > 0 and b > 0]
    if not ratios:
        return 0.0
    average = statistics.mean(ratios)
    if 1.1 < average <= 3.0:
        growth = 0.8
    elif 1.0 <= average <= 1.1:
        growth = 0.4
    elif average > 3.0:
        growth = 0.6
    else:
        growth = 0.2
    in_range = sum(1 for v in ordered if 100 <= v <= 10_000_000) / len(ordered)
    return clamp(growth * 0.7 + in_range * 0.3)


def percentage_values(values: list[float]) -> float:
    if not values:
        return 0.0
    return clamp(sum(1 for v in values if 0 <= v <= 100) / len(values))


def round_numbers(values: list[float]) -> float:
    if not values:
        return 0.0
    return clamp(sum(1 for v in values if _is_round(v, 5, 10)) / len(values))


def fibonacci_like(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    ints = sorted(int(v) for v in values)
    hits = sum(1 for i in range(2, len(ints)) if abs(ints[i] - (ints[i - 2] + ints[i - 1])) <= 1)
    return clamp(hits / (len(ints) - 2))


def power_of_two(values: list[float]) -> float:
    if not values:
        return 0.0
    count = 0
    for v in values:
        n = int(v)
        if n > 0 and n & (n - 1) == 0:
            count += 1
    return clamp(count / len(values))


def health_mana(values: list[float]) -> float:
    pool = [v for v in values if 1 <= v <= 1000]
    if not pool:
        return 0.0
    return clamp(sum(1 for v in pool if _is_round(v, 5, 10)) / len(pool))


def achievement_scores(values: list[float]) -> float:
    if not values:
        return 0.0
    high = sum(1 for v in values if v > 10_000) / len(values)
    rounded = sum(1 for v in values if _is_round(v, 100)) / len(values)
    return clamp(high * 0.6 + rounded * 0.4)


def inventory_quantities(values: list[float]) -> float:
    if not values:
        return 0.0
    return clamp(sum(1 for v in values if v.is_integer() and 1 <= v <= 999) / len(values))


# ---------------------------------------------------------------------------
# Relationship scorers (order-sensitive, neighbours in file order)
# ---------------------------------------------------------------------------

def sum_relationship(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    hits = sum(1 for i in range(2, len(values))
               if abs(values[i] - (values[i - 1] + values[i - 2])) < 0.01)
    return clamp(hits / (len(values) - 2))


def ratio_relationship(values: list[float]) -> float:
    positive = [v for v in values if v > 0]
    if len(positive) < 3:
        return 0.0
    ratios = [b / a for a, b in zip(positive, positive[1:])]
    average = statistics.mean(ratios)
    return clamp(sum(1 for r in ratios if abs(r - average) < average * 0.1) / len(ratios))


def difference_relationship(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    diffs = [b - a for a, b in zip(values, values[1:])]
    average = statistics.mean(diffs)
    return clamp(sum(1 for d in diffs if abs(d - average) < abs(average) * 0.1) / len(diffs))


def multiplication_relationship(values: list[float]) -> float:
    if len(values) < 3:
        return 0.0
    hits = 0
    for i in range(2, len(values)):
        product = values[i - 1] * values[i - 2]
        if abs(values[i] - product) < product * 0.01:
            hits += 1
    return clamp(hits / (len(values) - 2))


# ---------------------------------------------------------------------------
# Detector tables
# ---------------------------------------------------------------------------

class Detector(NamedTuple):
    name:        str
    scorer:      Callable[[list[float]], float]
    category:    Category
    description: str


POPULATION_DETECTORS: tuple[Detector, ...] = (
    Detector("currency_progression", currency_progression, Category.CURRENCY,
             "Values that increase in typical currency patterns"),
    Detector("level_sequence", level_sequence, Category.PROGRESS,
             "Sequential level progression (1, 2, 3, etc.)"),
    Detector("experience_curve", experience_curve, Category.EXPERIENCE,
             "Exponential experience point progression"),
    Detector("percentage_values", percentage_values, Category.STATS,
             "Values that represent percentages (0-100)"),
    Detector("round_numbers", round_numbers, Category.CURRENCY,
             "Round numbers often used in games"),
    Detector("fibonacci_like", fibonacci_like, Category.PROGRESS,
             "Fibonacci-like sequences common in game progression"),
    Detector("power_of_two", power_of_two, Category.STATS,
             "Powers of 2 often used in game mechanics"),
    Detector("health_mana_pattern", health_mana, Category.HEALTH_ENERGY,
             "Typical health/mana value patterns"),
    Detector("achievement_scores", achievement_scores, Category.ACHIEVEMENTS,
             "High scores typical of achievements"),
    Detector("inventory_quantities", inventory_quantities, Category.INVENTORY,
             "Small integer quantities typical of inventory"),
)

RELATIONSHIP_DETECTORS: tuple[Detector, ...] = (
    Detector("sum_relationship", sum_relationship, Category.RELATIONSHIPS,
             "Each value is the sum of the two before it"),
    Detector("ratio_relationship", ratio_relationship, Category.RELATIONSHIPS,
             "Consecutive values grow by a constant ratio"),
    Detector("difference_relationship", difference_relationship, Category.RELATIONSHIPS,
             "Consecutive values differ by a constant step"),
    Detector("multiplication_relationship", multiplication_relationship, Category.RELATIONSHIPS,
             "Each value is the product of the two before it"),
)


class PatternHit(NamedTuple):
    value:      float
    name:       str
    confidence: float
    category:   Category


def detect(values: list[float], config: EngineConfig = DEFAULT_CONFIG) -> list[PatternHit]:
    """
    Run every detector over *values*.  Population hits carry the low median,
    which is always a member of *values*; relationship hits carry the first
    value.
    """
    if len(values) < config.min_pattern_values:
        return []
    hits: list[PatternHit] = []
    representative = statistics.median_low(values)
    for detector in POPULATION_DETECTORS:
        score = detector.scorer(values)
        if score > config.pattern_threshold:
            hits.append(PatternHit(representative, detector.name, score, detector.category))
    for detector in RELATIONSHIP_DETECTORS:
        score = detector.scorer(values)
        if score > config.relationship_threshold:
            hits.append(PatternHit(values[0], detector.name, score, detector.category))
    return hits


_DESCRIPTIONS: dict[str, str] = {
    d.name: d.description for d in POPULATION_DETECTORS + RELATIONSHIP_DETECTORS
}


def detect_candidates(
    contexts: list[NumericContext],
    config:   EngineConfig = DEFAULT_CONFIG,
    source:   SourceKind = SourceKind.PATTERN,
) -> list[Candidate]:
    """
    Turn statistical hits into candidates.

    Population hits point at the first occurrence of the representative
    value.  Relationship hits list the first three values and cannot be
    rewritten.  With ``source=EMBEDDED`` the contexts come from binary and
    locations are byte offsets.
    """
    if not contexts:
        return []
    hits = detect([c.value for c in contexts], config)
    if not hits:
        return []

    embedded = source is SourceKind.EMBEDDED
    candidates: list[Candidate] = []
    for hit in hits:
        if hit.category is Category.RELATIONSHIPS:
            related = contexts[:3]
            if embedded:
                where = f"Embedded offsets {related[0].column}-{related[-1].column}"
            else:
                where = f"Lines {related[0].line}-{related[-1].line}"
            candidates.append(Candidate(
                key         = hit.name,
                raw_value   = ", ".join(c.raw for c in related),
                data_type   = DataType.STRING,
                category    = Category.RELATIONSHIPS,
                confidence  = hit.confidence,
                location    = f"{where} (relationship pattern)",
                description = f"Value relationship: {_DESCRIPTIONS[hit.name]}",
                source      = SourceKind.RELATIONSHIP,
            ))
            continue

        ctx = next(c for c in contexts if c.value == hit.value)
        if embedded:
            location = f"Embedded offset {ctx.column}"
        else:
            location = text_location(ctx.line, ctx.column)
        candidates.append(Candidate(
            key         = hit.name,
            raw_value   = ctx.raw,
            data_type   = _data_type(ctx.raw),
            category    = hit.category,
            confidence  = hit.confidence,
            location    = location,
            description = _DESCRIPTIONS[hit.name],
            source      = source,
        ))

    logger.debug("Statistical patterns: %d hits over %d numbers", len(candidates), len(contexts))
    return candidates


# ---------------------------------------------------------------------------
# Loose text
# ---------------------------------------------------------------------------

def detect_text_pairs(text: str, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """``key = number`` style pairs anywhere in free text, quoted or not."""
    candidates: list[Candidate] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        for pattern in _TEXT_PAIR_PATTERNS:
            for match in pattern.finditer(line):
                key, raw = match.group(1), match.group(2)
                category, confidence = score_entry(key, raw, "text", text, config)
                if confidence <= config.text_threshold:
                    continue
                candidates.append(Candidate(
                    key         = key,
                    raw_value   = raw,
                    data_type   = _data_type(raw),
                    category    = category,
                    confidence  = confidence,
                    location    = text_location(line_number, match.start(2) + 1),
                    description = describe(key, raw, category, "text"),
                    source      = SourceKind.TEXT,
                ))
    return candidates


def detect_loose_numbers(text: str, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """Bare integers in ``(0, 1_000_000)``, the weakest signal there is."""
    candidates: list[Candidate] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        for match in _RE_LOOSE_INT.finditer(line):
            raw = match.group()
            if not 0 < int(raw) < 1_000_000:
                continue
            column = match.start() + 1
            candidates.append(Candidate(
                key         = f"number_{line_number}_{column}",
                raw_value   = raw,
                data_type   = DataType.INTEGER,
                category    = Category.UNKNOWN,
                confidence  = config.text_threshold,
                location    = text_location(line_number, column),
                description = "Numeric value in text",
                source      = SourceKind.TEXT,
            ))
    return candidates


# ---------------------------------------------------------------------------
# Keyword phrase families
# ---------------------------------------------------------------------------

class PhrasePattern(NamedTuple):
    name:     str
    regex:    re.Pattern[str]
    bonus:    float
    category: Category


KEYWORD_PATTERNS: tuple[PhrasePattern, ...] = (
    PhrasePattern("nested_currency", re.compile(
        rf"(?:gold|coin|money|cash|credit).*?({INTEGER_PATTERN})"
        rf".*?(?:gold|coin|money|cash|credit).*?({INTEGER_PATTERN})", re.I),
        0.30, Category.CURRENCY),
    PhrasePattern("stat_block", re.compile(
        rf"(?:attack|damage|defense|armor|speed|agility).*?({INTEGER_PATTERN})", re.I),
        0.25, Category.STATS),
    PhrasePattern("coordinate_pair", re.compile(
        rf"\b(?:x|y|pos|position|coord)\b.*?({INTEGER_PATTERN})"
        rf".*?\b(?:x|y|pos|position|coord)\b.*?({INTEGER_PATTERN})", re.I),
        0.20, Category.POSITION),
    PhrasePattern("time_duration", re.compile(
        rf"(?:time|duration|cooldown|timer).*?({INTEGER_PATTERN})", re.I),
        0.15, Category.TIME),
    PhrasePattern("resource_count", re.compile(
        rf"(?:wood|stone|iron|food|oil|energy).*?({INTEGER_PATTERN})", re.I),
        0.25, Category.CURRENCY),
    PhrasePattern("building_level", re.compile(
        rf"(?:building|structure|tower|wall).*?(?:level|lvl).*?({INTEGER_PATTERN})", re.I),
        0.20, Category.PROGRESS),
    PhrasePattern("skill_level", re.compile(
        rf"(?:skill|ability|talent|mastery).*?(?:level|lvl).*?({INTEGER_PATTERN})", re.I),
        0.20, Category.PROGRESS),
    PhrasePattern("quest_progress", re.compile(
        rf"(?:quest|mission|task).*?(?:progress|complete|done).*?({INTEGER_PATTERN})", re.I),
        0.15, Category.ACHIEVEMENTS),
)


def phrase_confidence(bonus: float, value: float) -> float:
    confidence = clamp(0.5 + bonus)
    if value == 0:
        return clamp(confidence - 0.2)
    if 1 <= value <= 100:
        return clamp(confidence + 0.1)
    if 100 < value <= 10_000:
        return clamp(confidence + 0.15)
    if value > 10_000:
        return clamp(confidence + 0.1)
    return confidence


def detect_keyword_patterns(text: str, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """Apply every phrase family to each line; each numeric group is a candidate."""
    candidates: list[Candidate] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        for phrase in KEYWORD_PATTERNS:
            for match in phrase.regex.finditer(line):
                for group in range(1, (match.lastindex or 0) + 1):
                    raw = match.group(group)
                    confidence = phrase_confidence(phrase.bonus, float(raw))
                    if confidence <= config.keyword_pattern_threshold:
                        continue
                    candidates.append(Candidate(
                        key         = f"{phrase.name}_{group}",
                        raw_value   = raw,
                        data_type   = _data_type(raw),
                        category    = phrase.category,
                        confidence  = confidence,
                        location    = text_location(line_number, match.start(group) + 1),
                        description = f"Pattern: {phrase.name.replace('_', ' ')}",
                        source      = SourceKind.PATTERN,
                    ))
    return candidates


# ---------------------------------------------------------------------------
# Numbers near a keyword
# ---------------------------------------------------------------------------

CONTEXT_KEYWORDS: tuple[tuple[str, Category], ...] = (
    ("player",    Category.PROGRESS),
    ("character", Category.PROGRESS),
    ("level",     Category.PROGRESS),
    ("score",     Category.ACHIEVEMENTS),
    ("gold",      Category.CURRENCY),
    ("coin",      Category.CURRENCY),
    ("gem",       Category.PREMIUM_CURRENCY),
    ("diamond",   Category.PREMIUM_CURRENCY),
    ("health",    Category.HEALTH_ENERGY),
    ("mana",      Category.HEALTH_ENERGY),
    ("energy",    Category.HEALTH_ENERGY),
    ("attack",    Category.STATS),
    ("defense",   Category.STATS),
    ("speed",     Category.STATS),
    ("inventory", Category.INVENTORY),
    ("item",      Category.INVENTORY),
    ("weapon",    Category.INVENTORY),
    ("armor",     Category.INVENTORY),
)

_CONTEXT_REGEXES: tuple[tuple[str, Category, re.Pattern[str]], ...] = tuple(
    (word, category, re.compile(rf"\b{word}\b.{{0,{CONTEXT_CHARS}}}?({NUMBER_PATTERN})", re.I))
    for word, category in CONTEXT_KEYWORDS
)


def contextual_confidence(keyword: str, value: float) -> float:
    confidence = 0.6
    if keyword in ("gold", "coin"):
        if 100 <= value <= 1_000_000:
            confidence += 0.2
        if value % 10 == 0:
            confidence += 0.1
    elif keyword == "level":
        if 1 <= value <= 100:
            confidence += 0.3
        if value.is_integer():
            confidence += 0.1
    elif keyword == "health":
        if 1 <= value <= 1000:
            confidence += 0.2
        if value % 5 == 0:
            confidence += 0.1
    return clamp(confidence)


def detect_contextual(text: str, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """Numbers appearing within a short distance after a game keyword."""
    candidates: list[Candidate] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        for word, category, regex in _CONTEXT_REGEXES:
            for match in regex.finditer(line):
                raw = match.group(1)
                confidence = contextual_confidence(word, float(raw))
                if confidence <= config.contextual_threshold:
                    continue
                candidates.append(Candidate(
                    key         = f"{word}_value",
                    raw_value   = raw,
                    data_type   = _data_type(raw),
                    category    = category,
                    confidence  = confidence,
                    location    = text_location(line_number, match.start(1) + 1),
                    description = f"Value near '{word}' keyword",
                    source      = SourceKind.PATTERN,
                ))
    return candidates


"""
savescribe.keywords
===================
Key-name and value classification.

Keys are normalised (lower-cased, separators removed) and substring-matched
against curated keyword tables, one table per semantic category.  Each
category carries a base weight reflecting how distinctive its vocabulary
is.  Value ranges and surrounding context add smaller signals on top.
"""

from __future__ import annotations

import logging
import math
import re
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple

from savescribe.models import Category

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Keyword tables
# ---------------------------------------------------------------------------

CATEGORY_KEYWORDS: Mapping[Category, tuple[str, ...]] = MappingProxyType({
    Category.CURRENCY: (
        "gold", "coin", "money", "cash", "credits", "dollars", "bucks", "currency",
        "wallet", "balance", "funds", "wealth", "treasure", "loot", "reward",
        "gil", "zenny", "rupees", "bells", "simoleons", "caps", "souls",
    ),
    Category.PREMIUM_CURRENCY: (
        "gem", "diamond", "crystal", "jewel", "ruby", "emerald", "sapphire",
        "premium", "vip", "elite", "special", "rare", "legendary", "epic",
        "token", "ticket", "voucher", "coupon", "pass", "key",
    ),
    Category.EXPERIENCE: (
        "exp", "experience", "xp", "skill", "mastery", "proficiency",
        "knowledge", "wisdom", "learning", "training", "practice",
        "points", "score", "rating", "rank", "grade", "merit",
    ),
    Category.HEALTH_ENERGY: (
        "health", "hp", "life", "lives", "vitality", "stamina", "energy",
        "power", "fuel", "charge", "battery", "mana", "mp", "spirit",
        "endurance", "vigor", "strength", "force",
    ),
    Category.PROGRESS: (
        "level", "stage", "tier", "rank", "grade", "class", "division",
        "league", "bracket", "category", "group", "phase", "step",
        "progress", "advancement", "achievement", "milestone", "checkpoint",
    ),
    Category.INVENTORY: (
        "item", "weapon", "armor", "tool", "equipment", "gear", "outfit",
        "inventory", "storage", "bag", "backpack", "container", "chest",
        "quantity", "amount", "count", "number", "stack", "pile",
    ),
    Category.STATS: (
        "attack", "damage", "defense", "armor", "speed", "agility",
        "intelligence", "wisdom", "charisma", "luck", "critical",
        "accuracy", "evasion", "resistance", "immunity", "boost",
    ),
    Category.TIME: (
        "time", "timer", "countdown", "cooldown", "duration", "delay",
        "interval", "period", "session", "playtime", "uptime",
        "timestamp", "date", "schedule", "calendar", "clock",
    ),
    Category.ACHIEVEMENTS: (
        "achievement", "trophy", "medal", "badge", "award", "honor",
        "title", "unlock", "completion", "mastery", "perfect",
        "record", "best", "high", "maximum", "peak", "top",
    ),
    Category.SETTINGS: (
        "volume", "sound", "music", "sfx", "audio", "graphics", "quality",
        "language", "brightness", "sensitivity", "vibration", "notification",
        "difficulty", "subtitle", "fullscreen", "resolution", "enabled",
    ),
})

# Ordered strongest first; ties resolve to the earlier category.
CATEGORY_WEIGHTS: Mapping[Category, float] = MappingProxyType({
    Category.CURRENCY:         0.90,
    Category.PREMIUM_CURRENCY: 0.85,
    Category.EXPERIENCE:       0.80,
    Category.HEALTH_ENERGY:    0.75,
    Category.PROGRESS:         0.70,
    Category.INVENTORY:        0.65,
    Category.STATS:            0.60,
    Category.ACHIEVEMENTS:     0.55,
    Category.TIME:             0.50,
    Category.SETTINGS:         0.50,
})

EXTRA_MATCH_BONUS = 0.05

_CONTEXT_BONUSES: tuple[tuple[str, float], ...] = (
    ("player",  0.50),
    ("game",    0.40),
    ("save",    0.40),
    ("profile", 0.30),
    ("config",  0.30),
    ("setting", 0.30),
    ("user",    0.20),
)

_CONTEXT_CATEGORIES: tuple[tuple[str, Category], ...] = (
    ("inventory", Category.INVENTORY),
    ("stat",      Category.STATS),
    ("setting",   Category.SETTINGS),
    ("config",    Category.SETTINGS),
    ("audio",     Category.SETTINGS),
    ("video",     Category.SETTINGS),
    ("graphics",  Category.SETTINGS),
)

_DESCRIPTIONS: Mapping[Category, str] = MappingProxyType({
    Category.CURRENCY:         "Game currency",
    Category.PREMIUM_CURRENCY: "Premium currency",
    Category.EXPERIENCE:       "Experience points",
    Category.HEALTH_ENERGY:    "Health/Energy value",
    Category.PROGRESS:         "Progress indicator",
    Category.INVENTORY:        "Inventory item",
    Category.STATS:            "Character statistic",
    Category.ACHIEVEMENTS:     "Achievement data",
    Category.TIME:             "Time-related value",
    Category.SETTINGS:         "Game setting",
    Category.RELATIONSHIPS:    "Value relationship",
    Category.POSITION:         "Position value",
    Category.BINARY_DATA:      "Binary value",
})

# One alias set for detection and validation, compared case-insensitively.
BOOLEAN_TRUE  = frozenset({"true", "yes", "on", "enabled"})
BOOLEAN_FALSE = frozenset({"false", "no", "off", "disabled"})

_RE_KEY_SEPARATORS = re.compile(r"[_\-.\s]+")
_RE_NUMBER         = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def is_boolean_like(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if not isinstance(value, str):
        return False
    low = value.strip().lower()
    return low in BOOLEAN_TRUE or low in BOOLEAN_FALSE


def as_number(value: Any) -> float | None:
    """Numeric view of *value*: numbers as-is, numeric strings parsed."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and _RE_NUMBER.match(value.strip()):
        number = float(value.strip())
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def normalize_key(key: str) -> str:
    return _RE_KEY_SEPARATORS.sub("", key.lower())


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

class KeywordMatch(NamedTuple):
    category: Category
    score:    float
    matches:  tuple[str, ...]


_NO_MATCH = KeywordMatch(Category.UNKNOWN, 0.0, ())


def match_keywords(key: str) -> KeywordMatch:
    """
    Match *key* against every category table.  Matches accumulate: the best
    category weight plus a small bonus for each further matching keyword.
    """
    normalized = normalize_key(key)
    if not normalized:
        return _NO_MATCH

    best_category = Category.UNKNOWN
    best_weight   = 0.0
    matches: list[str] = []
    for category, words in CATEGORY_KEYWORDS.items():
        weight = CATEGORY_WEIGHTS[category]
        for word in words:
            if word in normalized:
                matches.append(word)
                if weight > best_weight:
                    best_category, best_weight = category, weight

    if not matches:
        return _NO_MATCH
    score = min(1.0, best_weight + EXTRA_MATCH_BONUS * (len(matches) - 1))
    return KeywordMatch(best_category, score, tuple(matches))


def range_score(value: Any) -> float:
    """
    Numeric plausibility of *value* as a game value, in ``[-0.4, 1.0]``.
    Zero and negative numbers are penalised; non-numeric values score 0.
    """
    if is_boolean_like(value):
        return 0.5
    number = as_number(value)
    if number is None:
        return 0.0
    if number < 0:
        return -0.4
    if number == 0:
        return -0.3

    if number < 1:
        score = 0.4
    elif number <= 100:
        score = 0.6
    elif number <= 1_000:
        score = 0.75
    elif number <= 100_000:
        score = 0.9
    elif number <= 10_000_000:
        score = 0.6
    else:
        score = 0.3

    if 1 <= number <= 10 and number.is_integer():
        score += 0.1
    if number >= 1_000 and number.is_integer() and int(number) % 1_000 == 0:
        score += 0.1
    return min(1.0, score)


def range_category(value: Any) -> Category:
    """Value-based fallback category when no keyword matched."""
    number = as_number(value)
    if number is None:
        return Category.UNKNOWN
    if 1 <= number <= 100:
        return Category.PROGRESS
    if 100 < number <= 1_000_000:
        return Category.CURRENCY
    if number > 1_000_000:
        return Category.ACHIEVEMENTS
    return Category.UNKNOWN


def context_score(context: str) -> float:
    low = context.lower()
    return min(1.0, sum(bonus for word, bonus in _CONTEXT_BONUSES if word in low))


def context_category(context: str) -> Category:
    low = context.lower()
    for word, category in _CONTEXT_CATEGORIES:
        if word in low:
            return category
    return Category.UNKNOWN


def classify(key: str, value: Any, context: str = "") -> tuple[Category, float]:
    """
    Return ``(category, base_confidence)`` for one key/value pair.
    The base confidence is the keyword signal alone; see
    :func:`savescribe.scoring.fuse` for the combined score.
    """
    match = match_keywords(key)
    if match.category is not Category.UNKNOWN:
        return match.category, match.score
    if is_boolean_like(value):
        return Category.SETTINGS, 0.0
    category = context_category(context)
    if category is Category.UNKNOWN:
        category = range_category(value)
    return category, 0.0


def describe(key: str, value: Any, category: Category, context: str = "") -> str:
    base = _DESCRIPTIONS.get(category, "Possible game value")
    where = f" in {context}" if context and context != "unknown" else ""
    hint = ""
    number = as_number(value)
    if number is not None:
        if 1 <= number <= 10:
            hint = " (small value, likely level/count)"
        elif 10 < number <= 100:
            hint = " (medium value, likely percentage/level)"
        elif 100 < number <= 10_000:
            hint = " (large value, likely currency/score)"
        elif number > 10_000:
            hint = " (very large value, likely high-tier currency/score)"
    return f"{base}: {key} = {value}{where}{hint}"

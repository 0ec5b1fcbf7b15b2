"""
savescribe.binary
=================
Value extraction from content that is not text.

Three independent passes run over the raw bytes:

* :func:`decode` slides fixed-width windows over the buffer and keeps every
  plausible integer or float, in both byte orders.
* :func:`extract_embedded` pulls printable ASCII runs out of the blob and
  looks for ``key=value`` pairs inside them.
* :func:`detect_blocks` / :func:`detect_repeats` look for runs of aligned
  little-endian int32 words shaped like common game records.

Candidate keys encode their own layout (``int32_12_le``) so the rewriter can
pack a new value back into the same bytes, see :func:`layout_for`.
"""

from __future__ import annotations

import logging
import math
import re
import struct
from collections import Counter
from enum import Enum
from typing import Any, Callable, Iterator

from savescribe.config import DEFAULT_CONFIG, EngineConfig
from savescribe.keywords import describe
from savescribe.models import Candidate, Category, DataType, NumericContext, SourceKind
from savescribe.patterns import NUMBER_PATTERN
from savescribe.scoring import binary_confidence, float_confidence, score_entry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------

class Layout(Enum):
    INT32  = "int32"
    INT64  = "int64"
    FLOAT  = "float"
    DOUBLE = "double"


_LAYOUT_FORMAT: dict[Layout, str] = {
    Layout.INT32:  "i",
    Layout.INT64:  "q",
    Layout.FLOAT:  "f",
    Layout.DOUBLE: "d",
}

_LAYOUT_SIZE: dict[Layout, int] = {
    Layout.INT32:  4,
    Layout.INT64:  8,
    Layout.FLOAT:  4,
    Layout.DOUBLE: 8,
}

# Offset step per layout: 4-byte windows catch misaligned values
_LAYOUT_STEP: dict[Layout, int] = {
    Layout.INT32:  1,
    Layout.INT64:  4,
    Layout.FLOAT:  1,
    Layout.DOUBLE: 4,
}

_FLOAT_LAYOUTS = frozenset({Layout.FLOAT, Layout.DOUBLE})

_BYTE_ORDERS: tuple[tuple[str, str], ...] = (("<", "le"), (">", "be"))
_ORDER_NAMES = {"le": "little-endian", "be": "big-endian"}

DEFAULT_LAYOUT = ("<i", 4)

_RE_LAYOUT_KEY   = re.compile(r"(int32|int64|float|double)_(\d+)_(le|be)")
_RE_ASCII_RUN    = re.compile(rb"[\x20-\x7e]{4,}")
_RE_EMBEDDED_KV  = re.compile(rf"(\w+)\s*[=:]\s*({NUMBER_PATTERN})")
_RE_NUMBER       = re.compile(NUMBER_PATTERN)

CONTEXT_CHARS = 50


def layout_key(layout: Layout, offset: int, order: str) -> str:
    return f"{layout.value}_{offset}_{order}"


def layout_for(key: str) -> tuple[str, int]:
    """
    ``(struct format, size)`` encoded in a binary candidate key.  Keys
    without a layout (block and repeat detectors) are little-endian int32.
    """
    match = _RE_LAYOUT_KEY.search(key)
    if match is None:
        return DEFAULT_LAYOUT
    layout = Layout(match.group(1))
    prefix = "<" if match.group(3) == "le" else ">"
    return prefix + _LAYOUT_FORMAT[layout], _LAYOUT_SIZE[layout]


def fmt_value(value: Any, layout: Layout) -> str:
    """Text form of a decoded value."""
    if layout in _FLOAT_LAYOUTS:
        return f"{value:.6g}"
    return str(value)


def _iter_values(data: bytes, fmt: str, size: int, step: int) -> Iterator[tuple[int, Any]]:
    """Yield ``(offset, value)`` for every window, one alignment phase at a time."""
    for phase in range(0, size, step):
        usable = (len(data) - phase) // size * size
        if usable <= 0:
            continue
        for i, (value,) in enumerate(struct.iter_unpack(fmt, data[phase:phase + usable])):
            yield phase + i * size, value


# ---------------------------------------------------------------------------
# Sliding-window decode
# ---------------------------------------------------------------------------

def _plausible(value: Any, layout: Layout, config: EngineConfig) -> bool:
    if layout in _FLOAT_LAYOUTS:
        return math.isfinite(value) and config.float_min <= value <= config.float_max
    return value != 0 and config.int_min <= value <= config.int_max


def decode(data: bytes, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """
    Interpret the buffer as int32, int64, float and double at every offset
    of the layout's step, in both byte orders.  Only values inside the
    plausibility window whose confidence exceeds the binary threshold are
    kept.
    """
    data = data[:config.binary_scan_limit]
    candidates: list[Candidate] = []

    for prefix, order in _BYTE_ORDERS:
        for layout in Layout:
            fmt  = prefix + _LAYOUT_FORMAT[layout]
            size = _LAYOUT_SIZE[layout]
            is_float = layout in _FLOAT_LAYOUTS

            for offset, value in _iter_values(data, fmt, size, _LAYOUT_STEP[layout]):
                if not _plausible(value, layout, config):
                    continue
                if is_float:
                    confidence = float_confidence(value, offset)
                else:
                    confidence = binary_confidence(value, offset, data)
                if confidence <= config.binary_threshold:
                    continue
                candidates.append(Candidate(
                    key         = layout_key(layout, offset, order),
                    raw_value   = fmt_value(value, layout),
                    data_type   = DataType.FLOAT if is_float else DataType.INTEGER,
                    category    = Category.BINARY_DATA,
                    confidence  = confidence,
                    location    = f"Offset {offset}",
                    description = f"{layout.value} ({_ORDER_NAMES[order]}) at offset {offset}",
                    source      = SourceKind.BINARY,
                ))

    logger.debug("Binary decode: %d candidates from %d bytes", len(candidates), len(data))
    return candidates


# ---------------------------------------------------------------------------
# Embedded strings
# ---------------------------------------------------------------------------

def ascii_runs(data: bytes) -> list[tuple[int, str]]:
    """``(offset, text)`` for every printable ASCII run of four or more bytes."""
    return [(m.start(), m.group().decode("ascii")) for m in _RE_ASCII_RUN.finditer(data)]


def extract_embedded(
    data:   bytes,
    config: EngineConfig = DEFAULT_CONFIG,
) -> tuple[list[Candidate], list[NumericContext]]:
    """
    Scan printable runs for ``key=value`` / ``key: value`` pairs.

    Returns the candidates together with every number found in the runs,
    ready for the statistical pass.  Numeric contexts from binary use
    ``line`` 0 and carry the absolute byte offset in ``column``.
    """
    runs = ascii_runs(data)
    corpus = "\n".join(text for _, text in runs)
    candidates: list[Candidate] = []
    contexts:   list[NumericContext] = []

    for start, text in runs:
        for match in _RE_EMBEDDED_KV.finditer(text):
            key, value = match.group(1), match.group(2)
            category, confidence = score_entry(key, value, "embedded", corpus, config)
            if confidence <= config.embedded_threshold:
                continue
            offset = start + match.start(2)
            candidates.append(Candidate(
                key         = key,
                raw_value   = value,
                data_type   = DataType.FLOAT if "." in value else DataType.INTEGER,
                category    = category,
                confidence  = confidence,
                location    = f"Embedded offset {offset}",
                description = describe(key, value, category, "embedded string"),
                source      = SourceKind.EMBEDDED,
            ))

        for match in _RE_NUMBER.finditer(text):
            contexts.append(NumericContext(
                value       = float(match.group()),
                line        = 0,
                column      = start + match.start(),
                text_before = text[max(0, match.start() - CONTEXT_CHARS):match.start()],
                text_after  = text[match.end():match.end() + CONTEXT_CHARS],
                raw         = match.group(),
            ))

    logger.debug("Embedded strings: %d runs, %d candidates", len(runs), len(candidates))
    return candidates, contexts


# ---------------------------------------------------------------------------
# Record-shaped blocks (aligned little-endian int32)
# ---------------------------------------------------------------------------

def _words(data: bytes) -> list[int]:
    usable = len(data) // 4 * 4
    return [value for (value,) in struct.iter_unpack("<i", data[:usable])]


def _block(
    key: str, value: int, data_type: DataType, category: Category,
    confidence: float, offset: int, description: str,
) -> Candidate:
    return Candidate(
        key         = key,
        raw_value   = str(value),
        data_type   = data_type,
        category    = category,
        confidence  = confidence,
        location    = f"Offset {offset}",
        description = description,
        source      = SourceKind.BINARY,
    )


def _player_block(w: list[int], offset: int) -> list[Candidate]:
    level, exp, gold, health = w
    if not (1 <= level <= 1000 and exp >= level * 100 and exp > level
            and 1 <= gold <= 100_000_000 and 1 <= health <= 10_000):
        return []
    return [
        _block("player_level", level, DataType.LEVEL, Category.PROGRESS, 0.7,
               offset, "Possible player level in data structure"),
        _block("player_experience", exp, DataType.EXPERIENCE, Category.EXPERIENCE, 0.6,
               offset + 4, "Possible player experience in data structure"),
        _block("player_gold", gold, DataType.CURRENCY, Category.CURRENCY, 0.8,
               offset + 8, "Possible player currency in data structure"),
        _block("player_health", health, DataType.INTEGER, Category.HEALTH_ENERGY, 0.6,
               offset + 12, "Possible player health in data structure"),
    ]


def _progress_block(w: list[int], offset: int) -> list[Candidate]:
    level, exp, next_exp, total = w
    if not (1 <= level <= 1000 and exp > 0 and next_exp > exp
            and total >= exp and next_exp <= total * 2):
        return []
    return [
        _block("current_level", level, DataType.LEVEL, Category.PROGRESS, 0.8,
               offset, "Current level in progress structure"),
        _block("current_experience", exp, DataType.EXPERIENCE, Category.EXPERIENCE, 0.7,
               offset + 4, "Current experience in progress structure"),
        _block("total_experience", total, DataType.EXPERIENCE, Category.EXPERIENCE, 0.6,
               offset + 12, "Total experience in progress structure"),
    ]


def _inventory_block(w: list[int], offset: int) -> list[Candidate]:
    item_id, quantity, durability = w
    if not (1 <= item_id <= 100_000 and 1 <= quantity <= 9_999
            and (0 <= durability <= 100 or durability == -1)):
        return []
    found = [_block("item_quantity", quantity, DataType.INTEGER, Category.INVENTORY, 0.6,
                    offset + 4, "Possible item quantity in inventory structure")]
    if 1 <= durability <= 100:
        found.append(_block("item_durability", durability, DataType.INTEGER, Category.INVENTORY, 0.5,
                            offset + 8, "Possible item durability in inventory structure"))
    return found


_STAT_NAMES = ("attack", "defense", "speed", "luck", "critical")


def _stats_block(w: list[int], offset: int) -> list[Candidate]:
    if not (all(1 <= s <= 1000 for s in w) and len(set(w)) >= 3):
        return []
    return [
        _block(f"stat_{name}", value, DataType.SCORE, Category.STATS, 0.5,
               offset + i * 4, f"Possible {name} stat in stats structure")
        for i, (name, value) in enumerate(zip(_STAT_NAMES, w))
    ]


_CURRENCY_NAMES = ("gold", "gems", "tokens")


def _currency_block(w: list[int], offset: int) -> list[Candidate]:
    if not (all(1 <= c <= 100_000_000 for c in w) and len(set(w)) >= 2):
        return []
    return [
        _block(f"currency_{name}", value, DataType.CURRENCY,
               Category.CURRENCY if i == 0 else Category.PREMIUM_CURRENCY, 0.7,
               offset + i * 4, f"Possible {name} in currency structure")
        for i, (name, value) in enumerate(zip(_CURRENCY_NAMES, w))
    ]


_BLOCK_DETECTORS: tuple[tuple[int, Callable[[list[int], int], list[Candidate]]], ...] = (
    (4, _player_block),
    (4, _progress_block),
    (3, _inventory_block),
    (5, _stats_block),
    (3, _currency_block),
)


def detect_blocks(data: bytes, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """Look for runs of aligned int32 words shaped like common game records."""
    words = _words(data[:config.binary_scan_limit])
    candidates: list[Candidate] = []
    for width, detector in _BLOCK_DETECTORS:
        for i in range(len(words) - width + 1):
            candidates.extend(detector(words[i:i + width], i * 4))
    logger.debug("Block detection: %d candidates", len(candidates))
    return candidates


def detect_repeats(data: bytes, config: EngineConfig = DEFAULT_CONFIG) -> list[Candidate]:
    """
    Aligned 4- and 8-byte values that occur at least three times.  Each is
    reported once, at its first offset.
    """
    data = data[:config.binary_scan_limit]
    candidates: list[Candidate] = []
    for layout in (Layout.INT32, Layout.INT64):
        fmt  = "<" + _LAYOUT_FORMAT[layout]
        size = _LAYOUT_SIZE[layout]
        counts: Counter[int] = Counter()
        first:  dict[int, int] = {}
        for offset, value in _iter_values(data, fmt, size, size):
            counts[value] += 1
            first.setdefault(value, offset)
        for value, occurrences in counts.items():
            if occurrences < 3 or not 1 <= value <= 1_000_000:
                continue
            offset = first[value]
            candidates.append(Candidate(
                key         = f"repeat_{layout_key(layout, offset, 'le')}",
                raw_value   = str(value),
                data_type   = DataType.INTEGER,
                category    = Category.BINARY_DATA,
                confidence  = 0.4,
                location    = f"Offset {offset}",
                description = f"Repeating {size}-byte value ({occurrences} occurrences)",
                source      = SourceKind.BINARY,
            ))
    logger.debug("Repeat detection: %d candidates", len(candidates))
    return candidates

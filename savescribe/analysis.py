"""
savescribe.analysis
===================
Analysis entry points.  All detection logic is reached from here.

How a file is analysed
----------------------
1.  The raw bytes are sniffed into one :class:`~savescribe.models.StructureKind`
    (JSON, XML, key/value, plain text, database, binary or unknown) and, when
    the content is text, decoded.

2.  The passes registered for that kind run one after another.  Each pass is
    an independent function of the input returning a list of candidates; a
    pass that raises is logged and contributes nothing::

        JSON        structured walk, statistical, contextual
        XML         structured walk, statistical
        key/value   structured walk, statistical
        plain text  text pairs, keyword phrases, contextual, statistical
        binary      sliding decode, embedded strings, record blocks, repeats
        database    same as binary
        unknown     binary passes, then text passes if the bytes decoded

3.  A small bonus is added when the file name looks like game data, then
    candidates are deduplicated, ordered by confidence and truncated.

Analysis is read-only and deterministic: the same bytes always produce the
same list in the same order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from savescribe.binary import decode, detect_blocks, detect_repeats, extract_embedded
from savescribe.config import DEFAULT_CONFIG, EngineConfig
from savescribe.keywords import describe, is_boolean_like
from savescribe.models import (
    AnalysisResult, Candidate, DataType, DetectedStructure, SourceKind, StructureKind,
)
from savescribe.patterns import (
    detect_candidates, detect_contextual, detect_keyword_patterns,
    detect_loose_numbers, detect_text_pairs, extract_numbers,
)
from savescribe.ranking import rank
from savescribe.scoring import boost, file_name_bonus, score_entry
from savescribe.sniffer import classify, sniff
from savescribe.storage import LOCAL, FileAccess
from savescribe.walker import leaf_text, walk

logger = logging.getLogger(__name__)

_RE_INT_TEXT   = re.compile(r"[+-]?\d+")
_RE_FLOAT_TEXT = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?\d+[eE][+-]?\d+")


# ---------------------------------------------------------------------------
# Pass input
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class PassInput:
    """Everything a detection pass may look at."""
    data:      bytes
    text:      str
    structure: DetectedStructure
    config:    EngineConfig = DEFAULT_CONFIG


_STRUCTURED_SOURCES: dict[StructureKind, SourceKind] = {
    StructureKind.JSON:      SourceKind.JSON,
    StructureKind.XML:       SourceKind.XML,
    StructureKind.KEY_VALUE: SourceKind.KEY_VALUE,
}


def _data_type(value: Any) -> DataType:
    if isinstance(value, bool) or is_boolean_like(value):
        return DataType.BOOLEAN
    if isinstance(value, int):
        return DataType.INTEGER
    if isinstance(value, float):
        return DataType.FLOAT
    text = str(value).strip()
    if _RE_INT_TEXT.fullmatch(text):
        return DataType.INTEGER
    if _RE_FLOAT_TEXT.fullmatch(text):
        return DataType.FLOAT
    return DataType.STRING


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------

def _structured_pass(src: PassInput) -> list[Candidate]:
    """Score every leaf the walker finds for this structure."""
    source = _STRUCTURED_SOURCES[src.structure.kind]
    config = src.config
    candidates: list[Candidate] = []
    for entry in walk(src.structure, src.text, config.max_depth):
        data_type = _data_type(entry.value)
        raw = leaf_text(entry.value)
        category, confidence = score_entry(entry.key, entry.value, entry.context, src.text, config)
        threshold = config.boolean_threshold if data_type is DataType.BOOLEAN else config.entry_threshold
        if confidence <= threshold:
            continue
        candidates.append(Candidate(
            key         = entry.key,
            raw_value   = raw,
            data_type   = data_type,
            category    = category,
            confidence  = confidence,
            location    = entry.path,
            description = describe(entry.key, raw, category, entry.context),
            source      = source,
        ))
    logger.debug("Structured walk (%s): %d candidates", src.structure.kind.value, len(candidates))
    return candidates


def _statistical_pass(src: PassInput) -> list[Candidate]:
    return detect_candidates(extract_numbers(src.text), src.config)


def _contextual_pass(src: PassInput) -> list[Candidate]:
    return detect_contextual(src.text, src.config)


def _keyword_pattern_pass(src: PassInput) -> list[Candidate]:
    return detect_keyword_patterns(src.text, src.config)


def _text_pass(src: PassInput) -> list[Candidate]:
    """Loose ``key: value`` pairs, plus bare numbers where no pair was found."""
    pairs = detect_text_pairs(src.text, src.config)
    taken = {c.location for c in pairs}
    loose = [c for c in detect_loose_numbers(src.text, src.config) if c.location not in taken]
    return pairs + loose


def _decode_pass(src: PassInput) -> list[Candidate]:
    return decode(src.data, src.config)


def _embedded_pass(src: PassInput) -> list[Candidate]:
    candidates, contexts = extract_embedded(src.data, src.config)
    return candidates + detect_candidates(contexts, src.config, SourceKind.EMBEDDED)


def _block_pass(src: PassInput) -> list[Candidate]:
    return detect_blocks(src.data, src.config)


def _repeat_pass(src: PassInput) -> list[Candidate]:
    return detect_repeats(src.data, src.config)


Pass = Callable[[PassInput], list[Candidate]]

_BINARY_PASSES: tuple[Pass, ...] = (_decode_pass, _embedded_pass, _block_pass, _repeat_pass)
_TEXT_PASSES: tuple[Pass, ...] = (
    _text_pass, _keyword_pattern_pass, _contextual_pass, _statistical_pass,
)

PASSES: dict[StructureKind, tuple[Pass, ...]] = {
    StructureKind.JSON:       (_structured_pass, _statistical_pass, _contextual_pass),
    StructureKind.XML:        (_structured_pass, _statistical_pass),
    StructureKind.KEY_VALUE:  (_structured_pass, _statistical_pass),
    StructureKind.PLAIN_TEXT: _TEXT_PASSES,
    StructureKind.BINARY:     _BINARY_PASSES,
    StructureKind.DATABASE:   _BINARY_PASSES,
    StructureKind.UNKNOWN:    _BINARY_PASSES + _TEXT_PASSES,
}


def _run_pass(detector: Pass, src: PassInput) -> list[Candidate]:
    try:
        return detector(src)
    except Exception:
        logger.exception("Detection pass %s failed", detector.__name__)
        return []


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def classify_structure(data: bytes) -> DetectedStructure:
    return classify(data)


def analyse_bytes(
    data:   bytes,
    name:   str = "",
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnalysisResult:
    """
    Analyse raw bytes held in memory.  *name* is only used for the file-name
    bonus and for reporting.
    """
    if not data:
        logger.debug("Empty input %s", name or "<bytes>")
        return AnalysisResult(DetectedStructure.binary(), None, [], name)

    structure, document = sniff(data)
    src = PassInput(data, document.text if document else "", structure, config)

    candidates: list[Candidate] = []
    for detector in PASSES[structure.kind]:
        candidates.extend(_run_pass(detector, src))

    candidates = boost(candidates, file_name_bonus(name, config))
    ranked = rank(candidates, config.max_candidates)
    logger.info(
        "Analysed %s: %s, %d candidates (%d before ranking)",
        name or "<bytes>", structure.kind.value, len(ranked), len(candidates),
    )
    return AnalysisResult(
        structure  = structure,
        encoding   = document.display_encoding if document else None,
        candidates = ranked,
        name       = name,
    )


def analyze(
    path:   Path | str,
    access: FileAccess | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> AnalysisResult:
    """
    Analyse the file at *path*.  A missing or unreadable file gives an empty
    binary result rather than an error.
    """
    access = access or LOCAL
    name = str(path)
    if not access.exists(name):
        logger.warning("File not found: %s", name)
        return AnalysisResult(DetectedStructure.binary(), None, [], name)
    if not access.can_read(name):
        logger.warning("File not readable: %s", name)
        return AnalysisResult(DetectedStructure.binary(), None, [], name)
    try:
        data = access.read_bytes(name)
    except OSError as exc:
        logger.warning("Could not read %s: %s", name, exc)
        return AnalysisResult(DetectedStructure.binary(), None, [], name)
    return analyse_bytes(data, name, config)

"""
savescribe.config
=================
Tunable weights and thresholds for the detection engine.

The numbers here were picked by hand from a large pile of scattered
heuristics.  They are a reasonable starting point, not a calibrated model:
relative ordering of candidates matters more than the absolute scores.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for analysis and scoring.  Immutable once built."""

    # Fusion weights (keyword carries the largest share)
    keyword_weight:   float = 0.55
    range_weight:     float = 0.30
    context_weight:   float = 0.15

    # Emission thresholds per pass
    entry_threshold:        float = 0.2
    boolean_threshold:      float = 0.3
    text_threshold:         float = 0.3
    embedded_threshold:     float = 0.4
    binary_threshold:       float = 0.3
    pattern_threshold:      float = 0.5
    relationship_threshold: float = 0.6
    keyword_pattern_threshold: float = 0.4
    contextual_threshold:   float = 0.5

    # File-name context bonus
    file_name_bonus:     float = 0.05
    file_name_bonus_cap: float = 0.15

    # Binary plausibility window
    int_min:   int   = 1
    int_max:   int   = 100_000_000
    float_min: float = 0.0
    float_max: float = 1_000_000.0

    # Statistical detection
    min_pattern_values: int = 3

    # Output and limits
    max_candidates:    int = 150
    max_depth:         int = 64
    binary_scan_limit: int = 1_048_576


DEFAULT_CONFIG = EngineConfig()


def load_config(path: Path | str | None = None) -> EngineConfig:
    """
    Build an :class:`EngineConfig` from a JSON object of overrides.

    Unknown keys are ignored.  A missing or unreadable file falls back to
    :data:`DEFAULT_CONFIG` with a warning.
    """
    if path is None:
        return DEFAULT_CONFIG
    path = Path(path)
    if not path.exists():
        logger.warning("Config not found: %s", path)
        return DEFAULT_CONFIG
    try:
        overrides = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Failed to load config %s: %s", path, exc)
        return DEFAULT_CONFIG
    if not isinstance(overrides, dict):
        logger.warning("Config %s is not a JSON object; using defaults", path)
        return DEFAULT_CONFIG

    known = {f.name for f in fields(EngineConfig)}
    accepted = {}
    for name, value in overrides.items():
        if name not in known:
            logger.warning("Ignoring unknown config key %r", name)
            continue
        default = getattr(DEFAULT_CONFIG, name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("Ignoring non-numeric value for %r", name)
            continue
        accepted[name] = type(default)(value)

    logger.debug("Loaded %d config overrides from %s", len(accepted), path)
    return replace(DEFAULT_CONFIG, **accepted)

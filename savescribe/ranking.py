"""
savescribe.ranking
==================
Merge candidates from every pass into one ordered list.
"""

from __future__ import annotations

import logging
from typing import Iterable

from savescribe.models import Candidate

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 150


def deduplicate(candidates: Iterable[Candidate]) -> list[Candidate]:
    """Drop repeats of ``(key, raw_value, location)``; the first one wins."""
    seen: set[tuple[str, str, str]] = set()
    unique: list[Candidate] = []
    for candidate in candidates:
        if candidate.identity in seen:
            continue
        seen.add(candidate.identity)
        unique.append(candidate)
    return unique


def rank(candidates: Iterable[Candidate], limit: int = DEFAULT_LIMIT) -> list[Candidate]:
    """
    Deduplicate, then order by descending confidence.  The sort is stable,
    so equal scores keep the order the passes produced them in.
    """
    unique = deduplicate(candidates)
    ordered = sorted(unique, key=lambda c: c.confidence, reverse=True)
    if len(ordered) > limit:
        logger.debug("Keeping top %d of %d candidates", limit, len(ordered))
    return ordered[:limit]

"""
savescribe.profiles
===================
Modification profiles: a named list of confirmed edits that can be saved
as JSON, shared, loaded again and replayed against another copy of the
same file.

Each edit remembers the candidate it came from (key, location, source,
type) together with the value it replaces, so replaying it goes through
:func:`~savescribe.rewriter.rewrite_bytes` exactly like an interactive
rewrite.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, NamedTuple

from savescribe.models import Candidate, Category, DataType, SourceKind
from savescribe.rewriter import rewrite_bytes, validate
from savescribe.storage import LOCAL, FileAccess

logger = logging.getLogger(__name__)

PROFILE_VERSION = "1.0"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(slots=True)
class Modification:
    """One confirmed edit: *original_value* at *location* becomes *new_value*."""
    key:            str
    location:       str
    source:         SourceKind
    data_type:      DataType
    original_value: str
    new_value:      str
    description:    str = ""

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> Modification:
        """Build from a candidate edited with :meth:`Candidate.with_edit`."""
        original = candidate.original_value if candidate.original_value is not None else candidate.raw_value
        return cls(
            key=candidate.key,
            location=candidate.location,
            source=candidate.source,
            data_type=candidate.data_type,
            original_value=original,
            new_value=candidate.raw_value,
            description=candidate.description,
        )

    def to_candidate(self) -> Candidate:
        """The candidate as it stands in the unmodified file."""
        return Candidate(
            key=self.key,
            raw_value=self.original_value,
            data_type=self.data_type,
            category=Category.UNKNOWN,
            confidence=1.0,
            location=self.location,
            description=self.description,
            source=self.source,
        )


@dataclass(slots=True)
class ModificationProfile:
    name:          str
    modifications: list[Modification] = field(default_factory=list)
    description:   str = ""
    game:          str = ""
    target_file:   str = ""
    created:       str = ""
    version:       str = PROFILE_VERSION


class ProfileOutcome(NamedTuple):
    data:    bytes
    applied: int
    failed:  list[Modification]


def build_profile(
    name:        str,
    candidates:  Iterable[Candidate],
    description: str = "",
    game:        str = "",
    target_file: str = "",
) -> ModificationProfile:
    """Collect edited candidates into a new profile stamped with the current time."""
    return ModificationProfile(
        name=name,
        modifications=[Modification.from_candidate(c) for c in candidates],
        description=description,
        game=game,
        target_file=target_file,
        created=datetime.now().strftime(DATE_FORMAT),
    )


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def profile_to_dict(profile: ModificationProfile) -> dict[str, Any]:
    return {
        "name": profile.name,
        "description": profile.description,
        "game": profile.game,
        "target_file": profile.target_file,
        "version": profile.version,
        "created": profile.created,
        "modifications": [
            {
                "key": m.key,
                "location": m.location,
                "source": m.source.value,
                "type": m.data_type.value,
                "original_value": m.original_value,
                "new_value": m.new_value,
                "description": m.description,
            }
            for m in profile.modifications
        ],
    }


def profile_from_dict(payload: dict[str, Any]) -> ModificationProfile:
    """
    Inverse of :func:`profile_to_dict`.  Raises ``KeyError``, ``TypeError``
    or ``ValueError`` for a payload that is not a profile.
    """
    modifications = [
        Modification(
            key=str(item["key"]),
            location=str(item["location"]),
            source=SourceKind(item["source"]),
            data_type=DataType(item["type"]),
            original_value=str(item["original_value"]),
            new_value=str(item["new_value"]),
            description=str(item.get("description", "")),
        )
        for item in payload["modifications"]
    ]
    return ModificationProfile(
        name=str(payload["name"]),
        modifications=modifications,
        description=str(payload.get("description", "")),
        game=str(payload.get("game", "")),
        target_file=str(payload.get("target_file", "")),
        created=str(payload.get("created", "")),
        version=str(payload.get("version", PROFILE_VERSION)),
    )


def export_profile(profile: ModificationProfile, path: Path) -> None:
    """Write *profile* as indented JSON."""
    path.write_text(json.dumps(profile_to_dict(profile), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported profile %r (%d edits) → %s", profile.name, len(profile.modifications), path)


def load_profile(path: Path | str) -> ModificationProfile | None:
    """Read a profile written by :func:`export_profile`.  Returns ``None`` if it cannot be used."""
    path = Path(path)
    if not path.exists():
        logger.warning("Profile not found: %s", path)
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Failed to load profile %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("Profile %s is not a JSON object", path)
        return None
    try:
        profile = profile_from_dict(payload)
    except (KeyError, TypeError, ValueError) as exc:
        logger.error("Malformed profile %s: %s", path, exc)
        return None
    logger.debug("Loaded profile %r with %d edits", profile.name, len(profile.modifications))
    return profile


def list_profiles(directory: Path | str) -> list[ModificationProfile]:
    """Every loadable ``*.json`` profile in *directory*, by file name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    profiles = (load_profile(p) for p in sorted(directory.glob("*.json")))
    return [p for p in profiles if p is not None]


# ---------------------------------------------------------------------------
# Validation and replay
# ---------------------------------------------------------------------------

def validate_profile(profile: ModificationProfile) -> list[str]:
    """Problems that would stop *profile* from applying cleanly; empty when none."""
    errors = []
    if not profile.name.strip():
        errors.append("Profile name cannot be empty")
    if not profile.modifications:
        errors.append("No modifications specified")
    for index, m in enumerate(profile.modifications):
        if not m.key.strip():
            errors.append(f"Modification {index}: key cannot be empty")
        if not m.new_value.strip():
            errors.append(f"Modification {index}: new value cannot be empty")
        elif not validate(m.new_value.strip(), m.data_type):
            errors.append(f"Modification {index}: {m.new_value!r} is not a valid {m.data_type.scalar.value}")
        if m.source is SourceKind.RELATIONSHIP:
            errors.append(f"Modification {index}: relationship values cannot be rewritten")
    return errors


def apply_profile(data: bytes, profile: ModificationProfile) -> ProfileOutcome:
    """
    Apply every edit of *profile* to *data* in order.  An edit that cannot
    be applied is skipped and reported in ``failed``; the rest still apply.
    """
    failed = []
    applied = 0
    for m in profile.modifications:
        updated = rewrite_bytes(data, m.to_candidate(), m.new_value)
        if updated is None:
            logger.warning("Profile %r: could not apply %s -> %s", profile.name, m.key, m.new_value)
            failed.append(m)
            continue
        data = updated
        applied += 1
    logger.info("Profile %r: %d applied, %d failed", profile.name, applied, len(failed))
    return ProfileOutcome(data, applied, failed)


def apply_profile_file(
    path:    str,
    profile: ModificationProfile,
    access:  FileAccess | None = None,
) -> ProfileOutcome | None:
    """
    Apply *profile* to the file at *path* and write the result if anything
    changed.  Returns ``None`` without touching the file when it is missing,
    not writable or named differently from the profile's target file.
    """
    access = access or LOCAL
    if not access.exists(path) or not access.can_write(path):
        logger.warning("File not writable: %s", path)
        return None
    if profile.target_file and Path(path).name != profile.target_file:
        logger.warning("Profile %r targets %s, not %s", profile.name, profile.target_file, Path(path).name)
        return None
    try:
        outcome = apply_profile(access.read_bytes(path), profile)
        if outcome.applied:
            access.write_bytes(path, outcome.data)
    except OSError as exc:
        logger.warning("Applying profile to %s failed: %s", path, exc)
        return None
    return outcome

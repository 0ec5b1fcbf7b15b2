"""
savescribe.compare
==================
Value-level differences between two versions of the same file.

Structured formats are compared leaf by leaf using the same walkers the
detection passes use, so a change is reported at the location a candidate
for that value would carry.  Binary content is compared as runs of changed
bytes, plain text line by line.
"""

from __future__ import annotations

import difflib
import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator

from savescribe.models import DetectedStructure, StructureKind
from savescribe.sniffer import decode_text, load_json, sniff
from savescribe.storage import LOCAL, FileAccess
from savescribe.walker import leaf_text, walk_json, walk_key_value, walk_xml

logger = logging.getLogger(__name__)

# Longest run of changed bytes shown in full
MAX_HEX_BYTES = 16


class ChangeKind(Enum):
    CHANGED   = "changed"
    ADDED     = "added"
    REMOVED   = "removed"
    STRUCTURE = "structure"


@dataclass(frozen=True, slots=True)
class ValueChange:
    kind:        ChangeKind
    location:    str
    old_value:   str | None
    new_value:   str | None
    description: str = ""

    def __str__(self) -> str:
        if self.kind is ChangeKind.CHANGED:
            return f"{self.location}: '{self.old_value}' -> '{self.new_value}'"
        if self.kind is ChangeKind.ADDED:
            return f"{self.location}: added '{self.new_value}'"
        if self.kind is ChangeKind.REMOVED:
            return f"{self.location}: removed '{self.old_value}'"
        return f"{self.location}: structure modified"


# ---------------------------------------------------------------------------
# Leaf maps
# ---------------------------------------------------------------------------

def _json_leaves(text: str) -> dict[str, str]:
    return {e.path: leaf_text(e.value) for e in walk_json(text)}


def _key_value_leaves(text: str) -> dict[str, str]:
    # Later duplicates win, as when the file is loaded
    return {e.key: str(e.value) for e in walk_key_value(text)}


def _xml_leaves(text: str) -> dict[str, str]:
    seen: Counter[str] = Counter()
    leaves: dict[str, str] = {}
    for entry in walk_xml(text):
        name = f"{entry.context}: {entry.key}"
        seen[name] += 1
        if seen[name] > 1:
            name = f"{name} #{seen[name]}"
        leaves[name] = str(entry.value)
    return leaves


def _diff_leaves(old: dict[str, str], new: dict[str, str], noun: str) -> list[ValueChange]:
    changes = [
        ValueChange(ChangeKind.REMOVED, name, value, None, f"{noun} '{name}' was removed")
        for name, value in old.items() if name not in new
    ]
    for name, value in new.items():
        if name not in old:
            changes.append(ValueChange(ChangeKind.ADDED, name, None, value, f"{noun} '{name}' was added"))
        elif old[name] != value:
            changes.append(ValueChange(ChangeKind.CHANGED, name, old[name], value, f"{noun} '{name}' changed"))
    return changes


LEAF_READERS: dict[StructureKind, tuple[Callable[[str], dict[str, str]], str]] = {
    StructureKind.JSON:      (_json_leaves, "Key"),
    StructureKind.KEY_VALUE: (_key_value_leaves, "Property"),
    StructureKind.XML:       (_xml_leaves, "Node"),
}


# ---------------------------------------------------------------------------
# Binary
# ---------------------------------------------------------------------------

def _hex(chunk: bytes) -> str:
    if len(chunk) > MAX_HEX_BYTES:
        return chunk[:MAX_HEX_BYTES].hex(" ") + f" ... ({len(chunk)} bytes)"
    return chunk.hex(" ")


def _changed_runs(original: bytes, modified: bytes) -> Iterator[tuple[int, int]]:
    """``(start, end)`` of every run of differing bytes over the common length."""
    start = -1
    for i, (a, b) in enumerate(zip(original, modified)):
        if a != b:
            if start < 0:
                start = i
        elif start >= 0:
            yield start, i
            start = -1
    if start >= 0:
        yield start, min(len(original), len(modified))


def _diff_binary(original: bytes, modified: bytes) -> list[ValueChange]:
    changes = []
    if len(original) != len(modified):
        changes.append(ValueChange(
            ChangeKind.STRUCTURE, "File size",
            f"{len(original)} bytes", f"{len(modified)} bytes", "File size changed",
        ))
    for start, end in _changed_runs(original, modified):
        changes.append(ValueChange(
            ChangeKind.CHANGED, f"Offset {start}-{end - 1}",
            _hex(original[start:end]), _hex(modified[start:end]),
            f"{end - start} bytes changed at offset {start}",
        ))
    return changes


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def _diff_lines(original: str, modified: str) -> list[ValueChange]:
    a, b = original.splitlines(), modified.splitlines()
    changes = []
    matcher = difflib.SequenceMatcher(None, a, b, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        paired = min(i2 - i1, j2 - j1) if tag == "replace" else 0
        for k in range(paired):
            changes.append(ValueChange(
                ChangeKind.CHANGED, f"Line {i1 + k + 1}", a[i1 + k], b[j1 + k],
                f"Line {i1 + k + 1} was modified",
            ))
        for i in range(i1 + paired, i2):
            changes.append(ValueChange(
                ChangeKind.REMOVED, f"Line {i + 1}", a[i], None, f"Line {i + 1} was removed",
            ))
        for j in range(j1 + paired, j2):
            changes.append(ValueChange(
                ChangeKind.ADDED, f"Line {j + 1}", None, b[j], f"Line {j + 1} was added",
            ))
    return changes


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def compare_bytes(
    original:  bytes,
    modified:  bytes,
    structure: DetectedStructure | None = None,
) -> list[ValueChange]:
    """
    List the differences between *original* and *modified*.

    *structure* is the format of the original; it is sniffed when omitted.
    Modified content that can no longer be read in that format is reported
    as a single ``STRUCTURE`` change.
    """
    if original == modified:
        return []
    if structure is None:
        structure = sniff(original)[0]

    old_doc = decode_text(original)
    new_doc = decode_text(modified)
    kind = structure.kind
    if kind in (StructureKind.BINARY, StructureKind.DATABASE) or old_doc is None:
        return _diff_binary(original, modified)
    if new_doc is None:
        return [ValueChange(
            ChangeKind.STRUCTURE, "File structure", None, None,
            "Modified content is no longer text",
        )]

    reader = LEAF_READERS.get(kind)
    if reader is None:
        return _diff_lines(old_doc.text, new_doc.text)
    if kind is StructureKind.JSON and load_json(new_doc.text) is None:
        return [ValueChange(
            ChangeKind.STRUCTURE, "File structure", None, None,
            "Modified content no longer parses as JSON",
        )]
    leaves, noun = reader
    changes = _diff_leaves(leaves(old_doc.text), leaves(new_doc.text), noun)
    logger.debug("Compared %s content: %d changes", kind.value, len(changes))
    return changes


def compare_files(
    original_path: str,
    modified_path: str,
    access:        FileAccess | None = None,
) -> list[ValueChange]:
    """:func:`compare_bytes` over two files.  Raises ``FileNotFoundError`` if either is missing."""
    access = access or LOCAL
    for path in (original_path, modified_path):
        if not access.exists(path):
            raise FileNotFoundError(path)
    return compare_bytes(access.read_bytes(original_path), access.read_bytes(modified_path))


def summarise(changes: list[ValueChange], original_name: str = "", modified_name: str = "") -> str:
    """Human-readable report of *changes*."""
    lines = ["File Comparison Summary", "=" * 23]
    if original_name:
        lines.append(f"Original: {original_name}")
    if modified_name:
        lines.append(f"Modified: {modified_name}")
    lines.append(f"Changes: {len(changes)}")
    lines.append("")
    if not changes:
        lines.append("No differences found.")
    for change in changes:
        lines.append(f"* {change.description}")
        lines.append(f"  {change}")
    return "\n".join(lines) + "\n"

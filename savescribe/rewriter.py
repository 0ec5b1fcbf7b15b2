"""
savescribe.rewriter
===================
Write one confirmed value back into its file.

Every rewrite goes through the same steps::

    validate  ->  locate  ->  convert  ->  splice  ->  commit

The first four are pure (:func:`rewrite_bytes` works on bytes in memory);
only the commit touches the file, through a :class:`~savescribe.storage.FileAccess`
that replaces the file in one step.  A failure anywhere leaves the file as
it was and is reported as ``False``.
"""

from __future__ import annotations

import json
import logging
import math
import re
import struct
from collections import deque
from typing import Any, Callable
from xml.sax.saxutils import escape

from savescribe.binary import layout_for
from savescribe.keywords import BOOLEAN_FALSE, BOOLEAN_TRUE
from savescribe.models import Candidate, DataType, SourceKind
from savescribe.sniffer import decode_text, load_json, split_pair
from savescribe.storage import LOCAL, FileAccess
from savescribe.walker import json_path_tokens, leaf_text

logger = logging.getLogger(__name__)

_RE_INTEGER = re.compile(r"[+-]?\d+", re.ASCII)
_RE_FLOAT   = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)

_RE_LINE        = re.compile(r"^Line (\d+)(?: \[(.*)\])?$")
_RE_LINE_COLUMN = re.compile(r"^Line (\d+), column (\d+)$")
_RE_XML_LOC     = re.compile(r"^(attribute|element): (\w+) \(char (\d+)\)$")
_RE_OFFSET      = re.compile(r"^Offset (\d+)$")
_RE_EMBEDDED    = re.compile(r"^Embedded offset (\d+)$")

_XML_ATTR_ENTITIES = {'"': "&quot;", "'": "&apos;"}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate(value: str, data_type: DataType) -> bool:
    """
    Whether *value* is acceptable text for *data_type*.

    >>> validate("12.5", DataType.INTEGER), validate("12", DataType.FLOAT)
    (False, True)
    """
    scalar = data_type.scalar
    if scalar is DataType.INTEGER:
        return _RE_INTEGER.fullmatch(value) is not None
    if scalar is DataType.FLOAT:
        return _RE_FLOAT.fullmatch(value) is not None and math.isfinite(float(value))
    if scalar is DataType.BOOLEAN:
        low = value.strip().lower()
        return low in BOOLEAN_TRUE or low in BOOLEAN_FALSE
    return True


def _target(candidate: Candidate) -> str:
    """The text currently in the file for this candidate."""
    return candidate.original_value if candidate.original_value is not None else candidate.raw_value


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def _edit_text(data: bytes, edit: Callable[[str], str | None]) -> bytes | None:
    document = decode_text(data)
    if document is None:
        logger.warning("Content is not text; cannot rewrite")
        return None
    updated = edit(document.text)
    if updated is None:
        return None
    return document.encode(updated)


def _literal_pattern(target: str) -> re.Pattern[str]:
    return re.compile(r"(?<![\w.])" + re.escape(target) + r"(?!\w|\.\d)")


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _follow_path(doc: Any, path: str) -> tuple[Any, Any] | None:
    """``(container, key_or_index)`` addressed by a dotted path, if it resolves."""
    tokens = json_path_tokens(path)
    if tokens is None:
        return None
    node = doc
    for token in tokens[:-1]:
        node = _child(node, token)
        if node is None:
            return None
    last = tokens[-1]
    if _child(node, last) is None:
        return None
    return node, last


def _child(node: Any, token: Any) -> Any:
    if isinstance(token, int):
        if isinstance(node, list) and 0 <= token < len(node):
            return node[token]
        return None
    if isinstance(node, dict) and token in node:
        return node[token]
    return None


def _holds(slot: tuple[Any, Any] | None, target: str) -> bool:
    if slot is None:
        return False
    container, key = slot
    value = container[key]
    return not isinstance(value, (dict, list)) and leaf_text(value) == target


def _find_key(doc: Any, key: str, target: str) -> tuple[Any, Any] | None:
    """Breadth-first search for the first object holding *key* with the text *target*."""
    queue: deque[Any] = deque([doc])
    while queue:
        node = queue.popleft()
        if isinstance(node, dict):
            if key in node and _holds((node, key), target):
                return node, key
            queue.extend(node.values())
        elif isinstance(node, list):
            queue.extend(node)
    return None


def _convert_like(old: Any, text: str) -> Any:
    if isinstance(old, bool):
        return text.strip().lower() in BOOLEAN_TRUE
    if isinstance(old, int):
        return int(text) if _RE_INTEGER.fullmatch(text) else float(text)
    if isinstance(old, float):
        return float(text)
    return text


def _rewrite_json(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    def edit(text: str) -> str | None:
        doc = load_json(text)
        if doc is None:
            logger.warning("File no longer parses as JSON")
            return None
        target = _target(candidate)
        slot = _follow_path(doc, candidate.location)
        if not _holds(slot, target):
            slot = _find_key(doc, candidate.key, target)
        if slot is None:
            logger.warning("JSON key %r with value %r not found", candidate.key, target)
            return None
        container, key = slot
        container[key] = _convert_like(container[key], new_value)
        return json.dumps(doc, indent=2, ensure_ascii=False)
    return _edit_text(data, edit)


# ---------------------------------------------------------------------------
# Key / value
# ---------------------------------------------------------------------------

def _replace_pair_value(line: str, new_value: str) -> str:
    body = line.rstrip("\r\n")
    ending = line[len(body):]
    sep = body.index("=") if "=" in body else body.index(":")
    after = body[sep + 1:]
    lead = after[:len(after) - len(after.lstrip())]
    stripped = after.strip()
    trail = after[len(lead) + len(stripped):]
    return body[:sep + 1] + lead + new_value + trail + ending


def _rewrite_key_value(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    match = _RE_LINE.match(candidate.location)
    section = (match.group(2) or "") if match else ""
    key = candidate.key
    if section and key.startswith(section + "."):
        key = key[len(section) + 1:]

    def holds_key(line: str) -> bool:
        pair = split_pair(line)
        return pair is not None and pair[0] == key

    def edit(text: str) -> str | None:
        lines = text.splitlines(keepends=True)
        index = int(match.group(1)) - 1 if match else -1
        if not (0 <= index < len(lines) and holds_key(lines[index])):
            index = next((i for i, line in enumerate(lines) if holds_key(line)), -1)
        if index < 0:
            logger.warning("Key %r not found", key)
            return None
        lines[index] = _replace_pair_value(lines[index], new_value)
        return "".join(lines)
    return _edit_text(data, edit)


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

def _rewrite_xml(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    match = _RE_XML_LOC.match(candidate.location)
    if match is None:
        logger.warning("Unrecognised XML location %r", candidate.location)
        return None
    kind, name, position = match.group(1), match.group(2), int(match.group(3))
    target = _target(candidate)
    if kind == "attribute":
        replacement = escape(new_value, _XML_ATTR_ENTITIES)
        fallback = re.compile(rf"""\b{re.escape(name)}\s*=\s*["']([^"']+)["']""")
        closer = ("\"", "'")
    else:
        replacement = escape(new_value)
        fallback = re.compile(rf"<{re.escape(name)}>([^<]+)</{re.escape(name)}>")
        closer = ("<",)

    def edit(text: str) -> str | None:
        end = position + len(target)
        if text[position:end] == target and text[end:end + 1] in closer:
            return text[:position] + replacement + text[end:]
        found = fallback.search(text)
        if found is None:
            logger.warning("XML %s %r not found", kind, name)
            return None
        return text[:found.start(1)] + replacement + text[found.end(1):]
    return _edit_text(data, edit)


# ---------------------------------------------------------------------------
# Loose text
# ---------------------------------------------------------------------------

def _rewrite_text(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    target = _target(candidate)
    match = _RE_LINE_COLUMN.match(candidate.location)

    def edit(text: str) -> str | None:
        if match is not None:
            lines = text.splitlines(keepends=True)
            index, column = int(match.group(1)) - 1, int(match.group(2)) - 1
            if 0 <= index < len(lines) and lines[index][column:column + len(target)] == target:
                line = lines[index]
                lines[index] = line[:column] + new_value + line[column + len(target):]
                return "".join(lines)
        found = _literal_pattern(target).search(text)
        if found is None:
            logger.warning("Value %r no longer present", target)
            return None
        return text[:found.start()] + new_value + text[found.end():]
    return _edit_text(data, edit)


# ---------------------------------------------------------------------------
# Binary
# ---------------------------------------------------------------------------

def _rewrite_binary(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    match = _RE_OFFSET.match(candidate.location)
    if match is None:
        logger.warning("Unrecognised binary location %r", candidate.location)
        return None
    offset = int(match.group(1))
    fmt, size = layout_for(candidate.key)
    if offset + size > len(data):
        logger.warning("Offset %d out of range for %d bytes", offset, len(data))
        return None
    value = float(new_value) if fmt[-1] in "fd" else int(new_value)
    return data[:offset] + struct.pack(fmt, value) + data[offset + size:]


def _rewrite_embedded(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    match = _RE_EMBEDDED.match(candidate.location)
    if match is None:
        logger.warning("Unrecognised embedded location %r", candidate.location)
        return None
    offset = int(match.group(1))
    old = _target(candidate).encode("ascii")
    new = new_value.encode("ascii")
    if data[offset:offset + len(old)] != old:
        logger.warning("Embedded value at offset %d has changed", offset)
        return None
    if len(new) != len(old):
        logger.warning("Embedded value must keep its length (%d bytes)", len(old))
        return None
    return data[:offset] + new + data[offset + len(old):]


def _rewrite_relationship(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    logger.info("Relationship candidates are not rewritable")
    return None


REWRITERS: dict[SourceKind, Callable[[bytes, Candidate, str], bytes | None]] = {
    SourceKind.JSON:         _rewrite_json,
    SourceKind.XML:          _rewrite_xml,
    SourceKind.KEY_VALUE:    _rewrite_key_value,
    SourceKind.TEXT:         _rewrite_text,
    SourceKind.PATTERN:      _rewrite_text,
    SourceKind.BINARY:       _rewrite_binary,
    SourceKind.EMBEDDED:     _rewrite_embedded,
    SourceKind.RELATIONSHIP: _rewrite_relationship,
}


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def rewrite_bytes(data: bytes, candidate: Candidate, new_value: str) -> bytes | None:
    """
    Return *data* with the candidate's value replaced by *new_value*, or
    ``None`` if the value is invalid or can no longer be found.  Surrounding
    whitespace is dropped from every value except strings.
    """
    if candidate.data_type.scalar is not DataType.STRING:
        new_value = new_value.strip()
    if not validate(new_value, candidate.data_type):
        logger.warning("Rejected %r: not a valid %s", new_value, candidate.data_type.scalar.value)
        return None
    try:
        return REWRITERS[candidate.source](data, candidate, new_value)
    except (ValueError, OverflowError, struct.error) as exc:
        logger.warning("Could not convert %r for %s: %s", new_value, candidate.key, exc)
        return None


def rewrite(
    path:      str,
    candidate: Candidate,
    new_value: str,
    access:    FileAccess | None = None,
) -> bool:
    """Rewrite one value in the file at *path*.  Returns ``True`` on success."""
    access = access or LOCAL
    if not access.exists(path):
        logger.warning("File not found: %s", path)
        return False
    if not access.can_write(path):
        logger.warning("File not writable: %s", path)
        return False
    try:
        updated = rewrite_bytes(access.read_bytes(path), candidate, new_value)
        if updated is None:
            return False
        access.write_bytes(path, updated)
    except OSError as exc:
        logger.warning("Rewrite of %s failed: %s", path, exc)
        return False
    logger.info("Rewrote %s: %s -> %s", path, candidate.key, new_value)
    return True

"""
savescribe.sniffer
==================
Format sniffing for files of unknown structure.

The cascade is ordered and the first match wins::

    text decode  ->  JSON  ->  XML  ->  key/value  ->  plain text
         |
         +-- (not text)  ->  SQLite header  ->  binary

A parse failure at any step only means "not this format"; nothing here
raises for bad input.
"""

from __future__ import annotations

import codecs
import json
import logging
import re
import string
from typing import Any

from savescribe.models import DetectedStructure, TextDocument

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PRINTABLE_RATIO = 0.7

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8,     "utf-8"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)

# utf-16 is only trusted when a BOM is present (handled by _BOMS)
_CHARSETS: tuple[str, ...] = ("utf-8", "utf-16", "iso-8859-1", "ascii")

_PUNCTUATION = frozenset(string.punctuation)

_SQLITE_MAGIC = b"SQLite"

_RE_JSON_COMMENT = re.compile(
    r'("(?:\\.|[^"\\])*")|//[^\n]*|#[^\n]*|/\*.*?\*/',
    re.DOTALL,
)
_RE_JSON_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(?=\s*[}\]])')
_RE_XML_ELEMENT = re.compile(r"<([^/!?][^>\s]*)(?:\s[^>]*)?>")
_RE_SQL_TABLE = re.compile(
    rb"CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?[\"'`\[]?(\w+)",
    re.IGNORECASE,
)

COMMENT_PREFIXES = ("#", ";")


# ---------------------------------------------------------------------------
# Text decoding
# ---------------------------------------------------------------------------

def printable_ratio(text: str) -> float:
    """Fraction of *text* made of letters, digits, whitespace or punctuation."""
    if not text:
        return 0.0
    printable = sum(1 for ch in text if ch.isalnum() or ch.isspace() or ch in _PUNCTUATION)
    return printable / len(text)


def decode_text(data: bytes) -> TextDocument | None:
    """
    Decode *data* under the first charset that yields mostly printable text.
    Returns ``None`` for content that should be treated as binary.
    """
    if not data:
        return None

    for bom, encoding in _BOMS:
        if data.startswith(bom):
            try:
                text = data[len(bom):].decode(encoding)
            except UnicodeDecodeError:
                break
            if printable_ratio(text) > PRINTABLE_RATIO:
                return TextDocument(text=text, encoding=encoding, bom=bom)
            break

    for charset in _CHARSETS:
        if charset == "utf-16":
            continue
        try:
            text = data.decode(charset)
        except UnicodeDecodeError:
            continue
        if printable_ratio(text) > PRINTABLE_RATIO:
            return TextDocument(text=text, encoding=charset)
    return None


# ---------------------------------------------------------------------------
# Shared parsing helpers
# ---------------------------------------------------------------------------

def _strip_json_noise(text: str) -> str:
    """Remove comments and trailing commas, leaving string literals alone."""
    text = _RE_JSON_COMMENT.sub(lambda m: m.group(1) or "", text)
    return _RE_JSON_TRAILING_COMMA.sub(lambda m: m.group(1) or "", text)


def load_json(text: str) -> Any | None:
    """
    Parse *text* as a JSON document.

    A strict parse must produce an object.  Failing that, a tolerant parse
    (comments, trailing commas and control characters allowed) may produce
    an object or an array.  Returns ``None`` when neither works.
    """
    stripped = text.strip()
    if not stripped:
        return None
    try:
        doc = json.loads(stripped)
        if isinstance(doc, dict):
            return doc
    except (ValueError, RecursionError):
        pass
    try:
        doc = json.loads(_strip_json_noise(stripped), strict=False)
    except (ValueError, RecursionError):
        return None
    if isinstance(doc, (dict, list)):
        return doc
    return None


def is_section_header(line: str) -> bool:
    return line.startswith("[") and line.endswith("]") and len(line) > 2


def split_pair(line: str) -> tuple[str, str] | None:
    """
    Split one ``key=value`` / ``key:value`` line.  Comment lines and section
    headers are not pairs.  ``=`` wins over ``:`` when both appear.
    """
    clean = line.strip()
    if not clean or clean.startswith(COMMENT_PREFIXES) or is_section_header(clean):
        return None
    for sep in ("=", ":"):
        if sep in clean:
            key, value = clean.split(sep, 1)
            key = key.strip()
            if key:
                return key, value.strip()
            return None
    return None


# ---------------------------------------------------------------------------
# Key collection
# ---------------------------------------------------------------------------

def _collect_json_keys(doc: Any, keys: set[str], depth: int = 0, max_depth: int = 64) -> None:
    if depth > max_depth:
        return
    if isinstance(doc, dict):
        for key, value in doc.items():
            keys.add(str(key))
            _collect_json_keys(value, keys, depth + 1, max_depth)
    elif isinstance(doc, list):
        for value in doc:
            _collect_json_keys(value, keys, depth + 1, max_depth)


def _is_xml(text: str) -> bool:
    trimmed = text.strip()
    return trimmed.startswith("<?xml") or (
        trimmed.startswith("<") and trimmed.endswith(">") and "</" in trimmed
    )


def _key_value_pairs(text: str) -> dict[str, str]:
    pairs: dict[str, str] = {}
    for line in text.splitlines():
        pair = split_pair(line)
        if pair is not None:
            pairs[pair[0]] = pair[1]
    return pairs


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _classify_text(text: str) -> DetectedStructure:
    doc = load_json(text)
    if doc is not None:
        keys: set[str] = set()
        _collect_json_keys(doc, keys)
        return DetectedStructure.json(keys)

    if _is_xml(text):
        return DetectedStructure.xml(m.group(1) for m in _RE_XML_ELEMENT.finditer(text))

    pairs = _key_value_pairs(text)
    if pairs:
        return DetectedStructure.key_value(pairs)

    return DetectedStructure.plain_text()


def _classify_bytes(data: bytes) -> DetectedStructure:
    if data[:6] == _SQLITE_MAGIC:
        tables = dict.fromkeys(
            m.group(1).decode("ascii", errors="ignore") for m in _RE_SQL_TABLE.finditer(data)
        )
        return DetectedStructure.database(tables)
    return DetectedStructure.binary()


def sniff(data: bytes) -> tuple[DetectedStructure, TextDocument | None]:
    """Classify *data* and return the decoded text alongside, if any."""
    if not data:
        return DetectedStructure.binary(), None
    document: TextDocument | None = None
    try:
        document = decode_text(data)
        if document is None:
            structure = _classify_bytes(data)
        else:
            structure = _classify_text(document.text)
    except Exception:
        logger.exception("Format sniffing failed; structure unknown")
        return DetectedStructure.unknown(), document

    logger.debug(
        "Sniffed %d bytes as %s (%s)",
        len(data), structure.kind.value,
        document.display_encoding if document else "no text encoding",
    )
    return structure, document


def classify(data: bytes) -> DetectedStructure:
    return sniff(data)[0]

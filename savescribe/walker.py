"""
savescribe.walker
=================
Structural traversal: visits every leaf of a parsed document and yields
``(key, value, path)`` entries.  Scoring happens elsewhere.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Iterator, NamedTuple

from savescribe.models import DetectedStructure, StructureKind
from savescribe.sniffer import is_section_header, load_json, split_pair

logger = logging.getLogger(__name__)

MAX_DEPTH = 64

_RE_XML_ATTRIBUTE = re.compile(r"""(\w+)\s*=\s*["']([^"']+)["']""")
_RE_XML_ELEMENT   = re.compile(r"<(\w+)>([^<]+)</\1>")

_RE_PATH_SPECIAL  = re.compile(r'[.\[\]"]')
_RE_PATH_TOKEN    = re.compile(r'\[(\d+)\]|\[("(?:[^"\\]|\\.)*")\]|([^.\[\]"]+)')


class WalkEntry(NamedTuple):
    key:     str
    value:   Any
    path:    str
    context: str = ""


# ---------------------------------------------------------------------------
# Location helpers (also used by the rewriter to parse them back)
# ---------------------------------------------------------------------------

def json_child_path(parent: str, key: str) -> str:
    """
    Dotted path to *key* under *parent*.  Keys that are empty or contain
    ``.``, ``[``, ``]`` or ``"`` are written as a quoted segment so the
    path parses back to the same leaf::

        json_child_path("a", "b")    ->  a.b
        json_child_path("", "a.b")   ->  ["a.b"]
    """
    if not key or _RE_PATH_SPECIAL.search(key):
        return f"{parent}[{json.dumps(key, ensure_ascii=False)}]"
    return f"{parent}.{key}" if parent else key


def json_path_tokens(path: str) -> list[str | int] | None:
    """
    Parse a path built by :func:`json_child_path` back into keys and list
    indices.  Returns ``None`` for text that is not such a path.
    """
    tokens: list[str | int] = []
    pos = 0
    while pos < len(path):
        if path[pos] == "." and tokens:
            pos += 1
        match = _RE_PATH_TOKEN.match(path, pos)
        if match is None:
            return None
        index, quoted, plain = match.groups()
        if index is not None:
            tokens.append(int(index))
        elif quoted is not None:
            tokens.append(json.loads(quoted))
        else:
            tokens.append(plain)
        pos = match.end()
    return tokens or None


def leaf_text(value: Any) -> str:
    """Text form of a scalar leaf as it is reported in a candidate."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def xml_location(kind: str, name: str, position: int) -> str:
    return f"{kind}: {name} (char {position})"


def line_location(line_number: int, section: str = "") -> str:
    return f"Line {line_number} [{section}]" if section else f"Line {line_number}"


def text_location(line_number: int, column: int) -> str:
    return f"Line {line_number}, column {column}"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _walk_json_node(node: Any, key: str, path: str, depth: int, max_depth: int) -> Iterator[WalkEntry]:
    if isinstance(node, dict):
        if depth >= max_depth:
            logger.debug("JSON depth limit reached at %s", path or "<root>")
            return
        for child_key, child in node.items():
            child_key = str(child_key)
            yield from _walk_json_node(child, child_key, json_child_path(path, child_key), depth + 1, max_depth)
    elif isinstance(node, list):
        if depth >= max_depth:
            logger.debug("JSON depth limit reached at %s", path or "<root>")
            return
        for index, child in enumerate(node):
            yield from _walk_json_node(child, f"item_{index}", f"{path}[{index}]", depth + 1, max_depth)
    elif node is not None:
        yield WalkEntry(key, node, path, path)


def walk_json(text: str, max_depth: int = MAX_DEPTH) -> Iterator[WalkEntry]:
    """
    Yield every scalar leaf of a JSON document.  Nested containers are
    descended, never yielded.  A document that does not parse yields
    nothing.
    """
    doc = load_json(text)
    if doc is None:
        return
    yield from _walk_json_node(doc, "", "", 0, max_depth)


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------

def walk_xml(text: str, max_depth: int = MAX_DEPTH) -> Iterator[WalkEntry]:
    """Attribute pass, then simple ``<tag>text</tag>`` element pass."""
    for match in _RE_XML_ATTRIBUTE.finditer(text):
        name, value = match.group(1), match.group(2)
        yield WalkEntry(name, value, xml_location("attribute", name, match.start(2)), "attribute")
    for match in _RE_XML_ELEMENT.finditer(text):
        name, value = match.group(1), match.group(2)
        yield WalkEntry(name, value, xml_location("element", name, match.start(2)), "element")


# ---------------------------------------------------------------------------
# Key / value
# ---------------------------------------------------------------------------

def walk_key_value(text: str, max_depth: int = MAX_DEPTH) -> Iterator[WalkEntry]:
    """
    Line-by-line ``key=value`` walk.  Keys under an ``[section]`` header
    are prefixed with the section name.
    """
    section = ""
    for line_number, line in enumerate(text.splitlines(), start=1):
        clean = line.strip()
        if is_section_header(clean):
            section = clean[1:-1].strip()
            continue
        pair = split_pair(clean)
        if pair is None:
            continue
        key, value = pair
        full_key = f"{section}.{key}" if section else key
        yield WalkEntry(full_key, value, line_location(line_number, section), section)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def _walk_nothing(text: str, max_depth: int = MAX_DEPTH) -> Iterator[WalkEntry]:
    return iter(())


WALKERS: dict[StructureKind, Callable[[str, int], Iterator[WalkEntry]]] = {
    StructureKind.JSON:       walk_json,
    StructureKind.XML:        walk_xml,
    StructureKind.KEY_VALUE:  walk_key_value,
    StructureKind.BINARY:     _walk_nothing,
    StructureKind.PLAIN_TEXT: _walk_nothing,
    StructureKind.DATABASE:   _walk_nothing,
    StructureKind.UNKNOWN:    _walk_nothing,
}


def walk(structure: DetectedStructure, text: str, max_depth: int = MAX_DEPTH) -> Iterator[WalkEntry]:
    """Dispatch on the structure kind.  Kinds without a tree yield nothing."""
    if not text:
        return iter(())
    return WALKERS[structure.kind](text, max_depth)

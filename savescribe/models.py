"""
savescribe.models
=================
Data containers shared by every detection pass.

A :class:`Candidate` is one possible game value: what it is called, its text
form, its type and category, a fused confidence in ``[0, 1]`` and a location
string that is enough on its own to find the value again for rewriting.
"""

from __future__ import annotations

import codecs
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class DataType(Enum):
    INTEGER    = "integer"
    FLOAT      = "float"
    STRING     = "string"
    BOOLEAN    = "boolean"
    # Legacy aliases, only produced by offset-based binary block detection
    CURRENCY   = "currency"
    SCORE      = "score"
    LEVEL      = "level"
    EXPERIENCE = "experience"

    @property
    def scalar(self) -> "DataType":
        """The plain scalar type this member converts and validates as."""
        if self in _INTEGER_ALIASES:
            return DataType.INTEGER
        return self


_INTEGER_ALIASES = frozenset({
    DataType.CURRENCY, DataType.SCORE, DataType.LEVEL, DataType.EXPERIENCE,
})


class Category(Enum):
    CURRENCY         = "currency"
    PREMIUM_CURRENCY = "premium_currency"
    EXPERIENCE       = "experience"
    HEALTH_ENERGY    = "health_energy"
    PROGRESS         = "progress"
    INVENTORY        = "inventory"
    STATS            = "stats"
    TIME             = "time"
    ACHIEVEMENTS     = "achievements"
    SETTINGS         = "settings"
    RELATIONSHIPS    = "relationships"
    POSITION         = "position"
    BINARY_DATA      = "binary_data"
    UNKNOWN          = "unknown"


class SourceKind(Enum):
    """Where a candidate came from; selects the rewrite strategy."""
    JSON         = "json"
    XML          = "xml"
    KEY_VALUE    = "key_value"
    TEXT         = "text"
    BINARY       = "binary"
    EMBEDDED     = "embedded"
    PATTERN      = "pattern"
    RELATIONSHIP = "relationship"


class StructureKind(Enum):
    JSON       = "json"
    XML        = "xml"
    KEY_VALUE  = "key_value"
    BINARY     = "binary"
    PLAIN_TEXT = "plain_text"
    DATABASE   = "database"
    UNKNOWN    = "unknown"


# ---------------------------------------------------------------------------
# Detected structure
# ---------------------------------------------------------------------------

_EMPTY_PAIRS: Mapping[str, str] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class DetectedStructure:
    """
    Result of format sniffing.  ``kind`` is the tag; only the payload field
    that belongs to that kind is populated.
    """
    kind:     StructureKind
    keys:     frozenset[str]     = frozenset()
    elements: frozenset[str]     = frozenset()
    pairs:    Mapping[str, str]  = field(default_factory=lambda: _EMPTY_PAIRS)
    tables:   tuple[str, ...]    = ()

    @classmethod
    def json(cls, keys) -> DetectedStructure:
        return cls(StructureKind.JSON, keys=frozenset(keys))

    @classmethod
    def xml(cls, elements) -> DetectedStructure:
        return cls(StructureKind.XML, elements=frozenset(elements))

    @classmethod
    def key_value(cls, pairs: Mapping[str, str]) -> DetectedStructure:
        return cls(StructureKind.KEY_VALUE, pairs=MappingProxyType(dict(pairs)))

    @classmethod
    def database(cls, tables) -> DetectedStructure:
        return cls(StructureKind.DATABASE, tables=tuple(tables))

    @classmethod
    def binary(cls) -> DetectedStructure:
        return cls(StructureKind.BINARY)

    @classmethod
    def plain_text(cls) -> DetectedStructure:
        return cls(StructureKind.PLAIN_TEXT)

    @classmethod
    def unknown(cls) -> DetectedStructure:
        return cls(StructureKind.UNKNOWN)


# ---------------------------------------------------------------------------
# Decoded text
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class TextDocument:
    """Text decoded from raw bytes, remembering how to encode it back."""
    text:     str
    encoding: str
    bom:      bytes = b""

    def encode(self, text: str) -> bytes:
        return self.bom + text.encode(self.encoding)

    @property
    def display_encoding(self) -> str:
        """Codec name as reported to callers (``utf-8``, ``utf-16-le`` …)."""
        if self.bom == codecs.BOM_UTF8:
            return "utf-8-sig"
        return self.encoding


# ---------------------------------------------------------------------------
# Candidate
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class Candidate:
    """A single detected possible game value."""
    key:            str
    raw_value:      str
    data_type:      DataType
    category:       Category
    confidence:     float
    location:       str
    description:    str         = ""
    source:         SourceKind  = SourceKind.TEXT
    original_value: str | None  = None

    def __post_init__(self) -> None:
        self.confidence = min(1.0, max(0.0, float(self.confidence)))

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.key, self.raw_value, self.location)

    def with_edit(self, new_value: str) -> Candidate:
        """Return a copy carrying *new_value* and the value it replaces."""
        previous = self.original_value if self.original_value is not None else self.raw_value
        return replace(self, raw_value=new_value, original_value=previous)

    def __str__(self) -> str:
        return f"[{self.confidence:.2f}] {self.key} = {self.raw_value}  @{self.location}"


class NumericContext(NamedTuple):
    """A number pulled out of text, with where it sat and what surrounded it."""
    value:       float
    line:        int
    column:      int
    text_before: str
    text_after:  str
    raw:         str


@dataclass(slots=True)
class AnalysisResult:
    structure:  DetectedStructure
    encoding:   str | None
    candidates: list[Candidate] = field(default_factory=list)
    name:       str             = ""

    @property
    def structure_kind(self) -> StructureKind:
        return self.structure.kind

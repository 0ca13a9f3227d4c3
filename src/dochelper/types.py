"""
Core types for the document helper.

This module defines the data structures shared by the store adapters,
the query translator and the entity accessor:
- Document alias and the structural clone used at every cache boundary
- Enums for filter operators and sort directions
- Frozen dataclasses for store-level filters, orderings and write results
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

Document = dict[str, Any]


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def clone_document(value: Any) -> Any:
    """Return a structurally independent copy of a document.

    Dicts, lists, tuples and sets are rebuilt recursively; scalars
    (str, int, float, bool, None, bytes) are immutable and returned as-is.
    Anything else falls back to copy.deepcopy.
    """
    if value is None or isinstance(value, (str, int, float, bool, bytes)):
        return value
    if isinstance(value, dict):
        return {key: clone_document(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clone_document(item) for item in value]
    if isinstance(value, tuple):
        return tuple(clone_document(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return type(value)(clone_document(item) for item in value)
    return copy.deepcopy(value)


class Operator(str, Enum):
    """Filter operators understood by every store adapter."""

    EQ = "=="
    NE = "!="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    IN = "in"
    NOT_IN = "not-in"
    ARRAY_CONTAINS = "array-contains"
    ARRAY_CONTAINS_ANY = "array-contains-any"

    @classmethod
    def parse(cls, raw: Any) -> Operator:
        """Parse an operator, accepting "=" as an alias for "==".

        Raises:
            ValueError: If the operator is not recognized.
        """
        if isinstance(raw, Operator):
            return raw
        if raw == "=":
            return cls.EQ
        return cls(raw)


class Direction(str, Enum):
    """Sort direction for an ordering."""

    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, raw: Any) -> Direction:
        """Parse a direction case-insensitively.

        Raises:
            ValueError: If the direction is not recognized.
        """
        if isinstance(raw, Direction):
            return raw
        if isinstance(raw, str):
            return cls(raw.strip().lower())
        raise ValueError(f"Invalid direction: {raw!r}")


@dataclass(frozen=True)
class Filter:
    """A single (field, operator, value) condition passed to a store query."""

    field: str
    op: Operator
    value: Any


@dataclass(frozen=True)
class Ordering:
    """A single sort key passed to a store query."""

    field: str
    direction: Direction = Direction.ASC


@dataclass(frozen=True)
class WriteResult:
    """Acknowledgement returned by store writes."""

    collection: str
    doc_id: Any
    operation: str
    written_at: datetime = field(default_factory=utc_now)

"""
Query translation.

Turns a declarative query descriptor into the filters, orderings and limit
a DocumentStore executes. Descriptor shapes are resolved exactly once into
tagged unions:

- WhereSpec = Equalities | Conjunction
- OrderSpec = SingleOrder | PairOrder | MultiOrder

Anything that does not fit one of these shapes raises QueryShapeError
before a store call is issued.

Examples:
    {"where": {"age": 30, "enabled": True}}
    {"where": [{"status": 1}, ["age", ">=", 18]],
     "order_by": [["createdAt", "desc"]],
     "limit": 5}
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from dochelper.exceptions import QueryShapeError
from dochelper.types import Direction, Filter, Operator, Ordering

_MEMBERSHIP_OPERATORS = frozenset(
    {Operator.IN, Operator.NOT_IN, Operator.ARRAY_CONTAINS_ANY}
)
_DESCRIPTOR_KEYS = frozenset({"where", "order_by", "orderBy", "limit"})


@dataclass(frozen=True)
class Equalities:
    """Field-equality mapping: one == filter per key."""

    fields: tuple[tuple[str, Any], ...]

    def to_filters(self) -> list[Filter]:
        return [Filter(name, Operator.EQ, value) for name, value in self.fields]


@dataclass(frozen=True)
class Conjunction:
    """List of equality mappings and explicit filters, all ANDed."""

    items: tuple[Equalities | Filter, ...]

    def to_filters(self) -> list[Filter]:
        filters: list[Filter] = []
        for item in self.items:
            if isinstance(item, Equalities):
                filters.extend(item.to_filters())
            else:
                filters.append(item)
        return filters


WhereSpec = Union[Equalities, Conjunction]


@dataclass(frozen=True)
class SingleOrder:
    """Bare field name, ascending."""

    field: str

    def to_orderings(self) -> list[Ordering]:
        return [Ordering(self.field, Direction.ASC)]


@dataclass(frozen=True)
class PairOrder:
    """A single [field, direction] pair."""

    ordering: Ordering

    def to_orderings(self) -> list[Ordering]:
        return [self.ordering]


@dataclass(frozen=True)
class MultiOrder:
    """Ordered list of [field, direction] pairs (primary first)."""

    orderings: tuple[Ordering, ...]

    def to_orderings(self) -> list[Ordering]:
        return list(self.orderings)


OrderSpec = Union[SingleOrder, PairOrder, MultiOrder]


@dataclass(frozen=True)
class QueryDescriptor:
    """Declarative query: where, order_by and limit, all optional."""

    where: Any = None
    order_by: Any = None
    limit: int | None = None

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> QueryDescriptor:
        """Build a descriptor from a plain mapping.

        Accepts ``orderBy`` as an alias of ``order_by``.

        Raises:
            QueryShapeError: On unknown keys or both order_by spellings.
        """
        unknown = set(params) - _DESCRIPTOR_KEYS
        if unknown:
            raise QueryShapeError(
                "Unknown query descriptor keys",
                context={"part": "descriptor", "value": sorted(unknown)},
            )
        if "order_by" in params and "orderBy" in params:
            raise QueryShapeError(
                "Use either order_by or orderBy, not both",
                context={"part": "order_by"},
            )
        order_by = params.get("order_by", params.get("orderBy"))
        return cls(
            where=params.get("where"),
            order_by=order_by,
            limit=params.get("limit"),
        )


@dataclass(frozen=True)
class StoreQuery:
    """Translated query, ready for DocumentStore.query()."""

    filters: list[Filter] = field(default_factory=list)
    orderings: list[Ordering] = field(default_factory=list)
    limit: int | None = None


def parse_where(where: Any) -> WhereSpec | None:
    """Resolve a where clause into a WhereSpec.

    Returns:
        None when where is absent, otherwise Equalities or Conjunction.

    Raises:
        QueryShapeError: If the clause is not a mapping or a list of
            mappings and [field, operator, value] triples.
    """
    if where is None:
        return None
    if isinstance(where, Mapping):
        return _parse_equalities(where)
    if _is_list(where):
        items: list[Equalities | Filter] = []
        for condition in where:
            if isinstance(condition, Mapping):
                items.append(_parse_equalities(condition))
            elif _is_list(condition):
                items.append(_parse_triple(condition))
            else:
                raise QueryShapeError(
                    "where conditions must be mappings or [field, operator, value] triples",
                    context={"part": "where", "value": condition},
                )
        return Conjunction(tuple(items))
    raise QueryShapeError(
        "where must be a mapping or a list of conditions",
        context={"part": "where", "value": where},
    )


def parse_order_by(order_by: Any) -> OrderSpec | None:
    """Resolve an order_by clause into an OrderSpec.

    Returns:
        None when order_by is absent, otherwise SingleOrder, PairOrder or
        MultiOrder.

    Raises:
        QueryShapeError: If the clause is not a field name, a
            [field, direction] pair, or a list of such pairs.
    """
    if order_by is None:
        return None
    if isinstance(order_by, str):
        return SingleOrder(_check_field(order_by, "order_by"))
    if _is_list(order_by):
        if order_by and isinstance(order_by[0], str):
            return PairOrder(_parse_pair(order_by))
        if all(_is_list(pair) for pair in order_by):
            return MultiOrder(tuple(_parse_pair(pair) for pair in order_by))
    raise QueryShapeError(
        "order_by must be a field name, a [field, direction] pair, "
        "or a list of pairs like [['user', 'desc'], ['createdAt', 'asc']]",
        context={"part": "order_by", "value": order_by},
    )


def parse_limit(limit: Any) -> int | None:
    """Validate a limit: absent, or a positive integer.

    Raises:
        QueryShapeError: If limit is not a positive integer.
    """
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise QueryShapeError(
            "limit must be a positive integer",
            context={"part": "limit", "value": limit},
        )
    return limit


def translate(descriptor: QueryDescriptor | Mapping[str, Any]) -> StoreQuery:
    """Translate a descriptor into store filters, orderings and limit."""
    if isinstance(descriptor, Mapping):
        descriptor = QueryDescriptor.from_mapping(descriptor)
    elif not isinstance(descriptor, QueryDescriptor):
        raise QueryShapeError(
            "Query descriptor must be a mapping or QueryDescriptor",
            context={"part": "descriptor", "value": descriptor},
        )

    where = parse_where(descriptor.where)
    order = parse_order_by(descriptor.order_by)
    limit = parse_limit(descriptor.limit)

    return StoreQuery(
        filters=where.to_filters() if where is not None else [],
        orderings=order.to_orderings() if order is not None else [],
        limit=limit,
    )


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _check_field(name: Any, part: str) -> str:
    if not isinstance(name, str) or not name:
        raise QueryShapeError(
            "Field names must be non-empty strings",
            context={"part": part, "value": name},
        )
    return name


def _parse_equalities(mapping: Mapping[Any, Any]) -> Equalities:
    return Equalities(
        tuple((_check_field(key, "where"), value) for key, value in mapping.items())
    )


def _parse_triple(condition: Sequence[Any]) -> Filter:
    if len(condition) != 3:
        raise QueryShapeError(
            "where triples must be [field, operator, value]",
            context={"part": "where", "value": list(condition)},
        )
    name, raw_op, value = condition
    try:
        op = Operator.parse(raw_op)
    except ValueError as exc:
        raise QueryShapeError(
            "Unsupported where operator",
            context={"part": "where", "value": raw_op},
        ) from exc
    if op in _MEMBERSHIP_OPERATORS and not _is_list(value):
        raise QueryShapeError(
            f"Operator {op.value!r} requires a list value",
            context={"part": "where", "value": value},
        )
    return Filter(_check_field(name, "where"), op, value)


def _parse_pair(pair: Sequence[Any]) -> Ordering:
    if len(pair) != 2:
        raise QueryShapeError(
            "order_by pairs must be [field, direction]",
            context={"part": "order_by", "value": list(pair)},
        )
    name, raw_direction = pair
    try:
        direction = Direction.parse(raw_direction)
    except ValueError as exc:
        raise QueryShapeError(
            "order_by direction must be 'asc' or 'desc'",
            context={"part": "order_by", "value": raw_direction},
        ) from exc
    return Ordering(_check_field(name, "order_by"), direction)

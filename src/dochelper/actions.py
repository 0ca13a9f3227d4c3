"""
Action facade.

Rebinds an EntityAccessor's operations as plain functions so a business
layer can depend on a fixed function set instead of the accessor object.
Delegation only: no validation, no error translation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Hashable, Mapping
from dataclasses import dataclass
from typing import Any

from dochelper.accessor import EntityAccessor
from dochelper.query import QueryDescriptor
from dochelper.types import Document, WriteResult


@dataclass(frozen=True)
class Actions:
    """Function set for one collection."""

    add: Callable[[Document], Awaitable[WriteResult]]
    get_by: Callable[[QueryDescriptor | Mapping[str, Any]], Awaitable[Any]]
    get_by_id: Callable[[Hashable], Awaitable[Document | None]]
    get_all: Callable[[], Awaitable[list[Document]]]
    delete_by_id: Callable[[Hashable], Awaitable[WriteResult]]
    edit_by_id: Callable[[Hashable, Document], Awaitable[WriteResult]]
    clear_cache: Callable[..., None]


def create_actions(accessor: EntityAccessor) -> Actions:
    """Wrap an accessor's operations in fixed-arity functions."""

    def add(document: Document) -> Awaitable[WriteResult]:
        return accessor.add(document)

    def get_by(descriptor: QueryDescriptor | Mapping[str, Any]) -> Awaitable[Any]:
        return accessor.get_by(descriptor)

    def get_by_id(doc_id: Hashable) -> Awaitable[Document | None]:
        return accessor.get_by_id(doc_id)

    def get_all() -> Awaitable[list[Document]]:
        return accessor.get_all()

    def delete_by_id(doc_id: Hashable) -> Awaitable[WriteResult]:
        return accessor.delete_by_id(doc_id)

    def edit_by_id(doc_id: Hashable, partial: Document) -> Awaitable[WriteResult]:
        return accessor.edit_by_id(doc_id, partial)

    def clear_cache(key: Hashable | None = None) -> None:
        return accessor.clear_cache(key)

    return Actions(
        add=add,
        get_by=get_by,
        get_by_id=get_by_id,
        get_all=get_all,
        delete_by_id=delete_by_id,
        edit_by_id=edit_by_id,
        clear_cache=clear_cache,
    )

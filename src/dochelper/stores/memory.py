"""
In-memory document store.

Dict-backed DocumentStore for tests, local development and the CLI's
"memory" backend. Documents are cloned on write and on read, so the store
never shares references with its callers, mirroring a remote store.

Field paths containing dots address nested mappings ("address.city").
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from typing import Any

from dochelper.exceptions import DocumentNotFoundError
from dochelper.logging import get_logger
from dochelper.stores.base import DocumentStore
from dochelper.types import (
    Direction,
    Document,
    Filter,
    Operator,
    Ordering,
    WriteResult,
    clone_document,
)

logger = get_logger(__name__)

_MISSING = object()


def resolve_field(document: Document, path: str) -> Any:
    """Return the value at a dotted field path, or _MISSING."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(document: Document, condition: Filter) -> bool:
    """Evaluate a single filter against a document.

    A missing field never matches. Comparisons between incompatible
    types do not match.
    """
    value = resolve_field(document, condition.field)
    if value is _MISSING:
        return False

    op = condition.op
    target = condition.value
    try:
        if op is Operator.EQ:
            return value == target
        if op is Operator.NE:
            return value != target
        if op is Operator.LT:
            return value < target
        if op is Operator.LTE:
            return value <= target
        if op is Operator.GT:
            return value > target
        if op is Operator.GTE:
            return value >= target
        if op is Operator.IN:
            return value in target
        if op is Operator.NOT_IN:
            return value not in target
        if op is Operator.ARRAY_CONTAINS:
            return isinstance(value, list) and target in value
        if op is Operator.ARRAY_CONTAINS_ANY:
            return isinstance(value, list) and any(item in value for item in target)
    except TypeError:
        return False
    raise ValueError(f"Unsupported operator: {op!r}")


def _sort_key(value: Any) -> tuple[int, Any]:
    # None < booleans < numbers < strings < everything else
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, repr(value))


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore backed by nested dicts."""

    def __init__(self, data: dict[str, dict[Hashable, Document]] | None = None) -> None:
        self._collections: dict[str, dict[Hashable, Document]] = {}
        for collection, documents in (data or {}).items():
            self._collections[collection] = {
                doc_id: clone_document(document) for doc_id, document in documents.items()
            }

    def _documents(self, collection: str) -> dict[Hashable, Document]:
        return self._collections.setdefault(collection, {})

    async def get(self, collection: str, doc_id: Hashable) -> Document | None:
        document = self._documents(collection).get(doc_id)
        return clone_document(document) if document is not None else None

    async def set(self, collection: str, doc_id: Hashable, document: Document) -> WriteResult:
        self._documents(collection)[doc_id] = clone_document(document)
        return WriteResult(collection=collection, doc_id=doc_id, operation="set")

    async def update(self, collection: str, doc_id: Hashable, partial: Document) -> WriteResult:
        documents = self._documents(collection)
        if doc_id not in documents:
            raise DocumentNotFoundError(
                "No document to update",
                context={"collection": collection, "doc_id": doc_id, "operation": "update"},
            )
        documents[doc_id] = {**documents[doc_id], **clone_document(partial)}
        return WriteResult(collection=collection, doc_id=doc_id, operation="update")

    async def delete(self, collection: str, doc_id: Hashable) -> WriteResult:
        self._documents(collection).pop(doc_id, None)
        return WriteResult(collection=collection, doc_id=doc_id, operation="delete")

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        orderings: Sequence[Ordering] = (),
        limit: int | None = None,
    ) -> list[Document]:
        results = [
            document
            for document in self._documents(collection).values()
            if all(matches(document, condition) for condition in filters)
            and all(resolve_field(document, o.field) is not _MISSING for o in orderings)
        ]

        # Stable sorts applied from the least to the most significant key
        for ordering in reversed(orderings):
            results.sort(
                key=lambda doc, f=ordering.field: _sort_key(resolve_field(doc, f)),
                reverse=ordering.direction is Direction.DESC,
            )

        if limit is not None:
            results = results[:limit]

        logger.debug(
            "Memory query",
            collection=collection,
            filters=len(filters),
            orderings=len(orderings),
            limit=limit,
            results=len(results),
        )
        return [clone_document(document) for document in results]

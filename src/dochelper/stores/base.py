"""
Document store contract.

A DocumentStore addresses documents by (collection, id) and supports
filtered, ordered, limited queries. Adapters raise StoreError (or a
subclass) on failure; callers above this layer never translate them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Hashable, Sequence

from dochelper.types import Document, Filter, Ordering, WriteResult


class DocumentStore(ABC):
    """Abstract interface for document store adapters."""

    @abstractmethod
    async def get(self, collection: str, doc_id: Hashable) -> Document | None:
        """Fetch a document, or None if it does not exist."""
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: Hashable, document: Document) -> WriteResult:
        """Write a document, replacing any existing one."""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: Hashable, partial: Document) -> WriteResult:
        """Merge fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist.
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: Hashable) -> WriteResult:
        """Delete a document. Deleting a missing document is not an error."""
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        orderings: Sequence[Ordering] = (),
        limit: int | None = None,
    ) -> list[Document]:
        """Run a conjunctive, ordered, optionally limited query.

        Documents missing an ordering field are excluded from ordered
        results. Without orderings the result order is unspecified.
        """
        ...

    def normalize_id(self, doc_id: Hashable) -> Hashable:
        """Return the key this store files doc_id under.

        Ids that normalize to the same key address the same document.
        """
        return doc_id

    async def close(self) -> None:
        """Release adapter resources. No-op by default."""
        return None

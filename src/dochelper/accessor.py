"""
Entity accessor.

One EntityAccessor serves one collection: add, get_by_id, get_by, get_all,
delete_by_id, edit_by_id and clear_cache over a DocumentStore, with an
optional write-through/read-through cache partition from a CacheRegistry.

Cache rules:
- add stores a clone after the store write succeeds
- get_by_id serves hits (tombstones included) without a store call
- get_by and get_all cache every result they fetch; get_all replaces the
  whole partition
- delete_by_id tombstones the id, edit_by_id evicts it
- nothing is cached when a store call fails
- cache keys are the store's normalized ids, so ids the store treats as
  equal (1 and "1" in SQLite) share one entry

Every document a query returns must carry an id. A document without one
raises StoreError from get_by and get_all, with or without the cache.

The cache is not safe under external mutation or overlapping writes to the
same id. Use use_cache=False when strict consistency matters.
"""

from __future__ import annotations

from collections.abc import Hashable, Mapping
from typing import Any

from dochelper.cache import CachePartition, CacheRegistry, default_registry
from dochelper.config import get_settings
from dochelper.exceptions import StoreError, ValidationError
from dochelper.logging import get_logger, log_context
from dochelper.query import QueryDescriptor, translate
from dochelper.stores import DocumentStore, create_store
from dochelper.types import Document, WriteResult, clone_document

logger = get_logger(__name__)


class EntityAccessor:
    """CRUD accessor for a single collection."""

    def __init__(
        self,
        collection_name: str,
        *,
        store: DocumentStore,
        registry: CacheRegistry | None = None,
        use_cache: bool = True,
    ) -> None:
        """Initialize the accessor.

        Args:
            collection_name: Collection this accessor reads and writes.
            store: Store adapter used for every operation.
            registry: Cache registry holding the collection's partition.
                Defaults to the process-wide registry.
            use_cache: Whether to read and write the cache partition.
        """
        if not isinstance(collection_name, str) or not collection_name:
            raise ValidationError(
                "collection_name must be a non-empty string",
                context={"collection": collection_name},
            )

        self.collection_name = collection_name
        self.use_cache = use_cache
        self._store = store
        self._cache: CachePartition | None = None
        if use_cache:
            registry = registry if registry is not None else default_registry()
            self._cache = registry.partition(collection_name)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def cache(self) -> CachePartition | None:
        """The cache partition, or None when caching is disabled."""
        return self._cache

    async def add(self, document: Document) -> WriteResult:
        """Write a full document under its id, replacing any existing one.

        Raises:
            ValidationError: If the document has no id. No store call is made.
        """
        if not isinstance(document, Mapping) or document.get("id") is None:
            raise ValidationError(
                "'id' is required",
                context={"collection": self.collection_name, "field": "id"},
            )

        doc_id = document["id"]
        with log_context(collection=self.collection_name, operation="add"):
            result = await self._store.set(self.collection_name, doc_id, dict(document))
            if self._cache is not None:
                self._cache.put(self._key(doc_id), document)
            logger.debug("Added document", doc_id=doc_id, cached=self._cache is not None)
        return result

    async def get_by_id(self, doc_id: Hashable) -> Document | None:
        """Fetch a document by id.

        Returns:
            The document, or None if it does not exist.
        """
        with log_context(collection=self.collection_name, operation="get_by_id"):
            key = self._key(doc_id)
            if self._cache is not None:
                hit, cached = self._cache.lookup(key)
                if hit:
                    logger.debug("Cache hit", doc_id=doc_id, tombstone=cached is None)
                    return cached
                logger.debug("Cache miss", doc_id=doc_id)

            document = await self._store.get(self.collection_name, doc_id)

            if self._cache is None:
                return document
            self._cache.put(key, document)
            return clone_document(document)

    async def get_by(
        self, descriptor: QueryDescriptor | Mapping[str, Any]
    ) -> list[Document] | Document | None:
        """Run a declarative query.

        Args:
            descriptor: where / order_by / limit, as a QueryDescriptor or mapping.

        Returns:
            A list of documents. With limit=1 the single match is returned
            bare, or None when nothing matched.

        Raises:
            QueryShapeError: If the descriptor is malformed. No store call is made.
            StoreError: If a fetched document has no id.
        """
        query = translate(descriptor)

        with log_context(collection=self.collection_name, operation="get_by"):
            documents = await self._store.query(
                self.collection_name, query.filters, query.orderings, query.limit
            )

            results: list[Document] = []
            for document in documents:
                doc_id = self._fetched_id(document, "get_by")
                if self._cache is None:
                    results.append(document)
                    continue
                self._cache.put(self._key(doc_id), document)
                results.append(clone_document(document))

            logger.debug(
                "Query executed",
                filters=len(query.filters),
                orderings=len(query.orderings),
                limit=query.limit,
                results=len(results),
            )

            if query.limit != 1:
                return results
            if not results:
                return None
            if len(results) == 1:
                return results[0]

            # A store honoring limit=1 never gets here
            logger.warning(
                "Query with limit=1 returned multiple documents", results=len(results)
            )
            return results

    async def get_all(self) -> list[Document]:
        """Fetch every document in the collection.

        Never reads the cache. With caching enabled the partition is
        replaced by the fetched set and its values are returned.

        Raises:
            StoreError: If a fetched document has no id.
        """
        with log_context(collection=self.collection_name, operation="get_all"):
            documents = await self._store.query(self.collection_name)
            keyed = [
                (self._key(self._fetched_id(document, "get_all")), document)
                for document in documents
            ]

            if self._cache is None:
                return documents

            self._cache.replace(keyed)
            logger.debug("Cache refilled", entries=len(self._cache))
            return self._cache.values()

    async def delete_by_id(self, doc_id: Hashable) -> WriteResult:
        """Delete a document and remember it as absent."""
        with log_context(collection=self.collection_name, operation="delete_by_id"):
            result = await self._store.delete(self.collection_name, doc_id)
            if self._cache is not None:
                self._cache.tombstone(self._key(doc_id))
            logger.debug("Deleted document", doc_id=doc_id)
        return result

    async def edit_by_id(self, doc_id: Hashable, partial: Document) -> WriteResult:
        """Merge fields into a stored document.

        The cached copy is evicted rather than patched, so the next read
        sees whatever the store actually holds.
        """
        with log_context(collection=self.collection_name, operation="edit_by_id"):
            result = await self._store.update(self.collection_name, doc_id, dict(partial))
            if self._cache is not None:
                self._cache.evict(self._key(doc_id))
            logger.debug("Edited document", doc_id=doc_id, fields=sorted(partial))
        return result

    def clear_cache(self, key: Hashable | None = None) -> None:
        """Forget one cached id, or the whole partition when key is None."""
        if self._cache is None:
            return
        if key is None:
            self._cache.clear()
        else:
            self._cache.evict(self._key(key))

    def _key(self, doc_id: Hashable) -> Hashable:
        return self._store.normalize_id(doc_id)

    def _fetched_id(self, document: Document, operation: str) -> Hashable:
        doc_id = document.get("id")
        if doc_id is None:
            raise StoreError(
                "Fetched document has no id",
                context={"collection": self.collection_name, "operation": operation},
            )
        return doc_id


def create_helper(
    collection_name: str,
    *,
    use_cache: bool | None = None,
    store: DocumentStore | None = None,
    registry: CacheRegistry | None = None,
) -> EntityAccessor:
    """Build an EntityAccessor, filling gaps from settings.

    Args:
        collection_name: Collection to serve.
        use_cache: Cache flag. Defaults to the USE_CACHE setting.
        store: Store adapter. Defaults to the configured STORE_BACKEND.
        registry: Cache registry. Defaults to the process-wide registry.
    """
    if use_cache is None or store is None:
        settings = get_settings()
        if use_cache is None:
            use_cache = settings.use_cache
        if store is None:
            store = create_store(settings)

    return EntityAccessor(
        collection_name,
        store=store,
        registry=registry,
        use_cache=use_cache,
    )

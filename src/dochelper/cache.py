"""
Process-local document cache.

A CacheRegistry owns one CachePartition per collection. Partitions map a
document id to an independent clone of the last known document state, or
to a tombstone (None) meaning "confirmed absent". A key that was never
looked up is simply missing from the partition.

Every value is cloned on the way in and on the way out, so callers never
share references with the cache.

The cache is not coherent across processes and has no TTL or size bound.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import asdict, dataclass
from typing import Any

from dochelper.logging import get_logger
from dochelper.types import Document, clone_document

logger = get_logger(__name__)


@dataclass
class CacheStats:
    """Counters for a single partition."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0
    tombstones: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class CachePartition:
    """Cache entries for one collection."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        self._entries: dict[Hashable, Document | None] = {}
        self.stats = CacheStats()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._entries

    def lookup(self, doc_id: Hashable) -> tuple[bool, Document | None]:
        """Look up an id.

        Returns:
            (hit, value). On a hit the value is a clone, or None for a
            tombstone. On a miss the value is None.
        """
        if doc_id not in self._entries:
            self.stats.misses += 1
            return False, None
        self.stats.hits += 1
        return True, clone_document(self._entries[doc_id])

    def put(self, doc_id: Hashable, document: Document | None) -> None:
        """Store a clone of document (None stores a tombstone)."""
        self._entries[doc_id] = clone_document(document)
        self.stats.writes += 1

    def tombstone(self, doc_id: Hashable) -> None:
        """Mark an id as confirmed absent."""
        self._entries[doc_id] = None
        self.stats.tombstones += 1

    def evict(self, doc_id: Hashable) -> bool:
        """Forget an id entirely. Returns True if it was present."""
        if doc_id in self._entries:
            del self._entries[doc_id]
            self.stats.evictions += 1
            return True
        return False

    def clear(self) -> None:
        """Drop every entry, tombstones included."""
        self.stats.evictions += len(self._entries)
        self._entries = {}

    def replace(self, items: Iterable[tuple[Hashable, Document]]) -> None:
        """Replace all entries with clones of the given (id, document) pairs."""
        entries: dict[Hashable, Document | None] = {}
        for doc_id, document in items:
            entries[doc_id] = clone_document(document)
        self._entries = entries
        self.stats.writes += len(entries)

    def ids(self) -> list[Hashable]:
        return list(self._entries)

    def values(self) -> list[Document]:
        """Clones of every live document, tombstones skipped."""
        return [
            clone_document(document)
            for document in self._entries.values()
            if document is not None
        ]


class CacheRegistry:
    """Holds one CachePartition per collection name.

    Construct one per process (or per test) and pass it to each
    EntityAccessor. Partitions are created lazily and live as long as
    the registry.
    """

    def __init__(self) -> None:
        self._partitions: dict[str, CachePartition] = {}

    def __contains__(self, collection: object) -> bool:
        return collection in self._partitions

    def partition(self, collection: str) -> CachePartition:
        """Get the partition for a collection, allocating it if needed."""
        partition = self._partitions.get(collection)
        if partition is None:
            partition = CachePartition(collection)
            self._partitions[collection] = partition
            logger.debug("Allocated cache partition", collection=collection)
        return partition

    def get(self, collection: str) -> CachePartition | None:
        """Get an existing partition without allocating one."""
        return self._partitions.get(collection)

    def drop(self, collection: str) -> bool:
        """Remove a partition. Returns True if it existed."""
        return self._partitions.pop(collection, None) is not None

    def collections(self) -> list[str]:
        return sorted(self._partitions)

    def stats(self) -> dict[str, dict[str, Any]]:
        """Per-collection counters plus current entry count."""
        return {
            name: {**partition.stats.to_dict(), "entries": len(partition)}
            for name, partition in sorted(self._partitions.items())
        }


_default_registry: CacheRegistry | None = None


def default_registry() -> CacheRegistry:
    """Get the process-wide registry used when none is injected."""
    global _default_registry
    if _default_registry is None:
        _default_registry = CacheRegistry()
    return _default_registry


def reset_default_registry() -> None:
    """Discard the process-wide registry (useful for testing)."""
    global _default_registry
    _default_registry = None

"""
Document store adapters.

- DocumentStore (base.py): the contract the entity accessor consumes
- InMemoryDocumentStore (memory.py): dict-backed, for tests and local use
- SQLiteDocumentStore (sqlite.py): aiosqlite-backed, JSON documents
"""

from __future__ import annotations

from dochelper.config import Settings
from dochelper.exceptions import ConfigurationError
from dochelper.stores.base import DocumentStore
from dochelper.stores.memory import InMemoryDocumentStore
from dochelper.stores.sqlite import SQLiteDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "create_store",
    "open_store",
]


def create_store(settings: Settings) -> DocumentStore:
    """Build the store adapter selected by STORE_BACKEND.

    The sqlite adapter is returned unopened and connects on first use.

    Raises:
        ConfigurationError: If the backend is unknown.
    """
    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    if settings.store_backend == "sqlite":
        settings.ensure_directories()
        return SQLiteDocumentStore(settings.SQLITE_PATH)
    raise ConfigurationError(
        "Unknown store backend", context={"STORE_BACKEND": settings.store_backend}
    )


async def open_store(settings: Settings) -> DocumentStore:
    """Build the configured store adapter and open it if needed."""
    store = create_store(settings)
    if isinstance(store, SQLiteDocumentStore):
        await store.init()
    return store

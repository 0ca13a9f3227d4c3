"""
Pytest configuration and fixtures for document helper tests.
"""

from __future__ import annotations

import os
from collections import Counter
from collections.abc import Hashable, Sequence
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import pytest

from dochelper.accessor import EntityAccessor
from dochelper.cache import CacheRegistry, reset_default_registry
from dochelper.config import clear_settings_cache
from dochelper.stores import DocumentStore, InMemoryDocumentStore, SQLiteDocumentStore
from dochelper.types import Document, Filter, Ordering, WriteResult


class CountingStore(InMemoryDocumentStore):
    """In-memory store that records how often each operation ran."""

    def __init__(self, data: dict[str, dict[Hashable, Document]] | None = None) -> None:
        super().__init__(data)
        self.calls: Counter[str] = Counter()

    async def get(self, collection: str, doc_id: Hashable) -> Document | None:
        self.calls["get"] += 1
        return await super().get(collection, doc_id)

    async def set(self, collection: str, doc_id: Hashable, document: Document) -> WriteResult:
        self.calls["set"] += 1
        return await super().set(collection, doc_id, document)

    async def update(self, collection: str, doc_id: Hashable, partial: Document) -> WriteResult:
        self.calls["update"] += 1
        return await super().update(collection, doc_id, partial)

    async def delete(self, collection: str, doc_id: Hashable) -> WriteResult:
        self.calls["delete"] += 1
        return await super().delete(collection, doc_id)

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        orderings: Sequence[Ordering] = (),
        limit: int | None = None,
    ) -> list[Document]:
        self.calls["query"] += 1
        return await super().query(collection, filters, orderings, limit)


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def registry() -> CacheRegistry:
    """Provide an isolated cache registry."""
    return CacheRegistry()


@pytest.fixture
def store() -> CountingStore:
    """Provide an empty counting store."""
    return CountingStore()


@pytest.fixture
def users(store: CountingStore, registry: CacheRegistry) -> EntityAccessor:
    """Provide a cached accessor for the users collection."""
    return EntityAccessor("users", store=store, registry=registry)


@pytest.fixture
def uncached_users(store: CountingStore, registry: CacheRegistry) -> EntityAccessor:
    """Provide an accessor for users with caching disabled."""
    return EntityAccessor("users", store=store, registry=registry, use_cache=False)


@pytest.fixture(params=["memory", "sqlite"])
async def document_store(
    request: pytest.FixtureRequest, temp_dir: Path
) -> AsyncGenerator[DocumentStore, None]:
    """Provide each store adapter in turn, opened and empty."""
    if request.param == "memory":
        yield InMemoryDocumentStore()
        return

    sqlite_store = SQLiteDocumentStore(temp_dir / "documents.db")
    await sqlite_store.init()
    yield sqlite_store
    await sqlite_store.close()


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide environment variables selecting the sqlite backend."""
    env_vars = {
        "STORE_BACKEND": "sqlite",
        "SQLITE_PATH": str(temp_dir / "cli" / "documents.db"),
        "USE_CACHE": "true",
        "LOG_LEVEL": "WARNING",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset the settings cache and default registry around each test."""
    clear_settings_cache()
    reset_default_registry()
    yield
    clear_settings_cache()
    reset_default_registry()

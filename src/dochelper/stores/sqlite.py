"""
SQLite document store.

Persists documents as JSON in a single ``documents`` table keyed by
(collection, doc_id) and compiles filters and orderings to json_extract
SQL. Uses aiosqlite for async access and orjson for serialization.

Document ids are stored as text, so ids that differ only in type
(1 and "1") address the same row. normalize_id() reports that key so
callers can cache under it.

Writes are serialized on a per-store lock so a merge update never
interleaves with another write to the same database.
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable, Sequence
from pathlib import Path
from typing import Any

import aiosqlite
import orjson

from dochelper.exceptions import DocumentNotFoundError, StoreError
from dochelper.logging import get_logger
from dochelper.stores.base import DocumentStore
from dochelper.types import Document, Filter, Operator, Ordering, WriteResult, utc_now

logger = get_logger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS documents (
        collection TEXT NOT NULL,
        doc_id TEXT NOT NULL,
        data TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        PRIMARY KEY (collection, doc_id)
    )
"""

_COMPARISONS = {
    Operator.LT: "<",
    Operator.LTE: "<=",
    Operator.GT: ">",
    Operator.GTE: ">=",
}


def json_path(field: str) -> str:
    """Build a quoted JSON path for a dotted field name."""
    parts = field.split(".")
    if any(not part or '"' in part for part in parts):
        raise StoreError(
            "Field path cannot be expressed as a JSON path",
            context={"field": field, "operation": "query"},
        )
    return "$" + "".join(f'."{part}"' for part in parts)


def _bind(value: Any) -> Any:
    # Containers are compared as their JSON text
    if isinstance(value, (dict, list, tuple)):
        return orjson.dumps(value).decode("utf-8")
    return value


def _type_guard(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return "IN ('integer', 'real')"
    if isinstance(value, str):
        return "= 'text'"
    return None


def compile_filter(condition: Filter) -> tuple[str, list[Any]]:
    """Compile one filter to a SQL predicate and its parameters."""
    path = json_path(condition.field)
    op = condition.op
    value = condition.value
    extract = "json_extract(data, ?)"

    if op is Operator.EQ:
        if value is None:
            return "json_type(data, ?) = 'null'", [path]
        return f"{extract} = ?", [path, _bind(value)]

    if op is Operator.NE:
        if value is None:
            return "json_type(data, ?) NOT IN ('null')", [path]
        return (
            f"json_type(data, ?) IS NOT NULL AND {extract} IS NOT ?",
            [path, path, _bind(value)],
        )

    if op in _COMPARISONS:
        sql = f"{extract} {_COMPARISONS[op]} ?"
        params: list[Any] = [path, _bind(value)]
        guard = _type_guard(value)
        if guard:
            sql = f"json_type(data, ?) {guard} AND {sql}"
            params = [path, *params]
        return sql, params

    if op is Operator.ARRAY_CONTAINS:
        return (
            "json_type(data, ?) = 'array' AND EXISTS "
            "(SELECT 1 FROM json_each(data, ?) WHERE json_each.value = ?)",
            [path, path, _bind(value)],
        )

    items = list(value)
    non_null = [_bind(item) for item in items if item is not None]
    placeholders = ", ".join("?" for _ in non_null)

    if op is Operator.IN:
        clauses: list[str] = []
        params = []
        if non_null:
            clauses.append(f"{extract} IN ({placeholders})")
            params.extend([path, *non_null])
        if None in items:
            clauses.append("json_type(data, ?) = 'null'")
            params.append(path)
        if not clauses:
            return "0", []
        return "(" + " OR ".join(clauses) + ")", params

    if op is Operator.NOT_IN:
        sql = "json_type(data, ?) IS NOT NULL"
        params = [path]
        if None in items:
            sql += " AND json_type(data, ?) != 'null'"
            params.append(path)
        if non_null:
            sql += f" AND {extract} NOT IN ({placeholders})"
            params.extend([path, *non_null])
        return sql, params

    if op is Operator.ARRAY_CONTAINS_ANY:
        if not non_null:
            return "0", []
        return (
            "json_type(data, ?) = 'array' AND EXISTS "
            f"(SELECT 1 FROM json_each(data, ?) WHERE json_each.value IN ({placeholders}))",
            [path, path, *non_null],
        )

    raise StoreError("Unsupported operator", context={"operator": op, "operation": "query"})


def compile_query(
    collection: str,
    filters: Sequence[Filter],
    orderings: Sequence[Ordering],
    limit: int | None,
) -> tuple[str, list[Any]]:
    """Compile a store query to a SELECT statement and its parameters."""
    conditions = ["collection = ?"]
    params: list[Any] = [collection]

    for condition in filters:
        sql, condition_params = compile_filter(condition)
        conditions.append(sql)
        params.extend(condition_params)

    order_terms: list[str] = []
    order_params: list[Any] = []
    for ordering in orderings:
        path = json_path(ordering.field)
        conditions.append("json_type(data, ?) IS NOT NULL")
        params.append(path)
        order_terms.append(f"json_extract(data, ?) {ordering.direction.value.upper()}")
        order_params.append(path)
    order_terms.append("doc_id ASC")

    query = (
        "SELECT data FROM documents WHERE "
        + " AND ".join(conditions)
        + " ORDER BY "
        + ", ".join(order_terms)
    )
    params.extend(order_params)

    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)

    return query, params


class SQLiteDocumentStore(DocumentStore):
    """DocumentStore persisted in a SQLite database file."""

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the store.

        Args:
            db_path: Database file. ":memory:" keeps everything in memory.
        """
        self.db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Open the connection and create the schema."""
        if self._db is not None:
            return
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = await aiosqlite.connect(self.db_path)
            self._db.row_factory = aiosqlite.Row
            await self._db.execute(_SCHEMA)
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StoreError(
                "Failed to open document store",
                context={"db_path": str(self.db_path), "error": str(e)},
            ) from e

        logger.info("SQLite document store initialized", db_path=str(self.db_path))

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> SQLiteDocumentStore:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _connection(self) -> aiosqlite.Connection:
        # Opened lazily so a store built by create_store() is usable as-is
        if self._db is None:
            await self.init()
        assert self._db is not None
        return self._db

    def normalize_id(self, doc_id: Hashable) -> Hashable:
        return str(doc_id)

    async def get(self, collection: str, doc_id: Hashable) -> Document | None:
        db = await self._connection()
        try:
            async with db.execute(
                "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, str(doc_id)),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise self._wrap(e, collection, doc_id, "get") from e

        if row is None:
            return None
        return orjson.loads(row["data"])

    async def set(self, collection: str, doc_id: Hashable, document: Document) -> WriteResult:
        db = await self._connection()
        data = self._dumps(document, collection, doc_id, "set")
        async with self._write_lock:
            try:
                await db.execute(
                    """
                    INSERT INTO documents (collection, doc_id, data, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(collection, doc_id) DO UPDATE SET
                        data=excluded.data,
                        updated_at=excluded.updated_at
                    """,
                    (collection, str(doc_id), data, utc_now().isoformat()),
                )
                await db.commit()
            except aiosqlite.Error as e:
                raise self._wrap(e, collection, doc_id, "set") from e

        logger.debug("Stored document", collection=collection, doc_id=doc_id)
        return WriteResult(collection=collection, doc_id=doc_id, operation="set")

    async def update(self, collection: str, doc_id: Hashable, partial: Document) -> WriteResult:
        db = await self._connection()
        # The read and the write must not interleave with another write
        async with self._write_lock:
            current = await self.get(collection, doc_id)
            if current is None:
                raise self._not_found(collection, doc_id)

            data = self._dumps({**current, **partial}, collection, doc_id, "update")
            try:
                cursor = await db.execute(
                    "UPDATE documents SET data = ?, updated_at = ? "
                    "WHERE collection = ? AND doc_id = ?",
                    (data, utc_now().isoformat(), collection, str(doc_id)),
                )
                updated = cursor.rowcount
                await db.commit()
            except aiosqlite.Error as e:
                raise self._wrap(e, collection, doc_id, "update") from e

        if updated == 0:
            raise self._not_found(collection, doc_id)

        logger.debug("Updated document", collection=collection, doc_id=doc_id)
        return WriteResult(collection=collection, doc_id=doc_id, operation="update")

    async def delete(self, collection: str, doc_id: Hashable) -> WriteResult:
        db = await self._connection()
        async with self._write_lock:
            try:
                await db.execute(
                    "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, str(doc_id)),
                )
                await db.commit()
            except aiosqlite.Error as e:
                raise self._wrap(e, collection, doc_id, "delete") from e

        logger.debug("Deleted document", collection=collection, doc_id=doc_id)
        return WriteResult(collection=collection, doc_id=doc_id, operation="delete")

    async def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        orderings: Sequence[Ordering] = (),
        limit: int | None = None,
    ) -> list[Document]:
        db = await self._connection()
        sql, params = compile_query(collection, filters, orderings, limit)
        try:
            async with db.execute(sql, params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise self._wrap(e, collection, None, "query") from e

        return [orjson.loads(row["data"]) for row in rows]

    @staticmethod
    def _dumps(document: Document, collection: str, doc_id: Hashable, operation: str) -> str:
        try:
            return orjson.dumps(document).decode("utf-8")
        except orjson.JSONEncodeError as e:
            raise StoreError(
                "Document is not JSON serializable",
                context={"collection": collection, "doc_id": doc_id, "operation": operation},
            ) from e

    @staticmethod
    def _wrap(error: Exception, collection: str, doc_id: Hashable | None, operation: str) -> StoreError:
        return StoreError(
            "SQLite operation failed",
            context={
                "collection": collection,
                "doc_id": doc_id,
                "operation": operation,
                "error": str(error),
            },
        )

    @staticmethod
    def _not_found(collection: str, doc_id: Hashable) -> DocumentNotFoundError:
        return DocumentNotFoundError(
            "No document to update",
            context={"collection": collection, "doc_id": doc_id, "operation": "update"},
        )

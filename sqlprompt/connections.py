"""Schema sources that answer the metadata cache's enumeration questions."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Coroutine, Mapping, Sequence, TypeVar

import asyncpg

from .completion.metadata import SchemaSourceError
from .models import ConnectionProfile, SchemaSnapshot

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncpgSchemaSource:
    """Enumerates PostgreSQL metadata via asyncpg; schemas play the role of databases.

    asyncpg is async-only while the cache refresh path is synchronous, so the
    source owns a private event loop running on a daemon thread and keeps a
    single connection open until ``close()``.
    """

    _DATABASES_QUERY = """
        SELECT schema_name
        FROM information_schema.schemata
        ORDER BY schema_name
    """

    _TABLES_QUERY = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = $1
        ORDER BY table_name
    """

    _COLUMNS_QUERY = """
        SELECT column_name
        FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
    """

    def __init__(self, profile: ConnectionProfile, *, connect_timeout: float = 3.0) -> None:
        self._profile = profile
        self._connect_timeout = connect_timeout
        self._conn: Any = None
        self._closed = False
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="sqlprompt-asyncpg-source",
            daemon=True,
        )
        self._loop_thread.start()

    @property
    def label(self) -> str:
        return "PostgreSQL"

    def list_databases(self) -> Sequence[str]:
        rows = self._run(self._fetch(self._DATABASES_QUERY))
        return [str(row["schema_name"]) for row in rows]

    def list_tables(self, database: str) -> Sequence[str]:
        rows = self._run(self._fetch(self._TABLES_QUERY, database))
        return [str(row["table_name"]) for row in rows]

    def list_columns(self, database: str, table: str) -> Sequence[str]:
        rows = self._run(self._fetch(self._COLUMNS_QUERY, database, table))
        return [str(row["column_name"]) for row in rows]

    def close(self) -> None:
        """Close the connection and stop the background loop."""

        if self._closed:
            return
        if self._conn is not None:
            try:
                self._run(self._close())
            except SchemaSourceError:
                LOG.debug("Ignoring error while closing connection", exc_info=True)
        self._closed = True
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=1)

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        if self._closed:
            coro.close()
            raise SchemaSourceError(f"Schema source for '{self._profile.name}' is closed")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    async def _fetch(self, query: str, *args: object) -> list[Any]:
        conn = await self._connection()
        try:
            return list(await conn.fetch(query, *args))
        except Exception as exc:
            raise SchemaSourceError(f"Metadata query failed for '{self._profile.name}': {exc}") from exc

    async def _connection(self) -> Any:
        if self._conn is None:
            try:
                self._conn = await asyncpg.connect(**self._profile.connect_kwargs(self._connect_timeout))
            except Exception as exc:
                raise SchemaSourceError(
                    f"Failed to connect to profile '{self._profile.name}': {exc}"
                ) from exc
        return self._conn

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        try:
            await conn.close()
        except Exception as exc:
            raise SchemaSourceError(str(exc)) from exc


DEMO_METADATA_PRESETS: Mapping[str, Mapping[str, Mapping[str, Sequence[str]]]] = {
    "demo": {
        "information_schema": {"tables": ("table_name", "table_schema")},
        "shop": {
            "customers": ("id", "email", "name", "created_at"),
            "orders": ("order_id", "customer_id", "amount", "status", "created_at"),
            "payments": ("id", "order_id", "amount", "paid_at"),
        },
        "analytics": {
            "sessions": ("id", "user_id", "started_at", "device"),
            "events": ("id", "session_id", "name", "payload"),
        },
    },
}


class DemoSchemaSource:
    """In-memory schema source used for demo profiles and offline fallback."""

    def __init__(self, metadata: Mapping[str, Mapping[str, Sequence[str]]]) -> None:
        self._metadata: SchemaSnapshot = {
            database: {table: tuple(columns) for table, columns in tables.items()}
            for database, tables in metadata.items()
        }

    @classmethod
    def for_profile(cls, profile: ConnectionProfile) -> "DemoSchemaSource":
        if profile.metadata:
            return cls(profile.metadata)
        key = profile.metadata_key or profile.name
        return cls(DEMO_METADATA_PRESETS.get(key, DEMO_METADATA_PRESETS["demo"]))

    @property
    def label(self) -> str:
        return "Demo"

    def list_databases(self) -> Sequence[str]:
        return list(self._metadata)

    def list_tables(self, database: str) -> Sequence[str]:
        tables = self._metadata.get(database)
        if tables is None:
            raise SchemaSourceError(f"Unknown database '{database}'")
        return list(tables)

    def list_columns(self, database: str, table: str) -> Sequence[str]:
        try:
            return list(self._metadata[database][table])
        except KeyError as exc:
            raise SchemaSourceError(f"Unknown table '{database}.{table}'") from exc

    def close(self) -> None:
        return None


__all__ = [
    "AsyncpgSchemaSource",
    "DEMO_METADATA_PRESETS",
    "DemoSchemaSource",
]

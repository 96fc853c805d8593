"""Process-wide schema metadata cache feeding identifier suggestions."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping, Protocol, Sequence

LOG = logging.getLogger(__name__)

DEFAULT_TTL = 300.0

SYSTEM_DATABASES = frozenset(
    {
        "information_schema",
        "mysql",
        "performance_schema",
        "sys",
        "pg_catalog",
        "pg_toast",
    }
)


class SchemaSourceError(RuntimeError):
    """Raised when a live session cannot enumerate databases, tables or columns."""


class SchemaSource(Protocol):
    """Live database session able to answer the three metadata questions."""

    def list_databases(self) -> Sequence[str]:
        """Return every database visible to the session."""

    def list_tables(self, database: str) -> Sequence[str]:
        """Return the tables of ``database``."""

    def list_columns(self, database: str, table: str) -> Sequence[str]:
        """Return the columns of ``database.table`` in ordinal order."""


def table_key(database: str, table: str) -> str:
    """Key used for the column mapping: lower-cased ``db.table``."""

    return f"{database}.{table}".lower()


def is_system_database(name: str) -> bool:
    return name.lower() in SYSTEM_DATABASES


@dataclass(slots=True)
class MetadataSnapshot:
    """Cached names; ``tables``/``columns`` are only ever replaced wholesale."""

    databases: tuple[str, ...] = ()
    tables: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    columns: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    last_refresh: float | None = None
    loaded: bool = False

    def tables_of(self, database: str) -> tuple[str, ...]:
        return self.tables.get(database.lower(), ())

    def columns_of(self, database: str, table: str) -> tuple[str, ...]:
        return self.columns.get(table_key(database, table), ())

    def all_tables(self) -> list[tuple[str, str]]:
        return [(database, table) for database, names in self.tables.items() for table in names]

    def all_columns(self) -> list[tuple[str, str]]:
        return [(key, column) for key, names in self.columns.items() for column in names]


class MetadataCache:
    """Snapshot of databases → tables → columns guarded by a single lock.

    Writers (``refresh``) hold the lock for the whole enumeration. Readers on
    the keystroke path go through ``snapshot()`` which never waits: if a
    refresh is running they get ``None`` and skip identifier suggestions.
    ``is_stale()`` and ``invalidate()`` never wait either.
    """

    def __init__(
        self,
        *,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot = MetadataSnapshot()
        self._generation = 0
        self._refreshed_generation = 0

    @property
    def ttl(self) -> float:
        return self._ttl

    @contextmanager
    def snapshot(self, *, blocking: bool = False) -> Iterator[MetadataSnapshot | None]:
        """Yield the current snapshot, or ``None`` if the lock is busy."""

        acquired = self._lock.acquire(blocking=blocking)
        if not acquired:
            LOG.debug("Metadata cache busy; skipping identifier suggestions")
            yield None
            return
        try:
            yield self._snapshot
        finally:
            self._lock.release()

    def is_stale(self) -> bool:
        """Whether a refresh is due; reports ``False`` while one is running."""

        if not self._lock.acquire(blocking=False):
            return False
        try:
            return self._is_stale_locked()
        finally:
            self._lock.release()

    def invalidate(self) -> None:
        """Force the next refresh to re-enumerate, keeping current names visible.

        Does not take the lock. Invalidating while a refresh is running leaves
        the cache stale once that refresh completes.
        """

        self._generation += 1

    def refresh(self, source: SchemaSource) -> bool:
        """Re-enumerate metadata from ``source`` if the snapshot is stale.

        Returns ``True`` when an enumeration happened and ``False`` for the
        no-op case. Failure to list databases propagates; per-database and
        per-table failures are skipped.
        """

        with self._lock:
            if not self._is_stale_locked():
                return False
            generation = self._generation
            databases = tuple(source.list_databases())
            tables: dict[str, tuple[str, ...]] = {}
            columns: dict[str, tuple[str, ...]] = {}
            for database in databases:
                if is_system_database(database):
                    continue
                try:
                    names = tuple(source.list_tables(database))
                except SchemaSourceError as exc:
                    LOG.debug("Skipping tables of database", extra={"database": database, "error": str(exc)})
                    continue
                tables[database.lower()] = names
                for table in names:
                    try:
                        columns[table_key(database, table)] = tuple(source.list_columns(database, table))
                    except SchemaSourceError as exc:
                        LOG.debug(
                            "Skipping columns of table",
                            extra={"database": database, "table": table, "error": str(exc)},
                        )
            self._snapshot = MetadataSnapshot(
                databases=databases,
                tables=tables,
                columns=columns,
                last_refresh=self._clock(),
                loaded=True,
            )
            self._refreshed_generation = generation
        LOG.info(
            "Metadata refreshed",
            extra={"databases": len(databases), "tables": sum(len(v) for v in tables.values())},
        )
        return True

    def databases(self) -> tuple[str, ...]:
        with self._lock:
            return self._snapshot.databases

    def tables_of(self, database: str) -> tuple[str, ...]:
        with self._lock:
            return self._snapshot.tables_of(database)

    def columns_of(self, database: str, table: str) -> tuple[str, ...]:
        with self._lock:
            return self._snapshot.columns_of(database, table)

    def load(
        self,
        databases: Sequence[str],
        tables: Mapping[str, Sequence[str]],
        columns: Mapping[str, Sequence[str]],
    ) -> None:
        """Install a snapshot directly (demo profiles and tests)."""

        with self._lock:
            self._snapshot = MetadataSnapshot(
                databases=tuple(databases),
                tables={db.lower(): tuple(names) for db, names in tables.items()},
                columns={key.lower(): tuple(names) for key, names in columns.items()},
                last_refresh=self._clock(),
                loaded=True,
            )
            self._refreshed_generation = self._generation

    def _is_stale_locked(self) -> bool:
        snapshot = self._snapshot
        if not snapshot.loaded or snapshot.last_refresh is None:
            return True
        if self._refreshed_generation != self._generation:
            return True
        return self._clock() - snapshot.last_refresh > self._ttl


__all__ = [
    "DEFAULT_TTL",
    "MetadataCache",
    "MetadataSnapshot",
    "SYSTEM_DATABASES",
    "SchemaSource",
    "SchemaSourceError",
    "is_system_database",
    "table_key",
]

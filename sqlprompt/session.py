"""Connection/session manager wiring metadata and the current database into completion."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from .completion import CompletionService, MetadataCache, SchemaSourceError
from .completion.metadata import SchemaSource
from .config import AppConfig, ConnectionProfileConfig
from .connections import AsyncpgSchemaSource, DemoSchemaSource
from .models import ConnectionProfile
from .query import (
    AsyncpgQueryExecutor,
    DemoQueryExecutor,
    QueryExecutionError,
    QueryExecutor,
    QueryResult,
)

LOG = logging.getLogger(__name__)

SessionListener = Callable[["SessionState"], None]
SourceFactory = Callable[[ConnectionProfile], "ClosableSource"]
RefreshScheduler = Callable[[], object]

_SCHEMA_CHANGING = ("CREATE", "DROP", "ALTER")
_IDENTIFIER_STRIP = "`\"'; "


class ClosableSource(SchemaSource, Protocol):
    """Schema source with a display label and a close hook."""

    @property
    def label(self) -> str: ...

    def close(self) -> None: ...


@dataclass(frozen=True, slots=True)
class SessionState:
    """Current session snapshot (active profile, database, cache status)."""

    profile: ConnectionProfile
    current_database: str | None
    databases: tuple[str, ...]
    table_count: int
    refreshed_at: datetime | None
    backend_label: str
    using_fallback: bool = False
    last_error: str | None = None
    status: str = "Connected"


class SessionManager:
    """Owns the active schema source, the metadata cache, and the current database.

    The completion service only ever receives pushes from here: metadata goes
    into the shared cache and database switches go through
    ``CompletionService.set_current_database``.
    """

    def __init__(
        self,
        completion: CompletionService,
        *,
        config: AppConfig,
        source_factory: SourceFactory | None = None,
        fallback_factory: SourceFactory | None = None,
        executor: QueryExecutor | None = None,
        fallback_executor: QueryExecutor | None = None,
        refresh_scheduler: RefreshScheduler | None = None,
        autoconnect: bool = True,
    ) -> None:
        self._completion = completion
        self._config = config
        self._profiles = tuple(self._from_config(entry) for entry in config.profiles)
        self._listeners: set[SessionListener] = set()
        self._source_factory = source_factory or AsyncpgSchemaSource
        self._fallback_factory = fallback_factory or DemoSchemaSource.for_profile
        self._executor = executor or AsyncpgQueryExecutor()
        self._fallback_executor = fallback_executor or DemoQueryExecutor()
        self._refresh_scheduler = refresh_scheduler
        self._profile: ConnectionProfile | None = None
        self._source: ClosableSource | None = None
        self._using_fallback = False
        self._last_error: str | None = None
        self._refreshed_at: datetime | None = None
        self._state: SessionState | None = None
        active_name = config.active_profile or (self._profiles[0].name if self._profiles else None)
        if autoconnect and active_name:
            self.connect(active_name)

    @property
    def profiles(self) -> tuple[ConnectionProfile, ...]:
        """Profiles available in the current config."""

        return self._profiles

    @property
    def state(self) -> SessionState | None:
        return self._state

    @property
    def metadata(self) -> MetadataCache:
        return self._completion.metadata

    @property
    def current_database(self) -> str | None:
        return self._completion.current_database

    @property
    def active_profile_name(self) -> str | None:
        return self._profile.name if self._profile else None

    def connect(self, name: str) -> SessionState:
        """Activate the requested profile and load its metadata."""

        profile = self._profile_by_name(name)
        self._close_source()
        self._profile = profile
        self._last_error = None
        self._using_fallback = False
        self._source = self._source_factory(profile)
        self.metadata.invalidate()
        try:
            self.metadata.refresh(self._source)
        except SchemaSourceError as exc:
            LOG.warning(
                "Primary schema source unavailable, using demo fallback",
                extra={"profile": profile.name, "error": str(exc)},
            )
            self._close_source()
            self._last_error = str(exc)
            self._using_fallback = True
            self._source = self._fallback_factory(profile)
            self.metadata.invalidate()
            self.metadata.refresh(self._source)
        self._refreshed_at = datetime.now(tz=timezone.utc)
        self._completion.set_current_database(profile.schema)
        return self._publish()

    def use_database(self, name: str) -> SessionState:
        """Switch the current database; completion is told immediately."""

        database = name.strip(_IDENTIFIER_STRIP)
        if not database:
            raise ValueError("Database name is required.")
        self._completion.set_current_database(database)
        LOG.debug("Current database changed", extra={"database": database})
        return self._publish(status="Database changed")

    def refresh_metadata(self, *, force: bool = False) -> bool:
        """Refresh the cache from the active source; errors are recorded, not raised."""

        if self._source is None:
            return False
        if force:
            self.metadata.invalidate()
        try:
            refreshed = self.metadata.refresh(self._source)
        except SchemaSourceError as exc:
            LOG.warning("Metadata refresh failed", extra={"error": str(exc)})
            self._last_error = str(exc)
            self._publish(status="Refresh failed")
            return False
        self._last_error = None
        if refreshed:
            self._refreshed_at = datetime.now(tz=timezone.utc)
        self._publish(status="Refreshed" if refreshed else "Up to date")
        return refreshed

    async def run_query(self, sql: str) -> QueryResult:
        """Execute ``sql``; ``USE`` is handled locally, DDL triggers a metadata refresh.

        The refresh goes to ``refresh_scheduler`` when one was given, otherwise
        it runs in a worker thread so the event loop keeps serving input.
        """

        statement = sql.strip().rstrip(";").strip()
        words = statement.split()
        if not words:
            raise QueryExecutionError("Provide SQL to execute.")
        if self._profile is None:
            raise QueryExecutionError("No active connection profile.")
        head = words[0].upper()
        if head == "USE":
            if len(words) < 2:
                raise QueryExecutionError("USE requires a database name.")
            self.use_database(words[1])
            return QueryResult(columns=(), rows=(), status="Database changed", elapsed_ms=0)
        executor = self._fallback_executor if self._using_fallback else self._executor
        result = await executor.execute(self._profile, statement, database=self.current_database)
        if head in _SCHEMA_CHANGING:
            self.metadata.invalidate()
            if self._refresh_scheduler is not None:
                self._refresh_scheduler()
            else:
                await asyncio.to_thread(self.refresh_metadata)
        return result

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Subscribe to session updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        if self._state:
            listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def close(self) -> None:
        self._close_source()

    def _publish(self, *, status: str = "Connected") -> SessionState:
        assert self._profile is not None
        previous = self._state
        with self.metadata.snapshot() as snapshot:
            if snapshot is not None:
                databases = snapshot.databases
                table_count = sum(len(tables) for tables in snapshot.tables.values())
            elif previous is not None:
                databases, table_count = previous.databases, previous.table_count
            else:
                databases, table_count = (), 0
        self._state = SessionState(
            profile=self._profile,
            current_database=self.current_database,
            databases=databases,
            table_count=table_count,
            refreshed_at=self._refreshed_at,
            backend_label=self._source.label if self._source else "Disconnected",
            using_fallback=self._using_fallback,
            last_error=self._last_error,
            status=status,
        )
        for listener in tuple(self._listeners):
            listener(self._state)
        return self._state

    def _close_source(self) -> None:
        source, self._source = self._source, None
        if source is None:
            return
        try:
            source.close()
        except SchemaSourceError:
            LOG.debug("Ignoring error while closing schema source", exc_info=True)

    def _profile_by_name(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' not found.")

    @staticmethod
    def _from_config(profile: ConnectionProfileConfig) -> ConnectionProfile:
        metadata = (
            {
                database: {table: tuple(columns) for table, columns in tables.items()}
                for database, tables in profile.metadata.items()
            }
            if profile.metadata
            else None
        )
        return ConnectionProfile(
            name=profile.name,
            dsn=profile.dsn,
            host=profile.host,
            port=profile.port,
            database=profile.database,
            user=profile.user,
            schema=profile.schema_name,
            metadata_key=profile.metadata_key,
            metadata=metadata,
        )


__all__ = ["SessionManager", "SessionState"]

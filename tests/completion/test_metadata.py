"""Tests for the metadata cache."""

from __future__ import annotations

import threading
import time

import pytest

from sqlprompt.completion import MetadataCache, SchemaSourceError


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class _CountingSource:
    def __init__(self, schema: dict[str, dict[str, tuple[str, ...]]]) -> None:
        self.schema = schema
        self.database_calls = 0
        self.table_calls: list[str] = []
        self.failing_tables: set[str] = set()
        self.failing_databases: set[str] = set()

    def list_databases(self) -> list[str]:
        self.database_calls += 1
        return list(self.schema)

    def list_tables(self, database: str) -> list[str]:
        self.table_calls.append(database)
        if database in self.failing_databases:
            raise SchemaSourceError(f"no access to {database}")
        return list(self.schema[database])

    def list_columns(self, database: str, table: str) -> list[str]:
        if table in self.failing_tables:
            raise SchemaSourceError(f"no access to {table}")
        return list(self.schema[database][table])


class _DownSource:
    def list_databases(self) -> list[str]:
        raise SchemaSourceError("connection lost")

    def list_tables(self, database: str) -> list[str]:  # pragma: no cover - never reached
        return []

    def list_columns(self, database: str, table: str) -> list[str]:  # pragma: no cover - never reached
        return []


class _GatedSource(_CountingSource):
    """Holds ``list_databases`` open until ``release`` is set."""

    def __init__(self, schema: dict[str, dict[str, tuple[str, ...]]]) -> None:
        super().__init__(schema)
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_databases(self) -> list[str]:
        self.entered.set()
        self.release.wait(timeout=5)
        return super().list_databases()


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def source() -> _CountingSource:
    return _CountingSource(
        {
            "information_schema": {"tables": ("table_name",)},
            "mysql": {"user": ("host", "user")},
            "Shop": {"Orders": ("order_id", "amount"), "customers": ("id", "email")},
            "analytics": {"events": ("id", "name")},
        }
    )


def test_unloaded_cache_is_stale() -> None:
    cache = MetadataCache()

    assert cache.is_stale() is True
    assert cache.databases() == ()


def test_refresh_is_a_noop_while_fresh(clock: _Clock, source: _CountingSource) -> None:
    cache = MetadataCache(clock=clock)

    assert cache.refresh(source) is True
    assert cache.refresh(source) is False
    assert source.database_calls == 1
    assert cache.is_stale() is False


def test_cache_goes_stale_after_ttl(clock: _Clock, source: _CountingSource) -> None:
    cache = MetadataCache(ttl=300, clock=clock)
    cache.refresh(source)

    clock.now += 300
    assert cache.is_stale() is False
    clock.now += 1
    assert cache.is_stale() is True
    assert cache.refresh(source) is True
    assert source.database_calls == 2


def test_system_databases_are_listed_but_not_enumerated(source: _CountingSource) -> None:
    cache = MetadataCache()

    cache.refresh(source)

    assert cache.databases() == ("information_schema", "mysql", "Shop", "analytics")
    assert source.table_calls == ["Shop", "analytics"]
    assert cache.tables_of("mysql") == ()


def test_lookups_are_case_insensitive(source: _CountingSource) -> None:
    cache = MetadataCache()

    cache.refresh(source)

    assert cache.tables_of("shop") == ("Orders", "customers")
    assert cache.columns_of("SHOP", "orders") == ("order_id", "amount")


def test_per_table_failures_are_skipped(source: _CountingSource) -> None:
    source.failing_tables.add("customers")
    source.failing_databases.add("analytics")
    cache = MetadataCache()

    assert cache.refresh(source) is True

    assert cache.columns_of("Shop", "Orders") == ("order_id", "amount")
    assert cache.columns_of("Shop", "customers") == ()
    assert cache.tables_of("Shop") == ("Orders", "customers")
    assert cache.tables_of("analytics") == ()


def test_database_listing_failure_propagates_and_keeps_snapshot(source: _CountingSource) -> None:
    cache = MetadataCache()
    cache.refresh(source)
    cache.invalidate()

    with pytest.raises(SchemaSourceError):
        cache.refresh(_DownSource())

    assert cache.is_stale() is True
    assert "Shop" in cache.databases()


def test_refresh_replaces_snapshot_wholesale(source: _CountingSource) -> None:
    cache = MetadataCache()
    cache.refresh(source)
    replacement = _CountingSource({"billing": {"invoices": ("id", "total")}})

    cache.invalidate()
    cache.refresh(replacement)

    assert cache.databases() == ("billing",)
    assert cache.tables_of("Shop") == ()
    assert cache.columns_of("billing", "invoices") == ("id", "total")


def test_invalidate_keeps_names_visible(source: _CountingSource) -> None:
    cache = MetadataCache()
    cache.refresh(source)

    cache.invalidate()

    assert cache.is_stale() is True
    assert cache.tables_of("analytics") == ("events",)


def test_snapshot_yields_none_when_lock_is_busy() -> None:
    cache = MetadataCache()
    cache.load(["shop"], {"shop": ["orders"]}, {"shop.orders": ["id"]})

    with cache.snapshot(blocking=True) as held:
        assert held is not None
        with cache.snapshot() as inner:
            assert inner is None

    with cache.snapshot() as free:
        assert free is not None
        assert free.all_tables() == [("shop", "orders")]
        assert free.all_columns() == [("shop.orders", "id")]


def test_load_installs_fresh_snapshot(clock: _Clock) -> None:
    cache = MetadataCache(clock=clock)

    cache.load(["Shop"], {"Shop": ["orders"]}, {"Shop.Orders": ["id"]})

    assert cache.is_stale() is False
    assert cache.tables_of("shop") == ("orders",)
    assert cache.columns_of("shop", "orders") == ("id",)


def test_staleness_checks_do_not_wait_for_running_refresh() -> None:
    cache = MetadataCache()
    source = _GatedSource({"shop": {"orders": ("id",)}})
    worker = threading.Thread(target=cache.refresh, args=(source,))
    worker.start()
    try:
        assert source.entered.wait(timeout=5)
        started = time.monotonic()
        assert cache.is_stale() is False
        cache.invalidate()
        elapsed = time.monotonic() - started
    finally:
        source.release.set()
        worker.join(timeout=5)

    assert elapsed < 1.0
    assert cache.tables_of("shop") == ("orders",)
    assert cache.is_stale() is True

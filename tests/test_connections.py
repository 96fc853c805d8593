"""Tests for the schema sources."""

from __future__ import annotations

from typing import Any

import pytest

from sqlprompt.completion import MetadataCache, SchemaSourceError
from sqlprompt.connections import DEMO_METADATA_PRESETS, AsyncpgSchemaSource, DemoSchemaSource
from sqlprompt.models import ConnectionProfile


class _FakeConnection:
    def __init__(self, schema: dict[str, dict[str, list[str]]]) -> None:
        self._schema = schema
        self.queries: list[tuple[str, tuple[object, ...]]] = []
        self.closed = False

    async def fetch(self, query: str, *args: object) -> list[dict[str, str]]:
        assert "information_schema" in query
        self.queries.append((query, args))
        if "schemata" in query:
            return [{"schema_name": name} for name in self._schema]
        if "information_schema.tables" in query:
            (schema,) = args
            return [{"table_name": name} for name in self._schema[str(schema)]]
        schema, table = args
        return [{"column_name": name} for name in self._schema[str(schema)][str(table)]]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def profile() -> ConnectionProfile:
    return ConnectionProfile(name="Local", host="localhost", database="postgres", user="postgres")


def test_asyncpg_source_enumerates_information_schema(
    monkeypatch: pytest.MonkeyPatch, profile: ConnectionProfile
) -> None:
    fake_conn = _FakeConnection(
        {
            "pg_catalog": {"pg_class": ["oid"]},
            "public": {"accounts": ["id", "email"], "orders": ["id", "account_id"]},
        }
    )
    connects: list[dict[str, Any]] = []

    async def _fake_connect(**kwargs: Any) -> _FakeConnection:
        connects.append(kwargs)
        return fake_conn

    monkeypatch.setattr("sqlprompt.connections.asyncpg.connect", _fake_connect)
    source = AsyncpgSchemaSource(profile)

    try:
        cache = MetadataCache()
        assert cache.refresh(source) is True
        assert cache.databases() == ("pg_catalog", "public")
        assert cache.tables_of("public") == ("accounts", "orders")
        assert cache.columns_of("public", "accounts") == ("id", "email")
        assert cache.tables_of("pg_catalog") == ()
        assert len(connects) == 1
        assert connects[0]["host"] == "localhost"
        assert source.label == "PostgreSQL"
    finally:
        source.close()

    assert fake_conn.closed is True


def test_asyncpg_source_wraps_connection_errors(
    monkeypatch: pytest.MonkeyPatch, profile: ConnectionProfile
) -> None:
    async def _fail(**kwargs: Any) -> None:
        raise OSError("connection refused")

    monkeypatch.setattr("sqlprompt.connections.asyncpg.connect", _fail)
    source = AsyncpgSchemaSource(profile)

    try:
        with pytest.raises(SchemaSourceError) as excinfo:
            source.list_databases()
        assert "connection refused" in str(excinfo.value)
    finally:
        source.close()


def test_asyncpg_source_close_is_idempotent(profile: ConnectionProfile) -> None:
    source = AsyncpgSchemaSource(profile)

    source.close()
    source.close()

    with pytest.raises(SchemaSourceError):
        source.list_databases()


def test_demo_source_answers_from_preset() -> None:
    source = DemoSchemaSource.for_profile(ConnectionProfile(name="Local Demo", metadata_key="demo"))

    assert list(source.list_databases()) == list(DEMO_METADATA_PRESETS["demo"])
    assert "orders" in source.list_tables("shop")
    assert list(source.list_columns("shop", "orders"))[0] == "order_id"
    assert source.label == "Demo"


def test_demo_source_prefers_inline_metadata() -> None:
    profile = ConnectionProfile(name="Inline", metadata={"inventory": {"items": ("sku", "quantity")}})

    source = DemoSchemaSource.for_profile(profile)

    assert list(source.list_databases()) == ["inventory"]
    assert list(source.list_columns("inventory", "items")) == ["sku", "quantity"]


def test_demo_source_raises_for_unknown_names() -> None:
    source = DemoSchemaSource({"shop": {"orders": ("id",)}})

    with pytest.raises(SchemaSourceError):
        source.list_tables("missing")
    with pytest.raises(SchemaSourceError):
        source.list_columns("shop", "missing")

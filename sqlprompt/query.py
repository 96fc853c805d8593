"""Statement execution services for the query pad."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Iterable, Protocol

import asyncpg

from .models import ConnectionProfile


class QueryExecutionError(RuntimeError):
    """Raised when a statement fails to execute."""


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized statement output returned to the UI."""

    columns: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]
    status: str
    elapsed_ms: int
    row_count: int | None = None


class QueryExecutor(Protocol):
    """Interface implemented by statement executors."""

    async def execute(
        self,
        profile: ConnectionProfile,
        sql: str,
        *,
        database: str | None = None,
    ) -> QueryResult: ...


class AsyncpgQueryExecutor:
    """Runs SQL statements against PostgreSQL via asyncpg."""

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout

    async def execute(
        self,
        profile: ConnectionProfile,
        sql: str,
        *,
        database: str | None = None,
    ) -> QueryResult:
        statement = sql.strip().rstrip(";").strip()
        if not statement:
            raise QueryExecutionError("Provide SQL to execute.")
        started = time.perf_counter()
        try:
            conn = await asyncpg.connect(**profile.connect_kwargs(self._connect_timeout))
        except Exception as exc:
            raise QueryExecutionError(f"Failed to connect to profile '{profile.name}': {exc}") from exc
        try:
            if database:
                await conn.execute(f"SET search_path TO {_quote_ident(database)}")
            if returns_rows(statement):
                columns, rows = _records_to_rows(await conn.fetch(statement))
                status = f"{len(rows)} row(s) in set"
                row_count: int | None = len(rows)
            else:
                status = await conn.execute(statement)
                columns, rows, row_count = (), (), None
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        finally:
            try:
                await conn.close()
            except Exception:  # pragma: no cover - best effort cleanup
                pass
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        return QueryResult(
            columns=columns,
            rows=rows,
            status=status,
            elapsed_ms=elapsed_ms,
            row_count=row_count,
        )


class DemoQueryExecutor:
    """Returns fake result sets when the demo source is active."""

    def __init__(self, *, row_count: int = 5) -> None:
        self._row_count = row_count

    async def execute(
        self,
        profile: ConnectionProfile,
        sql: str,
        *,
        database: str | None = None,
    ) -> QueryResult:
        if not sql.strip():
            raise QueryExecutionError("Provide SQL to execute.")
        tables = (profile.metadata or {}).get(database or "", {})
        if tables:
            table, columns = next(iter(tables.items()))
        else:
            table, columns = database or profile.name, ("id", "value")
        columns = tuple(columns) or ("demo",)
        rows = tuple(tuple(f"{col}_{idx}" for col in columns) for idx in range(self._row_count))
        return QueryResult(
            columns=columns,
            rows=rows,
            status=f"Demo result for {table}",
            elapsed_ms=random.randint(5, 25),
            row_count=len(rows),
        )


def returns_rows(statement: str) -> bool:
    token = statement.lstrip().split(None, 1)
    if not token:
        return False
    return token[0].lower() in {"select", "with", "show", "values", "describe", "explain"}


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _records_to_rows(
    records: Iterable[asyncpg.Record],
) -> tuple[tuple[str, ...], tuple[tuple[object, ...], ...]]:
    columns: tuple[str, ...] = ()
    rows: list[tuple[object, ...]] = []
    for record in records:
        if not columns:
            columns = tuple(str(key) for key in record.keys())
        rows.append(tuple(record[key] for key in columns))
    return columns, tuple(rows)


__all__ = [
    "AsyncpgQueryExecutor",
    "DemoQueryExecutor",
    "QueryExecutionError",
    "QueryExecutor",
    "QueryResult",
    "returns_rows",
]

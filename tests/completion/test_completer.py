"""Tests for the line-editor adapter."""

from __future__ import annotations

import pytest

from sqlprompt.completion import (
    CompletionService,
    KeywordCatalog,
    MetadataCache,
    Suggestion,
    SqlCompleter,
    apply_completion,
    word_start,
)


class _ServiceStub:
    """Returns a fixed suggestion list for every line."""

    def __init__(self, suggestions: list[Suggestion] | None = None) -> None:
        self.suggestions = suggestions or []
        self.keywords = KeywordCatalog(["SELECT", "SET", "SHOW", "USE"])
        self.calls = 0

    def complete(self, line: str, cursor: int) -> tuple[int, list[Suggestion]]:
        self.calls += 1
        return word_start(line, cursor), list(self.suggestions)


@pytest.fixture
def completer() -> SqlCompleter:
    cache = MetadataCache()
    cache.load(
        ["shop"],
        {"shop": ["orders", "customers"]},
        {"shop.orders": ["order_id", "amount"], "shop.customers": ["id", "email"]},
    )
    return SqlCompleter(CompletionService(cache, current_database="shop"))


@pytest.mark.parametrize(
    ("line", "cursor", "expected"),
    [
        ("SELECT * FROM ord", 17, 14),
        ("SELECT COUNT(ord", 16, 13),
        ("shop.ord", 8, 5),
        ("a,b", 3, 2),
        ("", 0, 0),
        ("SELECT", 99, 0),
    ],
)
def test_word_start(line: str, cursor: int, expected: int) -> None:
    assert word_start(line, cursor) == expected


def test_complete_returns_display_and_clean_replacement() -> None:
    stub = _ServiceStub([Suggestion.table("`order items`", "shop", 95)])
    completer = SqlCompleter(stub)  # type: ignore[arg-type]

    start, completions = completer.complete("SELECT * FROM ord", 17)

    assert start == 14
    assert completions[0].replacement == "order items"
    assert completions[0].display.startswith("📊 `order items` - Table:")


def test_complete_uses_live_metadata(completer: SqlCompleter) -> None:
    _, completions = completer.complete("SELECT * FROM cu", 16)

    assert [entry.replacement for entry in completions] == ["customers"]


def test_complete_falls_back_to_keyword_prefixes() -> None:
    completer = SqlCompleter(_ServiceStub())  # type: ignore[arg-type]

    _, completions = completer.complete("se", 2)

    assert [entry.replacement for entry in completions] == ["SELECT", "SET"]
    assert completions[0].display == "🔵 SELECT - SQL keyword"


def test_no_keyword_fallback_after_table_or_database_position() -> None:
    completer = SqlCompleter(_ServiceStub())  # type: ignore[arg-type]

    assert completer.complete("SELECT * FROM ", 14)[1] == []
    assert completer.complete("USE ", 4)[1] == []


@pytest.mark.parametrize(
    ("line", "limit"),
    [("USE ", 20), ("SELECT * FROM ", 15), ("SELECT ", 10)],
)
def test_display_limits_depend_on_position(line: str, limit: int) -> None:
    stub = _ServiceStub([Suggestion.command(f"item_{index}", "", 60) for index in range(30)])
    completer = SqlCompleter(stub)  # type: ignore[arg-type]

    _, completions = completer.complete(line, len(line))

    assert len(completions) == limit


def test_hint_shows_untyped_tail_of_best_match(completer: SqlCompleter) -> None:
    assert completer.hint("SELECT * FROM ord", 17) == "ers"


def test_hint_reuses_suggestions_of_preceding_complete() -> None:
    stub = _ServiceStub([Suggestion.table("orders", "shop", 95)])
    completer = SqlCompleter(stub)  # type: ignore[arg-type]

    completer.complete("SELECT * FROM ord", 17)

    assert completer.hint("SELECT * FROM ord", 17) == "ers"
    assert stub.calls == 1
    assert completer.hint("SELECT * FROM or", 16) == "ders"
    assert stub.calls == 2


def test_hint_is_empty_when_word_already_complete(completer: SqlCompleter) -> None:
    assert completer.hint("SELECT * FROM orders", 20) is None


@pytest.mark.parametrize(
    ("line", "fragment"),
    [
        ("USE ", "database name"),
        ("SELECT * FROM ", "table name"),
        ("SELECT", "column name"),
        ("", "SQL command"),
    ],
)
def test_hint_falls_back_to_usage_tips(line: str, fragment: str) -> None:
    completer = SqlCompleter(_ServiceStub())  # type: ignore[arg-type]

    hint = completer.hint(line, len(line))

    assert hint is not None and fragment in hint


def test_apply_completion_splices_replacement() -> None:
    assert apply_completion("SELECT * FROM ord", 17, 14, "orders") == ("SELECT * FROM orders", 20)
    assert apply_completion("SELECT ord WHERE", 10, 7, "order_id") == ("SELECT order_id WHERE", 15)

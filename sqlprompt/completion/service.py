"""Suggestion generator coordinating context analysis, metadata, and catalogs."""

from __future__ import annotations

import logging

from .analyzer import ContextAnalyzer
from .catalog import CommandCatalog, ConditionCatalog, KeywordCatalog
from .completer import word_start
from .functions import FunctionCatalog
from .metadata import MetadataCache, MetadataSnapshot, table_key
from .models import InputContext, Suggestion
from .scoring import is_prefix, score_relevance

LOG = logging.getLogger(__name__)

DATABASE_BASE_SCORE = 90
CURRENT_TABLE_SCORE = 95
TABLE_BASE_SCORE = 85
COLUMN_BASE_SCORE = 90
SAMPLE_COLUMN_BASE_SCORE = 80
SAMPLE_COLUMN_THRESHOLD = 70
SELECT_SAMPLE_LIMIT = 10
FALLBACK_SAMPLE_LIMIT = 20
PLACEHOLDER_SCORE = 50

CONTEXT_LIMITS: dict[InputContext, int] = {
    InputContext.USE_COMMAND: 20,
    InputContext.FROM: 15,
    InputContext.INSERT_INTO: 15,
    InputContext.UPDATE: 15,
    InputContext.SELECT: 12,
    InputContext.WHERE: 15,
    InputContext.HAVING: 15,
    InputContext.JOIN_ON: 15,
    InputContext.ORDER_BY: 15,
    InputContext.GROUP_BY: 15,
    InputContext.GENERAL: 10,
}
DEFAULT_LIMIT = 10

_TABLE_CONTEXTS = frozenset({InputContext.FROM, InputContext.INSERT_INTO, InputContext.UPDATE})
_PREDICATE_CONTEXTS = frozenset({InputContext.WHERE, InputContext.HAVING, InputContext.JOIN_ON})
_SORT_CONTEXTS = frozenset({InputContext.ORDER_BY, InputContext.GROUP_BY})
_TABLE_TOKEN_STRIP = "`,;"


class CompletionService:
    """Facade that turns ``(line, word)`` into a ranked, bounded suggestion list.

    Nothing here raises to the caller. The metadata snapshot is taken with a
    non-blocking lock acquisition, so a concurrent refresh shows up as fewer
    (or no) suggestions rather than a stalled keystroke.
    """

    def __init__(
        self,
        metadata: MetadataCache | None = None,
        *,
        analyzer: ContextAnalyzer | None = None,
        keywords: KeywordCatalog | None = None,
        functions: FunctionCatalog | None = None,
        conditions: ConditionCatalog | None = None,
        commands: CommandCatalog | None = None,
        current_database: str | None = None,
    ) -> None:
        self._metadata = metadata or MetadataCache()
        self._analyzer = analyzer or ContextAnalyzer()
        self._keywords = keywords or KeywordCatalog.default()
        self._functions = functions or FunctionCatalog.default()
        self._conditions = conditions or ConditionCatalog.default()
        self._commands = commands or CommandCatalog.default()
        self._current_database = current_database

    @property
    def metadata(self) -> MetadataCache:
        return self._metadata

    @property
    def keywords(self) -> KeywordCatalog:
        return self._keywords

    @property
    def current_database(self) -> str | None:
        return self._current_database

    def set_current_database(self, database: str | None) -> None:
        """Session notification: the active database changed (last writer wins)."""

        self._current_database = database or None

    def classify(self, line: str) -> InputContext:
        return self._analyzer.classify(line)

    def complete(self, line: str, cursor: int) -> tuple[int, list[Suggestion]]:
        """Return the offset where the current word starts and its suggestions."""

        start = word_start(line, cursor)
        return start, self.suggest(line, line[start:cursor])

    def suggest(self, line: str, word: str) -> list[Suggestion]:
        """Return suggestions for ``word`` at the end of ``line``, best first."""

        context = self._analyzer.classify(line)
        try:
            with self._metadata.snapshot() as snapshot:
                suggestions = self._collect(context, line, word, snapshot)
        except Exception:  # completion failures must not reach the input loop
            LOG.exception("Suggestion generation failed", extra={"line": line})
            return []
        suggestions.sort(key=lambda item: -item.relevance)
        return suggestions[: context_limit(context)]

    def _collect(
        self,
        context: InputContext,
        line: str,
        word: str,
        snapshot: MetadataSnapshot | None,
    ) -> list[Suggestion]:
        if context is InputContext.USE_COMMAND:
            if snapshot is None:
                return []
            suggestions = self.database_suggestions(snapshot, word)
            if not suggestions and not word:
                suggestions.append(
                    Suggestion.command(
                        "-- No databases available --",
                        "Connect to a server with databases",
                        PLACEHOLDER_SCORE,
                    )
                )
            return suggestions
        if context in _TABLE_CONTEXTS:
            if snapshot is None:
                return []
            suggestions = self.table_suggestions(snapshot, word)
            if not suggestions and not word and context is InputContext.FROM:
                suggestions.append(
                    Suggestion.command(
                        "-- No tables available --",
                        "Connect to a database with tables",
                        PLACEHOLDER_SCORE,
                    )
                )
            return suggestions
        if context is InputContext.SELECT:
            return self._select_suggestions(line, word, snapshot)
        if context in _PREDICATE_CONTEXTS:
            suggestions = self.column_suggestions_for_query(snapshot, line, word)
            suggestions.extend(self._conditions.suggestions_for(word))
            return suggestions
        if context in _SORT_CONTEXTS:
            return self.column_suggestions_for_query(snapshot, line, word)
        suggestions = self._keywords.suggestions_for(word)
        if not word:
            suggestions.extend(self._commands.suggestions())
        return suggestions

    def _select_suggestions(
        self,
        line: str,
        word: str,
        snapshot: MetadataSnapshot | None,
    ) -> list[Suggestion]:
        upper = line.upper()
        if "FROM" in upper:
            suggestions = self.column_suggestions_for_query(snapshot, line, word)
            suggestions.extend(self._functions.suggestions_for(word))
            return suggestions
        if upper.strip() == "SELECT":
            suggestions = self._keywords.suggestions_for(word)
            if not word:
                suggestions.append(Suggestion.command("*", "Select all columns", 95))
                suggestions.append(Suggestion.command("COUNT(*)", "Count all rows", 90))
            return suggestions
        suggestions = self._functions.suggestions_for(word)
        suggestions.extend(self._keywords.suggestions_for(word))
        if len(word) >= 2:
            suggestions.extend(self.sample_column_suggestions(snapshot, word, SELECT_SAMPLE_LIMIT))
        return suggestions

    def database_suggestions(self, snapshot: MetadataSnapshot, word: str) -> list[Suggestion]:
        return [
            Suggestion.database(name, score_relevance(name, word, DATABASE_BASE_SCORE))
            for name in snapshot.databases
            if not word or is_prefix(name, word)
        ]

    def table_suggestions(self, snapshot: MetadataSnapshot, word: str) -> list[Suggestion]:
        """Tables across the snapshot, in-scope ones listed and scored first."""

        current = (self._current_database or "").lower()
        in_scope: list[Suggestion] = []
        others: list[Suggestion] = []
        for database, table in snapshot.all_tables():
            if word and not is_prefix(table, word):
                continue
            if current and database.lower() == current:
                in_scope.append(Suggestion.table(table, database, CURRENT_TABLE_SCORE))
            else:
                relevance = score_relevance(table, word, TABLE_BASE_SCORE)
                others.append(Suggestion.table(table, database, relevance))
        return in_scope + others

    def column_suggestions_for_query(
        self,
        snapshot: MetadataSnapshot | None,
        line: str,
        word: str,
    ) -> list[Suggestion]:
        """Columns of the tables referenced after FROM/JOIN in ``line``."""

        if snapshot is None:
            return []
        tables = extract_table_names(line, self._keywords)
        if not tables:
            return self.sample_column_suggestions(snapshot, word, FALLBACK_SAMPLE_LIMIT)
        suggestions: list[Suggestion] = []
        seen: set[str] = set()
        for table in tables:
            key, columns = _resolve_table(snapshot, table, self._current_database)
            for column in columns:
                if word and not is_prefix(column, word):
                    continue
                if column.lower() in seen:
                    continue
                seen.add(column.lower())
                relevance = score_relevance(column, word, COLUMN_BASE_SCORE)
                suggestions.append(Suggestion.column(column, key, relevance))
        return suggestions

    def sample_column_suggestions(
        self,
        snapshot: MetadataSnapshot | None,
        word: str,
        limit: int,
    ) -> list[Suggestion]:
        """Capped scan over every cached column keeping only decent matches."""

        if snapshot is None:
            return []
        suggestions: list[Suggestion] = []
        for key, column in snapshot.all_columns():
            if len(suggestions) >= limit:
                break
            relevance = score_relevance(column, word, SAMPLE_COLUMN_BASE_SCORE)
            if relevance > SAMPLE_COLUMN_THRESHOLD:
                suggestions.append(Suggestion.column(column, key, relevance))
        return suggestions


def context_limit(context: InputContext) -> int:
    return CONTEXT_LIMITS.get(context, DEFAULT_LIMIT)


def extract_table_names(line: str, keywords: KeywordCatalog) -> list[str]:
    """Tokens right after FROM/JOIN, minus punctuation and keywords."""

    words = line.split()
    tables: list[str] = []
    for index, word in enumerate(words[:-1]):
        if word.upper() not in {"FROM", "JOIN"}:
            continue
        candidate = words[index + 1].strip(_TABLE_TOKEN_STRIP)
        if not candidate or candidate.startswith("("):
            continue
        if keywords.is_keyword(candidate):
            continue
        tables.append(candidate)
    return tables


def _resolve_table(
    snapshot: MetadataSnapshot,
    table: str,
    current_database: str | None,
) -> tuple[str, tuple[str, ...]]:
    if "." in table:
        database, _, name = table.partition(".")
        key = table_key(database.strip("`"), name.strip("`"))
        return key, snapshot.columns.get(key, ())
    if not current_database:
        return table.lower(), ()
    key = table_key(current_database, table)
    return key, snapshot.columns.get(key, ())


__all__ = [
    "CONTEXT_LIMITS",
    "CompletionService",
    "context_limit",
    "extract_table_names",
]

"""Static keyword, condition, and command catalogs used by the completion engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from .models import Suggestion
from .scoring import score_relevance

KEYWORD_BASE_SCORE = 65
CONDITION_BASE_SCORE = 70
# Entries scoring at or below this are misses for a non-empty word.
MATCH_THRESHOLD = 50


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Static catalog row: text inserted, human readable detail, base weight."""

    text: str
    detail: str
    weight: int


class KeywordCatalog:
    """Upper-cased SQL keywords; also answers "is this token a keyword?"."""

    def __init__(self, keywords: Iterable[str]) -> None:
        ordered: dict[str, None] = {}
        for keyword in keywords:
            ordered.setdefault(keyword.upper(), None)
        self._keywords: Tuple[str, ...] = tuple(ordered)
        self._lookup = frozenset(self._keywords)

    @classmethod
    def default(cls) -> "KeywordCatalog":
        return cls(_DEFAULT_KEYWORDS)

    @property
    def keywords(self) -> Tuple[str, ...]:
        return self._keywords

    def is_keyword(self, word: str) -> bool:
        return word.upper() in self._lookup

    def suggestions_for(self, word: str) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for keyword in self._keywords:
            relevance = score_relevance(keyword, word, KEYWORD_BASE_SCORE)
            if relevance > MATCH_THRESHOLD or not word:
                suggestions.append(
                    Suggestion.keyword(keyword, f"SQL keyword: {keyword}", relevance)
                )
        return suggestions


class ConditionCatalog:
    """Operators and predicates offered inside WHERE/HAVING/ON clauses."""

    def __init__(self, entries: Sequence[CatalogEntry]) -> None:
        self._entries = tuple(entries)

    @classmethod
    def default(cls) -> "ConditionCatalog":
        return cls(_DEFAULT_CONDITIONS)

    def suggestions_for(self, word: str) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for entry in self._entries:
            relevance = score_relevance(entry.text, word, entry.weight)
            if relevance > MATCH_THRESHOLD or not word:
                suggestions.append(Suggestion.keyword(entry.text, entry.detail, relevance))
        return suggestions


class CommandCatalog:
    """Curated full commands shown on an empty prompt."""

    def __init__(self, entries: Sequence[CatalogEntry]) -> None:
        self._entries = tuple(entries)

    @classmethod
    def default(cls) -> "CommandCatalog":
        return cls(_DEFAULT_COMMANDS)

    def suggestions(self) -> list[Suggestion]:
        return [Suggestion.command(entry.text, entry.detail, entry.weight) for entry in self._entries]


_DEFAULT_CONDITIONS: Tuple[CatalogEntry, ...] = (
    CatalogEntry("AND", "Logical AND", CONDITION_BASE_SCORE),
    CatalogEntry("OR", "Logical OR", CONDITION_BASE_SCORE),
    CatalogEntry("NOT", "Logical NOT", CONDITION_BASE_SCORE),
    CatalogEntry("IN", "Contains in list", CONDITION_BASE_SCORE),
    CatalogEntry("LIKE", "Pattern matching", CONDITION_BASE_SCORE),
    CatalogEntry("BETWEEN", "Range condition", CONDITION_BASE_SCORE),
    CatalogEntry("IS NULL", "Is null value", CONDITION_BASE_SCORE),
    CatalogEntry("IS NOT NULL", "Is not null value", CONDITION_BASE_SCORE),
    CatalogEntry("EXISTS", "Exists subquery", CONDITION_BASE_SCORE),
    CatalogEntry("REGEXP", "Regular expression match", CONDITION_BASE_SCORE),
)

_DEFAULT_COMMANDS: Tuple[CatalogEntry, ...] = (
    CatalogEntry("SELECT * FROM", "Query all data from table", 95),
    CatalogEntry("SHOW DATABASES", "Show all databases", 90),
    CatalogEntry("SHOW TABLES", "Show all tables in current database", 85),
    CatalogEntry("USE", "Switch to specified database", 80),
    CatalogEntry("DESCRIBE", "View table structure", 75),
    CatalogEntry("INSERT INTO", "Insert data", 70),
    CatalogEntry("UPDATE", "Update data", 65),
    CatalogEntry("DELETE FROM", "Delete data", 60),
)

_DEFAULT_KEYWORDS: Tuple[str, ...] = (
    # statements
    "SELECT", "FROM", "WHERE", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER",
    "TABLE", "DATABASE", "INDEX", "VIEW", "TRIGGER", "PROCEDURE", "FUNCTION",
    # data types
    "INT", "INTEGER", "BIGINT", "SMALLINT", "TINYINT", "DECIMAL", "NUMERIC", "FLOAT",
    "DOUBLE", "VARCHAR", "CHAR", "TEXT", "LONGTEXT", "MEDIUMTEXT", "TINYTEXT", "DATE",
    "TIME", "DATETIME", "TIMESTAMP", "YEAR", "BINARY", "VARBINARY", "BLOB", "LONGBLOB",
    "MEDIUMBLOB", "TINYBLOB", "JSON", "GEOMETRY",
    # constraints and modifiers
    "PRIMARY", "KEY", "FOREIGN", "REFERENCES", "UNIQUE", "NOT", "NULL", "DEFAULT",
    "AUTO_INCREMENT", "UNSIGNED", "ZEROFILL",
    # query
    "DISTINCT", "ALL", "AS", "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "CROSS",
    "ON", "USING", "UNION", "INTERSECT", "EXCEPT", "ORDER", "BY", "GROUP", "HAVING",
    "LIMIT", "OFFSET", "INTO", "VALUES", "SET",
    # conditions and operators
    "AND", "OR", "IN", "EXISTS", "BETWEEN", "LIKE", "REGEXP", "RLIKE", "IS", "ISNULL",
    "CASE", "WHEN", "THEN", "ELSE", "END",
    # aggregates
    "COUNT", "SUM", "AVG", "MIN", "MAX", "GROUP_CONCAT",
    # strings
    "CONCAT", "SUBSTRING", "LENGTH", "CHAR_LENGTH", "UPPER", "LOWER", "TRIM", "LTRIM",
    "RTRIM", "REPLACE", "REVERSE",
    # math
    "ABS", "CEIL", "CEILING", "FLOOR", "ROUND", "MOD", "POW", "POWER", "SQRT", "RAND",
    "SIGN", "PI", "DEGREES", "RADIANS", "SIN", "COS", "TAN",
    # date and time
    "NOW", "CURDATE", "CURTIME", "MONTH", "DAY", "HOUR", "MINUTE", "SECOND", "DAYOFWEEK",
    "DAYOFYEAR", "WEEKDAY", "DATE_ADD", "DATE_SUB", "DATEDIFF", "DATE_FORMAT", "STR_TO_DATE",
    # control flow
    "IF", "IFNULL", "NULLIF", "COALESCE",
    # administration
    "SHOW", "DESCRIBE", "DESC", "EXPLAIN", "USE", "GRANT", "REVOKE", "FLUSH", "RESET",
    "START", "STOP", "RESTART",
    # transactions
    "BEGIN", "COMMIT", "ROLLBACK", "SAVEPOINT", "RELEASE", "TRANSACTION", "READ", "WRITE",
    "ONLY",
    # misc
    "LOCK", "UNLOCK", "TABLES", "ENGINE", "CHARSET", "COLLATE", "TEMPORARY", "CASCADE",
    "RESTRICT",
)


__all__ = [
    "CONDITION_BASE_SCORE",
    "CatalogEntry",
    "CommandCatalog",
    "ConditionCatalog",
    "KEYWORD_BASE_SCORE",
    "KeywordCatalog",
    "MATCH_THRESHOLD",
]

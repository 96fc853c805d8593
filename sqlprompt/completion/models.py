"""Core value types shared by the completion engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class InputContext(str, Enum):
    """Grammatical position of the cursor in a partially typed statement."""

    USE_COMMAND = "use"
    SELECT = "select"
    FROM = "from"
    WHERE = "where"
    INSERT_INTO = "insert_into"
    UPDATE = "update"
    ORDER_BY = "order_by"
    GROUP_BY = "group_by"
    HAVING = "having"
    JOIN_ON = "join_on"
    GENERAL = "general"


class SuggestionCategory(str, Enum):
    """Kinds of suggestions surfaced to the front end."""

    DATABASE = "database"
    TABLE = "table"
    COLUMN = "column"
    KEYWORD = "keyword"
    FUNCTION = "function"
    COMMAND = "command"

    @property
    def icon(self) -> str:
        return _ICONS[self]


_ICONS: dict[SuggestionCategory, str] = {
    SuggestionCategory.DATABASE: "🗄️",
    SuggestionCategory.TABLE: "📊",
    SuggestionCategory.COLUMN: "📋",
    SuggestionCategory.KEYWORD: "🔵",
    SuggestionCategory.FUNCTION: "⚡",
    SuggestionCategory.COMMAND: "⚙️",
}

MAX_RELEVANCE = 100


@dataclass(frozen=True, slots=True)
class Suggestion:
    """Single completion candidate with a relevance score in 0..100."""

    text: str
    description: str
    category: SuggestionCategory
    relevance: int = field(default=0)

    def __post_init__(self) -> None:
        clamped = max(0, min(MAX_RELEVANCE, int(self.relevance)))
        if clamped != self.relevance:
            object.__setattr__(self, "relevance", clamped)

    @property
    def display(self) -> str:
        """Text rendered in completion menus."""

        return f"{self.category.icon} {self.text} - {self.description}"

    @classmethod
    def database(cls, name: str, relevance: int) -> "Suggestion":
        return cls(name, f"Database: {name}", SuggestionCategory.DATABASE, relevance)

    @classmethod
    def table(cls, name: str, database: str, relevance: int) -> "Suggestion":
        return cls(
            name,
            f"Table: {name} (in {database} database)",
            SuggestionCategory.TABLE,
            relevance,
        )

    @classmethod
    def column(cls, name: str, table_key: str, relevance: int) -> "Suggestion":
        return cls(
            name,
            f"Column: {name} (from table {table_key})",
            SuggestionCategory.COLUMN,
            relevance,
        )

    @classmethod
    def keyword(cls, text: str, description: str, relevance: int) -> "Suggestion":
        return cls(text, description, SuggestionCategory.KEYWORD, relevance)

    @classmethod
    def function(cls, name: str, description: str, relevance: int) -> "Suggestion":
        return cls(name, description, SuggestionCategory.FUNCTION, relevance)

    @classmethod
    def command(cls, text: str, description: str, relevance: int) -> "Suggestion":
        return cls(text, description, SuggestionCategory.COMMAND, relevance)


__all__ = ["InputContext", "MAX_RELEVANCE", "Suggestion", "SuggestionCategory"]

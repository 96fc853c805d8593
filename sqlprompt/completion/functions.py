"""Function catalog powering helper suggestions for common SQL routines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .catalog import MATCH_THRESHOLD
from .models import Suggestion
from .scoring import score_relevance

FUNCTION_BASE_SCORE = 75


@dataclass(frozen=True, slots=True)
class FunctionEntry:
    """Description of a SQL function surfaced to the editor."""

    name: str
    signature: str
    detail: str
    weight: int = FUNCTION_BASE_SCORE


class FunctionCatalog:
    """Returns function suggestions ranked against the typed word."""

    def __init__(self, entries: Sequence[FunctionEntry]) -> None:
        self._entries = tuple(entries)

    @classmethod
    def default(cls) -> "FunctionCatalog":
        return cls(_DEFAULT_FUNCTIONS)

    def suggestions_for(self, word: str) -> list[Suggestion]:
        suggestions: list[Suggestion] = []
        for entry in self._entries:
            relevance = score_relevance(entry.name, word, entry.weight)
            if relevance > MATCH_THRESHOLD or not word:
                description = f"{entry.signature}: {entry.detail}"
                suggestions.append(Suggestion.function(entry.name, description, relevance))
        return suggestions


_DEFAULT_FUNCTIONS: Tuple[FunctionEntry, ...] = (
    FunctionEntry("COUNT", "COUNT(expression)", "Count rows"),
    FunctionEntry("SUM", "SUM(numeric)", "Sum values"),
    FunctionEntry("AVG", "AVG(numeric)", "Average value"),
    FunctionEntry("MAX", "MAX(expression)", "Maximum value"),
    FunctionEntry("MIN", "MIN(expression)", "Minimum value"),
    FunctionEntry("NOW", "NOW()", "Current time"),
    FunctionEntry("CONCAT", "CONCAT(text, ...)", "String concatenation"),
    FunctionEntry("UPPER", "UPPER(text)", "Convert to uppercase"),
    FunctionEntry("LOWER", "LOWER(text)", "Convert to lowercase"),
    FunctionEntry("SUBSTRING", "SUBSTRING(text, start, length)", "String substring"),
    FunctionEntry("LENGTH", "LENGTH(text)", "String length"),
    FunctionEntry("TRIM", "TRIM(text)", "Remove spaces"),
    FunctionEntry("DATE", "DATE(expression)", "Date function"),
    FunctionEntry("YEAR", "YEAR(date)", "Get year"),
    FunctionEntry("MONTH", "MONTH(date)", "Get month"),
    FunctionEntry("DAY", "DAY(date)", "Get day"),
)


__all__ = ["FUNCTION_BASE_SCORE", "FunctionCatalog", "FunctionEntry"]

"""Line-editor adapter: word boundaries, display pairs, and inline hints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .models import Suggestion, SuggestionCategory

if TYPE_CHECKING:
    from .service import CompletionService

WORD_BREAKS = "(,.;"

USE_LIMIT = 20
TABLE_LIMIT = 15
DEFAULT_LIMIT = 10


def word_start(line: str, cursor: int) -> int:
    """Index where the word under ``cursor`` begins."""

    cursor = max(0, min(cursor, len(line)))
    for index in range(cursor - 1, -1, -1):
        char = line[index]
        if char.isspace() or char in WORD_BREAKS:
            return index + 1
    return 0


@dataclass(frozen=True, slots=True)
class Completion:
    """What the editor shows (``display``) and what it inserts (``replacement``)."""

    display: str
    replacement: str


class SqlCompleter:
    """Wraps ``CompletionService`` for editors that want ready-to-render pairs."""

    def __init__(self, service: "CompletionService") -> None:
        self._service = service
        self._last: tuple[str, int, int, list[Suggestion]] | None = None

    @property
    def service(self) -> "CompletionService":
        return self._service

    def complete(self, line: str, cursor: int) -> tuple[int, list[Completion]]:
        start, suggestions = self._service.complete(line, cursor)
        self._last = (line, cursor, start, suggestions)
        word = line[start:cursor]
        completions = [
            Completion(display=item.display, replacement=item.text.strip("`"))
            for item in suggestions
        ]
        upper = line[:cursor].upper()
        if not completions and not upper.endswith(("FROM ", "JOIN ", "USE ")):
            icon = SuggestionCategory.KEYWORD.icon
            completions = [
                Completion(display=f"{icon} {keyword} - SQL keyword", replacement=keyword)
                for keyword in self._service.keywords.keywords
                if keyword.lower().startswith(word.lower())
            ]
        return start, completions[: _display_limit(upper)]

    def hint(self, line: str, cursor: int) -> str | None:
        """Inline hint: the untyped tail of the best suggestion, or a usage tip.

        Reuses the suggestions of the preceding ``complete`` call for the same
        line and cursor.
        """

        start, suggestions = self._suggestions_for(line, cursor)
        word = line[start:cursor]
        if suggestions:
            top = suggestions[0].text.strip("`")
            if word and top.lower().startswith(word.lower()) and len(top) > len(word):
                return top[len(word):]
            return None
        upper = line[:cursor].upper()
        if upper == "USE" or upper.endswith("USE "):
            return "💡 Enter database name (press Tab to see all options)"
        if upper.endswith(("FROM ", "JOIN ")):
            return "💡 Enter table name (press Tab to see all options)"
        if upper == "SELECT":
            return "💡 Enter column name or * (press Tab for suggestions)"
        if not line.strip():
            return "💡 Enter SQL command (e.g: SELECT, USE, SHOW) or press Tab for options"
        return None

    def _suggestions_for(self, line: str, cursor: int) -> tuple[int, list[Suggestion]]:
        if self._last is not None and self._last[:2] == (line, cursor):
            return self._last[2], self._last[3]
        return self._service.complete(line, cursor)


def _display_limit(upper: str) -> int:
    if "USE " in upper:
        return USE_LIMIT
    if upper.endswith(("FROM ", "JOIN ")):
        return TABLE_LIMIT
    return DEFAULT_LIMIT


def apply_completion(line: str, cursor: int, start: int, replacement: str) -> tuple[str, int]:
    """Splice ``replacement`` over ``line[start:cursor]``; return new line and cursor."""

    updated = f"{line[:start]}{replacement}{line[cursor:]}"
    return updated, start + len(replacement)


__all__ = [
    "Completion",
    "SqlCompleter",
    "WORD_BREAKS",
    "apply_completion",
    "word_start",
]

"""Classify a partially typed line into the grammatical position at its end."""

from __future__ import annotations

import logging
from typing import Callable, Sequence, Tuple

from sqlglot import exp, parse_one
from sqlglot.errors import ParseError, TokenError

from .models import InputContext

LOG = logging.getLogger(__name__)

Strategy = Callable[[str], "InputContext | None"]

# A statement whose last token is one of these still expects an operand.
_DANGLING_KEYWORDS = frozenset(
    {
        "AND",
        "BY",
        "FROM",
        "HAVING",
        "IN",
        "INTO",
        "IS",
        "JOIN",
        "LIKE",
        "NOT",
        "ON",
        "OR",
        "SELECT",
        "SET",
        "UPDATE",
        "VALUES",
        "WHERE",
    }
)

_SUFFIX_RULES: Tuple[tuple[str, InputContext], ...] = (
    ("WHERE", InputContext.WHERE),
    ("FROM", InputContext.FROM),
    ("JOIN", InputContext.FROM),
    ("ON", InputContext.JOIN_ON),
    ("ORDER BY", InputContext.ORDER_BY),
    ("GROUP BY", InputContext.GROUP_BY),
    ("HAVING", InputContext.HAVING),
)

_CONTAINS_RULES: Tuple[tuple[str, InputContext], ...] = (
    ("WHERE ", InputContext.WHERE),
    ("FROM ", InputContext.FROM),
    ("JOIN ", InputContext.FROM),
    (" ON ", InputContext.JOIN_ON),
    ("ORDER BY ", InputContext.ORDER_BY),
    ("GROUP BY ", InputContext.GROUP_BY),
    ("HAVING ", InputContext.HAVING),
)

_PREFIX_RULES: Tuple[tuple[str, InputContext], ...] = (
    ("SELECT", InputContext.SELECT),
    ("INSERT INTO", InputContext.INSERT_INTO),
    ("UPDATE", InputContext.UPDATE),
)

_STATEMENT_HEADS: dict[str, InputContext] = {
    "SELECT": InputContext.SELECT,
    "INSERT": InputContext.INSERT_INTO,
    "UPDATE": InputContext.UPDATE,
}


class ContextAnalyzer:
    """Runs classification strategies in priority order; the first opinion wins.

    ``classify`` never raises: malformed input falls through to the
    heuristic tiers and finally to ``InputContext.GENERAL``.
    """

    def __init__(self, *, dialect: str = "mysql") -> None:
        self._dialect = dialect
        self._strategies: Tuple[Strategy, ...] = (
            use_command,
            self.parsed_statement,
            incomplete_statement,
            word_scan,
        )

    @property
    def strategies(self) -> Sequence[Strategy]:
        return self._strategies

    def classify(self, line: str) -> InputContext:
        stripped = line.strip()
        if not stripped:
            return InputContext.GENERAL
        for strategy in self._strategies:
            context = strategy(stripped)
            if context is not None:
                return context
        return InputContext.GENERAL

    def parsed_statement(self, line: str) -> InputContext | None:
        """Classify a line that sqlglot accepts as a complete statement."""

        words = line.upper().split()
        if len(words) < 2 or words[-1].rstrip(",") in _DANGLING_KEYWORDS or line.endswith(","):
            return None
        try:
            statement = parse_one(line, read=self._dialect)
        except (ParseError, TokenError):
            return None
        except Exception:  # classify() must never raise
            LOG.debug("Parser failed on fragment", exc_info=True)
            return None
        return _context_from_statement(statement)


def use_command(line: str) -> InputContext | None:
    """``USE <db>`` always wins; its argument is never expression syntax."""

    words = line.split(None, 1)
    if words and words[0].upper() == "USE":
        return InputContext.USE_COMMAND
    return None


def incomplete_statement(line: str) -> InputContext | None:
    """Suffix, substring, and prefix rules for a statement still being typed."""

    upper = line.upper()
    for keyword, context in _SUFFIX_RULES:
        if _ends_with_keyword(upper, keyword):
            return context
    for fragment, context in _CONTAINS_RULES:
        if fragment in upper:
            return context
    for prefix, context in _PREFIX_RULES:
        if upper.startswith(prefix):
            return context
    return None


def word_scan(line: str) -> InputContext | None:
    """Look for bare clause keywords anywhere, then at the statement head."""

    words = [word.upper() for word in line.split()]
    if not words:
        return None
    for index, word in enumerate(words):
        following = words[index + 1] if index + 1 < len(words) else ""
        if word == "WHERE":
            return InputContext.WHERE
        if word in {"FROM", "JOIN"}:
            return InputContext.FROM
        if word == "ORDER" and following == "BY":
            return InputContext.ORDER_BY
        if word == "GROUP" and following == "BY":
            return InputContext.GROUP_BY
        if word == "HAVING":
            return InputContext.HAVING
    return _STATEMENT_HEADS.get(words[0])


def _ends_with_keyword(upper: str, keyword: str) -> bool:
    if not upper.endswith(keyword):
        return False
    head = upper[: -len(keyword)]
    return not head or head[-1].isspace()


def _context_from_statement(statement: exp.Expression | None) -> InputContext | None:
    if statement is None:
        return None
    if isinstance(statement, exp.Insert):
        return InputContext.INSERT_INTO
    if isinstance(statement, exp.Update):
        return InputContext.UPDATE
    if isinstance(statement, exp.Use):
        return InputContext.USE_COMMAND
    if isinstance(statement, exp.Select):
        if statement.args.get("from") is None and statement.args.get("from_") is None:
            return InputContext.SELECT
        if statement.args.get("where") is not None:
            return InputContext.WHERE
        return InputContext.FROM
    return InputContext.GENERAL


__all__ = [
    "ContextAnalyzer",
    "Strategy",
    "incomplete_statement",
    "use_command",
    "word_scan",
]

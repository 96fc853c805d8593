"""Query pad widget: SQL input with per-keystroke completion and a result grid."""

from __future__ import annotations

from typing import Callable

from textual import events
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.message import Message
from textual.widgets import DataTable, Input, Static

from sqlprompt.completion import Completion, SqlCompleter, apply_completion
from sqlprompt.query import QueryExecutionError, QueryResult
from sqlprompt.session import SessionManager

VISIBLE_SUGGESTIONS = 8


class QueryPad(Container):
    """Editor surface that renders completion candidates on every edit."""

    DEFAULT_CSS = """
    QueryPad {
        layout: vertical;
        border: round $primary 40%;
        padding: 1 2;
        height: 1fr;
        background: $surface;
    }

    QueryPad Input {
        border: heavy $primary;
    }

    #query-hint {
        color: $text-muted;
        height: 1;
    }

    #query-suggestions {
        height: auto;
        min-height: 3;
        border-top: solid $surface-darken-2;
        padding-top: 1;
    }

    #query-status {
        margin-top: 1;
    }

    QueryPad #query-results {
        height: 1fr;
        margin-top: 1;
        border-top: solid $surface-darken-2;
    }
    """

    BINDINGS = Container.BINDINGS + [
        Binding("ctrl+enter", "run_query", "Run query", show=False, priority=True),
    ]

    def __init__(self, completer: SqlCompleter, session_manager: SessionManager | None = None) -> None:
        super().__init__(id="query-pad")
        self._completer = completer
        self._session_manager = session_manager
        self._input: _QueryInput | None = None
        self._hint: Static | None = None
        self._suggestions: Static | None = None
        self._status_panel: Static | None = None
        self._result_table: DataTable | None = None
        self._completions: list[Completion] = []
        self._completion_start = 0
        self._result_limit = 200

    def compose(self) -> ComposeResult:
        yield _QueryInput(
            placeholder="Type SQL, e.g. SELECT * FROM orders WHERE amount > 10;",
            id="query-input",
            on_accept=self.accept_completion,
            on_query=self._request_query_run,
        )
        yield Static("", id="query-hint")
        yield Static("Suggestions appear here.", id="query-suggestions")
        yield Static("", id="query-status")
        yield DataTable(id="query-results", zebra_stripes=True)

    async def on_mount(self) -> None:
        self._input = self.query_one("#query-input", _QueryInput)
        self._hint = self.query_one("#query-hint", Static)
        self._suggestions = self.query_one("#query-suggestions", Static)
        self._status_panel = self.query_one("#query-status", Static)
        self._result_table = self.query_one("#query-results", DataTable)
        self._result_table.cursor_type = "row"
        self.refresh_completions("", 0)

    @property
    def completions(self) -> tuple[Completion, ...]:
        return tuple(self._completions)

    def on_input_changed(self, event: Input.Changed) -> None:
        cursor = self._input.cursor_position if self._input else len(event.value)
        self.refresh_completions(event.value, cursor)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self._request_query_run()
        event.stop()

    def refresh_completions(self, line: str, cursor: int) -> None:
        """Recompute candidates synchronously; the engine never blocks."""

        self._completion_start, self._completions = self._completer.complete(line, cursor)
        if self._hint:
            self._hint.update(self._completer.hint(line, cursor) or "")
        if not self._suggestions:
            return
        if not self._completions:
            self._suggestions.update("No suggestions.")
            return
        rows = [entry.display for entry in self._completions[:VISIBLE_SUGGESTIONS]]
        self._suggestions.update("\n".join(rows))

    def accept_completion(self) -> bool:
        """Splice the top candidate into the input; ``False`` if there is none."""

        if not self._input or not self._completions:
            return False
        line = self._input.value
        cursor = self._input.cursor_position
        updated, new_cursor = apply_completion(
            line, cursor, self._completion_start, self._completions[0].replacement
        )
        self._input.value = updated
        self._input.cursor_position = new_cursor
        return True

    async def action_run_query(self) -> None:
        await self._execute_current_query()

    async def on_query_run_requested(self, event: "QueryRunRequested") -> None:
        await self._execute_current_query()
        event.stop()

    def _request_query_run(self) -> None:
        self.post_message(QueryRunRequested())

    async def _execute_current_query(self) -> None:
        if not self._session_manager or not self._input:
            return
        sql = self._input.value.strip()
        if not sql:
            self._set_status("Enter SQL to run.", severity="warning")
            return
        self._set_status("Executing…", severity="information")
        try:
            result = await self._session_manager.run_query(sql)
        except QueryExecutionError as exc:
            self._set_status(f"Error: {exc}", severity="error")
            self._render_query_result(None)
            return
        self._render_query_result(result)
        self._set_status(f"{result.status} · {result.elapsed_ms} ms", severity="success")

    def _render_query_result(self, result: QueryResult | None) -> None:
        if not self._result_table:
            return
        self._result_table.clear(columns=True)
        if not result or not result.columns:
            return
        self._result_table.add_columns(*result.columns)
        for row in result.rows[: self._result_limit]:
            self._result_table.add_row(*(self._format_cell(value) for value in row))

    def _set_status(self, message: str, *, severity: str) -> None:
        if not self._status_panel:
            return
        prefix = {
            "information": "ℹ",
            "warning": "⚠",
            "error": "✖",
            "success": "✔",
        }.get(severity, "•")
        self._status_panel.update(f"{prefix} {message}")

    @staticmethod
    def _format_cell(value: object) -> str:
        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        return str(value)


class QueryRunRequested(Message):
    """Message fired when the input requests a query run."""


class _QueryInput(Input):
    """Input wrapper: Tab accepts the top completion, Ctrl+Enter runs the statement."""

    _RUN_KEYS = {"ctrl+enter", "ctrl+j", "newline"}

    def __init__(
        self,
        *args: object,
        on_accept: Callable[[], bool] | None = None,
        on_query: Callable[[], None] | None = None,
        **kwargs: object,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._on_accept = on_accept
        self._on_query = on_query

    async def _on_key(self, event: events.Key) -> None:
        key = event.key or ""
        if key == "tab" and self._on_accept and self._on_accept():
            event.prevent_default()
            event.stop()
            return
        if key in self._RUN_KEYS and self._on_query:
            self._on_query()
            event.prevent_default()
            event.stop()
            return
        await super()._on_key(event)


__all__ = ["QueryPad", "QueryRunRequested"]

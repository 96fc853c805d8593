"""Textual application entry point for sqlprompt."""

from __future__ import annotations

import logging
from typing import Callable

from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.notifications import SeverityLevel
from textual.widgets import Footer, Header

from .completion import CompletionService, ContextAnalyzer, MetadataCache, SqlCompleter
from .config import AppConfig, load_config, save_config
from .providers import DatabaseSwitchProvider, MetadataRefreshProvider, ProfileSwitchProvider
from .session import SessionManager, SessionState
from .widgets import QueryPad, StatusBar

LOG = logging.getLogger(__name__)

STALENESS_CHECK_SECONDS = 30.0


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


class SessionNotice(Message):
    """Toast-worthy session change, posted so worker threads can raise it."""

    def __init__(self, text: str, severity: SeverityLevel) -> None:
        super().__init__()
        self.text = text
        self.severity = severity


class SqlPromptApp(App[None]):
    """Interactive SQL shell: query pad with live completion plus a status strip."""

    COMMANDS = App.COMMANDS | {DatabaseSwitchProvider, MetadataRefreshProvider, ProfileSwitchProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-column {
        layout: vertical;
        padding: 1 2;
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh Metadata"),
        ("ctrl+p", "command_palette", "Command Palette"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._config = _load_app_config()
        settings = self._config.completion
        self._completion = CompletionService(
            MetadataCache(ttl=settings.metadata_ttl),
            analyzer=ContextAnalyzer(dialect=settings.dialect),
        )
        self._completer = SqlCompleter(self._completion)
        self._last_session_state: SessionState | None = None
        self._pending_notifications: list[tuple[str, SeverityLevel]] = []
        self._session_manager = SessionManager(
            self._completion,
            config=self._config,
            refresh_scheduler=self._schedule_metadata_refresh,
        )
        if self._session_manager.state:
            self._config = self._config.with_active_profile(self._session_manager.state.profile.name)
        self._session_unsubscribe: Callable[[], None] | None = self._session_manager.subscribe(
            self._handle_session_state
        )
        self._query_pad: QueryPad | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        self._query_pad = QueryPad(self._completer, self._session_manager)
        yield Container(self._query_pad, id="main-column")
        yield StatusBar(self._session_manager)
        yield Footer()

    def on_mount(self) -> None:
        self._flush_pending_notifications()
        self.set_interval(STALENESS_CHECK_SECONDS, self._refresh_if_stale)
        if self._query_pad:
            self._query_pad.query_one("#query-input").focus()

    @property
    def session_manager(self) -> SessionManager:
        """Expose the session manager for tests and command providers."""

        return self._session_manager

    @property
    def completer(self) -> SqlCompleter:
        return self._completer

    def action_refresh(self) -> None:
        self._refresh_metadata(force=True)

    def switch_profile(self, name: str) -> None:
        """Activate the requested connection profile and persist the choice."""

        self._connect_profile(name)

    def on_session_notice(self, event: SessionNotice) -> None:
        self.notify(event.text, severity=event.severity)

    def _refresh_if_stale(self) -> None:
        if self._session_manager.metadata.is_stale():
            self._refresh_metadata(force=False)

    def _schedule_metadata_refresh(self) -> None:
        self._refresh_metadata(force=False)

    @work(thread=True, exclusive=True, group="metadata")
    def _refresh_metadata(self, force: bool) -> None:
        self._session_manager.refresh_metadata(force=force)

    @work(thread=True, exclusive=True, group="metadata")
    def _connect_profile(self, name: str) -> None:
        self.post_message(SessionNotice(*self._activate_profile(name)))

    def _activate_profile(self, name: str) -> tuple[str, SeverityLevel]:
        try:
            state = self._session_manager.connect(name)
        except ValueError as exc:
            return str(exc), "error"
        self._config = self._config.with_active_profile(state.profile.name)
        try:
            save_config(self._config)
        except OSError as exc:
            LOG.warning(
                "Could not save active profile",
                extra={"profile": state.profile.name, "error": str(exc)},
            )
            return f"Switched to profile: {state.profile.name} (not saved: {exc})", "warning"
        return f"Switched to profile: {state.profile.name}", "information"

    def _handle_session_state(self, state: SessionState) -> None:
        notice = describe_transition(self._last_session_state, state)
        self._last_session_state = state
        if notice is None:
            return
        if self.is_running:
            self.post_message(SessionNotice(*notice))
        else:
            self._pending_notifications.append(notice)

    def _flush_pending_notifications(self) -> None:
        pending, self._pending_notifications = self._pending_notifications, []
        for text, severity in pending:
            self.notify(text, severity=severity)

    async def _shutdown(self) -> None:
        if self._session_unsubscribe:
            self._session_unsubscribe()
            self._session_unsubscribe = None
        self._session_manager.close()
        await super()._shutdown()


def describe_transition(
    previous: SessionState | None,
    state: SessionState,
) -> tuple[str, SeverityLevel] | None:
    """Notification for a session change worth interrupting the user about."""

    if state.using_fallback and (previous is None or not previous.using_fallback):
        reason = f" ({state.last_error.splitlines()[0][:120]})" if state.last_error else ""
        return (
            f"{state.profile.name}: database unavailable, completing from demo metadata{reason}.",
            "warning",
        )
    if previous is not None and previous.using_fallback and not state.using_fallback:
        return f"{state.profile.name}: reconnected to the database.", "information"
    if state.status == "Refresh failed" and state.last_error:
        return f"Metadata refresh failed: {state.last_error.splitlines()[0][:120]}", "error"
    return None


def main() -> None:
    """Invoke the Textual application."""

    SqlPromptApp().run()


if __name__ == "__main__":
    main()

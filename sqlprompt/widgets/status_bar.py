"""Status bar widget that mirrors session information."""

from __future__ import annotations

from typing import Callable

from textual.message import Message
from textual.widgets import Static

from sqlprompt.session import SessionManager, SessionState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    class SessionChanged(Message):
        """Carries a session update onto the UI thread."""

        def __init__(self, state: SessionState) -> None:
            super().__init__()
            self.state = state

    def __init__(self, session_manager: SessionManager) -> None:
        super().__init__("", id="status-bar")
        self._session_manager = session_manager
        self._unsubscribe: Callable[[], None] | None = None

    async def on_mount(self) -> None:
        self._unsubscribe = self._session_manager.subscribe(self._handle_session_update)

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def on_status_bar_session_changed(self, event: SessionChanged) -> None:
        self.update(describe_state(event.state))
        event.stop()

    def _handle_session_update(self, state: SessionState) -> None:
        # Refreshes publish from worker threads; post_message is thread-safe.
        self.post_message(self.SessionChanged(state))


def describe_state(state: SessionState) -> str:
    refreshed = state.refreshed_at.astimezone().strftime("%H:%M:%S") if state.refreshed_at else "never"
    backend = f"{state.backend_label} (fallback)" if state.using_fallback else state.backend_label
    parts = [
        f"Profile: {state.profile.name}",
        f"Database: {state.current_database or '(none)'}",
        f"Backend: {backend}",
        f"Databases: {len(state.databases)}",
        f"Tables: {state.table_count}",
        f"Status: {state.status}",
        f"Refreshed: {refreshed}",
    ]
    if state.last_error:
        parts.append(f"Error: {state.last_error.splitlines()[0][:80]}")
    return " | ".join(parts)


__all__ = ["StatusBar", "describe_state"]

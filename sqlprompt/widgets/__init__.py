"""Widget library for the Textual UI."""

from __future__ import annotations

from .query_pad import QueryPad
from .status_bar import StatusBar

__all__ = ["QueryPad", "StatusBar"]

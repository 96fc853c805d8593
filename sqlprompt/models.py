"""Shared dataclasses used across connection/session modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

SchemaSnapshot = Mapping[str, Mapping[str, tuple[str, ...]]]


@dataclass(frozen=True, slots=True)
class ConnectionProfile:
    """Runtime representation of a connection profile."""

    name: str
    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    schema: str | None = None
    metadata_key: str | None = None
    metadata: SchemaSnapshot | None = None

    def connect_kwargs(self, timeout: float) -> dict[str, object]:
        """Keyword arguments for ``asyncpg.connect``."""

        kwargs: dict[str, object] = {}
        if self.dsn:
            kwargs["dsn"] = self.dsn
        else:
            kwargs["host"] = self.host or "localhost"
            if self.port is not None:
                kwargs["port"] = self.port
            if self.user:
                kwargs["user"] = self.user
            if self.database:
                kwargs["database"] = self.database
        kwargs.setdefault("timeout", timeout)
        return kwargs


__all__ = ["ConnectionProfile", "SchemaSnapshot"]

"""Command palette providers for profile and database switching and metadata refresh."""

from __future__ import annotations

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType

from .session import SessionManager


class ProfileSwitchProvider(Provider):
    """Expose connection profiles to the command palette."""

    async def search(self, query: str) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        matcher = self.matcher(query)
        for profile in manager.profiles:
            match = matcher.match(profile.name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Switch to profile: {matcher.highlight(profile.name)}",
                    command=self._build_callback(profile.name),
                    help="Connect to this profile and remember it as the default.",
                )

    async def discover(self) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        for profile in manager.profiles:
            yield DiscoveryHit(
                display=f"Switch to profile: {profile.name}",
                command=self._build_callback(profile.name),
                help="Connect to this profile and remember it as the default.",
            )

    @property
    def _session_manager(self) -> SessionManager | None:
        manager = getattr(self.app, "session_manager", None)
        if isinstance(manager, SessionManager):
            return manager
        return None

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            switcher = getattr(self.app, "switch_profile", None)
            if switcher is None:
                return
            switcher(name)

        return _run


class DatabaseSwitchProvider(Provider):
    """Expose cached databases as "USE <db>" commands."""

    async def search(self, query: str) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        matcher = self.matcher(query)
        for database in _cached_databases(manager):
            match = matcher.match(database)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Use database: {matcher.highlight(database)}",
                    command=self._build_callback(database),
                    help="Set the current database for completion and queries.",
                )

    async def discover(self) -> Hits:
        manager = self._session_manager
        if manager is None:
            return
        for database in _cached_databases(manager):
            yield DiscoveryHit(
                display=f"Use database: {database}",
                command=self._build_callback(database),
                help="Set the current database for completion and queries.",
            )

    @property
    def _session_manager(self) -> SessionManager | None:
        manager = getattr(self.app, "session_manager", None)
        if isinstance(manager, SessionManager):
            return manager
        return None

    def _build_callback(self, database: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            manager = self._session_manager
            if manager is None:
                return
            manager.use_database(database)

        return _run


class MetadataRefreshProvider(Provider):
    """Expose a forced metadata refresh for the active session."""

    _LABEL = "Refresh schema metadata"

    async def search(self, query: str) -> Hits:
        if self._session_manager is None:
            return
        matcher = self.matcher(query)
        score = matcher.match(self._LABEL)
        if score > 0:
            yield Hit(
                score=score,
                match_display=matcher.highlight(self._LABEL),
                command=self._build_callback(),
                help="Trigger Ctrl+R equivalent refresh.",
            )

    async def discover(self) -> Hits:
        if self._session_manager is None:
            return
        yield DiscoveryHit(
            display=self._LABEL,
            command=self._build_callback(),
            help="Trigger Ctrl+R equivalent refresh.",
        )

    @property
    def _session_manager(self) -> SessionManager | None:
        manager = getattr(self.app, "session_manager", None)
        if isinstance(manager, SessionManager):
            return manager
        return None

    def _build_callback(self) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            refresher = getattr(self.app, "action_refresh", None)
            if refresher is None:
                return
            refresher()

        return _run


def _cached_databases(manager: SessionManager) -> tuple[str, ...]:
    with manager.metadata.snapshot() as snapshot:
        return snapshot.databases if snapshot else ()


__all__ = ["DatabaseSwitchProvider", "MetadataRefreshProvider", "ProfileSwitchProvider"]

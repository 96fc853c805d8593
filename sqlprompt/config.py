"""App configuration loading helpers."""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Mapping, Sequence

from pydantic import BaseModel, Field, ValidationError

CONFIG_FILE = Path.home() / ".config" / "sqlprompt" / "config.toml"

LOG = logging.getLogger(__name__)

SchemaMetadata = Mapping[str, Mapping[str, Sequence[str]]]


class CompletionSettings(BaseModel):
    """Tuning knobs for the completion engine."""

    metadata_ttl: float = Field(default=300.0, gt=0)
    dialect: str = "mysql"


class ConnectionProfileConfig(BaseModel):
    """Connection profile configuration stored in config.toml."""

    name: str
    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    schema_name: str | None = Field(default=None, alias="schema")
    metadata_key: str | None = None
    metadata: SchemaMetadata | None = None

    model_config = {"populate_by_name": True}


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    theme: str = "dark"
    profiles: list[ConnectionProfileConfig] = Field(default_factory=lambda: list(_default_profiles()))
    active_profile: str | None = None
    completion: CompletionSettings = Field(default_factory=CompletionSettings)

    def with_active_profile(self, name: str) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing or invalid."""

    try:
        with CONFIG_FILE.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError) as exc:
        LOG.warning("Ignoring unreadable config file", extra={"path": str(CONFIG_FILE), "error": str(exc)})
        return AppConfig()

    data: dict[str, object] = {}
    for key in ("theme", "active_profile"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    profiles = raw.get("profiles")
    if isinstance(profiles, list):
        parsed = [profile for profile in profiles if isinstance(profile, dict) and profile.get("name")]
        if parsed:
            data["profiles"] = parsed
    completion = raw.get("completion")
    if isinstance(completion, dict):
        data["completion"] = completion
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        LOG.warning("Ignoring invalid config file", extra={"path": str(CONFIG_FILE), "error": str(exc)})
        return AppConfig()


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [f"theme = {_quote(config.theme)}"]
    if config.active_profile:
        lines.append(f"active_profile = {_quote(config.active_profile)}")
    lines.append("")
    lines.append("[completion]")
    lines.append(f"metadata_ttl = {config.completion.metadata_ttl}")
    lines.append(f"dialect = {_quote(config.completion.dialect)}")
    if config.profiles:
        lines.append("")
        for profile in config.profiles:
            lines.append("[[profiles]]")
            lines.append(f"name = {_quote(profile.name)}")
            for key in ("dsn", "host", "database", "user", "metadata_key"):
                value = getattr(profile, key)
                if value:
                    lines.append(f"{key} = {_quote(value)}")
            if profile.port is not None:
                lines.append(f"port = {profile.port}")
            if profile.schema_name:
                lines.append(f"schema = {_quote(profile.schema_name)}")
            if profile.metadata:
                lines.append(f"metadata = {_inline_metadata(profile.metadata)}")
            lines.append("")
    CONFIG_FILE.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _inline_metadata(metadata: SchemaMetadata) -> str:
    """Render ``{db: {table: [columns]}}`` as a single-line TOML inline table."""

    databases = []
    for database, tables in metadata.items():
        entries = ", ".join(
            f"{_quote(table)} = [{', '.join(_quote(column) for column in columns)}]"
            for table, columns in tables.items()
        )
        databases.append(f"{_quote(database)} = {{ {entries} }}")
    return f"{{ {', '.join(databases)} }}"


def _default_profiles() -> tuple[ConnectionProfileConfig, ...]:
    """Default profiles shown on first run before config is customized."""

    return (
        ConnectionProfileConfig(
            name="Local Demo",
            host="localhost",
            port=5432,
            database="postgres",
            user="postgres",
            schema_name="shop",
            metadata_key="demo",
        ),
    )


__all__ = [
    "AppConfig",
    "CONFIG_FILE",
    "CompletionSettings",
    "ConnectionProfileConfig",
    "load_config",
    "save_config",
]

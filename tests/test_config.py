"""Tests for AppConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from sqlprompt import config as config_module
from sqlprompt.config import AppConfig, CompletionSettings, ConnectionProfileConfig, load_config, save_config


def test_defaults_include_demo_profile() -> None:
    config = AppConfig()

    assert config.profiles[0].name == "Local Demo"
    assert config.profiles[0].schema_name == "shop"
    assert config.completion.metadata_ttl == 300
    assert config.completion.dialect == "mysql"


def test_completion_ttl_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        CompletionSettings(metadata_ttl=0)


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == AppConfig()


def test_load_config_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
theme = "light"
active_profile = "Warehouse"

[completion]
metadata_ttl = 60
dialect = "postgres"

[[profiles]]
name = "Warehouse"
host = "db.internal"
port = 6543
database = "warehouse"
user = "analyst"
schema = "reporting"

[[profiles]]
name = "Offline"
metadata_key = "demo"

[profiles.metadata.inventory]
items = ["sku", "quantity"]
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.theme == "light"
    assert result.active_profile == "Warehouse"
    assert result.completion == CompletionSettings(metadata_ttl=60, dialect="postgres")
    warehouse, offline = result.profiles
    assert warehouse.port == 6543
    assert warehouse.schema_name == "reporting"
    assert offline.metadata is not None
    assert list(offline.metadata["inventory"]["items"]) == ["sku", "quantity"]


def test_load_config_handles_toml_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("theme = [unterminated")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == AppConfig()


def test_load_config_handles_invalid_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[completion]\nmetadata_ttl = -1\n")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == AppConfig()


def test_save_config_persists_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    save_config(
        AppConfig(
            theme="light",
            profiles=[
                ConnectionProfileConfig(
                    name="Local Demo",
                    host="localhost",
                    port=5432,
                    database="postgres",
                    user="postgres",
                    schema_name="shop",
                    metadata_key="demo",
                )
            ],
            active_profile="Local Demo",
            completion=CompletionSettings(metadata_ttl=120),
        )
    )

    content = config_path.read_text()
    assert 'theme = "light"' in content
    assert 'active_profile = "Local Demo"' in content
    assert "[completion]" in content
    assert "metadata_ttl = 120.0" in content
    assert "[[profiles]]" in content
    assert 'name = "Local Demo"' in content
    assert "port = 5432" in content
    assert 'schema = "shop"' in content


def test_saved_config_loads_back(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")
    saved = AppConfig(active_profile="Local Demo", completion=CompletionSettings(dialect="postgres"))

    save_config(saved)

    assert load_config() == saved


def test_with_active_profile_updates_field() -> None:
    config = AppConfig()

    updated = config.with_active_profile("Local Demo")

    assert updated.active_profile == "Local Demo"
    assert config.active_profile is None


def test_saved_config_keeps_inline_metadata(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")
    saved = AppConfig(
        active_profile="Offline",
        profiles=[
            ConnectionProfileConfig(
                name="Offline",
                schema_name="inventory",
                metadata={"inventory": {"items": ["sku", "quantity"], "bins": []}, "odd \"db\"": {}},
            )
        ],
    )

    save_config(saved)

    assert load_config() == saved

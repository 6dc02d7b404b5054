"""Tests for CacheConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from pgtypecache import config as config_module
from pgtypecache.config import CacheConfig, ConnectionProfileConfig, load_config, save_config
from pgtypecache.models import ConnectionProfile


def test_metadata_root_defaults_to_root_folder(tmp_path: Path) -> None:
    config = CacheConfig(root_folder=tmp_path)

    assert config.metadata_root() == tmp_path
    assert config.descriptor_folder() == tmp_path


def test_metadata_root_prefers_metadata_folder(tmp_path: Path) -> None:
    config = CacheConfig(root_folder=tmp_path / "types", metadata_folder=tmp_path / "meta")

    assert config.metadata_root() == tmp_path / "meta"


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == CacheConfig()


def test_load_config_reads_values(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
root_folder = "/var/cache/hr"
file_prefix = "hr"
metadata_folder = "/var/cache/hr-meta"

[profile]
name = "Local"
host = "localhost"
port = 5432
database = "hr"
user = "hr"
"""
    )

    result = load_config(config_path)

    assert result.root_folder == Path("/var/cache/hr")
    assert result.file_prefix == "hr"
    assert result.metadata_folder == Path("/var/cache/hr-meta")
    assert result.profile is not None
    assert result.profile.to_profile() == ConnectionProfile(
        name="Local", host="localhost", port=5432, database="hr", user="hr"
    )


def test_load_config_handles_toml_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("root_folder = [unterminated")

    result = load_config(config_path)

    assert result == CacheConfig()


def test_profile_without_name_is_ignored(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('[profile]\nhost = "localhost"\n')

    assert load_config(config_path).profile is None


def test_save_config_round_trips(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
    original = CacheConfig(
        root_folder=tmp_path / "types",
        file_prefix="hr",
        profile=ConnectionProfileConfig(name="Local", host="localhost", port=5433),
    )

    save_config(original)

    content = config_path.read_text()
    assert 'file_prefix = "hr"' in content
    assert "[profile]" in content
    assert "port = 5433" in content
    assert load_config() == original


def test_with_prefix_returns_copy() -> None:
    config = CacheConfig()

    updated = config.with_prefix("app")

    assert updated.file_prefix == "app"
    assert config.file_prefix is None

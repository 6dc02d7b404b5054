"""Cache configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

from .models import ConnectionProfile

CONFIG_FILE = Path.home() / ".config" / "pgtypecache" / "config.toml"
DEFAULT_ROOT_FOLDER = Path.home() / ".cache" / "pgtypecache"


class ConnectionProfileConfig(BaseModel):
    """Connection profile stored in config.toml."""

    name: str
    dsn: str | None = None
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None

    def to_profile(self) -> ConnectionProfile:
        """Build the runtime profile handed to descriptor sources."""

        return ConnectionProfile(
            name=self.name,
            dsn=self.dsn,
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
        )


class CacheConfig(BaseModel):
    """Shape of the cache configuration file."""

    root_folder: Path = Field(default_factory=lambda: DEFAULT_ROOT_FOLDER)
    file_prefix: str | None = None
    metadata_folder: Path | None = None
    profile: ConnectionProfileConfig | None = None

    def descriptor_folder(self) -> Path:
        return self.root_folder.expanduser()

    def metadata_root(self) -> Path:
        """Folder holding metadata files; shares the root folder unless set."""

        return (self.metadata_folder or self.root_folder).expanduser()

    def with_prefix(self, prefix: str | None) -> CacheConfig:
        """Return a copy with the descriptor file prefix updated."""

        return self.model_copy(update={"file_prefix": prefix})


def load_config(path: Path | None = None) -> CacheConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return CacheConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return CacheConfig()
    return CacheConfig(**data)


def save_config(config: CacheConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [f'root_folder = "{config.root_folder.as_posix()}"']
    if config.file_prefix:
        lines.append(f'file_prefix = "{config.file_prefix}"')
    if config.metadata_folder is not None:
        lines.append(f'metadata_folder = "{config.metadata_folder.as_posix()}"')
    if config.profile is not None:
        profile = config.profile
        lines.append("")
        lines.append("[profile]")
        lines.append(f'name = "{profile.name}"')
        for key in ("dsn", "host", "database", "user"):
            value = getattr(profile, key)
            if value:
                lines.append(f'{key} = "{value}"')
        if profile.port is not None:
            lines.append(f"port = {profile.port}")
    target.write_text("\n".join(lines) + "\n")


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    for key in ("root_folder", "metadata_folder"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            data[key] = Path(value)
    prefix = raw.get("file_prefix")
    if isinstance(prefix, str):
        data["file_prefix"] = prefix
    profile = raw.get("profile")
    if isinstance(profile, dict):
        parsed: dict[str, object] = {}
        for key in ("name", "dsn", "host", "database", "user"):
            value = profile.get(key)
            if isinstance(value, str):
                parsed[key] = value
        port = profile.get("port")
        if isinstance(port, int):
            parsed["port"] = port
        if parsed.get("name"):
            data["profile"] = ConnectionProfileConfig(**parsed)
    return data


__all__ = [
    "CONFIG_FILE",
    "CacheConfig",
    "ConnectionProfileConfig",
    "DEFAULT_ROOT_FOLDER",
    "load_config",
    "save_config",
]

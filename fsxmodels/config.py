"""TOML-based workflow configuration.

Loads ~/.fsxmodels/defaults.toml (global) and fsxmodels.toml (project),
merges them, and resolves the result into an immutable Settings object.
An explicit path replaces the project file.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from fsxmodels.constants import (
    DEFAULT_SHARE_NAME,
    DIRECTORY_MODE,
    FSTAB_PATH,
    FSX_MOUNT_POINT,
    MODELS_SUBDIR,
    MOUNT_MAX_RETRIES,
    MOUNT_RETRY_DELAY,
    TOKEN_ENV_VAR,
)
from fsxmodels.exceptions import ConfigurationError

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".fsxmodels" / "defaults.toml"
PROJECT_CONFIG_NAME = "fsxmodels.toml"

_SECTIONS: dict[str, dict[str, str]] = {
    "mount": {
        "point": "mount_point",
        "share": "share_name",
        "max_retries": "max_retries",
        "retry_delay": "retry_delay",
        "fstab": "fstab",
        "persist": "persist",
    },
    "models": {
        "dir": "models_dir",
        "mode": "mode",
        "owner": "owner",
        "smoke_test": "smoke_test",
        "concurrency": "concurrency",
        "fetch_retries": "fetch_retries",
        "fetch_retry_delay": "fetch_retry_delay",
        "token_env": "token_env",
    },
    "logging": {
        "level": "log_level",
        "file": "log_file",
    },
    "run": {
        "strict": "strict",
        "guide_dir": "guide_dir",
        "sudo": "sudo",
        "command_timeout": "command_timeout",
    },
}

_PATH_FIELDS = frozenset({"mount_point", "models_dir", "fstab", "guide_dir"})


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration, passed explicitly to every component."""

    mount_point: Path = Path(FSX_MOUNT_POINT)
    share_name: str = DEFAULT_SHARE_NAME
    max_retries: int = MOUNT_MAX_RETRIES
    retry_delay: float = MOUNT_RETRY_DELAY
    fstab: Path = Path(FSTAB_PATH)
    persist: bool = True
    models_dir: Path | None = None
    mode: int = DIRECTORY_MODE
    owner: str | None = None
    smoke_test: bool = True
    concurrency: int = 1
    fetch_retries: int = 0
    fetch_retry_delay: float = 10.0
    token_env: str = TOKEN_ENV_VAR
    log_level: str = "INFO"
    log_file: str | None = None
    strict: bool = False
    guide_dir: Path | None = None
    sudo: bool = True
    command_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ConfigurationError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.fetch_retries < 0:
            raise ConfigurationError(f"fetch_retries must be >= 0, got {self.fetch_retries}")
        if not 0 <= self.mode <= 0o7777:
            raise ConfigurationError(f"mode out of range: {self.mode:o}")

    @property
    def models_root(self) -> Path:
        return self.models_dir if self.models_dir is not None else self.mount_point / MODELS_SUBDIR

    def with_overrides(self, **overrides: Any) -> Settings:
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    path: Path | None = None,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    if path is not None:
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {path}")
        project_cfg = _read_toml(path)
    else:
        project_cfg = _read_toml((project_dir or Path.cwd()) / PROJECT_CONFIG_NAME)
    return _deep_merge(global_cfg, project_cfg)


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS:
        return Path(value).expanduser()
    if name == "mode" and isinstance(value, str):
        try:
            return int(value, 8)
        except ValueError as e:
            raise ConfigurationError(f"mode must be an octal string, got {value!r}") from e
    return value


def settings_from_mapping(raw: RawConfig) -> Settings:
    """Build Settings from a merged TOML mapping.

    Raises:
        ConfigurationError: Unknown section or key, or invalid value.
    """
    known = {f.name for f in fields(Settings)}
    values: dict[str, Any] = {}
    for section, table in raw.items():
        keys = _SECTIONS.get(section)
        if keys is None:
            raise ConfigurationError(
                f"Unknown config section '{section}'. Valid: {', '.join(_SECTIONS)}"
            )
        if not isinstance(table, dict):
            raise ConfigurationError(f"Config section '{section}' must be a table")
        for key, value in table.items():
            name = keys.get(key)
            if name is None or name not in known:
                raise ConfigurationError(
                    f"Unknown key '{key}' in [{section}]. Valid: {', '.join(keys)}"
                )
            values[name] = _coerce(name, value)
    try:
        return Settings(**values)
    except TypeError as e:
        raise ConfigurationError(str(e)) from e


def resolve_settings(
    *,
    path: Path | None = None,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> Settings:
    return settings_from_mapping(
        load_config(path=path, project_dir=project_dir, global_path=global_path)
    )

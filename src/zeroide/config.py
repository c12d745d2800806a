"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("~/.config/zeroide/config.toml").expanduser()
DEFAULT_DATA_DIR = "~/.zero"
DEFAULT_WORKSPACE_ROOT = "/workspace"
DEFAULT_BASE_IMAGE = "alpine:latest"
DEFAULT_NODE_IMAGE = "node:20-alpine"
DEFAULT_PYTHON_IMAGE = "python:3.12-slim"
DEFAULT_SETUP_TIMEOUT_SECONDS = 20
DEFAULT_SETUP_MAX_ATTEMPTS = 3
DEFAULT_LOG_STORE_MAX_ENTRIES = 300
GITHUB_TOKEN_ENV = "ZEROIDE_GH_TOKEN"

_STRING_FIELDS = (
    "docker_path",
    "workspace_root",
    "base_image",
    "node_image",
    "python_image",
    "sessions_path",
    "build_config_path",
    "run_profiles_path",
    "log_export_dir",
    "github_token",
)


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    docker_path: str = ""
    workspace_root: str = DEFAULT_WORKSPACE_ROOT
    base_image: str = DEFAULT_BASE_IMAGE
    node_image: str = DEFAULT_NODE_IMAGE
    python_image: str = DEFAULT_PYTHON_IMAGE
    telemetry_enabled: bool = False
    setup_timeout_seconds: int = Field(default=DEFAULT_SETUP_TIMEOUT_SECONDS, ge=1, le=600)
    setup_max_attempts: int = Field(default=DEFAULT_SETUP_MAX_ATTEMPTS, ge=1, le=10)
    log_store_max_entries: int = Field(default=DEFAULT_LOG_STORE_MAX_ENTRIES, ge=10, le=10000)
    sessions_path: str = f"{DEFAULT_DATA_DIR}/sessions.json"
    build_config_path: str = f"{DEFAULT_DATA_DIR}/build-config.json"
    run_profiles_path: str = f"{DEFAULT_DATA_DIR}/run-profiles.json"
    log_export_dir: str = f"{DEFAULT_DATA_DIR}/logs"
    github_token: str = ""

    @field_validator("workspace_root")
    @classmethod
    def _validate_workspace_root(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized.startswith("/") or normalized == "/":
            raise ValueError(f"Invalid workspace root: {value}")
        return normalized.rstrip("/")

    @field_validator("base_image", "node_image", "python_image")
    @classmethod
    def _validate_image(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized or any(ch.isspace() for ch in normalized):
            raise ValueError(f"Invalid image reference: {value}")
        return normalized


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _assign(cfg: AppConfig, name: str, value: object) -> None:
    with suppress(ValueError):
        setattr(cfg, name, value)


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    for name in _STRING_FIELDS:
        value = raw.get(name)
        if isinstance(value, str):
            _assign(cfg, name, value)

    telemetry_enabled = raw.get("telemetry_enabled", cfg.telemetry_enabled)
    if isinstance(telemetry_enabled, bool):
        cfg.telemetry_enabled = telemetry_enabled

    for name in ("setup_timeout_seconds", "setup_max_attempts", "log_store_max_entries"):
        value = raw.get(name)
        if isinstance(value, int) and not isinstance(value, bool):
            _assign(cfg, name, value)

    env_token = os.getenv(GITHUB_TOKEN_ENV, "").strip()
    if env_token:
        cfg.github_token = env_token

    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _sanitize({})
    if not isinstance(raw, dict):
        return _sanitize({})
    return _sanitize(raw)


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [f"{name} = {_toml_scalar(getattr(config, name))}" for name in _STRING_FIELDS]
    lines.extend(
        [
            f"telemetry_enabled = {_toml_scalar(config.telemetry_enabled)}",
            f"setup_timeout_seconds = {_toml_scalar(config.setup_timeout_seconds)}",
            f"setup_max_attempts = {_toml_scalar(config.setup_max_attempts)}",
            f"log_store_max_entries = {_toml_scalar(config.log_store_max_entries)}",
        ]
    )

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from zeroide.config import GITHUB_TOKEN_ENV, AppConfig, load_config, save_config


@pytest.fixture(autouse=True)
def _no_env_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(GITHUB_TOKEN_ENV, raising=False)


def test_missing_config_returns_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.toml")

    assert cfg.workspace_root == "/workspace"
    assert cfg.base_image == "alpine:latest"
    assert cfg.node_image == "node:20-alpine"
    assert cfg.python_image == "python:3.12-slim"
    assert cfg.telemetry_enabled is False
    assert cfg.setup_max_attempts == 3


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    cfg = AppConfig(
        docker_path="/usr/local/bin/docker",
        base_image="debian:bookworm",
        telemetry_enabled=True,
        setup_timeout_seconds=45,
        sessions_path=str(tmp_path / "sessions.json"),
    )

    save_config(cfg, path)
    loaded = load_config(path)

    assert loaded == cfg


def test_invalid_values_fall_back_field_by_field(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        "\n".join(
            [
                'workspace_root = "relative/path"',
                'base_image = "bad image"',
                'node_image = "node:22-alpine"',
                "setup_max_attempts = 99",
                "setup_timeout_seconds = true",
                'telemetry_enabled = "yes"',
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.workspace_root == "/workspace"
    assert cfg.base_image == "alpine:latest"
    assert cfg.node_image == "node:22-alpine"
    assert cfg.setup_max_attempts == 3
    assert cfg.setup_timeout_seconds == 20
    assert cfg.telemetry_enabled is False


def test_corrupt_toml_returns_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("this is = = not toml", encoding="utf-8")

    assert load_config(path) == AppConfig()


def test_workspace_root_is_normalized() -> None:
    assert AppConfig(workspace_root="/srv/work/").workspace_root == "/srv/work"
    with pytest.raises(ValidationError):
        AppConfig(workspace_root="/")


def test_assignment_is_validated() -> None:
    cfg = AppConfig()

    with pytest.raises(ValidationError):
        cfg.setup_max_attempts = 0


def test_env_token_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "config.toml"
    path.write_text('github_token = "from-file"\n', encoding="utf-8")
    monkeypatch.setenv(GITHUB_TOKEN_ENV, "from-env")

    assert load_config(path).github_token == "from-env"


def test_saved_config_is_private(tmp_path: Path) -> None:
    path = save_config(AppConfig(github_token="secret"), tmp_path / "nested" / "config.toml")

    assert path.exists()
    assert path.stat().st_mode & 0o077 == 0

"""Per-repository saved run commands."""

from __future__ import annotations

import json
import logging as py_logging
from pathlib import Path

from zeroide.logstore import AppLogStore
from zeroide.storage import read_json, write_json_atomic

logger = py_logging.getLogger(__name__)

DEFAULT_RUN_PROFILES_PATH = "~/.zero/run-profiles.json"
_COMMANDS_KEY = "commandsByRepository"


class RunProfileStore:
    """Map of repository URL to run command, stored as one JSON document.

    Each save reads the whole file, edits one key and writes it back without a
    lock, so two concurrent writers can lose one update. A corrupt file is
    reported to the log store and treated as empty; the next save replaces it.
    """

    def __init__(self, path: str | Path = DEFAULT_RUN_PROFILES_PATH, *, log_store: AppLogStore) -> None:
        self.path = Path(path).expanduser()
        self.log_store = log_store

    def _read_all(self) -> dict[str, str]:
        try:
            raw = read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.warning("Run profile file unreadable path=%s error=%s", self.path, exc)
            self.log_store.append(f"RunProfileService decode failed {self.path}")
            return {}
        if raw is None:
            return {}
        commands = raw.get(_COMMANDS_KEY) if isinstance(raw, dict) else None
        if not isinstance(commands, dict):
            self.log_store.append(f"RunProfileService decode failed {self.path}")
            return {}
        return {key: value for key, value in commands.items() if isinstance(key, str) and isinstance(value, str)}

    def load_command(self, repository_url: str) -> str | None:
        command = self._read_all().get(repository_url)
        if command is None or not command.strip():
            return None
        return command

    def save_command(self, repository_url: str, command: str) -> None:
        commands = self._read_all()
        trimmed = command.strip()
        if trimmed:
            commands[repository_url] = trimmed
        else:
            commands.pop(repository_url, None)
        write_json_atomic(self.path, {_COMMANDS_KEY: commands})
        logger.debug("Saved run profile repo=%s cleared=%s", repository_url, not trimmed)

    def clear_command(self, repository_url: str) -> None:
        self.save_command(repository_url, "")

    def all_commands(self) -> dict[str, str]:
        return dict(self._read_all())

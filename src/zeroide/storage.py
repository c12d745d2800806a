"""Whole-file JSON persistence helpers."""

from __future__ import annotations

import json
import os
import tempfile
from contextlib import suppress
from pathlib import Path


def write_json_atomic(path: str | Path, payload: object) -> Path:
    """Write ``payload`` as JSON via a sibling temp file and an atomic rename."""
    target = Path(path).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, indent=2, sort_keys=True)
            handle.write("\n")
        os.replace(temp_name, target)
    except BaseException:
        with suppress(OSError):
            os.unlink(temp_name)
        raise
    with suppress(OSError):
        target.chmod(0o600)
    return target


def read_json(path: str | Path) -> object | None:
    """Return decoded JSON, or ``None`` when the file does not exist.

    Decode errors propagate as :class:`json.JSONDecodeError` (or
    :class:`UnicodeDecodeError`) so callers decide how corruption is handled.
    """
    source = Path(path).expanduser()
    if not source.exists():
        return None
    with source.open("r", encoding="utf-8") as handle:
        return json.load(handle)

"""Persisted session list."""

from __future__ import annotations

import json
import logging as py_logging
import threading
from pathlib import Path

from pydantic import ValidationError

from zeroide.errors import ConfigDecodeError
from zeroide.session.models import Session, utc_now
from zeroide.storage import read_json, write_json_atomic

logger = py_logging.getLogger(__name__)

DEFAULT_SESSIONS_PATH = "~/.zero/sessions.json"


class SessionStore:
    """JSON array of sessions, rewritten whole on every change."""

    def __init__(self, path: str | Path = DEFAULT_SESSIONS_PATH) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def load(self) -> list[Session]:
        try:
            raw = read_json(self.path)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            logger.error("Session store unreadable path=%s error=%s", self.path, exc)
            raise ConfigDecodeError(
                "Session list is corrupt.",
                hint=f"Fix or delete {self.path} and retry.",
                debug_details=str(exc),
            ) from exc
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ConfigDecodeError("Session list is corrupt.", hint=f"Fix or delete {self.path} and retry.")
        sessions: list[Session] = []
        for item in raw:
            try:
                sessions.append(Session.model_validate(item))
            except ValidationError as exc:
                logger.warning("Skipping malformed session entry error=%s", exc.errors()[:1])
        return sessions

    def _write(self, sessions: list[Session]) -> None:
        write_json_atomic(self.path, [session.to_json() for session in sessions])

    def find(self, session_id: str) -> Session | None:
        return next((session for session in self.load() if session.id == session_id), None)

    def add(self, session: Session) -> Session:
        with self._lock:
            sessions = [item for item in self.load() if item.id != session.id]
            sessions.append(session)
            self._write(sessions)
        logger.debug("Stored session id=%s container=%s", session.id, session.container_name)
        return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            sessions = self.load()
            remaining = [item for item in sessions if item.id != session_id]
            if len(remaining) == len(sessions):
                return False
            self._write(remaining)
        return True

    def touch(self, session_id: str) -> Session | None:
        with self._lock:
            sessions = self.load()
            updated: Session | None = None
            for index, item in enumerate(sessions):
                if item.id == session_id:
                    updated = item.model_copy(update={"last_active_at": utc_now()})
                    sessions[index] = updated
            if updated is not None:
                self._write(sessions)
        return updated

"""Bounded in-memory store of recent operational log lines."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime, timezone

from zeroide.security import sanitize_log_text

DEFAULT_MAX_ENTRIES = 300


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


class AppLogStore:
    """Ring buffer of ``[ISO-8601] message`` entries, oldest dropped first.

    One instance is shared by the services of a process; appends may come
    from worker threads.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"Invalid log store size: {max_entries}")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: deque[str] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def append(self, message: str) -> str:
        entry = f"[{_iso(self._clock())}] {sanitize_log_text(message, limit=2000)}"
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent_entries(self, limit: int | None = None) -> list[str]:
        with self._lock:
            entries = list(self._entries)
        if limit is not None:
            return entries[-limit:] if limit > 0 else []
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

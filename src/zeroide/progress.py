"""Step-level progress events for multi-stage flows."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class ProgressEvent:
    step: str
    state: str
    message: str


class ProgressRecorder:
    def __init__(self, *, sink: Callable[[ProgressEvent], None] | None = None) -> None:
        self.events: list[ProgressEvent] = []
        self.sink = sink

    def _record(self, step: str, state: str, message: str) -> None:
        event = ProgressEvent(step=step, state=state, message=message)
        self.events.append(event)
        if self.sink is not None:
            self.sink(event)

    def record_started(self, step: str, message: str = "") -> None:
        self._record(step, "started", message)

    def record_success(self, step: str, message: str = "") -> None:
        self._record(step, "success", message)

    def record_warning(self, step: str, message: str) -> None:
        self._record(step, "warning", message)

    def record_error(self, step: str, message: str) -> None:
        self._record(step, "error", message)

    def states(self, step: str) -> list[str]:
        return [event.state for event in self.events if event.step == step]

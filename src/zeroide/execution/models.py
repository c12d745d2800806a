from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

CANCELLED_REASON = "Execution cancelled"


class ExecutionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionStatus:
    state: ExecutionState = ExecutionState.IDLE
    reason: str = ""

    @classmethod
    def idle(cls) -> ExecutionStatus:
        return cls(ExecutionState.IDLE)

    @classmethod
    def running(cls) -> ExecutionStatus:
        return cls(ExecutionState.RUNNING)

    @classmethod
    def success(cls) -> ExecutionStatus:
        return cls(ExecutionState.SUCCESS)

    @classmethod
    def failed(cls, reason: str) -> ExecutionStatus:
        return cls(ExecutionState.FAILED, reason)

    @property
    def is_running(self) -> bool:
        return self.state is ExecutionState.RUNNING

    @property
    def is_cancelled(self) -> bool:
        return self.state is ExecutionState.FAILED and self.reason == CANCELLED_REASON

    def __str__(self) -> str:
        if self.state is ExecutionState.FAILED:
            return f"failed: {self.reason}"
        return self.state.value

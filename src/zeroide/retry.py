"""Retry/backoff helpers for recoverable operations."""

from __future__ import annotations

import logging as py_logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

logger = py_logging.getLogger(__name__)


class RecoverableError(Exception):
    """Transient failure that can be retried."""


class FatalError(Exception):
    """Non-recoverable failure that should stop immediately."""


class RetryCancelled(FatalError):
    """Cancellation observed at a retry boundary."""

    def __init__(self, attempt: int) -> None:
        super().__init__(f"Retry cancelled before attempt {attempt}")
        self.attempt = attempt


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_backoff_seconds: float = 0.5
    multiplier: float = 2.0

    def backoff_for(self, attempt: int) -> float:
        """Delay slept after the given failed attempt (1-based)."""
        return self.initial_backoff_seconds * (self.multiplier ** max(0, attempt - 1))


def run_with_retry(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
    cancelled: Callable[[], bool] | None = None,
    on_attempt: Callable[[int, int], None] | None = None,
) -> T:
    """Run ``operation`` until it succeeds, raises fatally, or attempts run out.

    ``cancelled`` is polled before every attempt and after every backoff sleep;
    a positive answer raises :class:`RetryCancelled`. ``on_attempt`` receives
    ``(attempt, max_attempts)`` before each attempt starts.
    """
    attempt = 0
    last_error: Exception | None = None

    while attempt < policy.max_attempts:
        attempt += 1
        if cancelled is not None and cancelled():
            logger.debug("Retry cancelled attempt=%s", attempt)
            raise RetryCancelled(attempt)
        if on_attempt is not None:
            on_attempt(attempt, policy.max_attempts)
        try:
            return operation()
        except FatalError:
            raise
        except RecoverableError as exc:
            last_error = exc
            logger.debug(
                "Recoverable failure attempt=%s/%s error=%s",
                attempt,
                policy.max_attempts,
                exc,
            )
            if attempt >= policy.max_attempts:
                break
            sleep(policy.backoff_for(attempt))

    if last_error is not None:
        raise last_error
    raise RuntimeError("Retry policy exhausted without executing operation.")

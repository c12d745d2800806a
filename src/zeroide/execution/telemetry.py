"""Opt-in run telemetry: outcomes, durations and error codes, never output."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from typing_extensions import TypedDict


class ErrorCodeCount(TypedDict):
    code: str
    count: int


class TelemetrySummaryPayload(TypedDict):
    total_runs: int
    successful_runs: int
    failed_runs: int
    average_duration_seconds: float
    success_rate: float
    top_error_codes: list[ErrorCodeCount]


@dataclass(frozen=True)
class ExecutionRecord:
    success: bool
    duration_seconds: float
    error_code: str | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TelemetryErrorMetric:
    code: str
    count: int


@dataclass(frozen=True)
class ExecutionTelemetrySummary:
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    average_duration_seconds: float = 0.0
    top_error_codes: list[TelemetryErrorMetric] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_runs <= 0:
            return 0.0
        return self.successful_runs / self.total_runs

    def to_dict(self) -> TelemetrySummaryPayload:
        return {
            "total_runs": self.total_runs,
            "successful_runs": self.successful_runs,
            "failed_runs": self.failed_runs,
            "average_duration_seconds": round(self.average_duration_seconds, 3),
            "success_rate": round(self.success_rate, 4),
            "top_error_codes": [{"code": item.code, "count": item.count} for item in self.top_error_codes],
        }


class ExecutionTelemetry:
    def __init__(self, *, enabled: bool = False, top_n: int = 5) -> None:
        self.enabled = enabled
        self.top_n = top_n
        self._records: list[ExecutionRecord] = []
        self._lock = threading.Lock()

    def record(self, *, success: bool, duration_seconds: float, error_code: str | None = None) -> bool:
        if not self.enabled:
            return False
        entry = ExecutionRecord(
            success=success,
            duration_seconds=max(0.0, duration_seconds),
            error_code=None if success else (error_code or "unknown_error"),
        )
        with self._lock:
            self._records.append(entry)
        return True

    def records(self) -> list[ExecutionRecord]:
        with self._lock:
            return list(self._records)

    def summary(self) -> ExecutionTelemetrySummary:
        records = self.records()
        if not records:
            return ExecutionTelemetrySummary()
        successful = sum(1 for item in records if item.success)
        counts: Counter[str] = Counter(item.error_code for item in records if item.error_code)
        top = [
            TelemetryErrorMetric(code=code, count=count)
            for code, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))[: self.top_n]
        ]
        return ExecutionTelemetrySummary(
            total_runs=len(records),
            successful_runs=successful,
            failed_runs=len(records) - successful,
            average_duration_seconds=sum(item.duration_seconds for item in records) / len(records),
            top_error_codes=top,
        )

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

"""Processing time accounting for the transcode pipeline.

Accumulates the elapsed milliseconds of every ``process_image`` call,
successful or not, and exposes summary statistics for diagnostics.

Thread-safe: concurrent pipeline invocations may record simultaneously
without lost updates.

Example:
    stats = ProcessingStats()
    stats.record(duration_ms=42, success=True)
    stats.record(duration_ms=7, success=False)

    stats.total_processing_time_ms  # 49
    summary = stats.get_summary()
    print(f"Avg: {summary.avg_duration_ms:.1f}ms over {summary.invocations}")
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def _utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


@dataclass
class ProcessingSummary:
    """Snapshot of processing statistics.

    Attributes:
        total_processing_time_ms: Sum of all recorded durations.
        invocations: Number of recorded calls.
        failed_invocations: Calls that ended with an exception.
        min_duration_ms: Fastest recorded call (0 when none).
        max_duration_ms: Slowest recorded call (0 when none).
        avg_duration_ms: Mean duration (0.0 when none).
        last_processed_time: UTC time of the most recent record.
        uptime_seconds: Time since the accumulator was created.
    """

    total_processing_time_ms: int = 0
    invocations: int = 0
    failed_invocations: int = 0
    min_duration_ms: int = 0
    max_duration_ms: int = 0
    avg_duration_ms: float = 0.0
    last_processed_time: datetime | None = None
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert the summary to a JSON-serializable dictionary.

        Returns:
            Dictionary with every field; ``last_processed_time`` is rendered
            as an ISO 8601 string or None.

        Example:
            >>> json.dumps(stats.get_summary().to_dict())
        """
        return {
            "total_processing_time_ms": self.total_processing_time_ms,
            "invocations": self.invocations,
            "failed_invocations": self.failed_invocations,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "last_processed_time": (
                self.last_processed_time.isoformat()
                if self.last_processed_time
                else None
            ),
            "uptime_seconds": self.uptime_seconds,
        }


class ProcessingStats:
    """Concurrency-safe accumulator of pipeline processing time.

    One instance is shared by every processor built from the same factory;
    tests create their own instances to stay isolated. The accumulator only
    grows: there is deliberately no reset.
    """

    def __init__(self) -> None:
        """Create an empty accumulator.

        All counters start at zero and the uptime clock starts now.

        Example:
            >>> stats = ProcessingStats()
            >>> stats.total_processing_time_ms
            0
        """
        self._total_ms = 0
        self._invocations = 0
        self._failed = 0
        self._min_ms: int | None = None
        self._max_ms = 0
        self._last_processed_time: datetime | None = None
        self._start_time = time.monotonic()
        self._lock = threading.Lock()

    def record(self, duration_ms: int, success: bool = True) -> None:
        """Add one invocation's elapsed time to the accumulator.

        Called exactly once per ``process_image`` call from its cleanup
        block, after the call's duration is final.

        Args:
            duration_ms: Elapsed wall-clock milliseconds of the call.
                Negative values are clamped to 0.
            success: False when the call raised.

        Returns:
            None.

        Example:
            >>> stats.record(duration_ms=12)
            >>> stats.record(duration_ms=3, success=False)
        """
        duration_ms = max(0, int(duration_ms))

        with self._lock:
            self._total_ms += duration_ms
            self._invocations += 1
            if not success:
                self._failed += 1
            if self._min_ms is None or duration_ms < self._min_ms:
                self._min_ms = duration_ms
            if duration_ms > self._max_ms:
                self._max_ms = duration_ms
            self._last_processed_time = _utc_now()

    @property
    def total_processing_time_ms(self) -> int:
        """Cumulative elapsed milliseconds across all recorded calls."""
        with self._lock:
            return self._total_ms

    def get_summary(self) -> ProcessingSummary:
        """Return a consistent snapshot of all counters.

        Returns:
            ProcessingSummary taken under the lock; later records do not
            affect it.

        Example:
            >>> stats.record(100)
            >>> stats.record(200)
            >>> stats.get_summary().avg_duration_ms
            150.0
        """
        with self._lock:
            total = self._total_ms
            invocations = self._invocations
            failed = self._failed
            min_ms = self._min_ms or 0
            max_ms = self._max_ms
            last = self._last_processed_time
            start_time = self._start_time

        return ProcessingSummary(
            total_processing_time_ms=total,
            invocations=invocations,
            failed_invocations=failed,
            min_duration_ms=min_ms,
            max_duration_ms=max_ms,
            avg_duration_ms=total / invocations if invocations else 0.0,
            last_processed_time=last,
            uptime_seconds=time.monotonic() - start_time,
        )

    def to_dict(self) -> dict[str, Any]:
        """Export the current summary as a dictionary."""
        return self.get_summary().to_dict()

"""
In-memory metrics collector for value-safe observability.
Thread-safe singleton – no submitted values are ever stored or logged.
"""
import threading
import time
from dataclasses import dataclass, field
from typing import Dict


@dataclass
class LatencyStats:
    """Aggregated latency statistics (sum/count for average calculation)."""
    sum_ms: int = 0
    count: int = 0

    def record(self, ms: int) -> None:
        self.sum_ms += ms
        self.count += 1

    @property
    def avg_ms(self) -> float:
        return self.sum_ms / self.count if self.count > 0 else 0.0


@dataclass
class MetricsData:
    """Container for all aggregated metrics."""
    total_requests: int = 0
    success_count: int = 0
    error_count: int = 0
    error_codes: Dict[str, int] = field(default_factory=dict)
    latency: LatencyStats = field(default_factory=LatencyStats)
    rows_processed: int = 0
    dropped_rows: int = 0
    dropped_subfields: int = 0
    started_at: float = field(default_factory=time.time)


class MetricsCollector:
    """
    Thread-safe singleton for collecting value-safe metrics.

    Usage:
        metrics = get_metrics_collector()
        metrics.record_sanitize(latency_ms=3, rows=4, dropped_rows=0, dropped_subfields=1)
    """
    _instance: "MetricsCollector | None" = None
    _lock = threading.Lock()

    def __new__(cls) -> "MetricsCollector":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    instance = super().__new__(cls)
                    instance._data = MetricsData()
                    instance._data_lock = threading.Lock()
                    cls._instance = instance
        return cls._instance

    def record_sanitize(
        self,
        latency_ms: int,
        rows: int = 0,
        dropped_rows: int = 0,
        dropped_subfields: int = 0,
    ) -> None:
        """
        Record a successful sanitize call.

        Args:
            latency_ms: Time spent sanitizing
            rows: Rows processed
            dropped_rows: Malformed rows replaced by an empty row
            dropped_subfields: Subfields removed for not being in the schema
        """
        with self._data_lock:
            self._data.total_requests += 1
            self._data.success_count += 1
            self._data.latency.record(latency_ms)
            self._data.rows_processed += rows
            self._data.dropped_rows += dropped_rows
            self._data.dropped_subfields += dropped_subfields

    def record_error(self, error_code: str, latency_ms: int = 0) -> None:
        """Record a failed sanitize call (value-safe error codes only)."""
        with self._data_lock:
            self._data.total_requests += 1
            self._data.error_count += 1
            self._data.latency.record(latency_ms)
            self._data.error_codes[error_code] = (
                self._data.error_codes.get(error_code, 0) + 1
            )

    def get_snapshot(self) -> dict:
        """
        Get a snapshot of current metrics.
        Returns a plain dict suitable for JSON serialization.
        """
        with self._data_lock:
            uptime_seconds = int(time.time() - self._data.started_at)
            return {
                "uptime_seconds": uptime_seconds,
                "total_requests": self._data.total_requests,
                "success_count": self._data.success_count,
                "error_count": self._data.error_count,
                "error_codes": dict(self._data.error_codes),
                "latency": {
                    "sum_ms": self._data.latency.sum_ms,
                    "count": self._data.latency.count,
                    "avg_ms": round(self._data.latency.avg_ms, 2),
                },
                "rows_processed": self._data.rows_processed,
                "dropped_rows": self._data.dropped_rows,
                "dropped_subfields": self._data.dropped_subfields,
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._data_lock:
            self._data = MetricsData()


def get_metrics_collector() -> MetricsCollector:
    """Get the singleton metrics collector instance."""
    return MetricsCollector()

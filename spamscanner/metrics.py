"""Process-wide scan metrics.

Tracks how many scans ran, how long they took, and which findings they
produced. Also provides the per-scan timer used when performance metrics are
enabled on the scanner.
"""

import logging
import threading
import time
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class ScanTimings:
    """Per-scan timings in milliseconds, recorded when performance metrics are enabled."""

    total_time: float = 0.0
    tokenize_time: float = 0.0
    detector_times: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalTime": round(self.total_time, 3),
            "tokenizeTime": round(self.tokenize_time, 3),
            "detectorTimes": {name: round(ms, 3) for name, ms in self.detector_times.items()},
        }


class Stopwatch:
    """Monotonic millisecond timer."""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0


class ScanMetrics:
    """Thread-safe running counters for all scans in this process."""

    _instance: Optional["ScanMetrics"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ScanMetrics":
        """Singleton pattern for global metrics access."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._lock = threading.Lock()
        self._total_scans: int = 0
        self._total_time: float = 0.0
        self._last_scan_time: float = 0.0
        self._verdicts: dict[str, int] = defaultdict(int)
        self._categories: dict[str, int] = defaultdict(int)
        self._started: datetime = datetime.now()

    def record_scan(self, duration_ms: float, is_spam: bool, categories=()) -> None:
        """Record one completed scan."""
        with self._lock:
            self._total_scans += 1
            self._total_time += duration_ms
            self._last_scan_time = duration_ms
            self._verdicts["spam" if is_spam else "ham"] += 1
            for category in categories:
                self._categories[category] += 1

    @property
    def total_scans(self) -> int:
        with self._lock:
            return self._total_scans

    @property
    def last_scan_time(self) -> float:
        with self._lock:
            return self._last_scan_time

    @property
    def average_time(self) -> float:
        with self._lock:
            return self._total_time / self._total_scans if self._total_scans else 0.0

    def get_summary(self) -> dict:
        """Get a summary of all metrics."""
        with self._lock:
            uptime = datetime.now() - self._started
            return {
                "uptime_seconds": int(uptime.total_seconds()),
                "total_scans": self._total_scans,
                "average_time": self._total_time / self._total_scans if self._total_scans else 0.0,
                "last_scan_time": self._last_scan_time,
                "verdicts": dict(self._verdicts),
                "categories": dict(self._categories),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._total_scans = 0
            self._total_time = 0.0
            self._last_scan_time = 0.0
            self._verdicts.clear()
            self._categories.clear()
            self._started = datetime.now()


# Global instance
metrics = ScanMetrics()

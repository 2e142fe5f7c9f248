"""
In-process counters reported by ``/api/health``.

Tracks API traffic, rejected business input, unhandled errors over the last
hour, and how often each calculator ran.  Everything resets on restart.
"""

from __future__ import annotations

import threading
import time
from collections import Counter, deque
from typing import Deque, Dict, Optional

# Unhandled errors older than this drop out of the health report
ERROR_WINDOW_SECONDS = 3600.0


class _RuntimeMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests = 0
        self._rejections: Counter = Counter()
        self._calculations: Counter = Counter()
        self._last_calculation_at: Optional[float] = None
        self._recent_errors: Deque[float] = deque()

    def count_request(self) -> None:
        with self._lock:
            self._requests += 1

    def count_rejection(self, kind: str) -> None:
        """A ``BackOfficeError`` turned into a 4xx response."""
        with self._lock:
            self._rejections[kind] += 1

    def count_calculation(self, name: str, runs: int = 1) -> None:
        runs = int(runs)
        if runs <= 0:
            return
        with self._lock:
            self._calculations[name] += runs
            self._last_calculation_at = time.time()

    def count_error(self, at: Optional[float] = None) -> None:
        at = time.time() if at is None else at
        with self._lock:
            self._recent_errors.append(at)
            self._drop_stale_errors(at)

    def report(self) -> Dict[str, object]:
        with self._lock:
            self._drop_stale_errors(time.time())
            return {
                "requests_total": self._requests,
                "rejections": dict(self._rejections),
                "errors_last_hour": len(self._recent_errors),
                "calculations_total": sum(self._calculations.values()),
                "calculations": dict(self._calculations),
                "last_calculation_at": self._last_calculation_at,
            }

    def clear(self) -> None:
        with self._lock:
            self._requests = 0
            self._rejections.clear()
            self._calculations.clear()
            self._last_calculation_at = None
            self._recent_errors.clear()

    def _drop_stale_errors(self, now: float) -> None:
        # caller holds the lock
        oldest_allowed = now - ERROR_WINDOW_SECONDS
        while self._recent_errors and self._recent_errors[0] < oldest_allowed:
            self._recent_errors.popleft()


_METRICS = _RuntimeMetrics()


def record_request() -> None:
    _METRICS.count_request()


def record_rejection(kind: str) -> None:
    _METRICS.count_rejection(kind)


def record_calculation(name: str, amount: int = 1) -> None:
    """Count a calculator run by name, e.g. ``"payroll"`` or ``"tip_split"``."""
    _METRICS.count_calculation(name, amount)


def record_error(ts: Optional[float] = None) -> None:
    _METRICS.count_error(ts)


def metrics_snapshot() -> Dict[str, object]:
    return _METRICS.report()


def reset_metrics_for_tests() -> None:
    _METRICS.clear()

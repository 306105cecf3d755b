"""
Metrics collection for the reminder scheduler.

Counts ticks, sends and link cleanups so that silent misses stay visible
to operators.
"""

import threading
import time
from collections import defaultdict
from typing import Any, Dict

from medreminder.utils.clock import utc_now


class MetricsCollector:
    """Collects counters and timers for the scheduler and notification sender."""

    COUNTERS = (
        "scheduler_ticks_total",
        "scheduler_ticks_skipped_total",
        "scheduler_tick_errors_total",
        "reminders_sent_total",
        "low_supply_alerts_sent_total",
        "low_supply_alerts_suppressed_total",
        "notifications_failed_total",
        "notifications_no_link_total",
        "links_removed_total",
    )

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()

        for name in self.COUNTERS:
            self.metrics[name] = 0

    def increment_counter(self, metric_name: str, value: int = 1):
        """Increment a counter metric."""
        with self.lock:
            self.metrics[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        """Record a timing metric."""
        with self.lock:
            self.timers[metric_name] += duration

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics values."""
        with self.lock:
            return {
                "counters": dict(self.metrics),
                "timers": dict(self.timers),
                "timestamp": utc_now().isoformat(),
            }

    def reset(self):
        """Zero every counter and timer."""
        with self.lock:
            self.metrics.clear()
            self.timers.clear()
            for name in self.COUNTERS:
                self.metrics[name] = 0

    def timer(self, metric_name: str) -> "_Timer":
        """Context manager that adds the elapsed time to ``metric_name``."""
        return _Timer(self, metric_name)


class _Timer:
    def __init__(self, collector: MetricsCollector, metric_name: str):
        self.collector = collector
        self.metric_name = metric_name
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.collector.record_timer(self.metric_name, time.monotonic() - self.start_time)
        return False


# Global metrics instance
metrics_collector = MetricsCollector()

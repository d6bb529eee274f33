"""
Metrics Collection for the Reminder Engine.

Counters for scheduler ticks, dispatches and the soft failures the engine
recovers from.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict

from crm_reminders.utils.israel_time import utc_now


class MetricsCollector:
    """Collects and manages metrics for the reminder engine."""

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()

        # Initialize counters
        self.metrics["ticks_total"] = 0
        self.metrics["ticks_skipped_total"] = 0
        self.metrics["fetch_failures_total"] = 0
        self.metrics["reminders_dispatched_total"] = 0
        self.metrics["channel_failures_total"] = 0
        self.metrics["mark_notified_failures_total"] = 0
        self.metrics["malformed_events_total"] = 0

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
                "timestamp": utc_now().isoformat()
            }

    def tick(self):
        self.increment_counter("ticks_total")

    def tick_skipped(self):
        self.increment_counter("ticks_skipped_total")

    def fetch_failed(self):
        self.increment_counter("fetch_failures_total")

    def reminder_dispatched(self):
        self.increment_counter("reminders_dispatched_total")

    def channel_failed(self):
        self.increment_counter("channel_failures_total")

    def mark_notified_failed(self):
        self.increment_counter("mark_notified_failures_total")

    def malformed_event(self):
        self.increment_counter("malformed_events_total")

    @contextmanager
    def time_operation(self, metric_name: str):
        """Time the enclosed block, including when it raises."""
        start_time = time.monotonic()
        try:
            yield
        finally:
            self.record_timer(metric_name, time.monotonic() - start_time)


# Global metrics instance
metrics_collector = MetricsCollector()

"""
Metrics Collection for the Recurring Task Engine.

In-process counters for batch runs and completions, exposed at /metrics.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator

INSTANCES_CREATED = "recurring_instances_created_total"
PARENTS_PROCESSED = "recurring_parents_processed_total"
PARENTS_SKIPPED = "recurring_parents_skipped_total"
PROCESS_ERRORS = "recurring_process_errors_total"
COMPLETIONS = "recurring_completions_total"
CASCADE_FAILURES = "recurring_cascade_failures_total"


class MetricsCollector:
    """Collects counters and accumulated timings."""

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self.timers: Dict[str, float] = defaultdict(float)
        self.lock = threading.Lock()

        for name in (INSTANCES_CREATED, PARENTS_PROCESSED, PARENTS_SKIPPED,
                     PROCESS_ERRORS, COMPLETIONS, CASCADE_FAILURES):
            self.counters[name] = 0

    def increment(self, metric_name: str, value: int = 1):
        with self.lock:
            self.counters[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        with self.lock:
            self.timers[metric_name] += duration

    @contextmanager
    def timed(self, metric_name: str) -> Iterator[None]:
        """Accumulate the wall time of the enclosed block, even if it raises."""
        start = time.monotonic()
        try:
            yield
        finally:
            self.record_timer(metric_name, time.monotonic() - start)

    def snapshot(self) -> Dict[str, Any]:
        with self.lock:
            return {
                "counters": dict(self.counters),
                "timers": dict(self.timers),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

    def reset(self):
        with self.lock:
            for name in self.counters:
                self.counters[name] = 0
            self.timers.clear()


# Global metrics instance
metrics_collector = MetricsCollector()

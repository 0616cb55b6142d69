"""Metrics collection.

HTTP metrics are exported to Prometheus from the API process. Background jobs
count their lifecycle both in the in-process collector and in a Prometheus
counter so a worker exporter can pick them up.
"""

from typing import Dict, Optional

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds", "HTTP request duration", ["method", "endpoint"]
)
JOB_EVENTS = Counter(
    "pumpflix_jobs_total", "Background job lifecycle events", ["task", "event"]
)


class Metrics:
    """Simple metrics collector."""

    def __init__(self):
        self._counters: Dict[str, int] = {}

    def increment(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None) -> None:
        """Increment a counter metric."""
        key = self._make_key(name, tags)
        self._counters[key] = self._counters.get(key, 0) + value

    def job_event(self, task: str, event: str) -> None:
        """Count a job lifecycle event (started, completed, retried, failed)."""
        self.increment(f"jobs_{event}", tags={"task": task})
        JOB_EVENTS.labels(task=task, event=event).inc()

    def _make_key(self, name: str, tags: Optional[Dict[str, str]] = None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name},{tag_str}"

    def get_counter(self, name: str, tags: Optional[Dict[str, str]] = None) -> int:
        """Get counter value."""
        return self._counters.get(self._make_key(name, tags), 0)


# Global metrics instance
metrics = Metrics()

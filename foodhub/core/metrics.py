from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock


@dataclass
class EndpointMetric:
    total_requests: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    def record(self, status_code: int, duration_ms: float) -> None:
        self.total_requests += 1
        self.total_duration_ms += duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if status_code >= 400:
            self.error_count += 1

    def as_dict(self) -> dict[str, float | int]:
        average = self.total_duration_ms / self.total_requests if self.total_requests else 0.0
        return {
            "total_requests": self.total_requests,
            "error_count": self.error_count,
            "total_duration_ms": round(self.total_duration_ms, 2),
            "avg_duration_ms": round(average, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
        }


class InMemoryRequestMetrics:
    """Process-local request counters, keyed by ``"METHOD /route/{template}"``
    and by restaurant slug. Lost on restart; good enough for a health page."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._by_endpoint: defaultdict[str, EndpointMetric] = defaultdict(EndpointMetric)
        self._by_restaurant: defaultdict[str, EndpointMetric] = defaultdict(EndpointMetric)

    def observe(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        duration_ms: float,
        restaurant: str | None = None,
    ) -> None:
        with self._lock:
            self._by_endpoint[f"{method} {endpoint}"].record(status_code, duration_ms)
            if restaurant:
                self._by_restaurant[restaurant].record(status_code, duration_ms)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {key: metric.as_dict() for key, metric in sorted(self._by_endpoint.items())}

    def snapshot_per_restaurant(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            return {slug: metric.as_dict() for slug, metric in sorted(self._by_restaurant.items())}

    def reset(self) -> None:
        with self._lock:
            self._by_endpoint.clear()
            self._by_restaurant.clear()


request_metrics = InMemoryRequestMetrics()

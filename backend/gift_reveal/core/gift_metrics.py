"""In-process counters exposed on ``/metrics``.

Nothing here is persisted; a restart starts every counter from zero.
"""

from collections import defaultdict
from dataclasses import dataclass


@dataclass
class Timer:
    total: int = 0
    cached: int = 0
    errors: int = 0
    elapsed_ms: float = 0.0

    def observe(self, duration_ms: float, cached: bool = False, error: bool = False) -> None:
        self.total += 1
        self.cached += int(cached)
        self.errors += int(error)
        self.elapsed_ms += duration_ms

    @property
    def avg_ms(self) -> float:
        return round(self.elapsed_ms / self.total, 2) if self.total else 0.0

    def snapshot(self) -> dict[str, float | int]:
        return {"total": self.total, "cached": self.cached, "errors": self.errors, "avg_latency_ms": self.avg_ms}


class GiftMetrics:
    """Timers for reveal rendering, index listing and content writes."""

    def __init__(self) -> None:
        self.renders = Timer()
        self.index = Timer()
        self.content_writes = Timer()

    def record_render(self, duration_ms: float, cached: bool, error: bool) -> None:
        self.renders.observe(duration_ms, cached, error)

    def record_index(self, duration_ms: float, cached: bool, error: bool) -> None:
        self.index.observe(duration_ms, cached, error)

    def record_content_write(self, duration_ms: float, error: bool) -> None:
        self.content_writes.observe(duration_ms, error=error)

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        return {
            "gift_render": self.renders.snapshot(),
            "gift_index": self.index.snapshot(),
            "content_write": self.content_writes.snapshot(),
        }


class RequestStats:
    """HTTP request counters keyed by route template, so gift ids do not fan out."""

    def __init__(self) -> None:
        self.overall = Timer()
        self.routes: defaultdict[str, Timer] = defaultdict(Timer)

    def observe(self, route: str, duration_ms: float, error: bool) -> None:
        self.overall.observe(duration_ms, error=error)
        self.routes[route].observe(duration_ms, error=error)

    def snapshot(self) -> dict[str, object]:
        return {
            "requests_total": self.overall.total,
            "errors_total": self.overall.errors,
            "avg_latency_ms": self.overall.avg_ms,
            "by_path": {
                route: {"count": timer.total, "errors": timer.errors, "avg_latency_ms": timer.avg_ms}
                for route, timer in sorted(self.routes.items())
            },
        }


gift_metrics = GiftMetrics()
request_stats = RequestStats()

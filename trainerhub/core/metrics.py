"""
Process-local counters for the marketplace, served as Prometheus text on /metrics.

Every counter declares its label names up front; an ``inc`` with a missing label
records it as the empty string so series stay aligned.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

# Collections whose next path segment is an entity id
ENTITY_COLLECTIONS = frozenset({"plans", "posts", "trainers"})

LATENCY_BUCKETS_MS = (50, 100, 250, 500, 1000)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class Counter:
    def __init__(self, name: str, help_text: str, label_names: Iterable[str] = ()):
        self.name = name
        self.help_text = help_text
        self.label_names: Tuple[str, ...] = tuple(label_names)
        self._series: Dict[Tuple[str, ...], float] = {}
        self._lock = threading.Lock()

    def _key(self, labels: Optional[Mapping[str, object]]) -> Tuple[str, ...]:
        labels = labels or {}
        unknown = set(labels) - set(self.label_names)
        if unknown:
            raise ValueError(f"{self.name} has no label(s) {sorted(unknown)}")
        return tuple(str(labels.get(name, "")) for name in self.label_names)

    def inc(self, labels: Optional[Mapping[str, object]] = None, amount: float = 1.0) -> None:
        key = self._key(labels)
        with self._lock:
            self._series[key] = self._series.get(key, 0.0) + amount

    def value(self, labels: Optional[Mapping[str, object]] = None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._series.get(key, 0.0)

    def snapshot(self) -> Dict[Tuple[str, ...], float]:
        with self._lock:
            return dict(self._series)

    def reset(self) -> None:
        with self._lock:
            self._series.clear()

    def render(self) -> List[str]:
        lines = [f"# HELP {self.name} {self.help_text}", f"# TYPE {self.name} counter"]
        for key, value in sorted(self.snapshot().items()):
            if self.label_names:
                pairs = ",".join(f'{n}="{_escape(v)}"' for n, v in zip(self.label_names, key))
                lines.append(f"{self.name}{{{pairs}}} {value}")
            else:
                lines.append(f"{self.name} {value}")
        return lines


class MetricsRegistry:
    def __init__(self) -> None:
        self._counters: Dict[str, Counter] = {}
        self._lock = threading.Lock()

    def counter(self, name: str, help_text: str, label_names: Iterable[str] = ()) -> Counter:
        with self._lock:
            existing = self._counters.get(name)
            if existing is None:
                existing = self._counters[name] = Counter(name, help_text, label_names)
            return existing

    def export_prometheus(self) -> str:
        with self._lock:
            counters = sorted(self._counters.values(), key=lambda c: c.name)
        lines: List[str] = []
        for counter in counters:
            lines.extend(counter.render())
        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        with self._lock:
            counters = list(self._counters.values())
        for counter in counters:
            counter.reset()


METRICS = MetricsRegistry()

http_requests_total = METRICS.counter(
    "http_requests_total", "HTTP requests by method, normalized path and status", ["method", "path", "status"]
)
http_request_latency_total = METRICS.counter(
    "http_request_latency_total", "HTTP requests by latency bucket", ["bucket"]
)
feed_loads_total = METRICS.counter("feed_loads_total", "Feed loads by scope and outcome", ["scope", "outcome"])
mutations_total = METRICS.counter(
    "mutations_total", "Writes by interaction kind and outcome (ok, failed, rejected)", ["kind", "outcome"]
)
mutation_rollbacks_total = METRICS.counter(
    "mutation_rollbacks_total", "Optimistic updates reverted after a failed write", ["kind"]
)


def latency_bucket(duration_ms: float) -> str:
    for bound in LATENCY_BUCKETS_MS:
        if duration_ms < bound:
            return f"<{bound}ms"
    return f">={LATENCY_BUCKETS_MS[-1]}ms"


def normalize_path(path: str) -> str:
    """Collapse entity ids so /api/posts/42/like becomes /api/posts/:id/like."""
    segments = [s for s in path.split("/") if s]
    normalized: List[str] = []
    for index, segment in enumerate(segments):
        if index and segments[index - 1] in ENTITY_COLLECTIONS:
            normalized.append(":id")
        else:
            normalized.append(segment)
    return "/" + "/".join(normalized)

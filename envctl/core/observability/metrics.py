"""
Metrics — in-process counters, gauges and histograms for deployments.

Nothing leaves the process; ``to_dict`` is what ``envctl health --json``
prints. The registry is locked because batch deployments may record
from worker threads.

Series recorded by ``DeploymentMetrics``:
    deployments_total{status, environment_type}   counter
    rollbacks_total{status}                       counter
    deployments_in_flight{environment}            gauge
    deployment_duration_ms{strategy}              histogram
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypeVar

from envctl.core.models.results import DeploymentResult

_M = TypeVar("_M", bound="Metric")


@dataclass
class Metric:
    """A named, labelled series. Subclasses add the value they track."""

    kind: ClassVar[str] = "metric"

    name: str
    labels: dict[str, str] = field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.kind, **self.snapshot(), "labels": self.labels}


@dataclass
class Counter(Metric):
    kind: ClassVar[str] = "counter"

    value: int = 0

    def inc(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("Counters only go up")
        self.value += n

    def snapshot(self) -> dict[str, Any]:
        return {"value": self.value}


@dataclass
class Gauge(Metric):
    kind: ClassVar[str] = "gauge"

    value: float = 0.0

    def inc(self, n: float = 1.0) -> None:
        self.value += n

    def dec(self, n: float = 1.0) -> None:
        self.value -= n

    def snapshot(self) -> dict[str, Any]:
        return {"value": self.value}


@dataclass
class Histogram(Metric):
    """Running count, sum and max; enough for the volumes a CLI session sees."""

    kind: ClassVar[str] = "histogram"

    count: int = 0
    total: float = 0.0
    max: float = 0.0

    def observe(self, value: float) -> None:
        self.count += 1
        self.total += value
        if self.count == 1 or value > self.max:
            self.max = value

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0

    def snapshot(self) -> dict[str, Any]:
        return {"count": self.count, "mean": round(self.mean, 2), "max": self.max}


class MetricsRegistry:
    """Get-or-create store keyed by kind, name and sorted labels."""

    _SECTIONS = {"counter": "counters", "gauge": "gauges", "histogram": "histograms"}

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._series: dict[tuple[str, str, tuple[tuple[str, str], ...]], Metric] = {}

    def _get(self, cls: type[_M], name: str, labels: dict[str, str]) -> _M:
        key = (cls.kind, name, tuple(sorted(labels.items())))
        with self._lock:
            metric = self._series.get(key)
            if metric is None:
                metric = self._series[key] = cls(name=name, labels=labels)
            return metric  # type: ignore[return-value]

    def counter(self, name: str, **labels: str) -> Counter:
        return self._get(Counter, name, labels)

    def gauge(self, name: str, **labels: str) -> Gauge:
        return self._get(Gauge, name, labels)

    def histogram(self, name: str, **labels: str) -> Histogram:
        return self._get(Histogram, name, labels)

    def to_dict(self) -> dict[str, list[dict]]:
        out: dict[str, list[dict]] = {section: [] for section in self._SECTIONS.values()}
        with self._lock:
            for metric in self._series.values():
                out[self._SECTIONS[metric.kind]].append(metric.to_dict())
        return out

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class DeploymentMetrics:
    """Deployment-shaped recording on top of a ``MetricsRegistry``."""

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self.registry = registry or MetricsRegistry()
        self._lock = threading.Lock()

    def record_deployment(self, result: DeploymentResult, environment_type: str = "") -> None:
        with self._lock:
            self.registry.counter(
                "deployments_total", status=result.status, environment_type=environment_type,
            ).inc()
            if result.deployment_id is not None:
                self.registry.histogram(
                    "deployment_duration_ms", strategy=result.strategy or "unknown",
                ).observe(result.duration_ms)

    def record_rollback(self, result: DeploymentResult) -> None:
        with self._lock:
            self.registry.counter("rollbacks_total", status=result.status).inc()

    def deployment_started(self, environment: str) -> None:
        with self._lock:
            self.registry.gauge("deployments_in_flight", environment=environment).inc()

    def deployment_finished(self, environment: str) -> None:
        with self._lock:
            self.registry.gauge("deployments_in_flight", environment=environment).dec()

    def total(self, status: str | None = None) -> int:
        """Sum of ``deployments_total``, optionally for one status."""
        counters = self.registry.to_dict()["counters"]
        return sum(
            c["value"] for c in counters
            if c["name"] == "deployments_total"
            and (status is None or c["labels"].get("status") == status)
        )

    def to_dict(self) -> dict[str, list[dict]]:
        return self.registry.to_dict()

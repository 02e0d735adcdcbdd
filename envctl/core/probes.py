"""
Health probes — the single synchronous probe contract.

Strategies call a probe between rollout phases to decide whether to
continue. There is no real network transport here: ``StaticProbe``
answers from a table, which is all a simulated rollout needs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel


class ProbeResult(BaseModel):
    """Answer to a single health probe."""

    url: str
    healthy: bool = True
    message: str = ""


class HealthProbe(ABC):
    """Synchronous health check of one URL."""

    @abstractmethod
    def check(self, url: str) -> ProbeResult:
        """Probe ``url``. Must not raise; failures go in the result."""


class StaticProbe(HealthProbe):
    """Table-driven probe. Healthy by default, configurable per URL."""

    def __init__(self, default_healthy: bool = True) -> None:
        self._default_healthy = default_healthy
        self._overrides: dict[str, ProbeResult] = {}
        self._call_log: list[str] = []

    @property
    def call_log(self) -> list[str]:
        return self._call_log

    def set_unhealthy(self, url: str, message: str = "unreachable") -> None:
        self._overrides[url] = ProbeResult(url=url, healthy=False, message=message)

    def set_healthy(self, url: str) -> None:
        self._overrides.pop(url, None)

    def check(self, url: str) -> ProbeResult:
        self._call_log.append(url)
        if url in self._overrides:
            return self._overrides[url]
        if self._default_healthy:
            return ProbeResult(url=url, healthy=True, message=f"{url} is accessible")
        return ProbeResult(url=url, healthy=False, message=f"Cannot connect to {url}")

"""
Health checker — roll environment state up into one system status.

Per environment:
    unhealthy   last deployment status is FAILED, or the probe says so
    degraded    variant validation reports issues
    healthy     otherwise

The system is as unhealthy as its worst environment. Used by the CLI
``health`` command.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from envctl.core.models.environment import Environment
from envctl.core.models.status import DeploymentStatus
from envctl.core.probes import HealthProbe

logger = logging.getLogger(__name__)


# Worst wins: the system takes the highest-ranked component status
_RANK = {"healthy": 0, "unknown": 1, "degraded": 2, "unhealthy": 3}


@dataclass
class ComponentHealth:
    """Health of one environment."""

    name: str
    status: str = "unknown"
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SystemHealth:
    """Fleet-wide roll-up of environment health."""

    status: str = "healthy"
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    components: list[ComponentHealth] = field(default_factory=list)

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        if _RANK.get(component.status, _RANK["unknown"]) > _RANK.get(self.status, 0):
            self.status = component.status if component.status in _RANK else "unknown"

    def counts(self) -> dict[str, int]:
        """Number of environments per status, every status present."""
        tally = dict.fromkeys(_RANK, 0)
        for component in self.components:
            tally[component.status if component.status in _RANK else "unknown"] += 1
        return tally

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "counts": self.counts(),
            "components": [c.to_dict() for c in self.components],
        }


def check_environment(
    environment: Environment,
    probe: HealthProbe | None = None,
) -> ComponentHealth:
    details: dict[str, Any] = {
        "id": environment.id,
        "type": environment.type.code,
        "status": environment.status.value,
        "version": environment.current_version,
        "services": len(environment.services),
    }

    if environment.status == DeploymentStatus.FAILED:
        last = environment.last_deployment
        reason = last.notes if last is not None and last.notes else "last deployment failed"
        return ComponentHealth(environment.name, "unhealthy", reason, details)

    if probe is not None:
        result = probe.check(environment.base_url)
        details["probe"] = result.model_dump()
        if not result.healthy:
            return ComponentHealth(environment.name, "unhealthy", result.message, details)

    issues = environment.validate()
    if issues:
        details["issues"] = issues
        return ComponentHealth(environment.name, "degraded", f"{len(issues)} validation issue(s)", details)

    return ComponentHealth(environment.name, "healthy", environment.status.display_name, details)


def check_system_health(
    environments: list[Environment],
    probe: HealthProbe | None = None,
) -> SystemHealth:
    """Check every environment and aggregate."""
    health = SystemHealth()
    for environment in environments:
        health.add(check_environment(environment, probe))
    logger.debug("System health: %s over %d environment(s)", health.status, len(health.components))
    return health

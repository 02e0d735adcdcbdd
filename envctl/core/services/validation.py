"""
Validation service — fleet-wide checks and deployment readiness.

Two levels of scrutiny:

    validate_all()   the variant rules of every environment, grouped by name
    readiness(env)   variant rules as errors, plus advisory warnings and,
                     for anything beyond development, a health probe

Warnings never block a deployment; errors do.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, Field

from envctl.core.models.environment import Environment
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.probes import HealthProbe
from envctl.core.repository import EnvironmentRepository

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9\s-]+$")
_PRERELEASE_MARKERS = ("alpha", "beta", "rc", "snapshot")
_DEV_PORTS = (":8080", ":3000", ":4200")


class ReadinessReport(BaseModel):
    """Outcome of a readiness check for one environment."""

    environment_id: str
    environment_name: str
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def ready(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {**self.model_dump(mode="json"), "ready": self.ready}


class ValidationService:
    def __init__(
        self,
        repository: EnvironmentRepository,
        probe: HealthProbe | None = None,
    ) -> None:
        self._repository = repository
        self._probe = probe

    def validate_all(self) -> dict[str, list[str]]:
        """Issues per environment name; compliant environments are omitted."""
        report: dict[str, list[str]] = {}
        for env in self._repository.find_all():
            issues = env.validate()
            if issues:
                report[env.name] = issues
        logger.debug("Validated %d environment(s), %d with issues", self._repository.count(), len(report))
        return report

    def is_valid_for_deployment(self, env_id: str) -> bool:
        """False for unknown ids and for environments with rule violations."""
        environment = self._repository.find_by_id(env_id)
        return environment is not None and not environment.validate()

    def readiness(self, environment: Environment) -> ReadinessReport:
        report = ReadinessReport(
            environment_id=environment.id,
            environment_name=environment.name,
            errors=environment.validate(),
            warnings=self._warnings(environment),
        )

        if self._probe is not None and environment.type != EnvironmentType.DEVELOPMENT:
            result = self._probe.check(environment.base_url)
            if not result.healthy:
                report.errors.append(f"Health check failed: {result.message}")

        if not report.ready:
            logger.warning("%s is not ready: %s", environment.name, "; ".join(report.errors))
        return report

    @staticmethod
    def _warnings(environment: Environment) -> list[str]:
        warnings: list[str] = []

        for service in environment.services.values():
            version = service.version.lower()
            if any(marker in version for marker in _PRERELEASE_MARKERS):
                warnings.append(f"Service '{service.name}' uses pre-release version {service.version}")
            elif version.startswith("0."):
                warnings.append(f"Service '{service.name}' uses development version {service.version}")

        if not _NAME_PATTERN.match(environment.name):
            warnings.append(
                "Environment name should start with an uppercase letter and contain only "
                "letters, digits, spaces and hyphens"
            )

        if environment.type == EnvironmentType.PRODUCTION:
            for port in _DEV_PORTS:
                if port in environment.base_url:
                    warnings.append(f"Production base URL uses development port {port.lstrip(':')}")

        return warnings

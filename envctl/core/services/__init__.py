"""Services — the orchestrator and the administrative layers around it."""

from envctl.core.services.deployment import TESTING_TYPES, DeploymentOrchestrator
from envctl.core.services.environments import EnvironmentManager, EnvironmentStatistics
from envctl.core.services.validation import ReadinessReport, ValidationService

__all__ = [
    "DeploymentOrchestrator",
    "EnvironmentManager",
    "EnvironmentStatistics",
    "ReadinessReport",
    "TESTING_TYPES",
    "ValidationService",
]

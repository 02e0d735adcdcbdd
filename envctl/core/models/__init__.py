"""
Domain models — Pydantic types for environments and deployments.

All models are re-exported here for convenient access:

    from envctl.core.models import Environment, Service, DeploymentStatus
"""

from envctl.core.models.config_item import ConfigItem, ConfigType
from envctl.core.models.environment import Environment, EnvironmentVariant
from envctl.core.models.environment_type import EnvironmentType, TypePolicy, policy_for
from envctl.core.models.history import DeploymentHistory
from envctl.core.models.results import BatchDeploymentResult, DeploymentResult
from envctl.core.models.service import Service, ServiceType
from envctl.core.models.status import DeploymentStatus

__all__ = [
    # results.py
    "BatchDeploymentResult",
    # config_item.py
    "ConfigItem",
    "ConfigType",
    # history.py
    "DeploymentHistory",
    "DeploymentResult",
    # status.py
    "DeploymentStatus",
    # environment.py
    "Environment",
    # environment_type.py
    "EnvironmentType",
    "EnvironmentVariant",
    # service.py
    "Service",
    "ServiceType",
    "TypePolicy",
    "policy_for",
]

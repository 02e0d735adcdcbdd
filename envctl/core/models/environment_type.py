"""
EnvironmentType and its policy table.

The policy table is the single authoritative source for per-type
metadata: short code, description, priority, whether deployments need
approval, and the default number of parallel deployments allowed.

Lookups are exhaustive over the five known types. Anything else is a
``ConfigurationError``, never a silent default.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from envctl.core.errors import ConfigurationError


class TypePolicy(BaseModel):
    """Static, process-wide metadata for one environment type."""

    model_config = ConfigDict(frozen=True)

    code: str
    description: str
    priority: int
    requires_approval: bool
    max_parallel_deployments: int


class EnvironmentType(str, Enum):
    """The five deployment tiers, lowest risk first."""

    DEVELOPMENT = "DEV"
    QA = "QA"
    UAT = "UAT"
    STAGING = "STG"
    PRODUCTION = "PROD"

    @property
    def policy(self) -> TypePolicy:
        return policy_for(self)

    @property
    def code(self) -> str:
        return self.policy.code

    @property
    def description(self) -> str:
        return self.policy.description

    @property
    def priority(self) -> int:
        return self.policy.priority

    @property
    def requires_approval(self) -> bool:
        return self.policy.requires_approval

    @property
    def max_parallel_deployments(self) -> int:
        return self.policy.max_parallel_deployments

    @classmethod
    def from_code(cls, code: str) -> EnvironmentType:
        """Resolve a type from its short code or enum name (case-insensitive)."""
        needle = (code or "").strip().upper()
        for env_type in cls:
            if needle in (env_type.value, env_type.name):
                return env_type
        raise ConfigurationError(f"Unknown environment type code: {code!r}")


_POLICIES: dict[EnvironmentType, TypePolicy] = {
    EnvironmentType.DEVELOPMENT: TypePolicy(
        code="DEV",
        description="Development",
        priority=10,
        requires_approval=False,
        max_parallel_deployments=5,
    ),
    EnvironmentType.QA: TypePolicy(
        code="QA",
        description="Quality Assurance",
        priority=5,
        requires_approval=False,
        max_parallel_deployments=2,
    ),
    EnvironmentType.UAT: TypePolicy(
        code="UAT",
        description="User Acceptance Testing",
        priority=3,
        requires_approval=True,
        max_parallel_deployments=1,
    ),
    EnvironmentType.STAGING: TypePolicy(
        code="STG",
        description="Staging",
        priority=2,
        requires_approval=True,
        max_parallel_deployments=1,
    ),
    EnvironmentType.PRODUCTION: TypePolicy(
        code="PROD",
        description="Production",
        priority=1,
        requires_approval=True,
        max_parallel_deployments=1,
    ),
}


def policy_for(env_type: object) -> TypePolicy:
    """Return the policy for a type.

    Raises:
        ConfigurationError: If ``env_type`` is not a mapped EnvironmentType.
    """
    policy = _POLICIES.get(env_type) if isinstance(env_type, EnvironmentType) else None
    if policy is None:
        raise ConfigurationError(f"No policy mapped for environment type {env_type!r}")
    return policy

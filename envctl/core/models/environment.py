"""
Environment — a named deployment target.

An environment owns its services, its configuration items, and its
deployment ledger. Behavior that differs per tier (validation rules,
parallel-deployment limit, approval default) is not implemented by
subclasses: each environment carries a closed ``variant`` tag and looks
its behavior up in the profile table (``envctl.core.environments.profiles``).

Identity contract: ``id`` is frozen after construction, and equality and
hashing use ``id`` alone. Two instances with the same id are the same
logical environment whatever their other fields say.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from envctl.core.models.config_item import ConfigItem, ConfigType
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.models.history import DeploymentHistory
from envctl.core.models.service import Service
from envctl.core.models.status import DeploymentStatus


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class EnvironmentVariant(str, Enum):
    """Closed set of behavior profiles an environment can use."""

    DEVELOPMENT = "development"
    QA = "qa"
    UAT = "uat"
    STAGING = "staging"
    PRODUCTION = "production"
    GENERIC = "generic"

    @classmethod
    def for_type(cls, env_type: EnvironmentType) -> EnvironmentVariant:
        """The dedicated variant for a type."""
        return _VARIANT_BY_TYPE[env_type]


_VARIANT_BY_TYPE: dict[EnvironmentType, EnvironmentVariant] = {
    EnvironmentType.DEVELOPMENT: EnvironmentVariant.DEVELOPMENT,
    EnvironmentType.QA: EnvironmentVariant.QA,
    EnvironmentType.UAT: EnvironmentVariant.UAT,
    EnvironmentType.STAGING: EnvironmentVariant.STAGING,
    EnvironmentType.PRODUCTION: EnvironmentVariant.PRODUCTION,
}


class Environment(BaseModel):
    """A deployment target with configuration, services, and history.

    Build instances through ``envctl.core.environments.create_environment``
    so the variant's default configuration gets seeded.
    """

    # ── Identity ─────────────────────────────────────────────────
    id: str = Field(frozen=True)
    name: str
    type: EnvironmentType
    variant: EnvironmentVariant = EnvironmentVariant.GENERIC
    base_url: str
    created_at: str = Field(default_factory=_now_iso)

    # ── Mutable state ────────────────────────────────────────────
    current_version: str = "1.0.0"
    status: DeploymentStatus = DeploymentStatus.PENDING
    is_active: bool = False
    database_url: str | None = None
    api_endpoint: str | None = None

    # ── Owned collections ────────────────────────────────────────
    services: dict[str, Service] = Field(default_factory=dict)
    configurations: dict[str, ConfigItem] = Field(default_factory=dict)
    deployment_history: list[DeploymentHistory] = Field(default_factory=list)

    # ── Identity-based equality ──────────────────────────────────

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Environment):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return f"{self.name} [{self.type.code}] - {self.base_url} - v{self.current_version}"

    # ── Variant behavior ─────────────────────────────────────────

    def validate(self) -> list[str]:  # type: ignore[override]
        """Return the variant's rule violations; empty when compliant.

        Pure: reads state only, never mutates it.
        """
        from envctl.core.environments.profiles import profile_for

        return profile_for(self.variant).check(self)

    def max_parallel_deployments(self) -> int:
        from envctl.core.environments.profiles import profile_for

        return profile_for(self.variant).max_parallel_for(self.type)

    def requires_approval(self) -> bool:
        from envctl.core.environments.profiles import profile_for

        return profile_for(self.variant).approval_for(self.type)

    # ── Services ─────────────────────────────────────────────────

    def add_service(self, service: Service) -> None:
        """Insert or replace the service with the same id."""
        self.services[service.id] = service

    def remove_service(self, service_id: str) -> None:
        self.services.pop(service_id, None)

    def get_service(self, service_id: str) -> Service | None:
        return self.services.get(service_id)

    # ── Configuration ────────────────────────────────────────────

    def add_configuration(self, item: ConfigItem) -> None:
        """Insert or overwrite the item stored under ``item.key``."""
        self.configurations[item.key] = item

    def remove_configuration(self, key: str) -> None:
        self.configurations.pop(key, None)

    def get_configuration(self, key: str) -> ConfigItem | None:
        return self.configurations.get(key)

    def configurations_by_type(self, config_type: ConfigType) -> list[ConfigItem]:
        return [c for c in self.configurations.values() if c.type == config_type]

    def config_map(self) -> dict[str, str]:
        """Plain key → value view (secrets included, unmasked)."""
        return {key: item.value for key, item in self.configurations.items()}

    # ── Deployment ledger + status ───────────────────────────────

    def record_deployment(self, version: str, deployed_by: str) -> DeploymentHistory:
        """Append an IN_PROGRESS ledger entry. Status is left untouched."""
        entry = DeploymentHistory(
            environment_name=self.name,
            version=version,
            deployed_by=deployed_by,
        )
        self.deployment_history.append(entry)
        return entry

    def update_status(self, status: DeploymentStatus) -> None:
        """Set the status; completed statuses also settle ``is_active``."""
        self.status = status
        if status.is_completed:
            self.is_active = status.is_successful

    @property
    def last_deployment(self) -> DeploymentHistory | None:
        return self.deployment_history[-1] if self.deployment_history else None

    # ── Display ──────────────────────────────────────────────────

    def summary(self) -> str:
        """One-line listing form."""
        return f"{self.status.emoji} {self} ({len(self.services)} services)"

    def detailed_info(self) -> str:
        lines = [
            "=" * 40,
            f"Environment: {self.name}",
            f"Type: {self.type.description} ({self.type.code})",
            f"URL: {self.base_url}",
            f"Status: {self.status.emoji} {self.status.display_name}",
            f"Active: {'yes' if self.is_active else 'no'}",
            f"Version: {self.current_version}",
            f"Created: {self.created_at}",
            f"Services: {len(self.services)}",
            f"Configurations: {len(self.configurations)}",
            f"Deployments: {len(self.deployment_history)}",
            f"Requires Approval: {'yes' if self.requires_approval() else 'no'}",
            "=" * 40,
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly summary with secrets masked."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "variant": self.variant.value,
            "base_url": self.base_url,
            "database_url": self.database_url,
            "api_endpoint": self.api_endpoint,
            "current_version": self.current_version,
            "status": self.status.value,
            "is_active": self.is_active,
            "requires_approval": self.requires_approval(),
            "max_parallel_deployments": self.max_parallel_deployments(),
            "services": [s.model_dump(mode="json") for s in self.services.values()],
            "configurations": {
                key: item.masked_value for key, item in self.configurations.items()
            },
            "deployments": len(self.deployment_history),
        }

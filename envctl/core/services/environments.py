"""
Environment manager — create, update, look up and summarize environments.

The manager is the administrative face of the repository: it builds
environments through the factory, refuses to store ones that fail
their variant's rules, and answers inventory questions (search,
statistics). Deployments go through ``DeploymentOrchestrator``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from envctl.core.environments.factory import create_environment
from envctl.core.errors import NotFoundError, ValidationError
from envctl.core.models.environment import Environment
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.models.service import Service
from envctl.core.repository import EnvironmentRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentStatistics:
    total_environments: int
    active_environments: int
    total_services: int
    total_deployments: int

    @property
    def activation_rate(self) -> float:
        """Share of environments that are active, 0.0 for an empty inventory."""
        if not self.total_environments:
            return 0.0
        return self.active_environments / self.total_environments

    @property
    def services_per_environment(self) -> float:
        if not self.total_environments:
            return 0.0
        return self.total_services / self.total_environments

    def to_dict(self) -> dict[str, int | float]:
        return {
            **asdict(self),
            "activation_rate": round(self.activation_rate, 4),
            "services_per_environment": round(self.services_per_environment, 4),
        }


class EnvironmentManager:
    """Administrative operations over an environment repository."""

    def __init__(self, repository: EnvironmentRepository) -> None:
        self._repository = repository

    # ── Lifecycle ───────────────────────────────────────────────

    def create_environment(
        self,
        env_type: EnvironmentType,
        name: str,
        base_url: str,
    ) -> Environment:
        """Build, validate and store a new environment.

        Raises:
            ValidationError: If the seeded environment breaks its own rules
                or another environment already uses ``name`` (any case).
            ConfigurationError: If ``env_type`` has no policy.
        """
        self._check_name_free(name)
        environment = create_environment(env_type, name, base_url)
        issues = environment.validate()
        if issues:
            raise ValidationError(f"Environment '{name}' validation failed", issues)

        self._repository.save(environment)
        logger.info("Created environment %s (%s)", environment.name, environment.id)
        return environment

    def update_environment(
        self,
        env_id: str,
        name: str | None = None,
        base_url: str | None = None,
    ) -> Environment:
        """Rebuild an environment under the same id with a new name or URL.

        Blank arguments keep the current value. Services, history,
        version and status carry over; configuration is re-seeded.

        Raises:
            NotFoundError: If no environment has that id.
            ValidationError: If the rebuilt environment breaks its rules
                or the new name belongs to another environment.
        """
        current = self._require(env_id)
        name = name.strip() if name and name.strip() else current.name
        base_url = base_url.strip() if base_url and base_url.strip() else current.base_url
        self._check_name_free(name, current.id)

        updated = create_environment(
            current.type,
            name,
            base_url,
            env_id=current.id,
            variant=current.variant,
        )
        issues = updated.validate()
        if issues:
            raise ValidationError(f"Environment '{name}' update validation failed", issues)

        updated.created_at = current.created_at
        updated.current_version = current.current_version
        updated.status = current.status
        updated.is_active = current.is_active
        updated.services = dict(current.services)
        updated.deployment_history = list(current.deployment_history)

        self._repository.save(updated)
        logger.info("Updated environment %s (%s)", updated.name, updated.id)
        return updated

    def delete_environment(self, env_id: str) -> None:
        self._repository.delete(env_id)
        logger.info("Deleted environment %s", env_id)

    # ── Lookups ─────────────────────────────────────────────────

    def get_environment(self, env_id: str) -> Environment | None:
        return self._repository.find_by_id(env_id)

    def get_by_name(self, name: str) -> Environment | None:
        return self._repository.find_by_name(name)

    def resolve(self, ref: str) -> Environment:
        """Find by id, then by name.

        Raises:
            NotFoundError: If neither matches.
        """
        environment = self._repository.find_by_id(ref) or self._repository.find_by_name(ref)
        if environment is None:
            raise NotFoundError(f"Environment not found: {ref}")
        return environment

    def all_environments(self) -> list[Environment]:
        return self._repository.find_all()

    def list_by_type(self, env_type: EnvironmentType) -> list[Environment]:
        return self._repository.find_by_type(env_type)

    def active_environments(self) -> list[Environment]:
        return [env for env in self._repository.find_all() if env.is_active]

    def search(self, query: str | None) -> list[Environment]:
        """Substring match on name, id, base URL or type (case-insensitive).

        A blank query returns everything.
        """
        if not query or not query.strip():
            return self._repository.find_all()
        term = query.strip().lower()
        return [env for env in self._repository.find_all() if _matches(env, term)]

    # ── Services ────────────────────────────────────────────────

    def add_service(self, env_id: str, service: Service) -> None:
        environment = self._require(env_id)
        environment.add_service(service)
        self._repository.save(environment)

    def remove_service(self, env_id: str, service_id: str) -> None:
        environment = self._require(env_id)
        environment.remove_service(service_id)
        self._repository.save(environment)

    # ── Reporting ───────────────────────────────────────────────

    def statistics(self) -> EnvironmentStatistics:
        environments = self._repository.find_all()
        return EnvironmentStatistics(
            total_environments=len(environments),
            active_environments=sum(1 for env in environments if env.is_active),
            total_services=sum(len(env.services) for env in environments),
            total_deployments=sum(len(env.deployment_history) for env in environments),
        )

    def _check_name_free(self, name: str, env_id: str | None = None) -> None:
        existing = self._repository.find_by_name(name)
        if existing is not None and existing.id != env_id:
            raise ValidationError(
                f"Environment name '{name}' is already used by {existing.id}",
                [f"Duplicate environment name: {name}"],
            )

    def _require(self, env_id: str) -> Environment:
        environment = self._repository.find_by_id(env_id)
        if environment is None:
            raise NotFoundError(f"Environment not found: {env_id}")
        return environment


def _matches(env: Environment, term: str) -> bool:
    return (
        term in env.name.lower()
        or term in env.id.lower()
        or term in env.base_url.lower()
        or term in env.type.name.lower()
        or term in env.type.code.lower()
    )

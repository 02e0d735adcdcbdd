"""
Observer contract — listeners for deployment lifecycle events.

Every hook has a no-op default, so a listener only overrides the
events it cares about.
"""

from __future__ import annotations

from envctl.core.models.environment import Environment
from envctl.core.models.service import Service


class DeploymentObserver:
    """Base class for deployment listeners."""

    def on_deployment_start(self, environment: Environment, service: Service, version: str) -> None:
        """A deployment was recorded and is now IN_PROGRESS."""

    def on_deployment_success(self, environment: Environment, service: Service, version: str) -> None:
        """The strategy succeeded and the environment was saved."""

    def on_deployment_failure(
        self,
        environment: Environment,
        service: Service,
        version: str,
        error: str,
    ) -> None:
        """The strategy failed; ``error`` is the human-readable reason."""

    def on_rollback(self, environment: Environment, service: Service) -> None:
        """A rollback of ``service`` is about to happen."""

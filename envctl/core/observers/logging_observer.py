"""Logging observer — writes lifecycle events to the ``envctl`` log."""

from __future__ import annotations

import logging

from envctl.core.models.environment import Environment
from envctl.core.models.service import Service
from envctl.core.observers.base import DeploymentObserver

logger = logging.getLogger(__name__)


class LoggingObserver(DeploymentObserver):
    def on_deployment_start(self, environment: Environment, service: Service, version: str) -> None:
        logger.info("→ %s v%s → %s started", service.name, version, environment.name)

    def on_deployment_success(self, environment: Environment, service: Service, version: str) -> None:
        logger.info("✓ %s v%s → %s succeeded", service.name, version, environment.name)

    def on_deployment_failure(
        self,
        environment: Environment,
        service: Service,
        version: str,
        error: str,
    ) -> None:
        logger.error("✗ %s v%s → %s failed: %s", service.name, version, environment.name, error)

    def on_rollback(self, environment: Environment, service: Service) -> None:
        logger.warning("↩ rolling back %s v%s on %s", service.name, service.version, environment.name)

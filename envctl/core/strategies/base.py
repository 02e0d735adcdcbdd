"""
Strategy base — the contract between the orchestrator and a rollout.

A strategy performs one (simulated) rollout of a service version onto
an environment. It owns exactly one piece of environment state: the
status. On success it sets SUCCESS, on failure it sets FAILED and
raises ``StrategyExecutionError``, and a rollback always ends in
ROLLED_BACK. Everything else (version, service set, history, saving)
belongs to the orchestrator.

Strategies are stateless between calls, so the orchestrator may swap
them at any time without affecting deployments already recorded.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from envctl.core.errors import StrategyExecutionError
from envctl.core.models.environment import Environment
from envctl.core.models.service import Service
from envctl.core.models.status import DeploymentStatus
from envctl.core.probes import HealthProbe

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], None]


class DeploymentStrategy(ABC):
    """Abstract base class for deployment strategies.

    To create a new strategy:
        1. Subclass DeploymentStrategy (or PhasedStrategy)
        2. Implement name, description, deploy, rollback
        3. Add it to ``envctl.core.strategies.STRATEGIES``
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key (e.g., 'default', 'blue-green')."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable one-liner for display."""

    @abstractmethod
    def deploy(self, environment: Environment, service: Service, version: str) -> None:
        """Roll ``version`` of ``service`` out to ``environment``.

        Raises:
            StrategyExecutionError: After setting the environment to FAILED.
        """

    @abstractmethod
    def rollback(self, environment: Environment, service: Service) -> None:
        """Undo ``service`` on ``environment`` and set ROLLED_BACK."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PhasedStrategy(DeploymentStrategy):
    """A rollout modeled as ordered phases plus one elapsed-time effect.

    Phases listed in ``probe_phases`` consult the health probe (when one
    is wired) against the environment's base URL; an unhealthy answer
    aborts the rollout at that phase. After every phase passes, the
    strategy sleeps once for ``delay_seconds`` to stand in for the real
    rollout duration.
    """

    phases: tuple[str, ...] = ("deploy",)
    probe_phases: frozenset[str] = frozenset()
    delay_seconds: float = 1.0

    def __init__(
        self,
        sleep: SleepFn | None = None,
        probe: HealthProbe | None = None,
    ) -> None:
        self._sleep = sleep or time.sleep
        self._probe = probe

    def deploy(self, environment: Environment, service: Service, version: str) -> None:
        logger.info(
            "[%s] Deploying %s v%s to %s",
            self.name, service.name, version, environment.name,
        )
        try:
            for phase in self.phases:
                self._run_phase(phase, environment, service, version)
            self._sleep(self.delay_seconds)
        except StrategyExecutionError:
            environment.update_status(DeploymentStatus.FAILED)
            raise

        environment.update_status(DeploymentStatus.SUCCESS)
        logger.info("[%s] %s v%s live on %s", self.name, service.name, version, environment.name)

    def rollback(self, environment: Environment, service: Service) -> None:
        logger.info("[%s] Rolling back %s on %s", self.name, service.name, environment.name)
        environment.update_status(DeploymentStatus.ROLLED_BACK)

    def _run_phase(
        self,
        phase: str,
        environment: Environment,
        service: Service,
        version: str,
    ) -> None:
        logger.debug("[%s] phase %s: %s v%s", self.name, phase, service.name, version)
        if phase not in self.probe_phases or self._probe is None:
            return

        result = self._probe.check(environment.base_url)
        if not result.healthy:
            raise StrategyExecutionError(
                f"{phase} failed on {environment.name}: {result.message}",
                phase=phase,
            )

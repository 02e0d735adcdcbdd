"""
Mock strategy — test double for the orchestrator.

Records every call and, by default, succeeds instantly. Individual
environments (by name) can be told to fail, or every deploy can fail.
Deploy and rollback can each be made to raise an arbitrary exception.
"""

from __future__ import annotations

from dataclasses import dataclass

from envctl.core.errors import StrategyExecutionError
from envctl.core.models.environment import Environment
from envctl.core.models.service import Service
from envctl.core.models.status import DeploymentStatus
from envctl.core.strategies.base import DeploymentStrategy


@dataclass
class StrategyCall:
    """One recorded invocation."""

    operation: str
    environment: str
    service_id: str
    version: str = ""


class MockStrategy(DeploymentStrategy):
    """Instant strategy with scripted failures."""

    def __init__(self, strategy_name: str = "mock") -> None:
        self._name = strategy_name
        self._failures: dict[str, str] = {}
        self._fail_all: str | None = None
        self._raise: Exception | None = None
        self._rollback_raise: Exception | None = None
        self._call_log: list[StrategyCall] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return "Test double that records calls"

    @property
    def call_log(self) -> list[StrategyCall]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def set_failure(self, environment_name: str, error: str = "Mock failure") -> None:
        """Make deploys to one environment fail."""
        self._failures[environment_name] = error

    def fail_all(self, error: str = "Mock failure") -> None:
        self._fail_all = error

    def raise_on_deploy(self, exc: Exception) -> None:
        """Raise an arbitrary exception from deploy (a broken strategy)."""
        self._raise = exc

    def deploy(self, environment: Environment, service: Service, version: str) -> None:
        self._call_log.append(StrategyCall("deploy", environment.name, service.id, version))

        if self._raise is not None:
            raise self._raise

        error = self._failures.get(environment.name, self._fail_all)
        if error is not None:
            environment.update_status(DeploymentStatus.FAILED)
            raise StrategyExecutionError(error, phase="deploy")

        environment.update_status(DeploymentStatus.SUCCESS)

    def raise_on_rollback(self, exc: Exception) -> None:
        self._rollback_raise = exc

    def rollback(self, environment: Environment, service: Service) -> None:
        self._call_log.append(StrategyCall("rollback", environment.name, service.id))
        if self._rollback_raise is not None:
            raise self._rollback_raise
        environment.update_status(DeploymentStatus.ROLLED_BACK)

    def reset(self) -> None:
        """Clear call log and scripted failures."""
        self._call_log.clear()
        self._failures.clear()
        self._fail_all = None
        self._raise = None
        self._rollback_raise = None

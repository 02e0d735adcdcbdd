"""
Shared test fixtures and configuration.
"""

import pytest

from envctl.core.environments import create_environment
from envctl.core.models import EnvironmentType, Service, ServiceType
from envctl.core.observers import DeploymentNotifier, DeploymentObserver
from envctl.core.repository import InMemoryEnvironmentRepository
from envctl.core.services.deployment import DeploymentOrchestrator
from envctl.core.strategies import MockStrategy


class FakeClock:
    """Monotonic clock that advances a fixed step per reading."""

    def __init__(self, step: float = 0.25):
        self.now = 100.0
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class RecordingObserver(DeploymentObserver):
    """Observer that records (event, environment name) tuples."""

    def __init__(self, label: str = "rec", log: list | None = None):
        self.label = label
        self.events: list = [] if log is None else log

    def on_deployment_start(self, environment, service, version):
        self.events.append((self.label, "start", environment.name))

    def on_deployment_success(self, environment, service, version):
        self.events.append((self.label, "success", environment.name))

    def on_deployment_failure(self, environment, service, version, error):
        self.events.append((self.label, "failure", environment.name))

    def on_rollback(self, environment, service):
        self.events.append((self.label, "rollback", environment.name))


@pytest.fixture
def no_sleep():
    calls: list[float] = []

    def sleep(seconds: float) -> None:
        calls.append(seconds)

    sleep.calls = calls
    return sleep


@pytest.fixture
def service() -> Service:
    return Service(id="svc-001", name="Checkout", version="1.0.0", type=ServiceType.API)


@pytest.fixture
def environments():
    """One environment of each type, all passing their own rules."""
    return [
        create_environment(EnvironmentType.DEVELOPMENT, "Dev-01", "http://localhost:8080", env_id="DEV-01"),
        create_environment(EnvironmentType.QA, "QA-01", "https://qa.company.com", env_id="QA-01"),
        create_environment(EnvironmentType.UAT, "UAT-01", "https://uat.company.com", env_id="UAT-01"),
        create_environment(EnvironmentType.STAGING, "Staging-01", "https://staging.company.com", env_id="STG-01"),
        create_environment(EnvironmentType.PRODUCTION, "Prod-01", "https://app.company.com", env_id="PROD-01"),
    ]


@pytest.fixture
def repository(environments) -> InMemoryEnvironmentRepository:
    return InMemoryEnvironmentRepository(environments)


@pytest.fixture
def strategy() -> MockStrategy:
    return MockStrategy()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def orchestrator(repository, strategy, recorder) -> DeploymentOrchestrator:
    notifier = DeploymentNotifier()
    notifier.register(recorder)
    return DeploymentOrchestrator(
        repository,
        strategy=strategy,
        notifier=notifier,
        clock=FakeClock(),
    )


@pytest.fixture
def make_recorder():
    """Factory for extra recording observers sharing one event log."""
    return RecordingObserver

"""
Bootstrap use case — assemble a ready-to-use workspace.

Loads settings and the environment inventory, fills an in-memory
repository, and wires the orchestrator, manager, validation service,
notifier and metrics together. The CLI builds exactly one workspace
per invocation; tests build them with their own collaborators.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from envctl.core.approval import ApprovalSource
from envctl.core.config.loader import find_inventory_file, load_inventory, read_inventory_file
from envctl.core.config.settings import Settings, load_settings
from envctl.core.observability.metrics import DeploymentMetrics
from envctl.core.observers.base import DeploymentObserver
from envctl.core.observers.logging_observer import LoggingObserver
from envctl.core.observers.notification import LogChannel, NotificationObserver, NotificationPriority
from envctl.core.observers.notifier import DeploymentNotifier
from envctl.core.probes import HealthProbe
from envctl.core.repository import InMemoryEnvironmentRepository
from envctl.core.services.deployment import DeploymentOrchestrator
from envctl.core.services.environments import EnvironmentManager
from envctl.core.services.validation import ValidationService
from envctl.core.strategies import DeploymentStrategy, get_strategy

logger = logging.getLogger(__name__)


def _no_sleep(_seconds: float) -> None:
    return None


@dataclass
class Workspace:
    """Everything one session needs, already connected."""

    settings: Settings
    repository: InMemoryEnvironmentRepository
    orchestrator: DeploymentOrchestrator
    manager: EnvironmentManager
    validation: ValidationService
    notifier: DeploymentNotifier
    metrics: DeploymentMetrics
    probe: HealthProbe | None = None
    inventory_path: Path | None = None
    observers: list[DeploymentObserver] = field(default_factory=list)

    def use_strategy(self, name: str) -> None:
        """Swap the orchestrator's strategy by registry name."""
        self.orchestrator.set_strategy(build_strategy(name, self.settings, self.probe))


def build_strategy(
    name: str,
    settings: Settings,
    probe: HealthProbe | None = None,
) -> DeploymentStrategy:
    sleep = None if settings.simulate_delay else _no_sleep
    return get_strategy(name, sleep=sleep, probe=probe)


def bootstrap(
    config_path: Path | None = None,
    *,
    approval: ApprovalSource | None = None,
    probe: HealthProbe | None = None,
    settings: Settings | None = None,
    overrides: dict[str, Any] | None = None,
    use_default_inventory: bool = False,
) -> Workspace:
    """Build a workspace from environments.yml (or the defaults).

    Args:
        config_path: Explicit inventory file. Searched upward from cwd if None.
        approval: Approval source for gated environments.
        probe: Health probe for strategies and readiness checks.
        settings: Pre-built settings; skips reading them from file and env.
        overrides: Field values applied on top of the settings (CLI flags).
        use_default_inventory: Ignore any inventory file on disk.

    Raises:
        ConfigurationError: If the inventory or settings are invalid.
    """
    path = None if use_default_inventory else (config_path or find_inventory_file())
    data = read_inventory_file(path) if path is not None else None

    if settings is None:
        settings = load_settings((data or {}).get("settings"))
    if overrides:
        settings = settings.model_copy(update=overrides)

    environments = load_inventory(data)
    repository = InMemoryEnvironmentRepository(environments)
    metrics = DeploymentMetrics()
    notifier = DeploymentNotifier()

    observers = [
        LoggingObserver(),
        NotificationObserver([LogChannel(min_priority=NotificationPriority.WARNING)]),
    ]
    for observer in observers:
        notifier.register(observer)

    orchestrator = DeploymentOrchestrator(
        repository,
        strategy=build_strategy(settings.strategy, settings, probe),
        notifier=notifier,
        approval=approval,
        approval_mode=settings.approval_mode,
        enforce_parallel_limit=settings.enforce_parallel_limit,
        metrics=metrics,
        default_deployed_by=settings.default_deployed_by,
    )

    logger.debug(
        "Workspace ready: %d environment(s), strategy=%s, approval=%s",
        repository.count(), settings.strategy, settings.approval_mode,
    )
    return Workspace(
        settings=settings,
        repository=repository,
        orchestrator=orchestrator,
        manager=EnvironmentManager(repository),
        validation=ValidationService(repository, probe),
        notifier=notifier,
        metrics=metrics,
        probe=probe,
        inventory_path=path,
        observers=observers,
    )

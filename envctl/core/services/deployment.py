"""
Deployment orchestrator — the core coordinator.

Every deployment attempt walks the same state machine:

    requested → validated → (approval checked) → IN_PROGRESS → SUCCESS | FAILED
    IN_PROGRESS | SUCCESS → ROLLED_BACK   (explicit rollback only)

Expected failures (unknown environment, validation issues, denied
approval, strategy failure, parallel limit) come back as a failed
``DeploymentResult``; nothing is raised past this boundary for them.
``ConfigurationError`` and any unexpected exception (for example a
repository that cannot save) propagate to the caller.

The repository owns the thread-safety of the environment map. The
orchestrator holds no lock across the notify → strategy → save
sequence; its only lock guards the in-flight counters used when the
parallel limit is enforced.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from envctl.core.approval import (
    ApprovalMode,
    ApprovalRequest,
    ApprovalSource,
    NoApprovalSource,
    check_approval,
)
from envctl.core.errors import (
    ApprovalDeniedError,
    NotFoundError,
    ParallelLimitError,
    StrategyExecutionError,
    ValidationError,
)
from envctl.core.models.environment import Environment
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.models.results import BatchDeploymentResult, DeploymentResult
from envctl.core.models.service import Service
from envctl.core.models.status import DeploymentStatus
from envctl.core.observability.metrics import DeploymentMetrics
from envctl.core.observers.base import DeploymentObserver
from envctl.core.observers.notifier import DeploymentNotifier
from envctl.core.repository import EnvironmentRepository
from envctl.core.strategies.base import DeploymentStrategy
from envctl.core.strategies.default import DefaultStrategy

logger = logging.getLogger(__name__)

TESTING_TYPES = frozenset({
    EnvironmentType.DEVELOPMENT,
    EnvironmentType.QA,
    EnvironmentType.UAT,
    EnvironmentType.STAGING,
})


class DeploymentOrchestrator:
    """Validates, gates, runs and records deployments.

    Args:
        repository: Environment store (lookups and saves).
        strategy: Initial rollout strategy. Defaults to ``DefaultStrategy``.
        notifier: Listener dispatcher. A private one is created if omitted.
        approval: Source asked before deploying to gated environments.
        approval_mode: How a missing answer is treated (see ``envctl.core.approval``).
        enforce_parallel_limit: Refuse deployments beyond the environment's
            ``max_parallel_deployments()`` instead of only exposing it.
        metrics: Optional deployment metrics sink.
        default_deployed_by: Actor recorded when the caller gives none.
        clock: Monotonic seconds source used for durations.
    """

    def __init__(
        self,
        repository: EnvironmentRepository,
        strategy: DeploymentStrategy | None = None,
        notifier: DeploymentNotifier | None = None,
        approval: ApprovalSource | None = None,
        approval_mode: ApprovalMode = "permissive",
        enforce_parallel_limit: bool = False,
        metrics: DeploymentMetrics | None = None,
        default_deployed_by: str = "system",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repository = repository
        self._strategy = strategy or DefaultStrategy()
        self._notifier = notifier or DeploymentNotifier()
        self._approval = approval or NoApprovalSource()
        self._approval_mode = approval_mode
        self._enforce_parallel_limit = enforce_parallel_limit
        self._metrics = metrics
        self._default_deployed_by = default_deployed_by
        self._clock = clock

        self._slots_lock = threading.Lock()
        self._in_flight: dict[str, int] = {}

    # ── Collaborators ───────────────────────────────────────────

    @property
    def strategy(self) -> DeploymentStrategy:
        return self._strategy

    def set_strategy(self, strategy: DeploymentStrategy) -> None:
        """Swap the strategy used by subsequent deployments."""
        logger.info("Deployment strategy: %s → %s", self._strategy.name, strategy.name)
        self._strategy = strategy

    @property
    def notifier(self) -> DeploymentNotifier:
        return self._notifier

    def add_observer(self, observer: DeploymentObserver) -> None:
        self._notifier.register(observer)

    def remove_observer(self, observer: DeploymentObserver) -> None:
        self._notifier.unregister(observer)

    def in_flight(self, environment_id: str) -> int:
        """Deployments currently running against one environment."""
        with self._slots_lock:
            return self._in_flight.get(environment_id, 0)

    # ── Deploy ──────────────────────────────────────────────────

    def deploy_to_environment(
        self,
        environment_ref: str,
        service: Service,
        version: str,
        deployed_by: str | None = None,
    ) -> DeploymentResult:
        """Deploy ``version`` of ``service`` to one environment.

        Args:
            environment_ref: Environment id or name (name is case-insensitive).
            service: The deployable unit.
            version: Version string to roll out.
            deployed_by: Actor recorded in the history entry.

        Returns:
            DeploymentResult; ``status="failed"`` for every expected failure.
        """
        deployed_by = deployed_by or self._default_deployed_by
        strategy = self._strategy
        base = {"service_id": service.id, "version": version, "strategy": strategy.name}

        try:
            environment = self._resolve(environment_ref)
        except NotFoundError as e:
            logger.warning("Deploy %s v%s: %s", service.name, version, e)
            return self._finish(DeploymentResult.failure(environment_ref, e, **base))

        base["environment_id"] = environment.id
        try:
            self._check_preconditions(environment, service, version, deployed_by)
        except (ValidationError, ApprovalDeniedError) as e:
            return self._finish(DeploymentResult.failure(environment_ref, e, **base), environment)

        try:
            self._acquire_slot(environment)
        except ParallelLimitError as e:
            logger.warning("%s", e)
            return self._finish(DeploymentResult.failure(environment_ref, e, **base), environment)

        try:
            return self._finish(
                self._run(environment_ref, environment, service, version, deployed_by, strategy),
                environment,
            )
        finally:
            self._release_slot(environment)

    def deploy_to_all_testing(
        self,
        service: Service,
        version: str,
        deployed_by: str | None = None,
        max_workers: int = 1,
    ) -> BatchDeploymentResult:
        """Deploy to every DEV, QA, UAT and STG environment; never PROD.

        Best effort: one failure does not stop the others and nothing is
        rolled back. With ``max_workers > 1`` distinct environments are
        deployed concurrently; results are keyed and ordered by id.
        """
        targets = [
            env for env in self._repository.find_all() if env.type in TESTING_TYPES
        ]
        logger.info(
            "Deploying %s v%s to %d testing environment(s)",
            service.name, version, len(targets),
        )

        def deploy_one(env: Environment) -> tuple[str, DeploymentResult]:
            return env.id, self.deploy_to_environment(env.id, service, version, deployed_by)

        if max_workers > 1 and len(targets) > 1:
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="envctl-deploy") as pool:
                pairs = list(pool.map(deploy_one, targets))
        else:
            pairs = [deploy_one(env) for env in targets]

        batch = BatchDeploymentResult(
            version=version,
            service_id=service.id,
            results=dict(sorted(pairs, key=lambda pair: pair[0])),
        )
        log = logger.info if batch.all_ok else logger.warning
        log(
            "Testing rollout of %s v%s: %s (%d/%d succeeded)",
            service.name, version, batch.status, batch.succeeded, batch.total,
        )
        return batch

    # ── Rollback ────────────────────────────────────────────────

    def rollback(
        self,
        environment_ref: str,
        service_id: str,
        rolled_back_by: str | None = None,
    ) -> DeploymentResult:
        """Remove ``service_id`` from an environment and mark it ROLLED_BACK.

        The service is only removed once the strategy's rollback step
        succeeds. If that step raises, the ``-ROLLBACK`` history entry is
        completed FAILED, the environment is saved and the error re-raised.
        """
        rolled_back_by = rolled_back_by or self._default_deployed_by
        strategy = self._strategy
        base = {"operation": "rollback", "service_id": service_id, "strategy": strategy.name}

        try:
            environment = self._resolve(environment_ref)
            base["environment_id"] = environment.id
            service = environment.get_service(service_id)
            if service is None:
                raise NotFoundError(f"Service '{service_id}' not found in {environment.name}")
        except NotFoundError as e:
            logger.warning("Rollback: %s", e)
            result = DeploymentResult.failure(environment_ref, e, **base)
            self._record_rollback(result)
            return result

        started = self._clock()
        logger.info("Rolling back %s v%s on %s", service.name, service.version, environment.name)
        self._notifier.notify_rollback(environment, service)

        entry = environment.record_deployment(f"{service.version}-ROLLBACK", rolled_back_by)
        try:
            strategy.rollback(environment, service)
        except Exception as e:
            logger.exception("Rollback of %s on %s failed", service.name, environment.name)
            error = StrategyExecutionError(f"{type(e).__name__}: {e}")
            environment.update_status(DeploymentStatus.FAILED)
            entry.complete(
                DeploymentStatus.FAILED,
                notes=f"Rollback failed: {error}",
                duration_ms=self._elapsed_ms(started),
            )
            self._repository.save(environment)
            self._record_rollback(DeploymentResult.failure(environment_ref, error, **base))
            raise

        environment.remove_service(service_id)
        if environment.status != DeploymentStatus.ROLLED_BACK:
            environment.update_status(DeploymentStatus.ROLLED_BACK)

        duration_ms = self._elapsed_ms(started)
        entry.complete(
            DeploymentStatus.ROLLED_BACK,
            notes=f"Rolled back {service.name} v{service.version}",
            duration_ms=duration_ms,
        )
        self._repository.save(environment)

        result = DeploymentResult.success(
            environment_ref,
            version=entry.version,
            deployment_status=DeploymentStatus.ROLLED_BACK,
            deployment_id=entry.deployment_id,
            duration_ms=duration_ms,
            **base,
        )
        self._record_rollback(result)
        return result

    # ── Internals ───────────────────────────────────────────────

    def _resolve(self, ref: str) -> Environment:
        environment = self._repository.find_by_id(ref) or self._repository.find_by_name(ref)
        if environment is None:
            raise NotFoundError(f"Environment not found: {ref}")
        return environment

    def _check_preconditions(
        self,
        environment: Environment,
        service: Service,
        version: str,
        deployed_by: str,
    ) -> None:
        issues = environment.validate()
        if issues:
            for issue in issues:
                logger.warning("%s: %s", environment.name, issue)
            raise ValidationError.for_environment(environment.name, issues)

        if environment.requires_approval():
            request = ApprovalRequest(
                environment_id=environment.id,
                environment_name=environment.name,
                environment_type=environment.type.code,
                service_id=service.id,
                service_name=service.name,
                version=version,
                deployed_by=deployed_by,
            )
            try:
                check_approval(self._approval, request, self._approval_mode)
            except ApprovalDeniedError as e:
                logger.warning("%s", e)
                raise

    def _run(
        self,
        environment_ref: str,
        environment: Environment,
        service: Service,
        version: str,
        deployed_by: str,
        strategy: DeploymentStrategy,
    ) -> DeploymentResult:
        base = {
            "environment_id": environment.id,
            "service_id": service.id,
            "version": version,
            "strategy": strategy.name,
        }
        started = self._clock()
        entry = environment.record_deployment(version, deployed_by)
        environment.update_status(DeploymentStatus.IN_PROGRESS)
        logger.info(
            "Deploying %s v%s to %s via %s (deployment %s)",
            service.name, version, environment.name, strategy.name, entry.deployment_id,
        )
        self._notifier.notify_start(environment, service, version)

        try:
            strategy.deploy(environment, service, version)
            if environment.status != DeploymentStatus.SUCCESS:
                raise StrategyExecutionError(
                    f"Strategy '{strategy.name}' finished with status {environment.status.value}"
                )
        except StrategyExecutionError as e:
            error = e
        except Exception as e:
            logger.exception("Strategy %s raised during deployment to %s", strategy.name, environment.name)
            error = StrategyExecutionError(f"{type(e).__name__}: {e}")
        else:
            error = None

        duration_ms = self._elapsed_ms(started)

        if error is not None:
            environment.update_status(DeploymentStatus.FAILED)
            entry.complete(DeploymentStatus.FAILED, notes=str(error), duration_ms=duration_ms)
            self._repository.save(environment)
            logger.error("Deployment to %s failed: %s", environment.name, error)
            self._notifier.notify_failure(environment, service, version, str(error))
            return DeploymentResult.failure(
                environment_ref, error,
                deployment_status=DeploymentStatus.FAILED,
                deployment_id=entry.deployment_id,
                duration_ms=duration_ms,
                **base,
            )

        environment.current_version = version
        environment.add_service(service.model_copy(update={"version": version}))
        entry.complete(
            DeploymentStatus.SUCCESS,
            notes=f"Deployed {service.name} via {strategy.name}",
            duration_ms=duration_ms,
        )
        self._repository.save(environment)
        logger.info("Deployed %s v%s to %s in %dms", service.name, version, environment.name, duration_ms)
        self._notifier.notify_success(environment, service, version)

        return DeploymentResult.success(
            environment_ref,
            deployment_status=DeploymentStatus.SUCCESS,
            deployment_id=entry.deployment_id,
            duration_ms=duration_ms,
            **base,
        )

    def _acquire_slot(self, environment: Environment) -> None:
        with self._slots_lock:
            running = self._in_flight.get(environment.id, 0)
            if self._enforce_parallel_limit:
                limit = environment.max_parallel_deployments()
                if running >= limit:
                    raise ParallelLimitError(
                        f"{environment.name} already runs {running} deployment(s) (max {limit})"
                    )
            self._in_flight[environment.id] = running + 1
        if self._metrics is not None:
            self._metrics.deployment_started(environment.name)

    def _release_slot(self, environment: Environment) -> None:
        with self._slots_lock:
            remaining = self._in_flight.get(environment.id, 1) - 1
            if remaining > 0:
                self._in_flight[environment.id] = remaining
            else:
                self._in_flight.pop(environment.id, None)
        if self._metrics is not None:
            self._metrics.deployment_finished(environment.name)

    def _finish(
        self,
        result: DeploymentResult,
        environment: Environment | None = None,
    ) -> DeploymentResult:
        if self._metrics is not None:
            env_type = environment.type.code if environment is not None else ""
            self._metrics.record_deployment(result, env_type)
        return result

    def _record_rollback(self, result: DeploymentResult) -> None:
        if self._metrics is not None:
            self._metrics.record_rollback(result)

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)

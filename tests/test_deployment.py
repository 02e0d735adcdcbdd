"""
Tests for the deployment orchestrator — the deploy state machine,
approval gating, failure isolation, batch rollouts, rollback and the
optional parallel limit.
"""

import pytest

from envctl.core.approval import CallbackApproval, StaticApproval
from envctl.core.environments import PROFILES, create_environment
from envctl.core.errors import ConfigurationError
from envctl.core.models import DeploymentStatus, EnvironmentType, EnvironmentVariant
from envctl.core.observability.metrics import DeploymentMetrics
from envctl.core.observers import DeploymentNotifier
from envctl.core.repository import InMemoryEnvironmentRepository
from envctl.core.services.deployment import DeploymentOrchestrator
from envctl.core.strategies import DeploymentStrategy, MockStrategy


def _snapshot(repo):
    return {
        env.id: (env.current_version, len(env.deployment_history), env.status, dict(env.services))
        for env in repo.find_all()
    }


class IdleStrategy(DeploymentStrategy):
    """Returns without touching the environment status."""

    name = "idle"
    description = "does nothing"

    def deploy(self, environment, service, version):
        pass

    def rollback(self, environment, service):
        pass


class BrokenSaveRepository(InMemoryEnvironmentRepository):
    broken = False

    def save(self, environment):
        if self.broken:
            raise OSError("disk gone")
        super().save(environment)


class SaveCountingRepository(InMemoryEnvironmentRepository):
    def __init__(self, environments=()):
        self.saved = []
        super().__init__(environments)
        self.saved.clear()

    def save(self, environment):
        self.saved.append(environment.id)
        super().save(environment)


# ── Single deployment ────────────────────────────────────────────────


class TestDeploySuccess:
    def test_result(self, orchestrator, service):
        result = orchestrator.deploy_to_environment("QA-01", service, "2.0.0", "alice")
        assert result.ok
        assert result.environment == "QA-01"
        assert result.environment_id == "QA-01"
        assert result.deployment_status == DeploymentStatus.SUCCESS
        assert result.strategy == "mock"
        assert result.duration_ms == 250
        assert result.error is None

    def test_environment_updated(self, orchestrator, repository, service):
        orchestrator.deploy_to_environment("QA-01", service, "2.0.0", "alice")
        env = repository.find_by_id("QA-01")
        assert env.current_version == "2.0.0"
        assert env.status == DeploymentStatus.SUCCESS
        assert env.is_active
        assert env.get_service("svc-001").version == "2.0.0"

    def test_history_completed_once(self, orchestrator, repository, service):
        result = orchestrator.deploy_to_environment("QA-01", service, "2.0.0", "alice")
        history = repository.find_by_id("QA-01").deployment_history
        assert len(history) == 1
        entry = history[0]
        assert entry.deployment_id == result.deployment_id
        assert entry.status == DeploymentStatus.SUCCESS
        assert entry.deployed_by == "alice"
        assert entry.duration_ms == 250
        assert "mock" in entry.notes

    def test_observers_notified_in_order(self, orchestrator, recorder, service):
        orchestrator.deploy_to_environment("QA-01", service, "2.0.0")
        assert recorder.events == [("rec", "start", "QA-01"), ("rec", "success", "QA-01")]

    def test_resolve_by_name_case_insensitive(self, orchestrator, service):
        result = orchestrator.deploy_to_environment("staging-01", service, "2.0.0")
        assert result.ok
        assert result.environment_id == "STG-01"

    def test_default_actor(self, repository, strategy, service):
        orch = DeploymentOrchestrator(repository, strategy=strategy, default_deployed_by="ci")
        orch.deploy_to_environment("DEV-01", service, "2.0.0")
        assert repository.find_by_id("DEV-01").last_deployment.deployed_by == "ci"


class TestDeployNotFound:
    def test_failure_and_repository_unchanged(self, orchestrator, repository, strategy, recorder, service):
        before = _snapshot(repository)
        result = orchestrator.deploy_to_environment("Nowhere", service, "2.0.0")

        assert result.failed
        assert result.error_type == "not_found"
        assert result.environment_id is None
        assert "Nowhere" in result.error
        assert _snapshot(repository) == before
        assert repository.count() == 5
        assert strategy.call_count == 0
        assert recorder.events == []


class TestDeployValidation:
    def test_invalid_environment_aborts_without_mutation(self, orchestrator, repository, strategy, recorder, service):
        qa = repository.find_by_id("QA-01")
        qa.remove_configuration("MAX_USERS")

        result = orchestrator.deploy_to_environment("QA-01", service, "2.0.0")

        assert result.failed
        assert result.error_type == "validation"
        assert result.issues == ["MAX_USERS configuration is required for QA"]
        assert qa.deployment_history == []
        assert qa.current_version == "1.0.0"
        assert qa.status == DeploymentStatus.PENDING
        assert strategy.call_count == 0
        assert recorder.events == []

    def test_unknown_variant_propagates(self, orchestrator, service, monkeypatch):
        monkeypatch.delitem(PROFILES, EnvironmentVariant.QA)
        with pytest.raises(ConfigurationError):
            orchestrator.deploy_to_environment("QA-01", service, "2.0.0")


class TestDeployApproval:
    def _orch(self, repository, approval=None, mode="permissive"):
        return DeploymentOrchestrator(
            repository, strategy=MockStrategy(), approval=approval, approval_mode=mode,
        )

    def test_explicit_denial_blocks(self, repository, service):
        orch = self._orch(repository, StaticApproval(False))
        result = orch.deploy_to_environment("PROD-01", service, "2.0.0")
        assert result.failed
        assert result.error_type == "approval_denied"
        assert repository.find_by_id("PROD-01").deployment_history == []

    def test_explicit_approval_proceeds(self, repository, service):
        orch = self._orch(repository, StaticApproval(True), mode="strict")
        assert orch.deploy_to_environment("PROD-01", service, "2.0.0").ok

    def test_permissive_default_proceeds(self, repository, service):
        assert self._orch(repository).deploy_to_environment("UAT-01", service, "2.0.0").ok

    def test_strict_without_answer_blocks(self, repository, service):
        result = self._orch(repository, mode="strict").deploy_to_environment("STG-01", service, "2.0.0")
        assert result.error_type == "approval_denied"

    def test_deny_mode_blocks_gated_only(self, repository, service):
        orch = self._orch(repository, mode="deny")
        assert orch.deploy_to_environment("PROD-01", service, "2.0.0").failed
        assert orch.deploy_to_environment("DEV-01", service, "2.0.0").ok

    def test_ungated_environment_never_asks(self, repository, service):
        source = CallbackApproval(lambda r: pytest.fail("QA must not ask for approval"))
        assert self._orch(repository, source, "strict").deploy_to_environment("QA-01", service, "2.0.0").ok

    def test_request_context(self, repository, service):
        seen = []
        orch = self._orch(repository, CallbackApproval(lambda r: seen.append(r) or True))
        orch.deploy_to_environment("PROD-01", service, "2.0.0", "alice")
        assert seen[0].environment_type == "PROD"
        assert seen[0].version == "2.0.0"
        assert seen[0].deployed_by == "alice"


class TestDeployStrategyFailure:
    def test_failure_converted(self, orchestrator, repository, strategy, recorder, service):
        strategy.set_failure("QA-01", "disk full")
        result = orchestrator.deploy_to_environment("QA-01", service, "2.0.0")

        assert result.failed
        assert result.error_type == "strategy_failed"
        assert result.error == "disk full"
        assert result.deployment_status == DeploymentStatus.FAILED

        env = repository.find_by_id("QA-01")
        assert env.status == DeploymentStatus.FAILED
        assert not env.is_active
        assert env.current_version == "1.0.0"
        assert env.services == {}
        assert env.deployment_history[0].status == DeploymentStatus.FAILED
        assert env.deployment_history[0].notes == "disk full"
        assert recorder.events == [("rec", "start", "QA-01"), ("rec", "failure", "QA-01")]

    def test_unexpected_strategy_exception_converted(self, orchestrator, repository, strategy, service):
        strategy.raise_on_deploy(RuntimeError("segfault in tooling"))
        result = orchestrator.deploy_to_environment("QA-01", service, "2.0.0")
        assert result.failed
        assert result.error_type == "strategy_failed"
        assert "RuntimeError: segfault in tooling" in result.error
        assert repository.find_by_id("QA-01").status == DeploymentStatus.FAILED

    def test_strategy_not_reporting_success(self, repository, service):
        orch = DeploymentOrchestrator(repository, strategy=IdleStrategy())
        result = orch.deploy_to_environment("QA-01", service, "2.0.0")
        assert result.failed
        assert "in_progress" in result.error
        assert repository.find_by_id("QA-01").status == DeploymentStatus.FAILED

    def test_broken_repository_propagates(self, environments, service):
        repo = BrokenSaveRepository(environments)
        repo.broken = True
        orch = DeploymentOrchestrator(repo, strategy=MockStrategy())
        with pytest.raises(OSError, match="disk gone"):
            orch.deploy_to_environment("QA-01", service, "2.0.0")
        assert orch.in_flight("QA-01") == 0


class TestStrategySwap:
    def test_swap_between_calls(self, orchestrator, repository, service):
        orchestrator.deploy_to_environment("DEV-01", service, "2.0.0")
        replacement = MockStrategy("other")
        orchestrator.set_strategy(replacement)
        result = orchestrator.deploy_to_environment("DEV-01", service, "3.0.0")

        assert orchestrator.strategy is replacement
        assert result.strategy == "other"
        history = repository.find_by_id("DEV-01").deployment_history
        assert [h.version for h in history] == ["2.0.0", "3.0.0"]
        assert all(h.status == DeploymentStatus.SUCCESS for h in history)

    def test_add_remove_observer(self, orchestrator, service, make_recorder):
        extra = make_recorder("x")
        orchestrator.add_observer(extra)
        orchestrator.deploy_to_environment("DEV-01", service, "2.0.0")
        orchestrator.remove_observer(extra)
        orchestrator.deploy_to_environment("DEV-01", service, "3.0.0")
        assert len(extra.events) == 2


# ── Batch rollout ────────────────────────────────────────────────────


class TestDeployToAllTesting:
    @pytest.fixture
    def repo(self):
        dev = create_environment(EnvironmentType.DEVELOPMENT, "Dev-01", "http://localhost:8080", env_id="DEV-01")
        qa = create_environment(EnvironmentType.QA, "QA-01", "https://qa.company.com", env_id="QA-01")
        bad_uat = create_environment(EnvironmentType.UAT, "UAT-01", "https://accept.company.com", env_id="UAT-01")
        prod = create_environment(EnvironmentType.PRODUCTION, "Prod-01", "https://app.company.com", env_id="PROD-01")
        return InMemoryEnvironmentRepository([dev, qa, bad_uat, prod])

    def test_partial_success_surfaces(self, repo, service):
        orch = DeploymentOrchestrator(repo, strategy=MockStrategy())
        batch = orch.deploy_to_all_testing(service, "2.0.0", "bot")

        assert not batch.all_ok
        assert batch.status == "partial"
        assert batch.succeeded == 2
        assert batch.results["UAT-01"].error_type == "validation"

        for env_id in ("DEV-01", "QA-01"):
            env = repo.find_by_id(env_id)
            assert env.current_version == "2.0.0"
            assert len(env.deployment_history) == 1
            assert env.deployment_history[0].deployed_by == "bot"

        assert repo.find_by_id("UAT-01").deployment_history == []

    def test_production_excluded(self, repo, service):
        strategy = MockStrategy()
        orch = DeploymentOrchestrator(repo, strategy=strategy)
        batch = orch.deploy_to_all_testing(service, "2.0.0")
        assert "PROD-01" not in batch.results
        assert repo.find_by_id("PROD-01").deployment_history == []
        assert "Prod-01" not in {c.environment for c in strategy.call_log}

    def test_results_keyed_and_ordered_by_id(self, repo, service):
        batch = DeploymentOrchestrator(repo, strategy=MockStrategy()).deploy_to_all_testing(service, "2.0.0")
        assert list(batch.results) == ["DEV-01", "QA-01", "UAT-01"]

    def test_all_ok(self, repository, service):
        batch = DeploymentOrchestrator(repository, strategy=MockStrategy()).deploy_to_all_testing(service, "2.0.0")
        assert batch.all_ok
        assert batch.total == 4
        assert batch.to_dict()["status"] == "ok"

    def test_strategy_failure_does_not_halt(self, repository, service):
        strategy = MockStrategy()
        strategy.set_failure("Dev-01")
        batch = DeploymentOrchestrator(repository, strategy=strategy).deploy_to_all_testing(service, "2.0.0")
        assert batch.failed == 1
        assert batch.succeeded == 3

    def test_concurrent_matches_sequential(self, repo, service):
        batch = DeploymentOrchestrator(repo, strategy=MockStrategy()).deploy_to_all_testing(
            service, "2.0.0", max_workers=4,
        )
        assert list(batch.results) == ["DEV-01", "QA-01", "UAT-01"]
        assert batch.status == "partial"
        assert repo.find_by_id("QA-01").current_version == "2.0.0"

    def test_shared_name_keeps_every_result(self, service):
        qa_a = create_environment(EnvironmentType.QA, "QA", "https://qa-a.company.com", env_id="QA-A")
        qa_b = create_environment(EnvironmentType.QA, "QA", "https://qa-b.company.com", env_id="QA-B")
        qa_b.remove_configuration("MAX_USERS")
        repo = InMemoryEnvironmentRepository([qa_a, qa_b])

        batch = DeploymentOrchestrator(repo, strategy=MockStrategy()).deploy_to_all_testing(service, "2.0.0")

        assert batch.total == 2
        assert batch.failed == 1
        assert not batch.all_ok
        assert batch.status == "partial"
        assert batch.results["QA-A"].ok
        assert batch.results["QA-B"].error_type == "validation"

    def test_no_testing_environments(self, service):
        prod = create_environment(EnvironmentType.PRODUCTION, "Prod-01", "https://app.company.com")
        batch = DeploymentOrchestrator(InMemoryEnvironmentRepository([prod])).deploy_to_all_testing(service, "2.0.0")
        assert batch.total == 0
        assert batch.all_ok


# ── Rollback ─────────────────────────────────────────────────────────


class TestRollback:
    @pytest.fixture
    def deployed(self, repository, service):
        env = repository.find_by_id("DEV-01")
        env.add_service(service)
        env.update_status(DeploymentStatus.SUCCESS)
        return env

    def test_rollback_scenario(self, orchestrator, deployed, recorder):
        result = orchestrator.rollback("DEV-01", "svc-001")

        assert result.ok
        assert result.operation == "rollback"
        assert "svc-001" not in deployed.services
        entry = deployed.deployment_history[-1]
        assert entry.version.endswith("-ROLLBACK")
        assert entry.version == "1.0.0-ROLLBACK"
        assert entry.status == DeploymentStatus.ROLLED_BACK
        assert deployed.status == DeploymentStatus.ROLLED_BACK
        assert deployed.is_active is False
        assert recorder.events == [("rec", "rollback", "Dev-01")]

    def test_rolled_back_by(self, orchestrator, deployed):
        orchestrator.rollback("Dev-01", "svc-001", "alice")
        assert deployed.deployment_history[-1].deployed_by == "alice"

    def test_default_actor_is_system(self, orchestrator, deployed):
        orchestrator.rollback("DEV-01", "svc-001")
        assert deployed.deployment_history[-1].deployed_by == "system"

    def test_missing_service(self, orchestrator, repository, recorder):
        before = _snapshot(repository)
        result = orchestrator.rollback("QA-01", "svc-404")
        assert result.failed
        assert result.error_type == "not_found"
        assert "svc-404" in result.error
        assert _snapshot(repository) == before
        assert recorder.events == []

    def test_missing_environment(self, orchestrator):
        result = orchestrator.rollback("Nowhere", "svc-001")
        assert result.failed
        assert result.environment_id is None

    def test_after_deploy_uses_deployed_version(self, orchestrator, repository, service):
        orchestrator.deploy_to_environment("QA-01", service, "2.5.0")
        orchestrator.rollback("QA-01", "svc-001")
        history = repository.find_by_id("QA-01").deployment_history
        assert [h.version for h in history] == ["2.5.0", "2.5.0-ROLLBACK"]

    def test_strategy_fault_keeps_service_and_fails_entry(self, environments, service):
        repo = SaveCountingRepository(environments)
        env = repo.find_by_id("DEV-01")
        env.add_service(service)
        env.update_status(DeploymentStatus.SUCCESS)
        strategy = MockStrategy()
        strategy.raise_on_rollback(RuntimeError("load balancer unreachable"))
        metrics = DeploymentMetrics()
        orch = DeploymentOrchestrator(repo, strategy=strategy, metrics=metrics)

        with pytest.raises(RuntimeError, match="load balancer unreachable"):
            orch.rollback("DEV-01", "svc-001")

        assert "svc-001" in env.services
        entry = env.deployment_history[-1]
        assert entry.version == "1.0.0-ROLLBACK"
        assert entry.status == DeploymentStatus.FAILED
        assert "RuntimeError: load balancer unreachable" in entry.notes
        assert env.status == DeploymentStatus.FAILED
        assert repo.saved == ["DEV-01"]
        counters = metrics.to_dict()["counters"]
        assert [(c["name"], c["labels"]) for c in counters] == [("rollbacks_total", {"status": "failed"})]


# ── Parallel limit ───────────────────────────────────────────────────


class ReentrantStrategy(DeploymentStrategy):
    """Starts a second deployment to the same environment mid-rollout."""

    name = "reentrant"
    description = "nested deploy"

    def __init__(self):
        self.orchestrator = None
        self.inner = None

    def deploy(self, environment, service, version):
        if self.inner is None:
            self.inner = "pending"
            self.inner = self.orchestrator.deploy_to_environment(environment.id, service, version + "-inner")
        environment.update_status(DeploymentStatus.SUCCESS)

    def rollback(self, environment, service):
        environment.update_status(DeploymentStatus.ROLLED_BACK)


class TestParallelLimit:
    def _run(self, repository, service, enforce):
        strategy = ReentrantStrategy()
        orch = DeploymentOrchestrator(
            repository, strategy=strategy, approval=StaticApproval(True),
            enforce_parallel_limit=enforce,
        )
        strategy.orchestrator = orch
        outer = orch.deploy_to_environment("PROD-01", service, "2.0.0")
        return orch, outer, strategy.inner

    def test_enforced(self, repository, service):
        orch, outer, inner = self._run(repository, service, enforce=True)
        assert outer.ok
        assert inner.failed
        assert inner.error_type == "parallel_limit"
        assert orch.in_flight("PROD-01") == 0

    def test_not_enforced_by_default(self, repository, service):
        _, outer, inner = self._run(repository, service, enforce=False)
        assert outer.ok
        assert inner.ok

    def test_metadata_always_exposed(self, repository):
        assert repository.find_by_id("QA-01").max_parallel_deployments() == 2


# ── Metrics ──────────────────────────────────────────────────────────


class TestDeploymentMetricsRecorded:
    def test_counts(self, repository, service):
        metrics = DeploymentMetrics()
        strategy = MockStrategy()
        strategy.set_failure("QA-01")
        orch = DeploymentOrchestrator(
            repository, strategy=strategy, metrics=metrics, notifier=DeploymentNotifier(),
        )
        orch.deploy_to_environment("DEV-01", service, "2.0.0")
        orch.deploy_to_environment("QA-01", service, "2.0.0")
        orch.deploy_to_environment("Nowhere", service, "2.0.0")
        orch.rollback("DEV-01", "svc-001")

        assert metrics.total() == 3
        assert metrics.total("ok") == 1
        assert metrics.total("failed") == 2
        counters = {(c["name"], c["labels"].get("status")): c["value"] for c in metrics.to_dict()["counters"]}
        assert counters[("rollbacks_total", "ok")] == 1
        gauges = metrics.to_dict()["gauges"]
        assert all(g["value"] == 0 for g in gauges)

"""
Tests for the notifier, the logging observer and the notification observer.
"""

import logging

import pytest

from envctl.core.environments import create_environment
from envctl.core.models import EnvironmentType, Service
from envctl.core.observers import (
    DeploymentNotifier,
    DeploymentObserver,
    LogChannel,
    LoggingObserver,
    NotificationChannel,
    NotificationObserver,
    NotificationPriority,
    RecordingChannel,
)


@pytest.fixture
def env():
    return create_environment(EnvironmentType.QA, "QA-01", "https://qa.company.com", env_id="QA-01")


@pytest.fixture
def svc():
    return Service(id="svc-001", name="Checkout", version="1.0.0")


class Exploding(DeploymentObserver):
    def on_deployment_start(self, environment, service, version):
        raise RuntimeError("listener bug")


# ── Notifier ─────────────────────────────────────────────────────────


class TestDeploymentNotifier:
    def test_registration_order(self, env, svc, make_recorder):
        log: list = []
        notifier = DeploymentNotifier()
        notifier.register(make_recorder("a", log))
        notifier.register(make_recorder("b", log))
        notifier.notify_start(env, svc, "2.0.0")
        assert log == [("a", "start", "QA-01"), ("b", "start", "QA-01")]

    def test_faulty_listener_isolated(self, env, svc, caplog, make_recorder):
        log: list = []
        notifier = DeploymentNotifier()
        notifier.register(make_recorder("a", log))
        notifier.register(Exploding())
        notifier.register(make_recorder("c", log))

        with caplog.at_level(logging.ERROR, logger="envctl.core.observers.notifier"):
            notifier.notify_start(env, svc, "2.0.0")

        assert log == [("a", "start", "QA-01"), ("c", "start", "QA-01")]
        assert "Exploding failed on deploy:start" in caplog.text

    def test_register_twice_is_noop(self, make_recorder):
        notifier = DeploymentNotifier()
        listener = make_recorder()
        notifier.register(listener)
        notifier.register(listener)
        assert notifier.listeners == [listener]

    def test_unregister(self, env, svc, make_recorder):
        notifier = DeploymentNotifier()
        listener = make_recorder()
        notifier.register(listener)
        notifier.unregister(listener)
        notifier.unregister(listener)
        notifier.notify_success(env, svc, "2.0.0")
        assert listener.events == []

    def test_event_log(self, env, svc):
        notifier = DeploymentNotifier(buffer_size=2)
        notifier.notify_start(env, svc, "2.0.0")
        notifier.notify_failure(env, svc, "2.0.0", "boom")
        notifier.notify_rollback(env, svc)

        events = notifier.events()
        assert notifier.seq == 3
        assert [e["type"] for e in events] == ["deploy:failure", "deploy:rollback"]
        assert events[0]["data"]["error"] == "boom"
        assert events[0]["key"] == "QA-01"
        assert [e["seq"] for e in notifier.events(since=2)] == [3]

    def test_base_observer_hooks_are_noops(self, env, svc):
        notifier = DeploymentNotifier()
        notifier.register(DeploymentObserver())
        notifier.notify_start(env, svc, "1")
        notifier.notify_success(env, svc, "1")
        notifier.notify_failure(env, svc, "1", "x")
        notifier.notify_rollback(env, svc)


# ── Logging observer ─────────────────────────────────────────────────


class TestLoggingObserver:
    def test_failure_logged_as_error(self, env, svc, caplog):
        with caplog.at_level(logging.INFO, logger="envctl.core.observers.logging_observer"):
            LoggingObserver().on_deployment_failure(env, svc, "2.0.0", "disk full")
        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "disk full" in record.getMessage()


# ── Notification observer ────────────────────────────────────────────


class BrokenChannel(NotificationChannel):
    @property
    def name(self):
        return "broken"

    def send(self, event_type, message, priority):
        raise ConnectionError("smtp down")


class TestNotificationObserver:
    def test_priorities(self, env, svc):
        channel = RecordingChannel()
        observer = NotificationObserver([channel])
        observer.on_deployment_start(env, svc, "2.0.0")
        observer.on_deployment_success(env, svc, "2.0.0")
        observer.on_deployment_failure(env, svc, "2.0.0", "boom")
        observer.on_rollback(env, svc)

        assert [(n.event_type, n.priority) for n in channel.sent] == [
            ("DEPLOYMENT_START", NotificationPriority.INFO),
            ("DEPLOYMENT_SUCCESS", NotificationPriority.INFO),
            ("DEPLOYMENT_FAILURE", NotificationPriority.ERROR),
            ("ROLLBACK", NotificationPriority.WARNING),
        ]
        assert "Checkout v2.0.0" in channel.sent[0].message

    def test_production_failure_is_critical(self, svc):
        prod = create_environment(EnvironmentType.PRODUCTION, "Prod-01", "https://app.company.com")
        channel = RecordingChannel()
        NotificationObserver([channel]).on_deployment_failure(prod, svc, "2.0.0", "boom")
        assert channel.sent[0].priority == NotificationPriority.CRITICAL

    def test_channel_priority_filter(self, env, svc):
        pager = RecordingChannel("pager", {NotificationPriority.ERROR, NotificationPriority.CRITICAL})
        observer = NotificationObserver([pager])
        observer.on_deployment_start(env, svc, "2.0.0")
        observer.on_deployment_failure(env, svc, "2.0.0", "boom")
        assert [n.event_type for n in pager.sent] == ["DEPLOYMENT_FAILURE"]

    def test_disabled_channel_skipped(self, env, svc):
        channel = RecordingChannel()
        channel.enabled = False
        NotificationObserver([channel]).on_deployment_start(env, svc, "2.0.0")
        assert channel.sent == []

    def test_disabled_observer_sends_nothing(self, env, svc):
        channel = RecordingChannel()
        observer = NotificationObserver([channel])
        observer.enabled = False
        observer.on_deployment_start(env, svc, "2.0.0")
        assert channel.sent == []

    def test_broken_channel_isolated(self, env, svc, caplog):
        good = RecordingChannel()
        observer = NotificationObserver([BrokenChannel(), good])
        with caplog.at_level(logging.ERROR, logger="envctl.core.observers.notification"):
            observer.on_deployment_start(env, svc, "2.0.0")
        assert len(good.sent) == 1
        assert "Notification channel broken failed" in caplog.text

    def test_remove_channel(self, env, svc):
        channel = RecordingChannel("memory")
        observer = NotificationObserver([channel])
        observer.remove_channel("memory")
        observer.on_deployment_start(env, svc, "2.0.0")
        assert channel.sent == []

    def test_log_channel_threshold(self, caplog):
        channel = LogChannel(min_priority=NotificationPriority.WARNING)
        assert not channel.supports_priority(NotificationPriority.INFO)
        assert channel.supports_priority(NotificationPriority.CRITICAL)
        with caplog.at_level(logging.WARNING, logger="envctl.core.observers.notification"):
            channel.send("ROLLBACK", "rolling back", NotificationPriority.WARNING)
        assert "[ROLLBACK] rolling back" in caplog.text

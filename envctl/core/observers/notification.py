"""
Notification observer — turns lifecycle events into channel messages.

Channels are sinks with ``send(event_type, message, priority)``. Each
channel declares which priorities it accepts and can be switched off.
A channel that raises is logged and skipped; the others still receive
the message.

Priorities by event:
    deploy start   INFO
    deploy success INFO
    deploy failure ERROR (CRITICAL for production)
    rollback       WARNING
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from envctl.core.models.environment import Environment
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.models.service import Service
from envctl.core.observers.base import DeploymentObserver

logger = logging.getLogger(__name__)


class NotificationPriority(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def log_level(self) -> int:
        return _LOG_LEVELS[self]


_LOG_LEVELS = {
    NotificationPriority.INFO: logging.INFO,
    NotificationPriority.WARNING: logging.WARNING,
    NotificationPriority.ERROR: logging.ERROR,
    NotificationPriority.CRITICAL: logging.CRITICAL,
}


# ── Channels ────────────────────────────────────────────────────


class NotificationChannel(ABC):
    """A destination for notifications (chat, email, pager, log...)."""

    enabled: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier."""

    @abstractmethod
    def send(self, event_type: str, message: str, priority: NotificationPriority) -> None:
        """Deliver one message."""

    def supports_priority(self, priority: NotificationPriority) -> bool:
        return True


class LogChannel(NotificationChannel):
    """Sends every message to the log at the priority's level."""

    def __init__(self, min_priority: NotificationPriority = NotificationPriority.INFO) -> None:
        self._min_level = min_priority.log_level

    @property
    def name(self) -> str:
        return "log"

    def supports_priority(self, priority: NotificationPriority) -> bool:
        return priority.log_level >= self._min_level

    def send(self, event_type: str, message: str, priority: NotificationPriority) -> None:
        logger.log(priority.log_level, "[%s] %s", event_type, message)


@dataclass
class SentNotification:
    event_type: str
    message: str
    priority: NotificationPriority
    sent_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class RecordingChannel(NotificationChannel):
    """Keeps sent messages in memory."""

    def __init__(
        self,
        channel_name: str = "memory",
        priorities: set[NotificationPriority] | None = None,
    ) -> None:
        self._name = channel_name
        self._priorities = priorities
        self._lock = threading.Lock()
        self.sent: list[SentNotification] = []

    @property
    def name(self) -> str:
        return self._name

    def supports_priority(self, priority: NotificationPriority) -> bool:
        return self._priorities is None or priority in self._priorities

    def send(self, event_type: str, message: str, priority: NotificationPriority) -> None:
        with self._lock:
            self.sent.append(SentNotification(event_type, message, priority))


# ── Observer ────────────────────────────────────────────────────


class NotificationObserver(DeploymentObserver):
    """Fans each lifecycle event out to every willing channel."""

    def __init__(self, channels: list[NotificationChannel] | None = None) -> None:
        self.channels: list[NotificationChannel] = list(channels or [])
        self.enabled = True

    def add_channel(self, channel: NotificationChannel) -> None:
        self.channels.append(channel)

    def remove_channel(self, name: str) -> None:
        self.channels = [c for c in self.channels if c.name != name]

    def on_deployment_start(self, environment: Environment, service: Service, version: str) -> None:
        self._send(
            "DEPLOYMENT_START",
            f"Starting deployment of {service.name} v{version} to {environment.name}",
            NotificationPriority.INFO,
        )

    def on_deployment_success(self, environment: Environment, service: Service, version: str) -> None:
        self._send(
            "DEPLOYMENT_SUCCESS",
            f"Successfully deployed {service.name} v{version} to {environment.name}",
            NotificationPriority.INFO,
        )

    def on_deployment_failure(
        self,
        environment: Environment,
        service: Service,
        version: str,
        error: str,
    ) -> None:
        priority = (
            NotificationPriority.CRITICAL
            if environment.type == EnvironmentType.PRODUCTION
            else NotificationPriority.ERROR
        )
        self._send(
            "DEPLOYMENT_FAILURE",
            f"Failed to deploy {service.name} v{version} to {environment.name}: {error}",
            priority,
        )

    def on_rollback(self, environment: Environment, service: Service) -> None:
        self._send(
            "ROLLBACK",
            f"Rolling back {service.name} v{service.version} on {environment.name}",
            NotificationPriority.WARNING,
        )

    def _send(self, event_type: str, message: str, priority: NotificationPriority) -> None:
        if not self.enabled:
            return
        for channel in self.channels:
            if not channel.enabled or not channel.supports_priority(priority):
                continue
            try:
                channel.send(event_type, message, priority)
            except Exception:
                logger.exception("Notification channel %s failed", channel.name)

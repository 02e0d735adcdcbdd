"""Observers — deployment lifecycle listeners and their dispatcher."""

from envctl.core.observers.base import DeploymentObserver
from envctl.core.observers.logging_observer import LoggingObserver
from envctl.core.observers.notification import (
    LogChannel,
    NotificationChannel,
    NotificationObserver,
    NotificationPriority,
    RecordingChannel,
    SentNotification,
)
from envctl.core.observers.notifier import DeploymentNotifier

__all__ = [
    "DeploymentNotifier",
    "DeploymentObserver",
    "LogChannel",
    "LoggingObserver",
    "NotificationChannel",
    "NotificationObserver",
    "NotificationPriority",
    "RecordingChannel",
    "SentNotification",
]

"""
DeploymentStatus — the lifecycle of a single deployment attempt.

    PENDING → IN_PROGRESS → {SUCCESS | FAILED | ROLLED_BACK}

Completed statuses are terminal for an attempt. Only SUCCESS is
successful; it is the only status that leaves an environment active.
"""

from __future__ import annotations

from enum import Enum


class DeploymentStatus(str, Enum):
    """Status of a deployment attempt (and of an environment's last one)."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    @property
    def is_completed(self) -> bool:
        return self in _COMPLETED

    @property
    def is_successful(self) -> bool:
        return self is DeploymentStatus.SUCCESS

    @property
    def display_name(self) -> str:
        return _DISPLAY[self][1]

    @property
    def emoji(self) -> str:
        return _DISPLAY[self][0]


_COMPLETED = frozenset({
    DeploymentStatus.SUCCESS,
    DeploymentStatus.FAILED,
    DeploymentStatus.ROLLED_BACK,
})

_DISPLAY: dict[DeploymentStatus, tuple[str, str]] = {
    DeploymentStatus.PENDING: ("⏳", "Pending"),
    DeploymentStatus.IN_PROGRESS: ("⚡", "In Progress"),
    DeploymentStatus.SUCCESS: ("✅", "Success"),
    DeploymentStatus.FAILED: ("❌", "Failed"),
    DeploymentStatus.ROLLED_BACK: ("↩️", "Rolled Back"),
}

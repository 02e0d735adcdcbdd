"""
DeploymentHistory — one entry in an environment's deployment ledger.

Entries start IN_PROGRESS and are completed exactly once. After that
they are read-only; the ledger itself is append-only.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from envctl.core.models.status import DeploymentStatus


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


class DeploymentHistory(BaseModel):
    """Record of a single deployment (or rollback) attempt."""

    deployment_id: str = Field(default_factory=_short_id)
    environment_name: str
    version: str
    deployed_by: str
    deployed_at: str = Field(default_factory=_now_iso)
    status: DeploymentStatus = DeploymentStatus.IN_PROGRESS
    notes: str = ""
    duration_ms: int = 0

    @property
    def is_completed(self) -> bool:
        return self.status.is_completed

    def complete(self, status: DeploymentStatus, notes: str = "", duration_ms: int = 0) -> None:
        """Close the entry with its final status.

        Raises:
            ValueError: If the entry was already completed, or ``status``
                is not a completed status.
        """
        if self.is_completed:
            raise ValueError(f"Deployment {self.deployment_id} is already completed")
        if not status.is_completed:
            raise ValueError(f"Cannot complete a deployment with status {status.value!r}")
        self.status = status
        self.notes = notes
        self.duration_ms = duration_ms

    def __str__(self) -> str:
        return (
            f"Deployment {self.deployment_id}: {self.environment_name} v{self.version} "
            f"by {self.deployed_by} at {self.deployed_at} - {self.status.display_name}"
        )

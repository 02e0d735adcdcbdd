"""
Deployment results — what the orchestrator hands back to its caller.

Results are the orchestrator's I/O contract: expected failures (unknown
environment, failed validation, denied approval, strategy failure) come
back as a result with ``status="failed"`` and a reason, never as an
exception.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from envctl.core.errors import EnvctlError, ValidationError
from envctl.core.models.status import DeploymentStatus


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class DeploymentResult(BaseModel):
    """Outcome of one deploy or rollback call."""

    operation: Literal["deploy", "rollback"] = "deploy"
    environment: str                     # the reference the caller passed
    environment_id: str | None = None    # resolved id (None if not found)
    service_id: str = ""
    version: str = ""
    strategy: str = ""

    status: Literal["ok", "failed"] = "ok"
    deployment_status: DeploymentStatus | None = None
    deployment_id: str | None = None

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    error: str | None = None
    error_type: str | None = None
    issues: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, environment: str, **kwargs: Any) -> DeploymentResult:
        return cls(environment=environment, status="ok", **kwargs)

    @classmethod
    def failure(
        cls,
        environment: str,
        error: EnvctlError,
        **kwargs: Any,
    ) -> DeploymentResult:
        """Build a failed result from a business error."""
        issues = error.issues if isinstance(error, ValidationError) else []
        return cls(
            environment=environment,
            status="failed",
            error=str(error),
            error_type=error.code,
            issues=issues,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class BatchDeploymentResult(BaseModel):
    """Aggregate of several deployments, keyed by environment id.

    Batches are best-effort, not atomic: one failure does not stop or
    undo the others, so a ``partial`` status is a normal outcome.
    """

    version: str = ""
    service_id: str = ""
    results: dict[str, DeploymentResult] = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results.values() if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results.values() if r.failed)

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded > 0:
            return "partial"
        return "failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "service_id": self.service_id,
            "status": self.status,
            "all_ok": self.all_ok,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": {env_id: r.to_dict() for env_id, r in self.results.items()},
        }

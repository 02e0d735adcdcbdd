"""
Error taxonomy — every expected business failure has a named type.

The orchestrator converts these into result values at its boundary
(see ``DeploymentResult``). Anything that is not an ``EnvctlError``
is unexpected and propagates to the caller untouched.

``ConfigurationError`` is the exception to that rule: it signals a
broken setup (unknown environment type, bad inventory file) and is
never recovered locally.
"""

from __future__ import annotations


class EnvctlError(Exception):
    """Base class for all envctl business errors."""

    code = "error"


class NotFoundError(EnvctlError):
    """A referenced environment or service does not exist."""

    code = "not_found"


class ValidationError(EnvctlError):
    """An environment failed its variant's validation rules.

    Carries the full issue list so callers can show every problem at once.
    """

    code = "validation"

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.issues: list[str] = list(issues or [])

    @classmethod
    def for_environment(cls, name: str, issues: list[str]) -> ValidationError:
        return cls(f"Environment '{name}' validation failed", issues)


class ApprovalDeniedError(EnvctlError):
    """An approval-gated deployment was explicitly denied."""

    code = "approval_denied"


class StrategyExecutionError(EnvctlError):
    """The deployment strategy signaled a failure during rollout."""

    code = "strategy_failed"

    def __init__(self, message: str, phase: str = ""):
        super().__init__(message)
        self.phase = phase


class ParallelLimitError(EnvctlError):
    """The environment already runs its maximum number of deployments."""

    code = "parallel_limit"


class ConfigurationError(EnvctlError):
    """Configuration is invalid, missing, or names an unknown type."""

    code = "configuration"

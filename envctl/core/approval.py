"""
Approval sources — who says yes or no to a gated deployment.

A source answers ``True`` (approve), ``False`` (deny), or ``None``
(no explicit answer). What ``None`` means depends on the approval mode:

    permissive  None approves (logged as a warning)
    strict      None denies
    deny        every gated deployment is denied, whatever the source says

Only environments whose ``requires_approval()`` is true are ever asked.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel

from envctl.core.errors import ApprovalDeniedError

logger = logging.getLogger(__name__)

ApprovalMode = Literal["permissive", "strict", "deny"]
APPROVAL_MODES: tuple[str, ...] = ("permissive", "strict", "deny")


class ApprovalRequest(BaseModel):
    """Context handed to an approval source."""

    environment_id: str
    environment_name: str
    environment_type: str
    service_id: str
    service_name: str
    version: str
    deployed_by: str


class ApprovalSource(ABC):
    """Synchronous yes/no/abstain oracle for gated deployments."""

    @abstractmethod
    def decide(self, request: ApprovalRequest) -> bool | None:
        """Return True to approve, False to deny, None for no answer."""


class NoApprovalSource(ApprovalSource):
    """Never answers. The approval mode decides what that means."""

    def decide(self, request: ApprovalRequest) -> bool | None:
        return None


class StaticApproval(ApprovalSource):
    """Always gives the same answer."""

    def __init__(self, decision: bool | None) -> None:
        self._decision = decision

    def decide(self, request: ApprovalRequest) -> bool | None:
        return self._decision


class CallbackApproval(ApprovalSource):
    """Delegates to a callable, e.g. an interactive prompt."""

    def __init__(self, callback: Callable[[ApprovalRequest], bool | None]) -> None:
        self._callback = callback

    def decide(self, request: ApprovalRequest) -> bool | None:
        return self._callback(request)


def check_approval(
    source: ApprovalSource,
    request: ApprovalRequest,
    mode: ApprovalMode = "permissive",
) -> None:
    """Gate a deployment on the source's answer.

    Raises:
        ApprovalDeniedError: If the deployment is not approved.
    """
    target = f"{request.environment_name} ({request.environment_type})"

    if mode == "deny":
        raise ApprovalDeniedError(f"Deployments to {target} are frozen")

    decision = source.decide(request)
    if decision is True:
        logger.info("Deployment of %s v%s to %s approved", request.service_name, request.version, target)
        return
    if decision is False:
        raise ApprovalDeniedError(
            f"Deployment of {request.service_name} v{request.version} to {target} was denied"
        )

    if mode == "strict":
        raise ApprovalDeniedError(f"No approval given for deployment to {target}")

    logger.warning("No explicit approval for %s, proceeding (permissive mode)", target)

"""Default strategy — a single-step rollout."""

from __future__ import annotations

from envctl.core.strategies.base import PhasedStrategy


class DefaultStrategy(PhasedStrategy):
    """Replace the running version in one step."""

    phases = ("deploy",)
    delay_seconds = 1.5

    @property
    def name(self) -> str:
        return "default"

    @property
    def description(self) -> str:
        return "Standard deployment with a single rollout step"

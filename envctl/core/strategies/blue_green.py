"""
Blue-green strategy — stand up the new version beside the old one.

Phases:
    deploy-green → health-check → switch-traffic → monitor

The health check is the only phase that can refuse the rollout; once
traffic has switched, the rollout is considered done.
"""

from __future__ import annotations

from envctl.core.strategies.base import PhasedStrategy


class BlueGreenStrategy(PhasedStrategy):
    """Zero-downtime switch between two parallel environments."""

    phases = ("deploy-green", "health-check", "switch-traffic", "monitor")
    probe_phases = frozenset({"health-check"})
    delay_seconds = 2.0

    @property
    def name(self) -> str:
        return "blue-green"

    @property
    def description(self) -> str:
        return "Zero-downtime deployment using blue-green environment switching"

"""
Canary strategy — expose the new version to a traffic slice first.

Phases:
    deploy-canary (10%) → monitor → ramp-up (50%) → full-rollout (100%)
"""

from __future__ import annotations

import logging

from envctl.core.models.environment import Environment
from envctl.core.models.service import Service
from envctl.core.strategies.base import PhasedStrategy

logger = logging.getLogger(__name__)

CANARY_TRAFFIC = {"deploy-canary": 10, "ramp-up": 50, "full-rollout": 100}


class CanaryStrategy(PhasedStrategy):
    """Gradual rollout watched by the health probe."""

    phases = ("deploy-canary", "monitor", "ramp-up", "full-rollout")
    probe_phases = frozenset({"monitor"})
    delay_seconds = 3.0

    @property
    def name(self) -> str:
        return "canary"

    @property
    def description(self) -> str:
        return "Gradual rollout to a percentage of traffic"

    def _run_phase(
        self,
        phase: str,
        environment: Environment,
        service: Service,
        version: str,
    ) -> None:
        if phase in CANARY_TRAFFIC:
            logger.info(
                "[canary] %s v%s at %d%% of traffic on %s",
                service.name, version, CANARY_TRAFFIC[phase], environment.name,
            )
        super()._run_phase(phase, environment, service, version)

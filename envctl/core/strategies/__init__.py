"""Strategies — how a version actually reaches an environment.

Public re-exports plus the name → class registry used by the CLI and
settings.
"""

from __future__ import annotations

from typing import Any

from envctl.core.errors import ConfigurationError
from envctl.core.strategies.base import DeploymentStrategy, PhasedStrategy
from envctl.core.strategies.blue_green import BlueGreenStrategy
from envctl.core.strategies.canary import CanaryStrategy
from envctl.core.strategies.default import DefaultStrategy
from envctl.core.strategies.mock import MockStrategy

STRATEGIES: dict[str, type[PhasedStrategy]] = {
    "default": DefaultStrategy,
    "blue-green": BlueGreenStrategy,
    "canary": CanaryStrategy,
}


def get_strategy(name: str, **kwargs: Any) -> DeploymentStrategy:
    """Instantiate a registered strategy by name.

    Raises:
        ConfigurationError: If no strategy has that name.
    """
    cls = STRATEGIES.get(name.strip().lower())
    if cls is None:
        known = ", ".join(sorted(STRATEGIES))
        raise ConfigurationError(f"Unknown deployment strategy '{name}' (known: {known})")
    return cls(**kwargs)


def list_strategies() -> list[dict[str, Any]]:
    """Name, description and simulated duration of each strategy."""
    out = []
    for name, cls in STRATEGIES.items():
        strategy = cls(sleep=lambda _s: None)
        out.append({
            "name": name,
            "description": strategy.description,
            "phases": list(strategy.phases),
            "delay_seconds": strategy.delay_seconds,
        })
    return out


__all__ = [
    "BlueGreenStrategy",
    "CanaryStrategy",
    "DefaultStrategy",
    "DeploymentStrategy",
    "MockStrategy",
    "PhasedStrategy",
    "STRATEGIES",
    "get_strategy",
    "list_strategies",
]

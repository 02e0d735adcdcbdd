"""
Runtime settings — how the orchestrator behaves, not what it manages.

Sources, lowest precedence first:

    built-in defaults
    ``settings:`` mapping in environments.yml
    ENVCTL_* environment variables
    CLI flags (applied by main.py)

Recognized environment variables::

    ENVCTL_STRATEGY                 default | blue-green | canary
    ENVCTL_APPROVAL_MODE            permissive | strict | deny
    ENVCTL_ENFORCE_PARALLEL_LIMIT   1/true/yes/on to enable
    ENVCTL_SIMULATE_DELAY           0/false/no/off to skip strategy sleeps
    ENVCTL_TESTING_WORKERS          worker count for deploy-testing
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from envctl.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

_ENV_PREFIX = "ENVCTL_"
_ENV_FIELDS = (
    "strategy",
    "approval_mode",
    "enforce_parallel_limit",
    "simulate_delay",
    "testing_workers",
)
_FALSY = {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    """Orchestrator behavior switches."""

    strategy: str = "default"
    approval_mode: Literal["permissive", "strict", "deny"] = "permissive"
    enforce_parallel_limit: bool = False
    simulate_delay: bool = True
    default_deployed_by: str = "system"
    testing_workers: int = Field(default=1, ge=1, le=16)

    @field_validator("strategy")
    @classmethod
    def _normalize_strategy(cls, v: str) -> str:
        return v.strip().lower()


def _env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in _ENV_FIELDS:
        raw = environ.get(_ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if name in ("enforce_parallel_limit", "simulate_delay"):
            overrides[name] = raw.strip().lower() not in _FALSY
        else:
            overrides[name] = raw.strip()
    return overrides


def load_settings(
    file_settings: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Merge file settings with ENVCTL_* overrides.

    Args:
        file_settings: The ``settings:`` mapping from the inventory file.
        environ: Environment to read overrides from (default: ``os.environ``).

    Raises:
        ConfigurationError: If a value does not fit its field.
    """
    if file_settings is not None and not isinstance(file_settings, Mapping):
        raise ConfigurationError("'settings' must be a mapping")
    merged: dict[str, Any] = dict(file_settings or {})
    overrides = _env_overrides(os.environ if environ is None else environ)
    if overrides:
        logger.debug("Settings overridden from environment: %s", sorted(overrides))
    merged.update(overrides)

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e

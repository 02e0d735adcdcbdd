"""Environment construction and per-variant behavior."""

from envctl.core.environments.factory import create_environment, generate_environment_id
from envctl.core.environments.profiles import PROFILES, EnvironmentProfile, profile_for

__all__ = [
    "PROFILES",
    "EnvironmentProfile",
    "create_environment",
    "generate_environment_id",
    "profile_for",
]

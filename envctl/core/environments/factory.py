"""
Environment factory — build a fully seeded environment for a type.

This is the only sanctioned way to construct environments: it picks the
variant profile, applies its default database URL and API endpoint, and
seeds its default configuration. Seeding is structurally identical on
every call; timestamps, ids and generated secrets differ.
"""

from __future__ import annotations

import logging
import re
import uuid

from envctl.core.environments.profiles import profile_for
from envctl.core.models.environment import Environment, EnvironmentVariant
from envctl.core.models.environment_type import EnvironmentType, policy_for

logger = logging.getLogger(__name__)


def generate_environment_id(env_type: EnvironmentType, name: str) -> str:
    """Generate an id like ``PROD-CHECKOUT-API-3F9A``."""
    prefix = policy_for(env_type).code
    clean = re.sub(r"[^A-Za-z0-9]", "-", name or "").upper() or "UNNAMED"
    return f"{prefix}-{clean}-{uuid.uuid4().hex[:4].upper()}"


def create_environment(
    env_type: EnvironmentType,
    name: str,
    base_url: str,
    *,
    env_id: str | None = None,
    variant: EnvironmentVariant | None = None,
    database_url: str | None = None,
    api_endpoint: str | None = None,
) -> Environment:
    """Create an environment seeded with its variant's defaults.

    Args:
        env_type: The environment tier.
        name: Display name (lookups by name are case-insensitive).
        base_url: Public base URL.
        env_id: Explicit id. Generated when omitted.
        variant: Behavior profile. Defaults to the type's dedicated variant;
            pass ``EnvironmentVariant.GENERIC`` for the minimal fallback.
        database_url: Override the profile's default database URL.
        api_endpoint: Override the derived ``base_url + suffix`` endpoint.

    Raises:
        ConfigurationError: If ``env_type`` has no policy.
    """
    policy_for(env_type)
    variant = variant or EnvironmentVariant.for_type(env_type)
    profile = profile_for(variant)

    if api_endpoint is None and profile.api_suffix is not None:
        api_endpoint = base_url + profile.api_suffix

    environment = Environment(
        id=env_id or generate_environment_id(env_type, name),
        name=name,
        type=env_type,
        variant=variant,
        base_url=base_url,
        database_url=database_url if database_url is not None else profile.database_url,
        api_endpoint=api_endpoint,
    )
    for item in profile.seed():
        environment.add_configuration(item)

    logger.debug(
        "Created %s environment %s (%s) with %d config items",
        variant.value, environment.name, environment.id, len(environment.configurations),
    )
    return environment

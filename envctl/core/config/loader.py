"""
Inventory loader — reads environments.yml into Environment objects.

The file is optional. Without one, the built-in inventory of five
standard environments is used. With one, every entry is validated by
pydantic and built through the environment factory so variant defaults
are seeded exactly as for programmatic creation.

Example::

    settings:
      strategy: blue-green
      approval_mode: strict

    environments:
      - id: QA-01
        name: QA-01
        type: QA
        base_url: https://qa.company.com
        configurations:
          MAX_USERS: "250"
          FEATURE_X: {value: "true", type: feature_flag}
        services:
          - {id: auth-001, name: Authentication Service, version: 1.2.0}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from envctl.core.environments.factory import create_environment
from envctl.core.errors import ConfigurationError
from envctl.core.models.config_item import ConfigItem, ConfigType
from envctl.core.models.environment import Environment, EnvironmentVariant
from envctl.core.models.environment_type import EnvironmentType
from envctl.core.models.service import Service, ServiceType

logger = logging.getLogger(__name__)

INVENTORY_FILE = "environments.yml"


# ── File schema ─────────────────────────────────────────────────


def _scalar_to_str(value: Any) -> Any:
    """YAML turns ``true`` and ``250`` into bool/int; config values are strings."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ConfigEntry(BaseModel):
    value: str
    type: ConfigType = ConfigType.GENERAL
    description: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any) -> Any:
        return _scalar_to_str(v)


class EnvironmentEntry(BaseModel):
    """One item of the ``environments:`` list."""

    name: str
    type: str
    base_url: str
    id: str | None = None
    variant: EnvironmentVariant | None = None
    database_url: str | None = None
    api_endpoint: str | None = None
    configurations: dict[str, str | ConfigEntry] = Field(default_factory=dict)
    services: list[Service] = Field(default_factory=list)

    @field_validator("configurations", mode="before")
    @classmethod
    def _coerce_configurations(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return v
        return {key: _scalar_to_str(entry) for key, entry in v.items()}

    def build(self) -> Environment:
        environment = create_environment(
            EnvironmentType.from_code(self.type),
            self.name,
            self.base_url,
            env_id=self.id,
            variant=self.variant,
            database_url=self.database_url,
            api_endpoint=self.api_endpoint,
        )
        for key, entry in self.configurations.items():
            if isinstance(entry, str):
                entry = ConfigEntry(value=entry)
            environment.add_configuration(ConfigItem(
                key=key,
                value=entry.value,
                type=entry.type,
                description=entry.description,
                modified_by="inventory",
            ))
        for service in self.services:
            environment.add_service(service)
        return environment


# ── Discovery + parsing ─────────────────────────────────────────


def find_inventory_file(start_dir: Path | None = None) -> Path | None:
    """Search for environments.yml from ``start_dir`` (default: cwd) upward."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):
        candidate = current / INVENTORY_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def read_inventory_file(path: Path) -> dict[str, Any]:
    """Parse the YAML mapping at ``path``.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigurationError(f"Inventory file not found: {path}")

    logger.debug("Loading inventory from %s", path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_inventory(data: dict[str, Any] | None = None) -> list[Environment]:
    """Build environments from a parsed inventory mapping.

    ``None`` (no file) yields the default inventory.

    Raises:
        ConfigurationError: On schema errors, unknown types or duplicate ids or names.
    """
    if data is None:
        return default_inventory()

    entries = data.get("environments") or []
    if not isinstance(entries, list):
        raise ConfigurationError("'environments' must be a list")

    environments: list[Environment] = []
    seen: set[str] = set()
    seen_names: set[str] = set()
    for index, raw in enumerate(entries):
        try:
            entry = EnvironmentEntry.model_validate(raw)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid environment entry #{index + 1}: {e}") from e

        environment = entry.build()
        if environment.id in seen:
            raise ConfigurationError(f"Duplicate environment id: {environment.id}")
        # case-insensitive, matching find_by_name
        name_key = environment.name.casefold()
        if name_key in seen_names:
            raise ConfigurationError(f"Duplicate environment name: {environment.name}")
        seen.add(environment.id)
        seen_names.add(name_key)
        environments.append(environment)

    logger.info("Loaded %d environment(s) from inventory", len(environments))
    return environments


def default_inventory() -> list[Environment]:
    """The five standard environments with a couple of sample services."""
    auth = Service(id="auth-001", name="Authentication Service", version="1.2.0", type=ServiceType.AUTH)
    payment = Service(id="pay-001", name="Payment Gateway", version="2.0.1", type=ServiceType.PAYMENT)

    dev = create_environment(EnvironmentType.DEVELOPMENT, "Dev-01", "http://localhost:8080", env_id="DEV-01")
    qa = create_environment(EnvironmentType.QA, "QA-01", "https://qa.company.com", env_id="QA-01")
    uat = create_environment(EnvironmentType.UAT, "UAT-01", "https://uat.company.com", env_id="UAT-01")
    staging = create_environment(
        EnvironmentType.STAGING, "Staging-01", "https://staging.company.com", env_id="STG-01",
    )
    prod = create_environment(EnvironmentType.PRODUCTION, "Prod-01", "https://app.company.com", env_id="PROD-01")

    dev.add_service(auth)
    dev.add_service(payment)
    qa.add_service(auth)

    return [dev, qa, uat, staging, prod]

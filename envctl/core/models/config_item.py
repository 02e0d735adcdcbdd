"""
ConfigItem — a single typed configuration entry on an environment.

Items are immutable. Changing a key means building a new item and
overwriting the old one on the environment.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ConfigType(str, Enum):
    FEATURE_FLAG = "feature_flag"
    API_CONFIG = "api_config"
    DB_CONFIG = "db_config"
    SECURITY_CONFIG = "security_config"
    GENERAL = "general"
    NUMERIC = "numeric"
    SECRET = "secret"

    @property
    def display_name(self) -> str:
        return _TYPE_INFO[self][0]

    @property
    def data_type(self) -> str:
        return _TYPE_INFO[self][1]


_TYPE_INFO: dict[ConfigType, tuple[str, str]] = {
    ConfigType.FEATURE_FLAG: ("Feature Flag", "boolean"),
    ConfigType.API_CONFIG: ("API Configuration", "string"),
    ConfigType.DB_CONFIG: ("Database Configuration", "string"),
    ConfigType.SECURITY_CONFIG: ("Security Setting", "string"),
    ConfigType.GENERAL: ("General Setting", "string"),
    ConfigType.NUMERIC: ("Numeric Value", "number"),
    ConfigType.SECRET: ("Secret Value", "password"),
}

DB_PREFIX = "db."
SECURITY_PREFIX = "security."
MASK = "***ENCRYPTED***"


class ConfigItem(BaseModel):
    """An immutable key/value configuration entry.

    ``encrypted`` is forced on for secrets and for database passwords,
    whatever the caller passed.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    value: str
    description: str = ""
    type: ConfigType = ConfigType.GENERAL
    last_modified: str = Field(default_factory=_now_iso)
    modified_by: str = "system"
    encrypted: bool = False

    @model_validator(mode="before")
    @classmethod
    def _force_encryption(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        item_type = data.get("type")
        key = str(data.get("key", ""))
        if item_type in (ConfigType.SECRET, ConfigType.SECRET.value):
            data = {**data, "encrypted": True}
        elif item_type in (ConfigType.DB_CONFIG, ConfigType.DB_CONFIG.value) and key.endswith("password"):
            data = {**data, "encrypted": True}
        return data

    @property
    def masked_value(self) -> str:
        return MASK if self.encrypted else self.value

    def __str__(self) -> str:
        return f"{self.key}={self.masked_value} [{self.type.display_name}] - {self.description}"

    # ── Factories ────────────────────────────────────────────────

    @classmethod
    def feature_flag(
        cls, key: str, enabled: bool, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        return cls(
            key=key,
            value="true" if enabled else "false",
            description=description,
            type=ConfigType.FEATURE_FLAG,
            modified_by=modified_by,
        )

    @classmethod
    def api_config(
        cls, key: str, value: str, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        return cls(
            key=key,
            value=value,
            description=description,
            type=ConfigType.API_CONFIG,
            modified_by=modified_by,
        )

    @classmethod
    def db_config(
        cls, key: str, value: str, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        """Database setting, stored under ``db.<key>`` and always encrypted."""
        return cls(
            key=DB_PREFIX + key,
            value=value,
            description=description,
            type=ConfigType.DB_CONFIG,
            modified_by=modified_by,
            encrypted=True,
        )

    @classmethod
    def secret(
        cls, key: str, value: str, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        return cls(
            key=key,
            value=value,
            description=description,
            type=ConfigType.SECRET,
            modified_by=modified_by,
        )

    @classmethod
    def security_config(
        cls, key: str, value: str, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        """Security setting, stored under ``security.<key>``."""
        return cls(
            key=SECURITY_PREFIX + key,
            value=value,
            description=description,
            type=ConfigType.SECURITY_CONFIG,
            modified_by=modified_by,
        )

    @classmethod
    def general(
        cls, key: str, value: str, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        return cls(key=key, value=value, description=description, modified_by=modified_by)

    @classmethod
    def numeric(
        cls, key: str, value: int | float, description: str = "", modified_by: str = "system"
    ) -> ConfigItem:
        return cls(
            key=key,
            value=str(value),
            description=description,
            type=ConfigType.NUMERIC,
            modified_by=modified_by,
        )

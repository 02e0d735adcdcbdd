"""
Environment profiles — the per-variant behavior table.

Each variant gets exactly one named profile record:

    variant → {rules, default database URL, API suffix, seeded config,
               max-parallel override, approval override}

``max_parallel`` and ``requires_approval`` are ``None`` in every built-in
profile: the type policy table (``EnvironmentType``) stays the single
source for those numbers. A profile only overrides them when a future
variant genuinely needs to diverge from its type.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable
from dataclasses import dataclass

from envctl.core.errors import ConfigurationError
from envctl.core.models.config_item import ConfigItem, ConfigType
from envctl.core.models.environment import Environment, EnvironmentVariant
from envctl.core.models.environment_type import EnvironmentType


@dataclass(frozen=True)
class EnvironmentProfile:
    """Behavior record for one environment variant."""

    variant: EnvironmentVariant
    rules: Callable[[Environment], list[str]]
    seed: Callable[[], list[ConfigItem]]
    database_url: str | None = None
    api_suffix: str | None = None
    max_parallel: int | None = None
    requires_approval: bool | None = None

    def check(self, environment: Environment) -> list[str]:
        return list(self.rules(environment))

    def max_parallel_for(self, env_type: EnvironmentType) -> int:
        if self.max_parallel is not None:
            return self.max_parallel
        return env_type.max_parallel_deployments

    def approval_for(self, env_type: EnvironmentType) -> bool:
        if self.requires_approval is not None:
            return self.requires_approval
        return env_type.requires_approval


# ── Validation rules ───────────────────────────────────────────────


def _development_rules(env: Environment) -> list[str]:
    issues = []
    if env.base_url.startswith("https://"):
        issues.append("Dev environment should use HTTP, not HTTPS")
    if not env.database_url or "localhost" not in env.database_url:
        issues.append("Dev database should be on localhost")
    if len(env.configurations_by_type(ConfigType.FEATURE_FLAG)) < 2:
        issues.append("Dev environment should have at least 2 feature flags")
    return issues


def _qa_rules(env: Environment) -> list[str]:
    issues = []
    if "qa" not in env.base_url:
        issues.append("QA environment URL should contain 'qa'")
    if not env.database_url or "qa-db" not in env.database_url:
        issues.append("QA database URL should point to qa-db")
    if env.get_configuration("MAX_USERS") is None:
        issues.append("MAX_USERS configuration is required for QA")
    return issues


def _uat_rules(env: Environment) -> list[str]:
    if "uat" not in env.base_url:
        return ["UAT URL should contain 'uat'"]
    return []


def _staging_rules(env: Environment) -> list[str]:
    if "staging" not in env.base_url:
        return ["Staging URL should contain 'staging'"]
    return []


def _production_rules(env: Environment) -> list[str]:
    issues = []
    if not env.base_url.startswith("https://"):
        issues.append("Production environment must use HTTPS")
    if not env.database_url or "cluster" not in env.database_url:
        issues.append("Production database should use a cluster")
    if env.get_configuration("security.SSL_ENABLED") is None:
        issues.append("SSL configuration is required for production")
    debug = env.get_configuration("DEBUG_MODE")
    if debug is not None and debug.value == "true":
        issues.append("Debug mode should be false in production")
    return issues


def _generic_rules(env: Environment) -> list[str]:
    issues = []
    if not env.name.strip():
        issues.append("Environment name is required")
    if not env.base_url.strip():
        issues.append("Base URL is required")
    return issues


# ── Seeded configuration ───────────────────────────────────────────


def _development_seed() -> list[ConfigItem]:
    by = "system"
    return [
        ConfigItem.feature_flag("DEBUG_MODE", True, "Enable debug logging", by),
        ConfigItem.feature_flag("ENABLE_CACHE", False, "Disable cache in dev", by),
        ConfigItem.api_config("LOG_LEVEL", "DEBUG", "Development log level", by),
        ConfigItem.db_config("username", "dev_user", "Dev database user", by),
        ConfigItem.db_config("password", "dev_pass", "Dev database password", by),
    ]


def _qa_seed() -> list[ConfigItem]:
    by = "qa-team"
    return [
        ConfigItem.feature_flag("DEBUG_MODE", False, "Disable debug in QA", by),
        ConfigItem.api_config("LOG_LEVEL", "INFO", "QA log level", by),
        ConfigItem.api_config("MAX_USERS", "100", "QA user limit", by),
        ConfigItem.security_config("AUTH_TYPE", "TEST", "Test authentication", by),
        ConfigItem.db_config("username", "qa_user", "QA database user", by),
        ConfigItem.db_config("password", "qa_pass", "QA database password", by),
    ]


def _uat_seed() -> list[ConfigItem]:
    by = "uat-team"
    return [
        ConfigItem.feature_flag("DEBUG_MODE", False, "Debug disabled", by),
        ConfigItem.feature_flag("NEW_FEATURE", True, "Test new feature", by),
        ConfigItem.api_config("LOG_LEVEL", "INFO", "UAT log level", by),
    ]


def _staging_seed() -> list[ConfigItem]:
    by = "devops"
    return [
        ConfigItem.feature_flag("DEBUG_MODE", False, "Debug disabled", by),
        ConfigItem.api_config("LOG_LEVEL", "INFO", "Staging log level", by),
        ConfigItem.security_config("SSL_ENABLED", "true", "SSL enabled", by),
    ]


def _production_seed() -> list[ConfigItem]:
    by = "devops"
    return [
        ConfigItem.feature_flag("DEBUG_MODE", False, "Debug disabled in production", by),
        ConfigItem.feature_flag("MAINTENANCE_MODE", False, "Maintenance mode", by),
        ConfigItem.api_config("LOG_LEVEL", "WARN", "Production log level", by),
        ConfigItem.security_config("SSL_ENABLED", "true", "SSL/TLS enabled", by),
        ConfigItem.secret("API_KEY", f"prod-{secrets.token_hex(16)}", "Production API key", by),
        ConfigItem.db_config("username", "prod_user", "Production DB user", by),
        ConfigItem.db_config("password", secrets.token_urlsafe(18), "Production DB password", by),
    ]


def _no_seed() -> list[ConfigItem]:
    return []


# ── Table ──────────────────────────────────────────────────────────

PROFILES: dict[EnvironmentVariant, EnvironmentProfile] = {
    EnvironmentVariant.DEVELOPMENT: EnvironmentProfile(
        variant=EnvironmentVariant.DEVELOPMENT,
        rules=_development_rules,
        seed=_development_seed,
        database_url="jdbc:mysql://localhost:3306/dev_db",
        api_suffix="/api",
    ),
    EnvironmentVariant.QA: EnvironmentProfile(
        variant=EnvironmentVariant.QA,
        rules=_qa_rules,
        seed=_qa_seed,
        database_url="jdbc:mysql://qa-db.company.com:3306/qa_db",
        api_suffix="/api/v1",
    ),
    EnvironmentVariant.UAT: EnvironmentProfile(
        variant=EnvironmentVariant.UAT,
        rules=_uat_rules,
        seed=_uat_seed,
        database_url="jdbc:mysql://uat-db.company.com:3306/uat_db",
        api_suffix="/api/v1",
    ),
    EnvironmentVariant.STAGING: EnvironmentProfile(
        variant=EnvironmentVariant.STAGING,
        rules=_staging_rules,
        seed=_staging_seed,
        database_url="jdbc:mysql://staging-db.company.com:3306/staging_db",
        api_suffix="/api/v1",
    ),
    EnvironmentVariant.PRODUCTION: EnvironmentProfile(
        variant=EnvironmentVariant.PRODUCTION,
        rules=_production_rules,
        seed=_production_seed,
        database_url="jdbc:mysql://prod-db-cluster.company.com:3306/prod_db",
        api_suffix="/api/v1",
    ),
    EnvironmentVariant.GENERIC: EnvironmentProfile(
        variant=EnvironmentVariant.GENERIC,
        rules=_generic_rules,
        seed=_no_seed,
    ),
}


def profile_for(variant: EnvironmentVariant) -> EnvironmentProfile:
    """Look up a variant's profile.

    Raises:
        ConfigurationError: If the variant has no profile.
    """
    profile = PROFILES.get(variant)
    if profile is None:
        raise ConfigurationError(f"No environment profile for variant {variant!r}")
    return profile

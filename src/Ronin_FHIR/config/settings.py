"""Application settings for the Ronin transformation core."""

from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environments supported by the platform."""

    DEV = "dev"
    STAGING = "staging"
    PROD = "prod"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for application output")
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["value", "given", "family", "birthDate"],
        description="Fields that should be redacted in logs",
    )
    log_issue_details: bool = Field(
        default=True, description="Emit one log event per validation issue"
    )


class TransformSettings(BaseModel):
    """Behaviour switches for profile transformation."""

    null_on_error: bool = Field(
        default=False,
        description="Return no resource when the transformed result carries ERROR issues",
    )
    data_authority_value: str = Field(
        default="EHR Data Authority",
        description="Value written to data authority identifiers and extensions",
    )
    mrn_system: str | None = Field(
        default=None,
        description="Tenant identifier system holding the MRN when the tenant does not provide one",
    )
    tenants_without_condition_mapping: Sequence[str] = Field(
        default_factory=list,
        description="Tenants whose Condition.code values skip concept mapping",
    )
    concept_map_path: Path | None = Field(
        default=None, description="YAML file backing the static concept map registry"
    )

    @field_validator("tenants_without_condition_mapping", mode="before")
    @classmethod
    def _split_tenants(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


class AppSettings(BaseSettings):
    """Top-level application settings."""

    environment: Environment = Environment.DEV
    debug: bool = False
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    transform: TransformSettings = Field(default_factory=TransformSettings)

    model_config = SettingsConfigDict(env_prefix="RONIN_", env_nested_delimiter="__")


ENVIRONMENT_DEFAULTS: Mapping[Environment, dict[str, Any]] = {
    Environment.DEV: {
        "debug": True,
        "logging": {"level": "DEBUG"},
    },
    Environment.STAGING: {
        "logging": {"level": "INFO"},
    },
    Environment.PROD: {
        "logging": {"level": "WARNING", "log_issue_details": False},
    },
}


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            target[key] = _deep_update(dict(current), value)
        else:
            target[key] = value
    return target


def load_settings(environment: str | None = None) -> AppSettings:
    """Load application settings with environment specific defaults applied.

    Values explicitly provided through ``RONIN_`` environment variables win over
    the per-environment defaults.
    """
    env_value = (environment or os.getenv("RONIN_ENV", "dev")).lower()
    env = Environment(env_value)
    defaults = ENVIRONMENT_DEFAULTS.get(env, {})
    try:
        base_settings = AppSettings()
    except ValidationError as err:
        raise RuntimeError(f"Invalid configuration: {err}") from err
    merged = _deep_update(dict(defaults), base_settings.model_dump(exclude_unset=True))
    merged["environment"] = env
    return AppSettings.model_validate(merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Cached accessor used by production code."""
    return load_settings()


__all__ = [
    "ENVIRONMENT_DEFAULTS",
    "AppSettings",
    "Environment",
    "LoggingSettings",
    "TransformSettings",
    "get_settings",
    "load_settings",
]

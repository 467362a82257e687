"""Tests covering application settings loading."""

import pytest

from Ronin_FHIR.config.settings import (
    ENVIRONMENT_DEFAULTS,
    Environment,
    TransformSettings,
    get_settings,
    load_settings,
)


def test_environment_enum_covers_supported_values() -> None:
    assert {env.value for env in Environment} == {"dev", "staging", "prod"}


def test_prod_defaults_disable_issue_details() -> None:
    prod = load_settings("prod")
    assert prod.environment is Environment.PROD
    assert prod.logging.level == "WARNING"
    assert prod.logging.log_issue_details is False
    assert ENVIRONMENT_DEFAULTS[Environment.DEV]["debug"] is True


def test_dev_is_the_default_environment() -> None:
    settings = get_settings()
    assert settings.environment is Environment.DEV
    assert settings.debug is True
    assert settings.transform.null_on_error is False
    assert settings.transform.data_authority_value == "EHR Data Authority"


def test_environment_variables_override_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RONIN_TRANSFORM__NULL_ON_ERROR", "true")
    monkeypatch.setenv("RONIN_LOGGING__LEVEL", "ERROR")
    settings = load_settings("dev")
    assert settings.transform.null_on_error is True
    assert settings.logging.level == "ERROR"
    assert settings.debug is True


def test_ronin_env_selects_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RONIN_ENV", "staging")
    assert load_settings().environment is Environment.STAGING


def test_invalid_configuration_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RONIN_TRANSFORM__NULL_ON_ERROR", "sometimes")
    with pytest.raises(RuntimeError, match="Invalid configuration"):
        load_settings("dev")


def test_tenant_list_accepts_comma_separated_string() -> None:
    settings = TransformSettings(tenants_without_condition_mapping="abc, def,,")
    assert list(settings.tenants_without_condition_mapping) == ["abc", "def"]

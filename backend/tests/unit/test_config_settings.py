"""Unit tests for application settings configuration."""

from pathlib import Path

import pytest

from app.config import Settings
from app.domain.exceptions import ConfigurationError


def test_settings_uses_backend_env_file_independent_of_cwd():
    """Settings should always include backend/.env as an env source."""
    env_files = Settings.model_config.get("env_file")
    assert env_files is not None

    normalized = {str(Path(item)) for item in env_files}
    expected_backend_env = str(Path(__file__).resolve().parents[2] / ".env")

    assert expected_backend_env in normalized
    assert str(Path(".env")) in normalized


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("TAVILY_MONTHLY_BUDGET", "250")
    monkeypatch.setenv("CATALOG_BACKEND", "file")
    monkeypatch.setenv("SCHEDULER_ENABLED", "true")

    settings = Settings(_env_file=None)

    assert settings.tavily_monthly_budget == 250
    assert settings.catalog_backend == "file"
    assert settings.scheduler_enabled is True


def test_validate_required_passes_for_api_only_mode():
    Settings(_env_file=None, scheduler_enabled=False, tavily_api_key="").validate_required()


def test_validate_required_lists_missing_scheduler_credentials():
    settings = Settings(
        _env_file=None, scheduler_enabled=True, tavily_api_key="", openrouter_api_key=" "
    )

    with pytest.raises(ConfigurationError) as exc_info:
        settings.validate_required()

    assert exc_info.value.missing == ["TAVILY_API_KEY", "OPENROUTER_API_KEY"]


def test_validate_required_rejects_unknown_catalog_backend():
    with pytest.raises(ConfigurationError, match="CATALOG_BACKEND"):
        Settings(_env_file=None, catalog_backend="s3").validate_required()

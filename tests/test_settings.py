from unittest.mock import patch

import pytest

from nutriplan.config.settings import PlanGeneratorType, Settings, get_settings


def test_default_settings():
    """Test default settings values."""
    settings = Settings()

    assert settings.app_name == "NutriPlan Jobs"
    assert settings.environment == "development"
    assert settings.enable_async_plan_pipeline is True
    assert settings.plan_generator == PlanGeneratorType.STUB
    assert settings.llm_model == "glm-4"


def test_default_queue_tuning():
    """Queue defaults: 5 attempts, 60s lease, 60s backoff base, batch 3 of max 20."""
    settings = Settings()

    assert settings.job_max_attempts == 5
    assert settings.job_lease_seconds == 60
    assert settings.job_backoff_base_seconds == 60
    assert settings.job_batch_default == 3
    assert settings.job_batch_max == 20


def test_production_validation_blocks_stub_generator():
    """Test that production environment blocks PLAN_GENERATOR=stub."""
    with pytest.raises(ValueError, match="PLAN_GENERATOR=stub is not allowed in production"):
        Settings(environment="production", plan_generator=PlanGeneratorType.STUB)


def test_non_positive_lease_rejected():
    with pytest.raises(ValueError, match="JOB_LEASE_SECONDS must be at least 1"):
        Settings(job_lease_seconds=0)


def test_batch_default_must_fit_max():
    with pytest.raises(ValueError, match="JOB_BATCH_DEFAULT must be between 1"):
        Settings(job_batch_default=30, job_batch_max=20)


def test_settings_dependency_injection():
    """Test the get_settings function."""
    settings = get_settings()
    assert isinstance(settings, Settings)
    assert settings.app_name == "NutriPlan Jobs"


@patch.dict(
    "os.environ",
    {"ENABLE_ASYNC_PLAN_PIPELINE": "false", "JOB_MAX_ATTEMPTS": "3"},
)
def test_env_var_loading():
    """Test that environment variables are loaded correctly."""
    settings = Settings()
    assert settings.enable_async_plan_pipeline is False
    assert settings.job_max_attempts == 3


def test_production_error_names_how_to_add_a_generator():
    with pytest.raises(ValueError, match="Add a PlanGeneratorType member"):
        Settings(environment="production")

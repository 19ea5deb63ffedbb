"""Tests for wiring the runtime."""

import pytest

from nutriplan import main
from nutriplan.config.settings import Settings
from nutriplan.infra import database
from nutriplan.v1.core.registries import JobRegistry
from nutriplan.v1.infra.jobs.models import PLAN_GENERATION_JOB_TYPE


@pytest.fixture(autouse=True)
def isolated_wiring(monkeypatch):
    """Keep logging config and the database singleton untouched."""
    monkeypatch.setattr(main, "setup_logging", lambda settings: None)
    monkeypatch.setattr(database, "_database", None)


async def test_create_runtime_wires_handlers():
    registry = JobRegistry()
    runtime = main.create_runtime(Settings(environment="development"), registry=registry)

    try:
        assert registry.list() == [PLAN_GENERATION_JOB_TYPE]
        assert not registry.is_frozen()
        assert runtime.runner.executor.registry is registry
        assert runtime.job_service.settings is runtime.settings
    finally:
        await runtime.close()


async def test_create_runtime_freezes_registry_outside_development():
    registry = JobRegistry()
    runtime = main.create_runtime(Settings(environment="staging"), registry=registry)

    try:
        assert registry.is_frozen()
    finally:
        await runtime.close()

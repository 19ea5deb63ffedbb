"""
Job registry initialization.

Registers all job handlers with a job registry.
"""

import logging

from nutriplan.config.settings import Settings
from nutriplan.v1.core.registries import JobRegistry, PlanGenerator, job_registry
from nutriplan.v1.infra.jobs.handlers import PlanGenerationHandler
from nutriplan.v1.infra.jobs.models import PLAN_GENERATION_JOB_TYPE
from nutriplan.v1.plans.export_service import ExportStatusService
from nutriplan.v1.plans.repository import PlanRepository

logger = logging.getLogger(__name__)


def register_job_handlers(
    settings: Settings,
    plans: PlanRepository,
    generator: PlanGenerator,
    exports: ExportStatusService,
    registry: JobRegistry = job_registry,
) -> JobRegistry:
    """Register all job handlers with the job registry."""

    logger.info("Registering job handlers")

    registry.register(
        PLAN_GENERATION_JOB_TYPE,
        PlanGenerationHandler(settings, plans, generator, exports),
    )

    logger.info(
        "Job handlers registered", extra={"registered_handlers": registry.list()}
    )
    return registry

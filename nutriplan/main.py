from dataclasses import dataclass

from nutriplan.config.logging import setup_logging
from nutriplan.config.settings import Settings, get_settings
from nutriplan.infra.database import Database, get_database
from nutriplan.v1.core.registries import JobRegistry, job_registry
from nutriplan.v1.infra.jobs.registry_init import register_job_handlers
from nutriplan.v1.infra.jobs.retry import RetryScheduler
from nutriplan.v1.infra.jobs.service import JobService
from nutriplan.v1.infra.jobs.store import SqlAlchemyJobStore
from nutriplan.v1.infra.jobs.worker import JobClaimer, JobExecutor, JobRunner
from nutriplan.v1.plans.export_client import GammaExportClient
from nutriplan.v1.plans.export_service import ExportStatusService
from nutriplan.v1.plans.registry_init import init_plan_generator_registry
from nutriplan.v1.plans.repository import PlanRepository, SqlAlchemyPlanRepository


@dataclass
class Runtime:
    """Wired entry points around the generation queue."""

    settings: Settings
    database: Database
    job_service: JobService
    runner: JobRunner
    plans: PlanRepository
    exports: ExportStatusService

    async def close(self) -> None:
        await self.database.close()


def create_runtime(
    settings: Settings | None = None,
    registry: JobRegistry = job_registry,
) -> Runtime:
    """Create and wire the job service, runner and export tracking."""
    settings = settings or get_settings()

    # Initialize structured logging
    setup_logging(settings)

    database = get_database(settings)
    store = SqlAlchemyJobStore(database.SessionLocal)
    plans = SqlAlchemyPlanRepository(database.SessionLocal)
    exports = ExportStatusService(plans, GammaExportClient(settings))

    generator = init_plan_generator_registry(settings)
    register_job_handlers(settings, plans, generator, exports, registry=registry)

    # No handlers are added after wiring outside development
    if settings.environment != "development":
        registry.freeze()

    retry_scheduler = RetryScheduler(settings, store, plans)
    runner = JobRunner(
        settings,
        JobClaimer(settings, store),
        JobExecutor(store, retry_scheduler, registry),
    )

    return Runtime(
        settings=settings,
        database=database,
        job_service=JobService(settings, store),
        runner=runner,
        plans=plans,
        exports=exports,
    )

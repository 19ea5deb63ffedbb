"""
Batch job runner: claim due jobs, execute them, schedule retries.

One ``run_batch`` call processes one finite batch and returns. Repeated
invocation belongs to an external scheduler. Any number of runners may run
concurrently; the conditional claim keeps a job with at most one executor
per lease.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from uuid import uuid4

from nutriplan.config.logging import bind_job_context, clear_job_context, get_logger
from nutriplan.config.settings import Settings
from nutriplan.v1.core.exceptions import NonRetryableJobError, UnsupportedJobTypeError
from nutriplan.v1.core.registries import JobRegistry, job_registry
from nutriplan.v1.infra.jobs.models import PLAN_GENERATION_JOB_TYPE, GenerationJob, JobStatus
from nutriplan.v1.infra.jobs.retry import RetryScheduler
from nutriplan.v1.infra.jobs.schemas import JobOutcome, JobRunSummary
from nutriplan.v1.infra.jobs.service import utc_now
from nutriplan.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


def bounded_batch_size(requested: int | None, settings: Settings) -> int:
    """Clamp a caller-supplied batch size to [1, job_batch_max]."""
    if requested is None:
        return settings.job_batch_default
    return max(1, min(settings.job_batch_max, requested))


class JobClaimer:
    """
    Claims due jobs with select-then-conditionally-update.

    Losing a claim race to another runner is expected and skipped silently.
    """

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        job_type: str = PLAN_GENERATION_JOB_TYPE,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.job_type = job_type
        self.clock = clock

    async def claim(self, max_jobs: int) -> list[GenerationJob]:
        """Lease up to ``max_jobs`` due jobs, oldest first."""
        candidates = await self.store.find_due_batch(
            self.job_type, self.clock(), max_jobs
        )
        if not candidates:
            return []

        lease = timedelta(seconds=self.settings.job_lease_seconds)
        claimed: list[GenerationJob] = []

        for candidate in candidates:
            applied = await self.store.conditional_claim(
                candidate.id, candidate.status, self.clock(), lease
            )
            if not applied:
                logger.debug("job.claim_lost", job_id=candidate.id)
                continue

            # Re-read for the post-claim attempts and lease_until
            locked = await self.store.get(candidate.id)
            if locked is not None:
                claimed.append(locked)

        if claimed:
            logger.info(
                "job.claimed",
                job_count=len(claimed),
                job_ids=[job.id for job in claimed],
                candidates=len(candidates),
            )
        return claimed


class JobExecutor:
    """Runs one claimed job through its handler and records the outcome."""

    def __init__(
        self,
        store: JobStore,
        retry_scheduler: RetryScheduler,
        registry: JobRegistry = job_registry,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.retry_scheduler = retry_scheduler
        self.registry = registry
        self.clock = clock

    async def execute(self, job: GenerationJob) -> JobOutcome:
        """
        Execute a claimed job.

        Handler failures are caught here so one job cannot abort the batch.
        Store failures while recording the outcome propagate.
        """
        job_logger = logger.bind(job_id=job.id, job_type=job.type, attempt=job.attempts)

        try:
            handler = self.registry.get(job.type)
        except KeyError:
            error = UnsupportedJobTypeError(job.type)
            job_logger.warning("job.unknown_type")
            return await self.retry_scheduler.fail_permanently(job, error.message)

        try:
            payload = handler.parse_payload(job.payload)
            result = await handler.handle(job, payload)
        except NonRetryableJobError as e:
            job_logger.error("job.execution_failed", error=e.message, retryable=False)
            return await self.retry_scheduler.fail_permanently(job, e.message)
        except Exception as e:
            job_logger.exception("job.execution_failed", error=str(e), retryable=True)
            return await self.retry_scheduler.record_failure(job, e)

        await self.store.update_outcome(
            job.id,
            {
                "status": JobStatus.COMPLETED.value,
                "lease_until": None,
                "last_error": None,
            },
            self.clock(),
        )
        job_logger.info("job.completed", result=result)
        return JobOutcome.COMPLETED


class JobRunner:
    """Claimer -> Executor -> Retry Scheduler for one bounded batch."""

    def __init__(
        self,
        settings: Settings,
        claimer: JobClaimer,
        executor: JobExecutor,
    ):
        self.settings = settings
        self.claimer = claimer
        self.executor = executor

    async def run_batch(self, max_jobs: int | None = None) -> JobRunSummary:
        """
        Process one batch of due jobs sequentially.

        Safe to call concurrently and at any cadence.
        """
        if not self.settings.enable_async_plan_pipeline:
            logger.info("jobs.run.skipped", reason="pipeline_disabled")
            return JobRunSummary()

        batch_size = bounded_batch_size(max_jobs, self.settings)
        bind_job_context(run_id=uuid4().hex[:12], batch_size=batch_size)

        try:
            claimed = await self.claimer.claim(batch_size)
            summary = JobRunSummary(claimed=len(claimed))

            for job in claimed:
                summary.record(await self.executor.execute(job))

            logger.info("jobs.run.completed", **summary.model_dump())
            return summary
        finally:
            clear_job_context()

"""
Retry scheduling for failed job attempts.
"""

from collections.abc import Callable
from datetime import datetime, timedelta

from nutriplan.config.logging import get_logger
from nutriplan.config.settings import Settings
from nutriplan.v1.infra.jobs.models import GenerationJob, JobStatus
from nutriplan.v1.infra.jobs.schemas import JobOutcome
from nutriplan.v1.infra.jobs.service import utc_now
from nutriplan.v1.infra.jobs.store import JobStore
from nutriplan.v1.plans.repository import PlanRepository

logger = get_logger(__name__)


def compute_backoff(attempts: int, base_seconds: int = 60) -> timedelta:
    """Exponential backoff: base * 2^(attempts-1), uncapped."""
    return timedelta(seconds=base_seconds * 2 ** max(0, attempts - 1))


class RetryScheduler:
    """
    Moves a failed attempt to retryable or, once attempts run out, to failed.

    The plan entity is only touched on the terminal transition, so pollers
    keep seeing "generating" throughout a retry cycle.
    """

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        plans: PlanRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.plans = plans
        self.clock = clock

    async def record_failure(self, job: GenerationJob, error: Exception) -> JobOutcome:
        """Schedule a retry, or fail the job when its attempts are exhausted."""
        error_message = str(error) or error.__class__.__name__

        # attempts was incremented by the claim; trust the row over our copy
        refreshed = await self.store.get(job.id)
        attempts = refreshed.attempts if refreshed else job.attempts

        if attempts >= job.max_attempts:
            return await self.fail_permanently(job, error_message, attempts=attempts)

        delay = compute_backoff(attempts, self.settings.job_backoff_base_seconds)
        now = self.clock()
        run_after = now + delay
        await self.store.update_outcome(
            job.id,
            {
                "status": JobStatus.RETRYABLE.value,
                "lease_until": None,
                "run_after": run_after,
                "last_error": error_message,
            },
            now,
        )

        logger.info(
            "job.retry_scheduled",
            job_id=job.id,
            attempts=attempts,
            max_attempts=job.max_attempts,
            delay_seconds=int(delay.total_seconds()),
            run_after=run_after.isoformat(),
        )
        return JobOutcome.RETRIED

    async def fail_permanently(
        self,
        job: GenerationJob,
        error_message: str,
        attempts: int | None = None,
    ) -> JobOutcome:
        """Terminal failure: fail the job and surface the error on its plan."""
        await self.store.update_outcome(
            job.id,
            {
                "status": JobStatus.FAILED.value,
                "lease_until": None,
                "last_error": error_message,
            },
            self.clock(),
        )
        if job.nutrition_plan_id:
            await self.plans.mark_failed(job.nutrition_plan_id, error_message)

        logger.error(
            "job.failed",
            job_id=job.id,
            plan_id=job.nutrition_plan_id,
            attempts=attempts if attempts is not None else job.attempts,
            max_attempts=job.max_attempts,
            error=error_message,
        )
        return JobOutcome.FAILED

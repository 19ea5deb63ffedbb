"""
Job service for enqueueing plan generation jobs.
"""

from collections.abc import Callable
from datetime import UTC, datetime

from nutriplan.config.logging import get_logger
from nutriplan.config.settings import Settings
from nutriplan.v1.core.analytics import AnalyticsEvent, track_event
from nutriplan.v1.core.exceptions import PipelineDisabledError
from nutriplan.v1.infra.jobs.models import (
    PLAN_GENERATION_JOB_TYPE,
    GenerationJob,
    JobStatus,
)
from nutriplan.v1.infra.jobs.schemas import (
    EnqueuePlanGenerationRequest,
    EnqueueResult,
    PlanGenerationPayload,
)
from nutriplan.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def build_plan_job_key(
    user_id: str,
    questionnaire_version: int,
    plan_id: str,
    job_type: str = PLAN_GENERATION_JOB_TYPE,
) -> str:
    """Deterministic idempotency key: one live job per (user, version, plan)."""
    return f"{job_type}:{user_id}:{questionnaire_version}:{plan_id}"


class JobService:
    """Service for submitting background generation jobs."""

    def __init__(
        self,
        settings: Settings,
        store: JobStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings
        self.store = store
        self.clock = clock

    async def enqueue_plan_generation(
        self, request: EnqueuePlanGenerationRequest
    ) -> EnqueueResult:
        """
        Enqueue a plan generation job, or return the equivalent existing one.

        Submitting the same (user, questionnaire version, plan) twice returns
        the same job both times, which absorbs retried HTTP requests and
        double submissions.

        Raises:
            PipelineDisabledError: the async plan pipeline is switched off
        """
        if not self.settings.enable_async_plan_pipeline:
            raise PipelineDisabledError(details={"plan_id": request.plan_id})

        job_key = build_plan_job_key(
            user_id=request.user_id,
            questionnaire_version=request.questionnaire_version,
            plan_id=request.plan_id,
        )
        payload = PlanGenerationPayload(
            plan_id=request.plan_id,
            questionnaire_id=request.questionnaire_id,
            questionnaire_version=request.questionnaire_version,
            trigger=request.trigger,
        )

        job, created = await self.store.insert_if_absent(
            job_key,
            {
                "type": PLAN_GENERATION_JOB_TYPE,
                "status": JobStatus.QUEUED.value,
                "payload": payload.model_dump(by_alias=True),
                "attempts": 0,
                "max_attempts": request.max_attempts or self.settings.job_max_attempts,
                "run_after": self.clock(),
                "user_id": request.user_id,
                "nutrition_plan_id": request.plan_id,
            },
        )

        if created:
            logger.info(
                "job.enqueued",
                job_id=job.id,
                job_key=job_key,
                trigger=request.trigger,
                max_attempts=job.max_attempts,
            )
            track_event(
                AnalyticsEvent.PLAN_QUEUED,
                user_id=request.user_id,
                plan_id=request.plan_id,
                trigger=request.trigger,
            )
        else:
            logger.info(
                "job.deduplicated", job_id=job.id, job_key=job_key, status=job.status
            )

        return EnqueueResult(job_id=job.id, status=job.status, deduplicated=not created)

    async def get_job(self, job_id: str) -> GenerationJob | None:
        return await self.store.get(job_id)

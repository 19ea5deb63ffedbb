import asyncio
import copy
import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from nutriplan.config.settings import Settings
from nutriplan.infra.database import Base
from nutriplan.v1.core.exceptions import DocumentExportError
from nutriplan.v1.core.registries import JobRegistry
from nutriplan.v1.infra.jobs.handlers import PlanGenerationHandler
from nutriplan.v1.infra.jobs.models import PLAN_GENERATION_JOB_TYPE, GenerationJob, JobStatus
from nutriplan.v1.infra.jobs.retry import RetryScheduler
from nutriplan.v1.infra.jobs.service import JobService
from nutriplan.v1.infra.jobs.worker import JobClaimer, JobExecutor, JobRunner
from nutriplan.v1.plans.export_client import ExportKickoffResult
from nutriplan.v1.plans.export_service import ExportStatusService
from nutriplan.v1.plans.generators import PlanGenerationResult, StubPlanGenerator
from nutriplan.v1.plans.models import ExportStatus, NutritionPlan, PlanExport, PlanStatus
from nutriplan.v1.questionnaire.models import Questionnaire

T0 = datetime(2026, 1, 5, 9, 0, 0, tzinfo=UTC)

SAMPLE_ANSWERS: dict[str, Any] = {
    "firstName": "Sam",
    "sex": "Male",
    "age": 30,
    "heightCm": 180,
    "weightKg": 80,
    "primaryGoal": "Fat loss",
    "wakeTime": "07:00",
    "sleepTime": "23:00",
    "workSchedule": "9-5 office",
    "kitchenAccessDaytime": "Microwave",
    "mealPrepWillingness": "Light 10-15 mins",
    "trainingDaysPerWeek": 4,
    "trainingTimeOfDay": "Evening",
    "dailySteps": "8-12k",
    "dietStyle": "Omnivore",
    "allergiesIntolerances": None,
    "foodsLove": "Rice bowls",
    "foodsHateAvoid": "Olives",
    "proteinPreferences": ["Chicken", "Eggs"],
    "biggestObstacle": "Time",
    "takeawaysAndOrders": "2",
    "alcoholPerWeek": "1-2",
}


class FakeClock:
    """Controllable replacement for utc_now."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def _snapshot(job: GenerationJob) -> GenerationJob:
    values = {
        column.key: copy.deepcopy(getattr(job, column.key))
        for column in GenerationJob.__table__.columns
    }
    return GenerationJob(**values)


class InMemoryJobStore:
    """
    JobStore test double.

    The lock gives conditional_claim the same single-winner semantics the
    conditional UPDATE has in Postgres. Rows handed out are copies, like
    detached ORM instances.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.jobs: dict[str, GenerationJob] = {}
        self.keys: dict[str, str] = {}
        self.claim_calls = 0
        self._lock = asyncio.Lock()
        self._sequence = 0

    async def insert_if_absent(
        self, job_key: str, fields: dict[str, Any]
    ) -> tuple[GenerationJob, bool]:
        async with self._lock:
            existing_id = self.keys.get(job_key)
            if existing_id is not None:
                return _snapshot(self.jobs[existing_id]), False

            self._sequence += 1
            values = {
                "id": str(uuid4()),
                "lease_until": None,
                "last_error": None,
                "nutrition_plan_id": None,
                # Strictly increasing so FIFO order is deterministic
                "created_at": self.clock() + timedelta(microseconds=self._sequence),
                "updated_at": self.clock(),
                **fields,
            }
            job = GenerationJob(job_key=job_key, **values)
            self.jobs[job.id] = job
            self.keys[job_key] = job.id
            return _snapshot(job), True

    async def find_due_batch(
        self, job_type: str, now: datetime, limit: int
    ) -> list[GenerationJob]:
        due = sorted(
            (j for j in self.jobs.values() if j.type == job_type and j.is_claimable(now)),
            key=lambda j: (j.created_at, j.id),
        )[:limit]
        snapshots = [_snapshot(j) for j in due]
        # Let concurrent runners read the same candidates before claiming
        await asyncio.sleep(0)
        return snapshots

    async def conditional_claim(
        self,
        job_id: str,
        expected_status: str,
        now: datetime,
        lease_duration: timedelta,
    ) -> bool:
        async with self._lock:
            self.claim_calls += 1
            job = self.jobs.get(job_id)
            if job is None or job.status != expected_status or not job.is_claimable(now):
                return False
            job.status = JobStatus.RUNNING.value
            job.attempts += 1
            job.lease_until = now + lease_duration
            job.updated_at = now
            return True

    async def update_outcome(
        self, job_id: str, fields: dict[str, Any], now: datetime
    ) -> None:
        async with self._lock:
            job = self.jobs[job_id]
            for key, value in fields.items():
                setattr(job, key, value)
            job.updated_at = now

    async def get(self, job_id: str) -> GenerationJob | None:
        job = self.jobs.get(job_id)
        return _snapshot(job) if job is not None else None


class InMemoryPlanRepository:
    """PlanRepository test double keeping plans and exports in dicts."""

    def __init__(self):
        self.plans: dict[str, NutritionPlan] = {}
        self.exports: dict[str, PlanExport] = {}
        self.export_writes: list[dict[str, Any]] = []

    def add_plan(
        self,
        plan_id: str | None = None,
        user_id: str = "user-1",
        answers: dict[str, Any] | None = None,
        status: str = PlanStatus.GENERATING.value,
    ) -> NutritionPlan:
        questionnaire = Questionnaire(
            id=str(uuid4()),
            user_id=user_id,
            version=1,
            answers=answers if answers is not None else dict(SAMPLE_ANSWERS),
            status="active",
        )
        plan = NutritionPlan(
            id=plan_id or str(uuid4()),
            user_id=user_id,
            questionnaire_id=questionnaire.id,
            questionnaire=questionnaire,
            version=1,
            status=status,
        )
        self.plans[plan.id] = plan
        return plan

    async def get_plan(self, plan_id: str) -> NutritionPlan | None:
        return self.plans.get(plan_id)

    async def mark_ready(
        self,
        plan_id: str,
        *,
        markdown: str,
        derived_targets: dict[str, Any],
        validation_issues: list[str],
        llm_model: str,
        llm_prompt_hash: str,
    ) -> None:
        plan = self.plans[plan_id]
        plan.status = PlanStatus.READY.value
        plan.markdown = markdown
        plan.derived_targets = derived_targets
        plan.validation_issues = validation_issues
        plan.llm_model = llm_model
        plan.llm_prompt_hash = llm_prompt_hash
        plan.error = None

    async def mark_failed(self, plan_id: str, error: str) -> None:
        plan = self.plans.get(plan_id)
        if plan is not None:
            plan.status = PlanStatus.FAILED.value
            plan.error = error

    async def upsert_export(self, plan_id: str, fields: dict[str, Any]) -> PlanExport:
        export = self.exports.get(plan_id)
        if export is None:
            export = PlanExport(
                id=str(uuid4()),
                nutrition_plan_id=plan_id,
                status=ExportStatus.QUEUED.value,
                external_id=None,
                url=None,
                last_payload=None,
                error=None,
            )
            self.exports[plan_id] = export
        for key, value in fields.items():
            setattr(export, key, value)
        self.export_writes.append(dict(fields))
        return export

    async def get_export(self, plan_id: str) -> PlanExport | None:
        return self.exports.get(plan_id)


class RecordingGenerator:
    """Stub generator that counts calls and can fail its first N calls."""

    def __init__(self, failures: int = 0, error: Exception | None = None):
        self.calls = 0
        self.failures = failures
        self.error = error or RuntimeError("model timed out")
        self._stub = StubPlanGenerator()

    async def generate(self, answers, targets) -> PlanGenerationResult:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return await self._stub.generate(answers, targets)


class FakeExporter:
    """DocumentExporter double with a scripted result or error."""

    def __init__(
        self,
        result: ExportKickoffResult | None = None,
        error: Exception | None = None,
    ):
        self.result = result or ExportKickoffResult(
            external_id="gen-123", status="pending"
        )
        self.error = error
        self.started: list[str] = []
        self.polled: list[str] = []

    async def start_export(self, markdown: str) -> ExportKickoffResult:
        self.started.append(markdown)
        if self.error is not None:
            raise self.error
        return self.result

    async def get_export_status(self, external_id: str) -> ExportKickoffResult:
        self.polled.append(external_id)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def settings() -> Settings:
    """Settings with the pipeline enabled and the default queue tuning."""
    return Settings(
        environment="test",
        enable_async_plan_pipeline=True,
        gamma_api_key="test-key",
    )


@pytest.fixture
def sample_answers() -> dict[str, Any]:
    """Valid questionnaire answers in the client's camelCase form."""
    return dict(SAMPLE_ANSWERS)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def job_store(clock) -> InMemoryJobStore:
    return InMemoryJobStore(clock)


@pytest.fixture
def plan_repo() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture
def exporter() -> FakeExporter:
    return FakeExporter()


@pytest.fixture
def registry() -> JobRegistry:
    """Fresh job registry so tests never touch the process-wide one."""
    return JobRegistry()


@pytest.fixture
def pipeline(settings, clock, job_store, plan_repo, generator, exporter, registry):
    """Fully wired queue around the in-memory doubles."""
    exports = ExportStatusService(plan_repo, exporter)
    registry.register(
        PLAN_GENERATION_JOB_TYPE,
        PlanGenerationHandler(settings, plan_repo, generator, exports),
    )
    retry_scheduler = RetryScheduler(settings, job_store, plan_repo, clock=clock)
    claimer = JobClaimer(settings, job_store, clock=clock)
    executor = JobExecutor(job_store, retry_scheduler, registry, clock=clock)

    return SimpleNamespace(
        settings=settings,
        clock=clock,
        store=job_store,
        plans=plan_repo,
        generator=generator,
        exporter=exporter,
        exports=exports,
        registry=registry,
        service=JobService(settings, job_store, clock=clock),
        retry_scheduler=retry_scheduler,
        claimer=claimer,
        executor=executor,
        runner=JobRunner(settings, claimer, executor),
    )


@pytest.fixture
def export_error() -> DocumentExportError:
    return DocumentExportError("Gamma API error: 503 - unavailable", status=503)


# PostgreSQL-backed fixtures for the SQLAlchemy store


@pytest.fixture
async def pg_session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory on the CI PostgreSQL database; skipped elsewhere."""
    database_url = os.getenv("DATABASE_URL")

    if not database_url or "postgresql" not in database_url:
        pytest.skip("PostgreSQL DATABASE_URL not configured")

    engine = create_async_engine(database_url, echo=False)

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False)

    # Clean up data after each test while preserving schema
    async with engine.begin() as conn:
        await conn.execute(text("DELETE FROM generation_jobs"))
        await conn.execute(text("DELETE FROM plan_exports"))
        await conn.execute(text("DELETE FROM nutrition_plans"))
        await conn.execute(text("DELETE FROM questionnaires"))
    await engine.dispose()

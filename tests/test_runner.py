"""Tests for one runner batch."""

import pytest
from structlog.testing import capture_logs

from nutriplan.config.settings import Settings
from nutriplan.v1.infra.jobs.models import JobStatus
from nutriplan.v1.infra.jobs.schemas import EnqueuePlanGenerationRequest, JobRunSummary
from nutriplan.v1.infra.jobs.worker import JobRunner, bounded_batch_size


async def enqueue_plans(pipeline, count: int) -> list[str]:
    job_ids = []
    for i in range(count):
        plan = pipeline.plans.add_plan(f"plan-{i}")
        result = await pipeline.service.enqueue_plan_generation(
            EnqueuePlanGenerationRequest(
                user_id=plan.user_id,
                plan_id=plan.id,
                questionnaire_id=plan.questionnaire_id,
                questionnaire_version=1,
                trigger="questionnaire_complete",
            )
        )
        job_ids.append(result.job_id)
    return job_ids


def test_bounded_batch_size(settings):
    assert bounded_batch_size(None, settings) == 3
    assert bounded_batch_size(0, settings) == 1
    assert bounded_batch_size(-4, settings) == 1
    assert bounded_batch_size(7, settings) == 7
    assert bounded_batch_size(500, settings) == 20


async def test_run_batch_empty_queue(pipeline):
    summary = await pipeline.runner.run_batch()
    assert summary == JobRunSummary(claimed=0, completed=0, retried=0, failed=0)


async def test_run_batch_uses_default_batch_size(pipeline):
    await enqueue_plans(pipeline, 5)

    summary = await pipeline.runner.run_batch()

    assert summary.claimed == 3
    assert summary.completed == 3

    queued = [j for j in pipeline.store.jobs.values() if j.status == JobStatus.QUEUED.value]
    assert len(queued) == 2


async def test_run_batch_counts_each_outcome(pipeline):
    job_ids = await enqueue_plans(pipeline, 3)
    # plan-1 disappears: retried; plan-2 loses its planId: failed
    del pipeline.plans.plans["plan-1"]
    bad = pipeline.store.jobs[job_ids[2]]
    bad.payload = {k: v for k, v in bad.payload.items() if k != "planId"}

    summary = await pipeline.runner.run_batch(max_jobs=10)

    assert summary == JobRunSummary(claimed=3, completed=1, retried=1, failed=1)


async def test_one_failing_job_does_not_abort_batch(pipeline):
    await enqueue_plans(pipeline, 2)
    pipeline.generator.failures = 1

    summary = await pipeline.runner.run_batch(max_jobs=2)

    assert summary.retried == 1
    assert summary.completed == 1


async def test_run_batch_logs_summary(pipeline):
    await enqueue_plans(pipeline, 1)

    with capture_logs() as logs:
        await pipeline.runner.run_batch()

    completed = [e for e in logs if e["event"] == "jobs.run.completed"]
    assert len(completed) == 1
    assert completed[0]["claimed"] == 1
    assert completed[0]["completed"] == 1


async def test_run_batch_disabled_pipeline_is_noop(pipeline):
    await enqueue_plans(pipeline, 2)
    settings = Settings(environment="test", enable_async_plan_pipeline=False)
    runner = JobRunner(settings, pipeline.claimer, pipeline.executor)

    summary = await runner.run_batch()

    assert summary == JobRunSummary()
    assert all(j.status == JobStatus.QUEUED.value for j in pipeline.store.jobs.values())


async def test_store_error_while_recording_outcome_propagates(pipeline, monkeypatch):
    await enqueue_plans(pipeline, 1)

    async def broken_update(job_id, fields, now):
        raise ConnectionError("database went away")

    monkeypatch.setattr(pipeline.store, "update_outcome", broken_update)

    with pytest.raises(ConnectionError):
        await pipeline.runner.run_batch()

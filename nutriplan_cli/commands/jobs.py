"""Job Commands - Submit generation jobs and run batches"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from nutriplan.main import Runtime, create_runtime
from nutriplan.v1.core.exceptions import NutriPlanException
from nutriplan.v1.infra.jobs.schemas import EnqueuePlanGenerationRequest, JobResponse

from ..utils.formatting import (
    create_enqueue_panel,
    create_job_panel,
    create_summary_table,
    print_error,
    print_info,
    print_warning,
)

console = Console()

R = TypeVar("R")


def run_with_runtime(action: Callable[[Runtime], Awaitable[R]]) -> R:
    """Build the runtime, run one async action and release the database."""

    async def _main() -> R:
        runtime = create_runtime()
        try:
            return await action(runtime)
        finally:
            await runtime.close()

    return asyncio.run(_main())


def run_jobs(
    max_jobs: Optional[int] = typer.Option(
        None, "--max-jobs", "-n", help="Jobs to claim in this run (clamped to the configured max)"
    ),
):
    """⚙️ Claim and execute one batch of due generation jobs"""
    try:
        summary = run_with_runtime(lambda runtime: runtime.runner.run_batch(max_jobs))
    except NutriPlanException as e:
        print_error(f"Job run failed: {e.message}")
        raise typer.Exit(1) from None

    if summary.claimed == 0:
        print_info("No due jobs")
    console.print(create_summary_table(summary))


def enqueue(
    user_id: str = typer.Option(..., "--user-id", "-u", help="Owning user"),
    plan_id: str = typer.Option(..., "--plan-id", "-p", help="Plan to generate"),
    questionnaire_id: str = typer.Option(..., "--questionnaire-id", "-q"),
    questionnaire_version: int = typer.Option(1, "--questionnaire-version"),
    trigger: str = typer.Option(
        "questionnaire_complete", "--trigger", "-t", help="questionnaire_complete|regenerate"
    ),
    max_attempts: Optional[int] = typer.Option(None, "--max-attempts"),
):
    """📥 Submit a plan generation job"""
    try:
        request = EnqueuePlanGenerationRequest(
            user_id=user_id,
            plan_id=plan_id,
            questionnaire_id=questionnaire_id,
            questionnaire_version=questionnaire_version,
            trigger=trigger,
            max_attempts=max_attempts,
        )
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors())
        print_error(f"Invalid job request: {fields}")
        raise typer.Exit(1) from None

    try:
        result = run_with_runtime(
            lambda runtime: runtime.job_service.enqueue_plan_generation(request)
        )
    except NutriPlanException as e:
        print_error(f"Failed to enqueue job: {e.message}")
        raise typer.Exit(1) from None

    if result.deduplicated:
        print_warning("An equivalent job already exists")
    console.print(create_enqueue_panel(result))


def job_status(job_id: str = typer.Argument(..., help="Job ID")):
    """🔎 Show the state of a generation job"""
    job = run_with_runtime(lambda runtime: runtime.job_service.get_job(job_id))
    if job is None:
        print_error(f"Job {job_id} not found")
        raise typer.Exit(1)

    console.print(create_job_panel(JobResponse.model_validate(job), job.is_terminal()))

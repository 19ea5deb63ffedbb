"""Plan Commands - Inspect generated plans"""

import typer
from rich.console import Console

from nutriplan.main import Runtime
from nutriplan.v1.core.exceptions import NotFoundError

from ..utils.formatting import create_plan_panel, print_error
from .jobs import run_with_runtime

console = Console()


def plan_status(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    refresh: bool = typer.Option(
        True, "--refresh/--no-refresh", help="Poll the export service for pending exports"
    ),
):
    """📄 Show plan generation and export status"""

    async def _load(runtime: Runtime):
        plan = await runtime.plans.get_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan {plan_id} not found")
        if refresh:
            export = await runtime.exports.refresh(plan_id)
        else:
            export = await runtime.plans.get_export(plan_id)
        return plan, export

    try:
        plan, export = run_with_runtime(_load)
    except NotFoundError as e:
        print_error(e.message)
        raise typer.Exit(1) from None

    console.print(create_plan_panel(plan, export))

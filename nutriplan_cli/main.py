"""NutriPlan Jobs CLI - Main Entry Point"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from .commands import jobs, plans

console = Console()

app = typer.Typer(
    name="nutriplan",
    help="🥗 NutriPlan - Background plan generation jobs",
    rich_markup_mode="rich",
)

app.command("run-jobs")(jobs.run_jobs)
app.command("enqueue")(jobs.enqueue)
app.command("job-status")(jobs.job_status)
app.command("plan-status")(plans.plan_status)


@app.command()
def version():
    """📎 Show version information"""
    from . import __version__

    console.print(Panel(
        f"🥗 [bold cyan]NutriPlan Jobs[/bold cyan]\n\n"
        f"• Version: [green]{__version__}[/green]\n"
        f"• Type: [yellow]Command Line Interface[/yellow]",
        title="Version Info",
        border_style="cyan"
    ))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", help="Show version and exit"
    ),
):
    """
    🥗 NutriPlan Jobs CLI

    Submit plan generation jobs and run batches of due jobs. Schedule
    [cyan]nutriplan run-jobs[/cyan] externally to drain the queue.
    """
    if version:
        from . import __version__
        console.print(f"NutriPlan Jobs v{__version__}")
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit()


if __name__ == "__main__":
    app()

"""Rich Formatting Utilities for CLI Output"""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from nutriplan.v1.infra.jobs.schemas import EnqueueResult, JobResponse, JobRunSummary
from nutriplan.v1.plans.models import NutritionPlan, PlanExport

console = Console()

STATUS_STYLES = {
    "generating": "yellow",
    "ready": "green",
    "failed": "red",
    "queued": "blue",
    "pending": "yellow",
    "completed": "green",
    "running": "cyan",
    "retryable": "yellow",
}


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "white")
    return f"[{style}]{status}[/{style}]"


def create_summary_table(summary: JobRunSummary) -> Table:
    """Create a table with the counts of one runner batch"""
    table = Table(title="Job Run", box=box.ROUNDED)

    table.add_column("Claimed", justify="center", style="cyan")
    table.add_column("Completed", justify="center", style="green")
    table.add_column("Retried", justify="center", style="yellow")
    table.add_column("Failed", justify="center", style="red")

    table.add_row(
        str(summary.claimed),
        str(summary.completed),
        str(summary.retried),
        str(summary.failed),
    )
    return table


def create_enqueue_panel(result: EnqueueResult) -> Panel:
    """Create panel describing a submitted job"""
    headline = (
        "♻ [yellow]Existing job returned[/yellow]"
        if result.deduplicated
        else "📥 [green]Job queued[/green]"
    )
    content = (
        f"{headline}\n\n"
        f"• Job ID: [cyan]{result.job_id}[/cyan]\n"
        f"• Status: {_styled(result.status)}"
    )
    return Panel(content, title="Plan Generation", border_style="green")


def create_plan_panel(plan: NutritionPlan, export: PlanExport | None) -> Panel:
    """Create panel with plan and export status"""
    lines = [
        f"• Plan ID: [cyan]{plan.id}[/cyan]",
        f"• Status: {_styled(plan.status)}",
        f"• Version: [blue]{plan.version}[/blue]",
    ]
    if plan.error:
        lines.append(f"• Error: [red]{plan.error}[/red]")

    if export is None:
        lines.append("• Export: [dim]not started[/dim]")
    else:
        lines.append(f"• Export: {_styled(export.status)}")
        if export.url:
            lines.append(f"• Export URL: [blue]{export.url}[/blue]")
        if export.error:
            lines.append(f"• Export error: [red]{export.error}[/red]")

    border = "red" if plan.status == "failed" else "green"
    return Panel("\n".join(lines), title="Plan Status", border_style=border)


def create_job_panel(job: JobResponse, terminal: bool) -> Panel:
    """Create panel with job state and retry information"""
    lines = [
        f"• Job ID: [cyan]{job.id}[/cyan]",
        f"• Key: [dim]{job.job_key}[/dim]",
        f"• Status: {_styled(job.status)}",
        f"• Attempts: [blue]{job.attempts}/{job.max_attempts}[/blue]",
    ]
    if not terminal:
        lines.append(f"• Run after: [yellow]{job.run_after.isoformat()}[/yellow]")
    if job.lease_until:
        lines.append(f"• Lease until: [yellow]{job.lease_until.isoformat()}[/yellow]")
    if job.last_error:
        lines.append(f"• Last error: [red]{job.last_error}[/red]")

    border = "red" if job.status == "failed" else "green"
    return Panel("\n".join(lines), title="Generation Job", border_style=border)

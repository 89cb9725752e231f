"""Command-line interface using Typer."""

import time
from typing import TYPE_CHECKING, NoReturn, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ugc_engine import __version__
from ugc_engine.domain.enums import QualityStatus
from ugc_engine.domain.models import Batch, Brief
from ugc_engine.errors import AppError
from ugc_engine.logging import setup_logging

if TYPE_CHECKING:
    from ugc_engine.services.generation import GenerationService

# Setup logging
setup_logging()

app = typer.Typer(
    name="ugc-engine",
    help="UGC Ad Engine - batch generation of testimonial video ads",
    add_completion=False,
)

# Subcommand groups
briefs_app = typer.Typer(help="Brief management commands")
app.add_typer(briefs_app, name="briefs")

console = Console()

STATUS_STYLES = {
    "completed": "green",
    "failed": "red",
    "pending": "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"UGC Ad Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """UGC Ad Engine - generate, review and iterate on video ad batches."""
    pass


def _service() -> "GenerationService":
    from ugc_engine.services.generation import GenerationService

    return GenerationService()


def _uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[bold red]Invalid {label}: {value}[/bold red]")
        raise typer.Exit(code=1)


def _fail(error: AppError) -> NoReturn:
    console.print(f"[bold red]{error.code}: {error.message}[/bold red]")
    raise typer.Exit(code=1)


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "yellow")
    return f"[{style}]{status}[/{style}]"


def _show_brief(brief: Brief) -> None:
    lines = [
        f"[bold]ID:[/bold] {brief.id}",
        f"[bold]Status:[/bold] {brief.status}",
        f"[bold]Text:[/bold] {brief.raw_input}",
    ]
    if brief.parsed:
        parsed = brief.parsed
        persona = parsed.persona
        lines.extend(
            [
                f"[bold]Hook:[/bold] {parsed.hook}",
                f"[bold]Persona:[/bold] {persona.type}, {persona.age}, {persona.tone}",
                f"[bold]Emotion:[/bold] {parsed.emotion}",
                f"[bold]B-roll:[/bold] {', '.join(parsed.broll_tags)}",
            ]
        )
    console.print(Panel("\n".join(lines), title="Brief"))


def _show_batch(batch: Batch) -> None:
    progress = batch.progress
    summary = (
        f"[bold]Generation:[/bold] {batch.id}\n"
        f"[bold]Status:[/bold] {_styled(str(batch.status))}\n"
        f"[bold]Progress:[/bold] {progress.completed} completed, {progress.failed} failed, "
        f"{progress.in_progress} in progress, {progress.pending} pending (of {progress.total})\n"
        f"[bold]Total cost:[/bold] ${batch.total_cost}"
    )
    if batch.parent_id:
        summary += f"\n[bold]Parent:[/bold] {batch.parent_id}"
    if batch.error_message:
        summary += f"\n[bold red]Error:[/bold red] {batch.error_message}"
    console.print(Panel(summary, title="Generation"))

    table = Table(title="Videos")
    table.add_column("#", justify="right")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Status")
    table.add_column("Quality")
    table.add_column("Cost", justify="right")
    table.add_column("URL / Error")

    for item in batch.items:
        detail = item.video_url or item.error_message or ""
        table.add_row(
            str(item.variation_index + 1),
            str(item.id),
            _styled(str(item.status)),
            str(item.quality_status),
            f"${item.total_cost}",
            detail[:60],
        )
    console.print(table)


def _run_inline(service: "GenerationService", batch: Batch) -> Batch:
    from ugc_engine.utils.async_utils import run_async

    console.print("[dim]Running pipeline in this process...[/dim]")
    return run_async(service.run_batch(batch.id))


# =============================================================================
# BRIEF COMMANDS
# =============================================================================


@briefs_app.command("create")
def briefs_create(
    text: str = typer.Argument(..., help="Natural-language description of the ad"),
    parse: bool = typer.Option(True, "--parse/--no-parse", help="Parse immediately"),
) -> None:
    """Create a brief."""
    try:
        brief = _service().create_brief(text, parse=parse)
    except AppError as e:
        _fail(e)
    _show_brief(brief)


@briefs_app.command("parse")
def briefs_parse(brief_id: str = typer.Argument(..., help="Brief ID")) -> None:
    """Parse (or re-parse) a brief."""
    try:
        brief = _service().parse_brief(_uuid(brief_id, "brief ID"))
    except AppError as e:
        _fail(e)
    _show_brief(brief)


@briefs_app.command("show")
def briefs_show(brief_id: str = typer.Argument(..., help="Brief ID")) -> None:
    """Show a brief."""
    try:
        brief = _service().get_brief(_uuid(brief_id, "brief ID"))
    except AppError as e:
        _fail(e)
    _show_brief(brief)


@briefs_app.command("duplicate")
def briefs_duplicate(brief_id: str = typer.Argument(..., help="Brief ID")) -> None:
    """Copy a brief into a new unparsed draft."""
    try:
        brief = _service().duplicate_brief(_uuid(brief_id, "brief ID"))
    except AppError as e:
        _fail(e)
    _show_brief(brief)


@briefs_app.command("edit")
def briefs_edit(
    brief_id: str = typer.Argument(..., help="Brief ID"),
    text: str = typer.Argument(..., help="New brief text"),
) -> None:
    """Replace a brief's text. It must be parsed again before generating."""
    try:
        brief = _service().update_brief(_uuid(brief_id, "brief ID"), text)
    except AppError as e:
        _fail(e)
    _show_brief(brief)


@briefs_app.command("list")
def briefs_list(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of briefs to show"),
) -> None:
    """List recent briefs."""
    briefs = _service().list_briefs(limit=limit)
    if not briefs:
        console.print("[dim]No briefs found[/dim]")
        return

    table = Table(title="Briefs")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Status")
    table.add_column("Text", style="cyan")
    table.add_column("Created")
    for brief in briefs:
        table.add_row(
            str(brief.id),
            str(brief.status),
            brief.raw_input[:50],
            brief.created_at.strftime("%Y-%m-%d %H:%M") if brief.created_at else "-",
        )
    console.print(table)


# =============================================================================
# GENERATION COMMANDS
# =============================================================================


@app.command()
def generate(
    brief_id: str = typer.Argument(..., help="Parsed brief ID"),
    count: int = typer.Option(3, "--count", "-n", help="Number of videos"),
    inline: bool = typer.Option(False, "--inline", help="Run in this process instead of Celery"),
) -> None:
    """Start a generation batch from a brief."""
    service = _service()
    try:
        batch = service.start_batch(_uuid(brief_id, "brief ID"), count, enqueue=not inline)
        if inline:
            batch = _run_inline(service, batch)
    except AppError as e:
        _fail(e)

    if not inline:
        console.print(f"[green]Generation queued: {batch.id}[/green]")
        console.print(f"[dim]Check progress with: ugc-engine status {batch.id} --watch[/dim]")
        return
    _show_batch(batch)


@app.command()
def status(
    batch_id: str = typer.Argument(..., help="Generation ID"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Poll until the generation finishes"),
) -> None:
    """Show a generation's status and videos."""
    from ugc_engine.config import settings

    service = _service()
    batch_uuid = _uuid(batch_id, "generation ID")
    try:
        batch = service.get_batch(batch_uuid)
        while watch and not batch.status.is_terminal:
            console.print(
                f"[dim]{batch.status}: {batch.progress.completed + batch.progress.failed}"
                f"/{batch.progress.total} finished[/dim]"
            )
            time.sleep(settings.poll_interval_seconds)
            batch = service.get_batch(batch_uuid)
    except AppError as e:
        _fail(e)
    _show_batch(batch)


@app.command()
def cancel(batch_id: str = typer.Argument(..., help="Generation ID")) -> None:
    """Cancel a generation. Work already billed stays billed."""
    try:
        batch = _service().cancel_batch(_uuid(batch_id, "generation ID"))
    except AppError as e:
        _fail(e)
    _show_batch(batch)


@app.command()
def retry(
    batch_id: str = typer.Argument(..., help="Finished generation ID"),
    inline: bool = typer.Option(False, "--inline", help="Run in this process instead of Celery"),
) -> None:
    """Regenerate a generation's failed videos as a new child generation."""
    service = _service()
    try:
        batch = service.retry_failed(_uuid(batch_id, "generation ID"), enqueue=not inline)
        if inline:
            batch = _run_inline(service, batch)
    except AppError as e:
        _fail(e)
    _show_batch(batch)


@app.command()
def review(
    item_id: str = typer.Argument(..., help="Video ID"),
    approve: bool = typer.Option(True, "--approve/--flag", help="Approve or flag the video"),
    note: Optional[str] = typer.Option(None, "--note", help="Reviewer note"),
) -> None:
    """Approve or flag a finished video."""
    quality = QualityStatus.APPROVED if approve else QualityStatus.FLAGGED
    try:
        item = _service().review_item(_uuid(item_id, "video ID"), quality, note)
    except AppError as e:
        _fail(e)
    console.print(f"[green]Video {item.id} marked {item.quality_status}[/green]")


@app.command()
def videos(
    approved: bool = typer.Option(False, "--approved", help="Only approved videos"),
    batch_id: Optional[str] = typer.Option(None, "--generation", "-g", help="Generation ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of videos to show"),
) -> None:
    """List videos across generations."""
    quality = QualityStatus.APPROVED if approved else None
    batch_uuid = _uuid(batch_id, "generation ID") if batch_id else None
    items, total = _service().list_items(quality_status=quality, batch_id=batch_uuid, limit=limit)
    if not items:
        console.print("[dim]No videos found[/dim]")
        return

    table = Table(title=f"Videos ({len(items)} of {total})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Status")
    table.add_column("Quality")
    table.add_column("Cost", justify="right")
    table.add_column("URL")
    for item in items:
        table.add_row(
            str(item.id),
            _styled(str(item.status)),
            str(item.quality_status),
            f"${item.total_cost}",
            (item.video_url or "")[:60],
        )
    console.print(table)


@app.command()
def delete(item_id: str = typer.Argument(..., help="Finished video ID")) -> None:
    """Delete a finished video. Its cost history stays on the generation."""
    from ugc_engine.utils.async_utils import run_async

    item_uuid = _uuid(item_id, "video ID")
    try:
        run_async(_service().delete_item(item_uuid))
    except AppError as e:
        _fail(e)
    console.print(f"[green]Video {item_uuid} deleted[/green]")


@app.command()
def iterate(
    item_id: str = typer.Argument(..., help="Approved video ID"),
    count: int = typer.Option(3, "--count", "-n", help="Number of new variations"),
    intent: Optional[str] = typer.Option(None, "--intent", "-i", help="What to vary"),
    inline: bool = typer.Option(False, "--inline", help="Run in this process instead of Celery"),
) -> None:
    """Start a new generation from an approved video."""
    service = _service()
    try:
        batch = service.create_iteration(
            _uuid(item_id, "video ID"), count, intent, enqueue=not inline
        )
        if inline:
            batch = _run_inline(service, batch)
    except AppError as e:
        _fail(e)
    _show_batch(batch)


@app.command()
def lineage(batch_id: str = typer.Argument(..., help="Generation ID")) -> None:
    """Show a generation's ancestors and children."""
    try:
        result = _service().get_lineage(_uuid(batch_id, "generation ID"))
    except AppError as e:
        _fail(e)

    table = Table(title=f"Lineage of {result.batch.id}")
    table.add_column("Relation", style="cyan")
    table.add_column("Generation", style="dim", no_wrap=True)
    table.add_column("Status")
    table.add_column("Videos", justify="right")
    table.add_column("Intent")
    for depth, ancestor in enumerate(result.ancestors, start=1):
        table.add_row(
            f"ancestor {depth}",
            str(ancestor.id),
            _styled(str(ancestor.status)),
            str(ancestor.target_count),
            ancestor.variation_intent or "",
        )
    for child in result.children:
        table.add_row(
            "child",
            str(child.id),
            _styled(str(child.status)),
            str(child.target_count),
            child.variation_intent or "",
        )
    console.print(table)


@app.command()
def costs(
    item_id: Optional[str] = typer.Argument(None, help="Video ID for a per-video breakdown"),
) -> None:
    """Show spend statistics, or the cost breakdown of one video."""
    service = _service()
    if item_id is None:
        stats = service.get_cost_stats()
        table = Table(title="Spend")
        table.add_column("Window", style="cyan")
        table.add_column("Total", justify="right")
        table.add_row("Today", f"${stats.today}")
        table.add_row("Last 7 days", f"${stats.week}")
        table.add_row("Last 30 days", f"${stats.month}")
        table.add_row("All time", f"${stats.all_time}")
        for category, total in sorted(stats.by_category.items()):
            table.add_row(f"  {category} (30 days)", f"${total}")
        console.print(table)
        return

    try:
        breakdown = service.get_item_costs(_uuid(item_id, "video ID"))
    except AppError as e:
        _fail(e)

    table = Table(title=f"Costs for {breakdown.item_id}")
    table.add_column("Category", style="cyan")
    table.add_column("Provider")
    table.add_column("Operation")
    table.add_column("Units", justify="right")
    table.add_column("Cost", justify="right")
    for entry in breakdown.entries:
        table.add_row(
            str(entry.category),
            entry.provider,
            entry.operation,
            f"{entry.output_units:g} {entry.unit_type}",
            f"${entry.cost}",
        )
    console.print(table)
    console.print(f"[bold]Total:[/bold] ${breakdown.total}")


# =============================================================================
# OPERATIONS
# =============================================================================


@app.command("init-db")
def init_db_command() -> None:
    """Create tables directly (local SQLite runs; use migrations for PostgreSQL)."""
    from ugc_engine.db.session import init_db

    init_db(create_tables=True)
    console.print("[green]Database ready[/green]")


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from ugc_engine.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Database", "✓" if data.get("database") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")

        for component, healthy in (data.get("components") or {}).items():
            table.add_row(component, "✓" if healthy else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            if data.get("error"):
                console.print(f"[yellow]{data['error']}[/yellow]")
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker() -> None:
    """Start a Celery worker (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    subprocess.run(
        [
            sys.executable,
            "-m",
            "celery",
            "-A",
            "ugc_engine.worker",
            "worker",
            "--loglevel=info",
            "-Q",
            "high,celery",
        ],
        check=True,
    )


if __name__ == "__main__":
    app()

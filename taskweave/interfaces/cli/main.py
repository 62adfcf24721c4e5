"""
CLI Main - Typer-based command-line interface.

Usage:
    taskweave models
    taskweave route code-review "Review this function"
    taskweave generate "A todo app with tags" --name todo --output ./todo
    taskweave content "Structured concurrency in Python" --keyword asyncio
    taskweave serve
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

app = typer.Typer(
    name="taskweave",
    help="TaskWeave - Multi-model task orchestration",
    add_completion=False,
)
console = Console()


@app.callback()
def configure(
    log_level: str = typer.Option("WARNING", "--log-level", "-l", help="Logging level"),
) -> None:
    """Configure logging before any command runs."""
    from taskweave.config import configure_logging

    configure_logging(log_level)


def _build_router(prefer_cost: bool = False, prefer_speed: bool = False):
    """Router, tracker and preferences from the environment."""
    from taskweave.config import get_settings
    from taskweave.domains.routing import ModelRouter, RoutingPreferences
    from taskweave.domains.usage import UsageTracker

    settings = get_settings()
    tracker = UsageTracker(max_records=settings.usage_max_records)
    router = ModelRouter.from_settings(settings, usage_sink=tracker)
    preferences = RoutingPreferences(
        prefer_cost=prefer_cost or settings.prefer_cost,
        prefer_speed=prefer_speed or settings.prefer_speed,
    )
    return router, tracker, preferences


def _event_line(event) -> str | None:
    """One console line per event; token chunks are not echoed."""
    from taskweave.domains.pipeline import AgentEventKind

    who = f"[cyan]{event.agent_name}[/cyan]"
    kind = event.kind
    if kind is AgentEventKind.START:
        return f"{who} started"
    if kind is AgentEventKind.COMPLETE:
        return f"{who} [green]done[/green] [dim]({(event.duration_ms or 0):.0f}ms)[/dim]"
    if kind is AgentEventKind.ERROR:
        return f"{who} [red]failed:[/red] {event.error}"
    if kind is AgentEventKind.SKIPPED:
        return f"{who} [yellow]skipped[/yellow] {event.message or ''}"
    if kind is AgentEventKind.MODEL_SWITCH:
        return f"{who} [yellow]switched to {event.model}[/yellow]"
    if kind is AgentEventKind.COLLABORATION:
        return f"{who} [magenta]->[/magenta] {event.message}"
    if kind is AgentEventKind.FILE_GENERATED:
        return f"{who} wrote [bold]{event.file_path}[/bold]"
    if kind is AgentEventKind.PROGRESS and event.warning:
        return f"{who} [yellow]warning:[/yellow] {event.message}"
    return None


def _print_usage(tracker) -> None:
    summary = tracker.summary()
    if not summary.total_records:
        return

    table = Table(title="Model Usage")
    table.add_column("Model", style="cyan")
    table.add_column("Requests", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Cost (USD)", justify="right", style="green")

    for model_id, usage in summary.by_model.items():
        table.add_row(model_id, str(usage.requests), str(usage.tokens), f"{usage.cost:.4f}")
    table.add_row("[bold]Total[/bold]", str(summary.total_records), str(summary.total_tokens),
                  f"[bold]{summary.total_cost:.4f}[/bold]")
    console.print(table)


@app.command()
def models() -> None:
    """List catalog models, their availability and the task map."""
    from taskweave.config.errors import NoAvailableModelError

    router, _, preferences = _build_router()

    table = Table(title="Models")
    table.add_column("Model", style="cyan")
    table.add_column("Provider")
    table.add_column("Modality")
    table.add_column("$/1k tokens", justify="right")
    table.add_column("Available")

    for descriptor in router.catalog.models.values():
        available = router.is_available(descriptor.id)
        table.add_row(
            descriptor.id,
            descriptor.provider.value,
            descriptor.modality.value,
            f"{descriptor.cost_per_1k_tokens:g}",
            "[green]yes[/green]" if available else "[dim]no[/dim]",
        )
    console.print(table)

    tasks = Table(title="Tasks")
    tasks.add_column("Task", style="cyan")
    tasks.add_column("Candidates")
    tasks.add_column("Selected", style="green")

    for task, mapping in router.catalog.tasks.items():
        try:
            selected = router.select_best_model(task, preferences)
        except NoAvailableModelError:
            selected = "[red]none[/red]"
        tasks.add_row(task, ", ".join(mapping.candidates), selected)
    console.print(tasks)


@app.command()
def route(
    task: str = typer.Argument(..., help="Task name, e.g. code-review"),
    prompt: str = typer.Argument(..., help="Prompt text"),
    cost: bool = typer.Option(False, "--cost", help="Prefer the cheapest model"),
    speed: bool = typer.Option(False, "--speed", help="Prefer a fast model"),
) -> None:
    """Send one prompt to the best available model for a task."""
    asyncio.run(_route_async(task, prompt, cost, speed))


async def _route_async(task: str, prompt: str, cost: bool, speed: bool) -> None:
    from taskweave.config.errors import TaskWeaveError

    router, tracker, preferences = _build_router(cost, speed)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Routing {task}...", total=None)
        try:
            result = await router.route(task, prompt, preferences)
        except TaskWeaveError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1)

    console.print(Panel(result.response, title=f"{result.model_id} ({result.provider.value})"))
    console.print(f"[dim]{result.latency_ms:.0f}ms[/dim]")
    _print_usage(tracker)


@app.command()
def generate(
    prompt: str = typer.Argument(..., help="Description of the application"),
    name: str = typer.Option("my-app", "--name", "-n", help="Project name"),
    framework: str = typer.Option("nextjs", "--framework", "-f", help="Target framework"),
    database: str = typer.Option("postgresql", "--database", "-d", help="Database, or 'none'"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory to write files to"),
    sequential: bool = typer.Option(False, "--sequential", help="Run backend and UI one after another"),
) -> None:
    """Generate a full-stack application with the agent team."""
    from taskweave.domains.flows import Database, Framework, ProjectConfig

    try:
        config = ProjectConfig(name=name, framework=Framework(framework), database=Database(database))
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    asyncio.run(_generate_async(prompt, config, output, sequential))


async def _generate_async(prompt: str, config, output: Path | None, sequential: bool) -> None:
    from taskweave.config.errors import TaskWeaveError
    from taskweave.domains.flows import AppGenerationFlow

    router, tracker, preferences = _build_router()
    flow = AppGenerationFlow(router, enable_parallel=not sequential, preferences=preferences)
    run = flow.generate(prompt, config)

    console.print(f"\n[bold]Generating {config.name}[/bold] [dim]({run.pipeline_id[:8]})[/dim]\n")
    try:
        async for event in run:
            line = _event_line(event)
            if line:
                console.print(line)
    except TaskWeaveError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    result = run.result
    if result.issues:
        console.print("\n[bold]Integration issues:[/bold]")
        for issue in result.issues:
            console.print(f"  - {issue}")

    if output and result.files:
        for path, content in result.files.items():
            target = output / path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        console.print(f"\n[green]Wrote {len(result.files)} files to:[/green] {output}")

    console.print(f"\n[dim]Models: {', '.join(result.models_used)}[/dim]")
    _print_usage(tracker)

    if not result.success:
        console.print(f"[red]Generation failed:[/red] {result.error}")
        raise typer.Exit(1)


@app.command()
def content(
    topic: str = typer.Argument(..., help="Topic to write about"),
    content_type: str = typer.Option("article", "--type", "-t", help="Content type"),
    tone: str = typer.Option("professional", "--tone", help="Writing tone"),
    length: str = typer.Option("medium", "--length", help="short, medium or long"),
    keyword: list[str] | None = typer.Option(None, "--keyword", "-k", help="Target keyword (repeatable)"),
    min_quality: int | None = typer.Option(None, "--min-quality", help="Skip SEO below this score"),
    seo: bool = typer.Option(True, "--seo/--no-seo", help="Run SEO optimization"),
    stream: bool = typer.Option(False, "--stream", "-s", help="Stream the draft as it is written"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the content to a file"),
) -> None:
    """Write content and run quality, tagging and SEO analysis."""
    from pydantic import ValidationError

    from taskweave.domains.flows import ContentOptions, ContentSpec

    try:
        spec = ContentSpec(
            type=content_type, topic=topic, tone=tone, length=length, keywords=keyword or []
        )
        options = ContentOptions(auto_seo=seo, min_quality_score=min_quality, stream=stream)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    asyncio.run(_content_async(spec, options, output))


async def _content_async(spec, options, output: Path | None) -> None:
    from taskweave.config.errors import TaskWeaveError
    from taskweave.domains.flows import ContentManagementFlow
    from taskweave.domains.pipeline import AgentEventKind

    router, tracker, preferences = _build_router()
    run = ContentManagementFlow(router, preferences=preferences).create_content(spec, options)

    try:
        async for event in run:
            if event.kind is AgentEventKind.TOKEN_CHUNK:
                console.print(event.chunk, end="", markup=False)
                continue
            line = _event_line(event)
            if line:
                console.print(line)
    except TaskWeaveError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    result = run.result
    if not result.success:
        console.print(f"[red]Content creation failed:[/red] {result.error}")
        _print_usage(tracker)
        raise typer.Exit(1)

    console.print(Panel(result.content, title=result.title or spec.topic))

    table = Table(title="Content Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Words", str(result.word_count))
    table.add_row("Reading time", f"{result.reading_time} min")
    if result.quality:
        table.add_row("Quality score", str(result.quality.overall_score))
    if result.seo:
        table.add_row("Focus keywords", ", ".join(result.seo.focus_keywords) or "-")
    elif result.seo_skipped:
        table.add_row("SEO", "[yellow]skipped (quality gate)[/yellow]")
    table.add_row("Slug", result.slug or "-")
    table.add_row("Tags", ", ".join(result.tags) or "-")
    table.add_row("Keywords", ", ".join(result.keywords) or "-")
    console.print(table)

    if output:
        output.write_text(result.content)
        console.print(f"\n[green]Saved to:[/green] {output}")
    _print_usage(tracker)


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Text or markdown file to analyze"),
) -> None:
    """Run every content analysis over an existing file."""
    if not path.exists():
        console.print(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    asyncio.run(_analyze_async(path.read_text()))


async def _analyze_async(text: str) -> None:
    from taskweave.domains.flows import ContentManagementFlow

    router, tracker, preferences = _build_router()
    flow = ContentManagementFlow(router, preferences=preferences)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Analyzing...", total=None)
        analysis = await flow.analyze(text)

    table = Table(title="Content Analysis")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Quality score", str(analysis.quality.overall_score))
    table.add_row("SEO score", str(analysis.seo.score))
    table.add_row("Readability", f"{analysis.readability.score} ({analysis.readability.grade})")
    table.add_row("Sentiment", f"{analysis.sentiment.overall} ({analysis.sentiment.score:+.2f})")
    table.add_row("Tags", ", ".join(analysis.tags.tags) or "-")
    table.add_row("Keywords", ", ".join(k.keyword for k in analysis.keywords) or "-")
    table.add_row("Entities", ", ".join(e.text for e in analysis.entities) or "-")
    console.print(table)

    if analysis.quality.suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for i, suggestion in enumerate(analysis.quality.suggestions, 1):
            console.print(f"  {i}. {suggestion}")
    _print_usage(tracker)


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind (default: API_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind (default: API_PORT)"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    from taskweave.config import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print("\n[green]Starting TaskWeave API server[/green]")
    console.print(f"[dim]http://{host}:{port}[/dim]\n")

    uvicorn.run(
        "taskweave.interfaces.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from taskweave import __version__

    console.print(f"TaskWeave v{__version__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()

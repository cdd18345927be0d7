"""
ChatRewind CLI - year-in-review for chat history exports.

Analyze an export on disk, regenerate bangers from a stored summary, write a
storage-safe copy of a summary, or run the HTTP API.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from chatrewind.config import settings
from chatrewind.exceptions import RewindError
from chatrewind.insights.bangers import BangerSet, SpiceLevel, generate_bangers
from chatrewind.logging_config import setup_logging
from chatrewind.models.rewind import RewindSummary

app = typer.Typer(
    name="chatrewind",
    help="ChatRewind - year-in-review for chat history exports",
    no_args_is_help=True,
)

console = Console()


def _load_summary(path: Path) -> RewindSummary:
    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] File not found: {path}")
        raise typer.Exit(1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[bold red]Error:[/bold red] Not a JSON summary: {e.msg}")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[bold red]Error:[/bold red] Summary must be a JSON object")
        raise typer.Exit(1)
    return RewindSummary.from_dict(data)


def _print_bangers(bangers: BangerSet) -> None:
    if not bangers.page:
        console.print("[yellow]Not enough data for bangers yet[/yellow]")
        return
    console.print("[bold]Bangers:[/bold]")
    for banger in bangers.page:
        marker = "[green]★[/green]" if banger in bangers.share else " "
        console.print(f" {marker} {banger.line1}")
        if banger.line2:
            console.print(f"     [dim]{banger.line2}[/dim]")


def _print_summary(summary: RewindSummary) -> None:
    console.print("[bold]Your year:[/bold]")
    console.print(f"  Conversations: {summary.total_conversations}")
    console.print(f"  Prompts: {summary.total_user_messages}")
    console.print(f"  Active days: {summary.active_days}")
    console.print(f"  Longest streak: {summary.longest_streak_days} days")
    if summary.busiest_month:
        console.print(f"  Busiest month: {summary.busiest_month}")
    if summary.peak_hour is not None:
        console.print(f"  Peak hour: {summary.peak_hour}:00")
    console.print(f"  Late-night share: {summary.late_night_percent}%")
    if summary.skipped_conversations:
        console.print(
            f"  [yellow]Skipped malformed conversations: {summary.skipped_conversations}[/yellow]"
        )
    console.print()

    if summary.top_topics:
        table = Table(title="Top topics")
        table.add_column("Topic")
        table.add_column("Chats", justify="right")
        for topic in summary.top_topics:
            table.add_row(f"{topic.emoji} {topic.label}", str(topic.count))
        console.print(table)

    wrapped = summary.wrapped
    if wrapped is None:
        return
    if wrapped.archetype:
        console.print(f"[bold magenta]{wrapped.archetype.title}[/bold magenta]")
        console.print(f"  {wrapped.archetype.line}")
    for project in wrapped.projects:
        console.print(
            f"  [cyan]{project.name}[/cyan]: {project.chats} chats, "
            f"{project.intensity}, {project.status}"
        )
    for fight in wrapped.boss_fights:
        console.print(f"  [red]Boss fight:[/red] {fight.label} ({fight.count})")
    for line in wrapped.forecast:
        console.print(f"  [dim]{line}[/dim]")
    if wrapped.closing_line:
        console.print(f"\n[italic]{wrapped.closing_line}[/italic]")
    console.print()


@app.command()
def analyze(
    path: Path = typer.Argument(..., help="Path to the export (.zip or .json)"),
    spice: SpiceLevel = typer.Option(SpiceLevel.SPICY, help="Banger intensity"),
    days_back: int = typer.Option(
        settings.rewind_days_back, "--days-back", help="Lookback window in days"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print the summary as JSON"),
    sanitized: bool = typer.Option(
        False, "--sanitized", help="Strip free-text evidence from the output"
    ),
    include_sensitive: bool = typer.Option(
        False, "--include-sensitive", help="Quote nicknames in bangers (not with mild spice)"
    ),
) -> None:
    """
    Analyze a chat history export.

    Streams the export, classifies every conversation and prints the
    year-in-review with its bangers.
    """
    from chatrewind.pipeline import analyze_export_file
    from chatrewind.sanitize import sanitize_summary

    try:
        setup_logging(context="cli")
    except PermissionError:
        import logging

        logging.basicConfig(level=logging.INFO)

    if not path.exists():
        console.print(f"[bold red]Error:[/bold red] Path not found: {path}")
        raise typer.Exit(1)

    try:
        if json_output:
            summary = analyze_export_file(path, days_back=days_back)
        else:
            with console.status("[cyan]Reading export...[/cyan]") as status:

                def on_progress(progress) -> None:
                    status.update(
                        f"[cyan]{progress.phase.capitalize()}...[/cyan] "
                        f"{progress.conversations_processed} conversations"
                    )

                summary = analyze_export_file(
                    path, days_back=days_back, on_progress=on_progress
                )
    except RewindError as e:
        console.print(f"[bold red]Error:[/bold red] Could not read the export: {e}")
        raise typer.Exit(1)

    if sanitized:
        summary = sanitize_summary(summary)

    if json_output:
        typer.echo(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
        return

    if summary.total_conversations == 0:
        console.print("[yellow]No conversations found in the lookback window[/yellow]")
        return

    _print_summary(summary)
    _print_bangers(generate_bangers(summary, spice=spice, include_sensitive=include_sensitive))


@app.command()
def bangers(
    summary_json: Path = typer.Argument(..., help="Path to a stored summary JSON"),
    spice: SpiceLevel = typer.Option(SpiceLevel.SPICY, help="Banger intensity"),
    include_sensitive: bool = typer.Option(
        False, "--include-sensitive", help="Quote nicknames in bangers (not with mild spice)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print bangers as JSON"),
) -> None:
    """Regenerate bangers from a stored summary."""
    summary = _load_summary(summary_json)
    result = generate_bangers(summary, spice=spice, include_sensitive=include_sensitive)
    if json_output:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    _print_bangers(result)


@app.command()
def sanitize(
    summary_json: Path = typer.Argument(..., help="Path to a stored summary JSON"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write here instead of stdout"
    ),
) -> None:
    """Write a storage-safe copy of a summary."""
    from chatrewind.sanitize import sanitize_summary

    summary = sanitize_summary(_load_summary(summary_json))
    text = json.dumps(summary.to_dict(), indent=2, ensure_ascii=False)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]✓ Sanitized summary written to[/green] {output}")


@app.command()
def serve(
    host: str = typer.Option(settings.api_host, help="Host to bind to"),
    port: int = typer.Option(settings.api_port, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """
    Start the FastAPI server.

    Runs the ChatRewind API for export uploads.
    """
    import uvicorn

    console.print("[bold green]Starting ChatRewind API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Reload: {reload}")
    console.print(f"\n  API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "chatrewind.api.app:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()

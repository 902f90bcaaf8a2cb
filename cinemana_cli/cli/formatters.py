"""
Rich renderables for errors, configuration and the end-of-run summary.
"""

from pathlib import Path
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.filesize import decimal
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cinemana_cli.models.stats import RunSummary


def format_duration(seconds: float) -> str:
    """Formats seconds as ``1h 02m 03s`` / ``2m 03s`` / ``3.4s``."""
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "NoIdentifiersError": [
            "• Pass at least one of --movie, --ids-file, --from-video or --series.",
            "• Series discovery may have found nothing; retry with -vv to see why.",
            "• Use --no-cache if a stale discovery cache is suspected.",
        ],
        "ConfigurationError": [
            "• Check the values in your config file or environment variables.",
            "• Run `cinemana-cli --show-config` to see the file settings.",
        ],
        "CatalogError": [
            "• Verify BASE_URL points at the catalog API.",
            "• Run `cinemana-cli diagnose` to test connectivity.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• The catalog API might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Try reducing the number of `--workers`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the configured settings from the file and the environment."""
    console = Console()
    lines = []
    for key, value in sorted(config_data.items()):
        if isinstance(value, list):
            value = ", ".join(value)
        lines.append(f"{key} = {value}")

    console.print(
        Panel(
            "\n".join(lines) or "[dim](defaults only)[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_summary_panel(summary: RunSummary, progress_stats: Optional[dict] = None):
    """Displays the final summary of the run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=16)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row("✓ OK:", f"[bold green]{summary.ok}[/bold green]")
    stats_table.add_row("○ Skipped:", f"[yellow]{summary.skipped}[/yellow]")
    stats_table.add_row(
        "✗ Errors:",
        f"[bold red]{summary.errors}[/bold red]" if summary.errors else "0",
    )
    if summary.not_run:
        stats_table.add_row("⏸ Not run:", f"[yellow]{summary.not_run}[/yellow]")
    stats_table.add_row("Total:", str(summary.total))

    stats_table.add_row("", "")
    if progress_stats and not summary.dry_run:
        stats_table.add_row(
            "Downloaded:",
            f"[cyan]{decimal(progress_stats.get('bytes_downloaded', 0))}[/cyan]",
        )
        stats_table.add_row(
            "Peak Streams:",
            f"[green]{progress_stats.get('peak_streams', 0)}[/green]",
        )
    stats_table.add_row(
        "Time Elapsed:", f"[blue]{format_duration(summary.duration_seconds)}[/blue]"
    )

    for result in summary.failed_results:
        stats_table.add_row(
            f"[red]{result.id}[/red]", f"[dim]{escape(result.error or '')}[/dim]"
        )

    if summary.dry_run:
        title = "🔍 [bold]Dry Run Summary[/bold]"
        border_color = "yellow"
    elif summary.errors:
        title = "🎬 [bold]Finished with Errors[/bold]"
        border_color = "red"
    else:
        title = "🎬 [bold]Download Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print(
        f"OK: {summary.ok} | Skipped: {summary.skipped} | Errors: {summary.errors} "
        f"| Not run: {summary.not_run} | Total: {summary.total}",
        highlight=False,
    )

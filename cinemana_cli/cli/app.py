"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Optional

import aiohttp
import typer
from rich.console import Console
from rich.logging import RichHandler

from cinemana_cli import __version__
from cinemana_cli.api.client import CatalogClient
from cinemana_cli.core.cancellation import CancellationToken, SigintGuard
from cinemana_cli.core.discovery import DiscoveryCascade
from cinemana_cli.core.download_manager import DownloadManager
from cinemana_cli.core.job_processor import JobProcessor
from cinemana_cli.exceptions import CinemanaCliError
from cinemana_cli.media import Downloader, PostProcessor
from cinemana_cli.media.downloader import close_connection_pool
from cinemana_cli.models.config import DownloadConfig
from cinemana_cli.models.stats import RunSummary
from cinemana_cli.storage.cache import JsonFileDiscoveryCache
from cinemana_cli.storage.config_manager import ConfigManager

from .formatters import print_config, print_summary_panel
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("cinemana_cli")

app = typer.Typer(
    name="cinemana-cli",
    help=(
        "A concurrent movie and series downloader for the Cinemana catalog. Use"
        " 'cinemana-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "cinemana-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

_LOG_LEVELS = {
    "error": "ERROR",
    "warn": "WARNING",
    "warning": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
}


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Clear the series discovery cache and exit."
    ),
):
    """Cinemana Downloader CLI"""
    if version:
        console.print(f"[bold]cinemana-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    ctx.obj = {"verbose": verbose}
    log.setLevel("DEBUG" if verbose >= 2 else "INFO")

    if clear_cache:
        config = ConfigManager(CONFIG_FILE).load_config()
        cache = JsonFileDiscoveryCache(Path(config.cache_path))
        entries = len(cache)
        if cache.clear():
            console.print(
                f"[green]✓ Cache cleared successfully ({entries} series removed).[/green]"
            )
        else:
            console.print("[red]✗ Failed to clear cache.[/red]")
            raise typer.Exit(code=1)
        raise typer.Exit()

    if show_config:
        config_data = ConfigManager(CONFIG_FILE).get_config_as_dict()
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    base_url: str = typer.Option(
        ..., "--base-url", help="Catalog API base URL, e.g. https://example.org/api."
    ),
    output: Optional[str] = typer.Option(
        None, "-o", "--output", help="Default output directory."
    ),
    quality: Optional[str] = typer.Option(
        None, "-q", "--quality", help="Default preferred quality name."
    ),
    workers: Optional[int] = typer.Option(
        None, "-w", "--workers", help="Default number of concurrent jobs."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config file without asking."
    ),
):
    """Write a config file with the given defaults."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    cli_options = {
        "base_url": base_url,
        "output_dir": output,
        "quality": quality,
        "max_workers": workers,
    }
    config_manager = ConfigManager(CONFIG_FILE)
    config = config_manager.load_config(cli_options)
    config_manager.save_config(config)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready to download! Try: [cyan]cinemana-cli download -m <id>[/cyan]")


@app.command(name="download")
def download_command(
    ctx: typer.Context,
    # --- Identifier Selection ---
    movie: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "-m", "--movie", help="Movie or episode id (repeatable)."
    ),
    from_video: Optional[list[str]] = typer.Option(  # noqa: B008
        None,
        "--from-video",
        help="Episode id; downloads every episode of its series (repeatable).",
    ),
    series: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--series", help="Root series id to discover (repeatable)."
    ),
    season: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--season", help="Restrict series discovery to this season (repeatable)."
    ),
    ids_file: Optional[str] = typer.Option(
        None, "--ids-file", help="File with one id per line; '#' starts a comment."
    ),
    # --- Core Download Options ---
    quality: Optional[str] = typer.Option(
        None, "-q", "--quality", help="Preferred quality name, e.g. mp4-1080."
    ),
    workers: Optional[int] = typer.Option(
        None, "-w", "--workers", help="Number of concurrent jobs (default 4)."
    ),
    output: Optional[str] = typer.Option(
        None, "-o", "--output", help="Output directory."
    ),
    structure: Optional[str] = typer.Option(
        None, "--structure", help="Output layout: flat or series (Show/Sxx)."
    ),
    name_template: Optional[str] = typer.Option(
        None,
        "--name-template",
        help="File name template with {title} {quality} {season} {episode}.",
    ),
    # --- Subtitle & Post-processing Options ---
    subs: Optional[str] = typer.Option(
        None, "--subs", help="Comma-separated subtitle languages (default: all)."
    ),
    subs_format: Optional[str] = typer.Option(
        None, "--subs-format", help="Subtitle format preference: srt, vtt or both."
    ),
    mux_subs: Optional[bool] = typer.Option(
        None, "--mux-subs", help="Mux subtitles into an MKV copy with ffmpeg."
    ),
    burn_subs: Optional[bool] = typer.Option(
        None, "--burn-subs", help="Burn the first subtitle into an MP4 copy with ffmpeg."
    ),
    ffmpeg: Optional[str] = typer.Option(None, "--ffmpeg", help="Path to ffmpeg."),
    # --- Behavior & Utility Options ---
    skip_existing: Optional[bool] = typer.Option(
        None,
        "--skip-existing/--no-skip-existing",
        help="Leave files that already exist untouched (default on).",
    ),
    overwrite: Optional[bool] = typer.Option(
        None, "--overwrite", help="Remove and re-download existing files."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Print the planned file names without downloading."
    ),
    no_cache: Optional[bool] = typer.Option(
        None, "--no-cache", help="Bypass the series discovery cache."
    ),
    progress: Optional[str] = typer.Option(
        None, "--progress", help="Progress display: auto or none."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Catalog API base URL (overrides BASE_URL)."
    ),
):
    """Download movies and series episodes."""
    cli_options: dict[str, Any] = {
        "movie_ids": movie,
        "from_video_ids": from_video,
        "series_ids": series,
        "seasons": season,
        "ids_file": ids_file,
        "quality": quality,
        "max_workers": workers,
        "output_dir": output,
        "structure": structure,
        "name_template": name_template,
        "subs": subs,
        "subs_format": subs_format,
        "mux_subs": mux_subs,
        "burn_subs": burn_subs,
        "ffmpeg_path": ffmpeg,
        "skip_existing": skip_existing,
        "overwrite": overwrite,
        "dry_run": dry_run,
        "no_cache": no_cache,
        "progress": progress,
        "base_url": base_url,
    }

    config = ConfigManager(CONFIG_FILE).load_config(cli_options)
    if not (ctx.obj or {}).get("verbose"):
        log.setLevel(_LOG_LEVELS[config.log_level])

    if config.dry_run:
        console.print("[bold cyan]🎬 Starting dry run session...[/bold cyan]")
    else:
        console.print("[bold cyan]🎬 Starting download session...[/bold cyan]")

    summary, progress_stats = asyncio.run(_download_async(config))
    print_summary_panel(summary, progress_stats)
    if summary.exit_code:
        raise typer.Exit(code=summary.exit_code)


async def _download_async(config: DownloadConfig) -> tuple[RunSummary, dict]:
    cancel_token = CancellationToken()
    progress_enabled = config.progress == "auto" and not config.dry_run

    async with ProgressManager(console=console, enabled=progress_enabled) as progress_manager:
        try:
            async with CatalogClient(
                config.base_url,
                timeout=config.timeout,
                user_agent=config.user_agent,
                max_workers=config.max_workers,
                series_ep_endpoint=config.series_ep_endpoint,
                series_ep_season_param=config.series_ep_season_param,
            ) as api_client:
                cache = (
                    JsonFileDiscoveryCache(Path(config.cache_path))
                    if config.cache_enabled
                    else None
                )
                cascade = DiscoveryCascade(
                    api_client, cache, config.discover_langs, config.discover_levels
                )
                downloader = Downloader(
                    max_attempts=config.retry_count + 1,
                    progress_manager=progress_manager,
                    max_workers=config.max_workers,
                    timeout=config.timeout,
                    user_agent=config.user_agent,
                )
                processor = JobProcessor(
                    config,
                    api_client,
                    downloader,
                    PostProcessor(config.ffmpeg_path),
                    progress_manager,
                )
                manager = DownloadManager(
                    config, api_client, processor, cancel_token, cascade
                )
                with SigintGuard(cancel_token, console):
                    summary = await manager.execute()
        finally:
            await close_connection_pool()

    return summary, progress_manager.get_statistics()


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]○ No config file.[/] Settings come from the environment and options."
        )

    config = None
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid.")
    except CinemanaCliError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        issues_found = True

    if config is not None:
        if config.base_url:
            console.print(f"[green]✓[/] Base URL: [dim]{config.base_url}[/dim]")
        else:
            console.print("[red]✗ BASE_URL is not set.[/] Run `init` or export BASE_URL.")
            issues_found = True

        if shutil.which(config.ffmpeg_path):
            console.print(f"[green]✓[/] ffmpeg found: [dim]{config.ffmpeg_path}[/dim]")
        else:
            console.print(
                f"[yellow]○ ffmpeg not found at '{config.ffmpeg_path}'.[/] "
                "--mux-subs and --burn-subs will not work."
            )

    async def test_connection(url: str, user_agent: str) -> bool:
        try:
            timeout = aiohttp.ClientTimeout(total=10)
            async with (
                aiohttp.ClientSession(
                    timeout=timeout, headers={"User-Agent": user_agent}
                ) as session,
                session.get(url) as resp,
            ):
                if resp.status < 500:
                    console.print(
                        f"[green]✓[/] Catalog reachable (Status: {resp.status})."
                    )
                    return True
                console.print(
                    f"[red]✗ Catalog returned an error (Status: {resp.status}).[/red]"
                )
                return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            console.print(f"[red]✗ Connection test failed: {e or type(e).__name__}[/red]")
            return False

    if config is not None and config.base_url:
        console.print("\n[dim]Testing connectivity to the catalog...[/dim]")
        if not asyncio.run(test_connection(config.base_url, config.user_agent)):
            issues_found = True

    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)

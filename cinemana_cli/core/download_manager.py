"""
The main orchestrator: resolves identifiers and runs one job per identifier
under a bounded worker pool.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from rich.markup import escape

from cinemana_cli.api.client import CatalogClient
from cinemana_cli.exceptions import ConfigurationError, NoIdentifiersError
from cinemana_cli.models.catalog import JobResult, JobStatus
from cinemana_cli.models.config import DownloadConfig
from cinemana_cli.models.stats import RunSummary

from .cancellation import CancellationToken
from .discovery import DiscoveryCascade
from .job_processor import JobProcessor

log = logging.getLogger(__name__)


def read_ids_file(path: Path) -> list[str]:
    """Reads one identifier per line, ignoring blank lines and ``#`` comments."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = [line.strip() for line in f]
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Could not read ids file '{path}': {e}") from e
    return [line for line in lines if line and not line.startswith("#")]


class DownloadManager:
    """Orchestrates the entire download run."""

    def __init__(
        self,
        config: DownloadConfig,
        api_client: CatalogClient,
        job_processor: JobProcessor,
        cancel_token: Optional[CancellationToken] = None,
        cascade: Optional[DiscoveryCascade] = None,
        job_retry_delay: float = 1.0,
    ):
        self.config = config
        self.api_client = api_client
        self.job_processor = job_processor
        self.cancel_token = cancel_token or CancellationToken()
        self.cascade = cascade or DiscoveryCascade(
            api_client,
            langs=config.discover_langs,
            levels=config.discover_levels,
        )
        self.job_retry_delay = job_retry_delay
        self.semaphore = asyncio.Semaphore(config.max_workers)

    async def resolve_identifiers(self) -> list[str]:
        """
        Collects direct ids, the ids file, from-video expansions and series
        expansions into one de-duplicated list, first occurrence winning.

        Raises:
            NoIdentifiersError: If nothing resolved to an identifier.
        """
        ids: list[str] = [str(i) for i in self.config.movie_ids]
        if self.config.ids_file:
            log.info(f"Reading ids from file: [dim]{escape(self.config.ids_file)}[/dim]")
            ids.extend(read_ids_file(Path(self.config.ids_file)))

        seasons = self.config.seasons or None
        for episode_id in self.config.from_video_ids:
            ids.extend(await self.cascade.expand_from_episode(str(episode_id), seasons))

        if self.config.series_ids:
            ids.extend(await self.cascade.expand_series(self.config.series_ids, seasons))

        unique_ids = list(dict.fromkeys(ids))
        if len(unique_ids) < len(ids):
            log.info(f"Removed {len(ids) - len(unique_ids)} duplicate id(s).")
        if not unique_ids:
            raise NoIdentifiersError(
                "Provide --movie <id>, --ids-file <path>, --from-video <episodeId>, "
                "or --series <rootSeriesId>."
            )
        return unique_ids

    async def run(self, ids: list[str]) -> RunSummary:
        """Runs every job and returns the aggregated summary."""
        summary = RunSummary(dry_run=self.config.dry_run)
        start = time.monotonic()
        results = await asyncio.gather(*(self._run_job(item_id) for item_id in ids))
        for result in results:
            summary.add(result)
        summary.duration_seconds = time.monotonic() - start
        return summary

    async def execute(self) -> RunSummary:
        """Resolves identifiers, then downloads them."""
        ids = await self.resolve_identifiers()
        log.info(f"Queued {len(ids)} job(s) with {self.config.max_workers} worker(s).")
        return await self.run(ids)

    async def _run_job(self, item_id: str) -> JobResult:
        async with self.semaphore:
            if self.cancel_token.cancelled:
                log.debug(f"Not starting {item_id}: {self.cancel_token.reason}")
                return JobResult(id=item_id, status=JobStatus.CANCELLED)
            try:
                return await self._process_with_retry(item_id)
            except Exception as e:
                message = str(e) or type(e).__name__
                log.error(
                    f"[red]✗ Error processing {escape(item_id)}: {escape(message)}[/red]",
                    exc_info=log.getEffectiveLevel() == logging.DEBUG,
                )
                return JobResult(id=item_id, status=JobStatus.ERROR, error=message)

    async def _process_with_retry(self, item_id: str) -> JobResult:
        retries = self.config.job_retries
        attempt = 0
        while True:
            try:
                return await self.job_processor.process(item_id)
            except Exception as e:
                if attempt >= retries:
                    raise
                delay = self.job_retry_delay * (2**attempt)
                log.warning(
                    f"[yellow]Job {escape(item_id)} failed ({escape(str(e) or type(e).__name__)}); "
                    f"retry {attempt + 1}/{retries} in {delay:.1f}s[/yellow]"
                )
                await asyncio.sleep(delay)
                attempt += 1

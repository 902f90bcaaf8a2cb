"""
Handles the processing of a single identifier, from catalog lookup to
post-processing.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from rich.markup import escape

from cinemana_cli.api.client import CatalogClient
from cinemana_cli.cli.progress_manager import ProgressManager
from cinemana_cli.media import Downloader, PostProcessor
from cinemana_cli.models.catalog import (
    JobResult,
    JobStatus,
    QualityVariant,
    SubtitleTrack,
    TitleInfo,
)
from cinemana_cli.models.config import DownloadConfig
from cinemana_cli.utils.expiry import (
    is_expiring_soon,
    minutes_until_expiry,
    parse_expiry_epoch,
)
from cinemana_cli.utils.path import (
    build_title,
    choose_base_title,
    create_dir,
    pad2,
    render_name_template,
    target_directory,
    video_extension,
)
from cinemana_cli.utils.quality import pick_quality
from cinemana_cli.utils.subtitles import filter_subtitle_tracks

log = logging.getLogger(__name__)


class JobProcessor:
    """
    Runs the per-identifier pipeline. Holds no per-job state, so one instance
    serves every concurrent job.

    Catalog and stream errors propagate to the caller, which owns the
    job-level retry and turns exhausted retries into an ``error`` result.
    """

    def __init__(
        self,
        config: DownloadConfig,
        api_client: CatalogClient,
        downloader: Downloader,
        post_processor: Optional[PostProcessor] = None,
        progress_manager: Optional[ProgressManager] = None,
    ):
        self.config = config
        self.api_client = api_client
        self.downloader = downloader
        self.post_processor = post_processor or PostProcessor(config.ffmpeg_path)
        self.progress_manager = progress_manager or ProgressManager(enabled=False)

    def _plan(self, file_name: str) -> None:
        self.progress_manager.console.print(f"PLAN: {escape(file_name)}", highlight=False)

    def _warn_if_expiring(self, url: str, what: str) -> None:
        epoch = parse_expiry_epoch(url)
        if is_expiring_soon(epoch, self.config.expiry_warn_minutes):
            log.warning(
                f"[yellow]{what} expires in ~{minutes_until_expiry(epoch)} min; "
                "download starting...[/yellow]"
            )

    async def _fetch(self, url: str, path: Path) -> None:
        await self.downloader.download_file(
            url,
            path,
            skip_existing=self.config.skip_existing,
            overwrite=self.config.overwrite,
        )

    async def process(self, item_id: str) -> JobResult:
        """Manages the complete lifecycle of one identifier."""
        log.info(f"[bold]== Movie/Episode {escape(item_id)} ==[/bold]")
        info = await self.api_client.fetch_video_info(item_id)
        title = build_title(info)

        qualities = await self.api_client.fetch_qualities(item_id)
        if not qualities:
            log.warning(f"[yellow]No transcoded files for {item_id}. Skipping.[/yellow]")
            return JobResult(id=item_id, status=JobStatus.NO_QUALITIES, title=title)

        chosen = pick_quality(qualities, self.config.quality)
        if chosen is None or not chosen.video_url:
            log.warning(f"[yellow]No usable quality for {item_id}. Skipping.[/yellow]")
            return JobResult(id=item_id, status=JobStatus.NO_QUALITY_URL, title=title)

        self._warn_if_expiring(chosen.video_url, f"Video URL for {item_id}")

        target_dir = target_directory(
            Path(self.config.output_dir), self.config.structure, info
        )
        if not self.config.dry_run:
            create_dir(target_dir)

        stem = render_name_template(
            self.config.name_template,
            title=title,
            quality=chosen.label,
            season=pad2(info.season),
            episode=pad2(info.episode),
        )
        video_path = target_dir / f"{stem}{video_extension(chosen.video_url)}"

        if self.config.dry_run:
            self._plan(video_path.name)
        else:
            await self._fetch(chosen.video_url, video_path)

        subtitle_paths = await self._process_subtitles(item_id, target_dir, stem)

        if not self.config.dry_run:
            if self.config.save_metadata:
                self._write_metadata(target_dir / f"{stem}.json", info, chosen, video_path)
            await self._post_process(video_path, subtitle_paths)
            log.info(f"[green]✓ Done:[/] {escape(title)}")

        return JobResult(
            id=item_id, status=JobStatus.OK, title=title, output_path=str(video_path)
        )

    async def _process_subtitles(
        self, item_id: str, target_dir: Path, stem: str
    ) -> list[Path]:
        tracks = await self.api_client.fetch_subtitles(item_id)
        selected = filter_subtitle_tracks(
            tracks, self.config.subs, self.config.subs_format
        )
        if not selected:
            log.info("No matching subtitles.")

        paths = []
        for track in selected:
            path = target_dir / self._subtitle_name(stem, track)
            self._warn_if_expiring(track.url, f"Subtitle ({track.language}) URL")
            if self.config.dry_run:
                self._plan(path.name)
                continue
            await self._fetch(track.url, path)
            paths.append(path)
        return paths

    @staticmethod
    def _subtitle_name(stem: str, track: SubtitleTrack) -> str:
        return f"{stem}.{track.language}.{track.format}"

    def _write_metadata(
        self,
        path: Path,
        info: TitleInfo,
        chosen: QualityVariant,
        video_path: Path,
    ) -> None:
        metadata = {
            "id": info.id,
            "title": build_title(info),
            "baseTitle": choose_base_title(info),
            "season": info.season,
            "episode": info.episode,
            "kind": info.kind,
            "quality": chosen.label,
            "videoPath": str(video_path),
            "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "api": {
                "allVideoInfo": info.raw,
                "chosenQuality": {
                    "name": chosen.name,
                    "resolution": chosen.resolution,
                    "videoUrl": chosen.video_url,
                },
            },
        }
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError, ValueError) as e:
            log.warning(f"[yellow]Failed to write metadata for {info.id}: {e}[/yellow]")

    async def _post_process(self, video_path: Path, subtitle_paths: list[Path]) -> None:
        if not subtitle_paths:
            return
        if self.config.burn_subs:
            await self.post_processor.burn(video_path, subtitle_paths)
        if self.config.mux_subs:
            await self.post_processor.mux(video_path, subtitle_paths)

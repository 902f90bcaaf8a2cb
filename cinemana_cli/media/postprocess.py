"""
Post-processing with ffmpeg: muxing subtitle tracks into an MKV container or
burning the first subtitle into the picture.

ffmpeg is treated as an opaque tool. A zero exit status is success; anything
else is logged and reported as ``None`` so the owning job still succeeds.
Inputs are never modified or removed.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from cinemana_cli.exceptions import PostProcessError

log = logging.getLogger(__name__)

MAX_MUXED_SUBTITLES = 4


def muxed_output_path(video_path: Path) -> Path:
    return video_path.with_name(f"{video_path.stem}.muxed.mkv")


def burned_output_path(video_path: Path) -> Path:
    return video_path.with_name(f"{video_path.stem}.burned.mp4")


def escape_filter_path(path: Path) -> str:
    """Escapes a path for use inside ffmpeg's ``subtitles=`` filter argument."""
    return (
        str(path)
        .replace("\\", "\\\\")
        .replace(":", "\\:")
        .replace(",", "\\,")
        .replace("'", "\\'")
    )


def build_mux_args(video_path: Path, subtitle_paths: Sequence[Path]) -> list[str]:
    """
    Stream-copies the video and up to four subtitle inputs into one MKV.
    Subtitle maps are optional (``N?``) so fewer inputs are tolerated.
    """
    args = ["-y", "-i", str(video_path)]
    for sub in list(subtitle_paths)[:MAX_MUXED_SUBTITLES]:
        args += ["-i", str(sub)]
    args += ["-map", "0"]
    for index in range(1, MAX_MUXED_SUBTITLES + 1):
        args += ["-map", f"{index}?"]
    args += ["-c", "copy", str(muxed_output_path(video_path))]
    return args


def build_burn_args(video_path: Path, subtitle_path: Path) -> list[str]:
    """Re-encodes the video with the subtitle rendered in; audio is copied."""
    return [
        "-y",
        "-i",
        str(video_path),
        "-vf",
        f"subtitles='{escape_filter_path(subtitle_path)}'",
        "-c:a",
        "copy",
        str(burned_output_path(video_path)),
    ]


class PostProcessor:
    """Runs ffmpeg as a subprocess for mux and burn operations."""

    def __init__(self, ffmpeg_path: str = "ffmpeg"):
        self.ffmpeg_path = ffmpeg_path

    async def run_ffmpeg(self, args: Sequence[str]) -> None:
        """
        Raises:
            PostProcessError: If ffmpeg cannot be started or exits non-zero.
        """
        log.debug(f"{self.ffmpeg_path} {' '.join(args)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                self.ffmpeg_path,
                "-hide_banner",
                "-nostdin",
                "-loglevel",
                "error",
                *args,
            )
        except OSError as e:
            raise PostProcessError(f"Could not start {self.ffmpeg_path}: {e}") from e
        returncode = await proc.wait()
        if returncode != 0:
            raise PostProcessError(f"ffmpeg exited with code {returncode}")

    async def mux(self, video_path: Path, subtitle_paths: Sequence[Path]) -> Optional[Path]:
        if not subtitle_paths:
            return None
        output = muxed_output_path(video_path)
        try:
            await self.run_ffmpeg(build_mux_args(video_path, subtitle_paths))
        except PostProcessError as e:
            log.error(f"[red]Mux failed for '{video_path.name}': {e}[/red]")
            return None
        log.info(f"  [green]Muxed ->[/] [dim]{output}[/dim]")
        return output

    async def burn(self, video_path: Path, subtitle_paths: Sequence[Path]) -> Optional[Path]:
        if not subtitle_paths:
            return None
        output = burned_output_path(video_path)
        try:
            await self.run_ffmpeg(build_burn_args(video_path, subtitle_paths[0]))
        except PostProcessError as e:
            log.error(f"[red]Burn failed for '{video_path.name}': {e}[/red]")
            return None
        log.info(f"  [green]Burned ->[/] [dim]{output}[/dim]")
        return output

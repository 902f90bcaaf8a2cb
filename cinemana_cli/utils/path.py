"""
Utilities for naming output files and laying out target directories.
"""

from pathlib import Path
from typing import Any, Optional

from pathvalidate import sanitize_filename

from cinemana_cli.models.catalog import TitleInfo

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".webm", ".mov", ".m4v")
DEFAULT_VIDEO_EXTENSION = ".mp4"
SUBTITLE_EXTENSIONS = (".srt", ".vtt")
DEFAULT_SUBTITLE_EXTENSION = ".srt"
FALLBACK_TITLE = "untitled"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)


def pad2(value: Any) -> Optional[str]:
    """Left-pads a season/episode number to two digits; empty input yields None."""
    if value is None:
        return None
    text = str(value).strip()
    return text.rjust(2, "0") if text else None


def choose_base_title(info: TitleInfo) -> str:
    """Picks the first non-empty localized title (English, Arabic, other)."""
    return info.en_title or info.ar_title or info.other_title or FALLBACK_TITLE


def sanitize_title(title: str) -> str:
    cleaned = sanitize_filename(title, platform="universal").strip()
    return cleaned or FALLBACK_TITLE


def build_title(info: TitleInfo) -> str:
    """
    Builds the filesystem-safe display title, suffixed with ``.SxxEyy`` for
    series episodes that carry both a season and an episode number.
    """
    base = sanitize_title(choose_base_title(info))
    season, episode = pad2(info.season), pad2(info.episode)
    if info.is_series and season and episode:
        return f"{base}.S{season}E{episode}"
    return base


def render_name_template(
    template: str,
    title: str,
    quality: str,
    season: Optional[str] = None,
    episode: Optional[str] = None,
) -> str:
    """
    Substitutes the template placeholders literally. Values are inserted in a
    single pass so placeholder text inside a value is never expanded again.
    """
    values = {
        "{title}": title,
        "{quality}": quality,
        "{season}": season or "",
        "{episode}": episode or "",
    }
    out = []
    i = 0
    while i < len(template):
        for placeholder, value in values.items():
            if template.startswith(placeholder, i):
                out.append(value)
                i += len(placeholder)
                break
        else:
            out.append(template[i])
            i += 1
    return "".join(out)


def _extension_from_url(url: str, candidates: tuple[str, ...], default: str) -> str:
    lowered = (url or "").lower()
    for ext in candidates:
        if ext in lowered:
            return ext
    return default


def video_extension(url: str) -> str:
    return _extension_from_url(url, VIDEO_EXTENSIONS, DEFAULT_VIDEO_EXTENSION)


def subtitle_extension(url: str) -> str:
    return _extension_from_url(url, SUBTITLE_EXTENSIONS, DEFAULT_SUBTITLE_EXTENSION)


def target_directory(output_dir: Path, structure: str, info: TitleInfo) -> Path:
    """
    Returns the directory a job writes into: the output root for the flat
    layout, or ``<output>/<Show>/Sxx`` for series episodes in the series layout.
    """
    if structure == "series" and info.is_series:
        show_name = sanitize_title(choose_base_title(info))
        return output_dir / show_name / f"S{pad2(info.season) or '00'}"
    return output_dir

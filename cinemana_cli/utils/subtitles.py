"""
Normalizes and filters the subtitle tracks attached to an item.
"""

import re
from typing import Any, Iterable, Optional

from cinemana_cli.models.catalog import SubtitleTrack

from .path import subtitle_extension

# The catalog reports a missing track with a spinner image instead of a file.
_PLACEHOLDER_RE = re.compile(r"defaultImages/loading\.gif", re.IGNORECASE)


def is_placeholder(url: str) -> bool:
    return bool(_PLACEHOLDER_RE.search(url))


def parse_subtitle_tracks(payload: Any) -> list[SubtitleTrack]:
    """Builds tracks from a ``translationFiles`` payload, dropping placeholders."""
    raw_tracks = payload.get("translations") if isinstance(payload, dict) else None
    if not isinstance(raw_tracks, list):
        return []

    tracks = []
    for item in raw_tracks:
        if not isinstance(item, dict):
            continue
        url = str(item.get("file") or "").strip()
        if not url or is_placeholder(url):
            continue
        language = str(item.get("type") or item.get("name") or "sub").strip().lower()
        tracks.append(
            SubtitleTrack(url=url, language=language, format=subtitle_extension(url)[1:])
        )
    return tracks


def filter_subtitle_tracks(
    tracks: Iterable[SubtitleTrack],
    languages: Optional[Iterable[str]],
    format_preference: str,
) -> list[SubtitleTrack]:
    """
    Keeps tracks whose language was requested (all languages when none were)
    and, per language, either every format ("both") or the preferred format
    falling back to the first track offered.
    """
    wanted = {lang.strip().lower() for lang in languages or () if lang.strip()}

    by_language: dict[str, list[SubtitleTrack]] = {}
    for track in tracks:
        if wanted and track.language not in wanted:
            continue
        by_language.setdefault(track.language, []).append(track)

    selected = []
    for candidates in by_language.values():
        if format_preference == "both":
            selected.extend(candidates)
        else:
            selected.append(
                next((t for t in candidates if t.format == format_preference), candidates[0])
            )
    return selected

"""
Typed records built from the catalog's loosely-shaped JSON payloads.

Every ``from_api`` constructor treats absent or malformed fields as missing
instead of raising, so one odd catalog row never takes a job down.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

SERIES_KIND = "2"


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class TitleInfo:
    """Catalog record for one identifier (movie or series episode)."""

    id: str
    en_title: Optional[str] = None
    ar_title: Optional[str] = None
    other_title: Optional[str] = None
    kind: Optional[str] = None
    season: Optional[str] = None
    episode: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_series(self) -> bool:
        return self.kind == SERIES_KIND

    @classmethod
    def from_api(cls, item_id: str, payload: Any) -> "TitleInfo":
        data = payload if isinstance(payload, dict) else {}
        return cls(
            id=str(item_id),
            en_title=_clean_str(data.get("en_title")),
            ar_title=_clean_str(data.get("ar_title")),
            other_title=_clean_str(data.get("other_title")),
            kind=_clean_str(data.get("kind")),
            season=_clean_str(data.get("season")),
            episode=_clean_str(data.get("episodeNummer")),
            raw=data,
        )


@dataclass(frozen=True)
class QualityVariant:
    """One offered encoding of an item. ``video_url`` carries an ``Expires`` epoch."""

    name: Optional[str]
    resolution: Optional[str]
    video_url: Optional[str]

    @property
    def label(self) -> str:
        return self.name or self.resolution or "video"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "QualityVariant":
        return cls(
            name=_clean_str(payload.get("name")),
            resolution=_clean_str(payload.get("resolution")),
            video_url=_clean_str(payload.get("videoUrl")),
        )


@dataclass(frozen=True)
class SubtitleTrack:
    url: str
    language: str
    format: str


@dataclass(frozen=True, order=True)
class EpisodeRef:
    """A discovered episode; instances sort by ``(season, episode)``."""

    season: int
    episode: int
    id: str = field(compare=False)
    root_series_id: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Optional["EpisodeRef"]:
        """Builds a ref from a season-listing or group-content item, keyed by ``nb``."""
        episode_id = _clean_str(payload.get("nb"))
        if not episode_id:
            return None
        return cls(
            season=_to_int(payload.get("season")),
            episode=_to_int(payload.get("episodeNummer")),
            id=episode_id,
            root_series_id=_clean_str(payload.get("rootSeries")),
        )


class JobStatus(str, Enum):
    OK = "ok"
    NO_QUALITIES = "no-qualities"
    NO_QUALITY_URL = "no-quality-url"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_skip(self) -> bool:
        return self in (JobStatus.NO_QUALITIES, JobStatus.NO_QUALITY_URL)


@dataclass
class JobResult:
    """Outcome of one identifier-level job, aggregated into the run summary."""

    id: str
    status: JobStatus
    title: Optional[str] = None
    output_path: Optional[str] = None
    error: Optional[str] = None

"""
Data Models Layer.

This package contains the catalog records, the validated configuration model
and the run summary used throughout the application.
"""

from .catalog import (
    EpisodeRef,
    JobResult,
    JobStatus,
    QualityVariant,
    SubtitleTrack,
    TitleInfo,
)
from .config import DownloadConfig
from .stats import RunSummary

__all__ = [
    "DownloadConfig",
    "EpisodeRef",
    "JobResult",
    "JobStatus",
    "QualityVariant",
    "RunSummary",
    "SubtitleTrack",
    "TitleInfo",
]

"""
Core application engine for orchestrating the download process.

The `DiscoveryCascade` turns series identifiers into episode identifiers,
the `DownloadManager` runs the bounded job pool, and each job is handed to
the `JobProcessor`.
"""

from .cancellation import CancellationToken, SigintGuard
from .discovery import DiscoveryCascade
from .download_manager import DownloadManager
from .job_processor import JobProcessor

__all__ = [
    "CancellationToken",
    "DiscoveryCascade",
    "DownloadManager",
    "JobProcessor",
    "SigintGuard",
]

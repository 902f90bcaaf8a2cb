"""
Manages the Rich progress display for concurrent stream downloads and keeps
stream counters for the end-of-run report.
"""

import asyncio
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


class ProgressManager:
    """
    One progress bar per active stream. Streams with an unknown size get an
    indeterminate (pulsing) bar. A disabled manager accepts every call and
    draws nothing, which is what dry runs and ``--progress none`` use.
    """

    MAX_DESCRIPTION = 50

    def __init__(self, console: Optional[Console] = None, enabled: bool = True):
        self.console = console or Console()
        self.enabled = enabled

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=24),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=self.console,
            transient=True,
        )

        self._stats = {
            "active_streams": 0,
            "peak_streams": 0,
            "streams_completed": 0,
            "streams_failed": 0,
            "bytes_downloaded": 0,
            "start_time": None,
        }
        self._active_tasks: set[TaskID] = set()

    def add_stream_task(self, description: str, total: Optional[int]) -> Optional[TaskID]:
        if not self.enabled:
            return None
        if len(description) > self.MAX_DESCRIPTION:
            description = description[: self.MAX_DESCRIPTION - 1] + "…"
        task_id = self.progress.add_task(description, total=total or None, start=True)
        self._active_tasks.add(task_id)
        self._stats["active_streams"] = len(self._active_tasks)
        self._stats["peak_streams"] = max(
            self._stats["peak_streams"], self._stats["active_streams"]
        )
        return task_id

    def update_task_progress(self, task_id: Optional[TaskID], completed: int) -> None:
        if task_id is not None and self.enabled:
            self.progress.update(task_id, completed=completed)

    def remove_task(
        self, task_id: Optional[TaskID], success: bool = True, size: int = 0
    ) -> None:
        if success:
            self._stats["streams_completed"] += 1
            self._stats["bytes_downloaded"] += size
        if task_id is None or not self.enabled:
            return
        if task_id in self._active_tasks:
            self._active_tasks.discard(task_id)
            self.progress.remove_task(task_id)
        self._stats["active_streams"] = len(self._active_tasks)

    def record_failed_stream(self) -> None:
        """Counts a stream the downloader gave up on after its last attempt."""
        self._stats["streams_failed"] += 1

    def get_statistics(self) -> dict:
        return self._stats.copy()

    async def __aenter__(self):
        self._stats["start_time"] = datetime.now()
        if self.enabled:
            self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.enabled:
            await asyncio.sleep(0.1)
            self.progress.stop()

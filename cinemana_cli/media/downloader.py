"""
Handles the low-level streaming of media files over HTTP with atomic writes
and exponential-backoff retry.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import aiofiles
import aiohttp

from cinemana_cli.cli.progress_manager import ProgressManager
from cinemana_cli.models.config import DEFAULT_USER_AGENT

log = logging.getLogger(__name__)

PART_SUFFIX = ".part"

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(
    max_workers: int = 4,
    timeout: float = 60.0,
    user_agent: str = DEFAULT_USER_AGENT,
) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for media streams.

    The timeout bounds connecting and every socket read, not the whole
    transfer, so long videos are not cut off while data keeps flowing.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_workers * 2,
            limit_per_host=max_workers * 2,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        _connection_pool = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(
                total=None, sock_connect=timeout, sock_read=timeout
            ),
            headers={"User-Agent": user_agent, "Accept": "*/*"},
        )
        log.debug(f"Created download pool with limit={max_workers * 2}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared downloader connection pool closed.")


def part_path_for(final_path: Path) -> Path:
    """The temporary sibling a stream is written to before being moved into place."""
    return final_path.with_name(final_path.name + PART_SUFFIX)


def _content_length(headers: Mapping[str, str]) -> Optional[int]:
    try:
        length = int(headers.get("Content-Length", ""))
    except (TypeError, ValueError):
        return None
    return length if length > 0 else None


class Downloader:
    """A streaming file downloader with retry logic and atomic publication."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        max_attempts: int = 4,
        base_delay: float = 0.8,
        max_delay: float = 4.0,
        progress_manager: Optional[ProgressManager] = None,
        session: Any = None,
        max_workers: int = 4,
        timeout: float = 60.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        """
        Args:
            max_attempts: Total attempts per stream (retries + 1).
            base_delay: Delay before the first retry; doubles on every attempt.
            max_delay: Upper bound for the retry delay.
            progress_manager: Optional progress display.
            session: An aiohttp-compatible session; the shared pool when omitted.
        """
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.progress_manager = progress_manager or ProgressManager(enabled=False)
        self._session = session
        self._pool_options = {
            "max_workers": max_workers,
            "timeout": timeout,
            "user_agent": user_agent,
        }

    async def _get_session(self):
        if self._session is not None:
            return self._session
        return await get_connection_pool(**self._pool_options)

    def _retry_delay(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)

    async def download_file(
        self,
        url: str,
        destination_path: Path,
        skip_existing: bool = True,
        overwrite: bool = False,
    ) -> bool:
        """
        Streams ``url`` to ``destination_path``.

        An existing file is kept when ``skip_existing`` is set and ``overwrite``
        is not; with ``overwrite`` it is removed first; otherwise it is replaced
        once the new copy is complete.

        Returns:
            True if the file was downloaded, False if an existing file was kept.
        """
        destination_path = Path(destination_path)
        if destination_path.exists():
            if overwrite:
                destination_path.unlink()
            elif skip_existing:
                log.info(
                    f"  [yellow]○ Skipping:[/] [dim]{destination_path.name}[/dim] (already exists)"
                )
                return False

        last_exception: Optional[BaseException] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._stream_to_file(url, destination_path)
                return True
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = e
                if attempt < self.max_attempts:
                    log.warning(
                        f"[yellow]Retry {attempt}/{self.max_attempts - 1} for "
                        f"'{destination_path.name}': {e or type(e).__name__}[/yellow]"
                    )
                    await asyncio.sleep(self._retry_delay(attempt))

        self.progress_manager.record_failed_stream()
        raise last_exception

    async def _stream_to_file(self, url: str, final_path: Path) -> None:
        """Writes the body to the ``.part`` sibling and renames it into place on success."""
        temp_path = part_path_for(final_path)
        temp_path.unlink(missing_ok=True)

        session = await self._get_session()
        task_id = None
        bytes_downloaded = 0
        completed = False
        try:
            async with session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                total_size = _content_length(response.headers)
                task_id = self.progress_manager.add_stream_task(final_path.name, total_size)

                async with aiofiles.open(temp_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
                        self.progress_manager.update_task_progress(
                            task_id, completed=bytes_downloaded
                        )

                encoded = response.headers.get("Content-Encoding")
                if total_size and not encoded and bytes_downloaded < total_size:
                    raise aiohttp.ClientPayloadError(
                        f"Stream ended after {bytes_downloaded} of {total_size} bytes"
                    )

            os.replace(temp_path, final_path)
            completed = True
        finally:
            if not completed:
                temp_path.unlink(missing_ok=True)
            self.progress_manager.remove_task(
                task_id, success=completed, size=bytes_downloaded
            )

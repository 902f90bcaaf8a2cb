import asyncio

import aiohttp
import pytest

from cinemana_cli.core.cancellation import CancellationToken
from cinemana_cli.core.download_manager import DownloadManager, read_ids_file
from cinemana_cli.exceptions import ConfigurationError, NoIdentifiersError
from cinemana_cli.models.catalog import JobResult, JobStatus
from cinemana_cli.models.config import DownloadConfig


class _TrackingProcessor:
    def __init__(self, delay: float = 0.01) -> None:
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.started: list[str] = []

    async def process(self, item_id: str) -> JobResult:
        self.started.append(item_id)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.active -= 1
        return JobResult(id=item_id, status=JobStatus.OK, title=item_id)


class _FlakyProcessor:
    def __init__(self, failures: dict[str, int]) -> None:
        self.failures = dict(failures)
        self.attempts: dict[str, int] = {}

    async def process(self, item_id: str) -> JobResult:
        self.attempts[item_id] = self.attempts.get(item_id, 0) + 1
        if self.failures.get(item_id, 0) > 0:
            self.failures[item_id] -= 1
            raise aiohttp.ClientConnectionError(f"reset while fetching {item_id}")
        return JobResult(id=item_id, status=JobStatus.OK)


class _FakeCascade:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    async def expand_from_episode(self, episode_id, seasons=None):
        self.calls.append(("from-video", episode_id, seasons))
        return ["e1", "e2"]

    async def expand_series(self, root_ids, seasons=None):
        self.calls.append(("series", list(root_ids), seasons))
        return ["e2", "s1"]


def _manager(config, processor, token=None, cascade=None) -> DownloadManager:
    return DownloadManager(
        config, None, processor, token, cascade or _FakeCascade(), job_retry_delay=0
    )


def test_pool_never_exceeds_worker_limit() -> None:
    config = DownloadConfig(max_workers=2)
    processor = _TrackingProcessor()
    summary = asyncio.run(_manager(config, processor).run([str(i) for i in range(7)]))

    assert processor.peak == 2
    assert summary.ok == 7
    assert summary.exit_code == 0


def test_jobs_start_in_submission_order() -> None:
    config = DownloadConfig(max_workers=1)
    processor = _TrackingProcessor(delay=0)
    asyncio.run(_manager(config, processor).run(["c", "a", "b"]))
    assert processor.started == ["c", "a", "b"]


def test_cancellation_drains_running_jobs_and_skips_queued() -> None:
    token = CancellationToken()

    class _CancellingProcessor(_TrackingProcessor):
        async def process(self, item_id):
            if item_id == "a":
                token.cancel("interrupted")
            return await super().process(item_id)

    config = DownloadConfig(max_workers=1)
    processor = _CancellingProcessor()
    summary = asyncio.run(_manager(config, processor, token).run(["a", "b", "c"]))

    assert processor.started == ["a"]
    assert [r.status for r in summary.results] == [
        JobStatus.OK,
        JobStatus.CANCELLED,
        JobStatus.CANCELLED,
    ]
    assert summary.not_run == 2
    assert summary.exit_code == 0


def test_job_is_retried_before_succeeding() -> None:
    config = DownloadConfig(job_retries=2)
    processor = _FlakyProcessor({"a": 2})
    summary = asyncio.run(_manager(config, processor).run(["a"]))

    assert summary.ok == 1
    assert processor.attempts["a"] == 3


def test_failure_is_isolated_to_its_job() -> None:
    config = DownloadConfig(job_retries=1)
    processor = _FlakyProcessor({"bad": 5})
    summary = asyncio.run(_manager(config, processor).run(["good", "bad", "other"]))

    assert processor.attempts["bad"] == 2
    assert summary.ok == 2
    assert summary.errors == 1
    failed = summary.failed_results[0]
    assert failed.id == "bad"
    assert "reset while fetching bad" in failed.error
    assert summary.exit_code == 1


def test_skips_are_counted_separately() -> None:
    class _SkippingProcessor:
        async def process(self, item_id):
            return JobResult(id=item_id, status=JobStatus.NO_QUALITIES)

    summary = asyncio.run(_manager(DownloadConfig(), _SkippingProcessor()).run(["a"]))
    assert summary.skipped == 1
    assert summary.exit_code == 0


def test_resolve_identifiers_merges_sources_in_order(tmp_path) -> None:
    ids_file = tmp_path / "ids.txt"
    ids_file.write_text("# queued\nf1\n\n  m1  \n", encoding="utf-8")
    config = DownloadConfig(
        movie_ids=["m1", "m2"],
        ids_file=str(ids_file),
        from_video_ids=["v1"],
        series_ids=["r1"],
        seasons=["1"],
    )
    cascade = _FakeCascade()
    ids = asyncio.run(_manager(config, None, cascade=cascade).resolve_identifiers())

    assert ids == ["m1", "m2", "f1", "e1", "e2", "s1"]
    assert cascade.calls == [
        ("from-video", "v1", ["1"]),
        ("series", ["r1"], ["1"]),
    ]


def test_no_identifiers_is_fatal() -> None:
    with pytest.raises(NoIdentifiersError):
        asyncio.run(_manager(DownloadConfig(), None).resolve_identifiers())


def test_unreadable_ids_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        read_ids_file(tmp_path / "missing.txt")

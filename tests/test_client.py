import asyncio
from typing import Any

import pytest

from cinemana_cli.api.client import CatalogClient
from cinemana_cli.exceptions import CatalogError


class _FakeResponse:
    def __init__(self, payload: Any) -> None:
        self._payload = payload

    def raise_for_status(self) -> None:
        return None

    async def json(self, content_type=None) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class _FakeSession:
    closed = False

    def __init__(self, payloads: dict[str, Any]) -> None:
        self.payloads = payloads
        self.requests: list[tuple[str, Any]] = []

    def get(self, url: str, params=None, allow_redirects: bool = True) -> _FakeResponse:
        self.requests.append((url, params))
        return _FakeResponse(self.payloads.get(url))


def _client(payloads: dict[str, Any], **kwargs) -> tuple[CatalogClient, _FakeSession]:
    client = CatalogClient("https://catalog.example/api/", **kwargs)
    session = _FakeSession(payloads)
    client._session = session
    return client, session


def test_base_url_is_required() -> None:
    with pytest.raises(CatalogError):
        CatalogClient("")


def test_fetch_video_info_and_qualities() -> None:
    base = "https://catalog.example/api/android"
    client, session = _client(
        {
            f"{base}/allVideoInfo/id/25006": {"en_title": "Sample", "kind": "1"},
            f"{base}/transcoddedFiles/id/25006": [
                {"name": "mp4-1080", "resolution": "1080p", "videoUrl": "https://x/v.mp4"},
                "junk",
            ],
        }
    )
    info = asyncio.run(client.fetch_video_info("25006"))
    qualities = asyncio.run(client.fetch_qualities("25006"))

    assert info.en_title == "Sample"
    assert [q.name for q in qualities] == ["mp4-1080"]
    assert session.requests[0][0] == f"{base}/allVideoInfo/id/25006"


def test_non_list_payloads_degrade_to_empty() -> None:
    client, _ = _client({})
    assert asyncio.run(client.fetch_qualities("1")) == []
    assert asyncio.run(client.fetch_video_season("1")) == []
    assert asyncio.run(client.fetch_video_groups("ar", "0")) == []
    assert asyncio.run(client.fetch_subtitles("1")) == []


def test_invalid_json_is_a_catalog_error() -> None:
    client, _ = _client(
        {"https://catalog.example/api/android/videoSeason/id/1": ValueError("bad json")}
    )
    with pytest.raises(CatalogError):
        asyncio.run(client.fetch_video_season("1"))


def test_series_episode_endpoint() -> None:
    client, session = _client(
        {},
        series_ep_endpoint="/android/seriesEpisodes/id/{seriesId}",
        series_ep_season_param="season",
    )
    asyncio.run(client.fetch_series_episodes("3293", "2"))

    assert client.supports_season_scoped_episodes
    assert session.requests[0][0] == (
        "https://catalog.example/api/android/seriesEpisodes/id/3293?season=2"
    )


def test_series_episode_endpoint_unconfigured() -> None:
    client, session = _client({})
    assert not client.supports_episode_endpoint
    assert asyncio.run(client.fetch_series_episodes("3293")) is None
    assert session.requests == []


def test_video_groups_payload() -> None:
    client, _ = _client(
        {
            "https://catalog.example/api/android/videoGroups/lang/ar/level/0": {
                "groups": [{"content": []}]
            }
        }
    )
    assert asyncio.run(client.fetch_video_groups("ar", "0")) == [{"content": []}]

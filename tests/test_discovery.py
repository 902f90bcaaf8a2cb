import asyncio
from typing import Any, Optional

import aiohttp

from cinemana_cli.core.discovery import (
    DiscoveryCascade,
    normalize_episode_items,
    normalize_season_items,
)
from cinemana_cli.exceptions import CatalogError
from cinemana_cli.storage.cache import DiscoveryCacheEntry, MemoryDiscoveryCache


def _item(nb: str, season: str, episode: str, root: str = "3293") -> dict[str, Any]:
    return {
        "nb": nb,
        "kind": "2",
        "season": season,
        "episodeNummer": episode,
        "rootSeries": root,
    }


class _FakeCatalogClient:
    def __init__(
        self,
        season_items: Optional[list[Any]] = None,
        season_error: bool = False,
        episodes: Optional[list[Any]] = None,
        groups: Optional[dict[tuple[str, str], list[Any]]] = None,
        failing_groups: tuple = (),
        episodes_by_season: Optional[dict[str, list[Any]]] = None,
    ) -> None:
        self.episodes_by_season = episodes_by_season
        self.season_items = season_items or []
        self.season_error = season_error
        self.episodes = episodes
        self.groups = groups or {}
        self.failing_groups = failing_groups
        self.season_calls: list[str] = []
        self.episode_calls: list[tuple[str, Optional[str]]] = []
        self.group_calls: list[tuple[str, str]] = []

    async def fetch_video_season(self, item_id: str) -> list[Any]:
        self.season_calls.append(item_id)
        if self.season_error:
            raise CatalogError("videoSeason unavailable")
        return list(self.season_items)

    @property
    def supports_episode_endpoint(self) -> bool:
        return self.episodes is not None or self.episodes_by_season is not None

    @property
    def supports_season_scoped_episodes(self) -> bool:
        return self.episodes_by_season is not None

    async def fetch_series_episodes(self, series_id: str, season: Optional[str] = None):
        self.episode_calls.append((series_id, season))
        if self.episodes_by_season is not None and season is not None:
            return self.episodes_by_season.get(season, [])
        return self.episodes

    async def fetch_video_groups(self, lang: str, level: str) -> list[Any]:
        self.group_calls.append((lang, level))
        if (lang, level) in self.failing_groups:
            raise aiohttp.ClientError("connection reset")
        return self.groups.get((lang, level), [])


def test_season_filter_keeps_only_requested_season() -> None:
    client = _FakeCatalogClient(
        season_items=[_item("202", "2", "1"), _item("101", "1", "1")]
    )
    cascade = DiscoveryCascade(client)
    assert asyncio.run(cascade.discover("3293", ["1"])) == ["101"]


def test_results_sorted_by_season_and_episode_and_deduplicated() -> None:
    client = _FakeCatalogClient(
        season_items=[
            _item("203", "2", "3"),
            _item("102", "1", "2"),
            _item("201", "2", "1"),
            _item("101", "1", "1"),
            _item("102", "1", "2"),
            {"nb": "999", "kind": "1", "season": "1", "episodeNummer": "1"},
        ]
    )
    cascade = DiscoveryCascade(client)
    assert asyncio.run(cascade.discover("3293")) == ["101", "102", "201", "203"]


def test_crawl_finds_identifier_once_across_pairs() -> None:
    content = [_item("555", "1", "1"), _item("777", "1", "1", root="other")]
    client = _FakeCatalogClient(
        season_error=True,
        groups={
            ("ar", "0"): [{"content": content}],
            ("en", "1"): [{"content": content}, {"content": "malformed"}],
        },
        failing_groups=(("en", "0"),),
    )
    cascade = DiscoveryCascade(client, langs=["ar", "en"], levels=["0", "1"])

    assert asyncio.run(cascade.discover("3293")) == ["555"]
    assert len(client.group_calls) == 4


def test_crawl_records_failed_pairs() -> None:
    client = _FakeCatalogClient(
        groups={("ar", "0"): [{"content": [_item("555", "1", "1")]}]},
        failing_groups=(("en", "0"),),
    )
    cascade = DiscoveryCascade(client, langs=["ar", "en"], levels=["0"])
    outcomes = asyncio.run(cascade.crawl_video_groups("3293"))

    assert [(o.lang, o.level, o.ok) for o in outcomes] == [
        ("ar", "0", True),
        ("en", "0", False),
    ]
    assert [r.id for r in outcomes[0].refs] == ["555"]
    assert "connection reset" in outcomes[1].error


def test_configured_endpoint_used_when_season_listing_empty() -> None:
    client = _FakeCatalogClient(
        episodes=[{"id": 12, "season": 1, "episodeNummer": 2}, {"nb": "11", "season": 1, "episodeNummer": 1}]
    )
    cascade = DiscoveryCascade(client)

    assert asyncio.run(cascade.discover("3293")) == ["11", "12"]
    assert client.episode_calls == [("3293", None)]
    assert client.group_calls == []


def test_season_scoped_endpoint_orders_bare_ids_by_season() -> None:
    client = _FakeCatalogClient(
        episodes_by_season={"1": ["s1e1", "s1e2"], "2": ["s2e1", "s2e2"]}
    )
    cascade = DiscoveryCascade(client)

    assert asyncio.run(cascade.discover("3293", ["2", "1"])) == [
        "s1e1",
        "s1e2",
        "s2e1",
        "s2e2",
    ]
    assert client.episode_calls == [("3293", "1"), ("3293", "2")]
    assert client.group_calls == []


def test_bare_ids_take_default_season() -> None:
    refs = normalize_episode_items(["5", {"id": "6", "episodeNummer": 2}], default_season=3)
    assert [(ref.season, ref.id) for ref in refs] == [(3, "5"), (3, "6")]


def test_cascade_is_idempotent_with_cache() -> None:
    client = _FakeCatalogClient(season_items=[_item("101", "1", "1"), _item("102", "1", "2")])
    cascade = DiscoveryCascade(client, cache=MemoryDiscoveryCache())

    first = asyncio.run(cascade.discover("3293"))
    second = asyncio.run(cascade.discover("3293"))

    assert first == second == ["101", "102"]
    assert client.season_calls == ["3293"]


def test_cache_entry_for_other_season_filter_is_not_reused() -> None:
    cache = MemoryDiscoveryCache()
    cache.put("3293", DiscoveryCacheEntry("3293", ["101"], seasons=["1"]))
    client = _FakeCatalogClient(season_items=[_item("101", "1", "1"), _item("201", "2", "1")])
    cascade = DiscoveryCascade(client, cache=cache)

    assert asyncio.run(cascade.discover("3293")) == ["101", "201"]
    assert client.season_calls == ["3293"]
    assert cache.get("3293").seasons is None


def test_empty_result_is_persisted_but_not_a_hit() -> None:
    cache = MemoryDiscoveryCache()
    client = _FakeCatalogClient()
    cascade = DiscoveryCascade(client, cache=cache, langs=["ar"], levels=["0"])

    assert asyncio.run(cascade.discover("3293")) == []
    assert cache.get("3293").episode_ids == []
    asyncio.run(cascade.discover("3293"))
    assert len(client.season_calls) == 2


def test_expand_from_episode_uses_season_listing_only() -> None:
    client = _FakeCatalogClient(season_items=[_item("102", "1", "2"), _item("101", "1", "1")])
    cascade = DiscoveryCascade(client, cache=MemoryDiscoveryCache())

    assert asyncio.run(cascade.expand_from_episode("102")) == ["101", "102"]
    assert client.season_calls == ["102"]
    assert cascade.cache.get("102") is None


def test_expand_from_episode_failure_yields_nothing() -> None:
    cascade = DiscoveryCascade(_FakeCatalogClient(season_error=True))
    assert asyncio.run(cascade.expand_from_episode("102")) == []


def test_expand_series_returns_order_preserving_union() -> None:
    client = _FakeCatalogClient(season_items=[_item("101", "1", "1")])
    cascade = DiscoveryCascade(client)
    assert asyncio.run(cascade.expand_series(["1", "2", "1"])) == ["101"]
    assert client.season_calls == ["1", "2"]


def test_normalize_episode_items_precedence_and_order() -> None:
    payload = [
        "7",
        {"id": 8, "nb": "x", "season": 1, "episodeNummer": 2},
        {"nb": "9", "season": 1, "episodeNummer": 1},
        {"id": "", "nb": "10", "season": 2, "episodeNummer": 1},
        {"nb": "8"},
        {"title": "no identifier"},
    ]
    assert [r.id for r in normalize_episode_items(payload)] == ["7", "9", "8", "10"]
    assert [r.id for r in normalize_episode_items(payload, ["2"])] == ["7", "8", "10"]
    assert normalize_episode_items({"episodes": []}) == []


def test_normalize_season_items_skips_non_series() -> None:
    items = [{"nb": "1", "kind": "1"}, _item("2", "1", "1"), "junk"]
    assert [r.id for r in normalize_season_items(items)] == ["2"]

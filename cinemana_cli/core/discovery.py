"""
Expands a series (or one of its episodes) into the ordered list of episode ids.

Three strategies are tried in order of reliability:

1. the catalog's season listing for the identifier,
2. an operator-configured episode-listing endpoint,
3. a crawl of the browse groups across every configured language and level.

Whatever strategy wins, the result is de-duplicated, sorted by
``(season, episode)`` and written to the discovery cache under the root id.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

import aiohttp

from cinemana_cli.api.client import CatalogClient
from cinemana_cli.exceptions import CatalogError
from cinemana_cli.models.catalog import SERIES_KIND, EpisodeRef
from cinemana_cli.storage.cache import DiscoveryCache, DiscoveryCacheEntry

log = logging.getLogger(__name__)

DISCOVERY_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, CatalogError)


def _season_key(value: Any) -> str:
    text = str(value if value is not None else "").strip()
    try:
        return str(int(text))
    except ValueError:
        return text


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _wants_season(season: Any, seasons: Optional[Sequence[str]]) -> bool:
    if not seasons:
        return True
    return _season_key(season) in {_season_key(s) for s in seasons}


def _ordered_unique_ids(refs: Iterable[EpisodeRef]) -> list[str]:
    return list(dict.fromkeys(ref.id for ref in sorted(refs)))


def normalize_season_items(
    items: Iterable[Any], seasons: Optional[Sequence[str]] = None
) -> list[EpisodeRef]:
    """Turns season-listing items into sorted refs, keeping series episodes only."""
    refs: dict[str, EpisodeRef] = {}
    for item in items or ():
        if not isinstance(item, dict) or str(item.get("kind") or "") != SERIES_KIND:
            continue
        if not _wants_season(item.get("season"), seasons):
            continue
        ref = EpisodeRef.from_api(item)
        if ref and ref.id not in refs:
            refs[ref.id] = ref
    return sorted(refs.values())


def normalize_episode_items(
    payload: Any,
    seasons: Optional[Sequence[str]] = None,
    default_season: int = 0,
) -> list[EpisodeRef]:
    """
    Normalizes an episode-listing payload into refs.

    Items may be bare identifiers or objects; for objects the identifier is
    taken from ``id``, then ``nb``. Objects exposing ``season`` /
    ``episodeNummer`` are ordered (and season-filtered) by them; bare values
    take ``default_season`` and keep their listed order within it.
    """
    if not isinstance(payload, list):
        return []

    refs: dict[str, EpisodeRef] = {}
    for item in payload:
        season, episode = default_season, 0
        if isinstance(item, dict):
            raw_id = item.get("id")
            if raw_id is None or str(raw_id).strip() == "":
                raw_id = item.get("nb")
            if "season" in item:
                if not _wants_season(item.get("season"), seasons):
                    continue
                season = _to_int(item.get("season"))
            episode = _to_int(item.get("episodeNummer"))
            root = item.get("rootSeries")
        else:
            raw_id, root = item, None

        if raw_id is None or isinstance(raw_id, (dict, list)):
            continue
        episode_id = str(raw_id).strip()
        if not episode_id or episode_id in refs:
            continue
        refs[episode_id] = EpisodeRef(
            season=season,
            episode=episode,
            id=episode_id,
            root_series_id=str(root) if root else None,
        )
    return sorted(refs.values())


@dataclass
class CrawlOutcome:
    """Result of one (language, level) browse query during the crawl."""

    lang: str
    level: str
    refs: list[EpisodeRef] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DiscoveryCascade:
    """Resolves root identifiers into ordered episode identifiers, with caching."""

    def __init__(
        self,
        api_client: CatalogClient,
        cache: Optional[DiscoveryCache] = None,
        langs: Sequence[str] = ("ar", "en"),
        levels: Sequence[str] = ("0", "1", "2", "3"),
    ):
        """
        Args:
            api_client: Catalog client used by every strategy.
            cache: Discovery cache; ``None`` bypasses caching entirely.
            langs: Browse languages crawled by the last-resort strategy.
            levels: Browse levels crawled by the last-resort strategy.
        """
        self.api_client = api_client
        self.cache = cache
        self.langs = list(langs)
        self.levels = list(levels)

    async def expand_series(
        self, root_ids: Iterable[str], seasons: Optional[Sequence[str]] = None
    ) -> list[str]:
        """Discovers several series and returns the order-preserving union."""
        out: list[str] = []
        for root_id in dict.fromkeys(str(r) for r in root_ids):
            out.extend(await self.discover(root_id, seasons))
        return list(dict.fromkeys(out))

    async def expand_from_episode(
        self, episode_id: str, seasons: Optional[Sequence[str]] = None
    ) -> list[str]:
        """Expands one episode into its whole series using the season listing only."""
        try:
            refs = await self._via_season_listing(episode_id, seasons)
        except DISCOVERY_ERRORS as e:
            log.warning(
                f"[yellow]Season listing failed for episode {episode_id}: {e}[/yellow]"
            )
            return []
        if not refs:
            log.warning(
                f"[yellow]No episodes discovered for starting episode {episode_id}.[/yellow]"
            )
            return []
        log.info(f"From episode {episode_id}: discovered {len(refs)} episode(s).")
        return _ordered_unique_ids(refs)

    async def discover(
        self, root_id: str, seasons: Optional[Sequence[str]] = None
    ) -> list[str]:
        """Runs the cascade for a single root identifier."""
        root_id = str(root_id)
        season_filter = [str(s) for s in seasons] if seasons else None

        if self.cache is not None:
            entry = self.cache.get(root_id)
            if entry and entry.episode_ids and entry.matches(season_filter):
                log.info(
                    f"Using cache for series {root_id} -> {len(entry.episode_ids)} episode(s)."
                )
                return list(entry.episode_ids)

        strategies = (
            ("season listing", self._via_season_listing),
            ("configured endpoint", self._via_episode_endpoint),
            ("group crawl", self._via_video_groups),
        )
        episode_ids: list[str] = []
        for name, strategy in strategies:
            try:
                refs = await strategy(root_id, season_filter)
            except DISCOVERY_ERRORS as e:
                log.debug(f"Discovery via {name} failed for series {root_id}: {e}")
                continue
            if refs:
                episode_ids = _ordered_unique_ids(refs)
                log.info(
                    f"Discovered {len(episode_ids)} episode(s) for series {root_id} via {name}."
                )
                break

        if not episode_ids:
            log.warning(f"[yellow]No episodes discovered for series {root_id}.[/yellow]")

        if self.cache is not None:
            self.cache.put(
                root_id,
                DiscoveryCacheEntry(
                    root_id=root_id, episode_ids=episode_ids, seasons=season_filter
                ),
            )
        return episode_ids

    async def _via_season_listing(
        self, item_id: str, seasons: Optional[Sequence[str]]
    ) -> list[EpisodeRef]:
        items = await self.api_client.fetch_video_season(item_id)
        return normalize_season_items(items, seasons)

    async def _via_episode_endpoint(
        self, series_id: str, seasons: Optional[Sequence[str]]
    ) -> list[EpisodeRef]:
        if not self.api_client.supports_episode_endpoint:
            return []

        if seasons and self.api_client.supports_season_scoped_episodes:
            ordered = sorted(seasons, key=lambda s: (_to_int(s), _season_key(s)))
            payloads = [
                (
                    await self.api_client.fetch_series_episodes(series_id, season),
                    _to_int(season),
                )
                for season in ordered
            ]
        else:
            payloads = [(await self.api_client.fetch_series_episodes(series_id), 0)]

        refs: dict[str, EpisodeRef] = {}
        for payload, default_season in payloads:
            for ref in normalize_episode_items(payload, seasons, default_season):
                refs.setdefault(ref.id, ref)
        return sorted(refs.values())

    async def crawl_video_groups(
        self, series_id: str, seasons: Optional[Sequence[str]] = None
    ) -> list[CrawlOutcome]:
        """
        Queries every (language, level) browse listing for episodes of
        ``series_id``. A failing query is recorded in its outcome and the
        crawl carries on with the remaining pairs.
        """
        outcomes = []
        for lang in self.langs:
            for level in self.levels:
                outcome = CrawlOutcome(lang=lang, level=level)
                try:
                    groups = await self.api_client.fetch_video_groups(lang, level)
                except DISCOVERY_ERRORS as e:
                    outcome.error = str(e) or type(e).__name__
                    log.debug(
                        f"videoGroups failed for lang={lang} level={level}: {outcome.error}"
                    )
                else:
                    outcome.refs = self._match_group_content(groups, series_id, seasons)
                outcomes.append(outcome)
        return outcomes

    @staticmethod
    def _match_group_content(
        groups: list[Any], series_id: str, seasons: Optional[Sequence[str]]
    ) -> list[EpisodeRef]:
        matches = []
        for group in groups:
            content = group.get("content") if isinstance(group, dict) else None
            for item in content or ():
                if not isinstance(item, dict):
                    continue
                if str(item.get("kind") or "") != SERIES_KIND:
                    continue
                if str(item.get("rootSeries") or "") != str(series_id):
                    continue
                if not _wants_season(item.get("season"), seasons):
                    continue
                if ref := EpisodeRef.from_api(item):
                    matches.append(ref)
        return matches

    async def _via_video_groups(
        self, series_id: str, seasons: Optional[Sequence[str]]
    ) -> list[EpisodeRef]:
        outcomes = await self.crawl_video_groups(series_id, seasons)
        failed = [o for o in outcomes if not o.ok]
        if failed:
            log.debug(
                f"Group crawl for series {series_id}: {len(failed)}/{len(outcomes)} "
                "queries failed."
            )

        found: dict[str, EpisodeRef] = {}
        for outcome in outcomes:
            for ref in outcome.refs:
                found.setdefault(ref.id, ref)
        return sorted(found.values())

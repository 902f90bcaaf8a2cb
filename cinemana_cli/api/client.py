"""
Async client for the read-only Cinemana catalog endpoints.
"""

import logging
import time
from typing import Any, Optional
from urllib.parse import quote, urlencode

import aiohttp

from cinemana_cli.exceptions import CatalogError
from cinemana_cli.models.catalog import QualityVariant, SubtitleTrack, TitleInfo
from cinemana_cli.models.config import DEFAULT_USER_AGENT
from cinemana_cli.utils.subtitles import parse_subtitle_tracks

log = logging.getLogger(__name__)


class CatalogClient:
    """
    Typed accessors over the catalog API.

    All endpoints are unauthenticated GETs returning JSON. Payload shapes are
    loose, so list endpoints degrade to ``[]`` instead of failing on a
    non-list body; transport errors propagate to the caller's retry policy.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        user_agent: str = DEFAULT_USER_AGENT,
        max_workers: int = 4,
        series_ep_endpoint: Optional[str] = None,
        series_ep_season_param: Optional[str] = None,
    ):
        """
        Initializes the API client.

        Args:
            base_url: API root, e.g. ``https://cinemana.shabakaty.com/api``.
            timeout: Per-request timeout in seconds.
            user_agent: User-Agent header sent with every request.
            max_workers: The number of concurrent workers, used to tune the connection pool.
            series_ep_endpoint: Optional episode-listing template containing ``{seriesId}``.
            series_ep_season_param: Query parameter name for season-scoped episode listings.
        """
        if not base_url:
            raise CatalogError("No catalog base URL configured (set BASE_URL or --base-url).")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.user_agent = user_agent
        self.max_workers = max_workers
        self.series_ep_endpoint = series_ep_endpoint
        self.series_ep_season_param = series_ep_season_param
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_workers * 2,
                limit_per_host=self.max_workers,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json, text/plain, */*",
                },
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def api_call(self, path: str, **params: Any) -> Any:
        """Performs a GET against the catalog and returns the decoded JSON body."""
        await self._initialize_session()
        url = self._build_url(path)
        start_time = time.monotonic()
        try:
            async with self._session.get(
                url, params=params or None, allow_redirects=True
            ) as r:
                r.raise_for_status()
                try:
                    data = await r.json(content_type=None)
                except ValueError as e:
                    raise CatalogError(f"Catalog returned invalid JSON for {path}: {e}") from e
        except Exception as e:
            log.debug(f"Catalog call to {path} failed: {e}")
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        log.debug(f"Catalog call to {path} took {duration_ms:.0f} ms")
        return data

    async def _get_list(self, path: str, **params: Any) -> list[Any]:
        data = await self.api_call(path, **params)
        return data if isinstance(data, list) else []

    # Public API Methods
    async def fetch_video_info(self, item_id: str) -> TitleInfo:
        data = await self.api_call(f"/android/allVideoInfo/id/{quote(str(item_id))}")
        return TitleInfo.from_api(item_id, data)

    async def fetch_qualities(self, item_id: str) -> list[QualityVariant]:
        items = await self._get_list(f"/android/transcoddedFiles/id/{quote(str(item_id))}")
        return [QualityVariant.from_api(q) for q in items if isinstance(q, dict)]

    async def fetch_subtitles(self, item_id: str) -> list[SubtitleTrack]:
        data = await self.api_call(f"/android/translationFiles/id/{quote(str(item_id))}")
        return parse_subtitle_tracks(data)

    async def fetch_video_season(self, item_id: str) -> list[Any]:
        return await self._get_list(f"/android/videoSeason/id/{quote(str(item_id))}")

    @property
    def supports_episode_endpoint(self) -> bool:
        return bool(self.series_ep_endpoint)

    @property
    def supports_season_scoped_episodes(self) -> bool:
        return bool(self.series_ep_endpoint and self.series_ep_season_param)

    async def fetch_series_episodes(
        self, series_id: str, season: Optional[str] = None
    ) -> Optional[Any]:
        """
        Queries the configured episode-listing endpoint. Returns ``None`` when no
        endpoint is configured; the payload shape is left for the caller to normalize.
        """
        if not self.series_ep_endpoint:
            return None
        path = self.series_ep_endpoint.replace("{seriesId}", quote(str(series_id), safe=""))
        if self.series_ep_season_param and season:
            separator = "&" if "?" in path else "?"
            path += separator + urlencode({self.series_ep_season_param: str(season)})
        return await self.api_call(path)

    async def fetch_video_groups(self, lang: str, level: str) -> list[Any]:
        data = await self.api_call(
            f"/android/videoGroups/lang/{quote(str(lang))}/level/{quote(str(level))}"
        )
        groups = data.get("groups") if isinstance(data, dict) else None
        return groups if isinstance(groups, list) else []

"""
Series discovery cache.

The cascade talks to a small ``get``/``put`` interface so the backing store
(a JSON file on disk, a plain dict in tests) can be swapped freely. Entries
never expire by time; only an explicit bypass or ``clear()`` discards them.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

log = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class DiscoveryCacheEntry:
    root_id: str
    episode_ids: list[str]
    seasons: Optional[list[str]] = None
    updated_at: str = field(default_factory=_utc_now_iso)

    def matches(self, seasons: Optional[list[str]]) -> bool:
        """True when the entry was produced with the same season filter."""
        return sorted(self.seasons or []) == sorted(seasons or [])

    def to_json(self) -> dict[str, Any]:
        return {
            "updatedAt": self.updated_at,
            "episodes": list(self.episode_ids),
            "seasons": list(self.seasons) if self.seasons else None,
        }

    @classmethod
    def from_json(cls, root_id: str, data: Any) -> Optional["DiscoveryCacheEntry"]:
        if not isinstance(data, dict) or not isinstance(data.get("episodes"), list):
            return None
        seasons = data.get("seasons")
        return cls(
            root_id=root_id,
            episode_ids=[str(e) for e in data["episodes"]],
            seasons=[str(s) for s in seasons] if isinstance(seasons, list) else None,
            updated_at=str(data.get("updatedAt") or ""),
        )


class DiscoveryCache(Protocol):
    def get(self, root_id: str) -> Optional[DiscoveryCacheEntry]: ...

    def put(self, root_id: str, entry: DiscoveryCacheEntry) -> None: ...


class MemoryDiscoveryCache:
    """Process-local cache, mostly useful for tests and one-off runs."""

    def __init__(self) -> None:
        self._entries: dict[str, DiscoveryCacheEntry] = {}

    def get(self, root_id: str) -> Optional[DiscoveryCacheEntry]:
        return self._entries.get(str(root_id))

    def put(self, root_id: str, entry: DiscoveryCacheEntry) -> None:
        self._entries[str(root_id)] = entry

    def clear(self) -> bool:
        self._entries.clear()
        return True


class JsonFileDiscoveryCache:
    """
    Keeps every series in one human-readable JSON document:
    ``{"series": {"<rootId>": {"updatedAt", "episodes", "seasons"}}}``.

    The file is loaded once on construction (a missing or corrupt file is an
    empty cache) and rewritten atomically on every ``put``.
    """

    def __init__(self, cache_path: Path):
        self.cache_path = Path(cache_path)
        self._entries: dict[str, DiscoveryCacheEntry] = self._load()

    def _load(self) -> dict[str, DiscoveryCacheEntry]:
        if not self.cache_path.is_file():
            return {}
        try:
            with open(self.cache_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            log.debug(f"Discovery cache at '{self.cache_path}' is unreadable: {e}")
            return {}

        series = data.get("series") if isinstance(data, dict) else None
        if not isinstance(series, dict):
            log.debug(f"Discovery cache at '{self.cache_path}' has no series map.")
            return {}
        entries = {}
        for root_id, raw in series.items():
            if entry := DiscoveryCacheEntry.from_json(str(root_id), raw):
                entries[str(root_id)] = entry
        log.debug(f"Loaded {len(entries)} cached series from '{self.cache_path}'.")
        return entries

    def get(self, root_id: str) -> Optional[DiscoveryCacheEntry]:
        return self._entries.get(str(root_id))

    def put(self, root_id: str, entry: DiscoveryCacheEntry) -> None:
        self._entries[str(root_id)] = entry
        self.save()

    def save(self) -> bool:
        payload = {
            "series": {root_id: e.to_json() for root_id, e in self._entries.items()}
        }
        tmp_path = self.cache_path.with_name(self.cache_path.name + ".tmp")
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.cache_path)
            return True
        except OSError as e:
            log.warning(f"Discovery cache write failed for '{self.cache_path}': {e}")
            return False

    def clear(self) -> bool:
        """Removes every cached series, deleting the backing file."""
        log.info("Clearing discovery cache...")
        self._entries.clear()
        try:
            self.cache_path.unlink(missing_ok=True)
            return True
        except OSError as e:
            log.error(f"Failed to clear cache: {e}")
            return False

    def __len__(self) -> int:
        return len(self._entries)

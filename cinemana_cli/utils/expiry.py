"""
Helpers for the time-limited media links handed out by the catalog.
"""

import time
from typing import Optional
from urllib.parse import parse_qs, urlparse


def parse_expiry_epoch(url: str) -> Optional[int]:
    """Reads the ``Expires`` query parameter (unix seconds) from a signed URL."""
    try:
        values = parse_qs(urlparse(url).query).get("Expires")
        return int(values[0]) if values else None
    except (ValueError, TypeError):
        return None


def minutes_until_expiry(epoch: int, now: Optional[float] = None) -> int:
    now = time.time() if now is None else now
    return max(0, round((epoch - int(now)) / 60))


def is_expiring_soon(
    epoch: Optional[int], threshold_minutes: int = 10, now: Optional[float] = None
) -> bool:
    if not epoch:
        return False
    now = time.time() if now is None else now
    return epoch - int(now) <= threshold_minutes * 60

"""
Chooses one encoding variant among those the catalog offers.
"""

import re
from typing import Optional, Sequence

from cinemana_cli.models.catalog import QualityVariant

_RESOLUTION_RE = re.compile(r"(\d+)\s*p", re.IGNORECASE)
UNPARSED_RESOLUTION = -1


def parse_resolution(label: Optional[str]) -> int:
    """'1080p' -> 1080; anything unparsable ranks below every parsed value."""
    match = _RESOLUTION_RE.search(label or "")
    return int(match.group(1)) if match else UNPARSED_RESOLUTION


def pick_quality(
    qualities: Sequence[QualityVariant], preferred_name: str
) -> Optional[QualityVariant]:
    """
    Returns the variant named exactly ``preferred_name``; otherwise the one
    with the highest parsed resolution, the last of any tie winning.
    """
    if not qualities:
        return None

    for variant in qualities:
        if variant.name == preferred_name:
            return variant

    best = qualities[0]
    for variant in qualities[1:]:
        if parse_resolution(variant.resolution) >= parse_resolution(best.resolution):
            best = variant
    return best

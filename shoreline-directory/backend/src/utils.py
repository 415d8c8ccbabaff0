"""Utility helpers for the shoreline restaurant directory."""

from __future__ import annotations

import math
from typing import Any, Iterable, Optional, Tuple

EARTH_RADIUS_MILES = 3959.0
FEET_PER_MILE = 5280


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}...{value[-visible:]}"


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in miles."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    # rounding can push a a hair past 1 for antipodal points
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def format_distance(miles: float) -> str:
    """Human label for a distance: feet under 0.1 mi, one decimal under 10 mi, whole miles beyond."""
    if miles < 0.1:
        return f"{round(miles * FEET_PER_MILE)} ft"
    tenths = round(miles, 1)
    if tenths < 10:
        return f"{tenths:.1f} mi"
    return f"{round(miles)} mi"


def normalize_name(name: str) -> str:
    return " ".join(name.split()).casefold()


def as_category_list(value: Any) -> Tuple[str, ...]:
    """Normalize a raw category/cuisine value (string, list or missing) to a tuple of strings."""
    if value is None:
        return ()
    if isinstance(value, str):
        s = value.strip()
        return (s,) if s else ()
    if isinstance(value, (list, tuple)):
        out: list[str] = []
        for item in value:
            if item is None:
                continue
            s = str(item).strip()
            if s and s not in out:
                out.append(s)
        return tuple(out)
    s = str(value).strip()
    return (s,) if s else ()


def format_category(categories: Iterable[str]) -> str:
    return " & ".join(categories)


def parse_coordinate(value: Any) -> Optional[float]:
    # 0 is treated as missing, as the site guards with `lat && lng`
    if isinstance(value, bool) or value is None:
        return None
    try:
        coord = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(coord) or coord == 0.0:
        return None
    return coord

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from models import RankedResult
from utils import format_category, format_distance

DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"


class EmptyState(str, Enum):
    NO_MATCHES = "no_matches"
    NO_DATA = "no_data"
    NO_LOCATION_DATA = "no_location_data"


_EMPTY_COPY: Dict[EmptyState, Dict[str, str]] = {
    EmptyState.NO_MATCHES: {
        "title": "No restaurants found",
        "message": "Try a different category or search term.",
    },
    EmptyState.NO_DATA: {
        "title": "No restaurants yet",
        "message": "Check back soon! We're adding restaurants for this area.",
    },
    EmptyState.NO_LOCATION_DATA: {
        "title": "No restaurants nearby",
        "message": "No restaurants found with location data.",
    },
}


def empty_state(kind: EmptyState) -> Dict[str, str]:
    return {"kind": kind.value, **_EMPTY_COPY[kind]}


def directions_url(result: RankedResult) -> Optional[str]:
    place = result.restaurant
    if not place.has_coordinates:
        return None
    return DIRECTIONS_URL.format(lat=place.lat, lng=place.lng)


def card_view(result: RankedResult, *, always_show_phone: bool = False) -> Dict[str, Any]:
    """Display fields for one card.

    Phone numbers are listed only for Featured and Premium restaurants unless
    the caller is a per-town page that shows every number.
    """
    place = result.restaurant
    show_phone = always_show_phone or result.show_phone
    distance = result.distance_miles
    return {
        "name": place.name,
        "town": place.town,
        "category": format_category(place.categories),
        "categories": list(place.categories),
        "address": place.address,
        "phone": place.phone if show_phone else None,
        "website": result.resolved_website,
        "image": place.image,
        "dark_bg": place.dark_bg,
        "lat": place.lat,
        "lng": place.lng,
        "badge": result.badge.value if result.badge else None,
        "tier": result.tier.value,
        "is_featured": result.is_featured,
        "is_enhanced": result.is_enhanced,
        "distance_miles": round(distance, 3) if distance is not None else None,
        "distance_label": format_distance(distance) if distance is not None else None,
        "directions_url": directions_url(result),
    }


def card_views(results: List[RankedResult], *, always_show_phone: bool = False) -> List[Dict[str, Any]]:
    return [card_view(r, always_show_phone=always_show_phone) for r in results]

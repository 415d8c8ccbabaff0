from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from models import DirectoryData, GeoPosition, RankedResult
from services.ranking import (
    ALL_CATEGORIES,
    CategoryMode,
    RankQuery,
    Shelf,
    decorate,
    rank,
    shelve,
)
from services.tiers import BadgePolicy, FeaturedIndex, SortPolicy
from utils import format_category

FEATURED_SHELF_SIZE = 2


@dataclass
class NearMeResult:
    featured_shelf: List[RankedResult] = field(default_factory=list)
    results: List[RankedResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)


@dataclass
class TownListing:
    town: str
    featured: List[RankedResult] = field(default_factory=list)
    results: List[RankedResult] = field(default_factory=list)


@dataclass
class TownPage:
    town: str
    category: str
    categories: Tuple[str, ...] = ()
    results: List[RankedResult] = field(default_factory=list)


def near_me(
    data: DirectoryData,
    featured: FeaturedIndex,
    position: GeoPosition,
    *,
    radius_miles: Optional[float] = None,
    shelf_size: int = FEATURED_SHELF_SIZE,
) -> NearMeResult:
    """Nearest featured restaurants on a shelf plus every located restaurant by distance."""
    # shelf cards are always badged Featured
    nearest_featured = rank(
        data.featured,
        featured,
        RankQuery(
            user_location=position,
            radius_miles=radius_miles,
            badge_policy=BadgePolicy.FEATURED_OVER_PREMIUM,
        ),
    )
    everything = rank(data.all, featured, RankQuery(user_location=position, radius_miles=radius_miles))
    shelf: Shelf = shelve(nearest_featured, shelf_size)
    return NearMeResult(featured_shelf=shelf.shelf, results=everything)


def town_listing(data: DirectoryData, featured: FeaturedIndex, town: str) -> TownListing:
    """Manual fallback for when the user's location can't be found."""
    town_featured = [f for f in data.featured if f.town == town]
    return TownListing(
        town=town,
        featured=decorate(town_featured, featured),
        results=rank(data.all, featured, RankQuery(town=town, sort_policy=SortPolicy.FEATURED_FIRST)),
    )


def search(
    data: DirectoryData,
    featured: FeaturedIndex,
    text: Optional[str],
    *,
    limit: Optional[int] = None,
) -> List[RankedResult]:
    """Homepage search. A blank query shows the featured list in its curated order."""
    if not text or not text.strip():
        results = decorate(data.featured, featured)
        return results[:limit] if limit is not None else results
    return rank(
        data.all,
        featured,
        RankQuery(
            text=text,
            sort_policy=SortPolicy.BADGE_ORDER,
            badge_policy=BadgePolicy.PREMIUM_OVER_FEATURED,
            limit=limit,
        ),
    )


def town_page(
    data: DirectoryData,
    featured: FeaturedIndex,
    town: str,
    category: Optional[str] = None,
) -> TownPage:
    category = category or ALL_CATEGORIES
    policy = SortPolicy.PREMIUM_ONLY if category == ALL_CATEGORIES else SortPolicy.CATEGORY_TAB
    results = rank(
        data.all,
        featured,
        RankQuery(town=town, category=category, category_mode=CategoryMode.TAB, sort_policy=policy),
    )
    return TownPage(
        town=town,
        category=category,
        categories=data.categories.get(town, ()),
        results=results,
    )


def map_markers(results: List[RankedResult]) -> List[Dict[str, Any]]:
    """Plain marker tuples for the map widget; records without coordinates are left off."""
    markers: list[dict[str, Any]] = []
    for r in results:
        place = r.restaurant
        if not place.has_coordinates:
            continue
        markers.append(
            {
                "name": place.name,
                "lat": place.lat,
                "lng": place.lng,
                "category": format_category(place.categories),
                "town": place.town,
                "tier": r.tier.value,
                "website": r.resolved_website,
                "phone": place.phone,
                "address": place.address,
            }
        )
    return markers

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from models import GeoPosition, RankedResult, Restaurant
from services.tiers import BadgePolicy, FeaturedIndex, SortPolicy, classify, tier_score
from utils import haversine_miles

ALL_CATEGORIES = "All"


class CategoryMode(str, Enum):
    # free-text search box: case-insensitive substring against any tag
    SEARCH = "search"
    # category tabs: exact tag membership, "All" disables the filter
    TAB = "tab"


@dataclass
class RankQuery:
    text: Optional[str] = None
    town: Optional[str] = None
    category: Optional[str] = None
    category_mode: CategoryMode = CategoryMode.SEARCH
    user_location: Optional[GeoPosition] = None
    radius_miles: Optional[float] = None
    sort_policy: SortPolicy = SortPolicy.FEATURED_FIRST
    badge_policy: BadgePolicy = BadgePolicy.PREMIUM_OVER_FEATURED
    limit: Optional[int] = None


@dataclass
class Shelf:
    shelf: List[RankedResult] = field(default_factory=list)
    results: List[RankedResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)


def collation_key(name: str) -> Tuple[str, str]:
    """Alphabetical key that ignores case and accents first, then puts lowercase before uppercase."""
    decomposed = unicodedata.normalize("NFKD", name)
    primary = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return (primary, name.swapcase())


def matches_category(categories: Sequence[str], wanted: str, mode: CategoryMode) -> bool:
    if mode is CategoryMode.TAB:
        if wanted == ALL_CATEGORIES:
            return True
        return wanted in categories
    needle = wanted.strip().lower()
    if not needle:
        return True
    return any(needle in c.lower() for c in categories)


def matches_text(restaurant: Restaurant, text: str) -> bool:
    needle = text.strip().lower()
    if not needle:
        return True
    if needle in restaurant.name.lower() or needle in restaurant.town.lower():
        return True
    return any(needle in c.lower() for c in restaurant.categories)


def _decorate(
    restaurant: Restaurant,
    featured: FeaturedIndex,
    sort_policy: SortPolicy,
    badge_policy: BadgePolicy,
    distance: Optional[float] = None,
) -> RankedResult:
    tiering = classify(restaurant, featured, sort_policy=sort_policy, badge_policy=badge_policy)
    return RankedResult(
        restaurant=restaurant,
        is_featured=tiering.is_featured,
        is_enhanced=tiering.is_enhanced,
        tier=tiering.display_tier,
        badge=tiering.badge,
        resolved_website=tiering.resolved_website,
        distance_miles=distance,
    )


def decorate(
    restaurants: Iterable[Restaurant],
    featured: FeaturedIndex,
    *,
    sort_policy: SortPolicy = SortPolicy.FEATURED_FIRST,
    badge_policy: BadgePolicy = BadgePolicy.PREMIUM_OVER_FEATURED,
) -> List[RankedResult]:
    """Classify records without filtering or reordering them."""
    return [_decorate(r, featured, SortPolicy(sort_policy), BadgePolicy(badge_policy)) for r in restaurants]


def rank(
    restaurants: Iterable[Restaurant],
    featured: FeaturedIndex,
    query: Optional[RankQuery] = None,
) -> List[RankedResult]:
    """Filter, decorate and order restaurants for one view.

    Pure: the input records are never modified and nothing is cached between
    calls, so a changed user location is always honoured.
    """
    query = query or RankQuery()
    mode = CategoryMode(query.category_mode)
    sort_policy = SortPolicy(query.sort_policy)
    badge_policy = BadgePolicy(query.badge_policy)
    loc = query.user_location
    if query.radius_miles is not None and query.radius_miles < 0:
        raise ValueError("radius_miles must be >= 0")

    ranked: list[RankedResult] = []
    for restaurant in restaurants:
        if query.town and restaurant.town != query.town:
            continue
        if query.category and not matches_category(restaurant.categories, query.category, mode):
            continue
        if query.text and not matches_text(restaurant, query.text):
            continue

        distance: Optional[float] = None
        if loc is not None:
            if not restaurant.has_coordinates:
                continue
            distance = haversine_miles(loc.latitude, loc.longitude, restaurant.lat, restaurant.lng)
            if query.radius_miles is not None and distance > query.radius_miles:
                continue

        ranked.append(_decorate(restaurant, featured, sort_policy, badge_policy, distance))

    if loc is not None:
        ranked.sort(key=lambda r: r.distance_miles)
    else:
        ranked.sort(
            key=lambda r: (
                tuple(-s for s in tier_score(r.is_featured, r.is_enhanced, sort_policy)),
                collation_key(r.name),
            )
        )

    if query.limit is not None:
        ranked = ranked[: max(0, query.limit)]
    return ranked


def shelve(
    results: List[RankedResult],
    size: int,
    predicate: Optional[Callable[[RankedResult], bool]] = None,
) -> Shelf:
    """Pick a small shelf off the front of a ranked list; the full list is kept whole."""
    picked = [r for r in results if predicate is None or predicate(r)]
    return Shelf(shelf=picked[: max(0, size)], results=list(results))

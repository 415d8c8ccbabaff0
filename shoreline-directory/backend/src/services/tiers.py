"""Featured / Premium / Regular classification.

Badge precedence and sort precedence are separate policies because the site
uses different orders in different places: the per-list cards badge Premium
over Featured, while the homepage search and the town tabs each sort their own
way. Call sites pick both explicitly.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from models import Classification, FeaturedEntry, Restaurant, Tier
from utils import normalize_name


class SortPolicy(str, Enum):
    FEATURED_FIRST = "featured_first"
    PREMIUM_FIRST = "premium_first"
    # homepage search: rank by the badge shown, Featured-only above Premium
    BADGE_ORDER = "badge_order"
    # town page "All" tab: only Premium is lifted
    PREMIUM_ONLY = "premium_only"
    # town page category tabs: Featured > Premium > Regular, featured+premium ties featured-only
    CATEGORY_TAB = "category_tab"


class BadgePolicy(str, Enum):
    PREMIUM_OVER_FEATURED = "premium_over_featured"
    FEATURED_OVER_PREMIUM = "featured_over_premium"


class NameMatch(str, Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"


class FeaturedIndex:
    """Name lookup into the curated featured list."""

    def __init__(self, featured: Iterable[FeaturedEntry], mode: NameMatch = NameMatch.NORMALIZED) -> None:
        self.mode = NameMatch(mode)
        self._by_key: Dict[str, FeaturedEntry] = {}
        for entry in featured:
            # first entry wins on duplicate names
            self._by_key.setdefault(self._key(entry.name), entry)

    def _key(self, name: str) -> str:
        if self.mode is NameMatch.EXACT:
            return name
        return normalize_name(name)

    def get(self, name: str) -> Optional[FeaturedEntry]:
        return self._by_key.get(self._key(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)


def badge_for(is_featured: bool, is_enhanced: bool, policy: BadgePolicy = BadgePolicy.PREMIUM_OVER_FEATURED) -> Optional[Tier]:
    if policy is BadgePolicy.FEATURED_OVER_PREMIUM:
        if is_featured:
            return Tier.FEATURED
        if is_enhanced:
            return Tier.PREMIUM
        return None
    if is_enhanced:
        return Tier.PREMIUM
    if is_featured:
        return Tier.FEATURED
    return None


def display_tier_for(is_featured: bool, is_enhanced: bool, policy: SortPolicy = SortPolicy.FEATURED_FIRST) -> Tier:
    if policy in (SortPolicy.PREMIUM_FIRST, SortPolicy.BADGE_ORDER):
        if is_enhanced:
            return Tier.PREMIUM
        if is_featured:
            return Tier.FEATURED
        return Tier.REGULAR
    if is_featured:
        return Tier.FEATURED
    if is_enhanced:
        return Tier.PREMIUM
    return Tier.REGULAR


def tier_score(is_featured: bool, is_enhanced: bool, policy: SortPolicy = SortPolicy.FEATURED_FIRST) -> Tuple[int, ...]:
    """Sort key component; larger sorts first."""
    if policy is SortPolicy.FEATURED_FIRST:
        return (int(is_featured), int(is_enhanced))
    if policy is SortPolicy.PREMIUM_FIRST:
        return (int(is_enhanced), int(is_featured))
    if policy is SortPolicy.BADGE_ORDER:
        if is_enhanced:
            return (1,)
        return (2,) if is_featured else (0,)
    if policy is SortPolicy.CATEGORY_TAB:
        if is_featured:
            return (2,)
        return (1,) if is_enhanced else (0,)
    return (int(is_enhanced),)


def resolve_website(restaurant: Restaurant, entry: Optional[FeaturedEntry]) -> Optional[str]:
    if entry is not None and entry.website:
        return entry.website
    return restaurant.website


def classify(
    restaurant: Restaurant,
    featured: FeaturedIndex,
    *,
    sort_policy: SortPolicy = SortPolicy.FEATURED_FIRST,
    badge_policy: BadgePolicy = BadgePolicy.PREMIUM_OVER_FEATURED,
) -> Classification:
    entry = featured.get(restaurant.name)
    is_featured = entry is not None
    is_enhanced = restaurant.enhanced is True
    return Classification(
        is_featured=is_featured,
        is_enhanced=is_enhanced,
        display_tier=display_tier_for(is_featured, is_enhanced, sort_policy),
        badge=badge_for(is_featured, is_enhanced, badge_policy),
        resolved_website=resolve_website(restaurant, entry),
    )

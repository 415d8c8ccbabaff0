"""Data models for the shoreline restaurant directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class Tier(str, Enum):
    FEATURED = "Featured"
    PREMIUM = "Premium"
    REGULAR = "Regular"


@dataclass(frozen=True)
class Restaurant:
    name: str
    town: str = ""
    categories: Tuple[str, ...] = ()
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    image: Optional[str] = None
    dark_bg: bool = False
    lat: Optional[float] = None
    lng: Optional[float] = None
    enhanced: bool = False

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


@dataclass(frozen=True)
class FeaturedEntry(Restaurant):
    """A curated listing; its website wins over the town file's."""


@dataclass(frozen=True)
class Classification:
    is_featured: bool
    is_enhanced: bool
    display_tier: Tier
    badge: Optional[Tier]
    resolved_website: Optional[str]


@dataclass(frozen=True)
class RankedResult:
    restaurant: Restaurant
    is_featured: bool
    is_enhanced: bool
    tier: Tier
    badge: Optional[Tier]
    resolved_website: Optional[str]
    distance_miles: Optional[float] = None

    @property
    def name(self) -> str:
        return self.restaurant.name

    @property
    def town(self) -> str:
        return self.restaurant.town

    @property
    def show_phone(self) -> bool:
        return self.is_featured or self.is_enhanced


@dataclass(frozen=True)
class DirectoryData:
    featured: Tuple[FeaturedEntry, ...] = ()
    all: Tuple[Restaurant, ...] = ()
    categories: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    failed: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.featured and not self.all

    def towns(self) -> Tuple[str, ...]:
        seen: list[str] = []
        for r in self.all:
            if r.town and r.town not in seen:
                seen.append(r.town)
        return tuple(seen)


@dataclass(frozen=True)
class GeoPosition:
    latitude: float
    longitude: float
    acquired_at: float = 0.0

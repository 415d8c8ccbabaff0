from __future__ import annotations

from typing import List, Optional

from loguru import logger

from config import Configuration
from models import DirectoryData, GeoPosition, RankedResult
from services.geolocation import Locator
from services.loader import DirectoryClient, load_directory
from services.near_me import NearMeResult, TownListing, TownPage, near_me, search, town_listing, town_page
from services.ranking import RankQuery, rank
from services.tiers import BadgePolicy, FeaturedIndex, NameMatch, SortPolicy


class DirectoryContext:
    """State for one page session: the loaded snapshot plus the locator.

    Starts empty so every query works before loading finishes; `refresh()`
    swaps in a new snapshot atomically.
    """

    def __init__(
        self,
        cfg: Configuration,
        data: Optional[DirectoryData] = None,
        locator: Optional[Locator] = None,
    ) -> None:
        self.cfg = cfg
        self.locator = locator
        self.loaded = data is not None
        self._install(data or DirectoryData())

    @classmethod
    def empty(cls, cfg: Configuration, locator: Optional[Locator] = None) -> "DirectoryContext":
        return cls(cfg, None, locator)

    def _install(self, data: DirectoryData) -> None:
        self.data = data
        self.featured = FeaturedIndex(data.featured, NameMatch(self.cfg.name_match))

    async def refresh(self, client: Optional[DirectoryClient] = None) -> DirectoryData:
        data = await load_directory(self.cfg, client)
        self._install(data)
        self.loaded = True
        return data

    def default_query(self, **kwargs) -> RankQuery:
        kwargs.setdefault("sort_policy", SortPolicy(self.cfg.sort_policy))
        kwargs.setdefault("badge_policy", BadgePolicy(self.cfg.badge_policy))
        return RankQuery(**kwargs)

    def rank(self, query: Optional[RankQuery] = None) -> List[RankedResult]:
        return rank(self.data.all, self.featured, query or self.default_query())

    def search(self, text: Optional[str], limit: Optional[int] = None) -> List[RankedResult]:
        return search(self.data, self.featured, text, limit=limit)

    def near_me(self, position: GeoPosition) -> NearMeResult:
        return near_me(
            self.data,
            self.featured,
            position,
            radius_miles=self.cfg.near_me_radius_miles,
            shelf_size=self.cfg.featured_shelf_size,
        )

    async def locate_and_rank(self) -> NearMeResult:
        if self.locator is None:
            raise RuntimeError("no locator configured for this session")
        position = await self.locator.locate()
        logger.debug("located at {:.4f},{:.4f}", position.latitude, position.longitude)
        return self.near_me(position)

    def town_listing(self, town: str) -> TownListing:
        return town_listing(self.data, self.featured, town)

    def town_page(self, town: str, category: Optional[str] = None) -> TownPage:
        return town_page(self.data, self.featured, town, category)

    def towns(self) -> List[str]:
        return self.cfg.town_labels()

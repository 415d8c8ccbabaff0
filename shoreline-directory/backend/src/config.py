from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from utils import mask_secret


class TownFile(BaseModel):
    file: str
    town: str


DEFAULT_DATA_DIR = Path(__file__).resolve().parent.parent / "data"

DEFAULT_TOWN_FILES: List[TownFile] = [
    TownFile(file="easthaven-restaurants.json", town="East Haven"),
    TownFile(file="branford-restaurants.json", town="Branford"),
    TownFile(file="guilford-restaurants.json", town="Guilford"),
    TownFile(file="madison-restaurants.json", town="Madison"),
    TownFile(file="clinton-restaurants.json", town="Clinton"),
    TownFile(file="westbrook-restaurants.json", town="Westbrook"),
    TownFile(file="old-saybrook-restaurants.json", town="Old Saybrook"),
]


class Configuration(BaseModel):
    # Data sources (http(s) base url or local directory)
    data_base: str = Field(default=str(DEFAULT_DATA_DIR))
    featured_file: str = Field(default="featured-restaurants.json")
    town_files: List[TownFile] = Field(default_factory=lambda: list(DEFAULT_TOWN_FILES))
    fetch_timeout: int = Field(default=10)
    fetch_retries: int = Field(default=2)

    # Ranking
    sort_policy: str = Field(default="featured_first")
    badge_policy: str = Field(default="premium_over_featured")
    name_match: str = Field(default="normalized")
    featured_shelf_size: int = Field(default=2)
    near_me_radius_miles: Optional[float] = Field(default=None)

    # Geolocation
    geolocation_enabled: bool = Field(default=True)
    geolocation_timeout: float = Field(default=10.0)
    geolocation_max_age: float = Field(default=300.0)
    ip_geolocation_url: str = Field(default="https://ipapi.co/json/")
    ip_geolocation_api_key: Optional[str] = Field(default=None)

    @classmethod
    def from_env(cls, overrides: Optional[dict[str, Any]] = None) -> "Configuration":
        raw: dict[str, Any] = {}

        env_map = {
            "data_base": os.getenv("DIRECTORY_DATA_BASE"),
            "featured_file": os.getenv("DIRECTORY_FEATURED_FILE"),
            "fetch_timeout": os.getenv("DIRECTORY_FETCH_TIMEOUT"),
            "fetch_retries": os.getenv("DIRECTORY_FETCH_RETRIES"),
            "sort_policy": os.getenv("DIRECTORY_SORT_POLICY"),
            "badge_policy": os.getenv("DIRECTORY_BADGE_POLICY"),
            "name_match": os.getenv("DIRECTORY_NAME_MATCH"),
            "featured_shelf_size": os.getenv("DIRECTORY_FEATURED_SHELF_SIZE"),
            "near_me_radius_miles": os.getenv("DIRECTORY_NEAR_ME_RADIUS_MILES"),
            # Geolocation
            "geolocation_enabled": os.getenv("DIRECTORY_GEOLOCATION_ENABLED"),
            "geolocation_timeout": os.getenv("DIRECTORY_GEOLOCATION_TIMEOUT"),
            "geolocation_max_age": os.getenv("DIRECTORY_GEOLOCATION_MAX_AGE"),
            "ip_geolocation_url": os.getenv("DIRECTORY_IP_GEOLOCATION_URL"),
            "ip_geolocation_api_key": os.getenv("DIRECTORY_IP_GEOLOCATION_API_KEY"),
        }

        bool_fields = {"geolocation_enabled"}

        for k, v in env_map.items():
            if v is None:
                continue
            if k in bool_fields:
                raw[k] = str(v).lower() in {"1", "true", "yes", "on"}
            else:
                raw[k] = v

        if overrides:
            raw.update({k: v for k, v in overrides.items() if v is not None})

        return cls(**raw)

    @property
    def is_remote(self) -> bool:
        return self.data_base.startswith(("http://", "https://"))

    def town_labels(self) -> List[str]:
        return [tf.town for tf in self.town_files]

    def log_summary(self) -> str:
        return (
            "data_base=%s remote=%s towns=%d timeout=%s sort=%s badge=%s name_match=%s radius=%s ip_key=%s"
            % (
                self.data_base,
                self.is_remote,
                len(self.town_files),
                self.fetch_timeout,
                self.sort_policy,
                self.badge_policy,
                self.name_match,
                self.near_me_radius_miles,
                mask_secret(self.ip_geolocation_api_key),
            )
        )

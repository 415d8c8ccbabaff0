from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

import requests
from loguru import logger

from config import Configuration, TownFile
from models import DirectoryData, FeaturedEntry, Restaurant
from utils import as_category_list, parse_coordinate


class DirectoryLoadError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass
class _RetryPolicy:
    retries: int = 2
    base_delay: float = 0.5


class DirectoryClient:
    """Reads directory JSON files from an http(s) base url or a local directory."""

    def __init__(self, cfg: Configuration) -> None:
        self.cfg = cfg
        self.base = cfg.data_base.rstrip("/")
        self.session = requests.Session() if cfg.is_remote else None
        self.policy = _RetryPolicy(retries=max(cfg.fetch_retries, 0))

    def fetch_json(self, name: str) -> Any:
        if self.session is None:
            return self._read_local(name)
        return self._get(name)

    def _read_local(self, name: str) -> Any:
        path = Path(self.base) / name
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise DirectoryLoadError(f"missing file: {path}", status=404)
        except OSError as exc:
            raise DirectoryLoadError(f"read error {path}: {exc}")
        except UnicodeDecodeError as exc:
            raise DirectoryLoadError(f"{path} is not utf-8: {exc}")
        try:
            return json.loads(text)
        except ValueError:
            raise DirectoryLoadError(f"invalid json in {path}")

    def _get(self, name: str) -> Any:
        url = f"{self.base}/{name.lstrip('/')}"
        headers = {"Accept": "application/json"}
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = self.session.get(url, headers=headers, timeout=self.cfg.fetch_timeout)
            except requests.RequestException as exc:  # network error
                if attempt <= self.policy.retries:
                    time.sleep(self.policy.base_delay * attempt)
                    continue
                raise DirectoryLoadError(f"request error: {exc}")

            if resp.status_code in (429, 500, 502, 503, 504):
                if attempt <= self.policy.retries:
                    time.sleep(self.policy.base_delay * attempt)
                    continue
                raise DirectoryLoadError(f"upstream {resp.status_code} for {url}", status=resp.status_code)

            if not resp.ok:
                raise DirectoryLoadError(f"upstream {resp.status_code} for {url}", status=resp.status_code)

            try:
                return resp.json()
            except ValueError:
                raise DirectoryLoadError(f"invalid json response from {url}")

    def close(self) -> None:
        if self.session is not None:
            self.session.close()


def parse_restaurant(raw: Any, town: Optional[str] = None, cls: Type[Restaurant] = Restaurant) -> Optional[Restaurant]:
    """Build a record from one raw JSON object; None when it has no usable name."""
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        return None
    category = raw.get("category")
    if category is None or category == "" or category == []:
        category = raw.get("cuisine")
    lat = parse_coordinate(raw.get("lat"))
    lng = parse_coordinate(raw.get("lng"))
    if lat is None or lng is None:
        lat = lng = None
    raw_town = raw.get("town")
    return cls(
        name=name,
        town=town if town is not None else (str(raw_town) if raw_town else ""),
        categories=as_category_list(category),
        address=_opt_str(raw.get("address")),
        phone=_opt_str(raw.get("phone")),
        website=_opt_str(raw.get("website")),
        image=_opt_str(raw.get("image")),
        dark_bg=raw.get("darkBg") is True,
        lat=lat,
        lng=lng,
        enhanced=raw.get("enhanced") is True,
    )


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_featured(payload: Any) -> Tuple[FeaturedEntry, ...]:
    # older exports are a bare list instead of {featured: [...]}
    items = payload.get("featured") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        raise DirectoryLoadError("featured file has no 'featured' list")
    out: list[FeaturedEntry] = []
    for raw in items:
        entry = parse_restaurant(raw, cls=FeaturedEntry)
        if entry is None:
            logger.debug("skipping featured record without a name: {}", raw)
            continue
        out.append(entry)  # type: ignore[arg-type]
    return tuple(out)


def parse_town(payload: Any, town: str) -> Tuple[Tuple[Restaurant, ...], Tuple[str, ...]]:
    if not isinstance(payload, dict) or not isinstance(payload.get("restaurants"), list):
        raise DirectoryLoadError(f"town file for {town} has no 'restaurants' list")
    restaurants: list[Restaurant] = []
    for raw in payload["restaurants"]:
        r = parse_restaurant(raw, town=town)
        if r is None:
            logger.debug("skipping {} record without a name: {}", town, raw)
            continue
        restaurants.append(r)
    return tuple(restaurants), as_category_list(payload.get("categories"))


async def _load_featured(client: DirectoryClient) -> Tuple[FeaturedEntry, ...]:
    try:
        payload = await asyncio.to_thread(client.fetch_json, client.cfg.featured_file)
        return parse_featured(payload)
    except DirectoryLoadError as exc:
        logger.warning("featured list unavailable, continuing without it: {}", exc)
        return ()
    except Exception as exc:
        logger.exception("unexpected error loading featured list: {}", exc)
        return ()


async def _load_town(
    client: DirectoryClient, town_file: TownFile
) -> Optional[Tuple[Tuple[Restaurant, ...], Tuple[str, ...]]]:
    try:
        payload = await asyncio.to_thread(client.fetch_json, town_file.file)
        return parse_town(payload, town_file.town)
    except DirectoryLoadError as exc:
        if exc.status == 404:
            logger.info("no data file for {} yet", town_file.town)
        else:
            logger.warning("could not load {} ({}): {}", town_file.file, town_file.town, exc)
        return None
    except Exception as exc:
        logger.exception("unexpected error loading {} ({}): {}", town_file.file, town_file.town, exc)
        return None


async def load_directory(cfg: Configuration, client: Optional[DirectoryClient] = None) -> DirectoryData:
    """Fetch the featured list and every town file concurrently.

    Any failure degrades to empty collections for the affected source; this
    never raises for load problems.
    """
    owns_client = client is None
    client = client or DirectoryClient(cfg)
    start = time.time()
    try:
        featured, *towns = await asyncio.gather(
            _load_featured(client),
            *(_load_town(client, tf) for tf in cfg.town_files),
        )
    finally:
        if owns_client:
            client.close()

    restaurants: list[Restaurant] = []
    categories: Dict[str, Tuple[str, ...]] = {}
    failed: List[str] = []
    for town_file, loaded in zip(cfg.town_files, towns):
        if loaded is None:
            failed.append(town_file.town)
            continue
        town_restaurants, town_categories = loaded
        restaurants.extend(town_restaurants)
        categories[town_file.town] = town_categories

    data = DirectoryData(
        featured=featured,
        all=tuple(restaurants),
        categories=categories,
        failed=tuple(failed),
    )
    logger.info(
        "directory loaded in {:.2f}s: featured={} restaurants={} towns={} failed={}",
        time.time() - start,
        len(data.featured),
        len(data.all),
        len(categories),
        ",".join(failed) or "none",
    )
    return data

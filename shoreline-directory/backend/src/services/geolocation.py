from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

import requests
from loguru import logger

from config import Configuration
from models import GeoPosition

PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Location access denied. Please enable location services and try again.",
    POSITION_UNAVAILABLE: "Location unavailable. Please try again.",
    TIMEOUT: "Location request timed out. Please try again.",
}
DEFAULT_ERROR_MESSAGE = "Unable to get your location."

PositionProvider = Callable[[], Awaitable[GeoPosition]]


class GeolocationError(RuntimeError):
    def __init__(self, code: int, detail: Optional[str] = None) -> None:
        super().__init__(detail or error_message(code))
        self.code = code

    @property
    def message(self) -> str:
        return error_message(self.code)


def error_message(code: Optional[int]) -> str:
    return ERROR_MESSAGES.get(code, DEFAULT_ERROR_MESSAGE)  # type: ignore[arg-type]


def _validated(lat: float, lng: float) -> GeoPosition:
    if not (-90.0 <= lat <= 90.0) or not (-180.0 <= lng <= 180.0):
        raise GeolocationError(POSITION_UNAVAILABLE, f"coordinates out of range: {lat},{lng}")
    return GeoPosition(latitude=lat, longitude=lng, acquired_at=time.time())


class ReportedPositionProvider:
    """Position (or failure code) reported by the browser's geolocation API."""

    def __init__(
        self,
        lat: Optional[float] = None,
        lng: Optional[float] = None,
        error_code: Optional[int] = None,
    ) -> None:
        self.lat = lat
        self.lng = lng
        self.error_code = error_code

    async def __call__(self) -> GeoPosition:
        if self.error_code is not None:
            raise GeolocationError(self.error_code)
        if self.lat is None or self.lng is None:
            raise GeolocationError(POSITION_UNAVAILABLE, "no coordinates reported")
        return _validated(float(self.lat), float(self.lng))


class IpPositionProvider:
    """Approximate position from an IP geolocation service."""

    def __init__(self, cfg: Configuration, session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.session = session or requests.Session()

    def _fetch(self) -> GeoPosition:
        params = {}
        if self.cfg.ip_geolocation_api_key:
            params["key"] = self.cfg.ip_geolocation_api_key
        try:
            resp = self.session.get(
                self.cfg.ip_geolocation_url,
                params=params,
                headers={"Accept": "application/json"},
                timeout=self.cfg.geolocation_timeout,
            )
        except requests.Timeout as exc:
            raise GeolocationError(TIMEOUT, f"ip lookup timed out: {exc}")
        except requests.RequestException as exc:
            raise GeolocationError(POSITION_UNAVAILABLE, f"ip lookup failed: {exc}")
        if not resp.ok:
            raise GeolocationError(POSITION_UNAVAILABLE, f"ip lookup returned {resp.status_code}")
        try:
            payload = resp.json()
        except ValueError:
            raise GeolocationError(POSITION_UNAVAILABLE, "ip lookup returned invalid json")
        lat = payload.get("latitude", payload.get("lat"))
        lng = payload.get("longitude", payload.get("lon"))
        if lat is None or lng is None:
            raise GeolocationError(POSITION_UNAVAILABLE, "ip lookup returned no coordinates")
        try:
            return _validated(float(lat), float(lng))
        except (TypeError, ValueError):
            raise GeolocationError(POSITION_UNAVAILABLE, "ip lookup returned malformed coordinates")

    async def __call__(self) -> GeoPosition:
        if not self.cfg.geolocation_enabled:
            raise GeolocationError(PERMISSION_DENIED)
        return await asyncio.to_thread(self._fetch)


class Locator:
    """One outstanding position request at a time, with timeout and a position cache.

    A caller that arrives while a request is in flight waits for it and then
    gets the freshly cached position instead of issuing a second request.
    """

    def __init__(
        self,
        provider: PositionProvider,
        *,
        timeout: float = 10.0,
        max_age: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.provider = provider
        self.timeout = timeout
        self.max_age = max_age
        self._clock = clock
        self._lock = asyncio.Lock()
        self._cached: Optional[GeoPosition] = None
        self._cached_at = 0.0

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    def _fresh(self) -> Optional[GeoPosition]:
        if self._cached is None:
            return None
        if self._clock() - self._cached_at > self.max_age:
            return None
        return self._cached

    def forget(self) -> None:
        self._cached = None

    async def locate(self) -> GeoPosition:
        async with self._lock:
            cached = self._fresh()
            if cached is not None:
                return cached
            try:
                position = await asyncio.wait_for(self.provider(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.info("position request timed out after {}s", self.timeout)
                raise GeolocationError(TIMEOUT)
            except GeolocationError as exc:
                logger.info("position unavailable (code {}): {}", exc.code, exc)
                raise
            self._cached = position
            self._cached_at = self._clock()
            return position

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from models import GeoPosition, RankedResult
from services.geolocation import GeolocationError, Locator, ReportedPositionProvider
from services.near_me import map_markers
from services.presentation import EmptyState, card_views, empty_state
from services.ranking import CategoryMode, RankQuery
from services.session import DirectoryContext
from services.tiers import BadgePolicy, SortPolicy


@asynccontextmanager
async def lifespan(app: FastAPI):
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    # queries before the first load finishes see an empty directory
    app.state.directory = DirectoryContext.empty(cfg)
    await app.state.directory.refresh()
    yield


app = FastAPI(title="Shoreline Restaurant Directory", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def index(request: Request) -> Dict[str, Any]:
    return {"service": "shoreline-directory", "towns": _directory(request).towns()}


class CardPayload(BaseModel):
    name: str
    town: str
    category: str
    categories: List[str] = []
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    image: Optional[str] = None
    dark_bg: bool = False
    lat: Optional[float] = None
    lng: Optional[float] = None
    badge: Optional[str] = None
    tier: str
    is_featured: bool = False
    is_enhanced: bool = False
    distance_miles: Optional[float] = None
    distance_label: Optional[str] = None
    directions_url: Optional[str] = None


class EmptyStatePayload(BaseModel):
    kind: str
    title: str
    message: str


class ListingResponse(BaseModel):
    results: List[CardPayload]
    total: int
    empty: Optional[EmptyStatePayload] = None


class TownPageResponse(ListingResponse):
    town: str
    category: str
    categories: List[str] = []


class TownFallbackResponse(ListingResponse):
    town: str
    featured: List[CardPayload] = []


class NearMeRequest(BaseModel):
    lat: Optional[float] = Field(None, description="Latitude reported by the browser")
    lng: Optional[float] = Field(None, description="Longitude reported by the browser")
    error_code: Optional[int] = Field(None, description="Browser geolocation error code (1, 2 or 3)")


class NearMeResponse(BaseModel):
    featured: List[CardPayload] = []
    results: List[CardPayload] = []
    total: int = 0
    empty: Optional[EmptyStatePayload] = None
    error: Optional[str] = None
    error_code: Optional[int] = None
    towns: List[str] = []


def _directory(request: Request) -> DirectoryContext:
    ctx = getattr(request.app.state, "directory", None)
    if ctx is None:
        ctx = DirectoryContext.empty(Configuration.from_env())
        request.app.state.directory = ctx
    return ctx


def _cards(results: List[RankedResult], *, always_show_phone: bool = False) -> List[CardPayload]:
    return [CardPayload(**card) for card in card_views(results, always_show_phone=always_show_phone)]


def _empty_for(ctx: DirectoryContext, results: List[RankedResult], *, filtered: bool) -> Optional[EmptyStatePayload]:
    if results:
        return None
    if ctx.data.is_empty or not filtered:
        return EmptyStatePayload(**empty_state(EmptyState.NO_DATA))
    return EmptyStatePayload(**empty_state(EmptyState.NO_MATCHES))


def _listing_query(
    ctx: DirectoryContext,
    q: Optional[str],
    town: Optional[str],
    category: Optional[str],
    category_mode: str,
    lat: Optional[float],
    lng: Optional[float],
    radius: Optional[float],
    sort_policy: Optional[str],
    badge_policy: Optional[str],
    limit: Optional[int],
) -> RankQuery:
    if (lat is None) != (lng is None):
        raise ValueError("lat and lng must be given together")
    location = GeoPosition(latitude=lat, longitude=lng) if lat is not None and lng is not None else None
    if radius is not None and location is None:
        raise ValueError("radius requires lat and lng")
    if limit is not None and limit < 0:
        raise ValueError("limit must be >= 0")
    return ctx.default_query(
        text=q,
        town=town,
        category=category,
        category_mode=CategoryMode(category_mode),
        user_location=location,
        radius_miles=radius,
        sort_policy=SortPolicy(sort_policy or ctx.cfg.sort_policy),
        badge_policy=BadgePolicy(badge_policy or ctx.cfg.badge_policy),
        limit=limit,
    )


@app.get("/healthz")
def healthz(request: Request) -> dict:
    ctx = _directory(request)
    logger.info("cfg: {}", ctx.cfg.log_summary())
    return {
        "status": "ok",
        "loaded": ctx.loaded,
        "featured": len(ctx.data.featured),
        "restaurants": len(ctx.data.all),
    }


@app.get("/restaurants", response_model=ListingResponse)
def restaurants(
    request: Request,
    q: Optional[str] = None,
    town: Optional[str] = None,
    category: Optional[str] = None,
    category_mode: str = "search",
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[float] = None,
    sort_policy: Optional[str] = None,
    badge_policy: Optional[str] = None,
    limit: Optional[int] = None,
) -> ListingResponse:
    ctx = _directory(request)
    try:
        query = _listing_query(ctx, q, town, category, category_mode, lat, lng, radius, sort_policy, badge_policy, limit)
        ranked = ctx.rank(query)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("listing failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")
    filtered = bool(q or town or category or radius is not None)
    return ListingResponse(results=_cards(ranked), total=len(ranked), empty=_empty_for(ctx, ranked, filtered=filtered))


@app.get("/markers")
def markers(
    request: Request,
    q: Optional[str] = None,
    town: Optional[str] = None,
    category: Optional[str] = None,
    category_mode: str = "search",
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius: Optional[float] = None,
) -> Dict[str, Any]:
    ctx = _directory(request)
    try:
        query = _listing_query(ctx, q, town, category, category_mode, lat, lng, radius, None, None, None)
        ranked = ctx.rank(query)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"markers": map_markers(ranked)}


@app.get("/search", response_model=ListingResponse)
def search(request: Request, q: Optional[str] = None, limit: Optional[int] = None) -> ListingResponse:
    ctx = _directory(request)
    if limit is not None and limit < 0:
        raise HTTPException(status_code=400, detail="limit must be >= 0")
    results = ctx.search(q, limit=limit)
    return ListingResponse(
        results=_cards(results),
        total=len(results),
        empty=_empty_for(ctx, results, filtered=bool(q and q.strip())),
    )


@app.get("/towns")
def towns(request: Request) -> Dict[str, Any]:
    ctx = _directory(request)
    counts = {t: 0 for t in ctx.towns()}
    for r in ctx.data.all:
        counts[r.town] = counts.get(r.town, 0) + 1
    return {
        "towns": [{"town": t, "restaurants": n, "loaded": t not in ctx.data.failed} for t, n in counts.items()],
        "failed": list(ctx.data.failed),
    }


@app.get("/towns/{town}", response_model=TownPageResponse)
def town_detail(request: Request, town: str, category: Optional[str] = None) -> TownPageResponse:
    ctx = _directory(request)
    if town not in ctx.towns():
        raise HTTPException(status_code=404, detail=f"unknown town: {town}")
    page = ctx.town_page(town, category)
    filtered = page.category != "All"
    return TownPageResponse(
        town=page.town,
        category=page.category,
        categories=list(page.categories),
        # town pages list every phone number
        results=_cards(page.results, always_show_phone=True),
        total=len(page.results),
        empty=_empty_for(ctx, page.results, filtered=filtered),
    )


@app.get("/towns/{town}/fallback", response_model=TownFallbackResponse)
def town_fallback(request: Request, town: str) -> TownFallbackResponse:
    ctx = _directory(request)
    if town not in ctx.towns():
        raise HTTPException(status_code=404, detail=f"unknown town: {town}")
    listing = ctx.town_listing(town)
    return TownFallbackResponse(
        town=listing.town,
        featured=_cards(listing.featured, always_show_phone=True),
        results=_cards(listing.results),
        total=len(listing.results),
        empty=_empty_for(ctx, listing.results, filtered=False),
    )


@app.post("/near-me", response_model=NearMeResponse)
async def near_me(request: Request, req: NearMeRequest) -> NearMeResponse:
    ctx = _directory(request)
    provider = ReportedPositionProvider(lat=req.lat, lng=req.lng, error_code=req.error_code)
    # the browser applies its own position cache, so none is kept here
    locator = Locator(provider, timeout=ctx.cfg.geolocation_timeout, max_age=0)
    try:
        position = await locator.locate()
    except GeolocationError as exc:
        return NearMeResponse(error=exc.message, error_code=exc.code, towns=ctx.towns())

    result = ctx.near_me(position)
    empty = None
    if not result.results:
        empty = EmptyStatePayload(**empty_state(EmptyState.NO_LOCATION_DATA))
    return NearMeResponse(
        featured=_cards(result.featured_shelf, always_show_phone=True),
        results=_cards(result.results),
        total=result.total,
        empty=empty,
        towns=ctx.towns(),
    )


@app.post("/reload")
async def reload(request: Request) -> Dict[str, Any]:
    ctx = _directory(request)
    data = await ctx.refresh()
    return {
        "featured": len(data.featured),
        "restaurants": len(data.all),
        "failed": list(data.failed),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)

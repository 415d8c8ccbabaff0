"""Shoreline directory CLI: search, near-me and town listings from the terminal."""

from __future__ import annotations

import asyncio
import sys
from typing import List, Optional

from loguru import logger

from config import Configuration
from models import GeoPosition, RankedResult
from services.geolocation import GeolocationError, IpPositionProvider, Locator
from services.presentation import card_view
from services.session import DirectoryContext

USAGE = """Usage: shoreline <command> [args]
  search <text>           Search every town (blank text lists featured restaurants)
  near-me [lat lng]       Restaurants by distance (IP lookup when no coordinates)
  town <name> [category]  One town's listing, optionally a single category tab
  serve                   Run the API on port 8010"""


def _print_results(results: List[RankedResult], *, limit: Optional[int] = None) -> None:
    shown = results if limit is None else results[:limit]
    for r in shown:
        card = card_view(r)
        parts = [card["name"]]
        if card["badge"]:
            parts.append(f"[{card['badge']}]")
        if card["distance_label"]:
            parts.append(card["distance_label"])
        parts.append(f"{card['category']} · {card['town']}")
        if card["phone"]:
            parts.append(card["phone"])
        print("  " + "  ".join(p for p in parts if p))
    if limit is not None and len(results) > limit:
        print(f"  ... and {len(results) - limit} more")


async def _run(argv: List[str], cfg: Configuration) -> int:
    command, args = argv[0], argv[1:]
    locator = Locator(
        IpPositionProvider(cfg),
        timeout=cfg.geolocation_timeout,
        max_age=cfg.geolocation_max_age,
    )
    ctx = DirectoryContext.empty(cfg, locator=locator)
    await ctx.refresh()

    if command == "search":
        text = " ".join(args)
        results = ctx.search(text)
        if not results:
            print(f'No restaurants found for "{text}"')
            return 0
        print(f"{len(results)} result(s)")
        _print_results(results)
        return 0

    if command == "near-me":
        try:
            if len(args) == 2:
                result = ctx.near_me(GeoPosition(latitude=float(args[0]), longitude=float(args[1])))
            elif not args:
                result = await ctx.locate_and_rank()
            else:
                print(USAGE)
                return 1
        except ValueError:
            print("lat and lng must be numbers")
            return 1
        except GeolocationError as exc:
            print(exc.message)
            print("Pick a town instead: " + ", ".join(ctx.towns()))
            return 1
        if result.featured_shelf:
            print("Nearest Featured Restaurants")
            _print_results(result.featured_shelf)
        if not result.results:
            print("No restaurants found with location data.")
            return 0
        print(f"All Restaurants by Distance ({result.total})")
        _print_results(result.results, limit=25)
        return 0

    if command == "town":
        if not args:
            print(USAGE)
            return 1
        town, category = args[0], (args[1] if len(args) > 1 else None)
        if town not in ctx.towns():
            print(f"Unknown town: {town}. Choose from: {', '.join(ctx.towns())}")
            return 1
        page = ctx.town_page(town, category)
        print(f"{page.town} - {page.category} ({len(page.results)})")
        if page.categories:
            print("Categories: " + ", ".join(page.categories))
        _print_results(page.results)
        return 0

    print(USAGE)
    return 1


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in {"-h", "--help"}:
        print(USAGE)
        sys.exit(0 if sys.argv[1:] else 1)

    logger.remove()
    logger.add(sys.stderr, level="WARNING")

    if sys.argv[1] == "serve":
        import uvicorn

        uvicorn.run("main:app", host="0.0.0.0", port=8010)
        return

    cfg = Configuration.from_env()
    sys.exit(asyncio.run(_run(sys.argv[1:], cfg)))


if __name__ == "__main__":
    main()

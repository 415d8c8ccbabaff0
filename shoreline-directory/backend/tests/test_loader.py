from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import requests

from config import Configuration, TownFile
from models import FeaturedEntry
from services.loader import DirectoryClient, load_directory, parse_restaurant


def _cfg(base, towns=None) -> Configuration:
    return Configuration(
        data_base=str(base),
        town_files=towns or [TownFile(file="guilford-restaurants.json", town="Guilford")],
        fetch_retries=0,
    )


def test_town_label_is_stamped_and_featured_loaded(data_dir) -> None:
    base = data_dir(
        featured={"featured": [{"name": "Cafe X", "website": "https://x.com"}]},
        towns={
            "guilford-restaurants.json": {
                "restaurants": [
                    {"name": "Cafe X", "website": "https://old.com", "category": "Cafe", "lat": 41.3, "lng": -72.6}
                ],
                "categories": ["Cafe"],
            }
        },
    )
    data = asyncio.run(load_directory(_cfg(base)))

    assert [f.name for f in data.featured] == ["Cafe X"]
    assert isinstance(data.featured[0], FeaturedEntry)
    assert len(data.all) == 1
    cafe = data.all[0]
    assert cafe.town == "Guilford"
    assert cafe.categories == ("Cafe",)
    assert cafe.website == "https://old.com"
    assert data.categories == {"Guilford": ("Cafe",)}
    assert data.failed == ()


def test_order_follows_town_files_then_file_order(data_dir) -> None:
    base = data_dir(
        featured={"featured": []},
        towns={
            "a.json": {"restaurants": [{"name": "A2"}, {"name": "A1"}]},
            "b.json": {"restaurants": [{"name": "B1"}]},
        },
    )
    cfg = _cfg(base, [TownFile(file="b.json", town="Bee"), TownFile(file="a.json", town="Ay")])
    data = asyncio.run(load_directory(cfg))
    assert [(r.town, r.name) for r in data.all] == [("Bee", "B1"), ("Ay", "A2"), ("Ay", "A1")]


def test_one_bad_town_does_not_abort_the_others(data_dir) -> None:
    base = data_dir(
        featured={"featured": []},
        towns={
            "good.json": {"restaurants": [{"name": "Good Eats"}]},
            "broken.json": "{not json",
            "shape.json": {"listings": []},
        },
    )
    cfg = _cfg(
        base,
        [
            TownFile(file="broken.json", town="Broken"),
            TownFile(file="missing.json", town="Missing"),
            TownFile(file="shape.json", town="Shape"),
            TownFile(file="good.json", town="Good"),
        ],
    )
    data = asyncio.run(load_directory(cfg))
    assert [r.name for r in data.all] == ["Good Eats"]
    assert data.failed == ("Broken", "Missing", "Shape")


def test_town_file_that_is_not_utf8_is_skipped(data_dir) -> None:
    base = data_dir(
        featured=b'{"featured": [{"name": "\xff\xfe"}]}',
        towns={
            "bad.json": b'{"restaurants": [{"name": "\xff\xfe"}]}',
            "good.json": {"restaurants": [{"name": "Good Eats"}]},
        },
    )
    cfg = _cfg(base, [TownFile(file="bad.json", town="Bad"), TownFile(file="good.json", town="Good")])
    data = asyncio.run(load_directory(cfg))
    assert data.featured == ()
    assert [r.name for r in data.all] == ["Good Eats"]
    assert data.failed == ("Bad",)


def test_unexpected_client_errors_degrade() -> None:
    cfg = _cfg("unused", [TownFile(file="a.json", town="Ay")])
    client = MagicMock()
    client.cfg = cfg
    client.fetch_json.side_effect = KeyError("boom")

    data = asyncio.run(load_directory(cfg, client))
    assert data.is_empty
    assert data.failed == ("Ay",)


def test_missing_featured_file_degrades_to_empty(data_dir) -> None:
    base = data_dir(towns={"guilford-restaurants.json": {"restaurants": [{"name": "Only One"}]}})
    data = asyncio.run(load_directory(_cfg(base)))
    assert data.featured == ()
    assert [r.name for r in data.all] == ["Only One"]


def test_everything_missing_yields_empty_snapshot(tmp_path) -> None:
    data = asyncio.run(load_directory(_cfg(tmp_path / "nowhere")))
    assert data.is_empty
    assert data.failed == ("Guilford",)


def test_records_without_names_are_skipped(data_dir) -> None:
    base = data_dir(
        featured={"featured": [{"website": "https://nameless.com"}, "junk"]},
        towns={"guilford-restaurants.json": {"restaurants": [{"name": ""}, {"category": "Pizza"}, {"name": "Kept"}]}},
    )
    data = asyncio.run(load_directory(_cfg(base)))
    assert data.featured == ()
    assert [r.name for r in data.all] == ["Kept"]


def test_parse_restaurant_field_rules() -> None:
    r = parse_restaurant(
        {
            "name": "Pepe's",
            "cuisine": ["Pizza", "Italian"],
            "enhanced": "yes",
            "darkBg": True,
            "lat": 41.3,
        },
        town="Madison",
    )
    assert r is not None
    assert r.categories == ("Pizza", "Italian")
    # only a real boolean true counts as enhanced
    assert r.enhanced is False
    assert r.dark_bg is True
    # half a coordinate pair is no coordinate at all
    assert r.lat is None and r.lng is None
    assert not r.has_coordinates


def test_remote_fetch_failures_degrade() -> None:
    cfg = Configuration(
        data_base="https://example.test/data",
        town_files=[TownFile(file="guilford-restaurants.json", town="Guilford")],
        fetch_retries=0,
    )
    client = DirectoryClient(cfg)
    client.session = MagicMock()
    client.session.get.side_effect = requests.ConnectionError("network down")

    data = asyncio.run(load_directory(cfg, client))
    assert data.is_empty
    assert data.failed == ("Guilford",)


def test_remote_fetch_retries_server_errors() -> None:
    cfg = Configuration(
        data_base="https://example.test/data",
        town_files=[TownFile(file="guilford-restaurants.json", town="Guilford")],
        fetch_retries=1,
    )
    client = DirectoryClient(cfg)
    client.policy.base_delay = 0.0

    flaky = MagicMock(status_code=503, ok=False)
    good = MagicMock(status_code=200, ok=True)
    good.json.return_value = {"restaurants": [{"name": "Remote Cafe"}], "categories": []}
    featured = MagicMock(status_code=200, ok=True)
    featured.json.return_value = {"featured": []}

    def fake_get(url, **kwargs):
        if url.endswith("featured-restaurants.json"):
            return featured
        return responses.pop(0)

    responses = [flaky, good]
    client.session = MagicMock()
    client.session.get.side_effect = fake_get

    data = asyncio.run(load_directory(cfg, client))
    assert [r.name for r in data.all] == ["Remote Cafe"]
    assert [r.town for r in data.all] == ["Guilford"]

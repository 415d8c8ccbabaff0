from __future__ import annotations

import pytest

from utils import as_category_list, format_category, format_distance, haversine_miles, normalize_name, parse_coordinate


def test_distance_to_self_is_zero() -> None:
    assert haversine_miles(41.28, -72.68, 41.28, -72.68) == 0.0


def test_distance_is_symmetric() -> None:
    a = (41.2851, -72.6612)
    b = (41.2598, -72.8137)
    assert haversine_miles(*a, *b) == pytest.approx(haversine_miles(*b, *a))


def test_one_degree_of_latitude_at_equator() -> None:
    assert haversine_miles(0.0, 0.0, 1.0, 0.0) == pytest.approx(69.0, rel=0.01)


def test_guilford_to_branford_is_about_eight_miles() -> None:
    miles = haversine_miles(41.2851, -72.6612, 41.2598, -72.8137)
    assert 7.5 < miles < 8.5


def test_format_distance_bands() -> None:
    assert format_distance(0.05) == "264 ft"
    assert format_distance(0.0) == "0 ft"
    assert format_distance(0.1) == "0.1 mi"
    assert format_distance(3.24) == "3.2 mi"
    assert format_distance(9.96) == "10 mi"
    assert format_distance(9.94) == "9.9 mi"
    assert format_distance(12.6) == "13 mi"


def test_category_normalisation() -> None:
    assert as_category_list("Pizza") == ("Pizza",)
    assert as_category_list(["Pizza", "Italian", "Pizza", " "]) == ("Pizza", "Italian")
    assert as_category_list(None) == ()
    assert as_category_list("") == ()
    assert format_category(("Pizza", "Italian")) == "Pizza & Italian"


def test_normalize_name_trims_and_casefolds() -> None:
    assert normalize_name("  Cafe   X ") == normalize_name("cafe x")


def test_parse_coordinate() -> None:
    assert parse_coordinate(41.3) == 41.3
    assert parse_coordinate("-72.6") == -72.6
    assert parse_coordinate(0) is None
    assert parse_coordinate(None) is None
    assert parse_coordinate("north") is None
    assert parse_coordinate(True) is None
    assert parse_coordinate(float("inf")) is None
    assert parse_coordinate("-Infinity") is None
    assert parse_coordinate(float("nan")) is None

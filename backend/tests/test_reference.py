from datetime import datetime

import pytest

from vastboard.models import Building, Venue
from vastboard.params import RangeParams
from vastboard.pipelines import building_polygons, map_bounds, participant_ids

from helpers import square


def test_bounds_cover_buildings_and_positions(city_store):
    bounds = map_bounds(city_store, RangeParams())
    assert (bounds["min_longitude"], bounds["max_longitude"]) == (0, 160)
    assert (bounds["min_latitude"], bounds["max_latitude"]) == (0, 125)
    assert (bounds["width"], bounds["height"]) == (160, 125)
    # 16 building vertices plus 6 located pings
    assert bounds["center_longitude"] == pytest.approx(1053 / 22)
    assert bounds["center_latitude"] == pytest.approx(674 / 22)


def test_bounds_range_limits_positions_only(city_store):
    bounds = map_bounds(city_store, RangeParams(end=datetime(2022, 3, 1, 7)))
    assert bounds["max_longitude"] == 125


def test_empty_bounds(make_store):
    assert set(map_bounds(make_store(), RangeParams()).values()) == {0}


def test_participant_ids(city_store):
    assert participant_ids(city_store) == {"participant_ids": [1, 2, 3]}


def test_building_types_prefer_venues(city_store):
    polygons = building_polygons(city_store)
    assert [(p["building_id"], p["building_type"]) for p in polygons] == [
        (1, "Residental"),
        (2, "Restaurant"),
        (3, "Pub"),
        (4, "School"),
    ]
    assert polygons[0]["polygon"] == [[0, 0], [10, 0], [10, 10], [0, 10]]


def test_pub_wins_over_restaurant(make_store):
    store = make_store(
        Building(1, square(0, 0), building_type="Commercial"),
        Venue(3, "Restaurant", 1),
        Venue(4, "Pub", 1),
    )
    assert building_polygons(store)[0]["building_type"] == "Pub"


def test_other_venue_types_rank_last(make_store):
    store = make_store(
        Building(1, square(0, 0), building_type="Commercial"),
        Building(2, square(20, 0), building_type="Commercial"),
        Venue(5, "Cafe", 1),
        Venue(6, "Restaurant", 1),
        Venue(7, "Cafe", 2),
    )
    assert [p["building_type"] for p in building_polygons(store)] == ["Restaurant", "Cafe"]

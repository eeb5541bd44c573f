from datetime import datetime

import pytest

from vastboard.models import Building, TripEvent
from vastboard.params import FlowParams
from vastboard.pipelines import od_flows
from vastboard.pipelines.flow import flow_nodes

from helpers import square, ts


@pytest.fixture
def two_building_store(make_store):
    # A centroid (5, 5), B centroid (120, 5)
    return make_store(
        Building(1, square(0, 0)),
        Building(2, square(115, 0)),
        TripEvent(1, ts("2022-03-01T08:00:00"), ts("2022-03-01T08:10:00"), 1, 2),
        TripEvent(2, ts("2022-03-01T08:30:00"), ts("2022-03-01T08:50:00"), 1, 2),
    )


def route(flow):
    return (flow["origin_grid_x"], flow["origin_grid_y"], flow["destination_grid_x"], flow["destination_grid_y"])


def test_single_flow_between_two_buildings(two_building_store):
    flows = od_flows(two_building_store, FlowParams(cell_size=50, min_trip_count=2))["flows"]
    assert [route(f) for f in flows] == [(0, 0, 2, 0)]
    assert flows[0]["trip_count"] == 2
    assert flows[0]["avg_duration_minutes"] == 15.0


def test_threshold_drops_thin_flows(two_building_store):
    result = od_flows(two_building_store, FlowParams(cell_size=50, min_trip_count=3))
    assert result == {"flows": [], "nodes": []}


def test_default_threshold_is_ten(two_building_store):
    assert od_flows(two_building_store, FlowParams())["flows"] == []


def test_city_flows(city_store):
    result = od_flows(city_store, FlowParams(cell_size=50, min_trip_count=1))
    flows = result["flows"]
    assert [(route(f), f["trip_count"]) for f in flows] == [
        ((0, 0, 2, 0), 2),
        ((2, 0, 0, 0), 1),
    ]
    first = flows[0]
    assert first["avg_duration_minutes"] == pytest.approx(15.0)
    # mean of the raw building centroids, not the cell center
    assert (first["origin_center_longitude"], first["origin_center_latitude"]) == pytest.approx((15.0, 15.0))
    assert (first["destination_center_longitude"], first["destination_center_latitude"]) == pytest.approx((120.0, 5.0))
    assert flows[1]["avg_duration_minutes"] == pytest.approx(12.0)


def test_no_self_flows(city_store):
    flows = od_flows(city_store, FlowParams(cell_size=1000, min_trip_count=1))["flows"]
    assert flows == []


def test_flow_range_filters_on_start_time(city_store):
    params = FlowParams(start=datetime(2022, 3, 1, 17), cell_size=50, min_trip_count=1)
    assert [route(f) for f in od_flows(city_store, params)["flows"]] == [(2, 0, 0, 0)]


def test_nodes_total_retained_flows(city_store):
    result = od_flows(city_store, FlowParams(cell_size=50, min_trip_count=1))
    assert result["nodes"] == [
        {"grid_x": 0, "grid_y": 0, "outbound_trips": 2, "inbound_trips": 1},
        {"grid_x": 2, "grid_y": 0, "outbound_trips": 1, "inbound_trips": 2},
    ]


def test_flow_nodes_of_nothing():
    assert flow_nodes([]) == []

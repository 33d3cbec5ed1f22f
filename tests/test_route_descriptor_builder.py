from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from agents.route_verification import route_descriptor_builder
from agents.route_verification.errors import InsufficientWaypoints
from agents.route_verification.route_models import WaypointType

from conftest import make_geocoded

ORIGIN = WaypointType.ORIGIN
DEST = WaypointType.DESTINATION


def fixed_clock():
    return datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


def test_builds_descriptor_shape():
    geocoded = [
        make_geocoded(1, 39.09, -94.57, ORIGIN, "Kansas City, MO"),
        make_geocoded(2, 38.95, -92.33, address="Columbia, MO"),
        make_geocoded(3, 38.67, -89.98, DEST, "Collinsville, IL"),
    ]

    route = route_descriptor_builder.build(geocoded, clock=fixed_clock).to_dict()

    assert route["origin"] == {
        "lat": 39.09, "lng": -94.57,
        "address": "Kansas City, MO", "formattedAddress": "Kansas City, MO, XX, USA",
    }
    assert route["destination"]["address"] == "Collinsville, IL"
    assert [wp["address"] for wp in route["waypoints"]] == ["Columbia, MO"]
    assert route["travelMode"] == "DRIVING"
    assert route["timestamp"] == "2025-03-14T09:30:00.000+00:00"


def test_one_geocoded_waypoint_is_insufficient():
    geocoded = [
        make_geocoded(1, 39.09, -94.57, ORIGIN),
        make_geocoded(2, 0, 0, DEST, geocoded=False),
    ]

    with pytest.raises(InsufficientWaypoints) as exc_info:
        route_descriptor_builder.build(geocoded)

    assert exc_info.value.found == 1


def test_empty_input_is_insufficient():
    with pytest.raises(InsufficientWaypoints):
        route_descriptor_builder.build([])


def test_untyped_endpoints_fall_back_to_first_and_last():
    geocoded = [
        make_geocoded(3, 0.0, 6.0, address="C"),
        make_geocoded(1, 0.0, 0.0, address="A"),
        make_geocoded(2, 0.0, 3.0, address="B"),
        make_geocoded(4, 0.0, 9.0, address="D"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert route.origin.address == "A"
    assert route.destination.address == "D"
    assert [p.address for p in route.waypoints] == ["B", "C"]


def test_failed_entries_are_excluded():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(2, 0.0, 2.0, address="B"),
        make_geocoded(3, 0.0, 0.0, address="lost", geocoded=False),
        make_geocoded(4, 0.0, 6.0, address="C"),
        make_geocoded(5, 0.0, 9.0, DEST, "D"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert "lost" not in [p.address for p in route.points()]
    assert [p.address for p in route.waypoints] == ["B", "C"]


def test_optimizer_runs_on_intermediate_waypoints():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(2, 0.0, 5.0, address="B"),
        make_geocoded(3, 25.0, 5.0, address="far"),
        make_geocoded(4, 0.0, 10.0, DEST, "D"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert [p.address for p in route.waypoints] == ["B"]


def test_detour_threshold_is_configurable():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(2, 0.0, 5.0, address="B"),
        make_geocoded(3, 25.0, 5.0, address="far"),
        make_geocoded(4, 0.0, 10.0, DEST, "D"),
    ]

    route = route_descriptor_builder.build(geocoded, max_detour_ratio=50.0)

    assert [p.address for p in route.waypoints] == ["B", "far"]


def test_only_origin_typed_entries_still_yield_distinct_destination():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(2, 0.0, 5.0, ORIGIN, "B"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert route.origin.address == "A"
    assert route.destination.address == "B"
    assert route.waypoints == ()


def test_order_is_non_decreasing_across_route():
    geocoded = [
        make_geocoded(5, 0.0, 9.0, DEST, "E"),
        make_geocoded(2, 0.1, 2.0, address="B"),
        make_geocoded(1, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(4, -0.1, 7.0, address="D"),
        make_geocoded(3, 0.0, 5.0, address="C"),
    ]

    route = route_descriptor_builder.build(geocoded)

    orders = [p.order for p in route.points()]
    assert orders == sorted(orders)
    assert orders == [1, 2, 3, 4, 5]


def test_entries_outside_endpoint_range_are_dropped():
    geocoded = [
        make_geocoded(1, 0.0, -1.0, address="before-origin"),
        make_geocoded(2, 0.0, 0.0, ORIGIN, "A"),
        make_geocoded(3, 0.0, 5.0, address="B"),
        make_geocoded(4, 0.0, 10.0, DEST, "D"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert [p.address for p in route.points()] == ["A", "B", "D"]


def test_descriptor_is_immutable():
    route = route_descriptor_builder.build([
        make_geocoded(1, 0.0, 0.0, ORIGIN),
        make_geocoded(2, 0.0, 1.0, DEST),
    ])

    with pytest.raises(FrozenInstanceError):
        route.travel_mode = "WALKING"
    with pytest.raises(FrozenInstanceError):
        route.origin.lat = 1.0


def test_origin_labelled_on_last_row_falls_back_to_first_and_last():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, address="A"),
        make_geocoded(2, 0.0, 3.0, address="B"),
        make_geocoded(3, 0.0, 6.0, ORIGIN, "C"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert (route.origin.address, route.destination.address) == ("A", "C")
    assert [p.order for p in route.points()] == [1, 2, 3]


def test_destination_labelled_before_origin_is_not_used():
    geocoded = [
        make_geocoded(1, 0.0, 0.0, DEST, "A"),
        make_geocoded(2, 0.0, 3.0, ORIGIN, "B"),
        make_geocoded(3, 0.0, 6.0, address="C"),
        make_geocoded(4, 0.0, 9.0, address="D"),
    ]

    route = route_descriptor_builder.build(geocoded)

    assert (route.origin.address, route.destination.address) == ("B", "D")
    orders = [p.order for p in route.points()]
    assert orders == sorted(orders)

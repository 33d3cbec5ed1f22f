import pytest

from agents.route_verification import distance_engine, route_optimizer
from agents.route_verification.route_models import WaypointType

from conftest import make_geocoded


@pytest.fixture
def origin():
    return make_geocoded(1, 0.0, 0.0, WaypointType.ORIGIN, "A")


@pytest.fixture
def destination():
    return make_geocoded(9, 0.0, 10.0, WaypointType.DESTINATION, "D")


def test_keeps_on_path_and_drops_far_off_path(origin, destination):
    on_path = make_geocoded(2, 0.0, 5.0, address="B")
    far_off = make_geocoded(3, 20.0, 5.0, address="C")

    kept = route_optimizer.optimize(origin, [on_path, far_off], destination)

    assert [wp.address for wp in kept] == ["B"]
    assert distance_engine.detour_ratio(on_path, far_off, destination) > 3.0


def test_moderate_detour_is_kept_at_default_threshold(origin, destination):
    # (5, 5) seen from B = (0, 5): ratio ≈ 2.41
    on_path = make_geocoded(2, 0.0, 5.0, address="B")
    moderate = make_geocoded(3, 5.0, 5.0, address="C")

    ratio = distance_engine.detour_ratio(on_path, moderate, destination)
    assert 2.0 < ratio < 3.0

    assert len(route_optimizer.optimize(origin, [on_path, moderate], destination)) == 2
    assert [wp.address for wp in route_optimizer.optimize(
        origin, [on_path, moderate], destination, max_detour_ratio=2.0,
    )] == ["B"]


def test_dropped_waypoint_does_not_advance_cursor(origin, destination):
    far_off = make_geocoded(2, 40.0, 5.0, address="far")
    # close to far_off, so it would pass if the cursor had moved there
    beside_far = make_geocoded(3, 38.0, 0.0, address="beside-far")
    near_origin = make_geocoded(4, 0.5, 1.0, address="near")

    assert distance_engine.detour_ratio(far_off, beside_far, destination) <= 3.0

    kept = route_optimizer.optimize(origin, [far_off, beside_far, near_origin], destination)

    assert [wp.address for wp in kept] == ["near"]


def test_duplicate_localities_are_kept(origin, destination):
    first = make_geocoded(2, 0.0, 3.0, address="Columbia, MO")
    second = make_geocoded(3, 0.0, 6.0, address="Columbia, MO")

    kept = route_optimizer.optimize(origin, [first, second], destination)

    assert len(kept) == 2


def test_empty_waypoints(origin, destination):
    assert route_optimizer.optimize(origin, [], destination) == []


def test_kept_waypoints_respect_threshold_against_previous_kept(origin, destination):
    candidates = [
        make_geocoded(2, 0.2, 1.0),
        make_geocoded(3, 15.0, 2.0),
        make_geocoded(4, -0.3, 4.0),
        make_geocoded(5, -25.0, 6.0),
        make_geocoded(6, 0.1, 8.0),
    ]
    kept = route_optimizer.optimize(origin, candidates, destination)

    previous = origin
    for wp in kept:
        assert distance_engine.detour_ratio(previous, wp, destination) <= 3.0
        previous = wp
    assert [wp.order for wp in kept] == sorted(wp.order for wp in kept)
    assert [wp.order for wp in kept] == [2, 4, 6]


def test_far_waypoint_on_round_trip_is_dropped():
    yard = make_geocoded(1, 0.0, 0.0, WaypointType.ORIGIN, "Yard")
    back_to_yard = make_geocoded(9, 0.0, 0.0, WaypointType.DESTINATION, "Yard")
    far = make_geocoded(2, 60.0, 120.0, address="Far")

    assert route_optimizer.optimize(yard, [far], back_to_yard) == []


def test_cursor_on_destination_coordinates_rejects_later_far_point(origin, destination):
    at_destination = make_geocoded(2, 0.0, 10.0, address="D-yard")
    far = make_geocoded(3, 30.0, 40.0, address="Far")
    same_spot = make_geocoded(4, 0.0, 10.0, address="D-gate")

    kept = route_optimizer.optimize(origin, [at_destination, far, same_spot], destination)

    assert [wp.address for wp in kept] == ["D-yard", "D-gate"]

"""
Integration tests for the NavigationSystem facade.
Persistence goes to tmp_path; voice output is captured in a list.
"""

import json

import pytest

from navigation.guidance.models import Coordinate
from navigation.guidance.navigator import NavigationSystem
from navigation.guidance.polyline import PolylineDecodeError, decode, encode
from navigation.guidance.states import Blocked, Finished, Idle, Navigating


@pytest.fixture
def nav(config, clock):
    system = NavigationSystem(config, clock=clock)
    yield system
    system.close()


def _drive(nav):
    nav.update(Coordinate(0.0, 0.0))
    nav.update(Coordinate(0.0, 0.005))
    return nav.update(Coordinate(0.0, 0.0099))


class TestSession:
    """Tests for start / update / stop through the facade."""

    @pytest.mark.unit
    def test_start_saves_route(self, nav, config, two_step_route):
        ok, msg = nav.start_navigation(two_step_route)
        assert ok
        assert msg == "Route ready. 2 steps."
        assert nav.is_active
        assert nav.engine.route is two_step_route

        with open(config.route_filepath, encoding="utf-8") as f:
            assert json.load(f)["step_count"] == 2

    @pytest.mark.unit
    def test_blocked_start_returns_reason(self, config, clock, two_step_route):
        nav = NavigationSystem(config, nav_entitled=lambda: False, clock=clock)
        ok, msg = nav.start_navigation(two_step_route)
        assert not ok
        assert msg == "Navigation requires Plus or Pro subscription"
        assert nav.trip_history() == []

    @pytest.mark.unit
    def test_arrival_records_trip(self, nav, two_step_route):
        nav.start_navigation(two_step_route)
        state = _drive(nav)
        assert isinstance(state, Finished)

        (trip,) = nav.trip_history()
        assert trip.arrived
        assert trip.destination_name == "Harbour"
        assert trip.distance_meters == pytest.approx(1100.8, abs=1.0)
        path = decode(trip.encoded_path)
        assert len(path) == 3
        assert path[-1].longitude == pytest.approx(0.0099)

    @pytest.mark.unit
    def test_session_log_has_one_line_per_fix(self, nav, config, two_step_route):
        nav.start_navigation(two_step_route)
        _drive(nav)
        nav.update(Coordinate(0.0, 0.0099))  # after finish, not logged

        with open(config.session_filepath, encoding="utf-8") as f:
            kinds = [json.loads(line)["kind"] for line in f]
        assert kinds == ["navigating", "navigating", "finished"]

    @pytest.mark.unit
    def test_stop_records_abandoned_trip(self, nav, two_step_route):
        nav.start_navigation(two_step_route)
        nav.update(Coordinate(0.0, 0.001))
        nav.stop_navigation()

        assert isinstance(nav.state, Idle)
        (trip,) = nav.trip_history()
        assert not trip.arrived
        assert trip.encoded_path == encode([Coordinate(0.0, 0.001)])

    @pytest.mark.unit
    def test_restart_closes_previous_trip(self, nav, two_step_route, three_step_route):
        nav.start_navigation(two_step_route)
        nav.start_navigation(three_step_route)

        assert [t.arrived for t in nav.trip_history()] == [False]
        assert nav.engine.route is three_step_route

    @pytest.mark.unit
    def test_restart_records_distance_of_previous_trip(self, nav, two_step_route, three_step_route):
        nav.start_navigation(two_step_route)
        nav.update(Coordinate(0.0, 0.001))
        nav.update(Coordinate(0.0, 0.002))
        traveled = nav.engine.distance_traveled_m
        assert traveled > 100.0

        assert nav.start_navigation(three_step_route)[0]
        (trip,) = nav.trip_history()
        assert trip.distance_meters == traveled
        assert nav.engine.distance_traveled_m == 0.0

    @pytest.mark.unit
    def test_blocked_restart_ends_running_trip(self, config, clock, two_step_route, three_step_route):
        gate = {"blocked": False}
        nav = NavigationSystem(config, safe_mode_active=lambda: gate["blocked"], clock=clock)
        nav.start_navigation(two_step_route)
        nav.update(Coordinate(0.0, 0.001))
        nav.update(Coordinate(0.0, 0.002))
        traveled = nav.engine.distance_traveled_m

        gate["blocked"] = True
        ok, msg = nav.start_navigation(three_step_route)

        assert not ok
        assert msg == "Safe Mode is active"
        assert isinstance(nav.state, Blocked)
        assert nav.engine.route is two_step_route
        (trip,) = nav.trip_history()
        assert not trip.arrived
        assert trip.distance_meters == traveled
        assert len(decode(trip.encoded_path)) == 2

        # Nothing left open for stop() to record twice.
        nav.stop_navigation()
        assert len(nav.trip_history()) == 1

    @pytest.mark.unit
    def test_recalculation_flow(self, nav, two_step_route, three_step_route):
        nav.start_navigation(two_step_route)
        nav.request_recalculation()
        assert nav.update_route(three_step_route)
        state = nav.state
        assert isinstance(state, Navigating)
        assert state.total_steps == 3


class TestAlongRouteSearch:
    """Tests for find_along_route() and filter_encoded()."""

    @pytest.mark.unit
    def test_phrasing_filters_to_route(self, nav, two_step_route):
        nav.start_navigation(two_step_route)
        near = Coordinate(0.001, 0.005)
        far = Coordinate(1.0, 0.005)
        assert nav.find_along_route("coffee on my way", [far, near]) == [near]

    @pytest.mark.unit
    def test_plain_query_unfiltered(self, nav, two_step_route):
        nav.start_navigation(two_step_route)
        candidates = (Coordinate(1.0, 0.005), Coordinate(0.001, 0.005))
        assert nav.find_along_route("coffee", candidates) == list(candidates)

    @pytest.mark.unit
    def test_no_active_route_unfiltered(self, nav):
        candidates = [Coordinate(1.0, 0.005)]
        assert nav.find_along_route("coffee along my route", candidates) == candidates

    @pytest.mark.unit
    def test_filter_encoded(self, nav):
        encoded = encode([Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)])
        near = Coordinate(0.001, 0.5)
        far = Coordinate(0.5, 0.5)
        assert nav.filter_encoded([near, far], encoded) == [near]
        assert nav.filter_encoded([near, far], encoded, tolerance_m=100_000.0) == [near, far]

    @pytest.mark.unit
    def test_filter_encoded_bad_polyline(self, nav):
        with pytest.raises(PolylineDecodeError):
            nav.filter_encoded([Coordinate(0, 0)], "_p~iF")


class TestVoiceWiring:
    """Tests for the optional voice prompter."""

    @pytest.mark.unit
    def test_no_speaker_no_voice(self, nav):
        assert nav.voice is None

    @pytest.mark.unit
    def test_speaker_hears_session(self, config, clock, wait, two_step_route):
        spoken = []
        nav = NavigationSystem(config, clock=clock, speaker=spoken.append)
        try:
            nav.start_navigation(two_step_route)
            nav.stop_navigation()
            assert wait(lambda: len(spoken) == 2)
            assert spoken == ["Navigation started.", "Navigation stopped."]
        finally:
            nav.close()

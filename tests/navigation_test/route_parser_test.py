"""
Unit tests for Directions JSON ingestion.
"""

import copy

import pytest

from navigation.guidance.models import Coordinate, ManeuverKind
from navigation.guidance.route_parser import RouteParseError, parse_directions, strip_html

SAMPLE_PAYLOAD = {
    "status": "OK",
    "routes": [{
        "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
        "legs": [{
            "distance": {"value": 1500},
            "duration": {"value": 300},
            "end_address": "1 Harbour Way",
            "end_location": {"lat": 43.252, "lng": -126.453},
            "steps": [
                {
                    "html_instructions": "Head <b>north</b> on <b>Main&nbsp;St</b>",
                    "distance": {"value": 500},
                    "end_location": {"lat": 40.7, "lng": -120.95},
                },
                {
                    "html_instructions": "Turn <b>left</b> onto <b>Harbour Way</b>"
                                         "<div style=\"font-size:0.9em\">Destination will be on the right</div>",
                    "maneuver": "turn-left",
                    "distance": {"value": 1000},
                    "end_location": {"lat": 43.252, "lng": -126.453},
                },
            ],
        }],
    }],
}


@pytest.fixture
def payload():
    return copy.deepcopy(SAMPLE_PAYLOAD)


class TestStripHtml:
    """Tests for html_instructions cleanup."""

    @pytest.mark.unit
    def test_tags_and_entities(self):
        assert strip_html("Turn <b>left</b> onto <b>A&amp;B&nbsp;Road</b>") == "Turn left onto A&B Road"

    @pytest.mark.unit
    def test_block_tags_become_spaces(self):
        assert strip_html("Go<div>Toll road</div>") == "Go Toll road"

    @pytest.mark.unit
    def test_none_is_empty(self):
        assert strip_html(None) == ""


class TestParseDirections:
    """Tests for parse_directions()."""

    @pytest.mark.unit
    def test_steps_and_totals(self, payload):
        route = parse_directions(payload)

        assert len(route.steps) == 3
        assert route.total_distance_meters == 1500.0
        assert route.total_duration_seconds == 300
        assert len(route.polyline) == 3
        assert route.polyline[0].latitude == pytest.approx(38.5)

    @pytest.mark.unit
    def test_first_step_without_maneuver_is_depart(self, payload):
        first = parse_directions(payload).steps[0]
        assert first.maneuver_kind == ManeuverKind.DEPART
        assert first.instruction == "Head north on Main St"
        assert first.street_name == "Main St"
        assert first.location == Coordinate(40.7, -120.95)

    @pytest.mark.unit
    def test_turn_step(self, payload):
        turn = parse_directions(payload).steps[1]
        assert turn.maneuver_kind == ManeuverKind.LEFT
        assert turn.street_name == "Harbour Way"
        assert turn.distance_meters == 1000.0
        assert turn.instruction.endswith("Destination will be on the right")

    @pytest.mark.unit
    def test_arrive_step_appended(self, payload):
        arrive = parse_directions(payload).steps[-1]
        assert arrive.maneuver_kind == ManeuverKind.ARRIVE
        assert arrive.instruction == "Arrive at 1 Harbour Way"
        assert arrive.street_name == "1 Harbour Way"
        assert arrive.distance_meters == 0.0

    @pytest.mark.unit
    def test_route_flags_copied(self, payload):
        route = parse_directions(payload, is_truck_route=True, is_fallback=True)
        assert route.is_truck_route
        assert route.is_fallback

    @pytest.mark.unit
    def test_legs_are_summed(self, payload):
        leg = copy.deepcopy(payload["routes"][0]["legs"][0])
        leg["end_address"] = "Second Stop"
        payload["routes"][0]["legs"].append(leg)

        route = parse_directions(payload)
        assert route.total_distance_meters == 3000.0
        assert route.total_duration_seconds == 600
        assert route.steps[-1].street_name == "Second Stop"

    @pytest.mark.unit
    @pytest.mark.parametrize("status, message", [
        ("ZERO_RESULTS", "No route found"),
        ("REQUEST_DENIED", "request denied"),
        ("UNKNOWN_ERROR", "UNKNOWN_ERROR"),
    ])
    def test_error_status(self, payload, status, message):
        payload["status"] = status
        with pytest.raises(RouteParseError, match=message):
            parse_directions(payload)

    @pytest.mark.unit
    def test_no_routes(self):
        with pytest.raises(RouteParseError, match="No routes"):
            parse_directions({"status": "OK", "routes": []})

    @pytest.mark.unit
    def test_undecodable_polyline_is_not_an_empty_route(self, payload):
        payload["routes"][0]["overview_polyline"]["points"] = "_p~iF"
        with pytest.raises(RouteParseError, match="No usable route data"):
            parse_directions(payload)

    @pytest.mark.unit
    def test_missing_key(self, payload):
        del payload["routes"][0]["legs"][0]["steps"][0]["distance"]
        with pytest.raises(RouteParseError, match="Malformed"):
            parse_directions(payload)

    @pytest.mark.unit
    def test_out_of_range_coordinate(self, payload):
        payload["routes"][0]["legs"][0]["steps"][0]["end_location"] = {"lat": 95.0, "lng": 0.0}
        with pytest.raises(RouteParseError, match="Invalid route data"):
            parse_directions(payload)

    @pytest.mark.unit
    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_directions({"status": "NOT_FOUND"})

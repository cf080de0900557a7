"""
Shared pytest fixtures for navigation guidance tests.
"""

import time

import pytest

from navigation.guidance.models import Coordinate, ManeuverKind, NavStep, Route
from navigation.guidance.nav_config import NavConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def wait_until(predicate, timeout: float = 2.0) -> bool:
    """Poll predicate until it holds or timeout expires (for worker threads)."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return NavConfig(log_dir=str(tmp_path))


@pytest.fixture
def two_step_route():
    """
    Straight eastbound route along the equator, ~1113 m.
    Step 0 departs at (0, 0); step 1 arrives at (0, 0.01).
    """
    return Route(
        steps=(
            NavStep("Head east", ManeuverKind.DEPART, 1000.0, Coordinate(0.0, 0.0), "Equator Road"),
            NavStep("Arrive at Harbour", ManeuverKind.ARRIVE, 0.0, Coordinate(0.0, 0.01), "Harbour"),
        ),
        polyline=(Coordinate(0.0, 0.0), Coordinate(0.0, 0.01)),
        total_distance_meters=1113.0,
        total_duration_seconds=120,
    )


@pytest.fixture
def three_step_route():
    """Eastbound then northbound L-shaped route, ~2224 m."""
    return Route(
        steps=(
            NavStep("Head east", ManeuverKind.DEPART, 1112.0, Coordinate(0.0, 0.0), "First Street"),
            NavStep("Turn left onto Second Street", ManeuverKind.LEFT, 1112.0,
                    Coordinate(0.0, 0.01), "Second Street"),
            NavStep("Arrive", ManeuverKind.ARRIVE, 0.0, Coordinate(0.01, 0.01), "Depot"),
        ),
        polyline=(Coordinate(0.0, 0.0), Coordinate(0.0, 0.01), Coordinate(0.01, 0.01)),
        total_distance_meters=2224.0,
        total_duration_seconds=300,
    )


@pytest.fixture
def corridor_line():
    """Three-point straight line along the equator, 0° → 2° east."""
    return [Coordinate(0.0, 0.0), Coordinate(0.0, 1.0), Coordinate(0.0, 2.0)]


@pytest.fixture
def wait():
    return wait_until

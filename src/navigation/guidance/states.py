# states.py
# Navigation state machine states and one-shot navigation events.
# Consumers dispatch with isinstance(); every class here is immutable.

from dataclasses import dataclass
from typing import Optional, Union

from .models import Coordinate, NavStep


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    """No active route."""


@dataclass(frozen=True)
class Navigating:
    current_step: NavStep
    next_step: Optional[NavStep]
    current_step_index: int
    total_steps: int
    progress_pct: float
    distance_to_next_meters: float
    distance_remaining_meters: float
    eta_seconds: int
    current_bearing_degrees: Optional[float] = None


@dataclass(frozen=True)
class OffRoute:
    reason: str
    deviation_meters: float
    last_known_location: Coordinate


@dataclass(frozen=True)
class Recalculating:
    reason: str


@dataclass(frozen=True)
class Finished:
    total_distance_traveled_meters: float
    total_time_seconds: int
    destination_name: Optional[str] = None


@dataclass(frozen=True)
class Blocked:
    """A start() precondition failed. Only stop() or start() leave this state."""
    reason: str


NavigationState = Union[Idle, Navigating, OffRoute, Recalculating, Finished, Blocked]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavigationStarted:
    pass


@dataclass(frozen=True)
class StepChanged:
    step: NavStep
    index: int


@dataclass(frozen=True)
class ApproachingStep:
    step: NavStep
    distance_meters: float


@dataclass(frozen=True)
class OffRouteDetected:
    deviation_meters: float


@dataclass(frozen=True)
class RouteRecalculated:
    pass


@dataclass(frozen=True)
class Arrived:
    destination_name: Optional[str] = None


@dataclass(frozen=True)
class NavigationStopped:
    pass


NavigationEvent = Union[
    NavigationStarted,
    StepChanged,
    ApproachingStep,
    OffRouteDetected,
    RouteRecalculated,
    Arrived,
    NavigationStopped,
]

# Events a bounded subscriber buffer must never discard.
CRITICAL_EVENTS = (NavigationStarted, Arrived)


def describe(item) -> str:
    """Short snake_case tag for a state or event, used in logs."""
    name = type(item).__name__
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("_")
        out.append(ch.lower())
    return "".join(out)

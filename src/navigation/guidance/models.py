# models.py
# Shared data structures and enums used across all guidance modules.

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """Immutable geographic coordinate in decimal degrees."""
    latitude: float
    longitude: float

    @property
    def lat(self) -> float:
        return self.latitude

    @property
    def lon(self) -> float:
        return self.longitude

    def validate(self) -> "Coordinate":
        """Raise ValueError unless the coordinate is finite and in range."""
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise ValueError(f"Non-finite coordinate: {self}")
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")
        return self

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    @staticmethod
    def from_tuple(pair) -> "Coordinate":
        return Coordinate(float(pair[0]), float(pair[1]))

    def to_dict(self) -> dict:
        return {"lat": self.latitude, "lon": self.longitude}

    @staticmethod
    def from_dict(d: dict) -> "Coordinate":
        return Coordinate(float(d["lat"]), float(d["lon"]))


# ---------------------------------------------------------------------------
# Maneuvers
# ---------------------------------------------------------------------------

class ManeuverKind(Enum):
    STRAIGHT     = "straight"
    LEFT         = "left"
    RIGHT        = "right"
    SLIGHT_LEFT  = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    SHARP_LEFT   = "sharp_left"
    SHARP_RIGHT  = "sharp_right"
    UTURN        = "uturn"
    MERGE        = "merge"
    EXIT         = "exit"
    ROUNDABOUT   = "roundabout"
    FERRY        = "ferry"
    ARRIVE       = "arrive"
    DEPART       = "depart"

    @staticmethod
    def from_google(maneuver: Optional[str]) -> "ManeuverKind":
        """Map a Google Directions maneuver string; unknown values go straight."""
        if not maneuver:
            return ManeuverKind.STRAIGHT
        return _GOOGLE_MANEUVERS.get(maneuver.strip().lower(), ManeuverKind.STRAIGHT)


_GOOGLE_MANEUVERS = {
    "turn-left":         ManeuverKind.LEFT,
    "turn-right":        ManeuverKind.RIGHT,
    "turn-slight-left":  ManeuverKind.SLIGHT_LEFT,
    "turn-slight-right": ManeuverKind.SLIGHT_RIGHT,
    "turn-sharp-left":   ManeuverKind.SHARP_LEFT,
    "turn-sharp-right":  ManeuverKind.SHARP_RIGHT,
    "uturn-left":        ManeuverKind.UTURN,
    "uturn-right":       ManeuverKind.UTURN,
    "merge":             ManeuverKind.MERGE,
    "ramp-left":         ManeuverKind.EXIT,
    "ramp-right":        ManeuverKind.EXIT,
    "fork-left":         ManeuverKind.SLIGHT_LEFT,
    "fork-right":        ManeuverKind.SLIGHT_RIGHT,
    "keep-left":         ManeuverKind.SLIGHT_LEFT,
    "keep-right":        ManeuverKind.SLIGHT_RIGHT,
    "roundabout-left":   ManeuverKind.ROUNDABOUT,
    "roundabout-right":  ManeuverKind.ROUNDABOUT,
    "ferry":             ManeuverKind.FERRY,
    "ferry-train":       ManeuverKind.FERRY,
    "straight":          ManeuverKind.STRAIGHT,
}


# ---------------------------------------------------------------------------
# Route step
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NavStep:
    """A single maneuver in a route."""
    instruction: str
    maneuver_kind: ManeuverKind
    distance_meters: float
    location: Coordinate
    street_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "instruction": self.instruction,
            "maneuver_kind": self.maneuver_kind.value,
            "distance_meters": self.distance_meters,
            "street_name": self.street_name,
            "location": self.location.to_dict(),
        }

    @staticmethod
    def from_dict(d: dict) -> "NavStep":
        return NavStep(
            instruction=d["instruction"],
            maneuver_kind=ManeuverKind(d["maneuver_kind"]),
            distance_meters=float(d["distance_meters"]),
            location=Coordinate.from_dict(d["location"]),
            street_name=d.get("street_name"),
        )


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Route:
    """
    A precomputed route as delivered by a routing provider.

    Steps are stored as a tuple so a route handed to the engine cannot be
    mutated behind its back; recalculation replaces the whole object.
    """
    steps: Tuple[NavStep, ...]
    polyline: Tuple[Coordinate, ...]
    total_distance_meters: float
    total_duration_seconds: int
    is_truck_route: bool = False
    is_fallback: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "polyline", tuple(self.polyline))
        if len(self.polyline) < 2:
            raise ValueError(f"Route polyline needs at least 2 points, got {len(self.polyline)}.")
        for point in self.polyline:
            point.validate()
        for step in self.steps:
            step.location.validate()
            if step.distance_meters < 0:
                raise ValueError(f"Negative step distance: {step.distance_meters}")
        if self.total_distance_meters < 0 or self.total_duration_seconds < 0:
            raise ValueError("Route totals must be non-negative.")

    @property
    def destination(self) -> Optional[NavStep]:
        return self.steps[-1] if self.steps else None

    def to_dict(self) -> dict:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "polyline": [p.to_dict() for p in self.polyline],
            "total_distance_meters": self.total_distance_meters,
            "total_duration_seconds": self.total_duration_seconds,
            "is_truck_route": self.is_truck_route,
            "is_fallback": self.is_fallback,
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            steps=tuple(NavStep.from_dict(s) for s in d["steps"]),
            polyline=tuple(Coordinate.from_dict(p) for p in d["polyline"]),
            total_distance_meters=float(d["total_distance_meters"]),
            total_duration_seconds=int(d["total_duration_seconds"]),
            is_truck_route=bool(d.get("is_truck_route", False)),
            is_fallback=bool(d.get("is_fallback", False)),
        )


# ---------------------------------------------------------------------------
# Trip summary
# ---------------------------------------------------------------------------

@dataclass
class TripSummary:
    """A completed (or abandoned) trip as written to the trip log."""
    start_timestamp: float
    end_timestamp: float
    distance_meters: float
    encoded_path: str
    destination_name: Optional[str] = None
    arrived: bool = False
    path: List[Coordinate] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        return {
            "start_timestamp": self.start_timestamp,
            "end_timestamp": self.end_timestamp,
            "distance_meters": self.distance_meters,
            "encoded_path": self.encoded_path,
            "destination_name": self.destination_name,
            "arrived": self.arrived,
        }

    @staticmethod
    def from_dict(d: dict) -> "TripSummary":
        return TripSummary(
            start_timestamp=float(d["start_timestamp"]),
            end_timestamp=float(d["end_timestamp"]),
            distance_meters=float(d["distance_meters"]),
            encoded_path=d["encoded_path"],
            destination_name=d.get("destination_name"),
            arrived=bool(d.get("arrived", False)),
        )

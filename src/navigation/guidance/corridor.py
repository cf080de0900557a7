# corridor.py
# Along-route filtering: which candidate places lie within a buffer
# around the route polyline, ordered by how far along the route they are.
#
# Usage:
#   polyline = polyline_codec.decode(route_json["overview_polyline"]["points"])
#   stops = filter_along_route(places, polyline, key=lambda p: p.coord)

import logging
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from .geo_utils import distance_point_to_polyline, segment_distances
from .models import Coordinate

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CORRIDOR_M = 2000.0

# Substrings (lower-case) that mark a search as "along my route".
ALONG_ROUTE_PHRASES = (
    "along my route",
    "along the route",
    "on my way",
    "on the way",
    "next ",            # "next gas station"
    "upcoming",
    "ahead",
    "coming up",
    "before i arrive",
    "before i get there",
)


def is_point_along_route(
    point: Coordinate,
    polyline: Sequence[Coordinate],
    tolerance_m: float = DEFAULT_CORRIDOR_M,
) -> bool:
    """True if point is within tolerance_m of the polyline (needs >= 2 points)."""
    if len(polyline) < 2:
        return False
    return distance_point_to_polyline(point, polyline) <= tolerance_m


def nearest_segment(point: Coordinate, polyline: Sequence[Coordinate]) -> Tuple[int, float]:
    """
    Index of the closest polyline segment and the distance to it in metres.
    Ties go to the lowest index.
    """
    distances = segment_distances(point, polyline)
    if distances.size == 0:
        return -1, float("inf")
    idx = int(np.argmin(distances))
    return idx, float(distances[idx])


def filter_along_route(
    candidates: Sequence[T],
    polyline: Sequence[Coordinate],
    tolerance_m: float = DEFAULT_CORRIDOR_M,
    key: Optional[Callable[[T], Coordinate]] = None,
) -> List[T]:
    """
    Keep candidates within the corridor, sorted by nearest segment index.

    Args:
        candidates:  Places to filter (Coordinates, or anything with key()).
        polyline:    Decoded route geometry.
        tolerance_m: Corridor half-width in metres.
        key:         Extracts the Coordinate from a candidate; identity if omitted.

    Returns:
        Surviving candidates in route order. Candidates sharing a segment
        keep their input order.
    """
    if len(polyline) < 2:
        return []

    get_coord = key or (lambda c: c)
    ranked: List[Tuple[int, T]] = []
    for candidate in candidates:
        segment, distance = nearest_segment(get_coord(candidate), polyline)
        if distance <= tolerance_m:
            ranked.append((segment, candidate))

    ranked.sort(key=lambda item: item[0])
    logger.debug(f"{len(ranked)}/{len(candidates)} candidates within {tolerance_m:.0f} m of route.")
    return [candidate for _, candidate in ranked]


def contains_along_route_phrasing(text: Optional[str]) -> bool:
    """True if a search query asks for results along the active route."""
    if not text:
        return False
    lowered = text.lower()
    return any(phrase in lowered for phrase in ALONG_ROUTE_PHRASES)

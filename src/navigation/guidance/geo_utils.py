# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no state. Inputs are assumed validated upstream.

import math
from typing import Sequence

import numpy as np

from .models import Coordinate


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        a: Origin.
        b: Destination.

    Returns:
        Distance in metres. Symmetric, and 0.0 for identical points.
    """
    d_lat = math.radians(b.latitude - a.latitude)
    d_lon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(d_lon / 2) ** 2
    )
    h = min(1.0, h)
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def calculate_bearing(origin: Coordinate, target: Coordinate) -> float:
    """
    Forward azimuth (initial bearing) from origin to target in degrees [0, 360).
    """
    rlat1 = math.radians(origin.latitude)
    rlat2 = math.radians(target.latitude)
    d_lon = math.radians(target.longitude - origin.longitude)
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    bearing = (math.degrees(math.atan2(y, x)) + 360) % 360
    # (-tiny + 360) % 360 can round to exactly 360.0
    return 0.0 if bearing >= 360.0 else bearing


def distance_point_to_segment(point: Coordinate, seg_start: Coordinate, seg_end: Coordinate) -> float:
    """
    Distance in metres from a point to a segment.

    The projection parameter t is computed in planar degree space
    (longitude as x, latitude as y) and clamped to [0, 1]; the distance to
    the projected location is then measured with haversine.
    """
    dx = seg_end.longitude - seg_start.longitude
    dy = seg_end.latitude - seg_start.latitude
    denom = dx * dx + dy * dy
    if denom == 0:
        return haversine_distance(point, seg_start)

    px = point.longitude - seg_start.longitude
    py = point.latitude - seg_start.latitude
    t = max(0.0, min(1.0, (px * dx + py * dy) / denom))

    nearest = Coordinate(seg_start.latitude + t * dy, seg_start.longitude + t * dx)
    return haversine_distance(point, nearest)


def segment_distances(point: Coordinate, polyline: Sequence[Coordinate]) -> np.ndarray:
    """
    Vectorised distance_point_to_segment() against every consecutive pair
    of a polyline.

    Returns:
        Array of length len(polyline) - 1 (empty for fewer than 2 points).
    """
    if len(polyline) < 2:
        return np.empty(0, dtype=float)

    pts = np.array([(c.latitude, c.longitude) for c in polyline], dtype=float)
    a_lat, a_lon = pts[:-1, 0], pts[:-1, 1]
    dy = pts[1:, 0] - a_lat
    dx = pts[1:, 1] - a_lon
    py = point.latitude - a_lat
    px = point.longitude - a_lon

    denom = dx * dx + dy * dy
    t = np.divide(px * dx + py * dy, denom, out=np.zeros_like(denom), where=denom != 0)
    t = np.clip(t, 0.0, 1.0)

    near_lat = a_lat + t * dy
    near_lon = a_lon + t * dx
    return _haversine_many(point.latitude, point.longitude, near_lat, near_lon)


def distance_point_to_polyline(point: Coordinate, polyline: Sequence[Coordinate]) -> float:
    """
    Minimum distance in metres from a point to any segment of a polyline.

    Returns:
        math.inf for an empty polyline, the direct distance for a single
        point, otherwise the minimum over all segments.
    """
    if not polyline:
        return math.inf
    if len(polyline) == 1:
        return haversine_distance(point, polyline[0])
    return float(segment_distances(point, polyline).min())


def _haversine_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """haversine_distance() from one point to many, in metres."""
    d_lat = np.radians(lats - lat)
    d_lon = np.radians(lons - lon)
    h = (
        np.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat)) * np.cos(np.radians(lats)) * np.sin(d_lon / 2) ** 2
    )
    h = np.minimum(h, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))

# polyline.py
# Encoded polyline format (Google-compatible) and Douglas-Peucker simplification.
#
# Format: each coordinate is stored as the delta from the previous one,
# scaled by 1e5, zig-zag signed, split into 5-bit chunks (low chunk first)
# with 0x20 as the continuation bit, each chunk offset by 63 into ASCII.

import math
from typing import Iterable, List, Sequence, Tuple

from .geo_utils import distance_point_to_segment
from .models import Coordinate


PRECISION = 1e5
_CHAR_OFFSET = 63
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


class PolylineDecodeError(ValueError):
    """Encoded polyline is truncated or contains characters outside 63..126."""


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------

def _read_value(encoded: str, index: int) -> Tuple[int, int]:
    """Read one zig-zag varint starting at index. Returns (value, next_index)."""
    result = 0
    shift = 0
    while True:
        if index >= len(encoded):
            raise PolylineDecodeError(
                f"Polyline truncated mid-value at offset {index} (length {len(encoded)})."
            )
        b = ord(encoded[index]) - _CHAR_OFFSET
        if b < 0 or b > 63:
            raise PolylineDecodeError(
                f"Invalid polyline character {encoded[index]!r} at offset {index}."
            )
        index += 1
        result |= (b & _CHUNK_MASK) << shift
        shift += 5
        if b < _CONTINUATION:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode(encoded: str) -> List[Coordinate]:
    """
    Decode an encoded polyline string.

    Args:
        encoded: ASCII polyline text. An empty string decodes to [].

    Returns:
        List of Coordinates, rounded to 1e-5 degrees.

    Raises:
        PolylineDecodeError: Input ends inside a value (or between a
            latitude and its longitude) or contains a foreign character.
    """
    coords: List[Coordinate] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        d_lat, index = _read_value(encoded, index)
        if index >= len(encoded):
            raise PolylineDecodeError("Polyline ends after a latitude with no longitude.")
        d_lon, index = _read_value(encoded, index)
        lat += d_lat
        lon += d_lon
        coords.append(Coordinate(lat / PRECISION, lon / PRECISION))

    return coords


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------

def _round(value: float) -> int:
    # Half away from zero, as the reference encoder does.
    scaled = abs(value) * PRECISION
    return int(math.copysign(math.floor(scaled + 0.5), value))


def _write_value(value: int, out: List[str]) -> None:
    value = ~(value << 1) if value < 0 else value << 1
    while value >= _CONTINUATION:
        out.append(chr((_CONTINUATION | (value & _CHUNK_MASK)) + _CHAR_OFFSET))
        value >>= 5
    out.append(chr(value + _CHAR_OFFSET))


def encode(coordinates: Iterable[Coordinate]) -> str:
    """
    Encode coordinates into polyline text. The first point is written as
    a delta from (0, 0).
    """
    out: List[str] = []
    prev_lat = 0
    prev_lon = 0
    for c in coordinates:
        lat = _round(c.latitude)
        lon = _round(c.longitude)
        _write_value(lat - prev_lat, out)
        _write_value(lon - prev_lon, out)
        prev_lat, prev_lon = lat, lon
    return "".join(out)


# ---------------------------------------------------------------------------
# Simplify
# ---------------------------------------------------------------------------

def simplify(coordinates: Sequence[Coordinate], tolerance_m: float) -> List[Coordinate]:
    """
    Douglas-Peucker simplification.

    A point survives when it lies more than tolerance_m from the chord of
    the span being examined. Sequences shorter than 3 points are returned
    unchanged; the first and last points are always kept as-is.

    Args:
        coordinates: Input path.
        tolerance_m: Maximum perpendicular deviation to discard, in metres.

    Returns:
        A new list containing a subsequence of the input points.
    """
    points = list(coordinates)
    if len(points) < 3:
        return points

    keep = [False] * len(points)
    keep[0] = keep[-1] = True

    # Explicit stack instead of recursion; long GPS traces would blow the limit.
    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        if last - first < 2:
            continue

        max_dist = -1.0
        split = first
        for i in range(first + 1, last):
            d = distance_point_to_segment(points[i], points[first], points[last])
            if d > max_dist:
                max_dist = d
                split = i

        if max_dist > tolerance_m:
            keep[split] = True
            stack.append((split, last))
            stack.append((first, split))

    return [p for p, k in zip(points, keep) if k]

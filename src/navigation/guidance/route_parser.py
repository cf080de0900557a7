# route_parser.py
# Converts a Google Directions style JSON document into a Route.
# This is the ingestion boundary: coordinates are validated here, and a
# polyline that will not decode means "no usable route", never "empty route".

import html
import logging
import re
from typing import List, Optional

from . import polyline as polyline_codec
from .models import Coordinate, ManeuverKind, NavStep, Route

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_BOLD_RE = re.compile(r"<b>(.*?)</b>", re.IGNORECASE | re.DOTALL)

_STATUS_MESSAGES = {
    "ZERO_RESULTS":     "No route found between origin and destination",
    "NOT_FOUND":        "One or more locations could not be geocoded",
    "INVALID_REQUEST":  "Invalid request parameters",
    "REQUEST_DENIED":   "API key issue or request denied",
    "OVER_QUERY_LIMIT": "Query limit exceeded",
}


class RouteParseError(ValueError):
    """The provider payload does not contain a usable route."""


def strip_html(text: str) -> str:
    """Drop tags and decode entities from an html_instructions string."""
    text = _TAG_RE.sub(" ", text or "")
    text = html.unescape(text).replace("\xa0", " ")
    return " ".join(text.split())


def _street_name(html_instruction: str) -> Optional[str]:
    bold = _BOLD_RE.findall(html_instruction or "")
    if not bold:
        return None
    return strip_html(bold[-1]) or None


def _coord(d: dict) -> Coordinate:
    return Coordinate(float(d["lat"]), float(d["lng"])).validate()


def parse_directions(
    payload: dict,
    is_truck_route: bool = False,
    is_fallback: bool = False,
) -> Route:
    """
    Build a Route from the first route of a Directions response.

    Args:
        payload:        Parsed JSON document.
        is_truck_route: Flag copied onto the Route.
        is_fallback:    Flag copied onto the Route.

    Returns:
        Route whose last step is an ARRIVE at the final leg's end location.

    Raises:
        RouteParseError: Non-OK status, no routes, missing keys, bad
            coordinates, or an undecodable polyline.
    """
    status = payload.get("status", "OK")
    if status != "OK":
        message = _STATUS_MESSAGES.get(status, f"Directions API returned status: {status}")
        raise RouteParseError(message)

    routes = payload.get("routes") or []
    if not routes:
        raise RouteParseError("No routes found in response")

    raw = routes[0]
    try:
        encoded = raw["overview_polyline"]["points"]
        points = polyline_codec.decode(encoded)

        steps: List[NavStep] = []
        total_distance = 0.0
        total_duration = 0
        legs = raw["legs"]
        for leg in legs:
            total_distance += float(leg["distance"]["value"])
            total_duration += int(leg["duration"]["value"])
            for s in leg["steps"]:
                instruction_html = s.get("html_instructions", "")
                kind = ManeuverKind.from_google(s.get("maneuver"))
                if not steps and not s.get("maneuver"):
                    kind = ManeuverKind.DEPART
                steps.append(NavStep(
                    instruction=strip_html(instruction_html),
                    maneuver_kind=kind,
                    distance_meters=float(s["distance"]["value"]),
                    location=_coord(s["end_location"]),
                    street_name=_street_name(instruction_html),
                ))

        if not legs:
            raise RouteParseError("Route has no legs")

        last_leg = legs[-1]
        destination_name = last_leg.get("end_address")
        steps.append(NavStep(
            instruction=f"Arrive at {destination_name}" if destination_name else "Arrive at destination",
            maneuver_kind=ManeuverKind.ARRIVE,
            distance_meters=0.0,
            location=_coord(last_leg["end_location"]),
            street_name=destination_name,
        ))

        route = Route(
            steps=tuple(steps),
            polyline=tuple(points),
            total_distance_meters=total_distance,
            total_duration_seconds=total_duration,
            is_truck_route=is_truck_route,
            is_fallback=is_fallback,
        )
    except polyline_codec.PolylineDecodeError as e:
        logger.error(f"Polyline decode failed: {e}")
        raise RouteParseError(f"No usable route data: {e}") from e
    except (KeyError, TypeError) as e:
        raise RouteParseError(f"Malformed directions payload: missing {e}") from e
    except RouteParseError:
        raise
    except ValueError as e:
        raise RouteParseError(f"Invalid route data: {e}") from e

    logger.debug(
        f"Parsed route: {len(route.steps)} steps, {total_distance:.0f} m, "
        f"{total_duration} s, {len(points)} polyline points."
    )
    return route

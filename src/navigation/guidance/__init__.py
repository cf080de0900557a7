# Turn-by-turn guidance: route geometry, polyline codec, corridor search
# and the navigation state machine.

from .corridor import contains_along_route_phrasing, filter_along_route, is_point_along_route
from .engine import NavigationEngine
from .geo_utils import (
    calculate_bearing,
    distance_point_to_polyline,
    distance_point_to_segment,
    haversine_distance,
)
from .models import Coordinate, ManeuverKind, NavStep, Route, TripSummary
from .nav_config import NavConfig
from .navigator import NavigationSystem
from .polyline import PolylineDecodeError, decode, encode, simplify
from .route_parser import RouteParseError, parse_directions
from .states import (
    Arrived,
    ApproachingStep,
    Blocked,
    Finished,
    Idle,
    NavigationStarted,
    NavigationStopped,
    Navigating,
    OffRoute,
    OffRouteDetected,
    Recalculating,
    RouteRecalculated,
    StepChanged,
)

# navigator.py
# Public entry point for the navigation system.
# Owns no business logic, delegates everything to specialist modules.

import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from . import polyline as polyline_codec
from .corridor import contains_along_route_phrasing, filter_along_route
from .engine import NavigationEngine, Predicate
from .models import Coordinate, Route, TripSummary
from .nav_config import NavConfig
from .nav_logger import NavLogger
from .states import Blocked, Finished, NavigationState
from .voice_prompts import Speaker, VoicePrompter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class NavigationSystem:
    """
    High-level navigation facade.

    Typical lifecycle:
        nav = NavigationSystem(config, nav_entitled=tiers.can_navigate)
        nav.start_navigation(route)

        # Location loop:
        state = nav.update(Coordinate(lat, lon))

    Along-route search:
        stops = nav.find_along_route("next gas station", places, key=lambda p: p.coord)

    Args:
        config:           Optional NavConfig; defaults to NavConfig().
        safe_mode_active: Safety gate evaluated at start.
        nav_entitled:     Tier gate evaluated at start.
        clock:            Monotonic seconds source for the engine.
        speaker:          Voice output; None disables voice prompts.
        nav_logger:       Persistence; defaults to NavLogger(config).
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        safe_mode_active: Predicate = lambda: False,
        nav_entitled: Predicate = lambda: True,
        clock: Callable[[], float] = time.monotonic,
        speaker: Optional[Speaker] = None,
        nav_logger: Optional[NavLogger] = None,
    ) -> None:
        self.config = config or NavConfig()

        # Specialist modules
        self._engine = NavigationEngine(self.config, safe_mode_active, nav_entitled, clock)
        self._logger = nav_logger or NavLogger(self.config)
        self._voice: Optional[VoicePrompter] = None
        if speaker is not None:
            self._voice = VoicePrompter(speaker)
            self._voice.attach(self._engine.subscribe_events())

        self._trail: List[Coordinate] = []
        self._trip_started_at: Optional[float] = None

    # ------------------------------------------------------------------
    # Navigation control
    # ------------------------------------------------------------------

    def start_navigation(self, route: Route) -> Tuple[bool, str]:
        """
        Begin tracking a route.

        A running session always ends here: either the new route replaces
        it, or the engine reports Blocked. In both cases the previous trip
        is recorded as abandoned with the distance it had reached.

        Returns:
            (success, message)
        """
        was_active = self._engine.is_active
        previous_distance = self._engine.distance_traveled_m

        started = self._engine.start(route)
        if was_active:
            self._close_trip(arrived=False, distance_m=previous_distance)

        if not started:
            state = self._engine.state
            reason = state.reason if isinstance(state, Blocked) else "Navigation could not start."
            logger.warning(f"Navigation not started: {reason}")
            return False, reason

        self._logger.save_route(route)
        self._trail = []
        self._trip_started_at = time.time()

        first_instruction = route.steps[0].instruction
        logger.info(f"Route ready: {len(route.steps)} steps. First: {first_instruction}")
        return True, f"Route ready. {len(route.steps)} steps."

    def stop_navigation(self) -> None:
        """Forcibly end the current navigation session."""
        was_active = self._engine.is_active
        self._engine.stop()
        if was_active:
            self._close_trip(arrived=False)

    def request_recalculation(self) -> None:
        self._engine.request_recalculation()

    def update_route(self, route: Route) -> bool:
        ok = self._engine.update_route(route)
        if ok:
            self._logger.save_route(route)
        return ok

    # ------------------------------------------------------------------
    # Location update, call this on every position fix
    # ------------------------------------------------------------------

    def update(self, position: Coordinate) -> NavigationState:
        """
        Process a new position and return the current navigation state.

        Args:
            position: Current geographic coordinate.
        """
        was_active = self._engine.is_active
        state = self._engine.update(position)
        if not was_active:
            return state

        self._trail.append(position)
        self._logger.log_event(state, position)
        if isinstance(state, Finished):
            self._close_trip(arrived=True, destination_name=state.destination_name)
        return state

    # ------------------------------------------------------------------
    # Along-route search
    # ------------------------------------------------------------------

    def find_along_route(
        self,
        query: str,
        candidates: Sequence[T],
        key: Optional[Callable[[T], Coordinate]] = None,
        tolerance_m: Optional[float] = None,
    ) -> List[T]:
        """
        Narrow search results to the active route when the query asks for it.

        Queries without along-route phrasing, or with no route loaded,
        get the candidates back unchanged.
        """
        route = self._engine.route if self._engine.is_active else None
        if route is None or not contains_along_route_phrasing(query):
            return list(candidates)
        tolerance = tolerance_m if tolerance_m is not None else self.config.corridor_tolerance_m
        return filter_along_route(candidates, route.polyline, tolerance, key)

    def filter_encoded(
        self,
        candidates: Sequence[T],
        encoded_polyline: str,
        key: Optional[Callable[[T], Coordinate]] = None,
        tolerance_m: Optional[float] = None,
    ) -> List[T]:
        """
        Filter candidates against an encoded polyline.

        Raises:
            PolylineDecodeError: The polyline is unusable.
        """
        points = polyline_codec.decode(encoded_polyline)
        tolerance = tolerance_m if tolerance_m is not None else self.config.corridor_tolerance_m
        return filter_along_route(candidates, points, tolerance, key)

    # ------------------------------------------------------------------
    # Trip history
    # ------------------------------------------------------------------

    def _close_trip(
        self,
        arrived: bool,
        destination_name: Optional[str] = None,
        distance_m: Optional[float] = None,
    ) -> None:
        if self._trip_started_at is None:
            return
        summary = TripSummary(
            start_timestamp=self._trip_started_at,
            end_timestamp=time.time(),
            distance_meters=self._engine.distance_traveled_m if distance_m is None else distance_m,
            encoded_path=polyline_codec.encode(self._trail),
            destination_name=destination_name,
            arrived=arrived,
            path=list(self._trail),
        )
        self._logger.save_trip(summary)
        self._trip_started_at = None
        self._trail = []

    def trip_history(self) -> List[TripSummary]:
        return self._logger.load_trips()

    def close(self) -> None:
        """Release the voice worker threads."""
        if self._voice is not None:
            self._voice.close()

    # ------------------------------------------------------------------
    # Convenience read-only properties
    # ------------------------------------------------------------------

    @property
    def engine(self) -> NavigationEngine:
        return self._engine

    @property
    def voice(self) -> Optional[VoicePrompter]:
        return self._voice

    @property
    def state(self) -> NavigationState:
        return self._engine.state

    @property
    def is_active(self) -> bool:
        return self._engine.is_active

# engine.py
# Turn-by-turn state machine that tracks a device's position against an
# active route. Call start() once, then update() on every location fix.

import logging
import threading
import time
from typing import Callable, Optional

from .broadcast import EventChannel, EventSubscription, StateChannel
from .geo_utils import calculate_bearing, distance_point_to_polyline, haversine_distance
from .models import Coordinate, Route
from .nav_config import NavConfig
from .states import (
    CRITICAL_EVENTS,
    Arrived,
    ApproachingStep,
    Blocked,
    Finished,
    Idle,
    NavigationEvent,
    NavigationStarted,
    NavigationState,
    NavigationStopped,
    Navigating,
    OffRoute,
    OffRouteDetected,
    Recalculating,
    RouteRecalculated,
    StepChanged,
)

logger = logging.getLogger(__name__)

Predicate = Callable[[], bool]

BLOCKED_SAFE_MODE = "Safe Mode is active"
BLOCKED_TIER = "Navigation requires Plus or Pro subscription"
BLOCKED_INVALID_ROUTE = "Invalid route"
OFF_ROUTE_SEVERE = "Significantly off route"
OFF_ROUTE_MINOR = "Off route - recalculating"
RECALC_USER = "User requested recalculation"


class NavigationEngine:
    """
    Stateful navigation session driven by a single stream of location fixes.

    Usage:
        engine = NavigationEngine(config, safe_mode_active=..., nav_entitled=...)
        events = engine.subscribe_events()
        engine.start(route)

        # Inside location callback:
        state = engine.update(Coordinate(lat, lon))

    All public methods take one re-entrant lock, so location callbacks and
    UI calls may arrive from different threads.

    Args:
        config:           NavConfig thresholds; defaults to NavConfig().
        safe_mode_active: Returns True when navigation is safety-blocked.
        nav_entitled:     Returns True when the user's tier allows in-app navigation.
        clock:            Monotonic seconds source, injectable for tests.
    """

    def __init__(
        self,
        config: Optional[NavConfig] = None,
        safe_mode_active: Predicate = lambda: False,
        nav_entitled: Predicate = lambda: True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or NavConfig()
        self._safe_mode_active = safe_mode_active
        self._nav_entitled = nav_entitled
        self._clock = clock

        self._lock = threading.RLock()
        self._states: StateChannel[NavigationState] = StateChannel(Idle())
        self._events: EventChannel[NavigationEvent] = EventChannel(
            default_maxsize=self.config.event_buffer_size,
            critical=CRITICAL_EVENTS,
        )

        self._route: Optional[Route] = None
        self._step_index: int = 0
        self._distance_traveled: float = 0.0
        self._start_time: float = 0.0
        self._last_location: Optional[Coordinate] = None
        self._active: bool = False
        self._recalculating: bool = False

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe_state(self, callback: Callable[[NavigationState], None]) -> Callable[[], None]:
        """Callback is invoked immediately with the current state, then on every change."""
        return self._states.subscribe(callback)

    def subscribe_events(self, maxsize: Optional[int] = None) -> EventSubscription[NavigationEvent]:
        return self._events.subscribe(maxsize)

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._states.value

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def current_step_index(self) -> int:
        return self._step_index

    @property
    def distance_traveled_m(self) -> float:
        return self._distance_traveled

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def start(self, route: Route) -> bool:
        """
        Begin navigating a route.

        Returns:
            True on success. On failure the state becomes Blocked and the
            previous route data is left untouched.
        """
        with self._lock:
            reason = self._check_preconditions(route)
            if reason:
                logger.warning(f"Navigation blocked: {reason}")
                self._active = False
                self._recalculating = False
                self._states.publish(Blocked(reason))
                return False

            self._route = route
            self._step_index = 0
            self._distance_traveled = 0.0
            self._start_time = self._clock()
            self._last_location = None
            self._active = True
            self._recalculating = False

            self._states.publish(self._initial_state(route))
            self._events.publish(NavigationStarted())
            logger.info(f"Navigation started with {len(route.steps)} steps.")
            return True

    def stop(self) -> None:
        """
        End the session and return to Idle.

        Also clears a terminal Finished/Blocked state; Idle stays Idle.
        """
        with self._lock:
            if not self._active:
                if isinstance(self.state, (Finished, Blocked)):
                    self._reset()
                    self._states.publish(Idle())
                return

            self._active = False
            self._reset()
            self._states.publish(Idle())
            self._events.publish(NavigationStopped())
            logger.info("Navigation stopped by user.")

    def request_recalculation(self) -> None:
        """Enter Recalculating; the caller is expected to follow with update_route()."""
        with self._lock:
            if not self._active:
                return
            self._recalculating = True
            self._states.publish(Recalculating(RECALC_USER))
            logger.info("Route recalculation requested.")

    def update_route(self, new_route: Route) -> bool:
        """
        Replace the active route after recalculation.

        Distance traveled and elapsed time carry over; the step index restarts.

        Returns:
            False when inactive or the new route has no steps.
        """
        with self._lock:
            if not self._active:
                return False
            if not new_route.steps:
                logger.warning("Ignoring replacement route with no steps.")
                return False

            self._route = new_route
            self._step_index = 0
            self._recalculating = False

            self._states.publish(self._initial_state(new_route))
            self._events.publish(RouteRecalculated())
            logger.info(f"Route updated, {len(new_route.steps)} steps.")
            return True

    # ------------------------------------------------------------------
    # Core method, call on every location fix
    # ------------------------------------------------------------------

    def update(self, location: Coordinate) -> NavigationState:
        """
        Compare a new location to the active route.

        At most one of off-route / arrival / step advance happens per call;
        a newly current step is first evaluated on the following call.

        Args:
            location: Current device position.

        Returns:
            The state after processing this fix.
        """
        with self._lock:
            if not self._active or self._route is None:
                return self.state

            route = self._route
            steps = route.steps
            if self._step_index >= len(steps):
                self._finish()
                return self.state

            if self._last_location is not None:
                self._distance_traveled += haversine_distance(self._last_location, location)
            self._last_location = location

            if self._recalculating:
                # Old geometry is about to be replaced; only keep the odometer running.
                return self.state

            current = steps[self._step_index]
            distance_to_step = haversine_distance(location, current.location)
            distance_from_route = distance_point_to_polyline(location, route.polyline)

            # 1. Off route (takes priority over everything else)
            if distance_from_route > self.config.off_route_threshold_m:
                self._off_route(location, distance_from_route)
                return self.state

            is_last = self._step_index == len(steps) - 1

            # 2. Arrival
            if is_last and distance_to_step < self.config.arrival_radius_m:
                self._finish()
                return self.state

            # 3. Step completed
            if distance_to_step < self.config.step_completion_radius_m and not is_last:
                self._step_index += 1
                new_step = steps[self._step_index]
                self._events.publish(StepChanged(new_step, self._step_index))
                logger.debug(
                    f"Advanced to step {self._step_index + 1}/{len(steps)}: {new_step.instruction}"
                )
                return self.state

            # 4. Approaching the maneuver
            if distance_to_step < self.config.approaching_threshold_m:
                self._events.publish(ApproachingStep(current, distance_to_step))

            # 5. Progress
            self._states.publish(self._progress_state(location, distance_to_step))
            return self.state

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_preconditions(self, route: Route) -> Optional[str]:
        if self._safe_mode_active():
            return BLOCKED_SAFE_MODE
        if not self._nav_entitled():
            return BLOCKED_TIER
        if not route.steps:
            return BLOCKED_INVALID_ROUTE
        return None

    def _reset(self) -> None:
        self._route = None
        self._step_index = 0
        self._last_location = None
        self._recalculating = False

    def _elapsed_seconds(self) -> int:
        return max(0, int(self._clock() - self._start_time))

    @staticmethod
    def _initial_state(route: Route) -> Navigating:
        first = route.steps[0]
        return Navigating(
            current_step=first,
            next_step=route.steps[1] if len(route.steps) > 1 else None,
            current_step_index=0,
            total_steps=len(route.steps),
            progress_pct=0.0,
            distance_to_next_meters=first.distance_meters,
            distance_remaining_meters=route.total_distance_meters,
            eta_seconds=route.total_duration_seconds,
        )

    def _progress_state(self, location: Coordinate, distance_to_step: float) -> Navigating:
        route = self._route
        steps = route.steps
        index = self._step_index
        current = steps[index]

        remaining = distance_to_step + sum(s.distance_meters for s in steps[index + 1:])

        if route.total_distance_meters > 0:
            progress = min(1.0, max(0.0, self._distance_traveled / route.total_distance_meters))
        else:
            progress = 0.0

        elapsed = self._elapsed_seconds()
        avg_speed = self._distance_traveled / elapsed if elapsed > 0 else self.config.fallback_speed_mps
        if avg_speed > 0:
            eta = int(remaining / avg_speed)
        else:
            eta = route.total_duration_seconds

        return Navigating(
            current_step=current,
            next_step=steps[index + 1] if index + 1 < len(steps) else None,
            current_step_index=index,
            total_steps=len(steps),
            progress_pct=progress,
            distance_to_next_meters=distance_to_step,
            distance_remaining_meters=remaining,
            eta_seconds=eta,
            current_bearing_degrees=calculate_bearing(location, current.location),
        )

    def _off_route(self, location: Coordinate, deviation: float) -> None:
        if deviation > self.config.severe_off_route_threshold_m:
            reason = OFF_ROUTE_SEVERE
        else:
            reason = OFF_ROUTE_MINOR
        logger.warning(f"Off route detected: {deviation:.1f} m deviation.")
        self._states.publish(OffRoute(reason, deviation, location))
        self._events.publish(OffRouteDetected(deviation))

    def _finish(self) -> None:
        elapsed = self._elapsed_seconds()
        destination = self._route.destination if self._route else None
        name = destination.street_name if destination else None

        self._active = False
        self._states.publish(Finished(self._distance_traveled, elapsed, name))
        self._events.publish(Arrived(name))
        logger.info(
            f"Navigation finished. Traveled {self._distance_traveled:.0f} m in {elapsed} s."
        )

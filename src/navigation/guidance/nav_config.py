# nav_config.py
# All tuneable constants in one place.
# Pass a NavConfig instance to every module that needs settings.

import os
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Engine defaults. Empirical values, kept tunable.
# ---------------------------------------------------------------------------

STEP_COMPLETION_RADIUS_M: float = 30.0
APPROACHING_THRESHOLD_M: float = 150.0
OFF_ROUTE_THRESHOLD_M: float = 50.0
SEVERE_OFF_ROUTE_THRESHOLD_M: float = 150.0
ARRIVAL_RADIUS_M: float = 25.0
FALLBACK_SPEED_MPS: float = 10.0


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class NavConfig:
    # Step tracking
    step_completion_radius_m: float = STEP_COMPLETION_RADIUS_M   # advance to next step inside this
    approaching_threshold_m: float = APPROACHING_THRESHOLD_M     # emit ApproachingStep inside this
    arrival_radius_m: float = ARRIVAL_RADIUS_M                   # last step only

    # Off-route detection
    off_route_threshold_m: float = OFF_ROUTE_THRESHOLD_M
    severe_off_route_threshold_m: float = SEVERE_OFF_ROUTE_THRESHOLD_M

    # ETA
    fallback_speed_mps: float = FALLBACK_SPEED_MPS               # used before any time has elapsed

    # Along-route search
    corridor_tolerance_m: float = 2000.0

    # Event delivery
    event_buffer_size: int = 10                                  # per subscriber

    # Logging
    log_dir: str = "."                                           # directory for saved JSON files
    route_filename: str = "active_route.json"
    session_filename: str = "nav_session.jsonl"
    trip_filename: str = "trips.jsonl"

    def __post_init__(self) -> None:
        for name in (
            "step_completion_radius_m",
            "approaching_threshold_m",
            "arrival_radius_m",
            "off_route_threshold_m",
            "severe_off_route_threshold_m",
            "fallback_speed_mps",
            "corridor_tolerance_m",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"NavConfig.{name} must be positive, got {getattr(self, name)}")
        if self.event_buffer_size < 1:
            raise ValueError("NavConfig.event_buffer_size must be at least 1")

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def session_filepath(self) -> str:
        return os.path.join(self.log_dir, self.session_filename)

    @property
    def trip_filepath(self) -> str:
        return os.path.join(self.log_dir, self.trip_filename)

# nav_logger.py
# Handles all file I/O for the navigation system.
# Saves routes, session events and completed trips as JSON.

import json
import os
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .models import Coordinate, Route, TripSummary
from .nav_config import NavConfig
from .states import describe

# Standard Python logger, configure at app entry point if needed
logger = logging.getLogger(__name__)


def _payload(item) -> dict:
    """Fields of a state or event dataclass."""
    return asdict(item) if is_dataclass(item) else {}


def _json_default(obj):
    if isinstance(obj, Enum):
        return obj.value
    return str(obj)


class NavLogger:
    """
    Persists route data, navigation events and trip summaries to JSON files.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: Route) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route: Route handed to the engine.

        Returns:
            True on success, False on failure.
        """
        filepath = self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "step_count": len(route.steps),
                "route": route.to_dict(),
            }
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {filepath} ({len(route.steps)} steps).")
            return True
        except (IOError, TypeError) as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[Route]:
        """
        Load a previously saved route from JSON.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            Route, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = Route.from_dict(data["route"])
            logger.info(f"Route loaded from {path} ({len(route.steps)} steps).")
            return route
        except (IOError, KeyError, ValueError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None

    # ------------------------------------------------------------------
    # Session event logging
    # ------------------------------------------------------------------

    def log_event(self, item, position: Optional[Coordinate] = None) -> None:
        """
        Append a single state or event to the session log file.

        Args:
            item:     NavigationState or NavigationEvent.
            position: Location that produced it, when known.
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "lat": position.latitude if position else None,
            "lon": position.longitude if position else None,
            "kind": describe(item),
            "payload": _payload(item),
        }
        try:
            with open(self.config.session_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=_json_default) + "\n")
        except IOError as e:
            logger.error(f"Failed to write event log: {e}")

    # ------------------------------------------------------------------
    # Trip history
    # ------------------------------------------------------------------

    def save_trip(self, summary: TripSummary) -> bool:
        """Append a trip summary to the trip log. Returns True on success."""
        filepath = self.config.trip_filepath
        try:
            with open(filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(summary.to_dict(), ensure_ascii=False) + "\n")
            logger.info(f"Trip saved to {filepath} ({summary.distance_meters:.0f} m).")
            return True
        except IOError as e:
            logger.error(f"Failed to save trip to {filepath}: {e}")
            return False

    def load_trips(self) -> List[TripSummary]:
        """Read every trip in the log; malformed lines are skipped."""
        filepath = self.config.trip_filepath
        if not os.path.exists(filepath):
            return []

        trips: List[TripSummary] = []
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                for line_no, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        trips.append(TripSummary.from_dict(json.loads(line)))
                    except (KeyError, ValueError) as e:
                        logger.warning(f"Skipping malformed trip at {filepath}:{line_no}: {e}")
        except IOError as e:
            logger.error(f"Failed to read trips from {filepath}: {e}")
        return trips

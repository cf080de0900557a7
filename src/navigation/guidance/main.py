# main.py
# Entry point: simulates a location stream feeding positions into NavigationSystem.
# In production, replace the simulated trace with your real location source.
#
# Run: python -m navigation.guidance.main

import logging
from typing import List

from .geo_utils import haversine_distance
from .models import Coordinate, ManeuverKind, NavStep, Route
from .nav_config import NavConfig
from .navigator import NavigationSystem
from .states import Finished, Navigating, OffRoute

# ------------------------------------------------------------------
# Logging setup: configure once here, all modules inherit
# ------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)

# ------------------------------------------------------------------
# Config: tweak thresholds or paths here, not inside the modules
# ------------------------------------------------------------------
config = NavConfig(
    step_completion_radius_m=30.0,
    off_route_threshold_m=50.0,
    log_dir="logs",
)

# ------------------------------------------------------------------
# Demo route (Sıhhiye → Kurtuluş, Ankara)
# ------------------------------------------------------------------
PATH = [
    Coordinate(39.92409,   32.845382),
    Coordinate(39.9249406, 32.8462865),
    Coordinate(39.9254588, 32.8477125),
    Coordinate(39.9208164, 32.8533392),
    Coordinate(39.9210086, 32.8529793),
]

MANEUVERS = [
    ("Head northeast", ManeuverKind.DEPART, None),
    ("Slight right onto Ziya Gökalp Caddesi", ManeuverKind.SLIGHT_RIGHT, "Ziya Gökalp Caddesi"),
    ("Turn right onto Kumrular Sokak", ManeuverKind.RIGHT, "Kumrular Sokak"),
    ("Sharp left onto Kızılırmak Sokak", ManeuverKind.SHARP_LEFT, "Kızılırmak Sokak"),
    ("Arrive at destination", ManeuverKind.ARRIVE, "Kurtuluş Parkı"),
]


def build_demo_route() -> Route:
    """One step per path vertex; each step's distance is the leg leading to the next."""
    legs = [haversine_distance(a, b) for a, b in zip(PATH, PATH[1:])] + [0.0]
    # A step is announced at the vertex where its maneuver happens.
    steps = [
        NavStep(text, kind, legs[i], PATH[i], street)
        for i, (text, kind, street) in enumerate(MANEUVERS)
    ]
    total = sum(legs)
    return Route(
        steps=tuple(steps),
        polyline=tuple(PATH),
        total_distance_meters=total,
        total_duration_seconds=int(total / 1.4),
    )


def simulate_trace(path: List[Coordinate], spacing_m: float = 10.0) -> List[Coordinate]:
    """Evenly spaced fixes along the path, endpoints included."""
    trace = [path[0]]
    for a, b in zip(path, path[1:]):
        n = max(1, int(haversine_distance(a, b) // spacing_m))
        for i in range(1, n + 1):
            f = i / n
            trace.append(Coordinate(
                a.latitude + f * (b.latitude - a.latitude),
                a.longitude + f * (b.longitude - a.longitude),
            ))
    return trace


def main() -> None:
    # 1. Boot system
    nav = NavigationSystem(config, speaker=lambda text: print(f"  🔊 {text}"))

    # 2. Hand over a precomputed route
    success, msg = nav.start_navigation(build_demo_route())
    if not success:
        print(f"[Main] Could not start navigation: {msg}")
        nav.close()
        return

    print("\n--- Location Loop Active ---")

    # 3. Location loop, replace with real provider in production
    for position in simulate_trace(PATH):
        state = nav.update(position)

        if isinstance(state, Navigating):
            print(
                f"  {position.latitude:.6f},{position.longitude:.6f} → "
                f"step {state.current_step_index + 1}/{state.total_steps} "
                f"{state.distance_to_next_meters:5.0f} m to '{state.current_step.instruction}', "
                f"{state.progress_pct:4.0%} done, ETA {state.eta_seconds} s"
            )
        elif isinstance(state, OffRoute):
            print(f"  ⚠  {state.reason} ({state.deviation_meters:.0f} m)")
        elif isinstance(state, Finished):
            print(f"  ✓  Arrived after {state.total_distance_traveled_meters:.0f} m.")
            break

    if nav.voice is not None:
        nav.voice.flush()
    nav.close()

    print("\n--- Session complete ---")
    print(f"    Log files written to: {config.log_dir}/")


if __name__ == "__main__":
    main()

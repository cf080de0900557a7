# voice_prompts.py
# Decides what to say for each navigation event and hands the text to a
# speaker on a background worker, so the location loop never waits on audio.
#
# Usage:
#   prompter = VoicePrompter(speaker=my_tts.say)
#   prompter.attach(engine.subscribe_events())
#   ...
#   prompter.close()

import logging
import queue
import threading
from typing import Callable, Optional

from .broadcast import EventSubscription
from .states import (
    Arrived,
    ApproachingStep,
    NavigationEvent,
    NavigationStarted,
    NavigationStopped,
    OffRouteDetected,
    RouteRecalculated,
    StepChanged,
)

logger = logging.getLogger(__name__)

Speaker = Callable[[str], None]


def _round_distance(meters: float) -> int:
    """Spoken distances snap to 10 m below 100 m, to 50 m above."""
    step = 10 if meters < 100 else 50
    return max(step, int(round(meters / step)) * step)


def phrase_for(event: NavigationEvent) -> Optional[str]:
    """Text to speak for an event, or None if it should stay silent."""
    if isinstance(event, NavigationStarted):
        return "Navigation started."
    if isinstance(event, StepChanged):
        return event.step.instruction
    if isinstance(event, ApproachingStep):
        return f"In {_round_distance(event.distance_meters)} meters, {event.step.instruction}"
    if isinstance(event, OffRouteDetected):
        return "Off route. Recalculating."
    if isinstance(event, RouteRecalculated):
        return "Route updated."
    if isinstance(event, Arrived):
        if event.destination_name:
            return f"You have arrived at your destination, {event.destination_name}."
        return "You have arrived at your destination."
    if isinstance(event, NavigationStopped):
        return "Navigation stopped."
    return None


def _log_speaker(text: str) -> None:
    logger.info(f"[Voice] {text}")


class VoicePrompter:
    """
    Event-driven voice guidance.

    ApproachingStep fires on every fix while the device closes in on a
    maneuver; only the first one per step is spoken.

    Args:
        speaker: Called with each phrase on the worker thread. Defaults to
                 logging the phrase.
    """

    def __init__(self, speaker: Optional[Speaker] = None) -> None:
        self._speaker = speaker or _log_speaker
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._muted = False
        self._announced_step = None
        self._subscription: Optional[EventSubscription] = None
        self._pump_thread: Optional[threading.Thread] = None
        self._running = True
        # Held while an event is taken off the subscription and queued.
        self._handle_lock = threading.RLock()

        self._worker = threading.Thread(target=self._speak_worker, name="voice-prompts", daemon=True)
        self._worker.start()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def muted(self) -> bool:
        return self._muted

    def mute(self) -> None:
        self._muted = True
        logger.info("Voice prompts muted.")

    def unmute(self) -> None:
        self._muted = False
        logger.info("Voice prompts unmuted.")

    def attach(self, subscription: EventSubscription) -> None:
        """Start consuming events from an engine subscription."""
        self._subscription = subscription
        self._pump_thread = threading.Thread(
            target=self._pump, args=(subscription,), name="voice-events", daemon=True
        )
        self._pump_thread.start()

    def handle(self, event: NavigationEvent) -> Optional[str]:
        """
        Turn one event into a queued phrase.

        Returns:
            The phrase queued, or None if nothing was said.
        """
        with self._handle_lock:
            if isinstance(event, ApproachingStep):
                if self._announced_step == event.step:
                    return None
                self._announced_step = event.step
            elif isinstance(event, (StepChanged, RouteRecalculated, NavigationStarted, NavigationStopped)):
                self._announced_step = None

            phrase = phrase_for(event)
            if phrase and self.say(phrase):
                return phrase
            return None

    def say(self, text: str) -> bool:
        """Queue free text. Returns False when muted or empty."""
        text = (text or "").strip()
        if not text or self._muted:
            return False
        self._queue.put(text)
        return True

    def flush(self) -> None:
        """
        Handle any buffered events, then block until every phrase has been spoken.

        The pump thread never holds an event outside the handle lock, so
        once the lock is taken here nothing is in flight and the buffered
        events are queued behind everything the pump already queued.
        """
        if self._subscription is not None:
            with self._handle_lock:
                for event in self._subscription.drain():
                    self.handle(event)
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        """Stop both worker threads."""
        self._running = False
        if self._subscription is not None:
            self._subscription.close()
        if self._pump_thread is not None:
            self._pump_thread.join(timeout=timeout)
        self._queue.put(None)
        self._worker.join(timeout=timeout)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _pump(self, subscription: EventSubscription) -> None:
        while self._running and not subscription.closed:
            if not subscription.wait(timeout=0.5):
                continue
            # Take and handle under one lock so flush() never sees an event in flight.
            with self._handle_lock:
                event = subscription.get(timeout=0)
                if event is not None:
                    self.handle(event)

    def _speak_worker(self) -> None:
        while True:
            text = self._queue.get()
            try:
                if text is None:
                    break
                self._speaker(text)
            except Exception:
                logger.exception(f"Speaker failed on: {text!r}")
            finally:
                self._queue.task_done()

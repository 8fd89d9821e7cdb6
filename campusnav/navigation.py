"""Navigation session state machine.

Phases:
    IDLE        nothing to show yet
    SEARCHING   destination set, waiting for a usable position
    TRACKING    position known, not guiding (destination may be pending)
    NAVIGATING  guiding toward the destination
    ARRIVED     arrival shown for a dwell time, then back to IDLE

All guidance values are recomputed from the latest position on every update,
so replaying the same sample is harmless. Events produced while handling one
input are delivered to listeners only after the whole update is applied.
"""

import time
from typing import Callable, Optional

from .announcements import AnnouncementPolicy
from .config import CONFIG
from .errors import NavigationError, OutOfBoundsSelection
from .geo import (
    bearing_between,
    bearing_to_compass,
    distance,
    estimated_walking_seconds,
    relative_direction,
)
from .gps import PositionTracker, TrackerUpdate, classify_quality
from .mapper import CoordinateMapper
from .models import (
    Announcement,
    Destination,
    GeoPoint,
    GpsQuality,
    NamedLocation,
    Phase,
    PositionSample,
    SessionSnapshot,
)

# Ascending distance thresholds, first match wins
INSTRUCTION_BUCKETS = [
    (10, "You have arrived at your destination"),
    (50, "You are approaching your destination"),
    (100, "Continue straight towards your destination"),
    (200, "Prepare to turn at the upcoming pathway"),
]
DEFAULT_INSTRUCTION = "Head toward your destination"


def instruction_for_distance(meters: float) -> str:
    for threshold, text in INSTRUCTION_BUCKETS:
        if meters <= threshold:
            return text
    return DEFAULT_INSTRUCTION


class NavigationSession:
    """Owns all navigation state; consumers read snapshot()"""

    def __init__(self, mapper: CoordinateMapper,
                 tracker: Optional[PositionTracker] = None,
                 speech=None,
                 clock: Callable[[], float] = time.monotonic,
                 policy: Optional[AnnouncementPolicy] = None):
        self.mapper = mapper
        self.tracker = tracker
        self.speech = speech
        self.clock = clock
        self.policy = policy or AnnouncementPolicy()
        self.arrival_radius = CONFIG["arrival_radius"]
        self.arrival_dwell = CONFIG["arrival_dwell"]
        self.lost_grace = CONFIG["lost_grace"]

        self.phase = Phase.IDLE
        self.destination: Optional[Destination] = None
        self.last_position: Optional[PositionSample] = None
        self.gps_quality = GpsQuality.LOST
        self.distance_remaining: Optional[float] = None
        self.eta_seconds: Optional[float] = None
        self.instruction: Optional[str] = None
        self.last_announcement: Optional[str] = None
        self.voice_enabled = True

        self._navigation_requested = False
        self._start_announced = False  # once per destination, across GPS losses
        self._arrived_at: Optional[float] = None
        self._lost_since: Optional[float] = None
        self._listeners: list[Callable[[str, dict], None]] = []
        self._pending: list[tuple[str, dict]] = []
        self._speak_queue: list[str] = []

        if tracker:
            tracker.add_listener(self.handle_tracker_update)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self):
        if self.tracker:
            self.tracker.start()

    def close(self):
        """Tear down: release the sensor subscription"""
        if self.tracker:
            self.tracker.stop()

    def __enter__(self) -> "NavigationSession":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[str, dict], None]):
        """callback(event, data) for 'phase', 'instruction' and 'announcement'"""
        self._listeners.append(callback)

    def _queue(self, event: str, data: dict):
        self._pending.append((event, data))

    def _flush(self):
        pending, self._pending = self._pending, []
        speak, self._speak_queue = self._speak_queue, []
        # Speech interrupts itself, so only the latest message is worth starting
        if speak and self.speech:
            self.speech.announce(speak[-1])
        for event, data in pending:
            for listener in list(self._listeners):
                listener(event, data)

    def _set_phase(self, phase: Phase):
        if phase is self.phase:
            return
        self._queue("phase", {"from": self.phase.value, "to": phase.value})
        self.phase = phase

    def _set_instruction(self, instruction: Optional[str]):
        if instruction != self.instruction and instruction is not None:
            self._queue("instruction", {"text": instruction})
        self.instruction = instruction

    def _announce(self, announcement: Announcement):
        self.last_announcement = announcement.text
        self._queue("announcement", {
            "kind": announcement.kind,
            "text": announcement.text,
            "threshold": announcement.threshold,
        })
        if self.voice_enabled:
            self._speak_queue.append(announcement.text)

    def set_voice_enabled(self, enabled: bool):
        self.voice_enabled = enabled
        if enabled:
            self._announce(Announcement(kind="voice", text="Voice guidance enabled"))
        self._flush()

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def select_destination(self, point: GeoPoint, name: str = "Selected Location") -> Destination:
        """Attach a destination. Guidance only starts with start_navigation()."""
        if not self.mapper.is_within_bounds(point):
            raise OutOfBoundsSelection(
                f"{name} ({point.lat:.6f}, {point.lng:.6f}) is outside the campus map"
            )
        total = distance(self.last_position.point, point) if self.last_position else None
        self.destination = Destination(point=point, name=name, total_distance_at_selection=total)
        self._reset_run()

        if self._has_usable_position():
            self._set_phase(Phase.TRACKING)
            self._update_guidance()
        else:
            self._set_phase(Phase.SEARCHING)
            self._clear_guidance()
        self._flush()
        return self.destination

    def select_location(self, location: NamedLocation) -> Destination:
        return self.select_destination(location.point, location.name)

    def start_navigation(self):
        if self.destination is None:
            raise NavigationError("Select a destination before starting navigation")
        if self.phase is Phase.NAVIGATING:
            return

        self._navigation_requested = True
        if self._has_usable_position():
            self._begin_navigating()
        else:
            self._set_phase(Phase.SEARCHING)
        self._flush()

    def cancel(self):
        """Abandon the current destination"""
        self.destination = None
        self._reset_run()
        self._clear_guidance()
        self._set_phase(Phase.IDLE)
        self._flush()

    # ------------------------------------------------------------------
    # Position input
    # ------------------------------------------------------------------

    def handle_tracker_update(self, update: TrackerUpdate):
        if update.fresh and update.sample is not None:
            self.on_position(update.sample)
            return
        self.gps_quality = update.quality
        if not update.quality.usable:
            self._signal_lost()
        self._flush()

    def on_position(self, sample: PositionSample):
        """Apply one position sample (the positionUpdate transition)"""
        quality = classify_quality(sample.accuracy)
        self.gps_quality = quality
        if not quality.usable:
            self._signal_lost()
            self._flush()
            return

        self._lost_since = None
        self.last_position = sample

        if self.phase is Phase.ARRIVED:
            # Arrival is terminal for guidance; only the marker keeps moving
            self._flush()
            return

        if self.destination is None:
            self._set_phase(Phase.TRACKING)
        elif self.phase is Phase.NAVIGATING:
            self._update_guidance()
        elif self._navigation_requested:
            self._begin_navigating()
        else:
            self._set_phase(Phase.TRACKING)
            self._update_guidance()
        self._flush()

    def tick(self):
        """Advance time-based transitions: staleness, lost GPS, arrival dwell"""
        if self.tracker:
            self.tracker.check_staleness()
        now = self.clock()

        if self.phase is Phase.ARRIVED and self._arrived_at is not None:
            if now - self._arrived_at >= self.arrival_dwell:
                self.destination = None
                self._reset_run()
                self._clear_guidance()
                self._set_phase(Phase.IDLE)

        if self._lost_since is not None and now - self._lost_since >= self.lost_grace:
            if self.phase in (Phase.NAVIGATING, Phase.TRACKING):
                self._set_phase(Phase.SEARCHING if self.destination else Phase.IDLE)
        self._flush()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_usable_position(self) -> bool:
        return self.last_position is not None and self.gps_quality.usable

    def _signal_lost(self):
        if self._lost_since is None:
            self._lost_since = self.clock()

    def _reset_run(self):
        """Forget per-destination progress: thresholds, start request, arrival"""
        self.policy.reset()
        self._navigation_requested = False
        self._start_announced = False
        self._arrived_at = None

    def _begin_navigating(self):
        self._set_phase(Phase.NAVIGATING)
        # Resuming after lost GPS is not a new start
        if not self._start_announced:
            self._start_announced = True
            self._announce(Announcement(
                kind="start",
                text=f"Navigation started to {self.destination.name or 'your destination'}",
            ))
        self._update_guidance()

    def _clear_guidance(self):
        self.distance_remaining = None
        self.eta_seconds = None
        self.instruction = None

    def _update_guidance(self):
        remaining = distance(self.last_position.point, self.destination.point)
        if self.destination.total_distance_at_selection is None:
            self.destination.total_distance_at_selection = remaining
        self.distance_remaining = remaining
        self.eta_seconds = estimated_walking_seconds(remaining)
        self._set_instruction(instruction_for_distance(remaining))

        if self.phase is not Phase.NAVIGATING:
            return
        announcement = self.policy.evaluate(remaining)
        if announcement:
            self._announce(announcement)
        if remaining <= self.arrival_radius:
            self._arrived_at = self.clock()
            self._set_phase(Phase.ARRIVED)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def navigation_requested(self) -> bool:
        return self._navigation_requested

    @property
    def progress(self) -> Optional[float]:
        """Fraction of the selected distance already covered"""
        if not self.destination or self.distance_remaining is None:
            return None
        total = self.destination.total_distance_at_selection
        if not total:
            return None
        return max(0.0, min(1.0, (total - self.distance_remaining) / total))

    def snapshot(self) -> SessionSnapshot:
        position = self.last_position
        if position is None and self.tracker:
            position = self.tracker.last_known

        bearing = compass = relative = None
        if position and self.destination:
            bearing = bearing_between(
                position.point.lat, position.point.lng,
                self.destination.point.lat, self.destination.point.lng,
            )
            compass = bearing_to_compass(bearing)
            if position.heading is not None:
                relative = relative_direction(position.heading, bearing)

        return SessionSnapshot(
            phase=self.phase,
            gps_quality=self.gps_quality,
            destination=self.destination,
            position=position,
            position_pixel=self.mapper.project(position.point) if position else None,
            destination_pixel=self.mapper.project(self.destination.point) if self.destination else None,
            distance_remaining=self.distance_remaining,
            eta_seconds=self.eta_seconds,
            bearing=bearing,
            compass=compass,
            relative_direction=relative,
            instruction=self.instruction,
            progress=self.progress,
            last_announced_threshold=self.policy.last_announced_threshold,
            last_announcement=self.last_announcement,
            stale=position is not None and not self.gps_quality.usable,
            navigation_requested=self._navigation_requested,
        )

"""One-shot distance announcements."""

from typing import Optional

from .config import CONFIG
from .models import Announcement

ARRIVAL_MESSAGE = "You have arrived at your destination"


def threshold_message(threshold: int) -> str:
    if threshold <= 25:
        return "You are almost at your destination"
    return f"In {threshold} meters, you will reach your destination"


class AnnouncementPolicy:
    """Decides which threshold announcement, if any, a new distance triggers.

    Thresholds are scanned in descending order and the first one the
    distance has reached, and that has not yet been announced, fires. The
    arrival announcement fires once and silences the policy until reset().
    """

    def __init__(self, thresholds: Optional[list[int]] = None,
                 arrival_radius: Optional[float] = None):
        self.thresholds = sorted(thresholds or CONFIG["announcement_thresholds"], reverse=True)
        self.arrival_radius = arrival_radius if arrival_radius is not None else CONFIG["arrival_radius"]
        self.last_announced_threshold: Optional[int] = None
        self.arrived = False

    def reset(self):
        """Forget all fired announcements (new destination or cancel)"""
        self.last_announced_threshold = None
        self.arrived = False

    def evaluate(self, distance_remaining: float) -> Optional[Announcement]:
        """Return the announcement to fire for this distance, or None"""
        if self.arrived:
            return None

        if distance_remaining <= self.arrival_radius:
            self.arrived = True
            return Announcement(kind="arrival", text=ARRIVAL_MESSAGE)

        for threshold in self.thresholds:
            if distance_remaining <= threshold and (
                self.last_announced_threshold is None
                or self.last_announced_threshold > threshold
            ):
                self.last_announced_threshold = threshold
                return Announcement(
                    kind="threshold",
                    text=threshold_message(threshold),
                    threshold=threshold,
                )
        return None

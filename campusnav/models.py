"""Data classes for Campus Navigator."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float

    def __post_init__(self):
        if not -90 <= self.lat <= 90:
            raise ValueError(f"latitude out of range: {self.lat}")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"longitude out of range: {self.lng}")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "GeoPoint":
        return cls(lat=d["lat"], lng=d["lng"])


@dataclass(frozen=True)
class PixelPoint:
    """Point in the map image's native space (origin top-left, y down)"""
    x: float
    y: float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Anchor:
    """A calibrated (pixel, GPS) pair"""
    pixel: PixelPoint
    geo: GeoPoint


@dataclass(frozen=True)
class CalibrationAnchors:
    """North-west and south-east anchors of an axis-aligned map calibration"""
    top_left: Anchor
    bottom_right: Anchor


@dataclass(frozen=True)
class PositionSample:
    point: GeoPoint
    accuracy: Optional[float] = None  # meters, None when not reported
    heading: Optional[float] = None  # degrees, 0-360
    timestamp: Optional[float] = None  # unix seconds
    simulated: bool = False

    def to_dict(self) -> dict:
        return {
            "lat": self.point.lat,
            "lng": self.point.lng,
            "accuracy": self.accuracy,
            "heading": self.heading,
            "timestamp": self.timestamp,
            "simulated": self.simulated,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PositionSample":
        return cls(
            point=GeoPoint(lat=d["lat"], lng=d["lng"]),
            accuracy=d.get("accuracy"),
            heading=d.get("heading"),
            timestamp=d.get("timestamp"),
            simulated=d.get("simulated", False),
        )


class GpsQuality(Enum):
    ACCURATE = "accurate"
    DEGRADED = "degraded"
    LOST = "lost"

    @property
    def usable(self) -> bool:
        return self is not GpsQuality.LOST


class Phase(Enum):
    IDLE = "idle"
    SEARCHING = "searching"  # destination set, no usable position yet
    TRACKING = "tracking"  # position known, not guiding
    NAVIGATING = "navigating"
    ARRIVED = "arrived"


@dataclass
class NamedLocation:
    """Entry of the campus locations directory"""
    name: str
    description: str
    point: GeoPoint


@dataclass
class Destination:
    point: GeoPoint
    name: str
    total_distance_at_selection: Optional[float] = None  # meters


@dataclass(frozen=True)
class Announcement:
    """A one-shot guidance message for the speech collaborator"""
    kind: str  # "threshold" | "arrival" | "start" | "voice"
    text: str
    threshold: Optional[int] = None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a navigation session, for displays and logging"""
    phase: Phase
    gps_quality: GpsQuality
    destination: Optional[Destination] = None
    position: Optional[PositionSample] = None
    position_pixel: Optional[PixelPoint] = None
    destination_pixel: Optional[PixelPoint] = None
    distance_remaining: Optional[float] = None
    eta_seconds: Optional[float] = None
    bearing: Optional[float] = None
    compass: Optional[str] = None
    relative_direction: Optional[str] = None  # destination relative to heading
    instruction: Optional[str] = None
    progress: Optional[float] = None
    last_announced_threshold: Optional[int] = None
    last_announcement: Optional[str] = None
    stale: bool = False
    navigation_requested: bool = False

    @property
    def arrived(self) -> bool:
        return self.phase is Phase.ARRIVED

    def to_dict(self) -> dict:
        d = {
            "phase": self.phase.value,
            "gps_quality": self.gps_quality.value,
            "distance_remaining": self.distance_remaining,
            "eta_seconds": self.eta_seconds,
            "bearing": self.bearing,
            "compass": self.compass,
            "relative_direction": self.relative_direction,
            "instruction": self.instruction,
            "progress": self.progress,
            "last_announced_threshold": self.last_announced_threshold,
            "last_announcement": self.last_announcement,
            "stale": self.stale,
            "arrived": self.arrived,
        }
        if self.destination:
            d["destination"] = {
                "name": self.destination.name,
                "lat": self.destination.point.lat,
                "lng": self.destination.point.lng,
            }
        if self.position:
            d["location"] = self.position.to_dict()
        if self.position_pixel:
            d["position_pixel"] = self.position_pixel.to_dict()
        if self.destination_pixel:
            d["destination_pixel"] = self.destination_pixel.to_dict()
        return d

"""Campus Navigator - Walking guidance on a calibrated campus map."""

from .config import CONFIG, CAMPUS_ANCHORS
from .models import (
    GeoPoint,
    PixelPoint,
    Anchor,
    CalibrationAnchors,
    PositionSample,
    GpsQuality,
    Phase,
    NamedLocation,
    Destination,
    Announcement,
    SessionSnapshot,
)
from .errors import (
    CampusNavError,
    ConfigurationError,
    SensorError,
    SensorUnavailable,
    SensorDenied,
    SensorTimeout,
    SensorPositionUnavailable,
    MapLoadError,
    OutOfBoundsSelection,
    UnknownLocation,
    NavigationError,
)
from .logger import Logger
from .geo import (
    haversine_distance,
    distance,
    estimated_walking_seconds,
    bearing_between,
    bearing_to_compass,
    relative_direction,
    format_distance,
    format_duration,
    retry_with_backoff,
)
from .mapper import CoordinateMapper
from .gps import (
    SensorOptions,
    LocationSensor,
    TermuxLocationSensor,
    SensorRecorder,
    PlaybackSensor,
    PositionTracker,
    TrackerUpdate,
    classify_quality,
    straight_line_trace,
)
from .announcements import AnnouncementPolicy
from .navigation import NavigationSession
from .locations import CAMPUS_LOCATIONS, search_locations, find_location
from .campus_map import CampusMap, MapFetcher
from .audio import Audio
from .debug_gui import DebugServer, WebSocketSensor
from .app import CampusNavigator
from .__main__ import main

__all__ = [
    "CONFIG",
    "CAMPUS_ANCHORS",
    "GeoPoint",
    "PixelPoint",
    "Anchor",
    "CalibrationAnchors",
    "PositionSample",
    "GpsQuality",
    "Phase",
    "NamedLocation",
    "Destination",
    "Announcement",
    "SessionSnapshot",
    "CampusNavError",
    "ConfigurationError",
    "SensorError",
    "SensorUnavailable",
    "SensorDenied",
    "SensorTimeout",
    "SensorPositionUnavailable",
    "MapLoadError",
    "OutOfBoundsSelection",
    "UnknownLocation",
    "NavigationError",
    "Logger",
    "haversine_distance",
    "distance",
    "estimated_walking_seconds",
    "bearing_between",
    "bearing_to_compass",
    "relative_direction",
    "format_distance",
    "format_duration",
    "retry_with_backoff",
    "CoordinateMapper",
    "SensorOptions",
    "LocationSensor",
    "TermuxLocationSensor",
    "SensorRecorder",
    "PlaybackSensor",
    "PositionTracker",
    "TrackerUpdate",
    "classify_quality",
    "straight_line_trace",
    "AnnouncementPolicy",
    "NavigationSession",
    "CAMPUS_LOCATIONS",
    "search_locations",
    "find_location",
    "CampusMap",
    "MapFetcher",
    "Audio",
    "DebugServer",
    "WebSocketSensor",
    "CampusNavigator",
    "main",
]

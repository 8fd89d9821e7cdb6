"""Configuration settings for Campus Navigator."""

from .models import Anchor, CalibrationAnchors, GeoPoint, PixelPoint

CONFIG = {
    "walking_speed": 1.39,  # m/s (5 km/h)
    "arrival_radius": 10,  # meters
    "arrival_dwell": 5,  # seconds the arrival screen stays before returning to idle
    "announcement_thresholds": [500, 200, 100, 50, 25],  # meters, descending
    # GPS quality classification
    "accuracy_accurate": 10,  # meters - at or below this is accurate
    "accuracy_degraded": 50,  # meters - at or below this is degraded, above is lost
    "stale_after": 15,  # seconds without a sample before GPS is considered lost
    "lost_grace": 15,  # seconds of lost GPS before guidance pauses
    # Sensor options
    "high_accuracy": True,
    "sensor_timeout_ms": 10000,
    "sensor_max_age_ms": 5000,
    "sensor_poll_interval": 3,  # seconds - polling sensors (termux)
    "probe_timeout": 10,  # seconds - one-shot initial position request
    # Main loop
    "tick_interval": 1,  # seconds
    "log_interval": 10,  # seconds between STATE log entries
    # Campus map asset
    "map_url": "https://raw.githubusercontent.com/Jaycubic/FLAMECampusSVG/main/CampusMap.svg",
    "map_cache_dir": "map_cache",
    "map_cache_max_age": 7 * 24 * 3600,  # 7 days
    "map_fetch_timeout": 30,  # seconds
    # Simulated position used when the sensor fails before any good fix
    "fallback_position": (18.5251234, 73.7285678),
    "fallback_accuracy": 5,  # meters
    # Named location lookup
    "location_match_score": 60,  # minimum fuzzy score (0-100)
}

# Calibrated against the FLAME University campus SVG
CAMPUS_ANCHORS = CalibrationAnchors(
    top_left=Anchor(
        pixel=PixelPoint(x=132.75, y=133.55),
        geo=GeoPoint(lat=18.5271557, lng=73.7276252),
    ),
    bottom_right=Anchor(
        pixel=PixelPoint(x=2512.5, y=3776.5),
        geo=GeoPoint(lat=18.5180856, lng=73.7339646),
    ),
)

"""Geographic utility functions."""

import math
import time

from .config import CONFIG
from .models import GeoPoint

EARTH_RADIUS_M = 6371000


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two points in meters using Haversine formula"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (math.sin(delta_phi / 2) ** 2 +
         math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2)
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two GeoPoints in meters"""
    return haversine_distance(a.lat, a.lng, b.lat, b.lng)


def estimated_walking_seconds(meters: float, speed: float = None) -> float:
    """Walking time for a distance at average walking speed, never negative"""
    speed = speed or CONFIG["walking_speed"]
    return max(0.0, meters / speed)


def bearing_between(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate bearing from point 1 to point 2 in degrees (0-360, 0=North)"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_lambda = math.radians(lon2 - lon1)

    x = math.sin(delta_lambda) * math.cos(phi2)
    y = (math.cos(phi1) * math.sin(phi2) -
         math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda))

    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360) % 360


def bearing_to_compass(bearing: float) -> str:
    """Convert bearing to compass direction"""
    directions = ["north", "northeast", "east", "southeast",
                  "south", "southwest", "west", "northwest"]
    index = round(bearing / 45) % 8
    return directions[index]


# Clockwise sectors of (target - heading) by upper bound; 300 to 330 is "slight left"
TURN_SECTORS = [
    (30, "straight"),
    (60, "slight right"),
    (120, "right"),
    (150, "sharp right"),
    (210, "behind you"),
    (240, "sharp left"),
    (300, "left"),
]


def relative_direction(from_bearing: float, to_bearing: float) -> str:
    """Turn needed to face to_bearing when heading along from_bearing"""
    diff = (to_bearing - from_bearing) % 360
    if diff > 330:
        return "straight"
    for upper, name in TURN_SECTORS:
        if diff < upper:
            return name
    return "slight left"


def format_distance(meters: float) -> str:
    """Format a distance for display: '85 m' or '1.2 km'"""
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    """Format a duration for display: '45 s' or '3 min 20 s'"""
    if seconds < 60:
        return f"{round(seconds)} s"
    minutes = int(seconds // 60)
    rest = round(seconds % 60)
    if rest == 60:
        minutes, rest = minutes + 1, 0
    if rest == 0:
        return f"{minutes} min"
    return f"{minutes} min {rest} s"


def retry_with_backoff(func, max_time: float = 30.0, initial_delay: float = 1.0,
                       max_delay: float = 8.0, description: str = "operation",
                       retry_on: tuple = ()):
    """Call func until it returns something truthy, doubling the pause each time.

    A falsy result, or an exception listed in retry_on, counts as a failed
    attempt. Pauses start at initial_delay, are capped at max_delay and never
    run past max_time. Once max_time is used up the last listed exception is
    re-raised, or None is returned when the failures were falsy results.
    Progress is printed using description.
    """
    deadline = time.time() + max_time
    delay = initial_delay
    attempt = 1

    while True:
        error = None
        try:
            result = func()
        except retry_on as e:
            result, error = None, e
        if result:
            return result

        left = deadline - time.time()
        if left <= 0:
            print(f"Gave up on {description} after {attempt} attempt(s)")
            if error is not None:
                raise error
            return None

        pause = min(delay, left)
        print(f"{description} failed (attempt {attempt}), retrying in {pause:.1f}s")
        time.sleep(pause)
        delay = min(delay * 2, max_delay)
        attempt += 1

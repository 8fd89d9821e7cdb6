"""Error types for Campus Navigator."""

from typing import Optional


class CampusNavError(Exception):
    """Base class for all Campus Navigator errors"""


class ConfigurationError(CampusNavError):
    """Invalid calibration or configuration. Fatal at startup."""


class SensorError(CampusNavError):
    """Failure reported by the live-location sensor"""

    code = "UNKNOWN"
    transient = True
    redirect: Optional[str] = None  # view the user should be routed to

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)

    @classmethod
    def from_code(cls, code: str, message: str = "") -> "SensorError":
        """Build the matching SensorError subclass for a sensor error code"""
        for subclass in (SensorUnavailable, SensorDenied, SensorTimeout, SensorPositionUnavailable):
            if subclass.code == code:
                return subclass(message)
        return SensorPositionUnavailable(message or code)


class SensorUnavailable(SensorError):
    """Device has no geolocation capability"""
    code = "UNSUPPORTED"
    transient = False
    redirect = "fallback"


class SensorDenied(SensorError):
    """Location permission refused"""
    code = "PERMISSION_DENIED"
    transient = False
    redirect = "permission_setup"


class SensorTimeout(SensorError):
    code = "TIMEOUT"


class SensorPositionUnavailable(SensorError):
    code = "POSITION_UNAVAILABLE"


class MapLoadError(CampusNavError):
    """Campus map asset could not be fetched. Retryable."""


class OutOfBoundsSelection(CampusNavError):
    """Destination lies outside the calibrated map area"""


class UnknownLocation(CampusNavError):
    """No named campus location matches the query"""


class NavigationError(CampusNavError):
    """Action not allowed in the current navigation state"""

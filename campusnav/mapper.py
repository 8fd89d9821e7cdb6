"""Conversion between GPS coordinates and campus map pixels.

The campus map is calibrated with two anchors, the north-west and south-east
corners of a diagonal. Each axis is interpolated independently (lat -> y,
lng -> x), so the map is assumed north-up with no rotation or skew.
"""

from typing import Optional

from .errors import ConfigurationError
from .models import CalibrationAnchors, GeoPoint, PixelPoint

PIXEL_PRECISION = 2  # decimal places
GEO_PRECISION = 7  # decimal places, ~1 cm


def _ratio(value: float, start: float, end: float, axis: str) -> float:
    span = end - start
    if span == 0:
        raise ConfigurationError(f"Calibration anchors coincide on the {axis} axis")
    return (value - start) / span


def validate_anchors(anchors: CalibrationAnchors):
    """Raise ConfigurationError unless anchors span a north-west to south-east diagonal"""
    tl, br = anchors.top_left, anchors.bottom_right
    if tl.pixel.x == br.pixel.x or tl.pixel.y == br.pixel.y:
        raise ConfigurationError("Calibration anchors coincide on a pixel axis")
    if not tl.geo.lat > br.geo.lat:
        raise ConfigurationError(
            f"Top-left latitude {tl.geo.lat} must be north of bottom-right {br.geo.lat}"
        )
    if not tl.geo.lng < br.geo.lng:
        raise ConfigurationError(
            f"Top-left longitude {tl.geo.lng} must be west of bottom-right {br.geo.lng}"
        )


def to_pixel(geo: GeoPoint, anchors: CalibrationAnchors) -> PixelPoint:
    """Project a GPS coordinate onto the map image"""
    tl, br = anchors.top_left, anchors.bottom_right
    lat_ratio = _ratio(geo.lat, tl.geo.lat, br.geo.lat, "latitude")
    lng_ratio = _ratio(geo.lng, tl.geo.lng, br.geo.lng, "longitude")
    x = tl.pixel.x + lng_ratio * (br.pixel.x - tl.pixel.x)
    y = tl.pixel.y + lat_ratio * (br.pixel.y - tl.pixel.y)
    return PixelPoint(x=round(x, PIXEL_PRECISION), y=round(y, PIXEL_PRECISION))


def to_geo(pixel: PixelPoint, anchors: CalibrationAnchors) -> GeoPoint:
    """Inverse of to_pixel"""
    tl, br = anchors.top_left, anchors.bottom_right
    x_ratio = _ratio(pixel.x, tl.pixel.x, br.pixel.x, "x")
    y_ratio = _ratio(pixel.y, tl.pixel.y, br.pixel.y, "y")
    lat = tl.geo.lat + y_ratio * (br.geo.lat - tl.geo.lat)
    lng = tl.geo.lng + x_ratio * (br.geo.lng - tl.geo.lng)
    return GeoPoint(lat=round(lat, GEO_PRECISION), lng=round(lng, GEO_PRECISION))


def is_within_bounds(geo: GeoPoint, anchors: CalibrationAnchors) -> bool:
    """True if the coordinate lies inside the calibrated rectangle (edges included)"""
    tl, br = anchors.top_left.geo, anchors.bottom_right.geo
    return br.lat <= geo.lat <= tl.lat and tl.lng <= geo.lng <= br.lng


class CoordinateMapper:
    """Mapper bound to one set of anchors, validated on construction"""

    def __init__(self, anchors: CalibrationAnchors,
                 image_size: Optional[tuple[float, float]] = None):
        validate_anchors(anchors)
        self.anchors = anchors
        self.image_size = image_size  # (width, height), once the map asset is loaded

    def to_pixel(self, geo: GeoPoint) -> PixelPoint:
        return to_pixel(geo, self.anchors)

    def to_geo(self, pixel: PixelPoint) -> GeoPoint:
        return to_geo(pixel, self.anchors)

    def is_within_bounds(self, geo: GeoPoint) -> bool:
        return is_within_bounds(geo, self.anchors)

    def project(self, geo: GeoPoint) -> Optional[PixelPoint]:
        """Pixel position for rendering, or None when the point is off the map.

        Points outside the calibrated area are never extrapolated.
        """
        if not self.is_within_bounds(geo):
            return None
        pixel = self.to_pixel(geo)
        if not self.is_on_image(pixel):
            return None
        return pixel

    def is_on_image(self, pixel: PixelPoint) -> bool:
        if not self.image_size:
            return True
        width, height = self.image_size
        return 0 <= pixel.x <= width and 0 <= pixel.y <= height

    def image_bounds(self) -> Optional[tuple[GeoPoint, GeoPoint]]:
        """Geo coordinates of the image's top-left and bottom-right corners"""
        if not self.image_size:
            return None
        width, height = self.image_size
        return (self.to_geo(PixelPoint(0, 0)),
                self.to_geo(PixelPoint(width, height)))

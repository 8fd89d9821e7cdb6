"""Tests for GPS <-> map pixel conversion."""

import pytest

from campusnav.config import CAMPUS_ANCHORS
from campusnav.errors import ConfigurationError
from campusnav.mapper import CoordinateMapper, is_within_bounds, to_geo, to_pixel
from campusnav.models import Anchor, CalibrationAnchors, GeoPoint, PixelPoint

TOP_LEFT = CAMPUS_ANCHORS.top_left
BOTTOM_RIGHT = CAMPUS_ANCHORS.bottom_right


class TestToPixel:
    """Tests for projecting coordinates onto the map image."""

    def test_anchors_map_to_their_pixels(self):
        """Each anchor's geo should land exactly on its pixel."""
        assert to_pixel(TOP_LEFT.geo, CAMPUS_ANCHORS) == TOP_LEFT.pixel
        assert to_pixel(BOTTOM_RIGHT.geo, CAMPUS_ANCHORS) == BOTTOM_RIGHT.pixel

    def test_midpoint(self):
        """Midpoint of the diagonal should project to the pixel midpoint."""
        mid = GeoPoint(
            lat=(TOP_LEFT.geo.lat + BOTTOM_RIGHT.geo.lat) / 2,
            lng=(TOP_LEFT.geo.lng + BOTTOM_RIGHT.geo.lng) / 2,
        )
        pixel = to_pixel(mid, CAMPUS_ANCHORS)
        assert pixel.x == pytest.approx((TOP_LEFT.pixel.x + BOTTOM_RIGHT.pixel.x) / 2, abs=0.01)
        assert pixel.y == pytest.approx((TOP_LEFT.pixel.y + BOTTOM_RIGHT.pixel.y) / 2, abs=0.01)

    def test_rounded_to_two_decimals(self):
        """Pixel output should be rounded to 2 decimal places."""
        pixel = to_pixel(GeoPoint(18.5226207, 73.7307949), CAMPUS_ANCHORS)
        assert round(pixel.x, 2) == pixel.x
        assert round(pixel.y, 2) == pixel.y

    def test_south_increases_y(self):
        """Moving south should move down the image."""
        north = to_pixel(GeoPoint(18.525, 73.73), CAMPUS_ANCHORS)
        south = to_pixel(GeoPoint(18.520, 73.73), CAMPUS_ANCHORS)
        assert south.y > north.y
        assert south.x == north.x


class TestRoundTrip:
    """Tests for the to_geo(to_pixel(geo)) guarantee."""

    @pytest.mark.parametrize("lat,lng", [
        (18.5226207, 73.7307949),
        (18.5245123, 73.7298456),
        (18.5271557, 73.7276252),
        (18.5180856, 73.7339646),
        (18.5200001, 73.7330001),
    ])
    def test_round_trip_within_tolerance(self, lat, lng):
        """Round trip should reproduce the coordinate within 1e-6 degrees."""
        geo = GeoPoint(lat, lng)
        back = to_geo(to_pixel(geo, CAMPUS_ANCHORS), CAMPUS_ANCHORS)
        assert back.lat == pytest.approx(lat, abs=1e-6)
        assert back.lng == pytest.approx(lng, abs=1e-6)

    def test_to_geo_rounded_to_seven_decimals(self):
        """Geo output should be rounded to 7 decimal places."""
        geo = to_geo(PixelPoint(1000.123, 2000.456), CAMPUS_ANCHORS)
        assert round(geo.lat, 7) == geo.lat
        assert round(geo.lng, 7) == geo.lng


class TestBounds:
    """Tests for the calibrated-rectangle check."""

    def test_anchor_geos_are_inside(self):
        """Both calibration anchors should be within bounds."""
        assert is_within_bounds(TOP_LEFT.geo, CAMPUS_ANCHORS)
        assert is_within_bounds(BOTTOM_RIGHT.geo, CAMPUS_ANCHORS)

    def test_one_degree_north_is_outside(self):
        """A point 1 degree north of the top-left anchor should be out of bounds."""
        north = GeoPoint(TOP_LEFT.geo.lat + 1, TOP_LEFT.geo.lng)
        assert not is_within_bounds(north, CAMPUS_ANCHORS)

    def test_east_of_map_is_outside(self):
        """A point east of the bottom-right anchor should be out of bounds."""
        assert not is_within_bounds(GeoPoint(18.522, 73.75), CAMPUS_ANCHORS)


class TestCoordinateMapper:
    """Tests for the anchor-bound mapper."""

    def test_coincident_pixel_axis_raises(self):
        """Anchors sharing a pixel x should fail fast on construction."""
        anchors = CalibrationAnchors(
            top_left=Anchor(PixelPoint(100, 100), GeoPoint(18.53, 73.72)),
            bottom_right=Anchor(PixelPoint(100, 900), GeoPoint(18.51, 73.74)),
        )
        with pytest.raises(ConfigurationError):
            CoordinateMapper(anchors)

    def test_coincident_latitude_raises(self):
        """Anchors sharing a latitude should fail fast on construction."""
        anchors = CalibrationAnchors(
            top_left=Anchor(PixelPoint(100, 100), GeoPoint(18.52, 73.72)),
            bottom_right=Anchor(PixelPoint(900, 900), GeoPoint(18.52, 73.74)),
        )
        with pytest.raises(ConfigurationError):
            CoordinateMapper(anchors)

    def test_swapped_anchors_raise(self):
        """A south-east 'top-left' anchor should be rejected."""
        anchors = CalibrationAnchors(top_left=BOTTOM_RIGHT, bottom_right=TOP_LEFT)
        with pytest.raises(ConfigurationError):
            CoordinateMapper(anchors)

    def test_zero_span_in_function_raises(self):
        """The bare functions should also refuse a zero denominator."""
        anchors = CalibrationAnchors(
            top_left=Anchor(PixelPoint(100, 100), GeoPoint(18.52, 73.72)),
            bottom_right=Anchor(PixelPoint(900, 900), GeoPoint(18.52, 73.74)),
        )
        with pytest.raises(ConfigurationError):
            to_pixel(GeoPoint(18.52, 73.73), anchors)

    def test_project_withholds_out_of_bounds(self, mapper):
        """Off-map points should not be extrapolated."""
        assert mapper.project(GeoPoint(19.0, 73.73)) is None

    def test_project_inside(self, mapper):
        """In-bounds points should project like to_pixel."""
        geo = GeoPoint(18.5226207, 73.7307949)
        assert mapper.project(geo) == mapper.to_pixel(geo)

    def test_project_respects_image_size(self):
        """Pixels beyond the loaded image should be withheld."""
        mapper = CoordinateMapper(CAMPUS_ANCHORS, image_size=(1000, 1000))
        assert mapper.project(BOTTOM_RIGHT.geo) is None
        assert mapper.project(TOP_LEFT.geo) == TOP_LEFT.pixel

    def test_image_bounds(self):
        """Image corners should map back to geo, north-west first."""
        mapper = CoordinateMapper(CAMPUS_ANCHORS, image_size=(2645, 3910))
        top_left, bottom_right = mapper.image_bounds()
        assert top_left.lat > TOP_LEFT.geo.lat
        assert top_left.lng < TOP_LEFT.geo.lng
        assert bottom_right.lat < BOTTOM_RIGHT.geo.lat
        assert bottom_right.lng > BOTTOM_RIGHT.geo.lng

    def test_image_bounds_unknown_size(self, mapper):
        """Without image dimensions there are no image bounds."""
        assert mapper.image_bounds() is None

"""Tests for campus map fetching and caching."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from campusnav.campus_map import MapFetcher, svg_dimensions
from campusnav.errors import MapLoadError

SVG = b'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 2645 3910" width="100%"></svg>'


def make_response(content=SVG, content_type="image/svg+xml"):
    response = MagicMock()
    response.content = content
    response.headers = {"Content-Type": content_type}
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def cache_dir(tmp_path, monkeypatch):
    """Point the map cache at a temporary directory."""
    monkeypatch.setattr(MapFetcher, "CACHE_DIR", str(tmp_path))
    return tmp_path


class TestSvgDimensions:
    """Tests for reading image size from SVG markup."""

    def test_view_box(self):
        """viewBox width and height should be used first."""
        assert svg_dimensions(SVG) == (2645.0, 3910.0)

    def test_width_height_fallback(self):
        """Without viewBox, fall back to width/height attributes."""
        svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="800px" height="600"></svg>'
        assert svg_dimensions(svg) == (800.0, 600.0)

    def test_not_svg(self):
        """Unparseable content has no dimensions."""
        assert svg_dimensions(b"\x89PNG") is None


class TestMapFetcher:
    """Tests for loading the map asset."""

    def test_load(self, cache_dir):
        """A successful fetch returns content and dimensions."""
        with patch("campusnav.campus_map.requests.get", return_value=make_response()) as mock_get:
            campus_map = MapFetcher.load("https://example.test/map.svg")

        mock_get.assert_called_once()
        assert campus_map.content == SVG
        assert campus_map.size == (2645.0, 3910.0)

    def test_cached_on_disk(self, cache_dir):
        """A second load should come from the cache."""
        with patch("campusnav.campus_map.requests.get", return_value=make_response()) as mock_get:
            MapFetcher.load("https://example.test/map.svg")
            campus_map = MapFetcher.load("https://example.test/map.svg")

        assert mock_get.call_count == 1
        assert campus_map.size == (2645.0, 3910.0)

    def test_no_cache(self, cache_dir):
        """use_cache=False always fetches and writes nothing."""
        with patch("campusnav.campus_map.requests.get", return_value=make_response()) as mock_get:
            MapFetcher.load("https://example.test/map.svg", use_cache=False)
            MapFetcher.load("https://example.test/map.svg", use_cache=False)

        assert mock_get.call_count == 2
        assert list(cache_dir.iterdir()) == []

    def test_network_error(self, cache_dir):
        """Request failures become MapLoadError."""
        with patch("campusnav.campus_map.requests.get",
                   side_effect=requests.ConnectionError("offline")):
            with pytest.raises(MapLoadError):
                MapFetcher.load("https://example.test/map.svg")

    def test_http_error(self, cache_dir):
        """HTTP error statuses become MapLoadError."""
        response = make_response()
        response.raise_for_status.side_effect = requests.HTTPError("404")
        with patch("campusnav.campus_map.requests.get", return_value=response):
            with pytest.raises(MapLoadError):
                MapFetcher.load("https://example.test/map.svg")

    def test_empty_body(self, cache_dir):
        """An empty response is not a map."""
        with patch("campusnav.campus_map.requests.get", return_value=make_response(content=b"")):
            with pytest.raises(MapLoadError):
                MapFetcher.load("https://example.test/map.svg")

"""Campus map asset fetching with disk caching."""

import hashlib
import os
import time
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

import requests

from .config import CONFIG
from .errors import MapLoadError


@dataclass
class CampusMap:
    """The raw map image plus its native dimensions"""
    url: str
    content: bytes
    content_type: str
    width: Optional[float] = None
    height: Optional[float] = None

    @property
    def size(self) -> Optional[tuple[float, float]]:
        if self.width is None or self.height is None:
            return None
        return self.width, self.height


def svg_dimensions(content: bytes) -> Optional[tuple[float, float]]:
    """Width and height from an SVG's viewBox, falling back to width/height attributes"""
    try:
        root = ET.fromstring(content)
    except ET.ParseError:
        return None

    view_box = root.get("viewBox")
    if view_box:
        parts = view_box.replace(",", " ").split()
        if len(parts) == 4:
            try:
                return float(parts[2]), float(parts[3])
            except ValueError:
                pass

    try:
        return (float(root.get("width", "").rstrip("px")),
                float(root.get("height", "").rstrip("px")))
    except ValueError:
        return None


class MapFetcher:
    """Fetch the campus map image by URL"""

    CACHE_DIR = CONFIG["map_cache_dir"]
    CACHE_MAX_AGE = CONFIG["map_cache_max_age"]

    @classmethod
    def _cache_path(cls, url: str) -> str:
        h = hashlib.md5(url.encode()).hexdigest()[:12]
        return os.path.join(cls.CACHE_DIR, f"map_{h}.bin")

    @classmethod
    def _read_cache(cls, url: str) -> Optional[bytes]:
        path = cls._cache_path(url)
        try:
            age = time.time() - os.path.getmtime(path)
            if age > cls.CACHE_MAX_AGE:
                return None
            with open(path, "rb") as f:
                print(f"Using cached campus map ({age/3600:.1f}h old)")
                return f.read()
        except OSError:
            return None

    @classmethod
    def _write_cache(cls, url: str, content: bytes):
        try:
            os.makedirs(cls.CACHE_DIR, exist_ok=True)
            with open(cls._cache_path(url), "wb") as f:
                f.write(content)
        except OSError as e:
            print(f"Could not cache campus map: {e}")

    @classmethod
    def load(cls, url: Optional[str] = None, use_cache: bool = True) -> CampusMap:
        """Fetch the map, raising MapLoadError on any failure"""
        url = url or CONFIG["map_url"]

        content = cls._read_cache(url) if use_cache else None
        content_type = "image/svg+xml"
        if content is None:
            try:
                response = requests.get(url, timeout=CONFIG["map_fetch_timeout"])
                response.raise_for_status()
            except requests.RequestException as e:
                raise MapLoadError(f"Failed to load campus map from {url}: {e}") from e
            content = response.content
            content_type = response.headers.get("Content-Type", content_type)
            if not content:
                raise MapLoadError(f"Campus map at {url} is empty")
            if use_cache:
                cls._write_cache(url, content)

        size = None
        if "svg" in content_type or url.lower().endswith(".svg") or content.lstrip().startswith(b"<"):
            size = svg_dimensions(content)

        return CampusMap(
            url=url,
            content=content,
            content_type=content_type,
            width=size[0] if size else None,
            height=size[1] if size else None,
        )

"""Slippy-map tile arithmetic and spherical Web Mercator conversions."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

TILE_HOST = "mt1.google.com"
TILE_PATH = "/vt/lyrs=s&x={x}&y={y}&z={z}&scale=2"

TILE_SIZE_PX = 256
MAX_CACHE_ENTRIES = 1024
DEFAULT_ZOOM = 15
DEBOUNCE_SEC = 0.05
MAX_ZOOM = 19

EARTH_RADIUS = 6378137.0
ORIGIN_SHIFT = math.pi * EARTH_RADIUS


@dataclass(frozen=True, order=True)
class TileKey:
    """Address of one map tile; ordered by zoom, then x, then y."""

    z: int
    x: int
    y: int


@dataclass
class TileData:
    """A decoded tile: BGRA pixels, four bytes per pixel, rows top to bottom."""

    key: TileKey
    width: int = 0
    height: int = 0
    bgra: bytearray = field(default_factory=bytearray)
    valid: bool = False

    def byte_size(self) -> int:
        """Size in bytes of a full BGRA buffer for this tile's dimensions."""
        return self.width * self.height * 4


def lon_to_tile_x(lon: float, z: int) -> int:
    """Column of the tile at zoom ``z`` that contains longitude ``lon``."""
    return math.floor((lon + 180.0) / 360.0 * (1 << z))


def lat_to_tile_y(lat: float, z: int) -> int:
    """Row of the tile at zoom ``z`` that contains latitude ``lat``."""
    lat_r = math.radians(lat)
    val = (1.0 - math.log(math.tan(lat_r) + 1.0 / math.cos(lat_r)) / math.pi) / 2.0
    return math.floor(val * (1 << z))


def tile_x_to_lon(x: int, z: int) -> float:
    """Longitude of the western edge of tile column ``x``."""
    return x / float(1 << z) * 360.0 - 180.0


def tile_y_to_lat(y: int, z: int) -> float:
    """Latitude of the northern edge of tile row ``y``."""
    n = math.pi - 2.0 * math.pi * y / float(1 << z)
    return math.degrees(math.atan(math.sinh(n)))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def estimate_zoom(view_width_deg: float, vp_width_px: int = 1920) -> int:
    """Zoom level at which ``vp_width_px`` pixels span ``view_width_deg`` degrees.

    The result is clamped to the range 0..19.
    """
    if view_width_deg <= 0.0:
        raise ValueError("view width must be positive")
    tiles_wanted = vp_width_px / TILE_SIZE_PX
    z = math.log2(tiles_wanted * 360.0 / view_width_deg)
    return max(0, min(_round_half_away(z), MAX_ZOOM))


def mercator_to_ll(x: float, y: float) -> tuple[float, float]:
    """Convert Web Mercator metres to ``(lat, lon)`` in degrees."""
    lon = (x / ORIGIN_SHIFT) * 180.0
    y_deg = (y / ORIGIN_SHIFT) * 180.0
    lat = 180.0 / math.pi * (2.0 * math.atan(math.exp(math.radians(y_deg))) - math.pi / 2.0)
    return lat, lon


def ll_to_mercator(lat_deg: float, lon_deg: float) -> tuple[float, float]:
    """Convert ``(lat, lon)`` in degrees to Web Mercator ``(x, y)`` metres."""
    x = lon_deg * ORIGIN_SHIFT / 180.0
    lat_rad = math.radians(lat_deg)
    y = math.log(math.tan(math.pi / 4.0 + lat_rad / 2.0)) * EARTH_RADIUS
    return x, y


def tile_url(key: TileKey) -> str:
    """HTTPS address of the satellite imagery tile for ``key``."""
    return "https://" + TILE_HOST + TILE_PATH.format(x=key.x, y=key.y, z=key.z)
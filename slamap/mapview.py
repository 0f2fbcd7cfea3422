"""Choosing, placing and requesting the map tiles that cover a view."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from slamap.downloader import TileDownloader
from slamap.geo import (
    TileData,
    TileKey,
    estimate_zoom,
    lat_to_tile_y,
    ll_to_mercator,
    lon_to_tile_x,
    mercator_to_ll,
    tile_x_to_lon,
    tile_y_to_lat,
)
from slamap.tilecache import TileCache

VIEWPORT_WIDTH_PX = 1920
MAX_VIEW_WIDTH_DEG = 10.0
MAX_TILE_SPAN = 18
ORIGIN_GUARD = 100.0
TILE_ELEVATION = -1000.0
MAX_FALLBACK_LEVELS = 2


@dataclass(frozen=True)
class TilePlacement:
    """Where a tile image lies in Web Mercator drawing units.

    ``origin`` is the north-west corner, ``u`` runs to the north-east corner
    and ``v`` runs to the south-west corner.
    """

    origin: tuple[float, float, float]
    u: tuple[float, float]
    v: tuple[float, float]


def view_extents(
    corners: Iterable[tuple[float, float]],
) -> tuple[float, float, float, float] | None:
    """Bounding box ``(min_lon, min_lat, max_lon, max_lat)`` of view corners.

    Corners are Web Mercator points. Points close to the origin are treated as
    unprojected garbage and ignored; ``None`` when no corner is usable.
    """
    lats: list[float] = []
    lons: list[float] = []
    for x, y in corners:
        if abs(x) < ORIGIN_GUARD and abs(y) < ORIGIN_GUARD:
            continue
        lat, lon = mercator_to_ll(x, y)
        lats.append(lat)
        lons.append(lon)
    if not lats:
        return None
    return min(lons), min(lats), max(lons), max(lats)


def tile_placement(tile: TileData) -> TilePlacement:
    """Placement that makes ``tile`` cover exactly its geographic extent."""
    k = tile.key
    lon_w = tile_x_to_lon(k.x, k.z)
    lon_e = tile_x_to_lon(k.x + 1, k.z)
    lat_n = tile_y_to_lat(k.y, k.z)
    lat_s = tile_y_to_lat(k.y + 1, k.z)

    nw_e, nw_n = ll_to_mercator(lat_n, lon_w)
    ne_e, ne_n = ll_to_mercator(lat_n, lon_e)
    sw_e, sw_n = ll_to_mercator(lat_s, lon_w)

    return TilePlacement(
        origin=(nw_e, nw_n, TILE_ELEVATION),
        u=(ne_e - nw_e, ne_n - nw_n),
        v=(sw_e - nw_e, sw_n - nw_n),
    )


def crop_from_parent(parent: TileData, key: TileKey, dz: int) -> TileData | None:
    """Cut the part of an ancestor ``dz`` levels up that covers ``key``.

    Returns ``None`` when the ancestor is too small to yield any pixels.
    """
    if dz < 1:
        raise ValueError("dz must be at least 1")
    divisions = 1 << dz
    qx = key.x & (divisions - 1)
    qy = key.y & (divisions - 1)
    sub_w = parent.width // divisions
    sub_h = parent.height // divisions
    if sub_w <= 0 or sub_h <= 0:
        return None

    row_stride = parent.width * 4
    span = sub_w * 4
    first_row = qy * sub_h
    column_offset = qx * span
    pixels = bytearray()
    for row in range(first_row, first_row + sub_h):
        start = row * row_stride + column_offset
        pixels += parent.bgra[start : start + span]
    return TileData(key=key, width=sub_w, height=sub_h, bgra=pixels, valid=True)


class MapView:
    """Background map layer: picks tiles for a view and requests missing ones."""

    def __init__(
        self,
        cache: TileCache,
        downloader: TileDownloader | None = None,
        on_tile_ready: Callable[[], None] | None = None,
    ) -> None:
        self.cache = cache
        self.downloader = downloader
        self.on_tile_ready = on_tile_ready
        self.visible = True
        self.zoom_override = 0

    def set_visible(self, visible: bool) -> None:
        """Show or hide the map layer."""
        self.visible = bool(visible)

    def set_zoom_override(self, zoom: int) -> None:
        """Force a zoom level; 0 chooses one from the view width."""
        self.zoom_override = zoom

    def fallback_tile(self, key: TileKey) -> TileData | None:
        """Stand-in for a missing tile, cropped from a cached ancestor."""
        for dz in range(1, MAX_FALLBACK_LEVELS + 1):
            pz = key.z - dz
            if pz < 0:
                break
            parent = self.cache.get(TileKey(pz, key.x >> dz, key.y >> dz))
            if parent is None or not parent.valid:
                continue
            return crop_from_parent(parent, key, dz)
        return None

    def draw(
        self, corners: Iterable[tuple[float, float]]
    ) -> list[tuple[TileData, TilePlacement]]:
        """Tiles to render for a view whose corners are Web Mercator points.

        Tiles not in the cache are drawn from an ancestor when possible and
        queued for download, together with their parent tiles.
        """
        if not self.visible:
            return []
        extents = view_extents(corners)
        if extents is None:
            return []
        min_lon, min_lat, max_lon, max_lat = extents
        view_width = max_lon - min_lon
        if view_width <= 0.0 or view_width > MAX_VIEW_WIDTH_DEG:
            return []

        zoom = (
            self.zoom_override
            if self.zoom_override > 0
            else estimate_zoom(view_width, VIEWPORT_WIDTH_PX)
        )
        max_tile = (1 << zoom) - 1
        tx_min = max(0, lon_to_tile_x(min_lon, zoom) - 1)
        tx_max = min(max_tile, lon_to_tile_x(max_lon, zoom) + 1)
        ty_min = max(0, lat_to_tile_y(max_lat, zoom) - 1)
        ty_max = min(max_tile, lat_to_tile_y(min_lat, zoom) + 1)
        if tx_max - tx_min > MAX_TILE_SPAN or ty_max - ty_min > MAX_TILE_SPAN:
            return []

        drawn: list[tuple[TileData, TilePlacement]] = []
        missing: list[TileKey] = []
        parents_prefetched: set[TileKey] = set()

        for tx in range(tx_min, tx_max + 1):
            for ty in range(ty_min, ty_max + 1):
                key = TileKey(zoom, tx, ty)
                tile = self.cache.get(key)
                if tile is not None and tile.valid:
                    drawn.append((tile, tile_placement(tile)))
                    continue
                fallback = self.fallback_tile(key)
                if fallback is not None:
                    drawn.append((fallback, tile_placement(fallback)))
                missing.append(key)
                if zoom > 0:
                    parent = TileKey(zoom - 1, tx >> 1, ty >> 1)
                    if self.cache.get(parent) is None and parent not in parents_prefetched:
                        parents_prefetched.add(parent)
                        missing.append(parent)

        if missing and self.downloader is not None:
            self.downloader.enqueue(missing, self._tile_done)
        return drawn

    def _tile_done(self, tile: TileData | None) -> None:
        if tile is None or not tile.valid:
            return
        if self.on_tile_ready is not None:
            self.on_tile_ready()
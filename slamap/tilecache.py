"""Thread-safe least-recently-used cache of decoded map tiles."""

from __future__ import annotations

import threading
from collections import OrderedDict

from slamap.geo import MAX_CACHE_ENTRIES, TileData, TileKey


class TileCache:
    """LRU cache from :class:`TileKey` to valid :class:`TileData`.

    Looking a tile up with :meth:`get` marks it as most recently used; when
    the cache is full, inserting a new tile evicts the least recently used one.
    """

    def __init__(self, max_entries: int = MAX_CACHE_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[TileKey, TileData] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: TileKey) -> TileData | None:
        """Return the cached tile for ``key`` and promote it, or ``None``."""
        with self._lock:
            tile = self._entries.get(key)
            if tile is not None:
                self._entries.move_to_end(key, last=False)
            return tile

    def contains(self, key: TileKey) -> bool:
        """Whether ``key`` is cached; does not change the LRU order."""
        with self._lock:
            return key in self._entries

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def put(self, tile: TileData | None) -> None:
        """Insert a valid tile, replacing any tile with the same key.

        Tiles that are missing or not valid are ignored.
        """
        if tile is None or not tile.valid:
            return
        with self._lock:
            if tile.key in self._entries:
                self._entries[tile.key] = tile
                self._entries.move_to_end(tile.key, last=False)
                return
            if len(self._entries) >= self.max_entries:
                self._entries.popitem(last=True)
            self._entries[tile.key] = tile
            self._entries.move_to_end(tile.key, last=False)

    def clear(self) -> None:
        """Drop every cached tile."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> list[TileData]:
        """All cached tiles, most recently used first."""
        with self._lock:
            return list(self._entries.values())
"""Background download and decoding of satellite map tiles."""

from __future__ import annotations

import io
import logging
import threading
import urllib.request
from collections import deque
from collections.abc import Callable, Iterable

from PIL import Image

from slamap.geo import TileData, TileKey, tile_url
from slamap.tilecache import TileCache

log = logging.getLogger(__name__)

DEFAULT_ALPHA = 153
USER_AGENT = "SlaMap/1.0"

DoneCallback = Callable[[TileData | None], None]
Fetcher = Callable[[TileKey], bytes]


class TileDecodeError(ValueError):
    """Raised when tile bytes cannot be decoded into an image."""


def decode_png_to_bgra(png_bytes: bytes, key: TileKey, alpha: int = DEFAULT_ALPHA) -> TileData:
    """Decode image bytes into a valid tile with BGRA pixels.

    Every pixel's alpha byte is replaced by ``alpha`` (0..255), which sets the
    opacity of the whole map layer.
    """
    if not 0 <= alpha <= 255:
        raise ValueError("alpha must be between 0 and 255")
    if not png_bytes:
        raise TileDecodeError("no image data")
    try:
        with Image.open(io.BytesIO(png_bytes)) as img:
            img.load()
            rgba = img.convert("RGBA")
    except Exception as exc:
        raise TileDecodeError(f"cannot decode tile {key}: {exc}") from exc

    width, height = rgba.size
    if width <= 0 or height <= 0:
        raise TileDecodeError("image has no pixels")
    red, green, blue, _ = rgba.split()
    opacity = Image.new("L", rgba.size, alpha)
    bgra = Image.merge("RGBA", (blue, green, red, opacity)).tobytes()
    return TileData(key=key, width=width, height=height, bgra=bytearray(bgra), valid=True)


def fetch_tile(key: TileKey, timeout: float = 15.0) -> bytes:
    """Download the raw image bytes of one tile.

    Raises :class:`OSError` on network failure or a status other than 200.
    """
    request = urllib.request.Request(
        tile_url(key),
        headers={"Accept": "image/png,image/*", "User-Agent": USER_AGENT},
    )
    with urllib.request.urlopen(request, timeout=timeout) as response:
        status = getattr(response, "status", 200)
        if status != 200:
            raise OSError(f"tile {key}: HTTP status {status}")
        return response.read()


class TileDownloader:
    """Fixed pool of worker threads that fetch, decode and cache tiles."""

    def __init__(
        self,
        cache: TileCache,
        num_workers: int = 4,
        fetch: Fetcher | None = None,
        alpha: int = DEFAULT_ALPHA,
    ) -> None:
        if num_workers < 1:
            raise ValueError("num_workers must be at least 1")
        self.cache = cache
        self.num_workers = num_workers
        self.fetch: Fetcher = fetch if fetch is not None else fetch_tile
        self.alpha = alpha
        self._cond = threading.Condition()
        self._queue: deque[tuple[TileKey, DoneCallback | None]] = deque()
        self._inflight: set[TileKey] = set()
        self._workers: list[threading.Thread] = []
        self._running = False

    def __enter__(self) -> TileDownloader:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start(self) -> bool:
        """Launch the worker threads; calling it while running does nothing."""
        with self._cond:
            if self._running:
                return True
            self._running = True
        for i in range(self.num_workers):
            worker = threading.Thread(
                target=self._worker_loop, name=f"tile-worker-{i}", daemon=True
            )
            worker.start()
            self._workers.append(worker)
        return True

    def stop(self) -> None:
        """Let workers drain the queue and exit, then wait for them."""
        with self._cond:
            self._running = False
            self._cond.notify_all()
        for worker in self._workers:
            worker.join()
        self._workers.clear()

    def enqueue(self, keys: Iterable[TileKey], on_done: DoneCallback | None = None) -> None:
        """Schedule tiles for download, skipping cached and in-flight keys.

        ``on_done`` is called on a worker thread with the decoded tile, or with
        ``None`` when the download or decoding failed.
        """
        with self._cond:
            for key in keys:
                if self.cache.contains(key) or key in self._inflight:
                    continue
                self._inflight.add(key)
                self._queue.append((key, on_done))
            self._cond.notify_all()

    def cancel_pending(self) -> None:
        """Forget every download that has not started yet."""
        with self._cond:
            self._queue.clear()
            self._inflight.clear()

    def download_and_decode(self, key: TileKey) -> TileData | None:
        """Fetch and decode one tile; ``None`` if either step fails."""
        try:
            data = self.fetch(key)
            return decode_png_to_bgra(data, key, self.alpha)
        except (OSError, ValueError) as exc:
            log.debug("tile %s failed: %s", key, exc)
            return None

    def _worker_loop(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: not self._running or bool(self._queue))
                if not self._running and not self._queue:
                    return
                key, callback = self._queue.popleft()

            tile = self.download_and_decode(key)
            if tile is not None and tile.valid:
                self.cache.put(tile)

            with self._cond:
                self._inflight.discard(key)

            if callback is not None:
                try:
                    callback(tile)
                except Exception:
                    log.exception("tile callback failed for %s", key)
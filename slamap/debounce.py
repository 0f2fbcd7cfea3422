"""Debounced notification of view changes driven by editor command events."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from slamap.downloader import TileDownloader

log = logging.getLogger(__name__)

REGEN_COMMANDS = frozenset({"REGEN", "REGENALL"})


class ViewportReactor:
    """Fire ``callback`` once the view has been quiet for ``debounce_ms``.

    Editor events call :meth:`nudge` (directly or through the ``command_*``
    hooks); a background thread waits until no nudge has arrived for the
    debounce period and then invokes the callback a single time.
    """

    def __init__(
        self,
        callback: Callable[[], None] | None,
        debounce_ms: int = 500,
        downloader: TileDownloader | None = None,
    ) -> None:
        if debounce_ms < 0:
            raise ValueError("debounce_ms must not be negative")
        self.callback = callback
        self.debounce_ms = debounce_ms
        self.downloader = downloader
        self._cond = threading.Condition()
        self._last_event: float | None = None
        self._running = False
        self._thread: threading.Thread | None = None

    def __enter__(self) -> ViewportReactor:
        self.attach()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.detach()

    @property
    def attached(self) -> bool:
        """Whether the debounce thread is running."""
        return self._thread is not None

    def attach(self) -> None:
        """Start the debounce thread; does nothing when already attached."""
        if self._thread is not None:
            return
        with self._cond:
            self._running = True
        self._thread = threading.Thread(
            target=self._debounce_loop, name="viewport-debounce", daemon=True
        )
        self._thread.start()

    def detach(self) -> None:
        """Stop the debounce thread and wait for it; safe to call repeatedly."""
        if self._thread is None:
            return
        with self._cond:
            self._running = False
            self._cond.notify_all()
        self._thread.join()
        self._thread = None

    def nudge(self) -> None:
        """Record that the view may have changed just now."""
        with self._cond:
            self._last_event = time.monotonic()
            self._cond.notify()

    def command_will_start(self, command: str | None) -> None:
        """Cancel pending tile downloads before a regeneration command runs."""
        if not command:
            return
        if command.upper() in REGEN_COMMANDS and self.downloader is not None:
            self.downloader.cancel_pending()

    def command_ended(self, command: str | None) -> None:
        """A command finished; the view may have moved."""
        self.nudge()

    def command_cancelled(self, command: str | None) -> None:
        """A command was cancelled part-way; the view may have moved."""
        self.nudge()

    def command_failed(self, command: str | None) -> None:
        """A command aborted; the view may have moved."""
        self.nudge()

    def _debounce_loop(self) -> None:
        poll_interval = (self.debounce_ms // 4 + 1) / 1000.0
        quiet_period = self.debounce_ms / 1000.0
        while True:
            with self._cond:
                self._cond.wait(poll_interval)
                if not self._running:
                    return
                last = self._last_event
                if last is None or time.monotonic() - last < quiet_period:
                    continue
                self._last_event = None
            if self.callback is None:
                continue
            try:
                self.callback()
            except Exception:
                log.exception("viewport change callback failed")
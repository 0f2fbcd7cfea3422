import threading
import time

from slamap.debounce import ViewportReactor
from slamap.downloader import TileDownloader
from slamap.geo import TileKey
from slamap.tilecache import TileCache


class _Counter:
    def __init__(self):
        self.count = 0
        self.event = threading.Event()
        self.lock = threading.Lock()

    def __call__(self):
        with self.lock:
            self.count += 1
        self.event.set()


def _recording_downloader():
    fetched = []
    lock = threading.Lock()

    def fetch(key):
        with lock:
            fetched.append(key)
        raise OSError("offline")

    return TileDownloader(TileCache(), num_workers=1, fetch=fetch), fetched


def test_nudge_fires_callback_after_quiet_period():
    counter = _Counter()
    with ViewportReactor(counter, debounce_ms=20):
        reactor_started = time.monotonic()
        counter.event.clear()
    assert counter.count == 0
    reactor = ViewportReactor(counter, debounce_ms=20)
    reactor.attach()
    try:
        reactor.nudge()
        assert counter.event.wait(2.0)
        assert counter.count == 1
    finally:
        reactor.detach()
    assert reactor_started > 0


def test_no_callback_without_nudge():
    counter = _Counter()
    with ViewportReactor(counter, debounce_ms=10):
        time.sleep(0.15)
    assert counter.count == 0


def test_burst_of_nudges_coalesces_to_one_call():
    counter = _Counter()
    with ViewportReactor(counter, debounce_ms=50) as reactor:
        for _ in range(5):
            reactor.nudge()
        assert counter.event.wait(2.0)
        time.sleep(0.3)
    assert counter.count == 1


def test_command_hooks_nudge():
    for hook in ("command_ended", "command_cancelled", "command_failed"):
        counter = _Counter()
        with ViewportReactor(counter, debounce_ms=10) as reactor:
            getattr(reactor, hook)("ZOOM")
            assert counter.event.wait(2.0), hook
        assert counter.count == 1


def test_callback_exception_does_not_stop_thread():
    calls = []
    second = threading.Event()

    def callback():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        second.set()

    with ViewportReactor(callback, debounce_ms=10) as reactor:
        reactor.nudge()
        deadline = time.monotonic() + 2.0
        while not calls and time.monotonic() < deadline:
            time.sleep(0.01)
        assert reactor.attached is True
        reactor.nudge()
        assert second.wait(2.0)
    assert reactor.attached is False
    assert len(calls) == 2


def test_attach_and_detach_are_idempotent():
    reactor = ViewportReactor(None, debounce_ms=10)
    assert reactor.attached is False
    reactor.attach()
    reactor.attach()
    assert reactor.attached is True
    reactor.detach()
    reactor.detach()
    assert reactor.attached is False


def test_reattach_after_detach_works():
    counter = _Counter()
    reactor = ViewportReactor(counter, debounce_ms=10)
    reactor.attach()
    reactor.detach()
    reactor.attach()
    try:
        reactor.nudge()
        assert counter.event.wait(2.0)
    finally:
        reactor.detach()
    assert counter.count == 1


def test_negative_debounce_rejected():
    try:
        ViewportReactor(None, debounce_ms=-1)
    except ValueError as exc:
        assert "debounce" in str(exc)
    else:
        raise AssertionError("expected ValueError")


def test_regen_cancels_pending_downloads():
    downloader, fetched = _recording_downloader()
    reactor = ViewportReactor(None, debounce_ms=10, downloader=downloader)
    first = TileKey(3, 1, 1)
    second = TileKey(3, 2, 2)
    downloader.enqueue([first])
    reactor.command_will_start("regenall")
    downloader.enqueue([second])
    downloader.start()
    downloader.stop()
    assert fetched == [second]


def test_other_command_keeps_pending_downloads():
    downloader, fetched = _recording_downloader()
    reactor = ViewportReactor(None, debounce_ms=10, downloader=downloader)
    key = TileKey(3, 1, 1)
    downloader.enqueue([key])
    reactor.command_will_start("LINE")
    reactor.command_will_start(None)
    downloader.start()
    downloader.stop()
    assert fetched == [key]
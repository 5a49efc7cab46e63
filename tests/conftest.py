import json
import shutil
import socket
import sys
import tempfile
import threading
import time
from pathlib import Path

import pytest


# Ensure tests can import the package regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)

from media_queue_hub.errors import FetchError, PlayerIPCError  # noqa: E402
from media_queue_hub.ipc import PropertyValue  # noqa: E402


def wait_for(cond, timeout=2.0, interval=0.01):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if cond():
            return True
        time.sleep(interval)
    return cond()


class FakePlayer:
    """Records every command; get_property answers from self.properties."""

    def __init__(self):
        self.calls = []
        self.current_title = "Idle"
        self.current_path = None
        self.path_error = False
        self.fail_play = set()
        self.properties = {}

    def replace_and_play(self, path, title):
        self.calls.append(("replace", path, title))
        if path in self.fail_play:
            raise PlayerIPCError("mpv unreachable")
        self.current_path = path
        self.current_title = title

    def append_to_playlist(self, path, title=""):
        self.calls.append(("append", path, title))

    def toggle_pause(self):
        self.calls.append(("pause",))

    def skip_next(self):
        self.calls.append(("playlist-next",))

    def skip_previous(self):
        self.calls.append(("playlist-prev",))

    def seek_absolute(self, seconds):
        self.calls.append(("seek", seconds))

    def set_volume(self, percent):
        self.calls.append(("volume", percent))

    def get_property(self, name):
        if name == "path":
            if self.path_error:
                raise PlayerIPCError("property unavailable")
            return PropertyValue.from_json(self.current_path)
        if name in self.properties:
            return PropertyValue.from_json(self.properties[name])
        raise PlayerIPCError("property unavailable")

    def plays(self):
        return [c for c in self.calls if c[0] == "replace"]

    def appends(self):
        return [c for c in self.calls if c[0] == "append"]


class FakeDownloader:
    """
    Returns <cache>/<id>.m4a. Ids in `fail` raise FetchError. When `gate`
    is set to an Event, every fetch waits on it first.
    """

    def __init__(self, cache_dir, fail=()):
        self.cache_dir = Path(cache_dir)
        self.fail = set(fail)
        self.order = []
        self.gate = None
        self.on_fetch = None

    def fetch(self, url, item_id):
        if self.gate is not None:
            assert self.gate.wait(5), "fetch gate never opened"
        self.order.append(item_id)
        if self.on_fetch is not None:
            self.on_fetch(url, item_id)
        if item_id in self.fail:
            raise FetchError("yt-dlp download failed (exit 1)")
        return self.cache_dir / f"{item_id}.m4a"


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def downloader(tmp_path):
    return FakeDownloader(tmp_path)


@pytest.fixture
def engine(player, downloader):
    from media_queue_hub.queue_manager import QueueManager

    qm = QueueManager(player, downloader, title_lookup=None)
    yield qm
    if downloader.gate is not None:
        downloader.gate.set()
    qm.close()


class FakeMpvServer:
    """
    Unix socket that answers each JSON line with whatever `handler(msg)`
    returns (a list of objects, written one per line).
    """

    def __init__(self, path, handler=lambda msg: []):
        self.path = path
        self.handler = handler
        self.received = []
        self._stop = threading.Event()
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.sock.bind(path)
        self.sock.listen(8)
        self.sock.settimeout(0.1)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with conn:
                reader = conn.makefile("rb")
                try:
                    for line in reader:
                        msg = json.loads(line)
                        self.received.append(msg)
                        for out in self.handler(msg):
                            conn.sendall(json.dumps(out).encode("utf-8") + b"\n")
                except OSError:
                    pass
                finally:
                    reader.close()

    def close(self):
        self._stop.set()
        self._thread.join(1)
        self.sock.close()


@pytest.fixture
def sock_dir():
    # AF_UNIX paths are length limited, keep them short
    d = tempfile.mkdtemp(prefix="mqh")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def mpv_server(sock_dir):
    servers = []

    def make(handler=lambda msg: []):
        srv = FakeMpvServer(str(sock_dir / "mpv.sock"), handler)
        servers.append(srv)
        return srv

    yield make
    for srv in servers:
        srv.close()

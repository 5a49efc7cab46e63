import subprocess

import pytest

from media_queue_hub import playback as playback_module
from media_queue_hub.errors import PlayerStartError
from media_queue_hub.ipc import MpvIPC, PropertyValue
from media_queue_hub.models import PlaylistEntry
from media_queue_hub.playback import MpvPlayer, PlayerState


class FakeProc:
    """Stands in for subprocess.Popen(mpv ...)."""

    instances = []

    def __init__(self, args, exit_code=None, create=None):
        self.args = args
        self.pid = 4242
        self.returncode = exit_code
        self.terminated = 0
        self.killed = False
        if create is not None:
            create.touch()
        FakeProc.instances.append(self)

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated += 1
        if self.returncode is None:
            self.returncode = -15

    def kill(self):
        self.killed = True

    def wait(self, timeout=None):
        return self.returncode


@pytest.fixture
def popen(monkeypatch):
    FakeProc.instances = []

    def install(**kw):
        monkeypatch.setattr(
            playback_module.subprocess, "Popen", lambda args: FakeProc(args, **kw)
        )

    return install


class RecordingIPC:
    def __init__(self, replies=None):
        self.path = "/tmp/test-mpv.sock"
        self.is_windows_pipe = False
        self.sent = []
        self.requests = []
        self.replies = replies or {}

    def send(self, command):
        self.sent.append(command)

    def request(self, command):
        self.requests.append(command)
        return PropertyValue.from_json(self.replies.get(command[1]))


class TestSupervision:
    def test_build_args(self):
        p = MpvPlayer("/tmp/x.sock", mpv="mpv", ytdlp="/opt/yt-dlp")
        assert p.build_args() == [
            "mpv",
            "--idle=yes",
            "--vo=null",
            "--ytdl-format=bestaudio/best",
            "--input-ipc-server=/tmp/x.sock",
            "--script-opts=ytdl_hook-ytdl_path=/opt/yt-dlp",
        ]

    def test_start_waits_for_socket(self, sock_dir, popen):
        sock = sock_dir / "mpv.sock"
        popen(create=sock)
        p = MpvPlayer(str(sock), socket_wait=1.0, socket_poll=0.01)

        p.start()

        assert p.state is PlayerState.RUNNING
        assert p.is_running()

    def test_socket_never_appears(self, sock_dir, popen):
        popen()
        p = MpvPlayer(str(sock_dir / "mpv.sock"), socket_wait=0.2, socket_poll=0.02)

        with pytest.raises(PlayerStartError, match="timed out"):
            p.start()

        proc = FakeProc.instances[0]
        assert proc.terminated == 1
        assert proc.poll() is not None
        assert p.state is PlayerState.STOPPED

    def test_process_exits_before_socket(self, sock_dir, popen):
        popen(exit_code=1)
        p = MpvPlayer(str(sock_dir / "mpv.sock"), socket_wait=1.0, socket_poll=0.01)

        with pytest.raises(PlayerStartError, match=r"exited unexpectedly \(code 1\)"):
            p.start()
        assert p.state is PlayerState.STOPPED
        assert FakeProc.instances[0].terminated == 1

    def test_missing_binary(self, sock_dir, monkeypatch):
        def boom(args):
            raise FileNotFoundError("mpv")

        monkeypatch.setattr(playback_module.subprocess, "Popen", boom)
        with pytest.raises(PlayerStartError):
            MpvPlayer(str(sock_dir / "mpv.sock")).start()

    def test_stale_socket_removed_before_start(self, sock_dir, popen):
        sock = sock_dir / "mpv.sock"
        sock.touch()
        popen()
        p = MpvPlayer(str(sock), socket_wait=0.05, socket_poll=0.01)

        with pytest.raises(PlayerStartError):
            p.start()
        assert not sock.exists()

    def test_stop_is_idempotent(self, sock_dir, popen):
        sock = sock_dir / "mpv.sock"
        popen(create=sock)
        p = MpvPlayer(str(sock), socket_wait=1.0, socket_poll=0.01)
        p.start()

        p.stop()
        p.stop()

        assert p.state is PlayerState.STOPPED
        assert FakeProc.instances[0].terminated == 2

    def test_stop_before_start(self):
        p = MpvPlayer("/tmp/none.sock")
        p.stop()
        assert p.state is PlayerState.STOPPED

    def test_stop_kills_stubborn_process(self, sock_dir, popen, monkeypatch):
        sock = sock_dir / "mpv.sock"
        popen(create=sock)
        p = MpvPlayer(str(sock), socket_wait=1.0, socket_poll=0.01)
        p.start()
        proc = FakeProc.instances[0]

        def stubborn_wait(timeout=None):
            if timeout is not None:
                raise subprocess.TimeoutExpired("mpv", timeout)
            return 0

        proc.wait = stubborn_wait
        p.stop()
        assert proc.killed


class TestCommands:
    def make(self, replies=None):
        ipc = RecordingIPC(replies)
        return MpvPlayer(ipc.path, ipc=ipc), ipc

    def test_replace_and_play_tracks_title(self):
        p, ipc = self.make()
        assert p.current_title == "Idle"
        p.replace_and_play("/c/a.m4a", "Song A")
        assert ipc.sent == [["loadfile", "/c/a.m4a", "replace"]]
        assert p.current_title == "Song A"

    def test_append_with_and_without_title(self):
        p, ipc = self.make()
        p.append_to_playlist("/c/a.m4a", "Song A")
        p.append_to_playlist("/c/b.m4a")
        assert ipc.sent == [
            ["loadfile", "/c/a.m4a", "append", "force-media-title=Song A"],
            ["loadfile", "/c/b.m4a", "append"],
        ]

    def test_transport_verbs(self):
        p, ipc = self.make()
        p.toggle_pause()
        p.skip_next()
        p.skip_previous()
        p.seek_absolute(42)
        p.set_volume(150)
        assert ipc.sent == [
            ["cycle", "pause"],
            ["playlist-next"],
            ["playlist-prev"],
            ["seek", 42.0, "absolute"],
            ["set_property", "volume", 100.0],
        ]

    def test_get_property(self):
        p, ipc = self.make({"time-pos": 3.5})
        assert p.get_property("time-pos").as_float() == 3.5
        assert ipc.requests == [["get_property", "time-pos"]]

    def test_playlist_snapshot(self):
        p, _ = self.make(
            {
                "playlist": [
                    {"filename": "/c/a.m4a", "title": "Song A"},
                    {"filename": "/c/b.m4a", "current": True, "playing": True},
                ]
            }
        )
        assert p.get_playlist_snapshot() == [
            PlaylistEntry(path="/c/a.m4a", title="Song A", is_current=False),
            PlaylistEntry(path="/c/b.m4a", title="/c/b.m4a", is_current=True),
        ]

    def test_default_ipc_uses_path(self):
        p = MpvPlayer("/tmp/abc.sock")
        assert isinstance(p.ipc, MpvIPC)
        assert p.ipc.path == "/tmp/abc.sock"

from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from enum import Enum
from typing import Any, Optional

from media_queue_hub.config import SOCKET_POLL_SEC, SOCKET_WAIT_SEC, STOP_GRACE_SEC
from media_queue_hub.errors import PlayerStartError
from media_queue_hub.ipc import MpvIPC, PropertyValue
from media_queue_hub.models import PlaylistEntry

log = logging.getLogger(__name__)


class PlayerState(str, Enum):
    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"


class MpvPlayer:
    """
    Owns the mpv process and talks to it over IPC.

    mpv runs idle with no video output and resolves remote streams itself
    through the same yt-dlp the downloader uses.
    """

    def __init__(
        self,
        ipc_path: str,
        mpv: str = "mpv",
        ytdlp: str = "yt-dlp",
        *,
        ipc: Optional[MpvIPC] = None,
        socket_wait: float = SOCKET_WAIT_SEC,
        socket_poll: float = SOCKET_POLL_SEC,
    ) -> None:
        self.ipc = ipc or MpvIPC(ipc_path)
        self.mpv = mpv
        self.ytdlp = ytdlp
        self.socket_wait = socket_wait
        self.socket_poll = socket_poll

        self.state = PlayerState.NOT_STARTED
        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._current_title = "Idle"

    # -------------------- process --------------------

    def build_args(self) -> list[str]:
        return [
            self.mpv,
            "--idle=yes",
            "--vo=null",
            "--ytdl-format=bestaudio/best",
            f"--input-ipc-server={self.ipc.path}",
            f"--script-opts=ytdl_hook-ytdl_path={self.ytdlp}",
        ]

    def is_running(self) -> bool:
        return self.state is PlayerState.RUNNING

    def start(self) -> None:
        with self._lock:
            if self.state is PlayerState.RUNNING:
                return

            self._remove_stale_socket()
            self.state = PlayerState.STARTING
            try:
                self._proc = subprocess.Popen(self.build_args())
            except OSError as e:
                self.state = PlayerState.STOPPED
                raise PlayerStartError(f"failed to start mpv: {e}") from e

            try:
                self._wait_for_ipc(self._proc)
            except PlayerStartError:
                self._terminate()
                self.state = PlayerState.STOPPED
                raise

            self.state = PlayerState.RUNNING
            log.info("mpv started (pid %s, ipc %s)", self._proc.pid, self.ipc.path)

    def _remove_stale_socket(self) -> None:
        if self.ipc.is_windows_pipe:
            return
        try:
            os.unlink(self.ipc.path)
            log.debug("removed stale mpv socket %s", self.ipc.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning("could not remove stale mpv socket %s: %s", self.ipc.path, e)

    def _wait_for_ipc(self, proc: subprocess.Popen) -> None:
        deadline = time.monotonic() + self.socket_wait
        while time.monotonic() < deadline:
            time.sleep(self.socket_poll)
            if proc.poll() is not None:
                raise PlayerStartError(
                    f"mpv exited unexpectedly (code {proc.returncode})"
                )
            if self.ipc.available():
                return
        raise PlayerStartError(f"timed out waiting for mpv socket at {self.ipc.path}")

    def _terminate(self) -> None:
        proc = self._proc
        if proc is None:
            return
        proc.terminate()
        try:
            proc.wait(timeout=STOP_GRACE_SEC)
        except subprocess.TimeoutExpired:
            log.warning("mpv did not exit after terminate, killing it")
            proc.kill()
            proc.wait()

    def stop(self) -> None:
        with self._lock:
            self._terminate()
            if self.state is not PlayerState.STOPPED:
                log.info("mpv stopped")
            self.state = PlayerState.STOPPED

    # -------------------- commands --------------------

    @property
    def current_title(self) -> str:
        with self._lock:
            return self._current_title

    def replace_and_play(self, path: str, title: str) -> None:
        self.ipc.send(["loadfile", path, "replace"])
        with self._lock:
            self._current_title = title

    def append_to_playlist(self, path: str, title: str = "") -> None:
        command: list[Any] = ["loadfile", path, "append"]
        if title:
            command.append(f"force-media-title={title}")
        self.ipc.send(command)

    def toggle_pause(self) -> None:
        self.ipc.send(["cycle", "pause"])

    def skip_next(self) -> None:
        self.ipc.send(["playlist-next"])

    def skip_previous(self) -> None:
        self.ipc.send(["playlist-prev"])

    def seek_absolute(self, seconds: float) -> None:
        self.ipc.send(["seek", float(seconds), "absolute"])

    def set_volume(self, percent: float) -> None:
        self.ipc.send(["set_property", "volume", max(0.0, min(100.0, float(percent)))])

    # -------------------- queries --------------------

    def get_property(self, name: str) -> PropertyValue:
        return self.ipc.request(["get_property", name])

    def get_playlist_snapshot(self) -> list[PlaylistEntry]:
        out: list[PlaylistEntry] = []
        for entry in self.get_property("playlist").as_list():
            path = entry.get("filename").as_str("") or ""
            out.append(
                PlaylistEntry(
                    path=path,
                    title=entry.get("title").as_str() or path,
                    is_current=entry.get("current").as_bool(),
                )
            )
        return out

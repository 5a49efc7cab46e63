from __future__ import annotations

import logging
import queue as thread_queue
import threading
from pathlib import Path
from typing import Callable, Optional

from media_queue_hub.errors import MediaQueueError
from media_queue_hub.logs import LOG_FORMAT
from media_queue_hub.models import PlayerStatus, QueueEntry, SearchResult
from media_queue_hub.pollers import StatusPoller
from media_queue_hub.queue_manager import QueueManager
from media_queue_hub.services.youtube import YouTubeSearch
from media_queue_hub.storage import load_json, save_json

log = logging.getLogger(__name__)


class UiLogHandler(logging.Handler):
    """Forwards log records into the controller's event queue."""

    def __init__(self, emit_event: Callable[[dict], None]) -> None:
        super().__init__(level=logging.INFO)
        self.emit_event = emit_event
        self.setFormatter(logging.Formatter(LOG_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.emit_event({"type": "log", "msg": self.format(record)})
        except Exception:
            self.handleError(record)


def format_time(seconds: float) -> str:
    s = max(0, int(seconds))
    return f"{s // 60}:{s % 60:02d}"


class PlayerController:
    """
    Sits between the window and the queue manager.

    - the window only calls controller methods and reflects events
    - anything that talks to mpv or yt-dlp runs off the Qt thread
    - results come back through self.ui_events, drained by a QTimer
    """

    def __init__(
        self,
        queue_manager: QueueManager,
        search: YouTubeSearch,
        config_file: Path,
        on_ui_update,  # (entries: list[QueueEntry]) -> None
        on_log,  # (str) -> None
        on_status_text,  # (str) -> None
        on_now_playing,  # (big:str, small:str) -> None
        on_position,  # (position:float, duration:float) -> None
        on_search_results,  # (list[SearchResult]) -> None
    ) -> None:
        self.queue = queue_manager
        self.search_service = search
        self.config_file = config_file

        self.on_ui_update = on_ui_update
        self.on_log = on_log
        self.on_status_text = on_status_text
        self.on_now_playing = on_now_playing
        self.on_position = on_position
        self.on_search_results = on_search_results

        self.ui_events: "thread_queue.Queue[dict]" = thread_queue.Queue()
        self._closing = False

        self.config_data: dict = load_json(self.config_file, {})
        if not isinstance(self.config_data, dict):
            self.config_data = {}
        self._volume: float = float(self.config_data.get("volume", 0.7))

        self.log_handler = UiLogHandler(self.ui_events.put)
        logging.getLogger().addHandler(self.log_handler)

        self.poller = StatusPoller(self.queue, emit_event=self.ui_events.put)

    # ======================================================================
    # START / CLOSE
    # ======================================================================

    def start(self) -> None:
        self._run_async(lambda: self.queue.set_volume(self._volume * 100), "volume")
        self.poller.start()
        self.on_status_text("Ready")

    def close(self) -> None:
        if self._closing:
            return
        self._closing = True
        self.poller.stop()
        logging.getLogger().removeHandler(self.log_handler)
        self.queue.close()

    @property
    def volume(self) -> float:
        return self._volume

    # ======================================================================
    # BACKGROUND CALLS
    # ======================================================================

    def _run_async(self, fn: Callable[[], object], label: str) -> threading.Thread:
        def runner() -> None:
            try:
                fn()
            except (MediaQueueError, ValueError, IndexError) as e:
                self.ui_events.put({"type": "error", "msg": f"{label}: {e}"})
            else:
                # snapshot reads mpv state, so take it here and not on the Qt thread
                self.ui_events.put({"type": "queue", "entries": self.queue.queue_snapshot()})

        th = threading.Thread(target=runner, daemon=True, name=f"ui-{label}")
        th.start()
        return th

    # ======================================================================
    # PUBLIC UI API
    # ======================================================================

    def submit(self, text: str, *, play: bool, title: str = "", item_id: str = "") -> None:
        """URLs go to the queue; anything else is treated as a search."""
        text = (text or "").strip()
        if not text:
            return
        if "://" not in text:
            self.search(text)
            return
        fn = self.queue.play_now if play else self.queue.enqueue
        self._run_async(lambda: fn(text, title, item_id), "play" if play else "add")

    def play_result(self, result: SearchResult, *, play: bool = True) -> None:
        self.submit(result.url, play=play, title=result.title, item_id=result.id)

    def search(self, query: str) -> None:
        query = (query or "").strip()
        if not query:
            return
        self.on_status_text(f"Searching “{query}”…")

        def run() -> None:
            results = self.search_service.search(query)
            self.ui_events.put({"type": "search_results", "results": results})

        self._run_async(run, "search")

    def play_pause(self) -> None:
        self._run_async(self.queue.toggle_pause, "pause")

    def next_track(self) -> None:
        self._run_async(self._step(self.queue.next), "next")

    def prev_track(self) -> None:
        self._run_async(self._step(self.queue.previous), "prev")

    def _step(self, move: Callable[[], bool]) -> Callable[[], None]:
        def run() -> None:
            if not move():
                self.ui_events.put(
                    {"type": "status_text", "msg": "Playlist out of sync, used player skip"}
                )

        return run

    def seek(self, seconds: float) -> None:
        self._run_async(lambda: self.queue.seek_absolute(seconds), "seek")

    def play_index(self, index: int) -> None:
        self._run_async(lambda: self.queue.skip_to_index(index), "play")

    def set_volume(self, volume: float) -> None:
        self._volume = max(0.0, min(1.0, float(volume)))
        self._run_async(lambda: self.queue.set_volume(self._volume * 100), "volume")

    def save_config(self) -> None:
        if self._closing:
            return
        self.config_data["volume"] = self._volume
        save_json(self.config_file, self.config_data)

    # ======================================================================
    # EVENT PUMP
    # ======================================================================

    def process_ui_events(self) -> None:
        if self._closing:
            return

        entries: Optional[list[QueueEntry]] = None

        try:
            while True:
                ev = self.ui_events.get_nowait()
                et = ev.get("type")

                if et == "log":
                    self.on_log(str(ev.get("msg", "")))

                elif et == "error":
                    msg = str(ev.get("msg", ""))
                    self.on_log(f"❌ {msg}")
                    self.on_status_text(msg)

                elif et == "status_text":
                    self.on_status_text(str(ev.get("msg", "")))

                elif et == "status":
                    st = PlayerStatus(**ev["status"])
                    self.on_position(st.position, st.duration)
                    self.on_now_playing(
                        st.title,
                        f"{format_time(st.position)} / {format_time(st.duration)}",
                    )

                elif et == "queue":
                    entries = list(ev.get("entries") or [])

                elif et == "search_results":
                    results = list(ev.get("results") or [])
                    self.on_search_results(results)
                    self.on_status_text(f"{len(results)} result(s)")

        except thread_queue.Empty:
            pass

        if entries is not None:
            self.on_ui_update(entries)

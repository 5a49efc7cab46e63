from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from typing import Callable

from media_queue_hub.config import STATUS_POLL_INTERVAL_SEC
from media_queue_hub.errors import MediaQueueError
from media_queue_hub.queue_manager import QueueManager

log = logging.getLogger(__name__)


class StatusPoller:
    """
    Polls mpv through the queue manager in a background thread and emits
    UI events via callback.
    """

    def __init__(
        self,
        queue: QueueManager,
        emit_event: Callable[[dict], None],
        interval: float = STATUS_POLL_INTERVAL_SEC,
    ) -> None:
        self.queue = queue
        self.emit_event = emit_event
        self.interval = interval

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True, name="status-poller")
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()

    def is_running(self) -> bool:
        return not self._stop_event.is_set()

    def poll_once(self) -> None:
        current_id = self.queue.sync_with_player()
        status = self.queue.current_status_snapshot()
        self.emit_event({"type": "status", "status": asdict(status), "current_id": current_id})
        self.emit_event({"type": "queue", "entries": self.queue.queue_snapshot()})

    def _loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.poll_once()
            except MediaQueueError as e:
                log.warning("status poll failed: %s", e)
            self._stop_event.wait(self.interval)

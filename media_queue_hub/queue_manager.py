from __future__ import annotations

import logging
import queue as thread_queue
import threading
from typing import Callable, Iterable, List, Mapping, Optional

from media_queue_hub.config import PIPELINE_CAPACITY, UNKNOWN_TITLE
from media_queue_hub.downloader import Downloader
from media_queue_hub.errors import FetchError, InvalidStateError, PlayerIPCError
from media_queue_hub.identifiers import resolve_item_id
from media_queue_hub.models import PlayerStatus, QueueEntry, QueueItem, TrackStatus
from media_queue_hub.playback import MpvPlayer
from media_queue_hub.services.youtube import lookup_title

log = logging.getLogger(__name__)

_STOP = object()


class QueueManager:
    """
    Owns the queue and the play target, and feeds mpv from a single
    download worker.

    Rules:
    - the queue is append-only, items are never removed or reordered
    - every read/write of item fields or the play target holds self._lock
    - self._lock is never held across yt-dlp or mpv IPC calls
    - exactly one worker thread consumes the pipeline, so downloads run
      one at a time in submission order
    """

    def __init__(
        self,
        player: MpvPlayer,
        downloader: Downloader,
        *,
        capacity: int = PIPELINE_CAPACITY,
        title_lookup: Optional[Callable[[str], Optional[str]]] = lookup_title,
    ) -> None:
        self.player = player
        self.downloader = downloader
        self.title_lookup = title_lookup

        self.items: List[QueueItem] = []
        self._play_target: Optional[QueueItem] = None
        self._lock = threading.Lock()
        # keeps pipeline order equal to queue order; never taken by the worker
        self._submit_lock = threading.Lock()

        self._pending: "thread_queue.Queue[object]" = thread_queue.Queue(maxsize=capacity)
        self._worker = threading.Thread(
            target=self._worker_loop,
            daemon=True,
            name="download-pipeline",
        )
        self._worker.start()

    # ======================================================================
    # SUBMISSION
    # ======================================================================

    def enqueue(self, url: str, title: str = "", item_id: str = "") -> QueueItem:
        return self._submit(url, title, item_id, target=False)

    def play_now(self, url: str, title: str = "", item_id: str = "") -> QueueItem:
        return self._submit(url, title, item_id, target=True)

    def enqueue_batch(self, entries: Iterable[Mapping[str, str]]) -> List[QueueItem]:
        out = []
        for e in entries:
            if not (e.get("url") or "").strip():
                continue
            out.append(self.enqueue(e["url"], e.get("title", ""), e.get("id", "")))
        return out

    def play_batch(self, entries: Iterable[Mapping[str, str]]) -> List[QueueItem]:
        """First usable entry plays now, the rest are queued behind it."""
        out: List[QueueItem] = []
        for e in entries:
            if not (e.get("url") or "").strip():
                continue
            submit = self.enqueue if out else self.play_now
            out.append(submit(e["url"], e.get("title", ""), e.get("id", "")))
        return out

    def _submit(self, url: str, title: str, item_id: str, *, target: bool) -> QueueItem:
        url = (url or "").strip()
        if not url:
            raise ValueError("url required")

        item = QueueItem(
            item_id=resolve_item_id(url, (item_id or "").strip()),
            url=url,
            title=(title or "").strip(),
        )
        with self._submit_lock:
            with self._lock:
                self.items.append(item)
                if target:
                    self._play_target = item
            self._pending.put(item)
        log.info("%s %s [%s]", "play now:" if target else "queued:", item.title or url, item.item_id)
        return item

    # ======================================================================
    # DOWNLOAD PIPELINE
    # ======================================================================

    def _worker_loop(self) -> None:
        while True:
            item = self._pending.get()
            try:
                if item is _STOP:
                    return
                self._process(item)  # type: ignore[arg-type]
            except Exception:
                # one bad item must not kill the pipeline
                log.exception("unexpected error in download pipeline")
            finally:
                self._pending.task_done()

    def _process(self, item: QueueItem) -> None:
        with self._lock:
            if item.status is not TrackStatus.PENDING:
                log.debug("skipping %s, already %s", item.item_id, item.status.value)
                return
            item.move_to(TrackStatus.DOWNLOADING)
            needs_title = not item.title

        if needs_title:
            found = self.title_lookup(item.url) if self.title_lookup else None
            with self._lock:
                item.title = found or UNKNOWN_TITLE

        try:
            path = self.downloader.fetch(item.url, item.item_id)
        except FetchError as e:
            with self._lock:
                item.move_to(TrackStatus.ERROR)
                item.error = str(e)
                was_target = self._play_target is item
            log.warning("download failed for %s: %s", item.title, e)
            if was_target:
                self._fallback_from(item)
            return

        with self._lock:
            item.local_path = str(path)
            item.move_to(TrackStatus.READY)
            is_target = self._play_target is item

        if is_target:
            log.info("play target ready: %s", item.title)
            self._play_or_fallback(item)
            return

        log.info("appending to playlist: %s", item.title)
        try:
            self.player.append_to_playlist(item.local_path, item.title)
        except PlayerIPCError as e:
            log.warning("failed to append %s: %s", item.title, e)

    def wait_until_idle(self) -> None:
        """Blocks until every submitted item went through the pipeline."""
        self._pending.join()

    def close(self, timeout: float = 5.0) -> None:
        if not self._worker.is_alive():
            return
        try:
            self._pending.put(_STOP, timeout=timeout)
        except thread_queue.Full:
            log.warning("download pipeline still full after %.1fs, not waiting for it", timeout)
            return
        self._worker.join(timeout)

    # ======================================================================
    # PLAYBACK
    # ======================================================================

    def _start_playing(self, item: QueueItem) -> bool:
        try:
            self.player.replace_and_play(item.local_path, item.title)
        except PlayerIPCError as e:
            log.warning("failed to play %s: %s", item.title, e)
            return False
        with self._lock:
            self._mark_playing(item)
        return True

    def _play_or_fallback(self, item: QueueItem) -> bool:
        if self._start_playing(item):
            with self._lock:
                if self._play_target is item:
                    self._play_target = None
            return True
        self._fallback_from(item)
        return False

    def _fallback_from(self, failed: QueueItem) -> None:
        """
        The play target could not be downloaded or played: move the target
        to the next item after it that has not failed.
        """
        while True:
            with self._lock:
                if self._play_target is not failed:
                    # retargeted by a caller in the meantime
                    return
                candidate = self._next_viable_after(failed)
                self._play_target = candidate
                if candidate is None:
                    log.info("no further items to play in queue")
                    return
                log.info("skipping failed '%s', targeting '%s'", failed.title, candidate.title)
                if candidate.status.in_flight:
                    # the pipeline plays it once it is ready
                    return

            if self._start_playing(candidate):
                with self._lock:
                    if self._play_target is candidate:
                        self._play_target = None
                return
            failed = candidate

    def _next_viable_after(self, failed: QueueItem) -> Optional[QueueItem]:
        idx = self._index_of(failed)
        if idx < 0:
            return None
        for nxt in self.items[idx + 1 :]:
            if nxt.status is not TrackStatus.ERROR:
                return nxt
        return None

    def _index_of(self, item: QueueItem) -> int:
        for i, t in enumerate(self.items):
            if t is item:
                return i
        return -1

    def _index_of_path(self, path: str) -> int:
        # the same file can sit in the queue twice; the playing one wins
        first = -1
        for i, t in enumerate(self.items):
            if not t.local_path or t.local_path != path:
                continue
            if t.status is TrackStatus.PLAYING:
                return i
            if first < 0:
                first = i
        return first

    def _mark_playing(self, item: QueueItem) -> None:
        for t in self.items:
            if t is not item and t.status is TrackStatus.PLAYING:
                t.move_to(TrackStatus.PLAYED)
        if item.status is not TrackStatus.PLAYING:
            item.move_to(TrackStatus.PLAYING)

    # ======================================================================
    # NAVIGATION
    # ======================================================================

    def skip_to_index(self, index: int) -> None:
        with self._lock:
            if index < 0 or index >= len(self.items):
                raise IndexError(f"queue index {index} out of range (size {len(self.items)})")
            item = self.items[index]
            if item.status is TrackStatus.ERROR:
                raise InvalidStateError(f"cannot play '{item.title}': {item.error or 'error'}")
            # ready items play right away, in-flight ones as soon as they land
            self._play_target = item
            if item.status.in_flight:
                log.info("will play '%s' once downloaded", item.title)
                return

        self._play_or_fallback(item)

    def next(self) -> bool:
        return self._step(1)

    def previous(self) -> bool:
        return self._step(-1)

    def _step(self, delta: int) -> bool:
        """
        Moves relative to whatever mpv is playing, matched by file path.

        Returns False when the current file could not be matched to the
        queue and mpv's own playlist-next/prev was used instead; from then
        on the queue position and mpv may disagree.
        """
        current = self._current_path()
        idx = -1
        size = 0
        if current:
            with self._lock:
                idx = self._index_of_path(current)
                size = len(self.items)

        if idx < 0:
            log.warning("current track not in queue, using mpv's own %s", "next" if delta > 0 else "prev")
            if delta > 0:
                self.player.skip_next()
            else:
                self.player.skip_previous()
            return False

        target = idx + delta
        if target < 0 or target >= size:
            log.info("already at the %s of the queue", "end" if delta > 0 else "start")
            return True
        self.skip_to_index(target)
        return True

    # ======================================================================
    # PASSTHROUGHS / SNAPSHOTS
    # ======================================================================

    def toggle_pause(self) -> None:
        self.player.toggle_pause()

    def seek_absolute(self, seconds: float) -> None:
        self.player.seek_absolute(seconds)

    def set_volume(self, percent: float) -> None:
        self.player.set_volume(percent)

    def play_target(self) -> Optional[str]:
        with self._lock:
            return self._play_target.item_id if self._play_target else None

    def sync_with_player(self) -> Optional[str]:
        """
        Marks the item mpv is actually playing (it may have advanced through
        its own playlist) and returns its id.
        """
        current = self._current_path()
        if not current:
            return None
        with self._lock:
            idx = self._index_of_path(current)
            if idx < 0:
                return None
            item = self.items[idx]
            if item.status.playable:
                self._mark_playing(item)
            return item.item_id

    def _current_path(self) -> Optional[str]:
        try:
            return self.player.get_property("path").as_str()
        except PlayerIPCError as e:
            log.debug("could not read current path: %s", e)
            return None

    def _float_property(self, name: str) -> float:
        try:
            return self.player.get_property(name).as_float(0.0) or 0.0
        except PlayerIPCError:
            # mpv reports "property unavailable" while idle
            return 0.0

    def current_status_snapshot(self) -> PlayerStatus:
        return PlayerStatus(
            title=self.player.current_title,
            position=self._float_property("time-pos"),
            duration=self._float_property("duration"),
        )

    def queue_snapshot(self) -> List[QueueEntry]:
        """`current` marks the item whose file mpv is playing right now."""
        current = self._current_path()
        with self._lock:
            idx = self._index_of_path(current) if current else -1
            return [
                QueueEntry(
                    item_id=t.item_id,
                    title=t.title or UNKNOWN_TITLE,
                    status=t.status.value,
                    current=i == idx,
                    error=t.error,
                )
                for i, t in enumerate(self.items)
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self.items)

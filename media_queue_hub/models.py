from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from media_queue_hub.errors import InvalidTransitionError


class TrackStatus(str, Enum):
    PENDING = "pending"
    DOWNLOADING = "downloading"
    READY = "ready"
    PLAYING = "playing"
    PLAYED = "played"
    ERROR = "error"

    def can_become(self, new: "TrackStatus") -> bool:
        return new in _TRANSITIONS[self]

    def ensure_transition(self, new: "TrackStatus") -> "TrackStatus":
        if not self.can_become(new):
            raise InvalidTransitionError(f"{self.value} -> {new.value}")
        return new

    @property
    def playable(self) -> bool:
        # already on disk, can be loaded right away
        return self in (TrackStatus.READY, TrackStatus.PLAYING, TrackStatus.PLAYED)

    @property
    def in_flight(self) -> bool:
        return self in (TrackStatus.PENDING, TrackStatus.DOWNLOADING)


# A played item can be loaded again (skip back), so it re-enters "playing".
_TRANSITIONS: dict[TrackStatus, frozenset[TrackStatus]] = {
    TrackStatus.PENDING: frozenset({TrackStatus.DOWNLOADING}),
    TrackStatus.DOWNLOADING: frozenset({TrackStatus.READY, TrackStatus.ERROR}),
    TrackStatus.READY: frozenset({TrackStatus.PLAYING}),
    TrackStatus.PLAYING: frozenset({TrackStatus.PLAYED}),
    TrackStatus.PLAYED: frozenset({TrackStatus.PLAYING}),
    TrackStatus.ERROR: frozenset(),
}


@dataclass(slots=True, eq=False)
class QueueItem:
    """
    One requested track. Identity matters: the pipeline and the play target
    hold references to the same object that sits in the queue.
    """

    item_id: str
    url: str
    title: str
    status: TrackStatus = TrackStatus.PENDING
    local_path: str = ""
    error: Optional[str] = None

    def move_to(self, new: TrackStatus) -> None:
        self.status = self.status.ensure_transition(new)


@dataclass(slots=True, frozen=True)
class QueueEntry:
    item_id: str
    title: str
    status: str
    current: bool = False
    error: Optional[str] = None


@dataclass(slots=True, frozen=True)
class PlaylistEntry:
    path: str
    title: str
    is_current: bool


@dataclass(slots=True, frozen=True)
class PlayerStatus:
    title: str
    position: float
    duration: float


@dataclass(slots=True, frozen=True)
class SearchResult:
    id: str
    title: str
    uploader: str
    duration: int
    url: str
    thumbnail: str

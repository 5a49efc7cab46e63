from __future__ import annotations


class MediaQueueError(Exception):
    """Base class for everything the queue/playback engine raises."""


class FetchError(MediaQueueError):
    """yt-dlp failed, or finished without leaving a file behind."""


class PlayerIPCError(MediaQueueError):
    """mpv could not be reached, or answered with an error."""


class PlayerStartError(MediaQueueError):
    """mpv did not come up. Nothing works without it."""


class InvalidStateError(MediaQueueError):
    pass


class InvalidTransitionError(MediaQueueError):
    pass

from media_queue_hub.errors import PlayerIPCError
from media_queue_hub.models import PlayerStatus, QueueEntry
from media_queue_hub.pollers import StatusPoller

from conftest import wait_for


class FakeQueue:
    def __init__(self, fail=False):
        self.fail = fail
        self.syncs = 0

    def sync_with_player(self):
        self.syncs += 1
        if self.fail:
            raise PlayerIPCError("mpv unreachable at /tmp/x.sock")
        return "a"

    def current_status_snapshot(self):
        return PlayerStatus(title="Song", position=3.0, duration=10.0)

    def queue_snapshot(self):
        return [QueueEntry(item_id="a", title="Song", status="playing", current=True)]


def test_poll_once_emits_status_then_queue():
    events = []
    StatusPoller(FakeQueue(), events.append).poll_once()

    assert [e["type"] for e in events] == ["status", "queue"]
    assert events[0]["status"] == {"title": "Song", "position": 3.0, "duration": 10.0}
    assert events[0]["current_id"] == "a"
    assert events[1]["entries"][0].current


def test_loop_survives_player_errors():
    q = FakeQueue(fail=True)
    poller = StatusPoller(q, lambda ev: None, interval=0.01)
    poller.start()
    try:
        assert wait_for(lambda: q.syncs >= 3)
        assert poller.is_running()
    finally:
        poller.stop()
    assert not poller.is_running()

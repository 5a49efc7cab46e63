# media_queue_hub/app.py
from __future__ import annotations

import logging
import sys

from media_queue_hub.config import load_settings
from media_queue_hub.downloader import Downloader
from media_queue_hub.errors import PlayerStartError
from media_queue_hub.logs import setup_logging
from media_queue_hub.paths import CONFIG_FILE
from media_queue_hub.playback import MpvPlayer
from media_queue_hub.queue_manager import QueueManager
from media_queue_hub.services.youtube import YouTubeSearch
from media_queue_hub.ui.dialogs import show_error
from media_queue_hub.ui.main_window import run_qt

log = logging.getLogger(__name__)


def main() -> None:
    setup_logging()
    settings = load_settings(CONFIG_FILE)
    setup_logging(settings.log_level)

    player = MpvPlayer(settings.ipc_path, mpv=settings.mpv, ytdlp=settings.ytdlp)
    try:
        player.start()
    except PlayerStartError as e:
        log.error("failed to start player: %s. Make sure 'mpv' is installed.", e)
        show_error(None, "Player error", f"{e}\n\nMake sure 'mpv' is installed.")
        sys.exit(1)

    try:
        downloader = Downloader(settings.cache_path, settings.ytdlp)
        queue = QueueManager(player, downloader)
        search = YouTubeSearch(settings.ytdlp, settings.cookies_path)
        run_qt(queue, search, CONFIG_FILE)
    finally:
        log.info("shutting down")
        player.stop()


if __name__ == "__main__":
    main()

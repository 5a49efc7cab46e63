from __future__ import annotations

import glob
import logging
import subprocess
import threading
from pathlib import Path
from typing import Optional

from media_queue_hub.config import CACHE_EXTS, PREFERRED_AUDIO_EXT
from media_queue_hub.errors import FetchError

log = logging.getLogger(__name__)


class Downloader:
    """
    Single responsibility: get an audio file for (url, item_id) into the
    cache dir with yt-dlp and return its path.

    One yt-dlp process at a time: the lock covers the cache check, the
    download and the lookup of the produced file.
    """

    def __init__(self, cache_dir: Path, ytdlp: str = "yt-dlp") -> None:
        self.cache_dir = cache_dir
        self.ytdlp = ytdlp
        self._lock = threading.Lock()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def cached_path(self, item_id: str) -> Optional[Path]:
        for ext in CACHE_EXTS:
            p = self.cache_dir / f"{item_id}{ext}"
            if p.exists():
                return p
        return None

    def build_args(self, url: str, item_id: str) -> list[str]:
        template = str(self.cache_dir / f"{item_id}.%(ext)s")
        return [
            self.ytdlp,
            "-f",
            f"bestaudio[ext={PREFERRED_AUDIO_EXT}]/bestaudio",
            "--no-playlist",
            "--no-mtime",
            "-o",
            template,
            url,
        ]

    def fetch(self, url: str, item_id: str) -> Path:
        with self._lock:
            hit = self.cached_path(item_id)
            if hit is not None:
                log.info("already cached: %s", hit)
                return hit

            self.cache_dir.mkdir(parents=True, exist_ok=True)
            log.info("downloading %s (%s)", item_id, url)
            try:
                proc = subprocess.run(self.build_args(url, item_id))
            except OSError as e:
                raise FetchError(f"yt-dlp could not start: {e}") from e
            if proc.returncode != 0:
                raise FetchError(f"yt-dlp download failed (exit {proc.returncode})")

            pattern = glob.escape(str(self.cache_dir / item_id)) + ".*"
            matches = sorted(
                m for m in glob.glob(pattern) if not m.endswith((".part", ".ytdl"))
            )
            if not matches:
                raise FetchError(f"download finished but no file found for id {item_id}")

            log.info("download finished: %s", matches[0])
            return Path(matches[0])

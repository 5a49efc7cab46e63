from __future__ import annotations

import json
import logging
import re
import subprocess
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlparse

import requests

from media_queue_hub.config import SEARCH_LIMIT, USER_AGENT
from media_queue_hub.errors import FetchError
from media_queue_hub.models import SearchResult

log = logging.getLogger(__name__)

_VIDEO_ID = re.compile(r"^[A-Za-z0-9_-]{11}$")
_PATH_ID = re.compile(r"/(?:embed|shorts|live|v)/([A-Za-z0-9_-]{11})")


def is_youtube_url(url: str) -> bool:
    u = (url or "").lower()
    return "youtube.com" in u or "youtu.be" in u


def extract_video_id(url: str) -> Optional[str]:
    """
    Pulls the 11 char video id out of the usual YouTube URL shapes:
    watch?v=, youtu.be/<id>, /embed/, /shorts/, /live/, /v/.
    """
    if not is_youtube_url(url):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None

    host = (parsed.hostname or "").lower()
    if host.endswith("youtu.be"):
        candidate = parsed.path.lstrip("/").split("/", 1)[0]
        return candidate if _VIDEO_ID.match(candidate) else None

    v = parse_qs(parsed.query).get("v")
    if v and _VIDEO_ID.match(v[0]):
        return v[0]

    m = _PATH_ID.search(parsed.path)
    if m:
        return m.group(1)
    return None


def youtube_oembed_title(url: str, timeout: int = 10) -> Optional[str]:
    try:
        r = requests.get(
            "https://www.youtube.com/oembed",
            params={"url": url, "format": "json"},
            timeout=timeout,
            headers={"user-agent": USER_AGENT},
        )
        if r.status_code != 200:
            return None
        data = r.json()
        return data.get("title")
    except (requests.RequestException, ValueError) as e:
        log.debug("oembed lookup failed for %s: %s", url, e)
        return None


def _parse_duration(raw) -> int:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return int(raw)
    return 0


def parse_search_output(output: str) -> list[SearchResult]:
    results: list[SearchResult] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        if not isinstance(entry, dict):
            continue

        vid = entry.get("id") or ""
        url = entry.get("url") or entry.get("webpage_url") or ""
        if not url and vid:
            url = f"https://www.youtube.com/watch?v={vid}"
        thumb = f"https://i.ytimg.com/vi/{vid}/hqdefault.jpg" if vid else ""

        results.append(
            SearchResult(
                id=vid,
                title=entry.get("title") or "",
                uploader=entry.get("uploader") or "",
                duration=_parse_duration(entry.get("duration")),
                url=url,
                thumbnail=thumb,
            )
        )
    return results


class YouTubeSearch:
    """
    Metadata-only search through yt-dlp (no stream resolution).
    """

    def __init__(self, ytdlp: str = "yt-dlp", cookies: Optional[Path] = None) -> None:
        self.ytdlp = ytdlp
        self.cookies = cookies

    def build_args(self, query: str, limit: int = SEARCH_LIMIT) -> list[str]:
        args = [
            self.ytdlp,
            f"ytsearch{limit}:{query}",
            "--dump-json",
            "--flat-playlist",
            "--no-warnings",
        ]
        if self.cookies is not None and self.cookies.is_file():
            args += ["--cookies", str(self.cookies)]
        return args

    def search(self, query: str, limit: int = SEARCH_LIMIT) -> list[SearchResult]:
        query = (query or "").strip()
        if not query:
            return []
        try:
            proc = subprocess.run(
                self.build_args(query, limit),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise FetchError(f"yt-dlp search could not start: {e}") from e
        if proc.returncode != 0:
            raise FetchError(
                f"yt-dlp search failed (exit {proc.returncode}): {proc.stderr.strip()}"
            )
        results = parse_search_output(proc.stdout)
        log.info("search %r: %d result(s)", query, len(results))
        return results


def lookup_title(url: str) -> Optional[str]:
    if not is_youtube_url(url):
        return None
    return youtube_oembed_title(url)

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from media_queue_hub.paths import APP_DIR, CACHE_DIR, CONFIG_FILE, default_ipc_path
from media_queue_hub.storage import load_json

log = logging.getLogger(__name__)

# ===================== CONFIG =====================
APP_TITLE = "Media Queue Hub"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) media-queue-hub/0.1"

PREFERRED_AUDIO_EXT = "m4a"  # AAC: plays everywhere, cheap to decode
CACHE_EXTS = (".m4a", ".mp3", ".webm", ".opus", ".aac", ".wav")

SOCKET_WAIT_SEC = 5.0
SOCKET_POLL_SEC = 0.1
SEND_RETRIES = 3
SEND_BACKOFF_SEC = 0.2
REQUEST_TIMEOUT_SEC = 5.0
STOP_GRACE_SEC = 2.0

PIPELINE_CAPACITY = 100
STATUS_POLL_INTERVAL_SEC = 1.0
SEARCH_LIMIT = 10
UNKNOWN_TITLE = "Unknown Track"

ENV_PREFIX = "MQH_"
ENV_KEYS = {
    "ytdlp": "YTDLP",
    "mpv": "MPV",
    "cache_dir": "CACHE_DIR",
    "ipc_path": "SOCKET",
    "cookies": "COOKIES",
    "log_level": "LOG_LEVEL",
}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def resolve_ytdlp(app_dir: Path = APP_DIR) -> str:
    """A yt-dlp binary shipped next to the app wins over the one on PATH."""
    for name in ("yt-dlp", "yt-dlp.exe"):
        local = app_dir / name
        if local.is_file():
            log.info("using local yt-dlp: %s", local)
            return str(local)
    log.info("using system yt-dlp: %s", shutil.which("yt-dlp") or "yt-dlp")
    return "yt-dlp"


@dataclass(slots=True)
class Settings:
    ytdlp: str = "yt-dlp"
    mpv: str = "mpv"
    cache_dir: str = str(CACHE_DIR)
    ipc_path: str = ""
    cookies: str = "cookies.txt"
    log_level: str = "INFO"
    volume: float = 0.7

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir)

    @property
    def cookies_path(self) -> Optional[Path]:
        if not self.cookies:
            return None
        p = Path(self.cookies)
        if not p.is_absolute():
            p = APP_DIR / p
        return p if p.is_file() else None


def _coerce(name: str, value: Any, default: Any) -> Any:
    if isinstance(default, float):
        v = float(value)
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"{name} must be within 0..1")
        return v
    v = str(value).strip()
    if not v and name != "cookies":
        raise ValueError(f"{name} must not be empty")
    if name == "log_level":
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
    return v


def load_settings(
    config_file: Path = CONFIG_FILE,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    env = os.environ if environ is None else environ
    base = Settings(ytdlp=resolve_ytdlp(), ipc_path=default_ipc_path())

    raw = load_json(config_file, {})
    if not isinstance(raw, dict):
        log.warning("%s is not a JSON object, ignoring it", config_file)
        raw = {}

    overrides: dict[str, Any] = dict(raw)
    for key, suffix in ENV_KEYS.items():
        v = env.get(ENV_PREFIX + suffix)
        if v:
            overrides[key] = v

    known = {f.name for f in fields(Settings)}
    for key, value in overrides.items():
        if key not in known:
            continue
        default = getattr(base, key)
        try:
            setattr(base, key, _coerce(key, value, default))
        except (TypeError, ValueError) as e:
            log.warning("bad config value for %s (%r): %s", key, value, e)

    return base

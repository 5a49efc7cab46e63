from __future__ import annotations

import os
import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Returns directory for config and the download cache.

    - In dev: repo root / media_queue_hub package parent
    - In PyInstaller: executable directory
    """
    if getattr(sys, "frozen", False):  # PyInstaller
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


def default_ipc_path() -> str:
    if os.name == "nt":
        return r"\\.\pipe\media_queue_hub_mpv"
    return "/tmp/media_queue_hub_mpv.sock"


APP_DIR = get_app_dir()

CONFIG_FILE = APP_DIR / "config.json"
CACHE_DIR = APP_DIR / "cache"

from __future__ import annotations

import hashlib

from media_queue_hub.services.youtube import extract_video_id


def resolve_item_id(url: str, item_id: str = "") -> str:
    """
    Stable short id for a locator: the caller's id if given, else the
    YouTube video id, else the first 12 hex chars of sha256(url).
    """
    if item_id:
        return item_id
    extracted = extract_video_id(url)
    if extracted:
        return extracted
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:12]

from __future__ import annotations

import re
from typing import Literal
from urllib.parse import urlencode

YOUTUBE_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{11}")
_YOUTUBE_URL_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?(?:[^#\s]*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/)"
    r"([A-Za-z0-9_-]{11})"
)
_THUMBNAIL_QUALITIES: dict[str, str] = {
    "default": "default",
    "mq": "mqdefault",
    "hq": "hqdefault",
    "sd": "sddefault",
    "maxres": "maxresdefault",
}

ThumbnailQuality = Literal["default", "mq", "hq", "sd", "maxres"]


def is_valid_youtube_id(value: str) -> bool:
    return YOUTUBE_ID_PATTERN.fullmatch(value) is not None


def extract_youtube_id(url_or_id: str) -> str | None:
    candidate = url_or_id.strip()
    match = _YOUTUBE_URL_PATTERN.search(candidate)
    if match is not None:
        return match.group(1)
    if is_valid_youtube_id(candidate):
        return candidate
    return None


def thumbnail_url(youtube_id: str, quality: ThumbnailQuality = "hq") -> str:
    return f"https://img.youtube.com/vi/{youtube_id}/{_THUMBNAIL_QUALITIES[quality]}.jpg"


def embed_url(
    youtube_id: str,
    *,
    origin: str | None = None,
    start_seconds: int | None = None,
) -> str:
    params: dict[str, str] = {"enablejsapi": "1"}
    if origin:
        params["origin"] = origin
    if start_seconds:
        params["start"] = str(start_seconds)
    return f"https://www.youtube.com/embed/{youtube_id}?{urlencode(params)}"


def watch_url(youtube_id: str, *, start_seconds: int | None = None) -> str:
    url = f"https://www.youtube.com/watch?v={youtube_id}"
    if start_seconds:
        url += f"&t={start_seconds}"
    return url

from __future__ import annotations

import pytest

from referer.app.services.youtube_urls import (
    embed_url,
    extract_youtube_id,
    is_valid_youtube_id,
    thumbnail_url,
    watch_url,
)


@pytest.mark.parametrize(
    "url_or_id",
    [
        "dQw4w9WgXcQ",
        "  dQw4w9WgXcQ  ",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/watch?feature=share&v=dQw4w9WgXcQ&t=42s",
        "https://youtu.be/dQw4w9WgXcQ?si=abc",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/v/dQw4w9WgXcQ",
        "youtu.be/dQw4w9WgXcQ",
    ],
)
def test_extract_youtube_id_from_supported_forms(url_or_id: str) -> None:
    assert extract_youtube_id(url_or_id) == "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "url_or_id",
    ["", "dQw4w9WgXc", "https://vimeo.com/76979871", "https://www.youtube.com/@someone"],
)
def test_extract_youtube_id_rejects_everything_else(url_or_id: str) -> None:
    assert extract_youtube_id(url_or_id) is None


def test_is_valid_youtube_id_requires_exactly_eleven_url_safe_chars() -> None:
    assert is_valid_youtube_id("a-b_C1234567"[:11])
    assert not is_valid_youtube_id("dQw4w9WgXc!")
    assert not is_valid_youtube_id("dQw4w9WgXcQQ")


def test_thumbnail_url_quality() -> None:
    assert thumbnail_url("dQw4w9WgXcQ") == "https://img.youtube.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
    assert thumbnail_url("dQw4w9WgXcQ", "maxres").endswith("/maxresdefault.jpg")


def test_embed_url_enables_js_api() -> None:
    assert embed_url("dQw4w9WgXcQ") == "https://www.youtube.com/embed/dQw4w9WgXcQ?enablejsapi=1"
    assert embed_url("dQw4w9WgXcQ", origin="https://referer.app", start_seconds=30) == (
        "https://www.youtube.com/embed/dQw4w9WgXcQ"
        "?enablejsapi=1&origin=https%3A%2F%2Freferer.app&start=30"
    )


def test_watch_url_start_offset() -> None:
    assert watch_url("dQw4w9WgXcQ") == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    assert watch_url("dQw4w9WgXcQ", start_seconds=95).endswith("&t=95")

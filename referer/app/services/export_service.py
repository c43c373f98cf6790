from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from referer.app.services.timestamps import format_timestamp

CLAIM_PREVIEW_LENGTH = 50
_ELLIPSIS = "..."
_RULE = "───────────────────────────────"


class ExportableVideo(Protocol):
    @property
    def id(self) -> str: ...


class ExportableSource(Protocol):
    @property
    def timestamp_seconds(self) -> int: ...

    @property
    def claim(self) -> str: ...

    @property
    def source_url(self) -> str: ...


def truncate_claim(claim: str, *, limit: int = CLAIM_PREVIEW_LENGTH) -> str:
    if len(claim) <= limit:
        return claim
    return claim[: limit - len(_ELLIPSIS)] + _ELLIPSIS


def viewer_url(base_url: str, video: ExportableVideo, *, start_seconds: int | None = None) -> str:
    url = f"{base_url.rstrip('/')}/v/{video.id}"
    if start_seconds is not None:
        url += f"?t={start_seconds}"
    return url


def generate_youtube_description(
    video: ExportableVideo,
    sources: Sequence[ExportableSource],
    base_url: str,
) -> str:
    """Text block a creator pastes into the YouTube description."""
    if not sources:
        return (
            "📚 Sources verified on Referer:\n\n"
            "No sources registered yet.\n\n"
            f"🔗 View on Referer: {viewer_url(base_url, video)}"
        )

    entries = [
        f"{format_timestamp(source.timestamp_seconds)} - {truncate_claim(source.claim)}\n"
        f"         → {viewer_url(base_url, video, start_seconds=source.timestamp_seconds)}"
        for source in _sorted_by_offset(sources)
    ]
    body = "\n\n".join(entries)
    return (
        f"{_RULE}\n"
        "📚 Sources verified on Referer:\n\n"
        f"{body}\n\n"
        "🔗 See every source with the original papers:\n"
        f"   {viewer_url(base_url, video)}\n"
        f"{_RULE}"
    )


def generate_simple_links(
    video: ExportableVideo,
    sources: Sequence[ExportableSource],
    base_url: str,
) -> str:
    if not sources:
        return ""
    lines = [
        f"{format_timestamp(source.timestamp_seconds)} → {source.source_url}"
        for source in _sorted_by_offset(sources)
    ]
    joined = "\n".join(lines)
    return f"Sources:\n{joined}\n\nVerify on: {viewer_url(base_url, video)}"


def _sorted_by_offset(sources: Sequence[ExportableSource]) -> list[ExportableSource]:
    return sorted(sources, key=lambda source: source.timestamp_seconds)

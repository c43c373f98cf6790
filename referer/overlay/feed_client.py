from __future__ import annotations

import json
import logging
from http.client import HTTPException
from dataclasses import dataclass, field
from typing import Any, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from referer.app.services.citation_tracker import order_citations

LOGGER = logging.getLogger("referer.overlay.feed")

DEFAULT_FEED_PATH = "/functions/get-video-sources"


@dataclass(frozen=True)
class OverlayCitation:
    id: str
    timestamp_seconds: int
    claim: str
    source_url: str
    created_at: str
    source_text: str | None = None
    is_creator_source: bool = False
    attribution: str = "unattributed"

    @property
    def host(self) -> str:
        hostname = urlparse(self.source_url).hostname
        if not hostname:
            return self.source_url
        return hostname.removeprefix("www.")


@dataclass(frozen=True)
class OverlayFeed:
    youtube_id: str | None
    title: str | None
    citations: list[OverlayCitation] = field(default_factory=lambda: [])

    @classmethod
    def empty(cls) -> OverlayFeed:
        return cls(youtube_id=None, title=None)

    @property
    def count(self) -> int:
        return len(self.citations)


class FeedClient:
    """Fetches the citation feed for the page overlay; never raises on transport errors."""

    def __init__(
        self,
        *,
        api_base_url: str,
        timeout_seconds: float = 5.0,
        user_agent: str = "referer-overlay/0.1",
    ) -> None:
        self._function_url = f"{api_base_url.rstrip('/')}{DEFAULT_FEED_PATH}"
        self._timeout_seconds = timeout_seconds
        self._user_agent = user_agent

    def fetch(self, youtube_id: str) -> OverlayFeed:
        try:
            status_code, body = _post_json(
                url=self._function_url,
                payload={"youtube_id": youtube_id},
                timeout_seconds=self._timeout_seconds,
                user_agent=self._user_agent,
            )
        except (URLError, OSError, HTTPException, ValueError):
            LOGGER.warning("feed request failed youtube_id=%s", youtube_id, exc_info=True)
            return OverlayFeed.empty()

        if not 200 <= status_code < 300:
            LOGGER.warning("feed request rejected youtube_id=%s status=%s", youtube_id, status_code)
            return OverlayFeed.empty()

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            LOGGER.warning("feed response was not JSON youtube_id=%s", youtube_id)
            return OverlayFeed.empty()
        return parse_feed_payload(payload)


def parse_feed_payload(payload: Any) -> OverlayFeed:
    if not isinstance(payload, dict):
        return OverlayFeed.empty()
    payload_dict = cast(dict[str, Any], payload)

    video = payload_dict.get("video")
    if not isinstance(video, dict):
        return OverlayFeed.empty()
    video_dict = cast(dict[str, Any], video)

    citations: list[OverlayCitation] = []
    raw_sources = payload_dict.get("sources")
    if isinstance(raw_sources, list):
        for raw_source in cast(list[Any], raw_sources):
            citation = _parse_citation(raw_source)
            if citation is not None:
                citations.append(citation)

    return OverlayFeed(
        youtube_id=_optional_string(video_dict.get("youtube_id")),
        title=_optional_string(video_dict.get("title")),
        citations=order_citations(citations),
    )


def _parse_citation(raw_source: Any) -> OverlayCitation | None:
    if not isinstance(raw_source, dict):
        return None
    source = cast(dict[str, Any], raw_source)
    source_id = _optional_string(source.get("id"))
    claim = _optional_string(source.get("claim"))
    source_url = _optional_string(source.get("source_url"))
    timestamp = source.get("timestamp_seconds")
    if source_id is None or claim is None or source_url is None:
        return None
    if isinstance(timestamp, bool) or not isinstance(timestamp, int) or timestamp < 0:
        return None

    is_creator_source = source.get("is_creator_source") is True
    attribution = _optional_string(source.get("attribution"))
    return OverlayCitation(
        id=source_id,
        timestamp_seconds=timestamp,
        claim=claim,
        source_url=source_url,
        created_at=_optional_string(source.get("created_at")) or "",
        source_text=_optional_string(source.get("source_text")),
        is_creator_source=is_creator_source,
        attribution=attribution or ("creator" if is_creator_source else "unattributed"),
    )


def _optional_string(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _post_json(
    *,
    url: str,
    payload: dict[str, Any],
    timeout_seconds: float,
    user_agent: str,
) -> tuple[int, str]:
    request = Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent,
        },
        method="POST",
    )
    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            status_code = getattr(response, "status", 200)
            return int(status_code), response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        return exc.code, ""

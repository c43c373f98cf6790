from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from importlib import import_module
from typing import Any, cast
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from referer.app.services.youtube_urls import watch_url

LOGGER = logging.getLogger("referer.channel")

_CHANNEL_PATH_PATTERN = re.compile(r"/channel/(UC[A-Za-z0-9_-]+)")
_HANDLE_PATH_PATTERN = re.compile(r"/@([A-Za-z0-9_.-]+)")
_CHANNEL_PAGE_ID_PATTERN = re.compile(r'"(?:externalId|channelId)"\s*:\s*"(UC[A-Za-z0-9_-]+)"')


class ChannelServiceError(Exception):
    pass


class ChannelLookupError(ChannelServiceError):
    pass


class ChannelNotFoundError(ChannelServiceError):
    pass


@dataclass(frozen=True)
class VideoChannelInfo:
    channel_id: str | None
    channel_name: str | None
    author_url: str | None


@dataclass(frozen=True)
class OwnedChannel:
    channel_id: str
    name: str | None
    avatar_url: str | None


class ChannelResolver:
    def __init__(
        self,
        *,
        oembed_url: str,
        http_timeout_seconds: float,
        user_agent: str,
    ) -> None:
        self._oembed_url = oembed_url
        self._http_timeout_seconds = http_timeout_seconds
        self._user_agent = user_agent

    def resolve_video_channel(self, youtube_id: str) -> VideoChannelInfo:
        query = urlencode({"url": watch_url(youtube_id), "format": "json"})
        status_code, body = _fetch_text(
            url=f"{self._oembed_url}?{query}",
            timeout_seconds=self._http_timeout_seconds,
            user_agent=self._user_agent,
        )
        if not 200 <= status_code < 300:
            raise ChannelLookupError(
                f"oEmbed lookup failed youtube_id={youtube_id} status={status_code}"
            )

        oembed = _parse_json_dict(body)
        author_url = _coerce_nonempty_string(oembed.get("author_url"))
        channel_name = _coerce_nonempty_string(oembed.get("author_name"))
        if author_url is None:
            return VideoChannelInfo(channel_id=None, channel_name=channel_name, author_url=None)

        channel_match = _CHANNEL_PATH_PATTERN.search(author_url)
        if channel_match is not None:
            return VideoChannelInfo(
                channel_id=channel_match.group(1),
                channel_name=channel_name,
                author_url=author_url,
            )

        channel_id: str | None = None
        if _HANDLE_PATH_PATTERN.search(author_url) is not None:
            channel_id = self._resolve_handle_page(author_url)
        return VideoChannelInfo(
            channel_id=channel_id,
            channel_name=channel_name,
            author_url=author_url,
        )

    def resolve_channel_id_or_none(self, youtube_id: str) -> str | None:
        try:
            return self.resolve_video_channel(youtube_id).channel_id
        except ChannelLookupError:
            LOGGER.warning(
                "channel resolution failed; continuing without channel id youtube_id=%s",
                youtube_id,
                exc_info=True,
            )
            return None

    def _resolve_handle_page(self, author_url: str) -> str | None:
        try:
            status_code, html = _fetch_text(
                url=author_url,
                timeout_seconds=self._http_timeout_seconds,
                user_agent="Mozilla/5.0",
            )
        except ChannelLookupError:
            LOGGER.info("channel handle page fetch failed author_url=%s", author_url, exc_info=True)
            return None
        if not 200 <= status_code < 300:
            return None
        match = _CHANNEL_PAGE_ID_PATTERN.search(html)
        return match.group(1) if match is not None else None


def fetch_own_channel(access_token: str) -> OwnedChannel:
    """Look up the channel owned by the account behind a Google OAuth access token."""
    try:
        credentials_module = import_module("google.oauth2.credentials")
        discovery_module = import_module("googleapiclient.discovery")
    except ImportError as exc:  # pragma: no cover - dependency controlled at runtime
        raise ChannelLookupError(
            "Channel verification requires google-api-python-client and google-auth"
        ) from exc

    credentials_cls: Any = credentials_module.Credentials
    build_fn: Any = discovery_module.build
    try:
        client = build_fn(
            "youtube",
            "v3",
            credentials=credentials_cls(token=access_token),
            cache_discovery=False,
        )
        response = cast(
            dict[str, Any],
            client.channels().list(part="snippet", mine=True).execute(),
        )
    except Exception as exc:
        raise ChannelLookupError(f"YouTube Data API channel lookup failed: {exc}") from exc

    items = _as_list(response.get("items"))
    if not items:
        raise ChannelNotFoundError("No YouTube channel is linked to this Google account")

    channel = _as_dict(items[0])
    channel_id = _coerce_nonempty_string(channel.get("id"))
    if channel_id is None:
        raise ChannelLookupError("YouTube Data API returned a channel without an id")

    snippet = _as_dict(channel.get("snippet"))
    default_thumbnail = _as_dict(_as_dict(snippet.get("thumbnails")).get("default"))
    return OwnedChannel(
        channel_id=channel_id,
        name=_coerce_nonempty_string(snippet.get("title")),
        avatar_url=_coerce_nonempty_string(default_thumbnail.get("url")),
    )


def _fetch_text(*, url: str, timeout_seconds: float, user_agent: str) -> tuple[int, str]:
    request = Request(
        url,
        headers={"accept": "application/json, text/html", "user-agent": user_agent},
        method="GET",
    )
    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            status_code = int(response.getcode() or 0)
            body = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        return int(exc.code), ""
    except (URLError, TimeoutError, OSError) as exc:
        raise ChannelLookupError(f"YouTube request failed: {exc}") from exc
    return status_code, body


def _parse_json_dict(raw_body: str) -> dict[str, Any]:
    if not raw_body.strip():
        return {}
    try:
        parsed = json.loads(raw_body)
    except json.JSONDecodeError:
        return {}
    return _as_dict(parsed)


def _coerce_nonempty_string(raw_value: object) -> str | None:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    return None


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        return {key: item for key, item in raw_dict.items() if isinstance(key, str)}
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return list(cast(list[Any], value))
    return []

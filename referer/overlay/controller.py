from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from typing import Protocol
from urllib.parse import parse_qs, urlparse

from referer.app.services.citation_tracker import CitationTracker
from referer.app.services.playback_bridge import (
    YOUTUBE_PLAYER_ORIGINS,
    MessageTransport,
    PlaybackBridge,
    PlaybackState,
)
from referer.app.services.timestamps import format_timestamp
from referer.app.services.youtube_urls import is_valid_youtube_id
from referer.overlay.feed_client import FeedClient, OverlayCitation, OverlayFeed
from referer.overlay.player_watcher import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    PlayerWatcher,
)

LOGGER = logging.getLogger("referer.overlay")

BadgeCallback = Callable[[int], None]
PlayerLocator = Callable[[], MessageTransport | None]


class OverlayView(Protocol):
    def render(self, citations: Sequence[OverlayCitation], labels: Sequence[str]) -> None: ...

    def highlight(self, index: int | None) -> None: ...

    def clear(self) -> None: ...


def watch_page_video_id(page_url: str) -> str | None:
    values = parse_qs(urlparse(page_url).query).get("v")
    if not values:
        return None
    candidate = values[0].strip()
    if not is_valid_youtube_id(candidate):
        return None
    return candidate


class OverlaySession:
    """State for one watched video; lives from `attach()` until `detach()`."""

    def __init__(
        self,
        youtube_id: str,
        *,
        feed_client: FeedClient,
        view: OverlayView,
        badge: BadgeCallback,
        locate_player: PlayerLocator,
        watcher_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        watcher_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        allowed_origins: frozenset[str] = YOUTUBE_PLAYER_ORIGINS,
    ) -> None:
        self._youtube_id = youtube_id
        self._feed_client = feed_client
        self._view = view
        self._badge = badge
        self._locate_player = locate_player
        self._watcher_interval_seconds = watcher_interval_seconds
        self._watcher_max_attempts = watcher_max_attempts
        self._allowed_origins = allowed_origins

        self._feed = OverlayFeed.empty()
        self._tracker: CitationTracker | None = None
        self._bridge: PlaybackBridge | None = None
        self._watcher: PlayerWatcher[MessageTransport] | None = None
        self._playback_state = PlaybackState.UNSTARTED
        self._attached = False
        self._detached = False

    @property
    def youtube_id(self) -> str:
        return self._youtube_id

    @property
    def feed(self) -> OverlayFeed:
        return self._feed

    @property
    def attached(self) -> bool:
        return self._attached and not self._detached

    @property
    def active_index(self) -> int | None:
        if self._tracker is None:
            return None
        return self._tracker.active_index

    @property
    def playback_state(self) -> PlaybackState:
        return self._playback_state

    @property
    def bridge(self) -> PlaybackBridge | None:
        return self._bridge

    @property
    def watcher(self) -> PlayerWatcher[MessageTransport] | None:
        return self._watcher

    async def attach(self) -> None:
        if self._attached or self._detached:
            return
        self._attached = True

        feed = await asyncio.to_thread(self._feed_client.fetch, self._youtube_id)
        if self._detached:
            return

        self._feed = feed
        self._badge(feed.count)
        if not feed.citations:
            LOGGER.info("no sources for video youtube_id=%s", self._youtube_id)
            return

        LOGGER.info("sources found youtube_id=%s count=%s", self._youtube_id, feed.count)
        self._view.render(
            feed.citations,
            [format_timestamp(citation.timestamp_seconds) for citation in feed.citations],
        )
        self._tracker = CitationTracker(feed.citations, on_change=self._on_active_change)
        self._watcher = PlayerWatcher(
            self._locate_player,
            on_found=self._connect_player,
            interval_seconds=self._watcher_interval_seconds,
            max_attempts=self._watcher_max_attempts,
        )
        self._watcher.start()

    def detach(self) -> None:
        if self._detached:
            return
        self._detached = True
        if self._watcher is not None:
            self._watcher.stop()
        if self._bridge is not None:
            self._bridge.disconnect()
        if self._tracker is not None:
            self._tracker.reset()
        self._view.clear()
        LOGGER.debug("overlay session detached youtube_id=%s", self._youtube_id)

    def seek_to(self, index: int) -> bool:
        if self._detached or self._bridge is None:
            return False
        citations = self._feed.citations
        if not 0 <= index < len(citations):
            raise IndexError(f"no citation at index {index}")
        return self._bridge.seek(citations[index].timestamp_seconds)

    def _connect_player(self, transport: MessageTransport) -> None:
        if self._detached:
            return
        self._bridge = PlaybackBridge(
            transport,
            on_time_update=self._on_time_update,
            on_state_change=self._on_state_change,
            allowed_origins=self._allowed_origins,
        )
        self._bridge.connect()

    def _on_time_update(self, current_time: int) -> None:
        if self._detached or self._tracker is None:
            return
        self._tracker.update(current_time)

    def _on_state_change(self, state: PlaybackState) -> None:
        if self._detached:
            return
        self._playback_state = state
        LOGGER.debug("player state youtube_id=%s state=%s", self._youtube_id, state)

    def _on_active_change(self, index: int | None) -> None:
        if self._detached:
            return
        self._view.highlight(index)


class OverlayController:
    """Owns at most one `OverlaySession`, swapping it as the page navigates."""

    def __init__(
        self,
        *,
        feed_client: FeedClient,
        view: OverlayView,
        badge: BadgeCallback,
        locate_player: PlayerLocator,
        watcher_interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        watcher_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._feed_client = feed_client
        self._view = view
        self._badge = badge
        self._locate_player = locate_player
        self._watcher_interval_seconds = watcher_interval_seconds
        self._watcher_max_attempts = watcher_max_attempts
        self._session: OverlaySession | None = None

    @property
    def session(self) -> OverlaySession | None:
        return self._session

    async def navigate(self, page_url: str) -> OverlaySession | None:
        youtube_id = watch_page_video_id(page_url)
        current = self._session
        if current is not None and youtube_id == current.youtube_id:
            return current

        self.teardown()
        if youtube_id is None:
            return None

        session = OverlaySession(
            youtube_id,
            feed_client=self._feed_client,
            view=self._view,
            badge=self._badge,
            locate_player=self._locate_player,
            watcher_interval_seconds=self._watcher_interval_seconds,
            watcher_max_attempts=self._watcher_max_attempts,
        )
        self._session = session
        await session.attach()
        return session

    def teardown(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            session.detach()

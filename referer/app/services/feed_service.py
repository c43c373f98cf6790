from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from referer.app.repositories.creator_repository import CreatorRecord, CreatorRepository
from referer.app.repositories.source_repository import SourceRecord, SourceRepository
from referer.app.repositories.video_repository import VideoRecord, VideoRepository
from referer.app.services.attribution import (
    Attribution,
    AttributionSummary,
    resolve_attribution,
    summarize_attributions,
)
from referer.app.services.youtube_urls import is_valid_youtube_id
from referer.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("referer.feed")


class InvalidVideoIdError(ValueError):
    def __init__(self, raw_value: str) -> None:
        super().__init__("Invalid youtube_id format")
        self.raw_value = raw_value


class FeedStorageError(Exception):
    pass


@dataclass(frozen=True)
class AttributedSource:
    source: SourceRecord
    attribution: Attribution

    @property
    def is_creator_source(self) -> bool:
        return self.attribution.is_creator_source


@dataclass(frozen=True)
class CitationFeed:
    video: VideoRecord | None
    sources: list[AttributedSource]
    creator: CreatorRecord | None

    @classmethod
    def empty(cls) -> CitationFeed:
        return cls(video=None, sources=[], creator=None)

    @property
    def count(self) -> int:
        return len(self.sources)

    def summary(self) -> AttributionSummary:
        return summarize_attributions(item.attribution for item in self.sources)


class FeedService:
    def __init__(
        self,
        *,
        video_repository: VideoRepository,
        source_repository: SourceRepository,
        creator_repository: CreatorRepository,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._videos = video_repository
        self._sources = source_repository
        self._creators = creator_repository
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def get_feed(self, youtube_id: str) -> CitationFeed:
        if not is_valid_youtube_id(youtube_id):
            raise InvalidVideoIdError(youtube_id)

        try:
            video = self._videos.get_by_youtube_id(youtube_id)
        except sqlite3.Error as exc:
            LOGGER.error("feed video lookup failed youtube_id=%s", youtube_id, exc_info=True)
            raise FeedStorageError("video lookup failed") from exc

        if video is None:
            self._telemetry.emit("feed.assembled", youtube_id=youtube_id, registered=False, count=0)
            return CitationFeed.empty()
        return self._assemble(video)

    def get_feed_for_video(self, video_id: str) -> CitationFeed | None:
        try:
            video = self._videos.get_by_id(video_id)
        except sqlite3.Error as exc:
            LOGGER.error("feed video lookup failed video_id=%s", video_id, exc_info=True)
            raise FeedStorageError("video lookup failed") from exc
        if video is None:
            return None
        return self._assemble(video)

    def _assemble(self, video: VideoRecord) -> CitationFeed:
        try:
            creator = self._creators.get_by_user(video.user_id)
            sources = self._sources.list_for_video(video.id)
        except sqlite3.Error as exc:
            LOGGER.error("feed assembly failed video_id=%s", video.id, exc_info=True)
            raise FeedStorageError("feed assembly failed") from exc

        attributed = [
            AttributedSource(
                source=source,
                attribution=resolve_attribution(source, video, creator),
            )
            for source in sources
        ]
        feed = CitationFeed(video=video, sources=attributed, creator=creator)
        telemetry = self._telemetry.bind(video_id=video.id, youtube_id=video.youtube_id)
        telemetry.emit(
            "feed.assembled",
            registered=True,
            count=feed.count,
            has_creator_record=creator is not None,
        )
        return feed

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from referer.app.repositories.source_repository import SourceRecord, SourceRepository
from referer.app.repositories.video_repository import VideoRecord, VideoRepository
from referer.app.services.channel_service import ChannelLookupError, ChannelResolver
from referer.app.services.citation_tracker import order_citations
from referer.app.services.youtube_urls import extract_youtube_id, thumbnail_url
from referer.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("referer.citations")

BackfillStatus = Literal["updated", "oembed_failed", "no_channel_id_found", "error"]


class CitationServiceError(Exception):
    pass


class VideoNotFoundError(CitationServiceError):
    pass


class SourceNotFoundError(CitationServiceError):
    pass


class NotOwnerError(CitationServiceError):
    pass


class InvalidVideoReferenceError(CitationServiceError):
    pass


@dataclass(frozen=True)
class BackfillEntry:
    video_id: str
    youtube_id: str
    channel_id: str | None
    status: BackfillStatus


@dataclass(frozen=True)
class BackfillReport:
    entries: list[BackfillEntry]

    @property
    def updated(self) -> int:
        return sum(1 for entry in self.entries if entry.status == "updated")

    @property
    def message(self) -> str:
        if not self.entries:
            return "No videos to update"
        return f"Processed {len(self.entries)} videos"


class CitationService:
    def __init__(
        self,
        *,
        video_repository: VideoRepository,
        source_repository: SourceRepository,
        channel_resolver: ChannelResolver | None,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._videos = video_repository
        self._sources = source_repository
        self._channel_resolver = channel_resolver
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def register_video(self, *, user_id: str, url_or_id: str, title: str) -> VideoRecord:
        youtube_id = extract_youtube_id(url_or_id)
        if youtube_id is None:
            raise InvalidVideoReferenceError("Enter a valid YouTube URL or video id")
        normalized_title = title.strip()
        if not normalized_title:
            raise InvalidVideoReferenceError("title must not be empty")

        channel_id: str | None = None
        if self._channel_resolver is not None:
            channel_id = self._channel_resolver.resolve_channel_id_or_none(youtube_id)

        video = self._videos.create_video(
            user_id=user_id,
            youtube_id=youtube_id,
            title=normalized_title,
            thumbnail_url=thumbnail_url(youtube_id),
            youtube_channel_id=channel_id,
        )
        LOGGER.info(
            "video registered video_id=%s youtube_id=%s channel_resolved=%s",
            video.id,
            youtube_id,
            channel_id is not None,
        )
        return video

    def list_videos(self, user_id: str) -> list[VideoRecord]:
        return self._videos.list_for_user(user_id)

    def get_video(self, video_id: str) -> VideoRecord:
        video = self._videos.get_by_id(video_id)
        if video is None:
            raise VideoNotFoundError(f"Video not found: {video_id}")
        return video

    def get_owned_video(self, *, user_id: str, video_id: str) -> VideoRecord:
        video = self._videos.get_by_id(video_id)
        # Someone else's video reads as missing rather than forbidden.
        if video is None or video.user_id != user_id:
            raise VideoNotFoundError(f"Video not found: {video_id}")
        return video

    def list_sources(self, video_id: str) -> list[SourceRecord]:
        return order_citations(self._sources.list_for_video(video_id))

    def delete_video(self, *, user_id: str, video_id: str) -> None:
        video = self.get_owned_video(user_id=user_id, video_id=video_id)
        self._videos.delete_video(video.id)
        LOGGER.info("video deleted video_id=%s", video.id)

    def add_source(
        self,
        *,
        user_id: str,
        video_id: str,
        timestamp_seconds: int,
        claim: str,
        source_url: str,
        source_text: str | None = None,
    ) -> SourceRecord:
        video = self.get_video(video_id)
        normalized_text = source_text.strip() if source_text is not None else None
        source = self._sources.create_source(
            video_id=video.id,
            timestamp_seconds=timestamp_seconds,
            claim=claim,
            source_text=normalized_text or None,
            source_url=source_url.strip(),
            contributed_by=user_id,
        )
        self._telemetry.emit(
            "source.created",
            video_id=video.id,
            source_id=source.id,
            timestamp_seconds=timestamp_seconds,
            by_owner=user_id == video.user_id,
        )
        return source

    def delete_source(self, *, user_id: str, source_id: str) -> None:
        source = self._sources.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(f"Source not found: {source_id}")
        video = self._videos.get_by_id(source.video_id)
        is_contributor = source.contributed_by == user_id
        is_video_owner = video is not None and video.user_id == user_id
        if not (is_contributor or is_video_owner):
            raise NotOwnerError("Only the contributor or the video owner can delete this source")

        self._sources.delete_source(source_id)
        self._telemetry.emit("source.deleted", video_id=source.video_id, source_id=source_id)

    def backfill_channels(self, user_id: str) -> BackfillReport:
        videos = self._videos.list_missing_channel(user_id)
        if self._channel_resolver is None or not videos:
            return BackfillReport(entries=[])

        entries: list[BackfillEntry] = []
        for video in videos:
            entries.append(self._backfill_one(video, self._channel_resolver))
        LOGGER.info(
            "channel backfill finished user_id=%s processed=%s updated=%s",
            user_id,
            len(entries),
            sum(1 for entry in entries if entry.status == "updated"),
        )
        return BackfillReport(entries=entries)

    def _backfill_one(self, video: VideoRecord, resolver: ChannelResolver) -> BackfillEntry:
        try:
            info = resolver.resolve_video_channel(video.youtube_id)
        except ChannelLookupError:
            LOGGER.warning(
                "channel backfill lookup failed video_id=%s youtube_id=%s",
                video.id,
                video.youtube_id,
                exc_info=True,
            )
            self._telemetry.emit("channel.resolve.failed", youtube_id=video.youtube_id)
            return BackfillEntry(video.id, video.youtube_id, None, "oembed_failed")
        except Exception:
            LOGGER.exception(
                "channel backfill crashed video_id=%s youtube_id=%s",
                video.id,
                video.youtube_id,
            )
            return BackfillEntry(video.id, video.youtube_id, None, "error")

        if info.channel_id is None:
            return BackfillEntry(video.id, video.youtube_id, None, "no_channel_id_found")

        self._videos.set_channel_id(video.id, info.channel_id)
        return BackfillEntry(video.id, video.youtube_id, info.channel_id, "updated")

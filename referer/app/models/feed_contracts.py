from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from referer.app.repositories.creator_repository import CreatorRecord
from referer.app.repositories.video_repository import VideoRecord
from referer.app.services.feed_service import AttributedSource, CitationFeed

AttributionLabel = Literal["creator", "community", "unattributed"]


class GetVideoSourcesRequest(BaseModel):
    """Body of the extension's feed call; the id type is checked by the route."""

    model_config = ConfigDict(extra="ignore")

    youtube_id: object = None


class FeedVideo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    title: str
    youtube_id: str


class FeedSource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    video_id: str
    timestamp_seconds: int
    claim: str
    source_text: str | None = None
    source_url: str
    contributed_by: str | None = None
    created_at: str
    is_creator_source: bool
    attribution: AttributionLabel


class FeedCreator(BaseModel):
    model_config = ConfigDict(extra="forbid")

    youtube_channel_id: str
    youtube_channel_name: str | None = None
    youtube_channel_avatar: str | None = None


class FeedLegend(BaseModel):
    model_config = ConfigDict(extra="forbid")

    has_creator: bool
    has_community: bool


class FeedResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video: FeedVideo | None = None
    sources: list[FeedSource] = Field(default_factory=lambda: [])
    creator: FeedCreator | None = None
    count: int = 0
    message: str | None = None


class ViewerFeedResponse(FeedResponse):
    legend: FeedLegend


def feed_video_from_record(video: VideoRecord) -> FeedVideo:
    return FeedVideo(id=video.id, title=video.title, youtube_id=video.youtube_id)


def feed_source_from_item(item: AttributedSource) -> FeedSource:
    source = item.source
    return FeedSource(
        id=source.id,
        video_id=source.video_id,
        timestamp_seconds=source.timestamp_seconds,
        claim=source.claim,
        source_text=source.source_text,
        source_url=source.source_url,
        contributed_by=source.contributed_by,
        created_at=source.created_at,
        is_creator_source=item.is_creator_source,
        attribution=item.attribution.value,
    )


def feed_creator_from_record(creator: CreatorRecord | None) -> FeedCreator | None:
    if creator is None:
        return None
    return FeedCreator(
        youtube_channel_id=creator.youtube_channel_id,
        youtube_channel_name=creator.youtube_channel_name,
        youtube_channel_avatar=creator.youtube_channel_avatar,
    )


def feed_response_from_feed(feed: CitationFeed) -> FeedResponse:
    if feed.video is None:
        return FeedResponse(message="No registered sources for this video")
    return FeedResponse(
        video=feed_video_from_record(feed.video),
        sources=[feed_source_from_item(item) for item in feed.sources],
        creator=feed_creator_from_record(feed.creator),
        count=feed.count,
    )


def viewer_feed_response_from_feed(feed: CitationFeed) -> ViewerFeedResponse:
    summary = feed.summary()
    base = feed_response_from_feed(feed)
    return ViewerFeedResponse(
        **base.model_dump(),
        legend=FeedLegend(
            has_creator=summary.has_creator,
            has_community=summary.has_community,
        ),
    )

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from referer.app.config import AppSettings
from referer.app.dependencies import (
    get_channel_resolver,
    get_citation_service,
    get_creator_service,
    get_feed_service,
    get_settings,
    optional_provider_token,
    require_user_id,
)
from referer.app.models.citation_contracts import (
    BackfillResponse,
    CreateSourceRequest,
    CreatorResponse,
    CreatorStatusResponse,
    ExportFormat,
    ExportResponse,
    RegisterVideoRequest,
    SourceResponse,
    UnlinkChannelResponse,
    VerifyChannelResponse,
    VideoDetailResponse,
    VideoInfoResponse,
    VideoListResponse,
    VideoResponse,
)
from referer.app.models.feed_contracts import (
    FeedResponse,
    GetVideoSourcesRequest,
    ViewerFeedResponse,
    feed_response_from_feed,
    viewer_feed_response_from_feed,
)
from referer.app.repositories.creator_repository import ChannelAlreadyClaimedError
from referer.app.repositories.video_repository import VideoAlreadyRegisteredError
from referer.app.services.channel_service import (
    ChannelLookupError,
    ChannelNotFoundError,
    ChannelResolver,
)
from referer.app.services.citation_service import (
    CitationService,
    InvalidVideoReferenceError,
    NotOwnerError,
    SourceNotFoundError,
    VideoNotFoundError,
)
from referer.app.services.creator_service import CreatorService, MissingProviderTokenError
from referer.app.services.export_service import generate_simple_links, generate_youtube_description
from referer.app.services.feed_service import FeedService, FeedStorageError, InvalidVideoIdError
from referer.app.services.youtube_urls import is_valid_youtube_id

LOGGER = logging.getLogger("referer.api")

router = APIRouter()

UserId = Annotated[str, Depends(require_user_id)]
ProviderToken = Annotated[str | None, Depends(optional_provider_token)]
Feeds = Annotated[FeedService, Depends(get_feed_service)]
Citations = Annotated[CitationService, Depends(get_citation_service)]
Creators = Annotated[CreatorService, Depends(get_creator_service)]


def _load_feed(feeds: FeedService, youtube_id: str) -> FeedResponse:
    context_tokens = bind_contextvars(youtube_id=youtube_id)
    try:
        feed = feeds.get_feed(youtube_id)
    except InvalidVideoIdError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except FeedStorageError as exc:
        raise HTTPException(status_code=500, detail="Error fetching sources") from exc
    finally:
        reset_contextvars(**context_tokens)
    return feed_response_from_feed(feed)


def _owned_video_or_404(
    citations: CitationService,
    *,
    user_id: str,
    video_id: str,
) -> VideoResponse:
    try:
        video = citations.get_owned_video(user_id=user_id, video_id=video_id)
    except VideoNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Video not found") from exc
    return VideoResponse.from_record(video)


# Feeds -----------------------------------------------------------------------


@router.post(
    "/functions/get-video-sources",
    response_model=FeedResponse,
    tags=["feed"],
    operation_id="get_video_sources",
)
def get_video_sources(request: GetVideoSourcesRequest, feeds: Feeds) -> FeedResponse:
    if not isinstance(request.youtube_id, str) or not request.youtube_id:
        raise HTTPException(
            status_code=400,
            detail="youtube_id is required and must be a string",
        )
    return _load_feed(feeds, request.youtube_id)


@router.get(
    "/feed/{youtube_id}",
    response_model=FeedResponse,
    tags=["feed"],
    operation_id="get_feed",
)
def get_feed(youtube_id: str, feeds: Feeds) -> FeedResponse:
    return _load_feed(feeds, youtube_id)


@router.get(
    "/videos/{video_id}/feed",
    response_model=ViewerFeedResponse,
    tags=["feed"],
    operation_id="get_viewer_feed",
)
def get_viewer_feed(video_id: str, feeds: Feeds) -> ViewerFeedResponse:
    try:
        feed = feeds.get_feed_for_video(video_id)
    except FeedStorageError as exc:
        raise HTTPException(status_code=500, detail="Error fetching sources") from exc
    if feed is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return viewer_feed_response_from_feed(feed)


# Videos ----------------------------------------------------------------------


@router.post(
    "/videos",
    response_model=VideoResponse,
    status_code=201,
    tags=["videos"],
    operation_id="register_video",
)
def register_video(
    request: RegisterVideoRequest,
    user_id: UserId,
    citations: Citations,
) -> VideoResponse:
    try:
        video = citations.register_video(
            user_id=user_id,
            url_or_id=request.url,
            title=request.title,
        )
    except InvalidVideoReferenceError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except VideoAlreadyRegisteredError as exc:
        raise HTTPException(status_code=409, detail="This video is already registered") from exc
    return VideoResponse.from_record(video)


@router.get(
    "/videos",
    response_model=VideoListResponse,
    tags=["videos"],
    operation_id="list_videos",
)
def list_videos(user_id: UserId, citations: Citations) -> VideoListResponse:
    return VideoListResponse(
        videos=[VideoResponse.from_record(video) for video in citations.list_videos(user_id)]
    )


@router.get(
    "/videos/{video_id}",
    response_model=VideoDetailResponse,
    tags=["videos"],
    operation_id="get_video",
)
def get_video(video_id: str, user_id: UserId, citations: Citations) -> VideoDetailResponse:
    video = _owned_video_or_404(citations, user_id=user_id, video_id=video_id)
    return VideoDetailResponse(
        video=video,
        sources=[SourceResponse.from_record(source) for source in citations.list_sources(video.id)],
    )


@router.delete(
    "/videos/{video_id}",
    status_code=204,
    tags=["videos"],
    operation_id="delete_video",
)
def delete_video(video_id: str, user_id: UserId, citations: Citations) -> Response:
    try:
        citations.delete_video(user_id=user_id, video_id=video_id)
    except VideoNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Video not found") from exc
    return Response(status_code=204)


@router.get(
    "/videos/{video_id}/export",
    response_model=ExportResponse,
    tags=["videos"],
    operation_id="export_video_sources",
)
def export_video_sources(
    video_id: str,
    user_id: UserId,
    citations: Citations,
    settings: Annotated[AppSettings, Depends(get_settings)],
    export_format: Annotated[ExportFormat, Query(alias="format")] = "description",
) -> ExportResponse:
    video = _owned_video_or_404(citations, user_id=user_id, video_id=video_id)
    sources = citations.list_sources(video.id)
    if export_format == "links":
        text = generate_simple_links(video, sources, settings.public_base_url)
    else:
        text = generate_youtube_description(video, sources, settings.public_base_url)
    return ExportResponse(format=export_format, text=text)


# Sources ---------------------------------------------------------------------


@router.post(
    "/videos/{video_id}/sources",
    response_model=SourceResponse,
    status_code=201,
    tags=["sources"],
    operation_id="create_source",
)
def create_source(
    video_id: str,
    request: CreateSourceRequest,
    user_id: UserId,
    citations: Citations,
) -> SourceResponse:
    try:
        source = citations.add_source(
            user_id=user_id,
            video_id=video_id,
            timestamp_seconds=request.timestamp_seconds,
            claim=request.claim,
            source_url=request.source_url,
            source_text=request.source_text,
        )
    except VideoNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Video not found") from exc
    return SourceResponse.from_record(source)


@router.delete(
    "/sources/{source_id}",
    status_code=204,
    tags=["sources"],
    operation_id="delete_source",
)
def delete_source(source_id: str, user_id: UserId, citations: Citations) -> Response:
    try:
        citations.delete_source(user_id=user_id, source_id=source_id)
    except SourceNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Source not found") from exc
    except NotOwnerError as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    return Response(status_code=204)


# YouTube ---------------------------------------------------------------------


@router.post(
    "/youtube/backfill",
    response_model=BackfillResponse,
    tags=["youtube"],
    operation_id="youtube_backfill_channels",
)
def youtube_backfill_channels(user_id: UserId, citations: Citations) -> BackfillResponse:
    return BackfillResponse.from_report(citations.backfill_channels(user_id))


@router.get(
    "/youtube/video-info",
    response_model=VideoInfoResponse,
    tags=["youtube"],
    operation_id="youtube_video_info",
)
def youtube_video_info(
    resolver: Annotated[ChannelResolver, Depends(get_channel_resolver)],
    v: str | None = None,
) -> VideoInfoResponse:
    if v is None or not v.strip():
        raise HTTPException(status_code=400, detail="Missing video ID")
    youtube_id = v.strip()
    if not is_valid_youtube_id(youtube_id):
        raise HTTPException(status_code=400, detail="Invalid youtube_id format")
    try:
        info = resolver.resolve_video_channel(youtube_id)
    except ChannelLookupError as exc:
        LOGGER.warning("video info lookup failed youtube_id=%s", youtube_id, exc_info=True)
        raise HTTPException(status_code=404, detail="Could not fetch video info") from exc
    return VideoInfoResponse(
        youtube_id=youtube_id,
        channel_id=info.channel_id,
        channel_name=info.channel_name,
        author_url=info.author_url,
    )


@router.post(
    "/youtube/channel",
    response_model=VerifyChannelResponse,
    tags=["creator"],
    operation_id="verify_channel",
)
def verify_channel(
    user_id: UserId,
    provider_token: ProviderToken,
    creators: Creators,
) -> VerifyChannelResponse:
    try:
        creator = creators.verify_channel(user_id=user_id, provider_token=provider_token)
    except MissingProviderTokenError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ChannelNotFoundError as exc:
        raise HTTPException(
            status_code=404,
            detail="No YouTube channel found for this account",
        ) from exc
    except ChannelAlreadyClaimedError as exc:
        raise HTTPException(
            status_code=409,
            detail="This YouTube channel is already linked to another account",
        ) from exc
    except ChannelLookupError as exc:
        LOGGER.error("channel verification lookup failed user_id=%s", user_id, exc_info=True)
        raise HTTPException(
            status_code=502,
            detail="Could not reach YouTube to verify the channel",
        ) from exc
    return VerifyChannelResponse(success=True, creator=CreatorResponse.from_record(creator))


@router.get(
    "/youtube/channel",
    response_model=CreatorStatusResponse,
    tags=["creator"],
    operation_id="get_channel_status",
)
def get_channel_status(user_id: UserId, creators: Creators) -> CreatorStatusResponse:
    creator = creators.get_creator(user_id)
    if creator is None:
        return CreatorStatusResponse(is_creator=False, creator=None)
    return CreatorStatusResponse(is_creator=True, creator=CreatorResponse.from_record(creator))


@router.delete(
    "/youtube/channel",
    response_model=UnlinkChannelResponse,
    tags=["creator"],
    operation_id="unlink_channel",
)
def unlink_channel(user_id: UserId, creators: Creators) -> UnlinkChannelResponse:
    return UnlinkChannelResponse(unlinked=creators.unlink(user_id))

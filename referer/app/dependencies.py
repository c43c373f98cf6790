from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Header, HTTPException

from referer.app.config import AppSettings, load_settings
from referer.app.repositories.creator_repository import CreatorRepository
from referer.app.repositories.database import Database
from referer.app.repositories.source_repository import SourceRepository
from referer.app.repositories.video_repository import VideoRepository
from referer.app.services.channel_service import ChannelResolver
from referer.app.services.citation_service import CitationService
from referer.app.services.creator_service import CreatorService
from referer.app.services.feed_service import FeedService
from referer.app.telemetry import TelemetryClient, build_telemetry_client

USER_HEADER = "X-Referer-User"
PROVIDER_TOKEN_HEADER = "X-Provider-Token"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_database() -> Database:
    database = Database(get_settings().db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_channel_resolver() -> ChannelResolver:
    settings = get_settings()
    return ChannelResolver(
        oembed_url=settings.youtube_oembed_url,
        http_timeout_seconds=settings.youtube_http_timeout_seconds,
        user_agent=settings.youtube_user_agent,
    )


@lru_cache(maxsize=1)
def get_feed_service() -> FeedService:
    database = get_database()
    return FeedService(
        video_repository=VideoRepository(database),
        source_repository=SourceRepository(database),
        creator_repository=CreatorRepository(database),
        telemetry=get_telemetry(),
    )


@lru_cache(maxsize=1)
def get_citation_service() -> CitationService:
    settings = get_settings()
    database = get_database()
    return CitationService(
        video_repository=VideoRepository(database),
        source_repository=SourceRepository(database),
        channel_resolver=(
            get_channel_resolver() if settings.youtube_channel_resolution_enabled else None
        ),
        telemetry=get_telemetry(),
    )


@lru_cache(maxsize=1)
def get_creator_service() -> CreatorService:
    return CreatorService(
        creator_repository=CreatorRepository(get_database()),
        telemetry=get_telemetry(),
    )


def require_user_id(
    x_referer_user: Annotated[str | None, Header(alias=USER_HEADER)] = None,
) -> str:
    if x_referer_user is None or not x_referer_user.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_referer_user.strip()


def optional_provider_token(
    x_provider_token: Annotated[str | None, Header(alias=PROVIDER_TOKEN_HEADER)] = None,
) -> str | None:
    if x_provider_token is None or not x_provider_token.strip():
        return None
    return x_provider_token.strip()


def reset_cached_dependencies() -> None:
    get_creator_service.cache_clear()
    get_citation_service.cache_clear()
    get_feed_service.cache_clear()
    get_channel_resolver.cache_clear()
    get_telemetry.cache_clear()
    get_database.cache_clear()
    get_settings.cache_clear()

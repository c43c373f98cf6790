from __future__ import annotations

from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

from referer.app.repositories.creator_repository import CreatorRecord
from referer.app.repositories.source_repository import MAX_TIMESTAMP_SECONDS, SourceRecord
from referer.app.repositories.video_repository import VideoRecord
from referer.app.services.citation_service import BackfillEntry, BackfillReport
from referer.app.services.timestamps import format_timestamp, parse_timestamp

ExportFormat = Literal["description", "links"]


def _normalize_optional_text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if not normalized:
        return None
    return normalized


class RegisterVideoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(max_length=2048, description="YouTube URL or bare 11-character id.")
    title: str = Field(max_length=500)

    @field_validator("url", "title")
    @classmethod
    def _require_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("value must not be empty")
        return normalized


class CreateSourceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timestamp: int | str = Field(description="Seconds, MM:SS or H:MM:SS.")
    claim: str = Field(max_length=2000)
    source_url: str = Field(max_length=2048)
    source_text: str | None = Field(default=None, max_length=4000)

    @field_validator("timestamp")
    @classmethod
    def _parse_timestamp(cls, value: int | str) -> int:
        seconds = value if isinstance(value, int) else parse_timestamp(value)
        if seconds < 0:
            raise ValueError("timestamp must be >= 0")
        if seconds > MAX_TIMESTAMP_SECONDS:
            raise ValueError("timestamp is too large")
        return seconds

    @field_validator("claim")
    @classmethod
    def _require_claim(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("claim must not be empty")
        return normalized

    @field_validator("source_url")
    @classmethod
    def _validate_url(cls, value: str) -> str:
        normalized = value.strip()
        if any(ord(character) < 32 for character in normalized):
            raise ValueError("source_url contains control characters")
        parsed = urlparse(normalized)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("source_url must be an absolute http/https URL")
        return normalized

    @field_validator("source_text", mode="before")
    @classmethod
    def _normalize_source_text(cls, value: object) -> str | None:
        return _normalize_optional_text(value)

    @property
    def timestamp_seconds(self) -> int:
        # Narrowed by the validator above.
        assert isinstance(self.timestamp, int)
        return self.timestamp


class VideoResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    youtube_id: str
    youtube_channel_id: str | None = None
    title: str
    thumbnail_url: str | None = None
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, record: VideoRecord) -> VideoResponse:
        return cls(
            id=record.id,
            youtube_id=record.youtube_id,
            youtube_channel_id=record.youtube_channel_id,
            title=record.title,
            thumbnail_url=record.thumbnail_url,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class SourceResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    video_id: str
    timestamp_seconds: int
    timestamp_label: str
    claim: str
    source_text: str | None = None
    source_url: str
    contributed_by: str | None = None
    created_at: str

    @classmethod
    def from_record(cls, record: SourceRecord) -> SourceResponse:
        return cls(
            id=record.id,
            video_id=record.video_id,
            timestamp_seconds=record.timestamp_seconds,
            timestamp_label=format_timestamp(record.timestamp_seconds),
            claim=record.claim,
            source_text=record.source_text,
            source_url=record.source_url,
            contributed_by=record.contributed_by,
            created_at=record.created_at,
        )


class VideoListResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    videos: list[VideoResponse]


class VideoDetailResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video: VideoResponse
    sources: list[SourceResponse]


class BackfillResultItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str
    youtube_id: str
    channel_id: str | None = None
    status: Literal["updated", "oembed_failed", "no_channel_id_found", "error"]

    @classmethod
    def from_entry(cls, entry: BackfillEntry) -> BackfillResultItem:
        return cls(
            video_id=entry.video_id,
            youtube_id=entry.youtube_id,
            channel_id=entry.channel_id,
            status=entry.status,
        )


class BackfillResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str
    updated: int
    results: list[BackfillResultItem]

    @classmethod
    def from_report(cls, report: BackfillReport) -> BackfillResponse:
        return cls(
            message=report.message,
            updated=report.updated,
            results=[BackfillResultItem.from_entry(entry) for entry in report.entries],
        )


class VideoInfoResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    youtube_id: str
    channel_id: str | None = None
    channel_name: str | None = None
    author_url: str | None = None


class CreatorResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    user_id: str
    youtube_channel_id: str
    youtube_channel_name: str | None = None
    youtube_channel_avatar: str | None = None
    verified_at: str

    @classmethod
    def from_record(cls, record: CreatorRecord) -> CreatorResponse:
        return cls(
            id=record.id,
            user_id=record.user_id,
            youtube_channel_id=record.youtube_channel_id,
            youtube_channel_name=record.youtube_channel_name,
            youtube_channel_avatar=record.youtube_channel_avatar,
            verified_at=record.verified_at,
        )


class CreatorStatusResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_creator: bool
    creator: CreatorResponse | None = None


class VerifyChannelResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    success: bool
    creator: CreatorResponse


class UnlinkChannelResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    unlinked: bool


class ExportResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    format: ExportFormat
    text: str

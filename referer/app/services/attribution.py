from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class Attribution(StrEnum):
    UNATTRIBUTED = "unattributed"
    CREATOR = "creator"
    COMMUNITY = "community"

    @property
    def is_creator_source(self) -> bool:
        return self is Attribution.CREATOR


class AttributableSource(Protocol):
    @property
    def contributed_by(self) -> str | None: ...


class AttributableVideo(Protocol):
    @property
    def user_id(self) -> str: ...

    @property
    def youtube_channel_id(self) -> str | None: ...


class VerifiedCreator(Protocol):
    @property
    def youtube_channel_id(self) -> str: ...


@dataclass(frozen=True)
class AttributionSummary:
    has_creator: bool
    has_community: bool


def resolve_attribution(
    source: AttributableSource,
    video: AttributableVideo,
    owner_creator: VerifiedCreator | None,
) -> Attribution:
    """
    Classify who added a citation, recomputed on every read.

    Verification belongs to a user, not to a video, so a creator source needs the
    contributor to be the video's owner *and* the owner's verified channel to be
    the channel that actually published this video.
    """
    contributor = source.contributed_by
    if contributor is None:
        return Attribution.UNATTRIBUTED
    if owner_creator is None or video.youtube_channel_id is None:
        return Attribution.COMMUNITY
    if contributor != video.user_id:
        return Attribution.COMMUNITY
    if video.youtube_channel_id != owner_creator.youtube_channel_id:
        return Attribution.COMMUNITY
    return Attribution.CREATOR


def summarize_attributions(attributions: Iterable[Attribution]) -> AttributionSummary:
    has_creator = False
    has_community = False
    for attribution in attributions:
        if attribution is Attribution.CREATOR:
            has_creator = True
        elif attribution is Attribution.COMMUNITY:
            has_community = True
    return AttributionSummary(has_creator=has_creator, has_community=has_community)

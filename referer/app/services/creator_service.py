from __future__ import annotations

import logging
from collections.abc import Callable

from referer.app.repositories.creator_repository import (
    ChannelAlreadyClaimedError,
    CreatorRecord,
    CreatorRepository,
)
from referer.app.services.channel_service import OwnedChannel, fetch_own_channel
from referer.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("referer.creator")

OwnedChannelFetcher = Callable[[str], OwnedChannel]


class CreatorServiceError(Exception):
    pass


class MissingProviderTokenError(CreatorServiceError):
    pass


class CreatorService:
    def __init__(
        self,
        *,
        creator_repository: CreatorRepository,
        channel_fetcher: OwnedChannelFetcher = fetch_own_channel,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._creators = creator_repository
        self._channel_fetcher = channel_fetcher
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def get_creator(self, user_id: str) -> CreatorRecord | None:
        return self._creators.get_by_user(user_id)

    def verify_channel(self, *, user_id: str, provider_token: str | None) -> CreatorRecord:
        """
        Link the caller's Google account channel to a creator record.

        Raises `MissingProviderTokenError` when there is no OAuth access token,
        `ChannelNotFoundError` / `ChannelLookupError` from the lookup itself, and
        `ChannelAlreadyClaimedError` when another user already holds the channel.
        """
        if provider_token is None or not provider_token.strip():
            self._telemetry.emit("creator.verify.missing_token", user_id=user_id)
            raise MissingProviderTokenError(
                "Google access token not found; sign in with Google again to verify your channel."
            )

        channel = self._channel_fetcher(provider_token.strip())
        try:
            creator = self._creators.upsert_for_user(
                user_id=user_id,
                channel_id=channel.channel_id,
                channel_name=channel.name,
                channel_avatar=channel.avatar_url,
            )
        except ChannelAlreadyClaimedError:
            LOGGER.info(
                "creator verification conflict user_id=%s channel_id=%s",
                user_id,
                channel.channel_id,
            )
            self._telemetry.emit(
                "creator.verify.conflict",
                user_id=user_id,
                channel_id=channel.channel_id,
            )
            raise

        LOGGER.info(
            "creator verified user_id=%s channel_id=%s",
            user_id,
            creator.youtube_channel_id,
        )
        self._telemetry.emit(
            "creator.verify.success",
            user_id=user_id,
            channel_id=creator.youtube_channel_id,
        )
        return creator

    def unlink(self, user_id: str) -> bool:
        removed = self._creators.delete_for_user(user_id)
        if removed:
            LOGGER.info("creator unlinked user_id=%s", user_id)
            self._telemetry.emit("creator.unlink", user_id=user_id)
        return removed

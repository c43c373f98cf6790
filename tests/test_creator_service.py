from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from referer.app.repositories.creator_repository import (
    ChannelAlreadyClaimedError,
    CreatorRepository,
)
from referer.app.services.channel_service import ChannelNotFoundError, OwnedChannel
from referer.app.services.creator_service import CreatorService, MissingProviderTokenError
from referer.app.telemetry import TelemetryClient

OWNER_ID = "user-owner"
OTHER_ID = "user-other"
CHANNEL_ID = "UCowner000000000000000000"


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.events]


def _fetcher(channel_id: str = CHANNEL_ID, seen_tokens: list[str] | None = None):
    def fetch(access_token: str) -> OwnedChannel:
        if seen_tokens is not None:
            seen_tokens.append(access_token)
        return OwnedChannel(
            channel_id=channel_id,
            name="Owner Channel",
            avatar_url="https://yt3.ggpht.com/avatar.jpg",
        )

    return fetch


def _service(
    creator_repository: CreatorRepository,
    fetch=None,
    sink: _CaptureSink | None = None,
) -> CreatorService:
    return CreatorService(
        creator_repository=creator_repository,
        channel_fetcher=fetch if fetch is not None else _fetcher(),
        telemetry=TelemetryClient(enabled=True, sink=sink) if sink is not None else None,
    )


@pytest.mark.parametrize("token", [None, "", "   "])
def test_verify_requires_provider_token(
    token: str | None,
    creator_repository: CreatorRepository,
) -> None:
    sink = _CaptureSink()
    service = _service(creator_repository, sink=sink)

    with pytest.raises(MissingProviderTokenError):
        service.verify_channel(user_id=OWNER_ID, provider_token=token)

    assert creator_repository.get_by_user(OWNER_ID) is None
    assert sink.names == ["creator.verify.missing_token"]


def test_verify_links_channel_and_redacts_token(creator_repository: CreatorRepository) -> None:
    seen_tokens: list[str] = []
    sink = _CaptureSink()
    service = _service(creator_repository, _fetcher(seen_tokens=seen_tokens), sink)

    creator = service.verify_channel(user_id=OWNER_ID, provider_token="  ya29.secret  ")

    assert seen_tokens == ["ya29.secret"]
    assert creator.youtube_channel_id == CHANNEL_ID
    assert creator.youtube_channel_name == "Owner Channel"
    assert service.get_creator(OWNER_ID) == creator
    assert sink.names == ["creator.verify.success"]
    assert "ya29.secret" not in repr(sink.events)


def test_reverify_replaces_the_callers_channel(creator_repository: CreatorRepository) -> None:
    _service(creator_repository).verify_channel(user_id=OWNER_ID, provider_token="token")
    replacement = _service(
        creator_repository,
        _fetcher(channel_id="UCreplacement00000000000"),
    ).verify_channel(user_id=OWNER_ID, provider_token="token")

    assert replacement.youtube_channel_id == "UCreplacement00000000000"
    stored = creator_repository.get_by_user(OWNER_ID)
    assert stored is not None
    assert stored.youtube_channel_id == "UCreplacement00000000000"


def test_channel_claimed_by_another_user_conflicts(creator_repository: CreatorRepository) -> None:
    _service(creator_repository).verify_channel(user_id=OWNER_ID, provider_token="token")
    sink = _CaptureSink()

    with pytest.raises(ChannelAlreadyClaimedError):
        _service(creator_repository, sink=sink).verify_channel(
            user_id=OTHER_ID,
            provider_token="token",
        )

    assert creator_repository.get_by_user(OTHER_ID) is None
    assert sink.names == ["creator.verify.conflict"]


def test_lookup_errors_propagate(creator_repository: CreatorRepository) -> None:
    def no_channel(access_token: str) -> OwnedChannel:
        raise ChannelNotFoundError("No YouTube channel is linked to this Google account")

    with pytest.raises(ChannelNotFoundError):
        _service(creator_repository, no_channel).verify_channel(
            user_id=OWNER_ID,
            provider_token="token",
        )


def test_unlink_removes_link_once(creator_repository: CreatorRepository) -> None:
    sink = _CaptureSink()
    service = _service(creator_repository, sink=sink)
    service.verify_channel(user_id=OWNER_ID, provider_token="token")

    assert service.unlink(OWNER_ID) is True
    assert service.unlink(OWNER_ID) is False
    assert service.get_creator(OWNER_ID) is None
    assert sink.names == ["creator.verify.success", "creator.unlink"]

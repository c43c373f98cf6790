from __future__ import annotations

from typing import Any, cast

from fastapi import FastAPI
from fastapi.testclient import TestClient

from referer.app.dependencies import get_creator_service, get_database
from referer.app.repositories.creator_repository import CreatorRepository
from referer.app.repositories.video_repository import VideoRepository
from referer.app.services.channel_service import ChannelNotFoundError, OwnedChannel
from referer.app.services.creator_service import CreatorService

OWNER_ID = "user-owner"
OTHER_ID = "user-other"
YOUTUBE_ID = "dQw4w9WgXcQ"
CHANNEL_ID = "UCowner000000000000000000"


def _headers(user_id: str = OWNER_ID, **extra: str) -> dict[str, str]:
    return {"X-Referer-User": user_id, **extra}


def _register_video(
    client: TestClient,
    *,
    url: str = f"https://youtu.be/{YOUTUBE_ID}",
) -> dict[str, Any]:
    response = client.post(
        "/videos",
        json={"url": url, "title": "  How vaccines work  "},
        headers=_headers(),
    )
    assert response.status_code == 201
    return response.json()


def _add_source(
    client: TestClient,
    video_id: str,
    *,
    timestamp: int | str,
    claim: str = "Vaccines train the immune system",
    user_id: str = OWNER_ID,
) -> dict[str, Any]:
    response = client.post(
        f"/videos/{video_id}/sources",
        json={
            "timestamp": timestamp,
            "claim": claim,
            "source_url": "https://www.nature.com/articles/example",
        },
        headers=_headers(user_id),
    )
    assert response.status_code == 201
    return response.json()


def _use_channel_fetcher(client: TestClient, fetcher: Any) -> None:
    service = CreatorService(
        creator_repository=CreatorRepository(get_database()),
        channel_fetcher=fetcher,
    )
    cast(FastAPI, client.app).dependency_overrides[get_creator_service] = lambda: service


def test_health_endpoint_echoes_request_id(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"] == "req-123"


def test_feed_function_rejects_missing_or_non_string_id(client: TestClient) -> None:
    missing = client.post("/functions/get-video-sources", json={})
    wrong_type = client.post("/functions/get-video-sources", json={"youtube_id": 12345678901})

    assert missing.status_code == 400
    assert wrong_type.status_code == 400
    assert missing.json()["detail"] == "youtube_id is required and must be a string"


def test_feed_function_rejects_malformed_id(client: TestClient) -> None:
    short = client.post("/functions/get-video-sources", json={"youtube_id": "dQw4w9WgXc"})
    bad_char = client.get("/feed/dQw4w9WgX!Q")

    assert short.status_code == 400
    assert short.json()["detail"] == "Invalid youtube_id format"
    assert bad_char.status_code == 400


def test_feed_for_unregistered_video_is_empty_not_error(client: TestClient) -> None:
    response = client.post("/functions/get-video-sources", json={"youtube_id": YOUTUBE_ID})

    assert response.status_code == 200
    body = response.json()
    assert body["video"] is None
    assert body["sources"] == []
    assert body["creator"] is None
    assert body["count"] == 0


def test_feed_returns_ordered_attributed_sources(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp="2:05", claim="Late claim")
    _add_source(client, video["id"], timestamp=10, claim="Owner claim")
    _add_source(client, video["id"], timestamp="1:00", claim="Community claim", user_id=OTHER_ID)

    response = client.get(f"/feed/{YOUTUBE_ID}")

    assert response.status_code == 200
    body = response.json()
    assert body["video"] == {
        "id": video["id"],
        "title": "How vaccines work",
        "youtube_id": YOUTUBE_ID,
    }
    assert body["count"] == 3
    assert [source["timestamp_seconds"] for source in body["sources"]] == [10, 60, 125]
    # No verified creator and no resolved channel: nothing counts as a creator source.
    assert [source["is_creator_source"] for source in body["sources"]] == [False, False, False]
    assert {source["attribution"] for source in body["sources"]} == {"community"}
    assert body["creator"] is None


def test_viewer_feed_includes_legend_and_404s_for_unknown_video(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp=30)

    response = client.get(f"/videos/{video['id']}/feed")
    missing = client.get("/videos/vid_missing/feed")

    assert response.status_code == 200
    assert response.json()["legend"] == {"has_creator": False, "has_community": True}
    assert missing.status_code == 404


def test_creator_attribution_after_channel_verification(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp=10)
    _use_channel_fetcher(
        client,
        lambda token: OwnedChannel(channel_id=CHANNEL_ID, name="Owner", avatar_url=None),
    )

    verify = client.post(
        "/youtube/channel",
        headers=_headers(**{"X-Provider-Token": "ya29.token"}),
    )
    assert verify.status_code == 200
    assert verify.json()["creator"]["youtube_channel_id"] == CHANNEL_ID

    # The video's own channel is still unresolved, so attribution stays community.
    before = client.get(f"/feed/{YOUTUBE_ID}").json()
    assert before["sources"][0]["is_creator_source"] is False
    assert before["creator"]["youtube_channel_id"] == CHANNEL_ID

    VideoRepository(get_database()).set_channel_id(video["id"], CHANNEL_ID)
    after = client.get(f"/feed/{YOUTUBE_ID}").json()
    assert after["sources"][0]["is_creator_source"] is True
    assert after["sources"][0]["attribution"] == "creator"


def test_register_video_validation_and_conflict(client: TestClient) -> None:
    _register_video(client, url=f"https://www.youtube.com/watch?v={YOUTUBE_ID}&t=30")

    duplicate = client.post(
        "/videos",
        json={"url": YOUTUBE_ID, "title": "Again"},
        headers=_headers(OTHER_ID),
    )
    invalid = client.post(
        "/videos",
        json={"url": "https://vimeo.com/12345", "title": "Nope"},
        headers=_headers(),
    )
    anonymous = client.post("/videos", json={"url": YOUTUBE_ID, "title": "x"})

    assert duplicate.status_code == 409
    assert invalid.status_code == 400
    assert anonymous.status_code == 401


def test_registered_video_defaults(client: TestClient) -> None:
    video = _register_video(client)

    assert video["youtube_id"] == YOUTUBE_ID
    assert video["title"] == "How vaccines work"
    assert video["thumbnail_url"] == f"https://img.youtube.com/vi/{YOUTUBE_ID}/hqdefault.jpg"
    assert video["youtube_channel_id"] is None


def test_videos_are_scoped_to_their_owner(client: TestClient) -> None:
    video = _register_video(client)

    mine = client.get("/videos", headers=_headers()).json()["videos"]
    theirs = client.get("/videos", headers=_headers(OTHER_ID)).json()["videos"]
    detail_for_other = client.get(f"/videos/{video['id']}", headers=_headers(OTHER_ID))
    delete_for_other = client.delete(f"/videos/{video['id']}", headers=_headers(OTHER_ID))

    assert [item["id"] for item in mine] == [video["id"]]
    assert theirs == []
    assert detail_for_other.status_code == 404
    assert delete_for_other.status_code == 404


def test_video_detail_lists_sources_with_labels(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp="1:02:15")
    _add_source(client, video["id"], timestamp="0:45")

    response = client.get(f"/videos/{video['id']}", headers=_headers())

    assert response.status_code == 200
    sources = response.json()["sources"]
    assert [source["timestamp_label"] for source in sources] == ["00:45", "1:02:15"]
    assert all(source["contributed_by"] == OWNER_ID for source in sources)


def test_create_source_validation(client: TestClient) -> None:
    video = _register_video(client)

    def _post(payload: dict[str, Any]) -> int:
        return client.post(
            f"/videos/{video['id']}/sources",
            json=payload,
            headers=_headers(),
        ).status_code

    base = {"timestamp": 10, "claim": "A claim", "source_url": "https://example.org"}
    assert _post({**base, "timestamp": "10:60"}) == 422
    assert _post({**base, "timestamp": -1}) == 422
    assert _post({**base, "timestamp": 2**70}) == 422
    assert _post({**base, "timestamp": "9" * 25}) == 422
    assert _post({**base, "timestamp": 2**63 - 1}) == 201
    assert _post({**base, "claim": "   "}) == 422
    assert _post({**base, "source_url": "not a url"}) == 422
    assert _post({**base, "source_url": "ftp://example.org/file"}) == 422
    assert (
        client.post("/videos/vid_missing/sources", json=base, headers=_headers()).status_code
        == 404
    )


def test_delete_source_permissions(client: TestClient) -> None:
    video = _register_video(client)
    owner_source = _add_source(client, video["id"], timestamp=10)
    community_source = _add_source(client, video["id"], timestamp=20, user_id=OTHER_ID)

    stranger = client.delete(f"/sources/{owner_source['id']}", headers=_headers("user-stranger"))
    by_contributor = client.delete(f"/sources/{community_source['id']}", headers=_headers(OTHER_ID))
    by_owner = client.delete(f"/sources/{owner_source['id']}", headers=_headers())
    again = client.delete(f"/sources/{owner_source['id']}", headers=_headers())

    assert stranger.status_code == 403
    assert by_contributor.status_code == 204
    assert by_owner.status_code == 204
    assert again.status_code == 404


def test_deleting_video_removes_its_sources(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp=10)

    response = client.delete(f"/videos/{video['id']}", headers=_headers())

    assert response.status_code == 204
    assert client.get(f"/feed/{YOUTUBE_ID}").json()["count"] == 0


def test_export_endpoint_formats(client: TestClient) -> None:
    video = _register_video(client)
    _add_source(client, video["id"], timestamp=125, claim="Second")
    _add_source(client, video["id"], timestamp=10, claim="First")

    description = client.get(f"/videos/{video['id']}/export", headers=_headers()).json()
    links = client.get(
        f"/videos/{video['id']}/export",
        params={"format": "links"},
        headers=_headers(),
    ).json()

    assert description["format"] == "description"
    assert "00:10 - First" in description["text"]
    assert f"https://referer.test/v/{video['id']}?t=125" in description["text"]
    assert description["text"].index("First") < description["text"].index("Second")
    assert links == {
        "format": "links",
        "text": (
            "Sources:\n"
            "00:10 → https://www.nature.com/articles/example\n"
            "02:05 → https://www.nature.com/articles/example\n\n"
            f"Verify on: https://referer.test/v/{video['id']}"
        ),
    }


def test_channel_status_verify_conflict_and_unlink(client: TestClient) -> None:
    _use_channel_fetcher(
        client,
        lambda token: OwnedChannel(channel_id=CHANNEL_ID, name="Owner", avatar_url="https://a"),
    )

    assert client.get("/youtube/channel", headers=_headers()).json() == {
        "is_creator": False,
        "creator": None,
    }

    token_headers = {"X-Provider-Token": "ya29.token"}
    first = client.post("/youtube/channel", headers=_headers(**token_headers))
    conflict = client.post("/youtube/channel", headers=_headers(OTHER_ID, **token_headers))
    status = client.get("/youtube/channel", headers=_headers()).json()

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert conflict.status_code == 409
    assert status["is_creator"] is True
    assert status["creator"]["youtube_channel_name"] == "Owner"

    assert client.delete("/youtube/channel", headers=_headers()).json() == {"unlinked": True}
    assert client.delete("/youtube/channel", headers=_headers()).json() == {"unlinked": False}


def test_channel_verification_without_token_fails_distinctly(client: TestClient) -> None:
    calls: list[str] = []
    _use_channel_fetcher(client, calls.append)

    response = client.post("/youtube/channel", headers=_headers())

    assert response.status_code == 400
    assert calls == []


def test_channel_verification_without_channel_is_404(client: TestClient) -> None:
    def _no_channel(token: str) -> OwnedChannel:
        raise ChannelNotFoundError("no channel")

    _use_channel_fetcher(client, _no_channel)

    response = client.post(
        "/youtube/channel",
        headers=_headers(**{"X-Provider-Token": "ya29.token"}),
    )

    assert response.status_code == 404


def test_backfill_with_resolution_disabled_reports_nothing(client: TestClient) -> None:
    _register_video(client)

    response = client.post("/youtube/backfill", headers=_headers())

    assert response.status_code == 200
    assert response.json() == {"message": "No videos to update", "updated": 0, "results": []}


def test_video_info_requires_id(client: TestClient) -> None:
    assert client.get("/youtube/video-info").status_code == 400
    assert client.get("/youtube/video-info", params={"v": "short"}).status_code == 400

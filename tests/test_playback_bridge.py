from __future__ import annotations

import json
from typing import Any

import pytest

from referer.app.services.playback_bridge import (
    MessageListener,
    PlaybackBridge,
    PlaybackState,
    StateChanged,
    TimeUpdate,
    decode_player_message,
    player_state_from_code,
)

YOUTUBE_ORIGIN = "https://www.youtube.com"


class _FakeTransport:
    def __init__(self) -> None:
        self.listeners: list[MessageListener] = []
        self.posted: list[tuple[dict[str, Any], str]] = []

    def add_listener(self, listener: MessageListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: MessageListener) -> None:
        self.listeners.remove(listener)

    def post(self, message: str, target_origin: str) -> None:
        self.posted.append((json.loads(message), target_origin))

    def deliver(self, origin: str, data: Any) -> None:
        for listener in list(self.listeners):
            listener(origin, data)


def _info_delivery(**info: Any) -> str:
    return json.dumps({"event": "infoDelivery", "info": info})


def _bridge(transport: _FakeTransport) -> tuple[PlaybackBridge, list[int], list[PlaybackState]]:
    times: list[int] = []
    states: list[PlaybackState] = []
    bridge = PlaybackBridge(
        transport,
        on_time_update=times.append,
        on_state_change=states.append,
    )
    return bridge, times, states


def test_decode_player_message_reads_time_and_state() -> None:
    messages = decode_player_message(_info_delivery(currentTime=61.87, playerState=1))

    assert messages == [StateChanged(state=PlaybackState.PLAYING), TimeUpdate(current_time=61.87)]
    time_update = messages[1]
    assert isinstance(time_update, TimeUpdate)
    assert time_update.whole_seconds == 61


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps([1, 2, 3]),
        json.dumps({"event": "initialDelivery", "info": {}}),
        json.dumps({"event": "infoDelivery", "info": {"currentTime": "12"}}),
        json.dumps({"event": "infoDelivery", "info": {"currentTime": -1}}),
        None,
    ],
)
def test_decode_player_message_ignores_unrecognised_payloads(raw: Any) -> None:
    assert decode_player_message(raw) == []


def test_player_state_codes_map_to_enum() -> None:
    assert player_state_from_code(2) is PlaybackState.PAUSED
    assert player_state_from_code(-1) is PlaybackState.UNSTARTED
    assert player_state_from_code(42) is PlaybackState.OTHER
    assert player_state_from_code(True) is PlaybackState.OTHER


def test_connect_registers_listener_and_sends_handshake_once() -> None:
    transport = _FakeTransport()
    bridge, _, _ = _bridge(transport)

    bridge.connect()
    bridge.connect()

    assert bridge.connected is True
    assert len(transport.listeners) == 1
    assert transport.posted == [({"event": "listening", "id": "referer", "channel": "widget"}, "*")]


def test_time_updates_are_floored_before_delivery() -> None:
    transport = _FakeTransport()
    bridge, times, states = _bridge(transport)
    bridge.connect()

    transport.deliver(YOUTUBE_ORIGIN, _info_delivery(currentTime=10.9))
    transport.deliver(YOUTUBE_ORIGIN, _info_delivery(currentTime=10.2))
    transport.deliver(YOUTUBE_ORIGIN, json.dumps({"event": "onStateChange", "info": 2}))

    assert times == [10, 10]
    assert states == [PlaybackState.PAUSED]
    assert bridge.state is PlaybackState.PAUSED


def test_messages_from_foreign_origins_are_dropped_silently() -> None:
    transport = _FakeTransport()
    bridge, times, states = _bridge(transport)
    bridge.connect()

    transport.deliver("https://evil.example", _info_delivery(currentTime=99, playerState=1))

    assert times == []
    assert states == []


def test_seek_posts_command_with_resume_flag() -> None:
    transport = _FakeTransport()
    bridge, _, _ = _bridge(transport)
    bridge.connect()

    assert bridge.seek(125) is True

    message, target_origin = transport.posted[-1]
    assert message == {"event": "command", "func": "seekTo", "args": [125, True]}
    assert target_origin == "*"


def test_seek_rejects_negative_offset() -> None:
    transport = _FakeTransport()
    bridge, _, _ = _bridge(transport)
    bridge.connect()

    with pytest.raises(ValueError):
        bridge.seek(-1)


def test_disconnect_detaches_listener_and_stops_relaying() -> None:
    transport = _FakeTransport()
    bridge, times, _ = _bridge(transport)
    bridge.connect()
    listener = transport.listeners[0]

    bridge.disconnect()
    listener(YOUTUBE_ORIGIN, _info_delivery(currentTime=30))

    assert transport.listeners == []
    assert times == []
    assert bridge.seek(10) is False

from __future__ import annotations

import json
import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol, cast

LOGGER = logging.getLogger("referer.bridge")

YOUTUBE_PLAYER_ORIGINS: frozenset[str] = frozenset(
    {
        "https://www.youtube.com",
        "https://www.youtube-nocookie.com",
    }
)


class PlaybackState(StrEnum):
    UNSTARTED = "unstarted"
    ENDED = "ended"
    PLAYING = "playing"
    PAUSED = "paused"
    BUFFERING = "buffering"
    CUED = "cued"
    OTHER = "other"


_PLAYER_STATE_CODES: dict[int, PlaybackState] = {
    -1: PlaybackState.UNSTARTED,
    0: PlaybackState.ENDED,
    1: PlaybackState.PLAYING,
    2: PlaybackState.PAUSED,
    3: PlaybackState.BUFFERING,
    5: PlaybackState.CUED,
}


@dataclass(frozen=True)
class StateChanged:
    state: PlaybackState


@dataclass(frozen=True)
class TimeUpdate:
    current_time: float

    @property
    def whole_seconds(self) -> int:
        return math.floor(self.current_time)


InboundMessage = StateChanged | TimeUpdate


@dataclass(frozen=True)
class SeekCommand:
    offset_seconds: int
    resume: bool = True

    def to_wire(self) -> str:
        return json.dumps(
            {"event": "command", "func": "seekTo", "args": [self.offset_seconds, self.resume]}
        )


@dataclass(frozen=True)
class ListeningHandshake:
    channel_id: str

    def to_wire(self) -> str:
        return json.dumps({"event": "listening", "id": self.channel_id, "channel": "widget"})


MessageListener = Callable[[str, Any], None]


class MessageTransport(Protocol):
    def add_listener(self, listener: MessageListener) -> None: ...

    def remove_listener(self, listener: MessageListener) -> None: ...

    def post(self, message: str, target_origin: str) -> None: ...


def player_state_from_code(raw_code: object) -> PlaybackState:
    if isinstance(raw_code, bool) or not isinstance(raw_code, int):
        return PlaybackState.OTHER
    return _PLAYER_STATE_CODES.get(raw_code, PlaybackState.OTHER)


def decode_player_message(raw_data: Any) -> list[InboundMessage]:
    """
    Decode one embedded-player message into typed inbound envelopes.

    The player sends JSON strings; ``onStateChange`` carries the numeric state in
    ``info`` and ``infoDelivery`` carries an ``info`` object that may hold both
    ``currentTime`` and ``playerState``. Anything unrecognised decodes to ``[]``.
    """
    payload = _as_payload(raw_data)
    if payload is None:
        return []

    event = payload.get("event")
    info = payload.get("info")
    messages: list[InboundMessage] = []
    if event == "onStateChange":
        messages.append(StateChanged(state=player_state_from_code(info)))
    elif event == "infoDelivery" and isinstance(info, dict):
        info_dict = cast(dict[str, Any], info)
        if "playerState" in info_dict:
            messages.append(StateChanged(state=player_state_from_code(info_dict["playerState"])))
        current_time = _coerce_time(info_dict.get("currentTime"))
        if current_time is not None:
            messages.append(TimeUpdate(current_time=current_time))
    return messages


class PlaybackBridge:
    def __init__(
        self,
        transport: MessageTransport,
        *,
        on_time_update: Callable[[int], None],
        on_state_change: Callable[[PlaybackState], None] | None = None,
        allowed_origins: frozenset[str] = YOUTUBE_PLAYER_ORIGINS,
        target_origin: str = "*",
        channel_id: str = "referer",
    ) -> None:
        self._transport = transport
        self._on_time_update = on_time_update
        self._on_state_change = on_state_change
        self._allowed_origins = allowed_origins
        self._target_origin = target_origin
        self._channel_id = channel_id
        self._connected = False
        self._state = PlaybackState.UNSTARTED

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def state(self) -> PlaybackState:
        return self._state

    def connect(self) -> None:
        if self._connected:
            return
        self._transport.add_listener(self.handle_message)
        self._connected = True
        self._transport.post(
            ListeningHandshake(channel_id=self._channel_id).to_wire(),
            self._target_origin,
        )

    def disconnect(self) -> None:
        if not self._connected:
            return
        self._transport.remove_listener(self.handle_message)
        self._connected = False

    def handle_message(self, origin: str, raw_data: Any) -> None:
        if not self._connected:
            return
        if origin not in self._allowed_origins:
            return

        for message in decode_player_message(raw_data):
            if isinstance(message, StateChanged):
                self._state = message.state
                if self._on_state_change is not None:
                    self._on_state_change(message.state)
            else:
                self._on_time_update(message.whole_seconds)

    def seek(self, offset_seconds: int) -> bool:
        if not self._connected:
            LOGGER.debug("bridge seek dropped while disconnected offset=%s", offset_seconds)
            return False
        if offset_seconds < 0:
            raise ValueError("offset_seconds must be >= 0")
        self._transport.post(
            SeekCommand(offset_seconds=offset_seconds).to_wire(),
            self._target_origin,
        )
        return True


def _as_payload(raw_data: Any) -> dict[str, Any] | None:
    if isinstance(raw_data, str):
        try:
            parsed = json.loads(raw_data)
        except json.JSONDecodeError:
            return None
    else:
        parsed = raw_data
    if not isinstance(parsed, Mapping):
        return None
    raw_mapping = cast(Mapping[object, Any], parsed)
    return {key: value for key, value in raw_mapping.items() if isinstance(key, str)}


def _coerce_time(raw_value: object) -> float | None:
    if isinstance(raw_value, bool) or not isinstance(raw_value, int | float):
        return None
    value = float(raw_value)
    if math.isnan(value) or math.isinf(value) or value < 0:
        return None
    return value

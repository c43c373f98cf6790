from __future__ import annotations

import math
import re

_BARE_SECONDS_PATTERN = re.compile(r"\d+")
# Leading component is unbounded so every formatted offset parses back.
_CLOCK_PATTERN = re.compile(r"(\d+):(\d{2})(?::(\d{2}))?")
_EDITOR_CLOCK_PATTERN = re.compile(r"\d{1,2}:\d{2}(?::\d{2})?")


class MalformedTimestampError(ValueError):
    def __init__(self, raw_value: str, reason: str) -> None:
        super().__init__(f"Malformed timestamp {raw_value!r}: {reason}")
        self.raw_value = raw_value
        self.reason = reason


def parse_timestamp(text: str) -> int:
    """
    Parse a human timestamp into whole seconds.

    Accepts bare seconds (``"135"``), ``MM:SS`` (``"2:15"``) and ``H:MM:SS``
    (``"1:02:15"``). Minute and second components must be two digits below 60.
    Anything else raises `MalformedTimestampError` instead of collapsing to 0.
    """
    trimmed = text.strip()
    if _BARE_SECONDS_PATTERN.fullmatch(trimmed):
        return int(trimmed)

    match = _CLOCK_PATTERN.fullmatch(trimmed)
    if match is None:
        raise MalformedTimestampError(text, "expected seconds, MM:SS or H:MM:SS")

    leading, middle, trailing = match.groups()
    if trailing is None:
        minutes, seconds = int(leading), int(middle)
        if seconds >= 60:
            raise MalformedTimestampError(text, "seconds must be below 60")
        return minutes * 60 + seconds

    hours, minutes, seconds = int(leading), int(middle), int(trailing)
    if minutes >= 60 or seconds >= 60:
        raise MalformedTimestampError(text, "minutes and seconds must be below 60")
    return hours * 3600 + minutes * 60 + seconds


def format_timestamp(seconds: float) -> str:
    if seconds < 0:
        raise ValueError("seconds must be >= 0")
    total = math.floor(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def is_valid_timestamp(text: str) -> bool:
    trimmed = text.strip()
    if _BARE_SECONDS_PATTERN.fullmatch(trimmed):
        return True
    if not _EDITOR_CLOCK_PATTERN.fullmatch(trimmed):
        return False
    parts = [int(part) for part in trimmed.split(":")]
    return all(part < 60 for part in parts[1:])

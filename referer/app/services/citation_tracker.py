from __future__ import annotations

import logging
import math
from bisect import bisect_right
from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

LOGGER = logging.getLogger("referer.tracker")


class TimedCitation(Protocol):
    @property
    def timestamp_seconds(self) -> int: ...


class OrderableCitation(TimedCitation, Protocol):
    @property
    def created_at(self) -> str: ...


CitationT = TypeVar("CitationT", bound=OrderableCitation)
ActiveIndexListener = Callable[[int | None], None]


def order_citations(citations: Sequence[CitationT]) -> list[CitationT]:
    """Sort ascending by offset; equal offsets keep creation order (stable sort)."""
    return sorted(citations, key=lambda citation: (citation.timestamp_seconds, citation.created_at))


def active_index(citations: Sequence[TimedCitation], current_time: float) -> int | None:
    """
    Index of the citation whose half-open interval ``[offset_i, offset_i+1)``
    contains ``current_time``; the last interval is open-ended.

    With duplicate offsets the last citation of the run is active, which is what a
    linear "next offset is strictly greater" scan yields as well.
    """
    return _locate([citation.timestamp_seconds for citation in citations], current_time)


def _locate(offsets: Sequence[int], current_time: float) -> int | None:
    position = bisect_right(offsets, current_time)
    if position == 0:
        return None
    return position - 1


class CitationTracker:
    def __init__(
        self,
        citations: Sequence[TimedCitation],
        *,
        on_change: ActiveIndexListener | None = None,
    ) -> None:
        offsets = [citation.timestamp_seconds for citation in citations]
        if any(later < earlier for earlier, later in zip(offsets, offsets[1:], strict=False)):
            raise ValueError("citations must be sorted ascending by timestamp_seconds")
        self._citations = list(citations)
        self._offsets = offsets
        self._on_change = on_change
        self._active_index: int | None = None
        self._current_time: int | None = None

    @property
    def citations(self) -> list[TimedCitation]:
        return list(self._citations)

    @property
    def active_index(self) -> int | None:
        return self._active_index

    @property
    def current_time(self) -> int | None:
        return self._current_time

    def update(self, current_time: float) -> int | None:
        if math.isnan(current_time) or current_time < 0:
            LOGGER.debug("tracker ignored invalid playback time value=%s", current_time)
            return self._active_index

        self._current_time = math.floor(current_time)
        next_index = _locate(self._offsets, self._current_time)
        if next_index != self._active_index:
            self._active_index = next_index
            if self._on_change is not None:
                self._on_change(next_index)
        return self._active_index

    def reset(self) -> None:
        self._current_time = None
        if self._active_index is not None:
            self._active_index = None
            if self._on_change is not None:
                self._on_change(None)

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Generic, TypeVar

LOGGER = logging.getLogger("referer.overlay.watcher")

DEFAULT_INTERVAL_SECONDS = 0.5
DEFAULT_MAX_ATTEMPTS = 40

PlayerT = TypeVar("PlayerT")


class PlayerWatcher(Generic[PlayerT]):
    """
    Polls for a late-mounting player at a fixed delay.

    Stops on the first hit, after `max_attempts` misses, or when `stop()` is
    called, so no polling outlives the page session that started it.
    """

    def __init__(
        self,
        locate: Callable[[], PlayerT | None],
        *,
        on_found: Callable[[PlayerT], None],
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._locate = locate
        self._on_found = on_found
        self._interval_seconds = interval_seconds
        self._max_attempts = max_attempts
        self._task: asyncio.Task[PlayerT | None] | None = None
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[PlayerT | None]:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def run(self) -> PlayerT | None:
        for attempt in range(1, self._max_attempts + 1):
            self._attempts = attempt
            player = self._locate()
            if player is not None:
                self._on_found(player)
                return player
            if attempt < self._max_attempts:
                await asyncio.sleep(self._interval_seconds)
        LOGGER.info("player not found attempts=%s", self._max_attempts)
        return None

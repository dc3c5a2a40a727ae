from __future__ import annotations

import asyncio
from typing import Callable, Hashable

DEFAULT_DELAY_SECONDS = 0.4


class Debouncer:
    """Coalesce bursts of calls per key into one call after a quiet period.

    Each ``schedule`` resets the key's timer; when it finally fires, the
    callback receives the arguments of the last ``schedule`` for that key.
    Must be used from inside a running event loop.
    """

    def __init__(
        self,
        callback: Callable[..., None],
        delay: float = DEFAULT_DELAY_SECONDS,
    ) -> None:
        self._callback = callback
        self._delay = delay
        self._pending: dict[Hashable, asyncio.TimerHandle] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def schedule(self, key: Hashable, *args: object) -> None:
        loop = asyncio.get_running_loop()
        self.cancel(key)
        self._pending[key] = loop.call_later(self._delay, self._fire, key, args)

    def cancel(self, key: Hashable) -> bool:
        handle = self._pending.pop(key, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending(self) -> set[Hashable]:
        return set(self._pending)

    def _fire(self, key: Hashable, args: tuple[object, ...]) -> None:
        self._pending.pop(key, None)
        self._callback(*args)

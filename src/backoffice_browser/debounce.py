from __future__ import annotations

import asyncio
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class DebouncedInput(Generic[T]):
    """Last-value-wins buffer for free-text input.

    ``observe`` restarts the quiet window; when it elapses without another
    ``observe`` the latest value is committed. Intermediate values are
    dropped, the final one never is.
    """

    def __init__(
        self,
        on_commit: Callable[[T], None],
        delay_seconds: float = 0.5,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self.delay_seconds = max(0.0, delay_seconds)
        self._on_commit = on_commit
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._pending: T | None = None
        self._has_pending = False

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def observe(self, value: T) -> None:
        self._pending = value
        self._has_pending = True
        if self._handle is not None:
            self._handle.cancel()
        if self.delay_seconds == 0:
            self._handle = None
            self._commit()
            return
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._commit)

    def flush(self) -> bool:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if not self._has_pending:
            return False
        self._commit()
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending = None
        self._has_pending = False

    def _commit(self) -> None:
        self._handle = None
        if not self._has_pending:
            return
        value = self._pending
        self._pending = None
        self._has_pending = False
        self._on_commit(value)  # type: ignore[arg-type]

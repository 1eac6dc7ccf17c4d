"""
Debouncer on the running asyncio loop.

A value is emitted once nothing new was submitted for `quiet_period` seconds.
Intermediate values are dropped, never queued.
"""

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Debouncer(Generic[T]):
    def __init__(self, quiet_period: float, callback: Callable[[T], None], name: str = "debounce"):
        self.quiet_period = max(0.0, quiet_period)
        self._callback = callback
        self._name = name
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending: Optional[T] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def submit(self, value: T) -> None:
        """Replace any pending emission with `value`. Needs a running loop."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._pending = value
        self._handle = loop.call_later(self.quiet_period, self._fire)

    def cancel(self) -> None:
        """Teardown: drop the pending emission without firing it."""
        if self._handle is not None:
            self._handle.cancel()
            logger.debug("%s: pending emission cancelled", self._name)
        self._handle = None
        self._pending = None

    def _fire(self) -> None:
        value = self._pending
        self._handle = None
        self._pending = None
        self._callback(value)

"""Debounce utility: collapse bursts of events into one call after a quiet window."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Calls ``callback`` once, ``delay`` seconds after the last trigger().

    Each trigger() resets the timer. Must be used from within a running
    asyncio event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Whether a call is scheduled."""
        return self._handle is not None

    def trigger(self) -> None:
        """Restart the quiet window."""
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Drop the scheduled call, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()

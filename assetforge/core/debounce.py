"""
Trailing-edge debouncing on the asyncio event loop.

N triggers arriving within the window collapse into exactly one call,
made ``window`` seconds after the last trigger.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable


class Debouncer:
    """
    Coalesce bursts of triggers into a single callback invocation.

    Each trigger cancels the pending timer and arms a new one. Outside a
    running event loop there is nothing to wait on, so the callback runs
    immediately.
    """

    def __init__(self, callback: Callable[[], Any], window: float):
        """
        Initialize debouncer.

        Args:
            callback: Zero-argument callable to run once things go quiet.
            window: Quiet period in seconds.
        """
        self.callback = callback
        self.window = window
        self.trigger_count = 0
        self.fire_count = 0
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Whether a call is armed and has not run yet."""
        return self._handle is not None

    def trigger(self) -> None:
        """Arm (or re-arm) the timer."""
        self.trigger_count += 1
        self.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._fire()
            return

        self._handle = loop.call_later(self.window, self._fire)

    def cancel(self) -> bool:
        """
        Drop the pending call, if any.

        Returns:
            True if a pending call was cancelled.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def flush(self) -> bool:
        """
        Run the pending call now instead of waiting for the window.

        Returns:
            True if a pending call was run.
        """
        if not self.cancel():
            return False
        self._fire()
        return True

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        self.callback()

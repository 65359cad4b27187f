"""Cancellable single-shot debounce timer on top of asyncio."""

import asyncio
from typing import Any, Callable, Optional


class DebouncedTask:
    """Run a callback once a quiet window has elapsed since the last trigger.

    A new trigger cancels the pending window and restarts it with the new
    arguments, so at most one callback is ever pending.
    """

    def __init__(self, delay_seconds: float, callback: Callable[..., None]) -> None:
        """
        Initialize debounced task.

        Args:
            delay_seconds: Quiet window length
            callback: Synchronous callable invoked with the last trigger's arguments
        """
        self._delay = max(0.0, delay_seconds)
        self._callback = callback
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """True while a window is running."""
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task]:
        """Task backing the current window, if any."""
        return self._task

    def trigger(self, *args: Any) -> None:
        """
        Start (or restart) the quiet window.

        Must be called from a running event loop.

        Args:
            *args: Arguments passed to the callback when the window elapses
        """
        self.cancel()
        self._task = asyncio.create_task(self._run(args))

    def cancel(self) -> None:
        """Drop the pending window without running the callback."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, args: tuple[Any, ...]) -> None:
        await asyncio.sleep(self._delay)
        self._callback(*args)

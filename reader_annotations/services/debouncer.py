"""
Debounced event helper.

Selection-change events fire continuously while the reader drags. A Debouncer
accumulates them and runs its callback once, with the last arguments, after a
quiet period with no further events.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Debouncer:
    """Single-shot, resettable, cancellable timer bound to one callback"""

    def __init__(self, delay: float, callback: Callable[..., Any]):
        """
        Args:
            delay (float): Quiet period in seconds
            callback: Sync or async callable run after the quiet period
        """
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task | None = None
        self._pending_args: tuple | None = None

    @property
    def pending(self) -> bool:
        return self._pending_args is not None

    def trigger(self, *args: Any) -> None:
        """Record an event; restarts the quiet period."""
        self._cancel_task()
        self._pending_args = args
        self._task = asyncio.get_running_loop().create_task(self._fire_later())

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        if self.pending:
            logger.debug("Debounced call cancelled")
        self._cancel_task()
        self._pending_args = None

    async def flush(self) -> None:
        """Run the pending call now instead of waiting for the quiet period."""
        self._cancel_task()
        await self._run()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _fire_later(self) -> None:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            return
        self._task = None
        await self._run()

    async def _run(self) -> None:
        if self._pending_args is None:
            return
        args, self._pending_args = self._pending_args, None
        result = self._callback(*args)
        if inspect.isawaitable(result):
            await result

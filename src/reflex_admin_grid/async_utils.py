"""Debouncing and latest-request-wins sequencing for async fetches."""

import asyncio
import inspect
from collections.abc import Callable
from typing import Any


class Debouncer:
    """Run *callback* only after *delay* seconds without a new :meth:`trigger`.

    Every trigger cancels the pending one, so only the last value typed
    within the settle window fires.  After :meth:`close` triggers are
    ignored, which keeps callbacks from firing against torn-down views.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]) -> None:
        self.delay = delay
        self.callback = callback
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, *args: Any) -> None:
        if self._closed:
            return
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(args))

    async def _run(self, args: tuple[Any, ...]) -> Any:
        await asyncio.sleep(self.delay)
        result = self.callback(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def close(self) -> None:
        self._closed = True
        self.cancel()

    async def wait(self) -> Any:
        """Wait for the currently scheduled call (if any) and return its result.

        Returns ``None`` when nothing is scheduled or the call was superseded.
        """
        task = self._task
        if task is None:
            return None
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()


class RequestSequencer:
    """Tag requests so that only the most recent one may apply its response.

    Usage::

        token = sequencer.next()
        response = await fetch()
        if not sequencer.is_current(token):
            return  # a newer request was issued meanwhile
    """

    def __init__(self) -> None:
        self._latest = 0

    def next(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest

    def invalidate(self) -> None:
        """Make every outstanding token stale (used on teardown)."""
        self._latest += 1

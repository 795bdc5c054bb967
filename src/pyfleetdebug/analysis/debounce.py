"""Debounced recomputation on an asyncio event loop.

A time slider fires a detector request on every tick.  :class:`Debouncer`
holds each request for a quiet period; a request arriving before the
period elapses restarts it, and the single computation that finally runs
resolves every pending caller.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclasses.dataclass
class _Waiter(Generic[T]):
    future: asyncio.Future[T]
    callback: Callable[[T], Any] | None = None


class Debouncer(Generic[T]):
    """Coalesce calls to *func* arriving within ``wait_seconds`` of each other.

    The arguments of the most recent :meth:`schedule` call win.

    Usage::

        debouncer = Debouncer(engine.get_high_velocity_jumps, 0.25)
        result = await debouncer.schedule(min_date, max_date)
    """

    def __init__(
        self,
        func: Callable[..., T],
        wait_seconds: float,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._func = func
        self._wait_seconds = wait_seconds
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}
        self._waiters: list[_Waiter[T]] = []
        self.run_count = 0

    @property
    def pending(self) -> int:
        """Number of callers waiting for the next computation."""
        return len(self._waiters)

    def schedule(self, *args: Any, callback: Callable[[T], Any] | None = None, **kwargs: Any) -> asyncio.Future[T]:
        """Request a computation; returns a future resolved with its result.

        *callback*, when given, is invoked with the result on the loop once
        the computation runs.
        """
        loop = self._loop or asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()
        self._waiters.append(_Waiter(future=future, callback=callback))
        self._args = args
        self._kwargs = kwargs
        if self._handle is not None:
            self._handle.cancel()
            _logger.debug("Debounced request superseded (%d pending)", len(self._waiters))
        self._handle = loop.call_later(self._wait_seconds, self._fire, loop)
        return future

    def cancel(self) -> None:
        """Drop the scheduled computation and cancel every pending future."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        for waiter in self._waiters:
            if not waiter.future.done():
                waiter.future.cancel()
        self._waiters.clear()

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        waiters, self._waiters = self._waiters, []
        self.run_count += 1
        try:
            result = self._func(*self._args, **self._kwargs)
        except Exception as exc:
            for waiter in waiters:
                if not waiter.future.done():
                    waiter.future.set_exception(exc)
            return
        for waiter in waiters:
            # Caller gave up on this request.
            if waiter.future.cancelled():
                continue
            if not waiter.future.done():
                waiter.future.set_result(result)
            if waiter.callback is not None:
                loop.call_soon(waiter.callback, result)

"""Asyncio tick scheduling with start/cancel and a single-flight guard."""

from __future__ import annotations

import asyncio
import contextlib
import inspect
from typing import Awaitable, Callable, Optional

Callback = Callable[[], Awaitable[None] | None]


class TickScheduler:
    """Run ``callback`` every ``interval_seconds`` until cancelled.

    Each run is awaited before the next delay starts, so runs never overlap.
    ``run_once`` refuses to start while a run is in flight. ``cancel`` lets an
    in-flight run finish and only interrupts the wait between runs.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callback,
        audit_log: Optional[object] = None,
        monitor: Optional[object] = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self._audit_log = audit_log
        self._monitor = monitor
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._in_flight = False
        self.runs = 0

    def _log(self, event: str, payload: dict) -> None:
        if self._audit_log is None:
            return
        self._audit_log.log(event, payload)

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        if self.active:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._stop_event), name=f"tick:{self.name}")

    async def cancel(self) -> None:
        task = self._task
        if task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        if task is asyncio.current_task():
            return
        if not self._in_flight:
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._task = None

    async def run_once(self) -> bool:
        if self._in_flight:
            return False
        self._in_flight = True
        try:
            result = self.callback()
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            self._log("scheduler_error", {"scheduler": self.name, "error": str(exc)})
            if self._monitor is not None:
                self._monitor.scheduler_error(self.name, str(exc))
        finally:
            self._in_flight = False
            self.runs += 1
        return True

    async def _run(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        while not stop_event.is_set():
            start = loop.time()
            await self.run_once()
            elapsed = loop.time() - start
            delay = max(0.0, self.interval_seconds - elapsed)
            if delay:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass

"""Periodic "now" for the calendar (today highlight, current-time line)."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, tzinfo
from typing import Callable

logger = logging.getLogger(__name__)


class ClockTicker:
    """Calls ``on_tick`` with a fresh ``datetime`` every ``interval_seconds``.

    Runs as an asyncio task on the current loop; ``stop`` cancels it. A failing
    callback is logged and the ticker carries on.
    """

    def __init__(
        self,
        on_tick: Callable[[datetime], None],
        interval_seconds: float,
        tz: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._on_tick = on_tick
        self._interval = interval_seconds
        self._clock = clock or (lambda: datetime.now(tz))
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    async def _run(self) -> None:
        while True:
            try:
                self._on_tick(self._clock())
            except Exception:
                logger.exception("Clock tick callback failed")
            await asyncio.sleep(self._interval)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

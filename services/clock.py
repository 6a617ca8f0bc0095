"""Минутные часы для экранов, зависящих от текущего времени"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, List

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from config import CLOCK_TICK_SECONDS
from utils.helpers import now_local

TickListener = Callable[[datetime], Awaitable[None]]


class MinuteClock:
    """Одна interval-задача scheduler, обновляющая текущее время"""

    JOB_ID = "clock_tick"

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        clock: Callable[[], datetime] = now_local,
        interval_seconds: int = CLOCK_TICK_SECONDS,
    ):
        self.scheduler = scheduler
        self.clock = clock
        self.interval_seconds = interval_seconds
        self.current = clock()
        self._listeners: List[TickListener] = []

    def subscribe(self, listener: TickListener):
        self._listeners.append(listener)

    def now(self) -> datetime:
        return self.current

    def start(self):
        self.scheduler.add_job(
            self.tick,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            replace_existing=True,
        )
        logging.info(f"Clock started ({self.interval_seconds}s)")

    def stop(self):
        if self.scheduler.get_job(self.JOB_ID):
            self.scheduler.remove_job(self.JOB_ID)
            logging.info("Clock stopped")

    async def tick(self):
        self.current = self.clock()
        for listener in self._listeners:
            try:
                await listener(self.current)
            except Exception as e:
                logging.error(f"Clock listener failed: {e}")

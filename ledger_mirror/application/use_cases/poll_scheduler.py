from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from ledger_mirror.application.dto.sync import TickResult
from ledger_mirror.domain.exceptions import StoreUnavailableError


logger = logging.getLogger(__name__)

TickFn = Callable[[Callable[[], bool]], Awaitable[TickResult]]
Sleeper = Callable[[float, asyncio.Event], Awaitable[None]]


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SLEEPING = "sleeping"
    SHUTTING_DOWN = "shutting_down"


def backoff_delay(consecutive_failures: int, *, base_delay: float, max_delay: float) -> float:
    if consecutive_failures <= 0:
        return base_delay
    return min(max_delay, base_delay * 2 ** (consecutive_failures - 1))


async def interruptible_sleep(delay: float, stop: asyncio.Event) -> None:
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except asyncio.TimeoutError:
        pass


class PollScheduler:
    def __init__(
        self,
        *,
        run_tick: TickFn,
        base_delay: float = 60.0,
        max_delay: float = 300.0,
        sleeper: Sleeper = interruptible_sleep,
        before_tick: Callable[[], Awaitable[None]] | None = None,
    ):
        self._run_tick = run_tick
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleeper = sleeper
        self._before_tick = before_tick
        self._stop = asyncio.Event()
        self._state = SchedulerState.IDLE
        self._consecutive_failures = 0
        self._ticks = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def ticks(self) -> int:
        return self._ticks

    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def request_shutdown(self) -> None:
        if not self._stop.is_set():
            logger.info("poll_scheduler: shutdown_requested state=%s", self._state.value)
        self._stop.set()

    def next_delay(self) -> float:
        return backoff_delay(
            self._consecutive_failures,
            base_delay=self._base_delay,
            max_delay=self._max_delay,
        )

    async def run_forever(self) -> None:
        try:
            while not self._stop.is_set():
                self._state = SchedulerState.RUNNING
                succeeded = await self._tick()
                if succeeded:
                    self._consecutive_failures = 0
                else:
                    self._consecutive_failures += 1

                if self._stop.is_set():
                    break

                delay = self.next_delay()
                self._state = SchedulerState.SLEEPING
                logger.info(
                    "poll_scheduler: sleeping delay_secs=%s consecutive_failures=%s",
                    delay,
                    self._consecutive_failures,
                )
                await self._sleeper(delay, self._stop)
        finally:
            self._state = SchedulerState.SHUTTING_DOWN
            logger.info("poll_scheduler: stopped ticks=%s", self._ticks)

    async def _tick(self) -> bool:
        self._ticks += 1
        if self._before_tick is not None:
            await self._before_tick()
        try:
            result = await self._run_tick(self.stop_requested)
        except StoreUnavailableError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("poll_scheduler: tick_error tick=%s error=%s", self._ticks, exc, exc_info=exc)
            return False

        if result.interrupted:
            logger.info("poll_scheduler: tick_interrupted tick=%s", self._ticks)
            return not result.failures
        if result.failures:
            logger.warning(
                "poll_scheduler: tick_failed tick=%s failed=%s",
                self._ticks,
                ",".join(sorted(result.failures)),
            )
            return False
        logger.info("poll_scheduler: tick_ok tick=%s", self._ticks)
        return True

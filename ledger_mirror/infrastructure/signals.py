from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable


logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


class ShutdownSignals:
    """SIGINT/SIGTERM on the running loop: first signal asks for a graceful stop, second exits 130."""

    def __init__(self, on_shutdown: Callable[[], None]):
        self._on_shutdown = on_shutdown
        self._received = 0
        self._loop: asyncio.AbstractEventLoop | None = None
        self._signals = (signal.SIGINT, signal.SIGTERM)

    @property
    def received(self) -> int:
        return self._received

    def register(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        for signum in self._signals:
            loop.add_signal_handler(signum, self.handle, signum)

    def unregister(self) -> None:
        if self._loop is None:
            return
        for signum in self._signals:
            self._loop.remove_signal_handler(signum)
        self._loop = None

    def handle(self, signum: int) -> None:
        self._received += 1
        name = signal.Signals(signum).name
        if self._received > 1:
            logger.warning("signals: forced_exit signal=%s", name)
            raise SystemExit(EXIT_INTERRUPTED)
        logger.info("signals: shutdown_requested signal=%s", name)
        self._on_shutdown()

"""Threading-based scheduler backend.

::

    start()
       └── daemon thread
              while not stop_event.wait(interval):
                  tick_count += 1
                  asyncio.run(tick_callback())
    stop()
       └── stop_event.set(); thread.join(timeout=5.0)
"""

from __future__ import annotations

import asyncio
import threading
from datetime import UTC, datetime
from typing import Any

from cuyfarm.core.logging import get_logger
from cuyfarm.scheduling.protocol import BackendHealth, TickCallback

logger = get_logger(__name__)


class ThreadSchedulerBackend:
    """Daemon-thread backend for single-instance deployments.

    Example:
        >>> backend = ThreadSchedulerBackend()
        >>> async def my_tick():
        ...     print("Tick!")
        >>> backend.start(my_tick, interval_seconds=5.0)
        >>> backend.stop()
    """

    name = "thread"

    def __init__(self) -> None:
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._tick_count = 0
        self._last_tick: datetime | None = None
        self._interval: float = 60.0
        self._started = False
        self._lock = threading.Lock()

    def start(self, tick_callback: TickCallback, interval_seconds: float = 60.0) -> None:
        if self._started:
            logger.warning("scheduler_backend_already_started", backend=self.name)
            return

        self._interval = interval_seconds
        self._stop_event.clear()

        def _loop() -> None:
            logger.info("scheduler_backend_started", backend=self.name, interval_seconds=interval_seconds)
            while not self._stop_event.wait(interval_seconds):
                with self._lock:
                    self._tick_count += 1
                    self._last_tick = datetime.now(UTC)

                try:
                    asyncio.run(tick_callback())
                except Exception as e:
                    logger.exception("scheduler_tick_failed", error=str(e))

            logger.info("scheduler_backend_stopped", backend=self.name)

        self._thread = threading.Thread(target=_loop, daemon=True, name="cuyfarm-scheduler")
        self._thread.start()
        self._started = True

    def stop(self) -> None:
        """Stop the loop; waits up to 5 seconds for the current tick."""
        if not self._started:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
            if self._thread.is_alive():
                logger.warning("scheduler_thread_not_stopped")

        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started and self._thread is not None and self._thread.is_alive()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def health(self) -> dict[str, Any]:
        return self.get_health().to_dict()

    def get_health(self) -> BackendHealth:
        return BackendHealth(
            healthy=self.is_running,
            backend=self.name,
            tick_count=self._tick_count,
            last_tick=self._last_tick,
            extra={"interval_seconds": self._interval},
        )

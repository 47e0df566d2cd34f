import logging
import threading
import time
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)


class BackgroundRefresher:
    """Runs ``refresh`` once up front, then every ``interval`` seconds.

    Ticks are scheduled from when the first one started, not from when
    the previous one finished, so a slow refresh doesn't push the cadence
    back. Slots missed by an overrunning tick are skipped. A failing tick
    is logged and the next one still fires on schedule.

    ``wait(seconds)`` returns True when the loop should stop; it defaults
    to the stop event's ``wait``. Tests swap ``wait`` and ``clock`` for
    simulated time.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        refresh: Callable[[], Any],
        wait: Optional[Callable[[float], bool]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.interval = interval
        self._refresh = refresh
        self._stop = threading.Event()
        self._wait = wait or self._stop.wait
        self._clock = clock
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> bool:
        try:
            self._refresh()
        except Exception as exc:
            log.error("%s refresh failed: %s", self.name, exc)
            return False
        return True

    def run_loop(self, started_at: Optional[float] = None) -> None:
        next_at = (self._clock() if started_at is None else started_at) + self.interval
        while not self._wait(max(0.0, next_at - self._clock())):
            if self._stop.is_set():
                break
            self.tick()
            now = self._clock()
            next_at += self.interval
            while next_at <= now:
                next_at += self.interval

    def _run(self, initial: bool, started_at: float) -> None:
        if initial:
            self.tick()
        self.run_loop(started_at)

    def start(self, prewarm: bool = True) -> None:
        if self._thread is not None:
            raise RuntimeError(f"{self.name} refresher already started")
        started_at = self._clock()
        if prewarm:
            log.info("Pre-warming %s cache", self.name)
            if self.tick():
                log.info("%s cache pre-warmed", self.name)
        self._thread = threading.Thread(
            target=self._run,
            args=(not prewarm, started_at),
            name=f"refresh-{self.name.lower()}",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

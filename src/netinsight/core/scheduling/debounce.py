"""Clock and scheduler seams plus a debounced single-flight writer.

Stateful components never call ``time.time()`` or start timers directly;
they receive a clock callable and a :class:`Scheduler` so tests can drive
time by hand.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def system_now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay; the returned handle cancels it."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable: ...


class TimerScheduler:
    """Scheduler backed by daemon ``threading.Timer`` instances."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.name = "netinsight-debounce"
        timer.start()
        return timer


class DebouncedWriter:
    """Coalesces bursts of ``schedule()`` calls into one ``write_fn`` call.

    Every ``schedule()`` cancels the pending timer (if any) and starts a new
    one, so only the last request inside the delay window actually writes.
    ``flush()`` runs a pending write immediately; ``close()`` flushes and
    refuses further scheduling.

    Usage::

        writer = DebouncedWriter(store.persist, delay_s=1.0)
        writer.schedule()
        ...
        writer.close()  # final flush on shutdown
    """

    def __init__(
        self,
        write_fn: Callable[[], None],
        *,
        delay_s: float = 1.0,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._write_fn = write_fn
        self._delay_s = delay_s
        self._scheduler = scheduler or TimerScheduler()
        self._lock = threading.Lock()
        self._handle: Cancellable | None = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        """Whether a write is scheduled but has not run yet."""
        with self._lock:
            return self._handle is not None

    def schedule(self) -> None:
        """(Re)start the delay timer for a write."""
        with self._lock:
            if self._closed:
                logger.debug("Writer closed; ignoring schedule request")
                return
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            self._handle = self._scheduler.call_later(
                self._delay_s, lambda: self._fire(generation)
            )

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A newer schedule() superseded this timer after it started firing.
            if generation != self._generation or self._handle is None:
                return
            self._handle = None
        self._write_fn()

    def cancel(self) -> None:
        """Drop any pending write without running it."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
                self._handle = None

    def flush(self) -> None:
        """Run the pending write now, if one is scheduled."""
        with self._lock:
            if self._handle is None:
                return
            self._handle.cancel()
            self._handle = None
        self._write_fn()

    def close(self) -> None:
        """Flush any pending write and stop accepting new ones."""
        self.flush()
        with self._lock:
            self._closed = True

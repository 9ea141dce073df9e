"""Debounce timers.

A :class:`DebounceTimer` runs its callback once, ``delay`` seconds after
the *last* call to :meth:`DebounceTimer.arm`.  Re-arming before the delay
elapses restarts the countdown, so a burst of mutations collapses into a
single callback.

The underlying timer comes from ``timer_factory`` (``threading.Timer`` by
default); anything with ``start()``, ``cancel()`` and a ``daemon``
attribute built as ``factory(delay, fn)`` works, which keeps tests free of
real sleeps.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

TimerFactory = Callable[[float, Callable[[], None]], Any]


class DebounceTimer:
    def __init__(
        self,
        delay: float,
        callback: Callable[[], None],
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer: Any = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        with self._lock:
            return self._timer is not None

    def arm(self) -> None:
        """Start the countdown, discarding any countdown already running."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay, lambda: self.fire(generation))
            timer.daemon = True
            self._timer = timer
        timer.start()

    reset = arm

    def fire(self, generation: int | None = None) -> None:
        """Run the callback now; stale countdowns are ignored."""
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            self._timer = None
        self.callback()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1


class DebounceScheduler:
    """One :class:`DebounceTimer` per key (zone id)."""

    def __init__(self, delay: float, timer_factory: TimerFactory = threading.Timer) -> None:
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timers: dict[str, DebounceTimer] = {}

    def arm(self, key: str, callback: Callable[[], None]) -> DebounceTimer:
        with self._lock:
            timer = self._timers.get(key)
            if timer is None:
                timer = self._timers[key] = DebounceTimer(
                    self.delay, callback, self._timer_factory
                )
        timer.arm()
        return timer

    def cancel(self, key: str) -> None:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def pending(self) -> list[str]:
        with self._lock:
            return [key for key, timer in self._timers.items() if timer.armed]

    def shutdown(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

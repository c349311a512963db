"""Timer scheduling and trailing-edge debouncing on the host's thread."""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Any, Callable, Protocol

_LOGGER = logging.getLogger("gridexplorer.scheduler")


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> TimerHandle: ...


class _Timer:
    def __init__(self, due: float, callback: Callable[[], Any]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _TimerQueue:
    """Due-ordered timers; callbacks only run inside :meth:`_run_until`."""

    def __init__(self) -> None:
        self._queue: list[tuple[float, int, _Timer]] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _push(self, due: float, callback: Callable[[], Any]) -> TimerHandle:
        timer = _Timer(due, callback)
        heapq.heappush(self._queue, (due, next(self._seq), timer))
        return timer

    def _next_due(self) -> float | None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
        return self._queue[0][0] if self._queue else None

    def _on_due(self, due: float) -> None:
        pass

    def _run_until(self, target: float) -> int:
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, timer = heapq.heappop(self._queue)
            self._on_due(due)
            if timer.cancelled:
                continue
            timer.callback()
            fired += 1
        return fired


class LoopScheduler(_TimerQueue):
    """Wall-clock timers drained by the host's event loop.

    Nothing fires on its own: the host calls :meth:`run_due` from its loop,
    so every callback runs on the host's thread. :meth:`next_delay` tells the
    loop how long it may sleep.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        super().__init__()
        self._clock = clock

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> TimerHandle:
        return self._push(self._clock() + max(delay_s, 0.0), callback)

    def next_delay(self) -> float | None:
        due = self._next_due()
        if due is None:
            return None
        return max(due - self._clock(), 0.0)

    def run_due(self) -> int:
        return self._run_until(self._clock())


class ManualScheduler(_TimerQueue):
    """Virtual clock; callbacks only fire from :meth:`advance`.

    Used by headless hosts (CLI snapshots) and tests, where waiting for real
    time is pointless.
    """

    def __init__(self) -> None:
        super().__init__()
        self.now = 0.0

    def call_later(self, delay_s: float, callback: Callable[[], Any]) -> TimerHandle:
        return self._push(self.now + max(delay_s, 0.0), callback)

    def _on_due(self, due: float) -> None:
        self.now = due

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run every callback that came due."""
        target = self.now + max(seconds, 0.0)
        fired = self._run_until(target)
        self.now = target
        return fired

    def run_all(self) -> int:
        fired = 0
        due = self._next_due()
        while due is not None:
            fired += self.advance(due - self.now)
            due = self._next_due()
        return fired


class Debouncer:
    """One pending call at most; every trigger restarts the window."""

    def __init__(
        self,
        scheduler: Scheduler,
        delay_s: float,
        callback: Callable[..., Any],
    ) -> None:
        self.scheduler = scheduler
        self.delay_s = delay_s
        self.callback = callback
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any, **kwargs: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        handle_box: list[TimerHandle] = []

        def _fire() -> None:
            if not handle_box or self._handle is not handle_box[0]:
                return
            self._handle = None
            self.callback(*args, **kwargs)

        self._handle = self.scheduler.call_later(self.delay_s, _fire)
        handle_box.append(self._handle)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            _LOGGER.debug("Cancelled pending debounced call")
        self._handle = None

"""
TubeShield Scheduler — Single-threaded cooperative timers.

Everything in the agent runs on one thread: mutation batches, poll ticks,
deferred removals and debounced reflows are all callbacks queued here.
`LoopScheduler` drives them from an asyncio event loop; `ManualScheduler`
keeps a virtual clock that the host advances explicitly.
"""

import asyncio
import heapq
import itertools
import logging

log = logging.getLogger("tubeshield.scheduler")


class Handle:
    """Cancellable reference to a scheduled callback. `cancelled` also turns true once it has run."""

    def __init__(self):
        self.cancelled = False
        self._inner = None

    def cancel(self):
        if self.cancelled:
            return
        self.cancelled = True
        if self._inner is not None:
            self._inner.cancel()
            self._inner = None


def _run(callback):
    # Timer callbacks must never unwind into the host's loop
    try:
        callback()
    except Exception as e:
        log.error(f"Scheduled callback failed: {e}", exc_info=True)


class Scheduler:
    """Timer interface shared by the reactive components."""

    def now(self) -> float:
        raise NotImplementedError

    def call_later(self, delay: float, callback) -> Handle:
        raise NotImplementedError

    def call_soon(self, callback) -> Handle:
        return self.call_later(0, callback)

    def call_every(self, interval: float, callback) -> Handle:
        """Run `callback` every `interval` seconds until the handle is cancelled."""
        handle = Handle()

        def tick():
            if handle.cancelled:
                return
            _run(callback)
            if not handle.cancelled:
                handle._inner = self.call_later(interval, tick)

        handle._inner = self.call_later(interval, tick)
        return handle


class LoopScheduler(Scheduler):
    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self.loop = loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback) -> Handle:
        handle = Handle()

        def fire():
            handle._inner = None
            if handle.cancelled:
                return
            handle.cancelled = True
            _run(callback)

        handle._inner = self.loop.call_later(max(delay, 0), fire)
        return handle


class ManualScheduler(Scheduler):
    """Virtual clock. Nothing runs until `advance()` or `run_pending()` is called."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback) -> Handle:
        handle = Handle()
        heapq.heappush(self._queue, (self._now + max(delay, 0), next(self._seq), handle, callback))
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for _, _, h, _ in self._queue if not h.cancelled)

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock forward, firing every timer that falls due on the way."""
        deadline = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= deadline:
            due, _, handle, callback = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = max(self._now, due)
            handle.cancelled = True
            _run(callback)
            fired += 1
        self._now = deadline
        return fired

    def run_pending(self) -> int:
        """Fire whatever is due right now, including callbacks queued by those callbacks."""
        return self.advance(0)


class Debouncer:
    """
    Coalesces repeated triggers into one deferred call.

    Idle until `trigger()`; armed while a call is pending. Each trigger while
    armed pushes the deadline back by `delay`.
    """

    def __init__(self, scheduler: Scheduler, delay: float, callback):
        self.scheduler = scheduler
        self.delay = delay
        self.callback = callback
        self.fire_count = 0
        self._handle = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def trigger(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire)

    def _fire(self):
        self._handle = None
        self.fire_count += 1
        self.callback()

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

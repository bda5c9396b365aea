"""Periodic tick scheduling for the engine.

The engine never sleeps or spawns threads. It asks a scheduler for one
periodic callback (the gravity tick) and cancels it on pause, game over and
teardown. Hosts decide what drives the scheduler's clock.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Protocol


logger = logging.getLogger(__name__)

TickCallback = Callable[[], None]


@dataclass(eq=False)
class TickHandle:
    id: int
    interval_ms: float
    callback: TickCallback = field(repr=False)
    elapsed_ms: float = 0.0
    cancelled: bool = False


class Scheduler(Protocol):
    def schedule(self, interval_ms: float, callback: TickCallback) -> TickHandle: ...

    def cancel(self, handle: TickHandle) -> None: ...


class ManualScheduler:
    """Scheduler whose clock only moves when the host calls :meth:`advance`.

    The pygame host feeds it the frame time, tests feed it exact amounts.
    """

    def __init__(self) -> None:
        self._handles: Dict[int, TickHandle] = {}
        self._ids = itertools.count(1)
        self.now_ms = 0.0

    @property
    def active_count(self) -> int:
        return len(self._handles)

    def schedule(self, interval_ms: float, callback: TickCallback) -> TickHandle:
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms!r}")
        handle = TickHandle(next(self._ids), float(interval_ms), callback)
        self._handles[handle.id] = handle
        logger.debug("Scheduled tick #%d every %.1f ms", handle.id, handle.interval_ms)
        return handle

    def cancel(self, handle: TickHandle) -> None:
        handle.cancelled = True
        if self._handles.pop(handle.id, None) is not None:
            logger.debug("Cancelled tick #%d", handle.id)

    def advance(self, elapsed_ms: float) -> int:
        """Move the clock forward and fire due callbacks. Returns the number of calls made."""
        if elapsed_ms < 0:
            raise ValueError(f"elapsed_ms must be non-negative, got {elapsed_ms!r}")
        self.now_ms += elapsed_ms
        fired = 0
        # Handles created while firing start counting from the next advance.
        for handle in list(self._handles.values()):
            if handle.cancelled:
                continue
            handle.elapsed_ms += elapsed_ms
            while handle.elapsed_ms >= handle.interval_ms and not handle.cancelled:
                handle.elapsed_ms -= handle.interval_ms
                handle.callback()
                fired += 1
        return fired

    def cancel_all(self) -> None:
        for handle in list(self._handles.values()):
            self.cancel(handle)

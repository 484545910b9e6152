"""
Repeating timers and click listeners.

Both registries belong to one run. The runtime registers into them during
setup and tears both down on reset or stop; after teardown nothing registered
earlier can fire.

Time is driven explicitly: the frame driver calls `advance(dt)` once per tick
and every timer fires once for each whole period that has elapsed.
"""

import itertools
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from jcscript.logging import get_logger

log = get_logger('timers')

# Upper bound on fires of a single timer within one advance() call
MAX_FIRES_PER_ADVANCE = 1000

# Slack for accumulated float error when comparing elapsed time to a period
_EPSILON = 1e-9

_handle_ids = itertools.count(1)


@dataclass
class RepeatingTimer:
    """A callback invoked every `period` seconds."""
    period: float
    callback: Callable[[], None]
    handle: int = field(default_factory=lambda: next(_handle_ids))
    elapsed: float = 0.0
    fire_count: int = 0


class TimerRegistry:
    """Owns the repeating timers of one run."""

    def __init__(self):
        self._timers: Dict[int, RepeatingTimer] = {}

    def every(self, period: float, callback: Callable[[], None]) -> int:
        """Register a repeating timer.

        Returns:
            Handle for cancel()

        Raises:
            ValueError: if period is not positive
        """
        if period <= 0:
            raise ValueError(f"Timer period must be positive, got {period}")
        timer = RepeatingTimer(period=float(period), callback=callback)
        self._timers[timer.handle] = timer
        log.debug("Timer %d registered every %.3fs", timer.handle, timer.period)
        return timer.handle

    def advance(self, dt: float) -> int:
        """Advance time by dt seconds, firing due timers.

        Returns:
            Number of callbacks fired
        """
        fired = 0
        for timer in list(self._timers.values()):
            timer.elapsed += dt
            fires = 0
            while timer.elapsed + _EPSILON >= timer.period and timer.handle in self._timers:
                timer.elapsed -= timer.period
                if fires >= MAX_FIRES_PER_ADVANCE:
                    log.warning("Timer %d fell behind; dropping %.3fs of backlog",
                                timer.handle, timer.elapsed)
                    timer.elapsed = 0.0
                    break
                fires += 1
                timer.fire_count += 1
                timer.callback()
            fired += fires
        return fired

    def cancel(self, handle: int) -> bool:
        return self._timers.pop(handle, None) is not None

    def cancel_all(self) -> None:
        if self._timers:
            log.debug("Cancelling %d timer(s)", len(self._timers))
        self._timers.clear()

    def __len__(self) -> int:
        return len(self._timers)


class ClickRegistry:
    """Owns the click listeners of one run."""

    def __init__(self):
        self._listeners: List[Callable[[float, float], None]] = []

    def listen(self, callback: Callable[[float, float], None]) -> None:
        self._listeners.append(callback)

    def dispatch(self, x: float, y: float) -> int:
        """Call every listener with the click position.

        Returns:
            Number of listeners called
        """
        listeners = list(self._listeners)
        for listener in listeners:
            listener(x, y)
        return len(listeners)

    def remove_all(self) -> None:
        if self._listeners:
            log.debug("Removing %d click listener(s)", len(self._listeners))
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

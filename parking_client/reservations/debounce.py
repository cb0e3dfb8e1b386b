from typing import Any, Callable, Optional
import logging
import threading

logger = logging.getLogger(__name__)

_UNSET = object()


class Debouncer:
    """
    Calls `action(value)` once the pushed value has settled for `delay` seconds.

    Every push cancels the pending timer and starts a new one, so a burst of pushes results in a
    single call with the last value. A settled value equal to the last applied one is dropped.

    timer_factory(delay, fn) must return an object with start() and cancel(); threading.Timer by default.
    """

    def __init__(self, action: Callable[[Any], None], delay: float = 0.3, timer_factory: Callable = None):
        self._action = action
        self._delay = delay
        self._timer_factory = timer_factory or threading.Timer
        self._timer = None
        self._pending = _UNSET
        self._last_applied = _UNSET

    def push(self, value: Any):
        if self._timer is not None:
            self._timer.cancel()
        self._pending = value
        self._timer = self._timer_factory(self._delay, self._fire)
        if isinstance(self._timer, threading.Timer):
            self._timer.daemon = True
        self._timer.start()

    def _fire(self):
        value = self._pending
        self._timer = None
        self._pending = _UNSET
        if value is _UNSET or value == self._last_applied:
            return
        self._last_applied = value
        self._action(value)

    def flush(self):
        """Apply the pending value now, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._fire()

    def cancel(self):
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending = _UNSET

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def mark_applied(self, value: Optional[Any]):
        """Record a value applied without going through the debouncer."""
        self._last_applied = value

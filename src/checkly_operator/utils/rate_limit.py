"""Client-side throttling for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])


class Throttle:
    """Enforce a minimum interval between consecutive calls.

    Calls that arrive too early sleep until the interval has elapsed. No
    call is ever retried or dropped.
    """

    def __init__(self, calls_per_second: float):
        self.min_interval = 1.0 / calls_per_second if calls_per_second > 0 else 0.0
        self._last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self) -> None:
        with self._lock:
            elapsed = time.monotonic() - self._last_call_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_call_time = time.monotonic()

    def __call__(self, func: _F) -> _F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.wait()
            return func(*args, **kwargs)

        return wrapper  # type: ignore


_k8s_throttle = Throttle(float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0")))
_checkly_throttle = Throttle(float(os.getenv("CHECKLY_RATE_LIMIT_PER_SECOND", "5.0")))


def rate_limit_k8s(func: _F) -> _F:
    """Throttle a Kubernetes API call."""
    return _k8s_throttle(func)


def rate_limit_checkly(func: _F) -> _F:
    """Throttle a Checkly API call."""
    return _checkly_throttle(func)

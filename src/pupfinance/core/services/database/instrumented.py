"""Timing instrumentation for repositories.

Wraps a repository object and logs the duration of every public method call,
so storage latency shows up next to the request that caused it.
"""

import time
from functools import wraps
from typing import Any, Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class InstrumentedRepository(Generic[T]):
    """Proxy that forwards to ``inner`` and logs ``<name>.<method>`` timings.

    Calls slower than ``slow_threshold_ms`` are logged at WARNING, the rest at
    DEBUG. Failures are logged and re-raised unchanged.
    """

    def __init__(self, inner: T, name: str | None = None, slow_threshold_ms: float = 500.0):
        self._inner = inner
        self._name = name or type(inner).__name__
        self._slow_threshold_ms = slow_threshold_ms

    @property
    def inner(self) -> T:
        return self._inner

    def __getattr__(self, attr: str) -> Any:
        target = getattr(self._inner, attr)
        if attr.startswith("_") or not callable(target):
            return target

        operation = f"{self._name}.{attr}"

        @wraps(target)
        def timed(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            try:
                result = target(*args, **kwargs)
            except Exception as exc:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.warning(
                    "{} failed after {:.1f}ms: {}",
                    operation,
                    elapsed_ms,
                    type(exc).__name__,
                )
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000
            level = "WARNING" if elapsed_ms >= self._slow_threshold_ms else "DEBUG"
            logger.log(level, "{} took {:.1f}ms", operation, elapsed_ms)
            return result

        return timed

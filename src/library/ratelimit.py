"""Fixed-interval gate for requests against the image delivery network."""

import logging
import time
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

# Minimum spacing between page-image requests
PAGE_INTERVAL = 0.35


class Gate(Protocol):
    """Anything the download loop can block on before a request."""

    def wait(self) -> None:
        ...


class IntervalGate:
    """Blocks so that successive wait() calls return at least ``interval`` apart."""

    def __init__(
        self,
        interval: float = PAGE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if interval < 0:
            raise ValueError(f"interval must be non-negative, got {interval}")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> None:
        """Block until the next request is allowed."""
        now = self._clock()
        if self._last is not None:
            remaining = self.interval - (now - self._last)
            if remaining > 0:
                logger.debug("Rate limit: waiting %.3f seconds", remaining)
                self._sleep(remaining)
                now = self._clock()
        self._last = now

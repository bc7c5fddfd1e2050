"""Per-caller sliding-window admission control for upstream-calling endpoints."""

import threading
import time
from collections import deque
from typing import Callable

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="rate_limiter")


class SlidingWindowRateLimiter:
    """
    Admit at most `max_calls` per identity within a trailing `window_seconds`.

    Timestamps older than the window are pruned lazily on each check. Denied
    calls are not recorded, so hammering while throttled does not extend the
    penalty.
    """

    def __init__(
        self,
        max_calls: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def _prune(self, identity: str, now: float) -> deque[float]:
        """Drop timestamps outside the window; caller must hold the lock."""
        calls = self._calls.get(identity)
        if calls is None:
            return deque()
        while calls and now - calls[0] >= self.window_seconds:
            calls.popleft()
        if not calls:
            del self._calls[identity]
            return deque()
        return calls

    def admit(self, identity: str) -> bool:
        """Record and allow the call if the identity is under capacity."""
        with self._lock:
            now = self._clock()
            calls = self._prune(identity, now)
            if len(calls) >= self.max_calls:
                logger.info("Denied call for %s (%d calls in window)", identity, len(calls))
                return False
            calls.append(now)
            self._calls[identity] = calls
            return True

    def retry_after(self, identity: str) -> float:
        """Seconds until the identity regains one slot (0 if it has one now)."""
        with self._lock:
            now = self._clock()
            calls = self._prune(identity, now)
            if len(calls) < self.max_calls:
                return 0.0
            return max(0.0, calls[0] + self.window_seconds - now)

    def active_identities(self) -> int:
        """Number of identities holding at least one in-window timestamp."""
        with self._lock:
            now = self._clock()
            for identity in list(self._calls):
                self._prune(identity, now)
            return len(self._calls)

    def reset(self) -> None:
        """Forget all recorded calls."""
        with self._lock:
            self._calls.clear()

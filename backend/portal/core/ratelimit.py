from __future__ import annotations

from collections import deque


class RateLimiter:
    """Sliding window rate limiter keyed by caller id.

    Time is passed in by the caller so the window can be driven
    deterministically; pass ``time.monotonic()`` in production.
    """

    def __init__(self, max_calls: int, window_seconds: float) -> None:
        self.max_calls = max_calls
        self.window = window_seconds
        self._calls: dict[str, deque[float]] = {}

    def is_allowed(self, key: str, now: float) -> bool:
        """Record a call for ``key`` at ``now`` if the window has room."""
        for seen in list(self._calls):
            self._cleanup(seen, now)
        calls = self._calls.setdefault(key, deque())
        if len(calls) >= self.max_calls:
            return False
        calls.append(now)
        return True

    def wait_time(self, key: str, now: float) -> float:
        self._cleanup(key, now)
        calls = self._calls.get(key)
        if not calls or len(calls) < self.max_calls:
            return 0.0
        return max(0.0, calls[0] + self.window - now)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._calls.clear()
        else:
            self._calls.pop(key, None)

    def __len__(self) -> int:
        return len(self._calls)

    def _cleanup(self, key: str, now: float) -> None:
        calls = self._calls.get(key)
        if calls is None:
            return
        # calls older than the window no longer count
        cutoff = now - self.window
        while calls and calls[0] <= cutoff:
            calls.popleft()
        if not calls:
            del self._calls[key]

"""Sliding-window request budget per target domain."""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

HOUR_SECONDS = 3600.0

# Observability windows reported with each navigation event (seconds)
COUNT_WINDOWS = (1, 5, 10, 60, 300, 3600)


@dataclass(frozen=True)
class AdmissionDecision:
    allowed: bool
    wait_seconds: float = 0.0

    @classmethod
    def allow(cls) -> "AdmissionDecision":
        return cls(allowed=True)

    @classmethod
    def wait(cls, seconds: float) -> "AdmissionDecision":
        return cls(allowed=False, wait_seconds=seconds)


class RateLimiter:
    """Admit or delay requests so each domain stays under its window caps.

    ``caps`` maps a horizon in seconds to the maximum number of admitted
    requests inside any rolling window of that length. Timestamps older
    than the largest tracked horizon are pruned on every access.
    """

    def __init__(
        self,
        caps: dict[float, int],
        clock: Callable[[], float] = time.monotonic,
        track_windows: tuple[float, ...] = COUNT_WINDOWS,
    ):
        if not caps:
            raise ValueError("At least one horizon cap is required")
        for horizon, cap in caps.items():
            if horizon <= 0 or cap <= 0:
                raise ValueError(f"Invalid cap {cap} for horizon {horizon}s")
        self.caps = dict(sorted(caps.items()))
        self.clock = clock
        self.track_windows = track_windows
        self.max_horizon = max(max(self.caps), max(track_windows, default=0))
        self._timestamps: dict[str, deque[float]] = {}
        self._last_now = float("-inf")

    @classmethod
    def hourly(cls, max_per_hour: int, clock: Callable[[], float] = time.monotonic) -> "RateLimiter":
        return cls({HOUR_SECONDS: max_per_hour}, clock=clock)

    def _now(self) -> float:
        # A clock stepping backwards must never reopen an already used slot
        now = max(self.clock(), self._last_now)
        self._last_now = now
        return now

    def _prune(self, domain: str, now: float) -> deque[float]:
        stamps = self._timestamps.setdefault(domain, deque())
        cutoff = now - self.max_horizon
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()
        return stamps

    def admit(self, domain: str) -> AdmissionDecision:
        """Record a request for ``domain`` now, or say how long to wait."""
        now = self._now()
        stamps = self._prune(domain, now)

        wait = 0.0
        for horizon, cap in self.caps.items():
            in_window = [t for t in stamps if t > now - horizon]
            if len(in_window) >= cap:
                # The slot frees when the oldest request that keeps us at cap leaves the window
                release_at = in_window[len(in_window) - cap] + horizon
                wait = max(wait, release_at - now)

        if wait > 0:
            logger.debug("Domain %s over budget, wait %.1fs", domain, wait)
            return AdmissionDecision.wait(wait)

        stamps.append(now)
        return AdmissionDecision.allow()

    def count(self, domain: str, horizon: float) -> int:
        now = self._now()
        stamps = self._prune(domain, now)
        return sum(1 for t in stamps if t > now - horizon)

    def window_counts(self, domain: str) -> dict[str, int]:
        """Admitted requests for ``domain`` per observability window."""
        return {f"{int(w)}s": self.count(domain, w) for w in self.track_windows}

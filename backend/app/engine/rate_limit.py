"""
Fixed-window rate limiting for the contact form.

Process-local: counters reset on restart and are not shared between
instances. FastAPI runs sync routes on a thread pool, so the map is
guarded by a lock.
"""
import math
import threading
import time
import zlib
from dataclasses import dataclass
from typing import Callable, Mapping

CONTACT_MAX_REQUESTS = 3
CONTACT_WINDOW_SECONDS = 60 * 60
SWEEP_THRESHOLD = 10_000


@dataclass
class RateDecision:
    allowed: bool
    reset_in_seconds: int | None = None


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    def __init__(
        self,
        max_requests: int = CONTACT_MAX_REQUESTS,
        window_seconds: int = CONTACT_WINDOW_SECONDS,
        sweep_threshold: int = SWEEP_THRESHOLD,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_threshold = sweep_threshold
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, key: str) -> RateDecision:
        """Count one request for `key` and decide whether it may proceed."""
        with self._lock:
            now = self._clock()
            if len(self._windows) > self.sweep_threshold:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateDecision(allowed=True)

            if window.count >= self.max_requests:
                return RateDecision(
                    allowed=False,
                    reset_in_seconds=max(1, math.ceil(window.reset_at - now)),
                )

            window.count += 1
            return RateDecision(allowed=True)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _sweep(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if w.reset_at <= now]
        for k in expired:
            del self._windows[k]


def client_key(headers: Mapping[str, str]) -> str:
    """
    Best-effort client identifier: first X-Forwarded-For hop, then X-Real-IP,
    then a non-cryptographic hash of the user agent and accept headers.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    raw = (headers.get("user-agent") or "") + (headers.get("accept") or "")
    return f"unknown-{zlib.crc32(raw.encode()):x}"

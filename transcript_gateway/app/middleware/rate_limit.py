"""Rate limiting for the gateway.

Requests are counted per caller key over fixed windows. A window opens on
the first request from a key and closes W seconds later; the next request
after that opens a fresh window with a count of one.

Windows are fixed, not sliding: a caller that bursts at the end of one
window and again at the start of the next can get up to 2N requests
through in a little over W seconds. That approximation is accepted.

State lives in the process only and is lost on restart.
"""

import asyncio
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response

from transcript_gateway.app.core.logging import get_log_context, get_logger
from transcript_gateway.app.exceptions import RateLimitedError

logger = get_logger(__name__)

DEFAULT_MAX_REQUESTS = 20
DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_after: float
    retry_after: Optional[int] = None


@dataclass
class RateLimitEntry:
    """Request count of one caller key in its current window."""
    key: str
    window_start: float
    count: int = 1


class FixedWindowRateLimiter:
    """In-memory fixed window rate limiter.

    Owns the table of caller keys and the background task that prunes it.
    Construct one per process and share it across requests.

    The table is guarded by a single lock, so it is safe both on the event
    loop and from worker threads.

    Usage:
        limiter = FixedWindowRateLimiter(max_requests=20, window_seconds=60)
        await limiter.start()

        if not limiter.admit(client_key):
            ...

        await limiter.stop()
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        sweep_interval: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Requests admitted per key per window
            window_seconds: Window length in seconds
            sweep_interval: Seconds between sweeps (default: the window length)
            clock: Monotonic time source, injectable for tests
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.sweep_interval = sweep_interval or window_seconds
        self._clock = clock
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def _expired(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start > self.window_seconds

    def check(self, key: str) -> RateLimitResult:
        """Count a request for key and decide whether it is admitted."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None or self._expired(entry, now):
                entry = RateLimitEntry(key=key, window_start=now)
                self._entries[key] = entry
            else:
                # Keeps counting past the limit; only the comparison matters
                entry.count += 1

            reset_after = max(0.0, entry.window_start + self.window_seconds - now)

            if entry.count > self.max_requests:
                return RateLimitResult(
                    allowed=False,
                    limit=self.max_requests,
                    remaining=0,
                    reset_after=reset_after,
                    retry_after=max(1, math.ceil(reset_after)),
                )

            return RateLimitResult(
                allowed=True,
                limit=self.max_requests,
                remaining=self.max_requests - entry.count,
                reset_after=reset_after,
            )

    def admit(self, key: str) -> bool:
        """Return True if a request from key is allowed."""
        return self.check(key).allowed

    def sweep(self) -> int:
        """Remove entries whose window has fully elapsed.

        Returns:
            Number of entries removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items()
                if self._expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Rate limit sweep removed {len(expired)} expired entries")
        return len(expired)

    @property
    def running(self) -> bool:
        return self._task is not None

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._task is not None:
            logger.debug("Rate limit sweeper already running")
            return

        # Events bind to the running loop, so one is made per start()
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_sweeps(self._stop_event))
        logger.info(f"Started rate limit sweeper (interval: {self.sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if self._task is None:
            return

        if self._stop_event is not None:
            self._stop_event.set()

        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit sweeper did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit sweeper")

    async def _run_sweeps(self, stop_event: asyncio.Event) -> None:
        """Background task that prunes the table every sweep_interval."""
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self.sweep_interval
                )
            except asyncio.TimeoutError:
                # Normal case: interval elapsed
                self.sweep()


def get_client_key(request: Request) -> str:
    """Get rate limit key for the request.

    Prefers the first address of the X-Forwarded-For chain, then the peer
    address of the connection, then the literal "unknown".
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
        if client_ip:
            return client_ip

    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def enforce_rate_limit(request: Request, response: Response) -> None:
    """Dependency rejecting callers that exceeded their window.

    Raises:
        RateLimitedError: If the caller key is over its limit
    """
    limiter = get_rate_limiter(request)
    key = get_client_key(request)
    request.state.client_key = key

    result = limiter.check(key)
    if not result.allowed:
        logger.warning(
            "Rate limit exceeded",
            extra=get_log_context(
                request_id=getattr(request.state, "request_id", None),
                client_key=key,
            ),
        )
        raise RateLimitedError(limit=result.limit, retry_after=result.retry_after or 1)

    response.headers["X-RateLimit-Limit"] = str(result.limit)
    response.headers["X-RateLimit-Remaining"] = str(result.remaining)
    response.headers["X-RateLimit-Reset"] = str(math.ceil(result.reset_after))

"""
Fixed-window request limiter built on the ``limits`` package.

Counters live in a ``limits`` storage, ``memory://`` by default, so they reset
on restart and are not shared between processes. Windows are aligned to the
limiter's clock and the window number is part of every counter key, which
lets tests drive window expiry with a fake clock.
"""
import logging
import math
import time
from typing import Callable, Optional

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from .config import settings
from .core.request_info import client_ip
from .exceptions import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        storage: Optional[Storage] = None,
        clock: Callable[[], float] = time.time,
        max_requests: int = 10,
        window_seconds: int = 60,
    ):
        self.storage = storage if storage is not None else storage_from_string(settings.RATE_LIMIT_STORAGE_URI)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.clock = clock
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.enabled = True

    def hit(self, key: str, max_requests: Optional[int] = None, window_seconds: Optional[int] = None) -> Optional[int]:
        """
        Count one request for ``key``.

        Returns ``None`` when the request is allowed, otherwise the number of
        seconds until the current window ends.
        """
        item = RateLimitItemPerSecond(max_requests or self.max_requests, window_seconds or self.window_seconds)
        length = item.get_expiry()
        now = self.clock()
        window = int(now // length)

        if self.strategy.hit(item, key, str(window)):
            return None
        return max(1, math.ceil((window + 1) * length - now))

    def reset(self) -> None:
        self.storage.reset()

    def limit(self, max_requests: Optional[int] = None, window_seconds: Optional[int] = None, scope: Optional[str] = None):
        """FastAPI dependency guarding one route."""

        async def check_rate_limit(request: Request) -> None:
            if not self.enabled:
                return
            ip = client_ip(request)
            key = f"{scope or request.url.path}:{ip}"
            retry_after = self.hit(key, max_requests, window_seconds)
            if retry_after is not None:
                logger.warning("Rate limit exceeded", extra={"path": request.url.path, "detail": {"ip": ip}})
                raise RateLimitError("Too many requests", retry_after=retry_after)

        return check_rate_limit


limiter = RateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)

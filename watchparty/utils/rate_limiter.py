"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict, deque
from fastapi import Request, HTTPException
from typing import Deque, Dict, Optional
import logging

from watchparty.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding window rate limiter

    Clients are keyed by IP. The user id travels in request bodies and is
    not authenticated, so it cannot be trusted as a limiter key.
    Per-process only; move the windows to Redis when scaling out.
    """

    def __init__(self, requests_per_minute: int = 120, requests_per_hour: int = 3000):
        self.windows = {
            60: requests_per_minute,
            3600: requests_per_hour,
        }
        # {client_id: deque of request timestamps within the largest window}
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps older than the largest window and forget idle clients"""
        cutoff_time = now - max(self.windows)

        for client_id in list(self.history.keys()):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff_time:
                timestamps.popleft()

            # Remove empty entries
            if not timestamps:
                del self.history[client_id]

    def _exceeded_window(self, timestamps: Deque[float], now: float) -> Optional[int]:
        """Return the window (seconds) whose limit is reached, if any"""
        for window, limit in sorted(self.windows.items()):
            recent = sum(1 for ts in timestamps if ts > now - window)
            if recent >= limit:
                return window
        return None

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        now = time.time()
        self._cleanup_old_entries(now)

        timestamps = self.history[client_id]
        window = self._exceeded_window(timestamps, now)
        if window is not None:
            logger.warning(f"Rate limit exceeded ({window}s window): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {self.windows[window]} requests per {window} seconds",
                    "retry_after": window
                }
            )

        timestamps.append(now)

    def reset(self) -> None:
        self.history.clear()


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)

"""Sign-in throttling with fixed-window counters in Redis.

Each attempt increments ``typeb:ratelimit:<scope>:<identifier>:<window>``.
A successful sign-in clears the current window. Without Redis no limit is
enforced.
"""

import logging
from datetime import UTC, datetime

from fastapi import HTTPException, status

from typeb.core.config import Constants
from typeb.core.redis_client import cache_key, redis_client


logger = logging.getLogger(__name__)

SIGN_IN_SCOPE = "sign_in"


def _current_window(window_seconds: int) -> tuple[int, int]:
    """Return the window number and the seconds left in it."""
    now = int(datetime.now(UTC).timestamp())
    return now // window_seconds, window_seconds - now % window_seconds


class RateLimiter:
    """Counts attempts per scope and identifier."""

    async def check_rate_limit(self, scope: str, identifier: str, limit: int, window_seconds: int) -> None:
        """Record an attempt and reject it once ``limit`` is exceeded in the window.

        Raises:
            HTTPException: 429 with ``Retry-After`` when over the limit
        """
        if not redis_client.is_available:
            return

        window, retry_after = _current_window(window_seconds)
        key = cache_key("ratelimit", scope, identifier, window)
        attempts = await redis_client.increment(key)
        if attempts is None:
            logger.warning("rate_limit_unchecked", extra={"scope": scope})
            return
        if attempts == 1:
            await redis_client.expire(key, window_seconds)

        if attempts > limit:
            logger.warning(
                "rate_limit_exceeded",
                extra={"scope": scope, "identifier": identifier, "attempts": attempts, "retry_after": retry_after},
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many attempts. Please wait before trying again.",
                headers={"Retry-After": str(retry_after), "X-RateLimit-Limit": str(limit)},
            )

    async def reset(self, scope: str, identifier: str, window_seconds: int) -> None:
        """Forget the attempts counted in the current window."""
        window, _ = _current_window(window_seconds)
        await redis_client.delete(cache_key("ratelimit", scope, identifier, window))

    async def check_sign_in_rate_limit(self, email: str) -> None:
        """Limit sign-in attempts per normalized email."""
        await self.check_rate_limit(
            SIGN_IN_SCOPE,
            email.strip().lower(),
            Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW,
            Constants.SIGN_IN_WINDOW_SECONDS,
        )

    async def reset_sign_in_attempts(self, email: str) -> None:
        await self.reset(SIGN_IN_SCOPE, email.strip().lower(), Constants.SIGN_IN_WINDOW_SECONDS)


rate_limiter = RateLimiter()

"""Unit tests for sign-in rate limiting."""

import pytest
from fastapi import HTTPException

from typeb.core import rate_limiter as rate_limiter_module
from typeb.core.config import Constants
from typeb.core.rate_limiter import rate_limiter


class FakeCounters:
    """Stands in for the Redis client with plain counters."""

    is_available = True

    def __init__(self):
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}

    async def increment(self, key):
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key, ttl_seconds):
        self.expiries[key] = ttl_seconds
        return True

    async def delete(self, *keys):
        for key in keys:
            self.counts.pop(key, None)
        return True


@pytest.fixture
def counters(monkeypatch):
    fake = FakeCounters()
    monkeypatch.setattr(rate_limiter_module, "redis_client", fake)
    return fake


@pytest.mark.unit
class TestSignInRateLimit:
    """Tests for per-email sign-in limits."""

    async def test_allows_attempts_up_to_limit(self, counters):
        """Test attempts within the limit pass and the window gets an expiry."""
        for _ in range(Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW):
            await rate_limiter.check_sign_in_rate_limit("robin@example.com")

        (key,) = counters.counts
        assert key.startswith("typeb:ratelimit:sign_in:robin@example.com:")
        assert counters.expiries[key] == Constants.SIGN_IN_WINDOW_SECONDS

    async def test_rejects_over_limit(self, counters):
        """Test the attempt after the limit gets a 429 with Retry-After."""
        for _ in range(Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW):
            await rate_limiter.check_sign_in_rate_limit("robin@example.com")

        with pytest.raises(HTTPException) as exc_info:
            await rate_limiter.check_sign_in_rate_limit("Robin@Example.com ")

        assert exc_info.value.status_code == 429
        assert int(exc_info.value.headers["Retry-After"]) > 0

    async def test_reset_clears_attempts(self, counters):
        """Test a successful sign-in starts the count again."""
        for _ in range(Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW):
            await rate_limiter.check_sign_in_rate_limit("robin@example.com")

        await rate_limiter.reset_sign_in_attempts("robin@example.com")

        await rate_limiter.check_sign_in_rate_limit("robin@example.com")
        assert list(counters.counts.values()) == [1]

    async def test_emails_are_counted_separately(self, counters):
        """Test one address hitting the limit does not block another."""
        for _ in range(Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW):
            await rate_limiter.check_sign_in_rate_limit("robin@example.com")

        await rate_limiter.check_sign_in_rate_limit("casey@example.com")

    async def test_no_limit_without_redis(self):
        """Test limits are skipped when Redis is not configured."""
        for _ in range(Constants.MAX_SIGN_IN_ATTEMPTS_PER_WINDOW + 3):
            await rate_limiter.check_sign_in_rate_limit("robin@example.com")

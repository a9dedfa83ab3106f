"""Tests for the in-memory side of the booking rate limiter."""

import uuid

from app.rate_limiter import check_rate_limit


class TestCheckRateLimit:
    """Counting without Redis."""

    def test_blocks_after_limit(self):
        key = f"booking:test-{uuid.uuid4()}"
        assert check_rate_limit(key, 2, 60, None)[0]
        assert check_rate_limit(key, 2, 60, None)[0]
        allowed, count, ttl = check_rate_limit(key, 2, 60, None)
        assert not allowed
        assert count == 2
        assert 0 < ttl <= 60

    def test_keys_are_independent(self):
        first, second = f"booking:{uuid.uuid4()}", f"booking:{uuid.uuid4()}"
        check_rate_limit(first, 1, 60, None)
        assert check_rate_limit(second, 1, 60, None)[0]

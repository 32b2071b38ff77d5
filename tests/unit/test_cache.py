"""
Unit tests for the Redis layer and rate limiting.
"""

import pytest
from fastapi import HTTPException

from educore.core.cache import CacheManager, CacheUnavailable, cache_manager
from educore.core.rate_limit import RATE_LIMITS, check_rate_limit


@pytest.mark.unit
class TestCacheManager:
    """Test cache manager functionality."""

    def test_build_key(self):
        manager = CacheManager()
        assert manager._build_key("denylist", "abc123") == "educore:denylist:abc123"

    def test_build_key_with_colon(self):
        manager = CacheManager()
        assert manager._build_key("rl_auth", "10.0.0.1:auth") == "educore:rl_auth:10.0.0.1:auth"

    def test_client_requires_init(self):
        with pytest.raises(RuntimeError):
            CacheManager().client

    async def test_set_and_exists(self, fake_redis):
        assert await cache_manager.set("denylist", "jti-1", True, ttl=60) is True
        assert await cache_manager.exists("denylist", "jti-1") is True
        assert await cache_manager.exists("denylist", "jti-2") is False

    async def test_increment_keeps_window(self, fake_redis):
        assert await cache_manager.increment("rl", "ip", ttl=60) == 1
        assert await cache_manager.increment("rl", "ip", ttl=60) == 2
        assert 0 < await cache_manager.get_ttl("rl", "ip") <= 60

    async def test_lenient_exists_reads_absent_on_outage(self, fake_redis):
        fake_redis.fail = True
        assert await cache_manager.exists("denylist", "jti-1") is False

    async def test_strict_exists_raises_on_outage(self, fake_redis):
        fake_redis.fail = True
        with pytest.raises(CacheUnavailable):
            await cache_manager.exists("denylist", "jti-1", strict=True)

    async def test_strict_set_raises_on_outage(self, fake_redis):
        fake_redis.fail = True
        with pytest.raises(CacheUnavailable):
            await cache_manager.set("denylist", "jti-1", True, ttl=60, strict=True)


@pytest.mark.unit
class TestRateLimit:

    async def test_allows_up_to_limit(self, fake_redis):
        limit = RATE_LIMITS["auth"].requests
        for _ in range(limit):
            info = await check_rate_limit("10.0.0.1", "auth")
        assert info["remaining"] == 0

    async def test_blocks_over_limit(self, fake_redis):
        for _ in range(RATE_LIMITS["auth"].requests):
            await check_rate_limit("10.0.0.2", "auth")

        with pytest.raises(HTTPException) as exc_info:
            await check_rate_limit("10.0.0.2", "auth")

        assert exc_info.value.status_code == 429
        assert "Retry-After" in exc_info.value.headers

    async def test_fails_open_when_redis_is_down(self, fake_redis):
        fake_redis.fail = True
        info = await check_rate_limit("10.0.0.3", "auth")
        assert info["remaining"] == RATE_LIMITS["auth"].requests

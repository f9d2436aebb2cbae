"""Tests for building a TieredCache from settings."""

import logging

import pytest

from tiercache import build_tiered_cache
from tiercache.cache import MemoryBackend, RedisBackend, TieredCache
from tiercache.config import Settings
from tiercache.exceptions import ConfigurationError


@pytest.fixture
def fake_redis():
    try:
        import fakeredis
    except ImportError:
        pytest.skip("fakeredis not installed")
    return fakeredis.FakeStrictRedis(decode_responses=True)


class TestBuildTieredCache:
    def test_default_settings_build_memory_tier(self):
        cache = build_tiered_cache(Settings())
        assert isinstance(cache, TieredCache)
        assert len(cache) == 1
        assert isinstance(cache.backends[0], MemoryBackend)
        assert cache.repopulate is False

    def test_uses_global_settings_when_omitted(self):
        cache = build_tiered_cache()
        assert len(cache) >= 1

    def test_tier_order_follows_settings(self, fake_redis):
        settings = Settings()
        settings.cache.tiers = ["memory", "redis"]
        settings.cache.repopulate = True
        cache = build_tiered_cache(settings, redis_client=fake_redis)
        assert [type(b) for b in cache.backends] == [MemoryBackend, RedisBackend]
        assert cache.repopulate is True

    def test_section_values_reach_backends(self):
        settings = Settings()
        settings.memory.default_lifetime = 42
        cache = build_tiered_cache(settings)
        assert cache.backends[0].default_lifetime == 42

    def test_built_cache_round_trips(self, fake_redis):
        settings = Settings()
        settings.cache.tiers = ["memory", "redis"]
        cache = build_tiered_cache(settings, redis_client=fake_redis)
        cache.save("k", "v")
        cache.backends[0].delete("k")
        assert cache.get("k") == "v"

    def test_tier_names_normalised(self):
        settings = Settings()
        settings.cache.tiers = [" Memory "]
        assert isinstance(build_tiered_cache(settings).backends[0], MemoryBackend)

    def test_unknown_tier_rejected(self):
        settings = Settings()
        settings.cache.tiers = ["memory", "disk"]
        with pytest.raises(ConfigurationError, match="Unknown cache tier 'disk'"):
            build_tiered_cache(settings)

    @pytest.mark.parametrize(
        "section, field, value",
        [
            ("memory", "max_entries", 0),
            ("memory", "default_lifetime", 0),
            ("redis", "default_lifetime", -5),
        ],
    )
    def test_invalid_tier_settings_rejected(self, fake_redis, section, field, value):
        settings = Settings()
        settings.cache.tiers = ["memory", "redis"]
        setattr(getattr(settings, section), field, value)
        with pytest.raises(ConfigurationError, match=f"Invalid settings for cache tier '{section}'") as exc_info:
            build_tiered_cache(settings, redis_client=fake_redis)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_string_tiers_rejected(self):
        settings = Settings()
        settings.cache.tiers = "memory"
        with pytest.raises(ConfigurationError, match="must be a list"):
            build_tiered_cache(settings)

    def test_logging_level_applied(self):
        settings = Settings()
        settings.logging.level = "debug"
        build_tiered_cache(settings)
        assert logging.getLogger("tiercache").level == logging.DEBUG

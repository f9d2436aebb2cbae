"""Tests for the central configuration loader (tiercache/config.py)."""

import pytest
import yaml

from tiercache.config import (
    CacheSettings,
    MemorySettings,
    Settings,
    _apply_dict,
    _load_yaml,
    get_settings,
)


def _write_config(tmp_path, data):
    f = tmp_path / "config.yaml"
    f.write_text(yaml.dump(data))
    return f


# ── YAML loading ────────────────────────────────────────


class TestLoadYaml:
    def test_loads_valid_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("memory:\n  max_entries: 50\n")
        data = _load_yaml(f)
        assert data["memory"]["max_entries"] == 50

    def test_returns_empty_dict_for_missing_file(self, tmp_path):
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_returns_empty_dict_for_non_dict_yaml(self, tmp_path):
        f = tmp_path / "cfg.yaml"
        f.write_text("- item1\n- item2\n")
        assert _load_yaml(f) == {}


# ── Settings defaults ───────────────────────────────────


class TestSettingsDefaults:
    def test_default_settings_have_expected_values(self):
        s = Settings()
        assert s.cache.tiers == ["memory"]
        assert s.cache.repopulate is False
        assert s.memory.default_lifetime == 3600
        assert s.memory.max_entries == 10000
        assert s.redis.url == "redis://localhost:6379/0"
        assert s.redis.key_prefix == "tiercache"
        assert s.logging.level == "INFO"

    def test_tier_lists_not_shared(self):
        a = CacheSettings()
        b = CacheSettings()
        a.tiers.append("redis")
        assert b.tiers == ["memory"]


# ── get_settings() from YAML ────────────────────────────


class TestGetSettings:
    def test_loads_yaml_values(self, tmp_path):
        cfg = _write_config(tmp_path, {
            "cache": {"tiers": ["memory", "redis"], "repopulate": True},
            "redis": {"default_lifetime": 60},
        })
        s = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        assert s.cache.tiers == ["memory", "redis"]
        assert s.cache.repopulate is True
        assert s.redis.default_lifetime == 60

    def test_missing_yaml_uses_defaults(self, tmp_path):
        s = get_settings(yaml_path=tmp_path / "nope.yaml", env_path=tmp_path / ".env", _force_reload=True)
        assert s.memory.default_lifetime == 3600

    def test_singleton_returns_same_object(self, tmp_path):
        cfg = _write_config(tmp_path, {"memory": {"max_entries": 5}})
        s1 = get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)
        s2 = get_settings()
        assert s1 is s2

    def test_force_reload_reloads(self, tmp_path):
        cfg = _write_config(tmp_path, {"memory": {"max_entries": 1}})
        assert get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True).memory.max_entries == 1

        cfg.write_text(yaml.dump({"memory": {"max_entries": 2}}))
        assert get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True).memory.max_entries == 2

    def test_dotenv_file_applied(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text("TIERCACHE_REDIS_URL=redis://cache-host:6380/2\n")
        s = get_settings(yaml_path=tmp_path / "nope.yaml", env_path=env, _force_reload=True)
        assert s.redis.url == "redis://cache-host:6380/2"


# ── Environment variable overrides ──────────────────────


class TestEnvOverrides:
    def _load(self, tmp_path, data=None):
        cfg = _write_config(tmp_path, data or {})
        return get_settings(yaml_path=cfg, env_path=tmp_path / ".env", _force_reload=True)

    def test_env_override_int(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_MEMORY_MAX_ENTRIES", "99")
        assert self._load(tmp_path).memory.max_entries == 99

    def test_env_override_bool(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_CACHE_REPOPULATE", "yes")
        assert self._load(tmp_path).cache.repopulate is True

    def test_env_override_list(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_CACHE_TIERS", "memory, redis")
        assert self._load(tmp_path).cache.tiers == ["memory", "redis"]

    def test_env_override_string(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_LOGGING_LEVEL", "DEBUG")
        assert self._load(tmp_path).logging.level == "DEBUG"

    def test_invalid_env_override_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_MEMORY_MAX_ENTRIES", "lots")
        assert self._load(tmp_path).memory.max_entries == 10000

    def test_env_overrides_trump_yaml(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TIERCACHE_REDIS_DEFAULT_LIFETIME", "30")
        s = self._load(tmp_path, {"redis": {"default_lifetime": 600}})
        assert s.redis.default_lifetime == 30


# ── _apply_dict helper ──────────────────────────────────


class TestApplyDict:
    def test_applies_known_keys(self):
        target = MemorySettings()
        _apply_dict(target, {"max_entries": 12, "key_prefix": "m:"})
        assert target.max_entries == 12
        assert target.key_prefix == "m:"

    def test_ignores_unknown_keys(self):
        target = MemorySettings()
        _apply_dict(target, {"unknown_field": "value"})
        assert not hasattr(target, "unknown_field")


# ── Integration: real config/config.yaml ─────────────────


class TestRealConfig:
    def test_loads_project_config_yaml(self):
        s = get_settings(_force_reload=True)
        assert s.cache.tiers == ["memory"]
        assert s.memory.default_lifetime == 3600
        assert s.redis.key_prefix == "tiercache"

"""
Settings for the tiers a :class:`~tiercache.cache.TieredCache` is built from.

Values come from dataclass defaults, then ``config/config.yaml``, then
``TIERCACHE_<SECTION>_<KEY>`` environment variables (a ``.env`` file is
loaded into the environment first).  :func:`get_settings` caches the result.
"""

import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _project_path(*parts: str) -> Path:
    return _PROJECT_ROOT.joinpath(*parts)


# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


@dataclass
class CacheSettings:
    tiers: List[str] = field(default_factory=lambda: ["memory"])
    repopulate: bool = False


@dataclass
class MemorySettings:
    default_lifetime: int = 3600
    key_prefix: str = ""
    max_entries: int = 10000


@dataclass
class RedisSettings:
    url: str = "redis://localhost:6379/0"
    default_lifetime: int = 86400
    key_prefix: str = "tiercache"


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class Settings:
    """Top-level settings container."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    memory: MemorySettings = field(default_factory=MemorySettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Parse a settings file into section dicts; missing or non-mapping files give ``{}``."""
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _apply_dict(target: object, data: Dict[str, Any]) -> None:
    """Copy known keys of one YAML section onto its settings dataclass."""
    for key, value in data.items():
        if hasattr(target, key):
            setattr(target, key, value)


# Environment overrides, e.g. TIERCACHE_REDIS_URL or TIERCACHE_CACHE_TIERS=memory,redis

_SECTIONS = ["cache", "memory", "redis", "logging"]

_TYPE_MAP = {
    int: int,
    float: float,
    bool: lambda v: v.lower() in ("1", "true", "yes"),
    str: str,
    list: lambda v: [item.strip() for item in v.split(",") if item.strip()],
}


def _apply_env_overrides(settings: Settings) -> None:
    """Cast ``TIERCACHE_<SECTION>_<KEY>`` variables to their field's type.

    Values that fail the cast are logged and skipped.
    """
    for section_name in _SECTIONS:
        section = getattr(settings, section_name, None)
        if section is None:
            continue
        prefix = f"TIERCACHE_{section_name.upper()}_"
        for key in list(vars(section)):
            env_key = prefix + key.upper()
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            current = getattr(section, key)
            cast = _TYPE_MAP.get(type(current), str)
            try:
                setattr(section, key, cast(env_val))
                logger.debug("Env override applied: %s=%s", env_key, env_val)
            except (ValueError, TypeError):
                logger.warning("Invalid env override %s=%s", env_key, env_val)


_settings: Optional[Settings] = None
_lock = threading.Lock()


def get_settings(
    *,
    yaml_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    _force_reload: bool = False,
) -> Settings:
    """Return the cached :class:`Settings`, loading them on first use.

    Args:
        yaml_path: Settings file to read instead of ``config/config.yaml``.
        env_path: ``.env`` file to load instead of the project one.
        _force_reload: Discard the cached settings and load again.
    """
    global _settings

    if _settings is not None and not _force_reload:
        return _settings

    with _lock:
        if _settings is not None and not _force_reload:
            return _settings

        dotenv_path = env_path or _project_path(".env")
        load_dotenv(dotenv_path, override=True)

        config_path = yaml_path or _project_path("config", "config.yaml")
        raw = _load_yaml(config_path)

        settings = Settings()
        for section_name in _SECTIONS:
            section_data = raw.get(section_name)
            if isinstance(section_data, dict):
                _apply_dict(getattr(settings, section_name), section_data)

        _apply_env_overrides(settings)

        _settings = settings
        logger.info("Settings loaded from %s", config_path)
        return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next :func:`get_settings` reloads."""
    global _settings
    with _lock:
        _settings = None

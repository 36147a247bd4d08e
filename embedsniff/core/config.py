"""
Runtime configuration, read from the environment (and a local .env file).
"""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

DEFAULT_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)

PREFIX = "EMBEDSNIFF_"


def _env(name: str, default=None):
    value = os.getenv(PREFIX + name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{PREFIX}{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{PREFIX}{name} must not be negative")
    return value


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{PREFIX}{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    max_concurrent_scrapes: int = 4
    cache_ttl: float = 15 * 60
    cache_max_entries: int = 512
    # All timings in seconds
    scrape_deadline: float = 60.0
    navigation_timeout: float = 20.0
    trigger_timeout: float = 8.0
    settle_delay: float = 5.0
    manifest_timeout: float = 10.0
    subtitle_grace: float = 3.0
    headless: bool = True
    user_agent: str = DEFAULT_UA
    preflight: bool = False
    preflight_timeout: float = 5.0
    screenshot_dir: Optional[str] = None
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = ("*",)
    port: int = 3000

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(find_dotenv(usecwd=True))
        origins = _env("CORS_ORIGINS", "*")
        return cls(
            max_concurrent_scrapes=_env_int("MAX_CONCURRENT_SCRAPES", cls.max_concurrent_scrapes),
            cache_ttl=_env_float("CACHE_TTL", cls.cache_ttl),
            cache_max_entries=_env_int("CACHE_MAX_ENTRIES", cls.cache_max_entries),
            scrape_deadline=_env_float("SCRAPE_DEADLINE", cls.scrape_deadline),
            navigation_timeout=_env_float("NAVIGATION_TIMEOUT", cls.navigation_timeout),
            trigger_timeout=_env_float("TRIGGER_TIMEOUT", cls.trigger_timeout),
            settle_delay=_env_float("SETTLE_DELAY", cls.settle_delay),
            manifest_timeout=_env_float("MANIFEST_TIMEOUT", cls.manifest_timeout),
            subtitle_grace=_env_float("SUBTITLE_GRACE", cls.subtitle_grace),
            headless=_env_bool("HEADLESS", cls.headless),
            user_agent=_env("USER_AGENT", DEFAULT_UA),
            preflight=_env_bool("PREFLIGHT", cls.preflight),
            preflight_timeout=_env_float("PREFLIGHT_TIMEOUT", cls.preflight_timeout),
            screenshot_dir=_env("SCREENSHOT_DIR"),
            log_level=_env("LOG_LEVEL", cls.log_level).upper(),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            port=int(os.getenv("PORT", cls.port)),
        )

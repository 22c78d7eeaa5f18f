"""Runtime settings for repositories, sourced from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"", "0", "false", "no", "off"}:
        return False
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_log_level() -> str:
    return (os.getenv("SQLREPO_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").strip().upper()


@dataclass(frozen=True)
class RepositorySettings:
    """Defaults shared by every repository instance."""

    default_per_page: int = 20
    max_per_page: int = 100
    autocommit: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_environment(cls) -> "RepositorySettings":
        default_per_page = max(1, _env_int("SQLREPO_DEFAULT_PER_PAGE", 20))
        max_per_page = max(default_per_page, _env_int("SQLREPO_MAX_PER_PAGE", 100))
        return cls(
            default_per_page=default_per_page,
            max_per_page=max_per_page,
            autocommit=_env_bool("SQLREPO_AUTOCOMMIT", True),
            log_level=_env_log_level(),
        )

    def clamp_per_page(self, per_page: Optional[int]) -> int:
        """Return a usable page size: default when unset, capped at ``max_per_page``."""
        if per_page is None or per_page < 1:
            return self.default_per_page
        return min(per_page, self.max_per_page)


@lru_cache(maxsize=None)
def get_settings() -> RepositorySettings:
    """Return the cached settings sourced from the environment."""
    return RepositorySettings.from_environment()


def refresh_settings_cache() -> None:
    """Invalidate cached settings (useful for tests)."""
    get_settings.cache_clear()


def configure_logging(level: Optional[str] = None) -> int:
    """Configure root logging for hosts that embed the repositories.

    Returns the numeric level that was applied.
    """
    level_name = (level or get_settings().log_level).upper()
    numeric = getattr(logging, level_name, logging.INFO)
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric)
    logging.getLogger("sqlrepo").setLevel(numeric)
    logging.getLogger(__name__).info("sqlrepo_logging: level=%s", logging.getLevelName(numeric))
    return numeric

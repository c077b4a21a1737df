"""
Runtime settings read from environment variables.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_PREFIX = "MARKETPLACE_"
_REPO_ROOT = Path(__file__).resolve().parents[2]
_DEFAULT_DATA_DIR = _REPO_ROOT / "data"

DEFAULT_MANIFEST_URL = "https://bloomreach-forge.github.io/brxm-marketplace/addons-index.json"


class MarketplaceSettings(BaseModel):
    data_dir: Path = Field(
        default=_DEFAULT_DATA_DIR,
        description="Directory holding sources.json.",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="How long a fetched manifest stays fresh.",
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Total fetch attempts for transient manifest failures.",
    )
    retry_base_delay: float = Field(
        default=1.0,
        ge=0,
        description="Backoff before the second attempt, doubled for each further attempt.",
    )
    default_source: str = Field(
        default="forge",
        min_length=1,
        description="Source consulted when an unqualified addon id has no plain match.",
    )
    default_manifest_url: Optional[str] = Field(
        default=DEFAULT_MANIFEST_URL,
        description="Manifest of the default source, used when sources.json is absent.",
    )
    refresh_interval_seconds: int = Field(
        default=3600,
        ge=0,
        description="Period of the background refresh. 0 disables it.",
    )
    refresh_on_startup: bool = Field(
        default=True,
        description="Refresh all sources once when the application starts.",
    )
    log_level: str = Field(default="INFO")


def _int_env(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} value '{raw}', using default {default}")
        return default
    if value < minimum:
        logger.warning(f"{ENV_PREFIX}{name} must be at least {minimum}, using default {default}")
        return default
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Invalid {ENV_PREFIX}{name} value '{raw}', using default {default}")
        return default
    if value < 0:
        logger.warning(f"{ENV_PREFIX}{name} must not be negative, using default {default}")
        return default
    return value


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings(env: Optional[Mapping[str, str]] = None) -> MarketplaceSettings:
    """
    Build settings from ``env`` (defaults to ``os.environ``).

    Numeric values that do not parse, or are out of range, fall back to their
    defaults with a warning instead of failing startup.
    """
    env = os.environ if env is None else env
    defaults = MarketplaceSettings()

    data_dir_raw = env.get(ENV_PREFIX + "DATA_DIR")
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else defaults.data_dir

    manifest_url = env.get(ENV_PREFIX + "DEFAULT_MANIFEST_URL", defaults.default_manifest_url)

    return MarketplaceSettings(
        data_dir=data_dir,
        cache_ttl_seconds=_int_env(env, "CACHE_TTL_SECONDS", defaults.cache_ttl_seconds, 1),
        max_retries=_int_env(env, "MAX_RETRIES", defaults.max_retries, 1),
        retry_base_delay=_float_env(env, "RETRY_BASE_DELAY", defaults.retry_base_delay),
        default_source=(env.get(ENV_PREFIX + "DEFAULT_SOURCE") or defaults.default_source).strip() or defaults.default_source,
        default_manifest_url=manifest_url or None,
        refresh_interval_seconds=_int_env(env, "REFRESH_INTERVAL_SECONDS", defaults.refresh_interval_seconds, 0),
        refresh_on_startup=_bool_env(env, "REFRESH_ON_STARTUP", defaults.refresh_on_startup),
        log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or defaults.log_level).upper(),
    )

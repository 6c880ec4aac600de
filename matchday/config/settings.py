"""Application settings for TheSportsDB access and pipeline tuning.

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through a frozen Pydantic settings object.
"""

from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_BASE_URL = "https://www.thesportsdb.com/api/v1/json"
DEFAULT_API_KEY = "3"  # TheSportsDB public test key
REQUEST_TIMEOUT = 15  # seconds, per attempt
MAX_ATTEMPTS = 3
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_CAP_SECONDS = 5.0
DETAIL_REQUEST_DELAY_SECONDS = 2.1  # free tier allows ~30 requests per minute
MAX_API_CALLS = 5
RESULT_CACHE_TTL_HOURS = 24
ACHIEVEMENT_CACHE_SECONDS = 30 * 60
STATISTICS_CACHE_SECONDS = 60 * 60
DEFAULT_DB_PATH = os.path.join("data", "matchday.sqlite3")


class Settings(BaseModel):
    """Immutable settings object used across the application."""

    base_url: str
    api_key: str
    timeout: float = REQUEST_TIMEOUT
    max_attempts: int = MAX_ATTEMPTS
    backoff_base: float = BACKOFF_BASE_SECONDS
    backoff_cap: float = BACKOFF_CAP_SECONDS
    detail_request_delay: float = DETAIL_REQUEST_DELAY_SECONDS
    max_api_calls: int = MAX_API_CALLS
    result_cache_ttl_hours: float = RESULT_CACHE_TTL_HOURS
    achievement_cache_seconds: float = ACHIEVEMENT_CACHE_SECONDS
    statistics_cache_seconds: float = STATISTICS_CACHE_SECONDS
    db_path: str = DEFAULT_DB_PATH
    season_override: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_key}"


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be numeric, got {raw!r}") from None


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    base_url = os.getenv("SPORTSDB_BASE_URL", DEFAULT_BASE_URL)
    api_key = os.getenv("SPORTSDB_API_KEY", DEFAULT_API_KEY).strip()
    if not api_key:
        raise RuntimeError("SPORTSDB_API_KEY must not be empty")

    max_attempts = int(_env_number("MAX_ATTEMPTS", MAX_ATTEMPTS))
    if max_attempts < 1:
        raise RuntimeError("MAX_ATTEMPTS must be at least 1")

    season_override = os.getenv("SEASON_OVERRIDE") or None

    return Settings(
        base_url=base_url,
        api_key=api_key,
        timeout=_env_number("REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        max_attempts=max_attempts,
        backoff_base=_env_number("BACKOFF_BASE_SECONDS", BACKOFF_BASE_SECONDS),
        backoff_cap=_env_number("BACKOFF_CAP_SECONDS", BACKOFF_CAP_SECONDS),
        detail_request_delay=_env_number(
            "DETAIL_REQUEST_DELAY_SECONDS", DETAIL_REQUEST_DELAY_SECONDS
        ),
        max_api_calls=int(_env_number("MAX_API_CALLS", MAX_API_CALLS)),
        db_path=os.getenv("MATCHDAY_DB_PATH", DEFAULT_DB_PATH),
        season_override=season_override,
    )


# Public settings instance
settings = _build_settings()

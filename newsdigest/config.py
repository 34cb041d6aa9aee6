"""Environment-driven settings for the ingestion worker and the web API."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Optional

from dotenv import load_dotenv

from newsdigest.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Field name -> env var reported when the field is missing.
_ENV_NAMES: Dict[str, str] = {
    "news_api_key": "NEWS_API_KEY",
    "gemini_api_key": "GEMINI_API_KEY",
    "pg_dsn": "PG_DSN",
}


def _first_env(*names: str, default: str = "") -> str:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip():
            return value.strip()
    return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer (got {raw!r})")


@dataclass
class Settings:
    """Runtime configuration, loaded from the environment (and .env)."""

    news_api_key: str = ""
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    pg_dsn: str = ""

    # Headline source
    country: str = "us"
    category: str = "technology"
    fallback_query: str = "technology OR business OR world"

    request_timeout: int = 30
    lookback_days: int = 3
    ingest_interval_minutes: int = 30

    @classmethod
    def from_env(cls, *, dotenv_path: Optional[str] = None) -> "Settings":
        load_dotenv(dotenv_path)
        settings = cls(
            news_api_key=_first_env("NEWS_API_KEY", "NEWSAPI_KEY"),
            gemini_api_key=_first_env("GEMINI_API_KEY"),
            gemini_model=_first_env("GEMINI_MODEL", default="gemini-2.0-flash"),
            pg_dsn=_first_env("PG_DSN", "DATABASE_URL"),
            country=_first_env("NEWS_COUNTRY", default="us"),
            category=_first_env("NEWS_CATEGORY", default="technology"),
            fallback_query=_first_env("NEWS_FALLBACK_QUERY", default="technology OR business OR world"),
            request_timeout=_int_env("REQUEST_TIMEOUT", 30),
            lookback_days=_int_env("DIGEST_LOOKBACK_DAYS", 3),
            ingest_interval_minutes=_int_env("INGEST_INTERVAL_MINUTES", 30),
        )
        settings._validate()
        return settings

    def _validate(self) -> None:
        errors = []
        if self.request_timeout < 1 or self.request_timeout > 300:
            errors.append("REQUEST_TIMEOUT should be between 1 and 300 seconds")
        if self.lookback_days < 1:
            errors.append("DIGEST_LOOKBACK_DAYS should be at least 1")
        if self.ingest_interval_minutes < 1:
            errors.append("INGEST_INTERVAL_MINUTES should be at least 1")
        if errors:
            raise ConfigurationError("Configuration validation failed: " + "; ".join(errors))

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError naming every empty field in `fields`."""
        missing = [_ENV_NAMES.get(f, f.upper()) for f in fields if not getattr(self, f, "")]
        if missing:
            logger.error(f"Missing environment variables: {', '.join(missing)}")
            raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

"""Headline sources.

NewsAPI is queried in up to three shapes:
- top headlines for a country (broad)
- top headlines for one category (topic diversity)
- an `everything` keyword search sorted by recency, only when the first two
  come back thin or stale (see `needs_fallback`)

Each shape fails independently; a failed shape counts as empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from newsdigest.errors import HeadlineSourceError, NoHeadlinesAvailable
from newsdigest.ingestion.article_types import RawHeadline

logger = logging.getLogger(__name__)

MIN_HEADLINES = 10
NEWSAPI_BASE_URL = "https://newsapi.org/v2"


@dataclass(frozen=True)
class HeadlineBatch:
    records: List[RawHeadline]
    fallback_used: bool = False


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


def needs_fallback(
    records: Sequence[RawHeadline],
    today: Union[date, str],
    *,
    min_count: int = MIN_HEADLINES,
) -> bool:
    """True when the keyword query should run.

    Either too few records, or none published today. "Today" is matched
    against the first 10 characters of `publishedAt`, so timestamps in a
    non-UTC offset near midnight can be misjudged.
    """
    if len(records) < min_count:
        return True
    today_str = (today.isoformat() if isinstance(today, date) else str(today))[:10]
    for r in records:
        published = str((r or {}).get("publishedAt") or "")
        if published[:10] == today_str:
            return False
    return True


class BaseHeadlineSource:
    name: str = "base"

    def fetch_headlines(self, today: Optional[date] = None) -> HeadlineBatch:
        raise NotImplementedError


@dataclass(frozen=True)
class NewsAPIHeadlineSource(BaseHeadlineSource):
    api_key: str
    country: str = "us"
    category: str = "technology"
    fallback_query: str = "technology OR business OR world"
    page_size: int = 100
    timeout: int = 30
    base_url: str = NEWSAPI_BASE_URL

    name: str = "newsapi"

    def _get(self, path: str, params: Dict[str, Any]) -> List[RawHeadline]:
        headers = {"X-Api-Key": self.api_key, "User-Agent": "NewsDigest/1.0"}
        try:
            resp = requests.get(f"{self.base_url}/{path}", params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise HeadlineSourceError(f"{path} request failed: {e}")
        try:
            data = resp.json() or {}
        except ValueError:
            raise HeadlineSourceError(f"{path} returned non-JSON body (HTTP {resp.status_code})")
        if not isinstance(data, dict):
            raise HeadlineSourceError(f"{path} returned unexpected payload")
        if resp.status_code >= 400 or data.get("status") != "ok":
            message = data.get("message") or f"HTTP {resp.status_code}"
            raise HeadlineSourceError(f"{path}: {message}")
        articles = data.get("articles") or []
        return [a for a in articles if isinstance(a, dict)]

    def top_headlines(self) -> List[RawHeadline]:
        return self._get("top-headlines", {"country": self.country, "pageSize": self.page_size})

    def category_headlines(self, category: Optional[str] = None) -> List[RawHeadline]:
        return self._get(
            "top-headlines",
            {"country": self.country, "category": category or self.category, "pageSize": self.page_size},
        )

    def everything(self, query: Optional[str] = None) -> List[RawHeadline]:
        return self._get(
            "everything",
            {
                "q": query or self.fallback_query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": self.page_size,
            },
        )

    def _attempt(self, label: str, fn, *args) -> List[RawHeadline]:
        try:
            records = fn(*args)
        except HeadlineSourceError as e:
            logger.warning(f"Headline query '{label}' failed, treating as empty: {e}")
            return []
        logger.info(f"Headline query '{label}' returned {len(records)} records")
        return records

    def fetch_headlines(self, today: Optional[date] = None) -> HeadlineBatch:
        records: List[RawHeadline] = []
        records.extend(self._attempt("top-headlines", self.top_headlines))
        records.extend(self._attempt(f"category:{self.category}", self.category_headlines))

        fallback_used = False
        if needs_fallback(records, today or _today_utc()):
            logger.info(f"Only {len(records)} headlines or none from today; running keyword fallback")
            records.extend(self._attempt("everything", self.everything))
            fallback_used = True

        if not records:
            raise NoHeadlinesAvailable()
        return HeadlineBatch(records=records, fallback_used=fallback_used)


@dataclass(frozen=True)
class SampleHeadlineSource(BaseHeadlineSource):
    """Fixed headlines for local development without a NewsAPI key."""

    name: str = "sample"
    samples: Sequence[Dict[str, str]] = field(
        default_factory=lambda: (
            {
                "title": "Advancements in Antigravity Propulsion Systems",
                "description": "New research suggests a breakthrough in field-effect propulsion could revolutionize space travel.",
                "url": "https://example.com/antigravity-news-1",
                "source": "Science Daily",
                "content": "Detailed content about antigravity experiments...",
            },
            {
                "title": "Global Markets React to AI Developments",
                "description": "Trading volumes hit record highs as new AI analysis tools are deployed across major exchanges.",
                "url": "https://example.com/ai-markets-2",
                "source": "Financial Times",
                "content": "Analysis of market trends...",
            },
            {
                "title": "Sustainability Trends in Modern Web Apps",
                "description": "Developers are prioritizing energy-efficient coding practices as global energy costs rise.",
                "url": "https://example.com/green-web-3",
                "source": "TechCrunch",
                "content": "Tips for greener deployments...",
            },
        )
    )

    def fetch_headlines(self, today: Optional[date] = None) -> HeadlineBatch:
        now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        records = [
            {
                "title": s["title"],
                "description": s["description"],
                "url": s["url"],
                "publishedAt": now,
                "source": {"name": s["source"]},
                "content": s["content"],
            }
            for s in self.samples
        ]
        return HeadlineBatch(records=records)

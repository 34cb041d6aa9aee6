"""Normalize raw headline records into Articles and dedupe them by URL."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from newsdigest.ingestion.article_types import Article, RawHeadline

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _source_name(src: Any) -> Optional[str]:
    if isinstance(src, dict):
        return _text(src.get("name"))
    return _text(src)


def article_from_record(record: Dict[str, Any]) -> Optional[Article]:
    """Map one record to an Article, or None if a mandatory field is missing.

    Accepts both the NewsAPI shape (`publishedAt`, `source.name`) and the
    stored-row shape (`published_at`, `source`).
    """
    if not isinstance(record, dict):
        return None
    title = _text(record.get("title"))
    url = _text(record.get("url"))
    published_at = parse_timestamp(record.get("publishedAt") or record.get("published_at"))
    if not title or not url or published_at is None:
        return None
    return Article(
        title=title,
        url=url,
        published_at=published_at,
        description=_text(record.get("description")),
        source=_source_name(record.get("source")),
        content=_text(record.get("content")),
    )


def normalize_headlines(records: Iterable[RawHeadline]) -> List[Article]:
    """Map raw headlines to Articles, silently dropping incomplete ones.

    Order of the retained records is preserved.
    """
    out: List[Article] = []
    dropped = 0
    for record in records:
        article = article_from_record(record)
        if article is None:
            dropped += 1
            continue
        out.append(article)
    if dropped:
        logger.debug(f"Dropped {dropped} headline(s) missing title/url/publishedAt")
    return out


def dedupe_by_url(articles: Iterable[Article]) -> List[Article]:
    """One Article per url; the last occurrence wins.

    Output follows the order in which each url was first seen. A single
    upsert statement cannot touch the same key twice, so this runs before
    every batch write.
    """
    by_url: Dict[str, Article] = {}
    for article in articles:
        # Reassigning an existing key keeps its original insertion position.
        by_url[article.url] = article
    return list(by_url.values())

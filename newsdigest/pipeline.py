"""Ingestion run (fetch -> normalize -> dedupe -> upsert) and the digest read path."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from newsdigest.digest.composer import DigestResult, compose_digest
from newsdigest.ingestion.article_types import StoredArticle
from newsdigest.ingestion.headline_source import BaseHeadlineSource
from newsdigest.ingestion.normalize import dedupe_by_url, normalize_headlines
from newsdigest.storage.postgres_repo import PostgresArticleRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestResult:
    fetched: int
    normalized: int
    written: int
    fallback_used: bool = False
    processing_time: float = 0.0


def run_ingestion(
    source: BaseHeadlineSource,
    repo: PostgresArticleRepo,
    *,
    today: Optional[date] = None,
) -> IngestResult:
    """Run one ingestion pass.

    Raises NoHeadlinesAvailable when every query shape is empty and
    StoreWriteError when the upsert is rejected; neither is retried.
    """
    started = time.time()
    batch = source.fetch_headlines(today=today)
    articles = normalize_headlines(batch.records)
    unique = dedupe_by_url(articles)
    written = repo.upsert_articles(unique)

    result = IngestResult(
        fetched=len(batch.records),
        normalized=len(articles),
        written=written,
        fallback_used=batch.fallback_used,
        processing_time=time.time() - started,
    )
    logger.info(
        f"[ingest] source={source.name} fetched={result.fetched} normalized={result.normalized} "
        f"unique={len(unique)} written={result.written} fallback={result.fallback_used} "
        f"took={result.processing_time:.2f}s"
    )
    return result


def recent_articles(
    repo: PostgresArticleRepo,
    *,
    days: int = 3,
    now: Optional[datetime] = None,
) -> List[StoredArticle]:
    now = now or datetime.now(timezone.utc)
    return repo.get_articles_since(now - timedelta(days=days))


def digest_recent(
    repo: PostgresArticleRepo,
    client=None,
    *,
    days: int = 3,
    now: Optional[datetime] = None,
) -> Tuple[List[StoredArticle], Optional[DigestResult]]:
    """Read the window and digest it. The digest is None when the window is empty."""
    articles = recent_articles(repo, days=days, now=now)
    if not articles:
        logger.info(f"No articles published in the last {days} day(s)")
        return articles, None
    return articles, compose_digest(articles, client)

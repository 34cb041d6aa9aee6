"""Postgres repository for ingested articles.

Deliberately thin (psycopg + SQL). Writes are a single upsert statement keyed
by `url`; reads return rows for a published_at window.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Sequence

import psycopg

from newsdigest.errors import StoreWriteError
from newsdigest.ingestion.article_types import Article, StoredArticle

logger = logging.getLogger(__name__)

# One statement for the whole batch: the arrays are zipped row-wise by unnest().
UPSERT_SQL = """
INSERT INTO articles (title, description, url, published_at, source, content)
SELECT * FROM unnest(
  %(title)s::text[],
  %(description)s::text[],
  %(url)s::text[],
  %(published_at)s::timestamptz[],
  %(source)s::text[],
  %(content)s::text[]
)
ON CONFLICT (url) DO UPDATE SET
  title = EXCLUDED.title,
  description = EXCLUDED.description,
  published_at = EXCLUDED.published_at,
  source = EXCLUDED.source,
  content = EXCLUDED.content
"""

SELECT_SINCE_SQL = """
SELECT id, created_at, title, description, url, published_at, source, content
FROM articles
WHERE published_at >= %s
ORDER BY published_at DESC
"""


class PostgresArticleRepo:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        return psycopg.connect(self.pg_dsn)

    def upsert_articles(self, articles: Sequence[Article]) -> int:
        """Insert new urls, overwrite mutable fields of existing ones.

        `articles` must already be unique by url. Runs in one transaction;
        on error nothing from this batch is kept and StoreWriteError carries
        the driver's message.
        """
        if not articles:
            return 0
        params = {
            "title": [a.title for a in articles],
            "description": [a.description for a in articles],
            "url": [a.url for a in articles],
            "published_at": [a.published_at for a in articles],
            "source": [a.source for a in articles],
            "content": [a.content for a in articles],
        }
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(UPSERT_SQL, params)
                    written = cur.rowcount
        except psycopg.Error as e:
            logger.error(f"Article upsert failed: {e}")
            raise StoreWriteError(str(e)) from e
        if written is None or written < 0:
            written = len(articles)
        return written

    def get_articles_since(self, since: datetime) -> List[StoredArticle]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(SELECT_SINCE_SQL, (since,))
                rows = cur.fetchall()
        return [self._row_to_article(row) for row in rows]

    def _row_to_article(self, row) -> StoredArticle:
        # Row ordering matches SELECT_SINCE_SQL.
        aid, created_at, title, description, url, published_at, source, content = row
        return StoredArticle(
            id=str(aid) if aid is not None else None,
            created_at=created_at,
            title=title,
            description=description,
            url=url,
            published_at=published_at,
            source=source,
            content=content,
        )

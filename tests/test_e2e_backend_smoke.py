import os
import unittest
import uuid
from datetime import datetime, timedelta, timezone

import psycopg

from newsdigest.ingestion.article_types import Article
from newsdigest.storage.postgres_repo import PostgresArticleRepo
from newsdigest.storage.postgres_schema import ensure_postgres_schema


PG_DSN = os.environ.get("PG_DSN", "")


@unittest.skipUnless(PG_DSN, "PG_DSN not set; live Postgres smoke test skipped")
class TestE2EPostgresSmoke(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        ensure_postgres_schema(PG_DSN)
        cls.repo = PostgresArticleRepo(PG_DSN)
        cls.run_id = uuid.uuid4().hex[:8]
        cls.published = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(hours=1)

    @classmethod
    def tearDownClass(cls):
        with psycopg.connect(PG_DSN, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM articles WHERE url LIKE %s", (f"https://example.com/e2e/{cls.run_id}/%",))

    def _article(self, slug, title):
        return Article(
            title=title,
            url=f"https://example.com/e2e/{self.run_id}/{slug}",
            published_at=self.published,
            description="E2E smoke article",
            source="Example",
            content="body",
        )

    def test_upsert_round_trip(self):
        article = self._article("round-trip", "E2E: round trip")
        self.assertEqual(self.repo.upsert_articles([article]), 1)
        rows = self.repo.get_articles_since(self.published - timedelta(minutes=1))
        (row,) = [r for r in rows if r.url == article.url]
        self.assertEqual(row.title, article.title)
        self.assertEqual(row.description, article.description)
        self.assertEqual(row.source, article.source)
        self.assertEqual(row.content, article.content)
        self.assertEqual(row.published_at, article.published_at)
        self.assertIsNotNone(row.id)

    def test_upsert_is_idempotent_and_updates_in_place(self):
        first = self._article("idempotent", "E2E: first title")
        self.repo.upsert_articles([first])
        self.repo.upsert_articles([first])
        updated = self._article("idempotent", "E2E: second title")
        self.repo.upsert_articles([updated])
        rows = [r for r in self.repo.get_articles_since(self.published - timedelta(minutes=1)) if r.url == first.url]
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].title, "E2E: second title")


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import datetime, timedelta, timezone
from unittest import mock

from fakes import FakeHeadlineSource, InMemoryArticleRepo

import web_app
from newsdigest.config import Settings
from newsdigest.errors import GenerationError, NoHeadlinesAvailable
from newsdigest.llm.gemini import GeminiClient
from newsdigest.pipeline import run_ingestion


def _settings(**overrides):
    values = {"news_api_key": "news-key", "gemini_api_key": "gem-key", "pg_dsn": "dbname=test"}
    values.update(overrides)
    return Settings(**values)


def _raw(url, title, published=None):
    published = published or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    return {"title": title, "description": "d", "url": url, "publishedAt": published, "source": {"name": "Wire"}}


class WebAppTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        web_app.limiter.enabled = False
        cls.client = web_app.app.test_client()

    def setUp(self):
        self.repo = InMemoryArticleRepo()
        self.settings = _settings()
        patches = [
            mock.patch("web_app._load_settings", side_effect=lambda: self.settings),
            mock.patch("web_app._build_repo", side_effect=lambda s: self.repo),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)


class TestIngestEndpoint(WebAppTestCase):
    def test_ingest_success_reports_normalized_count(self):
        source = FakeHeadlineSource([
            _raw("https://example.com/1", "One"),
            _raw("https://example.com/1", "One again"),
            {"title": "missing url", "publishedAt": "2026-01-01T00:00:00Z"},
        ])
        with mock.patch("web_app._build_source", return_value=source):
            r = self.client.post("/api/ingest")
        self.assertEqual(r.status_code, 200)
        data = r.get_json()
        self.assertTrue(data["success"])
        self.assertEqual(data["count"], 2)
        self.assertEqual(data["written"], 1)

    def test_get_is_also_accepted(self):
        with mock.patch("web_app._build_source", return_value=FakeHeadlineSource([_raw("u", "T")])):
            r = self.client.get("/api/ingest")
        self.assertEqual(r.status_code, 200)

    def test_other_methods_rejected(self):
        r = self.client.delete("/api/ingest")
        self.assertEqual(r.status_code, 405)

    def test_missing_credentials(self):
        self.settings = _settings(news_api_key="")
        r = self.client.post("/api/ingest")
        self.assertEqual(r.status_code, 500)
        self.assertIn("Missing environment variables", r.get_json()["error"])
        self.assertEqual(self.repo.rows, {})

    def test_no_data_available(self):
        source = FakeHeadlineSource([], error=NoHeadlinesAvailable())
        with mock.patch("web_app._build_source", return_value=source):
            r = self.client.post("/api/ingest")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.get_json()["error"], "no data available")

    def test_store_error_is_verbatim(self):
        self.repo = InMemoryArticleRepo(fail_with='duplicate key value violates unique constraint "articles_url_key"')
        with mock.patch("web_app._build_source", return_value=FakeHeadlineSource([_raw("u", "T")])):
            r = self.client.post("/api/ingest")
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.get_json()["error"], 'duplicate key value violates unique constraint "articles_url_key"')


class TestSummarizeEndpoint(WebAppTestCase):
    ARTICLES = [
        {"title": "Alpha", "description": "a", "url": "https://example.com/a", "published_at": "2026-01-01T00:00:00+00:00"},
        {"title": "Beta", "description": "b", "url": "https://example.com/b", "published_at": "2026-01-01T01:00:00+00:00"},
        {"title": "Gamma", "description": "c", "url": "https://example.com/c", "published_at": "2026-01-01T02:00:00+00:00"},
    ]

    def test_model_summary(self):
        with mock.patch.object(GeminiClient, "generate", return_value="**Tech**\nDigest"):
            r = self.client.post("/api/summarize", json={"articles": self.ARTICLES})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json(), {"summary": "**Tech**\nDigest", "strategy": "model"})

    def test_generation_failure_returns_fallback(self):
        with mock.patch.object(GeminiClient, "generate", side_effect=GenerationError("boom")):
            r = self.client.post("/api/summarize", json={"articles": self.ARTICLES})
        self.assertEqual(r.status_code, 200)
        data = r.get_json()
        self.assertEqual(data["strategy"], "fallback")
        for title in ("Alpha", "Beta", "Gamma"):
            self.assertIn(title, data["summary"])

    def test_empty_articles_rejected(self):
        r = self.client.post("/api/summarize", json={"articles": []})
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.get_json()["error"], "No articles provided")

    def test_missing_body_rejected(self):
        r = self.client.post("/api/summarize")
        self.assertEqual(r.status_code, 400)

    def test_non_object_body_rejected(self):
        r = self.client.post("/api/summarize", json=[{"title": "Alpha"}])
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.get_json()["error"], "No articles provided")

    def test_malformed_model_reply_returns_fallback(self):
        with mock.patch.object(GeminiClient, "generate", side_effect=KeyError("candidates")):
            r = self.client.post("/api/summarize", json={"articles": self.ARTICLES})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.get_json()["strategy"], "fallback")

    def test_missing_gemini_key(self):
        self.settings = _settings(gemini_api_key="")
        r = self.client.post("/api/summarize", json={"articles": self.ARTICLES})
        self.assertEqual(r.status_code, 500)
        self.assertEqual(r.get_json()["error"], "Gemini API Key not configured")

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get("/api/summarize").status_code, 405)


class TestReadEndpoints(WebAppTestCase):
    def setUp(self):
        super().setUp()
        now = datetime.now(timezone.utc)
        old = (now - timedelta(days=10)).isoformat()
        source = FakeHeadlineSource([
            _raw("https://example.com/new", "New"),
            _raw("https://example.com/old", "Old", old),
        ])
        run_ingestion(source, self.repo)

    def test_articles_window(self):
        r = self.client.get("/api/articles?days=3")
        self.assertEqual(r.status_code, 200)
        data = r.get_json()
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["data"][0]["title"], "New")

    def test_days_below_one_clamps_to_one(self):
        for days in (0, -5):
            r = self.client.get(f"/api/articles?days={days}")
            data = r.get_json()
            self.assertEqual(data["days"], 1)
            self.assertEqual(data["count"], 1)

    def test_days_above_limit_clamps(self):
        r = self.client.get("/api/articles?days=365")
        self.assertEqual(r.get_json()["days"], web_app.MAX_LOOKBACK_DAYS)

    def test_digest_without_key_uses_fallback(self):
        self.settings = _settings(gemini_api_key="")
        r = self.client.get("/api/digest?days=30")
        data = r.get_json()
        self.assertEqual(r.status_code, 200)
        self.assertEqual(data["count"], 2)
        self.assertEqual(data["strategy"], "fallback")
        self.assertIn("New", data["summary"])

    def test_health(self):
        r = self.client.get("/api/health")
        self.assertEqual(r.get_json()["status"], "healthy")


if __name__ == "__main__":
    unittest.main()

"""Postgres schema management for the articles table.

Schema creation is idempotent (CREATE IF NOT EXISTS / guarded policies), so
it is safe to run before every ingestion.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # gen_random_uuid() is built in from PG13; the extension covers older servers.
    "CREATE EXTENSION IF NOT EXISTS pgcrypto;",
    """
    CREATE TABLE IF NOT EXISTS articles (
      id UUID DEFAULT gen_random_uuid() PRIMARY KEY,
      created_at TIMESTAMPTZ DEFAULT now(),
      title TEXT NOT NULL,
      description TEXT,
      url TEXT UNIQUE NOT NULL,
      published_at TIMESTAMPTZ NOT NULL,
      source TEXT,
      content TEXT,
      summary TEXT
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at DESC);",
    # Row-level security: anyone may read, writes go through insert/upsert.
    "ALTER TABLE articles ENABLE ROW LEVEL SECURITY;",
    """
    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_policies WHERE policyname = 'Allow public read') THEN
        CREATE POLICY "Allow public read" ON articles FOR SELECT USING (true);
      END IF;
    END
    $$;
    """,
    """
    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_policies WHERE policyname = 'Allow anonymous insert') THEN
        CREATE POLICY "Allow anonymous insert" ON articles FOR INSERT WITH CHECK (true);
      END IF;
    END
    $$;
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)

#!/usr/bin/env python3
"""Headline ingestion worker.

Runs one ingestion cycle (or scheduled cycles) of:
- NewsAPI top headlines + category headlines (+ keyword fallback)
- normalize, dedupe by url, upsert into Postgres
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import Optional, Sequence

import schedule

from newsdigest.config import Settings
from newsdigest.errors import NewsDigestError
from newsdigest.ingestion.headline_source import NewsAPIHeadlineSource, SampleHeadlineSource
from newsdigest.pipeline import IngestResult, run_ingestion
from newsdigest.storage.postgres_repo import PostgresArticleRepo
from newsdigest.storage.postgres_schema import ensure_postgres_schema

logger = logging.getLogger("news_ingest_worker")


def run_once(settings: Settings, *, sample: bool = False, init_schema: bool = False) -> IngestResult:
    if sample:
        settings.require("pg_dsn")
        source = SampleHeadlineSource()
    else:
        settings.require("news_api_key", "pg_dsn")
        source = NewsAPIHeadlineSource(
            api_key=settings.news_api_key,
            country=settings.country,
            category=settings.category,
            fallback_query=settings.fallback_query,
            timeout=settings.request_timeout,
        )
    if init_schema:
        ensure_postgres_schema(settings.pg_dsn)
    return run_ingestion(source, PostgresArticleRepo(settings.pg_dsn))


def _run_logged(settings: Settings, sample: bool) -> None:
    # A failed cycle must not stop the schedule loop.
    try:
        run_once(settings, sample=sample)
    except NewsDigestError as e:
        logger.error(f"[ingest] run failed: {e}")


def run_scheduled(settings: Settings, *, interval_minutes: int, sample: bool = False) -> None:
    logger.info(f"[ingest] scheduling every {interval_minutes} minute(s)")
    _run_logged(settings, sample)
    schedule.every(interval_minutes).minutes.do(_run_logged, settings, sample)
    while True:
        schedule.run_pending()
        time.sleep(5)


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    parser = argparse.ArgumentParser(description="Ingest news headlines into Postgres")
    parser.add_argument("--scheduled", action="store_true", help="keep running on an interval")
    parser.add_argument("--interval", type=int, default=None, help="minutes between scheduled runs")
    parser.add_argument("--sample", action="store_true", help="use built-in sample headlines instead of NewsAPI")
    parser.add_argument("--init-schema", action="store_true", help="create the articles table before ingesting")
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        mode = (os.environ.get("INGEST_MODE") or "once").lower().strip()
        if args.scheduled or mode in ("scheduled", "daemon"):
            if args.init_schema:
                settings.require("pg_dsn")
                ensure_postgres_schema(settings.pg_dsn)
            run_scheduled(
                settings,
                interval_minutes=args.interval or settings.ingest_interval_minutes,
                sample=args.sample,
            )
            return 0
        result = run_once(settings, sample=args.sample, init_schema=args.init_schema)
    except NewsDigestError as e:
        logger.error(f"[ingest] {e}")
        return 1
    print(f"[ingest] fetched={result.fetched} normalized={result.normalized} written={result.written}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

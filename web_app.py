#!/usr/bin/env python3
"""
Flask JSON API for the news digest.
Endpoints: ingestion trigger, recent articles, digest composition, health.
"""

import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from cors_config import configure_cors
from newsdigest.config import Settings
from newsdigest.digest.composer import STRATEGY_FALLBACK, compose_digest, fallback_digest
from newsdigest.errors import (
    ConfigurationError,
    EmptyDigestInput,
    NoHeadlinesAvailable,
    StoreWriteError,
)
from newsdigest.ingestion.headline_source import NewsAPIHeadlineSource
from newsdigest.ingestion.normalize import article_from_record
from newsdigest.llm.gemini import GeminiClient
from newsdigest.pipeline import digest_recent, recent_articles, run_ingestion
from newsdigest.storage.postgres_repo import PostgresArticleRepo

# Load environment variables from .env file
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

MAX_LOOKBACK_DAYS = 30

app = Flask(__name__)
app = configure_cors(app)
app.config['JSON_SORT_KEYS'] = False

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per day", "200 per hour"],
    storage_uri="memory://"
)
limiter.init_app(app)


# ----------------------------
# Collaborator wiring (patched in tests)
# ----------------------------
def _load_settings() -> Settings:
    return Settings.from_env()


def _build_source(settings: Settings) -> NewsAPIHeadlineSource:
    return NewsAPIHeadlineSource(
        api_key=settings.news_api_key,
        country=settings.country,
        category=settings.category,
        fallback_query=settings.fallback_query,
        timeout=settings.request_timeout,
    )


def _build_repo(settings: Settings) -> PostgresArticleRepo:
    return PostgresArticleRepo(settings.pg_dsn)


def _build_client(settings: Settings):
    if not settings.gemini_api_key:
        return None
    return GeminiClient(
        settings.gemini_api_key,
        model=settings.gemini_model,
        timeout=settings.request_timeout,
    )


def _lookback_days(settings: Settings) -> int:
    days = request.args.get('days', settings.lookback_days, type=int)
    return max(1, min(days, MAX_LOOKBACK_DAYS))


# ----------------------------
# Routes
# ----------------------------
@app.route('/api/health')
@limiter.exempt
def health_check():
    """API health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@app.route('/api/ingest', methods=['GET', 'POST'])
@limiter.limit("10 per minute")
def ingest():
    """Fetch, normalize, dedupe and upsert the latest headlines."""
    try:
        settings = _load_settings()
        settings.require('news_api_key', 'pg_dsn')
        result = run_ingestion(_build_source(settings), _build_repo(settings))
        return jsonify({
            'success': True,
            'count': result.normalized,
            'written': result.written,
            'fallback_used': result.fallback_used,
        })
    except ConfigurationError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    except NoHeadlinesAvailable as e:
        logger.error(f"Ingest error: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500
    except StoreWriteError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected ingest error: {e}", exc_info=True)
        return jsonify({'success': False, 'error': str(e) or 'Failed to ingest news'}), 500


@app.route('/api/articles')
@limiter.limit("60 per minute")
def get_articles():
    """Articles published within the last `days` days, newest first."""
    try:
        settings = _load_settings()
        settings.require('pg_dsn')
        days = _lookback_days(settings)
        articles = recent_articles(_build_repo(settings), days=days)
        return jsonify({
            'success': True,
            'data': [a.to_dict() for a in articles],
            'count': len(articles),
            'days': days,
        })
    except ConfigurationError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error in get_articles: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to fetch articles',
            'message': str(e)
        }), 500


@app.route('/api/summarize', methods=['POST'])
@limiter.limit("20 per minute")
def summarize():
    """Compose a digest for the posted articles."""
    try:
        settings = _load_settings()
        settings.require('gemini_api_key')
    except ConfigurationError as e:
        logger.error(f"Summarize error: {e}")
        return jsonify({'error': 'Gemini API Key not configured'}), 500

    data = request.get_json(silent=True)
    items = data.get('articles') if isinstance(data, dict) else None
    if not isinstance(items, list) or not items:
        return jsonify({'error': str(EmptyDigestInput())}), 400

    articles = [a for a in (article_from_record(it) for it in items) if a is not None]
    if not articles:
        # Non-empty request, but nothing usable in it
        return jsonify({'summary': fallback_digest([]), 'strategy': STRATEGY_FALLBACK})

    result = compose_digest(articles, _build_client(settings))
    return jsonify({'summary': result.text, 'strategy': result.strategy})


@app.route('/api/digest')
@limiter.limit("20 per minute")
def recent_digest():
    """Read the recent window from the store and digest it in one call."""
    try:
        settings = _load_settings()
        settings.require('pg_dsn')
        days = _lookback_days(settings)
        articles, result = digest_recent(_build_repo(settings), _build_client(settings), days=days)
    except ConfigurationError as e:
        return jsonify({'success': False, 'error': str(e)}), 500
    except Exception as e:
        logger.error(f"Unexpected error in recent_digest: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to build digest'}), 500

    return jsonify({
        'success': True,
        'count': len(articles),
        'days': days,
        'summary': result.text if result else '',
        'strategy': result.strategy if result else None,
    })


@app.errorhandler(404)
def not_found(error):
    """Custom 404 handler"""
    return jsonify({'error': 'Endpoint not found'}), 404


@app.errorhandler(405)
def method_not_allowed(error):
    return jsonify({'error': 'Method not allowed'}), 405


@app.errorhandler(429)
def rate_limit_handler(error):
    """Custom rate limit handler"""
    return jsonify({
        'error': 'Rate limit exceeded',
        'message': 'Too many requests, please slow down',
    }), 429


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    debug = os.environ.get('FLASK_ENV') == 'development'
    logger.info(f"Starting news digest API on port {port} (debug={debug})")
    app.run(host='0.0.0.0', port=port, debug=debug)

"""Digest composition.

The model writes the digest; when it cannot, a short briefing is built from
the first few titles. The returned DigestResult records which path produced
the text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from newsdigest.errors import EmptyDigestInput, GenerationError
from newsdigest.ingestion.article_types import Article

logger = logging.getLogger(__name__)

STRATEGY_MODEL = "model"
STRATEGY_FALLBACK = "fallback"

FALLBACK_TITLE_COUNT = 3
FALLBACK_SUFFIX = "(AI generation unavailable at the moment)"

DIGEST_INSTRUCTIONS = """You are a professional news editor. Summarize the following news articles into a natural, engaging, and structured News Digest.

CRITICAL INSTRUCTIONS:
1. Group the news into logical categories (e.g., Politics, Technology, Sports, Business, etc.).
2. Each paragraph MUST start with a bold heading for that category, like this: **Category Name**.
3. Focus on the substantive themes.
4. The digest should be about 3-4 paragraphs long."""


@dataclass(frozen=True)
class DigestResult:
    text: str
    strategy: str
    model: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.strategy == STRATEGY_FALLBACK


def build_digest_prompt(articles: Sequence[Article]) -> str:
    lines = []
    for i, a in enumerate(articles, start=1):
        lines.append(f"{i}. TITLE: {a.title}\n   DESCRIPTION: {a.description or ''}")
    return f"{DIGEST_INSTRUCTIONS}\n\nArticles:\n" + "\n\n".join(lines)


def fallback_digest(articles: Sequence[Article], *, limit: int = FALLBACK_TITLE_COUNT) -> str:
    titles = [a.title.strip().rstrip(".") for a in articles[:limit] if a.title and a.title.strip()]
    if not titles:
        return f"Briefing: No headlines available. {FALLBACK_SUFFIX}"
    return f"Briefing: {'. '.join(titles)}. {FALLBACK_SUFFIX}"


def compose_digest(articles: Sequence[Article], client=None) -> DigestResult:
    """Summarize `articles`; never raises except for an empty input.

    `client` is anything with `generate(prompt) -> str` (see GeminiClient).
    Without a client the fallback is used directly.
    """
    if not articles:
        raise EmptyDigestInput()

    if client is None:
        return DigestResult(
            text=fallback_digest(articles),
            strategy=STRATEGY_FALLBACK,
            error="no generation client configured",
        )

    model = getattr(client, "model", None)
    try:
        text = client.generate(build_digest_prompt(articles))
    except GenerationError as e:
        logger.warning(f"Digest generation failed, using fallback: {e}")
        return DigestResult(
            text=fallback_digest(articles),
            strategy=STRATEGY_FALLBACK,
            model=model,
            error=str(e),
        )
    except Exception as e:
        logger.warning(f"Digest generation raised unexpectedly, using fallback: {e}", exc_info=True)
        return DigestResult(
            text=fallback_digest(articles),
            strategy=STRATEGY_FALLBACK,
            model=model,
            error=str(e),
        )
    return DigestResult(text=text, strategy=STRATEGY_MODEL, model=model)

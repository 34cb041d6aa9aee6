"""Shared article data types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

# Upstream headline record as returned by NewsAPI; consumed only by the normalizer.
RawHeadline = Dict[str, Any]


@dataclass(frozen=True)
class Article:
    """Canonical article, keyed by `url`.

    Only built when title, url and published_at are all present.
    """

    title: str
    url: str
    published_at: datetime
    description: Optional[str] = None
    source: Optional[str] = None
    content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "url": self.url,
            "published_at": self.published_at.isoformat(),
            "source": self.source,
            "content": self.content,
        }


@dataclass(frozen=True)
class StoredArticle(Article):
    """An article read back from the store, with its generated columns."""

    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["id"] = self.id
        out["created_at"] = self.created_at.isoformat() if self.created_at else None
        return out

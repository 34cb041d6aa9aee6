"""Error taxonomy for ingestion runs and digest requests."""

from __future__ import annotations


class NewsDigestError(Exception):
    """Base class for errors raised by newsdigest."""


class ConfigurationError(NewsDigestError):
    """Missing or invalid credentials/settings. Fatal before any work starts."""


class HeadlineSourceError(NewsDigestError):
    """One upstream query shape failed (non-ok status, HTTP error, bad body)."""


class NoHeadlinesAvailable(HeadlineSourceError):
    """Every query shape came back empty."""

    def __init__(self, message: str = "no data available"):
        super().__init__(message)


class StoreWriteError(NewsDigestError):
    """The batch upsert was rejected by the store.

    The message is the driver's error text, unmodified.
    """


class GenerationError(NewsDigestError):
    """The generative model call failed or returned something unusable."""


class EmptyDigestInput(NewsDigestError):
    """A digest was requested for an empty article list."""

    def __init__(self, message: str = "No articles provided"):
        super().__init__(message)

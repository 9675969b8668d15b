"""Exception taxonomy shared by the scraper, store, and answer layers."""

from __future__ import annotations


class AetherScribeError(Exception):
    """Base class for every error raised by this package."""


class ExtractionError(AetherScribeError):
    """A URL-scoped analysis failed.  Recoverable at the request boundary."""


class InvalidURL(ExtractionError, ValueError):
    """The input is not a well-formed absolute ``http(s)`` URL."""


class FetchError(ExtractionError):
    """The page could not be retrieved or rendered."""


class TransientFetchError(FetchError):
    """A fetch failure that is worth one more attempt (resets, 5xx, DNS)."""


class FetchTimeoutError(FetchError, TimeoutError):
    """Navigation exceeded the configured deadline."""


class NoContentFound(ExtractionError):
    """The cleaned main-content region is below the minimum length."""


class UpstreamServiceError(AetherScribeError):
    """The completion service failed or returned an unusable response."""


class CacheUnavailable(AetherScribeError):
    """The shared key-value store could not be reached."""


class RateLimitExceeded(AetherScribeError):
    """Admission denied for the current sliding window."""

    def __init__(self, limit: int, remaining: int, reset: int) -> None:
        super().__init__(f"Rate limit of {limit} requests exceeded; resets at {reset}")
        self.limit = limit
        self.remaining = remaining
        self.reset = reset

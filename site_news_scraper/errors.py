from __future__ import annotations

from typing import Optional, Sequence


class ScraperError(Exception):
    """Base class for every error raised by site_news_scraper."""


class FetchError(ScraperError):
    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class NetworkError(FetchError):
    def __init__(self, reason: str, url: Optional[str] = None) -> None:
        super().__init__(f"network error: {reason}", url)
        self.reason = reason


class HttpError(FetchError):
    def __init__(self, status: int, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status}", url)
        self.status = status


class DecodingFailed(FetchError):
    def __init__(self, encoding: str, url: Optional[str] = None) -> None:
        super().__init__(f"could not decode payload as {encoding}", url)
        self.encoding = encoding


class FetchTimeout(FetchError):
    def __init__(self, url: Optional[str] = None) -> None:
        super().__init__("request timed out", url)


class InvalidResponse(FetchError):
    def __init__(self, url: Optional[str] = None) -> None:
        super().__init__("invalid response", url)


class InvalidSourceURL(ScraperError):
    def __init__(self, url: str) -> None:
        super().__init__(f"malformed source URL: {url!r}")
        self.url = url


class ExtractionError(ScraperError):
    pass


class MissingRequiredField(ExtractionError):
    """A single candidate element lacks a field the strategy cannot do without."""

    def __init__(self, field: str) -> None:
        super().__init__(f"missing required field: {field}")
        self.field = field


class NoArticlesFound(ScraperError):
    """Every applicable strategy returned nothing (or failed) for a document."""

    def __init__(self, url: str, failures: Sequence = ()) -> None:
        failures = list(failures)
        if failures:
            names = ", ".join(f.identifier for f in failures)
            message = f"no articles found at {url} (failed strategies: {names})"
        else:
            message = f"no articles found at {url}"
        super().__init__(message)
        self.url = url
        self.failures = failures

    @property
    def strategies_failed(self) -> bool:
        return bool(self.failures)

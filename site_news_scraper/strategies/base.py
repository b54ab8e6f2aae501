from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, TypeVar

from bs4.element import Tag

from site_news_scraper.dates import DateNormalizer
from site_news_scraper.discover import host_of
from site_news_scraper.errors import MissingRequiredField
from site_news_scraper.types import ExtractedArticle, StrategyDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StrategyRun:
    articles: list[ExtractedArticle] = field(default_factory=list)
    partial_failures: list[MissingRequiredField] = field(default_factory=list)


def host_matches(pattern: str, host: str) -> bool:
    pattern = pattern.strip().lower()
    host = host.lower()
    if pattern.startswith("*."):
        domain = pattern[2:]
        return host == domain or host.endswith("." + domain)
    return host == pattern


def matches_any(patterns: Iterable[str], url: str) -> bool:
    patterns = list(patterns)
    if not patterns:
        return True
    host = host_of(url)
    if not host:
        return False
    return any(host_matches(p, host) for p in patterns)


class ExtractionStrategy:
    """Turns one document into zero or more articles.

    Returning an empty list means "does not apply here". Raising
    MissingRequiredField from a per-element builder drops that element only
    (see ``_collect``); any other exception escaping ``extract`` fails the
    whole strategy for this document.
    """

    identifier: str = "base"
    priority: int = 0
    domain_patterns: tuple[str, ...] = ()

    def __init__(self, dates: DateNormalizer | None = None) -> None:
        self.dates = dates or DateNormalizer()
        self._local = threading.local()

    @property
    def descriptor(self) -> StrategyDescriptor:
        return StrategyDescriptor(
            identifier=self.identifier,
            priority=self.priority,
            domain_patterns=tuple(self.domain_patterns),
        )

    def matches(self, url: str) -> bool:
        return matches_any(self.domain_patterns, url)

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        raise NotImplementedError

    def run(self, markup: str, base_url: str) -> StrategyRun:
        """Call ``extract`` and keep the elements ``_collect`` dropped along the way."""

        self._local.partials = []
        try:
            articles = self.extract(markup, base_url)
        finally:
            partials = self._local.partials
            del self._local.partials
        return StrategyRun(articles=list(articles or []), partial_failures=partials)

    def _collect(self, elements: Iterable[T], build: Callable[[T], Optional[ExtractedArticle]]) -> list[ExtractedArticle]:
        results: list[ExtractedArticle] = []
        for el in elements:
            try:
                article = build(el)
            except MissingRequiredField as exc:
                logger.debug("[%s] skipping element: %s", self.identifier, exc)
                partials = getattr(self._local, "partials", None)
                if partials is not None:
                    partials.append(exc)
                continue
            if article is not None:
                results.append(article)
        return results

    def _parse_date(self, *candidates: str | None):
        for c in candidates:
            if c:
                found = self.dates.parse(c)
                if found is not None:
                    return found
        return None

    def _date_from(self, el: Tag | None):
        """Prefer a ``datetime`` or ``title`` attribute, then the element text."""

        if el is None:
            return None
        return self._parse_date(
            str(el.get("datetime") or ""),
            str(el.get("title") or ""),
            el.get_text(" ", strip=True),
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.identifier!r} priority={self.priority}>"

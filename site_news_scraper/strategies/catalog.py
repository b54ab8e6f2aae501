from __future__ import annotations

from typing import Iterable

from site_news_scraper.config import DEFAULT_STRATEGIES
from site_news_scraper.dates import DateNormalizer
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.strategies.feed import FeedStrategy
from site_news_scraper.strategies.general import GeneralStrategy
from site_news_scraper.strategies.page import PageMetadataStrategy
from site_news_scraper.strategies.sites import (
    AppleNewsroomStrategy,
    HackerNewsStrategy,
    PostEntryStrategy,
    WordPressStrategy,
)


BUILTIN_STRATEGIES: dict[str, type[ExtractionStrategy]] = {
    cls.identifier: cls
    for cls in (
        AppleNewsroomStrategy,
        HackerNewsStrategy,
        FeedStrategy,
        PostEntryStrategy,
        WordPressStrategy,
        GeneralStrategy,
        PageMetadataStrategy,
    )
}


def build_strategy(name: str, dates: DateNormalizer | None = None) -> ExtractionStrategy:
    try:
        cls = BUILTIN_STRATEGIES[name]
    except KeyError:
        known = ", ".join(sorted(BUILTIN_STRATEGIES))
        raise ValueError(f"unknown strategy {name!r} (known: {known})") from None
    return cls(dates=dates)


def build_strategies(names: Iterable[str], dates: DateNormalizer | None = None) -> list[ExtractionStrategy]:
    return [build_strategy(n, dates) for n in names]


def default_strategies(dates: DateNormalizer | None = None) -> list[ExtractionStrategy]:
    return build_strategies(DEFAULT_STRATEGIES, dates)

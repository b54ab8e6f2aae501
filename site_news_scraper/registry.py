from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable, Optional

from site_news_scraper.dedup import dedup_by_url
from site_news_scraper.discover import host_of
from site_news_scraper.errors import MissingRequiredField
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.types import ExtractedArticle, StrategyDescriptor

logger = logging.getLogger(__name__)


def _by_priority(strategies: Iterable[ExtractionStrategy]) -> list[ExtractionStrategy]:
    # sorted() is stable, so equal priorities keep registration order
    return sorted(strategies, key=lambda s: s.priority, reverse=True)


@dataclass(frozen=True)
class StrategyFailure:
    identifier: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.identifier}: {self.error}"


@dataclass(frozen=True)
class PartialFailure:
    identifier: str
    error: MissingRequiredField

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class ExtractionReport:
    articles: list[ExtractedArticle] = field(default_factory=list)
    failures: list[StrategyFailure] = field(default_factory=list)
    partial_failures: list[PartialFailure] = field(default_factory=list)
    strategies_run: list[str] = field(default_factory=list)
    duplicates_dropped: int = 0

    @property
    def exhausted(self) -> bool:
        """Nothing extracted and at least one strategy raised."""
        return not self.articles and bool(self.failures)


class StrategyRegistry:
    """Holds global strategies, per-source overrides and a per-host selection cache.

    The cache is the only state shared between concurrently processed sources.
    Populating it is idempotent, so a plain lock around reads and writes is
    enough.
    """

    def __init__(self, strategies: Iterable[ExtractionStrategy] | None = None) -> None:
        self._global: list[ExtractionStrategy] = _by_priority(strategies or [])
        self._overrides: dict[str, list[ExtractionStrategy]] = {}
        self._host_cache: dict[str, list[ExtractionStrategy]] = {}
        self._lock = threading.Lock()

    def register_global(self, strategy: ExtractionStrategy) -> None:
        self.register_global_many([strategy])

    def register_global_many(self, strategies: Iterable[ExtractionStrategy]) -> None:
        with self._lock:
            self._global = _by_priority([*self._global, *strategies])
            self._host_cache.clear()

    def set_override(self, source_id: str, strategies: Iterable[ExtractionStrategy]) -> None:
        with self._lock:
            self._overrides[source_id] = _by_priority(strategies)

    def append_override(self, source_id: str, strategy: ExtractionStrategy) -> None:
        with self._lock:
            existing = self._overrides.get(source_id, [])
            self._overrides[source_id] = _by_priority([*existing, strategy])

    def clear_override(self, source_id: str) -> None:
        with self._lock:
            self._overrides.pop(source_id, None)

    def clear_cache(self) -> None:
        with self._lock:
            self._host_cache.clear()

    def list_global(self) -> list[StrategyDescriptor]:
        with self._lock:
            return [s.descriptor for s in self._global]

    def list_override(self, source_id: str) -> Optional[list[StrategyDescriptor]]:
        with self._lock:
            found = self._overrides.get(source_id)
            return None if found is None else [s.descriptor for s in found]

    def strategies_for_url(self, url: str) -> list[StrategyDescriptor]:
        """Global strategies whose domain patterns match ``url`` (no fallback, no cache)."""
        with self._lock:
            candidates = list(self._global)
        return [s.descriptor for s in candidates if s.matches(url)]

    def select(self, url: str, source_id: str | None = None) -> list[ExtractionStrategy]:
        host = host_of(url)
        with self._lock:
            if source_id is not None:
                override = self._overrides.get(source_id)
                if override:
                    return list(override)
            if host and host in self._host_cache:
                return list(self._host_cache[host])
            candidates = list(self._global)

        matched = [s for s in candidates if s.matches(url)]
        selected = matched or candidates

        if host:
            with self._lock:
                self._host_cache[host] = selected
        return list(selected)

    def extract(self, markup: str, url: str, source_id: str | None = None) -> ExtractionReport:
        strategies = self.select(url, source_id)
        collected: list[ExtractedArticle] = []
        failures: list[StrategyFailure] = []
        partials: list[PartialFailure] = []

        for strategy in strategies:
            try:
                outcome = strategy.run(markup, url)
            except Exception as exc:
                failures.append(StrategyFailure(strategy.identifier, exc))
                logger.warning("[%s] failed on %s: %s", strategy.identifier, url, exc)
                continue

            articles = outcome.articles
            partials.extend(PartialFailure(strategy.identifier, e) for e in outcome.partial_failures)
            if outcome.partial_failures:
                logger.info(
                    "[%s] dropped %d incomplete elements from %s",
                    strategy.identifier,
                    len(outcome.partial_failures),
                    url,
                )
            if articles:
                logger.info("[%s] extracted %d articles from %s", strategy.identifier, len(articles), url)
                collected.extend(articles)
            else:
                logger.debug("[%s] found no articles in %s", strategy.identifier, url)

        if not collected and failures:
            logger.warning(
                "Every strategy failed or came back empty for %s: %s",
                url,
                "; ".join(str(f) for f in failures),
            )

        deduped = dedup_by_url(collected)
        return ExtractionReport(
            articles=deduped.kept,
            failures=failures,
            partial_failures=partials,
            strategies_run=[s.identifier for s in strategies],
            duplicates_dropped=deduped.dropped,
        )

from __future__ import annotations

import asyncio
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Sequence, Union
from urllib.parse import urlparse

import aiohttp

from site_news_scraper.config import Config, load_config, load_sources
from site_news_scraper.dates import DateNormalizer, utc_now
from site_news_scraper.dedup import dedup_by_url
from site_news_scraper.errors import (
    FetchError,
    FetchTimeout,
    InvalidSourceURL,
    NoArticlesFound,
)
from site_news_scraper.http import HtmlFetcher, build_fetcher
from site_news_scraper.registry import StrategyRegistry
from site_news_scraper.strategies.catalog import build_strategies
from site_news_scraper.types import (
    CanonicalItem,
    ExtractedArticle,
    RawDocument,
    Source,
    SourceGroup,
)

logger = logging.getLogger(__name__)


SourceInput = Union[Source, SourceGroup]


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    STRUCTURAL = "structural"
    EXTRACTION = "extraction"
    EXHAUSTED = "exhausted"


def classify_failure(exc: BaseException) -> FailureKind:
    if isinstance(exc, FetchError):
        return FailureKind.TRANSPORT
    if isinstance(exc, InvalidSourceURL):
        return FailureKind.STRUCTURAL
    if isinstance(exc, NoArticlesFound):
        return FailureKind.EXHAUSTED
    return FailureKind.EXTRACTION


@dataclass(frozen=True)
class SourceFailure:
    source: Source
    kind: FailureKind
    error: BaseException

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class IngestionSummary:
    succeeded: int = 0
    failed: int = 0
    total_items: int = 0
    failures: dict[str, SourceFailure] = field(default_factory=dict)


@dataclass(frozen=True)
class IngestionResult:
    items: list[CanonicalItem]
    summary: IngestionSummary


def flatten_sources(sources: Iterable[SourceInput]) -> list[Source]:
    out: list[Source] = []
    for s in sources:
        if isinstance(s, SourceGroup):
            out.extend(s.sources)
        else:
            out.append(s)
    return out


def validate_source_url(url: str) -> str:
    """Return the trimmed URL, or raise InvalidSourceURL before any network call."""

    candidate = (url or "").strip()
    try:
        p = urlparse(candidate)
    except ValueError:
        raise InvalidSourceURL(url) from None
    if p.scheme not in ("http", "https") or not p.hostname or any(c.isspace() for c in candidate):
        raise InvalidSourceURL(url)
    return candidate


def canonical_id(*parts: str) -> str:
    return hashlib.sha256("::".join(parts).encode("utf-8")).hexdigest()


def to_canonical_item(article: ExtractedArticle, source: Source, now: datetime) -> CanonicalItem:
    published_at = article.published_at or now
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    return CanonicalItem(
        id=canonical_id(source.id, article.url),
        title=article.title,
        url=article.url,
        published_at=published_at,
        summary=article.summary,
        author=article.author,
        image_url=article.image_url,
        source=source.label,
        source_url=source.url,
        tags=tuple(article.tags),
    )


class IngestionOrchestrator:
    """Fetch every source concurrently, extract, and merge into one timeline.

    Per-source problems end up in the run summary; ``run`` itself does not
    raise for them. ``refresh_source`` is the one entry point that lets a
    source's error reach the caller.
    """

    def __init__(
        self,
        fetcher: HtmlFetcher,
        registry: StrategyRegistry,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._registry = registry
        self._clock = clock or utc_now

    @property
    def registry(self) -> StrategyRegistry:
        return self._registry

    def extract_document(self, source: Source, doc: RawDocument, now: datetime) -> list[CanonicalItem]:
        report = self._registry.extract(doc.markup, doc.url, source_id=source.id)
        if not report.articles:
            raise NoArticlesFound(doc.url, report.failures)
        return [to_canonical_item(a, source, now) for a in report.articles]

    async def _process(self, source: Source, now: datetime) -> list[CanonicalItem]:
        url = validate_source_url(source.url)
        markup = await self._fetcher.fetch(url)
        return self.extract_document(source, RawDocument(url=url, markup=markup), now)

    async def refresh_source(self, source: Source) -> list[CanonicalItem]:
        """Process one source and let its error propagate."""

        items = await self._process(source, self._clock())
        items = dedup_by_url(items).kept
        items.sort(key=lambda it: it.published_at, reverse=True)
        return items

    async def run(self, sources: Sequence[SourceInput], *, deadline: float | None = None) -> IngestionResult:
        flat = flatten_sources(sources)
        now = self._clock()
        logger.info("Ingesting %d sources", len(flat))

        tasks = [asyncio.ensure_future(self._process(s, now)) for s in flat]
        if tasks:
            try:
                _done, pending = await asyncio.wait(tasks, timeout=deadline)
            except asyncio.CancelledError:
                for t in tasks:
                    t.cancel()
                raise
            for t in pending:
                t.cancel()
            if pending:
                logger.warning("Deadline of %ss reached with %d sources still running", deadline, len(pending))
                await asyncio.gather(*pending, return_exceptions=True)

        collected: list[CanonicalItem] = []
        failures: dict[str, SourceFailure] = {}
        succeeded = 0
        failed = 0

        # walk in input order so ties in publish time keep source order
        for source, task in zip(flat, tasks):
            if task.cancelled():
                error: BaseException | None = FetchTimeout(source.url)
            else:
                error = task.exception()

            if error is None:
                items = task.result()
                succeeded += 1
                collected.extend(items)
                logger.info("Parsed %d items from %s", len(items), source.label)
                continue

            failure = SourceFailure(source=source, kind=classify_failure(error), error=error)
            failed += 1
            if source.id in failures:
                logger.warning("Duplicate source id %r; keeping the last failure only", source.id)
            failures[source.id] = failure
            logger.warning("Source %s failed (%s): %s", source.label, failure.kind.value, error)

        items = dedup_by_url(collected).kept
        items.sort(key=lambda it: it.published_at, reverse=True)

        summary = IngestionSummary(
            succeeded=succeeded,
            failed=failed,
            total_items=len(items),
            failures=failures,
        )
        logger.info(
            "Run finished: %d succeeded | %d failed | %d items",
            summary.succeeded,
            summary.failed,
            summary.total_items,
        )
        return IngestionResult(items=items, summary=summary)


def build_registry(cfg: Config, dates: DateNormalizer | None = None) -> StrategyRegistry:
    registry = StrategyRegistry(build_strategies(cfg.enabled_strategies, dates))
    for source_id, names in cfg.strategy_overrides.items():
        registry.set_override(source_id, build_strategies(names, dates))
    return registry


async def run_pipeline(
    config_path: str | None,
    sources_path: str,
    *,
    deadline: float | None = None,
) -> IngestionResult:
    cfg = load_config(config_path)
    groups = load_sources(sources_path)
    http_cfg = cfg.http

    connector = aiohttp.TCPConnector(limit=int(http_cfg.max_connections))
    async with aiohttp.ClientSession(connector=connector) as session:
        fetcher = build_fetcher(
            session,
            http_cfg,
            max_in_flight_requests=cfg.max_in_flight_requests,
            rate_limit=cfg.rate_limit,
            retry=cfg.retry,
        )
        orchestrator = IngestionOrchestrator(fetcher, build_registry(cfg))
        return await orchestrator.run(groups, deadline=deadline)

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Iterable, Optional
from urllib.parse import urlparse

import aiohttp

from site_news_scraper.config import HttpSettings
from site_news_scraper.encoding import decode_markup
from site_news_scraper.errors import (
    FetchError,
    FetchTimeout,
    HttpError,
    InvalidResponse,
    NetworkError,
)

logger = logging.getLogger(__name__)


_MARKUP_CONTENT_TYPES = ("text/html", "application/xhtml", "xml")


@dataclass
class RetryPolicy:
    max_attempts: int = 1
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 8.0
    retry_statuses: set[int] = field(default_factory=set)


class DomainRateLimiter:
    """Simple per-domain token bucket implemented with asyncio primitives."""

    def __init__(self, max_requests_per_period: int, period_seconds: float) -> None:
        self._max = max_requests_per_period
        self._period = period_seconds
        self._domain_locks: dict[str, asyncio.Lock] = {}
        self._domain_times: dict[str, list[float]] = {}

    async def acquire(self, url: str) -> None:
        domain = urlparse(url).netloc.lower()
        lock = self._domain_locks.setdefault(domain, asyncio.Lock())
        loop = asyncio.get_running_loop()

        while True:
            async with lock:
                now = loop.time()
                times = self._domain_times.setdefault(domain, [])
                cutoff = now - self._period
                while times and times[0] < cutoff:
                    times.pop(0)

                if len(times) < self._max:
                    times.append(now)
                    return

                # wait until the oldest token expires
                wait_for = (times[0] + self._period) - now

            await asyncio.sleep(max(0.0, wait_for))


@dataclass(frozen=True)
class FetchOutcome:
    url: str
    markup: Optional[str] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class _RetryableStatus(Exception):
    def __init__(self, status: int) -> None:
        super().__init__(f"retryable status {status}")
        self.status = status


class HtmlFetcher:
    """Fetch pages over a shared aiohttp session and decode them to text.

    ``fetch`` raises a FetchError subclass; ``fetch_many`` never raises for a
    single URL and reports every outcome keyed by URL.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        settings: HttpSettings | None = None,
        *,
        semaphore: asyncio.Semaphore | None = None,
        limiter: DomainRateLimiter | None = None,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or HttpSettings()
        self._sem = semaphore or asyncio.Semaphore(8)
        self._limiter = limiter
        self._retry = retry or RetryPolicy()
        s = self._settings
        self._ua_overrides = {k.lower(): str(v) for k, v in s.user_agent_overrides.items()}
        self._hdr_overrides = {
            domain.lower(): {str(hk): (None if hv is None else str(hv)) for hk, hv in (hmap or {}).items()}
            for domain, hmap in s.header_overrides.items()
        }
        self._timeout = aiohttp.ClientTimeout(
            total=s.resource_timeout_seconds,
            sock_read=s.timeout_seconds,
        )

    @staticmethod
    def _lookup_domain(table: dict, domain: str):
        found = table.get(domain)
        if found is None and domain.startswith("www."):
            found = table.get(domain.removeprefix("www."))
        return found

    def headers_for(self, url: str) -> dict[str, str]:
        domain = urlparse(url).netloc.lower()
        s = self._settings

        headers: dict[str, str] = {
            "User-Agent": self._lookup_domain(self._ua_overrides, domain) or s.user_agent,
            "Accept": s.accept,
            "Accept-Language": s.accept_language,
            "Accept-Encoding": s.accept_encoding,
        }

        overrides = self._lookup_domain(self._hdr_overrides, domain)
        if overrides:
            for k, v in overrides.items():
                if v is None:
                    headers.pop(k, None)
                else:
                    headers[k] = v
        return headers

    async def _get_once(self, url: str, headers: dict[str, str]) -> str:
        async with self._session.get(url, headers=headers, timeout=self._timeout) as r:
            status = r.status
            if not isinstance(status, int):
                raise InvalidResponse(url)
            if status in self._retry.retry_statuses:
                raise _RetryableStatus(status)
            if not 200 <= status < 300:
                raise HttpError(status, url)

            content_type = r.headers.get("Content-Type")
            if content_type and not any(t in content_type.lower() for t in _MARKUP_CONTENT_TYPES):
                logger.warning("Unexpected Content-Type %r for %s", content_type, url)

            body = await r.read()
        return decode_markup(body, content_type, url)

    async def fetch(self, url: str) -> str:
        headers = self.headers_for(url)

        for attempt in range(1, self._retry.max_attempts + 1):
            if self._limiter is not None:
                await self._limiter.acquire(url)
            async with self._sem:
                try:
                    return await self._get_once(url, headers)
                except FetchError:
                    raise
                except (_RetryableStatus, aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    if attempt >= self._retry.max_attempts:
                        raise self._map_error(exc, url) from exc
                    logger.debug("Attempt %d for %s failed: %s", attempt, url, exc)

            delay = min(
                self._retry.max_delay_seconds,
                self._retry.base_delay_seconds * (2 ** (attempt - 1)),
            )
            # jitter to avoid thundering herd
            delay *= random.uniform(0.7, 1.3)
            await asyncio.sleep(delay)

        raise NetworkError("no attempts made", url)

    @staticmethod
    def _map_error(exc: BaseException, url: str) -> FetchError:
        if isinstance(exc, _RetryableStatus):
            return HttpError(exc.status, url)
        if isinstance(exc, asyncio.TimeoutError):
            return FetchTimeout(url)
        if isinstance(exc, aiohttp.ClientResponseError):
            return HttpError(exc.status, url)
        return NetworkError(str(exc) or exc.__class__.__name__, url)

    async def _outcome(self, url: str) -> FetchOutcome:
        try:
            return FetchOutcome(url=url, markup=await self.fetch(url))
        except asyncio.CancelledError:
            raise
        except FetchError as exc:
            logger.warning("Fetching %s failed: %s", url, exc)
            return FetchOutcome(url=url, error=exc)

    async def fetch_many(self, urls: Iterable[str]) -> dict[str, FetchOutcome]:
        unique = list(dict.fromkeys(urls))
        outcomes = await asyncio.gather(*(self._outcome(u) for u in unique))
        return {o.url: o for o in outcomes}


def build_fetcher(
    session: aiohttp.ClientSession,
    settings: HttpSettings,
    *,
    max_in_flight_requests: int = 8,
    rate_limit: dict | None = None,
    retry: dict | None = None,
) -> HtmlFetcher:
    """Assemble a fetcher from the ``rate_limit`` and ``retry`` config sections."""

    limiter = None
    rate_limit = rate_limit or {}
    if bool(rate_limit.get("enabled", False)):
        limiter = DomainRateLimiter(
            max_requests_per_period=int(rate_limit.get("max_requests_per_period", 4)),
            period_seconds=float(rate_limit.get("period_seconds", 1.0)),
        )

    retry = retry or {}
    policy = RetryPolicy(
        max_attempts=max(1, int(retry.get("max_attempts", 1))),
        base_delay_seconds=float(retry.get("base_delay_seconds", 0.5)),
        max_delay_seconds=float(retry.get("max_delay_seconds", 8.0)),
        retry_statuses=set(int(x) for x in retry.get("retry_statuses", [])),
    )

    return HtmlFetcher(
        session,
        settings,
        semaphore=asyncio.Semaphore(max(1, int(max_in_flight_requests))),
        limiter=limiter,
        retry=policy,
    )

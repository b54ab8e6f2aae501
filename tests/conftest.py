"""Shared fakes: an aiohttp-like session that serves canned responses."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import pytest

from site_news_scraper.dates import DateNormalizer


FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class FakeRoute:
    status: int = 200
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "text/html; charset=utf-8"})
    raises: Optional[BaseException] = None
    delay: float = 0.0


class FakeResponse:
    def __init__(self, route: FakeRoute) -> None:
        self._route = route
        self.status = route.status
        self.headers = route.headers

    async def __aenter__(self) -> "FakeResponse":
        if self._route.delay:
            await asyncio.sleep(self._route.delay)
        if self._route.raises is not None:
            raise self._route.raises
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def read(self) -> bytes:
        return self._route.body


class FakeSession:
    def __init__(self, routes: dict[str, FakeRoute] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict]] = []

    def add(self, url: str, **kwargs) -> None:
        self.routes[url] = FakeRoute(**kwargs)

    def get(self, url: str, headers: dict | None = None, timeout=None) -> FakeResponse:
        self.calls.append((url, dict(headers or {})))
        route = self.routes.get(url)
        if route is None:
            route = FakeRoute(status=404, body=b"not found")
        return FakeResponse(route)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fixed_dates() -> DateNormalizer:
    return DateNormalizer(clock=lambda: FIXED_NOW)

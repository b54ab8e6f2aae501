from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from site_news_scraper.types import Source, SourceGroup


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_STRATEGIES = (
    "apple_newsroom",
    "hacker_news",
    "feed",
    "post_entry",
    "wordpress",
    "general",
)


@dataclass(frozen=True)
class HttpSettings:
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    accept_language: str = "en-US,en;q=0.9"
    accept_encoding: str = "gzip, deflate"
    timeout_seconds: float = 10.0
    resource_timeout_seconds: float = 20.0
    max_connections: int = 20
    user_agent_overrides: dict[str, str] = field(default_factory=dict)
    header_overrides: dict[str, dict[str, str | None]] = field(default_factory=dict)


@dataclass(frozen=True)
class Config:
    raw: dict[str, Any]

    def _section(self, name: str) -> dict[str, Any]:
        return self.raw.get(name) or {}

    @property
    def http(self) -> HttpSettings:
        h = self._section("http")
        timeout = float(h.get("timeout_seconds", 10.0))
        return HttpSettings(
            user_agent=str(h.get("user_agent") or DEFAULT_USER_AGENT),
            accept=str(h.get("accept") or HttpSettings.accept),
            accept_language=str(h.get("accept_language") or HttpSettings.accept_language),
            accept_encoding=str(h.get("accept_encoding") or HttpSettings.accept_encoding),
            timeout_seconds=timeout,
            resource_timeout_seconds=float(h.get("resource_timeout_seconds", timeout * 2)),
            max_connections=int(h.get("max_connections", 20)),
            user_agent_overrides=dict(h.get("user_agent_overrides") or {}),
            header_overrides=dict(h.get("header_overrides") or {}),
        )

    @property
    def max_in_flight_requests(self) -> int:
        return int(self._section("concurrency").get("max_in_flight_requests", 8))

    @property
    def rate_limit(self) -> dict[str, Any]:
        return self._section("rate_limit")

    @property
    def retry(self) -> dict[str, Any]:
        return self._section("retry")

    @property
    def enabled_strategies(self) -> list[str]:
        names = self._section("strategies").get("enabled")
        if names is None:
            return list(DEFAULT_STRATEGIES)
        return [str(n) for n in names]

    @property
    def strategy_overrides(self) -> dict[str, list[str]]:
        overrides = self._section("strategies").get("overrides") or {}
        return {str(sid): [str(n) for n in (names or [])] for sid, names in overrides.items()}


def load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path | None = None) -> Config:
    if path is None:
        return Config(raw={})
    return Config(raw=load_yaml(path))


def _parse_source(entry: dict[str, Any]) -> Source:
    url = str(entry.get("url") or "")
    return Source(
        id=str(entry.get("id") or url),
        label=str(entry.get("label") or entry.get("title") or url),
        url=url,
    )


def parse_sources(data: dict[str, Any]) -> list[SourceGroup]:
    """Read ``groups:`` and a flat ``sources:`` list into source groups.

    A flat list ends up in a group called ``default`` after any named groups.
    """

    groups: list[SourceGroup] = []
    for g in data.get("groups") or []:
        sources = tuple(_parse_source(s) for s in (g.get("sources") or []) if s)
        groups.append(SourceGroup(name=str(g.get("name") or "default"), sources=sources))

    flat = [_parse_source(s) for s in (data.get("sources") or []) if s]
    if flat:
        groups.append(SourceGroup(name="default", sources=tuple(flat)))
    return groups


def load_sources(path: str | Path) -> list[SourceGroup]:
    return parse_sources(load_yaml(path))

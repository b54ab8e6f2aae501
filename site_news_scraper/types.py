from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


UNTITLED = "Untitled"
SUMMARY_MAX_CHARS = 300


@dataclass(frozen=True)
class Source:
    id: str
    label: str
    url: str


@dataclass(frozen=True)
class SourceGroup:
    name: str
    sources: tuple[Source, ...] = ()


@dataclass(frozen=True)
class RawDocument:
    url: str
    markup: str


@dataclass(frozen=True)
class ExtractedArticle:
    title: str
    url: str
    published_at: Optional[datetime] = None
    summary: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # frozen: go through object.__setattr__ for normalization
        if not (self.title or "").strip():
            object.__setattr__(self, "title", UNTITLED)
        if self.summary is not None and len(self.summary) > SUMMARY_MAX_CHARS:
            object.__setattr__(self, "summary", self.summary[:SUMMARY_MAX_CHARS])
        if not isinstance(self.tags, tuple):
            object.__setattr__(self, "tags", tuple(self.tags))


@dataclass(frozen=True)
class CanonicalItem:
    id: str
    title: str
    url: str
    published_at: datetime
    source: str
    source_url: str
    summary: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StrategyDescriptor:
    identifier: str
    priority: int = 0
    domain_patterns: tuple[str, ...] = ()

    def __str__(self) -> str:
        return f"{self.identifier} (priority: {self.priority})"

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, TypeVar


class HasUrl(Protocol):
    url: str


T = TypeVar("T", bound=HasUrl)


@dataclass(frozen=True)
class DedupResult:
    kept: list
    dropped: int


def dedup_by_url(items: Iterable[T]) -> DedupResult:
    """Keep the first item seen for each URL, preserving order."""

    seen: set[str] = set()
    kept: list[T] = []
    dropped = 0
    for it in items:
        if it.url in seen:
            dropped += 1
            continue
        seen.add(it.url)
        kept.append(it)
    return DedupResult(kept=kept, dropped=dropped)

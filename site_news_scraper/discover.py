from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from site_news_scraper.extract import element_text


@dataclass(frozen=True)
class DiscoveredLink:
    url: str
    title: str


_NAV_SUBSTRINGS = (
    "/tag/",
    "/category/",
    "/page/",
    "/author/",
    "/archive/",
    "#",
)


def resolve_href(base_url: str, href: str | None) -> Optional[str]:
    """Resolve ``href`` against ``base_url``; None for empty or non-web links."""

    if not href:
        return None
    href = href.strip()
    if not href:
        return None
    if any(href.lower().startswith(x) for x in ("mailto:", "tel:", "javascript:")):
        return None
    try:
        url = urljoin(base_url, href)
        p = urlparse(url)
    except ValueError:
        return None
    if p.scheme not in ("http", "https") or not p.netloc:
        return None
    return url


def host_of(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_navigation_link(url: str) -> bool:
    """Pagination, tag/category/author/archive pages and trailing-slash list pages."""

    try:
        p = urlparse(url)
    except ValueError:
        return True
    path = p.path.lower()

    for s in _NAV_SUBSTRINGS:
        if s in path or s in url:
            return True

    if "page=" in path or "page=" in p.query.lower():
        return True
    if path.endswith("/") and path != "/":
        return True
    return False


def scan_links(soup: BeautifulSoup, base_url: str, *, min_text_chars: int = 10) -> list[DiscoveredLink]:
    """Last-resort scan: every ``a[href]`` with substantial text that is not navigation."""

    out: list[DiscoveredLink] = []
    for a in soup.select("a[href]"):
        text = element_text(a)
        if len(text) < min_text_chars:
            continue
        url = resolve_href(base_url, a.get("href"))
        if not url or is_navigation_link(url):
            continue
        out.append(DiscoveredLink(url=url, title=text))
    return out

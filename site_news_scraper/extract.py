from __future__ import annotations

import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag
from soupsieve import SelectorSyntaxError


_AUTHOR_PREFIXES = ("By ", "Author: ")


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", "lxml")


def extract_text_from_html_fragment(html_fragment: str) -> str:
    """Convert an HTML snippet (e.g., RSS summary) to plain text."""

    soup = BeautifulSoup(html_fragment or "", "lxml")
    return normalize_text(soup.get_text(" ", strip=True))


def normalize_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def element_text(el: Tag | None) -> str:
    if el is None:
        return ""
    return normalize_text(el.get_text(" ", strip=True))


def select_first(root: Tag, selector: str) -> Optional[Tag]:
    """``select_one`` that treats an unsupported selector as no match."""

    try:
        return root.select_one(selector)
    except (SelectorSyntaxError, NotImplementedError):
        return None


def first_text(
    root: Tag,
    selectors: Iterable[str],
    *,
    min_chars: int = 1,
    max_chars: int | None = None,
) -> Optional[str]:
    """Text of the first element matched by the first selector that yields acceptable text.

    Each selector contributes only its first match.
    """

    for sel in selectors:
        text = element_text(select_first(root, sel))
        if len(text) < min_chars:
            continue
        if max_chars is not None and len(text) >= max_chars:
            continue
        return text
    return None


def attr_text(el: Tag | None, name: str) -> str:
    if el is None:
        return ""
    value = el.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return str(value or "").strip()


def class_name(el: Tag) -> str:
    return attr_text(el, "class")


def meta_content(soup: Tag, *selectors: str) -> Optional[str]:
    for sel in selectors:
        value = attr_text(select_first(soup, sel), "content")
        if value:
            return value
    return None


def clean_author(text: str) -> str:
    for prefix in _AUTHOR_PREFIXES:
        text = text.replace(prefix, "")
    return text.strip()


def extract_title(soup: BeautifulSoup) -> Optional[str]:
    """Best-effort title extraction for a single article page."""

    t = meta_content(
        soup,
        'meta[property="og:title"]',
        'meta[name="twitter:title"]',
        'meta[name="title"]',
    )
    if t:
        return t

    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(" ", strip=True)

    h1 = soup.find("h1")
    if h1:
        t = h1.get_text(" ", strip=True)
        if t:
            return t

    return None

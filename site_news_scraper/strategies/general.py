from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from bs4.element import Tag

from site_news_scraper.discover import is_navigation_link, resolve_href, scan_links
from site_news_scraper.errors import MissingRequiredField
from site_news_scraper.extract import (
    attr_text,
    class_name,
    clean_author,
    element_text,
    first_text,
    parse_html,
    select_first,
)
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.types import SUMMARY_MAX_CHARS, UNTITLED, ExtractedArticle

logger = logging.getLogger(__name__)


ALTERNATIVE_CONTAINERS = (
    ".post, .entry",
    ".article-item, .news-item",
    "main article, main .post",
    "[itemtype*='Article']",
)

TITLE_SELECTORS = ("h1", "h2", "h3", ".title", ".headline", "[itemprop='headline']")
HEADING_LINK_SELECTORS = ("h1 a", "h2 a", "h3 a", ".title a", ".headline a")
DATE_SELECTORS = (".date", ".published", ".post-date", ".entry-date", "time")
SUMMARY_SELECTORS = (".summary", ".excerpt", ".description", ".entry-content p", "p")
AUTHOR_SELECTORS = (".author", ".byline", ".entry-author", ".post-author")

SKIP_CLASS_WORDS = ("nav", "navigation", "sidebar", "footer", "header", "menu", "widget")
MIN_ELEMENT_TEXT = 30
MIN_SUMMARY_CHARS = 20
MAX_AUTHOR_CHARS = 100
MIN_LINK_TEXT = 10


class GeneralStrategy(ExtractionStrategy):
    """Lowest-priority fallback for blogs and news listings of unknown structure.

    Tries ``<article>`` elements, then a handful of common list containers,
    and finally a scan of every link with substantial text.
    """

    identifier = "general"
    priority = 0

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)

        articles = soup.select("article")
        if articles:
            return self._collect(articles, lambda el: self._build(el, base_url))

        for sel in ALTERNATIVE_CONTAINERS:
            elements = soup.select(sel)
            if elements:
                logger.debug("[%s] using container selector %r", self.identifier, sel)
                return self._collect(elements, lambda el: self._build(el, base_url))

        links = scan_links(soup, base_url, min_text_chars=MIN_LINK_TEXT)
        return [ExtractedArticle(title=l.title, url=l.url) for l in links]

    def _build(self, el: Tag, base_url: str) -> Optional[ExtractedArticle]:
        if should_skip_element(el):
            return None

        url = self.extract_url(el, base_url)
        if not url:
            raise MissingRequiredField("url")

        return ExtractedArticle(
            title=self.extract_title(el),
            url=url,
            published_at=self.extract_published(el),
            summary=self.extract_summary(el),
            author=self.extract_author(el),
            image_url=self.extract_image(el, base_url),
        )

    @staticmethod
    def extract_title(el: Tag) -> str:
        title = first_text(el, TITLE_SELECTORS)
        if title:
            return title
        return first_text(el, ("a[href]",)) or UNTITLED

    @staticmethod
    def extract_url(el: Tag, base_url: str) -> Optional[str]:
        url = resolve_href(base_url, attr_text(select_first(el, "a.entry-link"), "href"))
        if url:
            return url

        for sel in HEADING_LINK_SELECTORS:
            url = resolve_href(base_url, attr_text(select_first(el, sel), "href"))
            if url:
                return url

        url = resolve_href(base_url, attr_text(select_first(el, "a[href]"), "href"))
        if url and not is_navigation_link(url):
            return url
        return None

    def extract_published(self, el: Tag) -> Optional[datetime]:
        found = self._parse_date(attr_text(select_first(el, "time[datetime]"), "datetime"))
        if found is not None:
            return found

        marked = select_first(el, "[itemprop='datePublished']")
        if marked is not None:
            found = self._parse_date(attr_text(marked, "content") or element_text(marked))
            if found is not None:
                return found

        for sel in DATE_SELECTORS:
            date_el = select_first(el, sel)
            if date_el is None:
                continue
            found = self._parse_date(attr_text(date_el, "title"), element_text(date_el))
            if found is not None:
                return found
        return None

    @staticmethod
    def extract_summary(el: Tag) -> Optional[str]:
        text = first_text(el, ("[itemprop='description']",))
        if text:
            return text[:SUMMARY_MAX_CHARS]
        text = first_text(el, SUMMARY_SELECTORS, min_chars=MIN_SUMMARY_CHARS)
        return text[:SUMMARY_MAX_CHARS] if text else None

    @staticmethod
    def extract_author(el: Tag) -> Optional[str]:
        text = first_text(el, ("[itemprop='author'], [rel='author']",))
        if not text:
            text = first_text(el, AUTHOR_SELECTORS, max_chars=MAX_AUTHOR_CHARS)
        if not text:
            return None
        return clean_author(text) or None

    @staticmethod
    def extract_image(el: Tag, base_url: str) -> Optional[str]:
        return resolve_href(base_url, attr_text(select_first(el, "img[src]"), "src"))


def should_skip_element(el: Tag) -> bool:
    """Navigation/furniture by class name, or too little text to be an article."""

    cls = class_name(el).lower()
    if any(word in cls for word in SKIP_CLASS_WORDS):
        return True
    return len(el.get_text(" ", strip=True)) < MIN_ELEMENT_TEXT

from __future__ import annotations

import logging
from typing import Any, Optional

import feedparser

from site_news_scraper.discover import resolve_href
from site_news_scraper.errors import MissingRequiredField
from site_news_scraper.extract import extract_text_from_html_fragment
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.types import UNTITLED, ExtractedArticle

logger = logging.getLogger(__name__)


FEED_MARKERS = ("<rss", "<feed")

# markup is already decoded text; stop feedparser from re-sniffing the XML declaration
_RESPONSE_HEADERS = {"content-type": "application/xml; charset=utf-8"}


def looks_like_feed(markup: str) -> bool:
    return any(marker in markup for marker in FEED_MARKERS)


def _image_from_entry(entry: Any) -> Optional[str]:
    for key in ("media_thumbnail", "media_content"):
        for media in entry.get(key) or []:
            url = media.get("url")
            if url and (key == "media_thumbnail" or str(media.get("medium", "image")) == "image"):
                return str(url)
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith("image/"):
            return str(link.get("href"))
    return None


class FeedStrategy(ExtractionStrategy):
    """RSS 2.0 items and Atom entries, when the fetched page turns out to be a feed."""

    identifier = "feed"
    priority = 50

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        if not looks_like_feed(markup):
            return []

        feed = feedparser.parse(markup, response_headers=_RESPONSE_HEADERS)
        if feed.get("bozo") and not feed.entries:
            logger.debug("[%s] %s is not a parseable feed: %s", self.identifier, base_url, feed.get("bozo_exception"))
            return []
        return self._collect(feed.entries, lambda e: self._build(e, base_url))

    def _build(self, entry: Any, base_url: str) -> ExtractedArticle:
        url = resolve_href(base_url, entry.get("link") or entry.get("id"))
        if not url:
            raise MissingRequiredField("link")

        summary = entry.get("summary") or entry.get("description")
        if summary:
            summary = extract_text_from_html_fragment(summary) or None

        published_at = self._parse_date(entry.get("published"), entry.get("updated"))

        tags = tuple(str(t.get("term")).strip() for t in (entry.get("tags") or []) if t.get("term"))

        return ExtractedArticle(
            title=(entry.get("title") or "").strip() or UNTITLED,
            url=url,
            published_at=published_at,
            summary=summary,
            author=(entry.get("author") or None),
            image_url=_image_from_entry(entry),
            tags=tags,
        )

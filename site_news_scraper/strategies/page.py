from __future__ import annotations

from site_news_scraper.discover import resolve_href
from site_news_scraper.extract import (
    attr_text,
    extract_title,
    meta_content,
    normalize_text,
    parse_html,
    select_first,
)
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.types import UNTITLED, ExtractedArticle


class PageMetadataStrategy(ExtractionStrategy):
    """Treat the document itself as a single article, described by its head metadata.

    Not registered globally: a single-article page would otherwise show up as
    an extra item for every listing. Enable it per source with an override.
    """

    identifier = "page_metadata"
    priority = 0

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)

        url = (
            resolve_href(base_url, attr_text(select_first(soup, "link[rel='canonical']"), "href"))
            or resolve_href(base_url, meta_content(soup, 'meta[property="og:url"]'))
            or base_url
        )

        summary = meta_content(
            soup,
            'meta[name="description"]',
            'meta[property="og:description"]',
        )

        published_at = self._parse_date(
            meta_content(soup, 'meta[property="article:published_time"]'),
            attr_text(select_first(soup, "time[datetime]"), "datetime"),
        )

        image = resolve_href(base_url, meta_content(soup, 'meta[property="og:image"]'))
        if image is None:
            image = resolve_href(base_url, attr_text(select_first(soup, "img[src]"), "src"))

        tags = tuple(
            t for t in (attr_text(m, "content") for m in soup.select('meta[property="article:tag"]')) if t
        )

        return [
            ExtractedArticle(
                title=extract_title(soup) or UNTITLED,
                url=url,
                published_at=published_at,
                summary=normalize_text(summary) if summary else None,
                author=meta_content(soup, 'meta[name="author"]'),
                image_url=image,
                tags=tags,
            )
        ]

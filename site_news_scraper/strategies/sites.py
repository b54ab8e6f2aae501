"""Strategies tuned to the markup of particular sites or themes."""

from __future__ import annotations

from typing import Optional

from bs4.element import Tag

from site_news_scraper.discover import resolve_href
from site_news_scraper.errors import MissingRequiredField
from site_news_scraper.extract import (
    attr_text,
    clean_author,
    element_text,
    first_text,
    parse_html,
    select_first,
)
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.types import SUMMARY_MAX_CHARS, UNTITLED, ExtractedArticle


class AppleNewsroomStrategy(ExtractionStrategy):
    identifier = "apple_newsroom"
    priority = 100
    domain_patterns = ("apple.com", "*.apple.com")

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)
        tiles = soup.select(".tile, .newsroom-tile")
        if not tiles:
            return []
        return self._collect(tiles, lambda tile: self._build(tile, base_url))

    def _build(self, tile: Tag, base_url: str) -> ExtractedArticle:
        link = tile if tile.name == "a" and tile.get("href") else select_first(tile, "a.tile-link, a[href]")
        url = resolve_href(base_url, attr_text(link, "href"))
        if not url:
            raise MissingRequiredField("url")

        headline = element_text(select_first(tile, ".tile-headline"))
        if not headline and not element_text(tile):
            raise MissingRequiredField("title")

        category = element_text(select_first(tile, ".tile-category, .category"))
        return ExtractedArticle(
            title=headline or UNTITLED,
            url=url,
            published_at=self._date_from(select_first(tile, ".date, time")),
            summary=first_text(tile, (".tile-description",)),
            author="Apple Newsroom",
            image_url=resolve_href(base_url, attr_text(select_first(tile, "img[src]"), "src")),
            tags=(category,) if category else (),
        )


class HackerNewsStrategy(ExtractionStrategy):
    """Story rows on news.ycombinator.com; metadata lives in the following row."""

    identifier = "hacker_news"
    priority = 100
    domain_patterns = ("news.ycombinator.com",)

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)
        return self._collect(soup.select(".athing"), lambda row: self._build(row, base_url))

    def _build(self, row: Tag, base_url: str) -> ExtractedArticle:
        link = select_first(row, ".titleline a") or select_first(row, ".storylink")
        url = resolve_href(base_url, attr_text(link, "href"))
        if not url:
            raise MissingRequiredField("url")
        title = element_text(link)
        if not title:
            raise MissingRequiredField("title")

        author = None
        published_at = None
        meta_row = row.find_next_sibling("tr")
        subtext = select_first(meta_row, ".subtext") if meta_row is not None else None
        if subtext is not None:
            author = element_text(select_first(subtext, ".hnuser")) or None
            age = select_first(subtext, ".age")
            if age is not None:
                # title is "<iso timestamp> <unix seconds>"
                stamp = attr_text(age, "title").split(" ")[0]
                published_at = self._parse_date(stamp, element_text(age))

        return ExtractedArticle(title=title, url=url, published_at=published_at, author=author)


class PostEntryStrategy(ExtractionStrategy):
    """Themes that render list items as ``article.post-entry`` (Hugo PaperMod and similar)."""

    identifier = "post_entry"
    priority = 10

    TITLE_SELECTORS = ("h1", "h2", ".entry-hint-parent", ".entry-title", ".post-title")
    LINK_SELECTORS = ("a.entry-link", "h1 a[href]", "h2 a[href]", "a[href]")
    SUMMARY_SELECTORS = (".entry-content p", ".entry-summary", ".post-excerpt", "p")
    AUTHOR_SELECTORS = (".entry-footer", ".author", ".byline", "footer .author-name", "[rel='author']")

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)
        entries = soup.select("article.post-entry, article.entry")
        if not entries:
            return []
        return self._collect(entries, lambda el: self._build(el, base_url))

    def _build(self, el: Tag, base_url: str) -> ExtractedArticle:
        url = None
        for sel in self.LINK_SELECTORS:
            url = resolve_href(base_url, attr_text(select_first(el, sel), "href"))
            if url:
                break
        if not url:
            raise MissingRequiredField("url")

        title = first_text(el, self.TITLE_SELECTORS) or first_text(el, ("a.entry-link",)) or UNTITLED

        summary = first_text(el, self.SUMMARY_SELECTORS, min_chars=20)
        author = first_text(el, self.AUTHOR_SELECTORS, max_chars=100)

        return ExtractedArticle(
            title=title,
            url=url,
            published_at=self._published(el),
            summary=summary[:SUMMARY_MAX_CHARS] if summary else None,
            author=clean_author(author) if author else None,
        )

    def _published(self, el: Tag):
        span = select_first(el, "footer span[title]")
        found = self._parse_date(attr_text(span, "title"))
        if found is not None:
            return found

        found = self._parse_date(attr_text(select_first(el, "time[datetime]"), "datetime"))
        if found is not None:
            return found

        date_el = select_first(el, ".date, .published, .post-date")
        if date_el is None:
            return None
        return self._parse_date(attr_text(date_el, "title"), element_text(date_el))


def _wordpress_tags(el: Tag) -> tuple[str, ...]:
    # post_class() emits "tag-<slug>" and "category-<slug>"
    classes = el.get("class") or []
    out: list[str] = []
    for c in classes:
        for prefix in ("category-", "tag-"):
            if c.startswith(prefix) and len(c) > len(prefix):
                out.append(c[len(prefix):])
    return tuple(out)


class WordPressStrategy(ExtractionStrategy):
    """Applies to any host, but only once the generator meta tag says WordPress."""

    identifier = "wordpress"
    priority = 5

    def extract(self, markup: str, base_url: str) -> list[ExtractedArticle]:
        soup = parse_html(markup)
        generator = attr_text(select_first(soup, "meta[name='generator']"), "content")
        if "WordPress" not in generator:
            return []
        posts = soup.select(".post, .hentry, article")
        return self._collect(posts, lambda el: self._build(el, base_url))

    def _build(self, el: Tag, base_url: str) -> Optional[ExtractedArticle]:
        link = select_first(el, ".entry-title a, h2 a, h1 a")
        url = resolve_href(base_url, attr_text(link, "href"))
        if not url:
            raise MissingRequiredField("url")

        date_el = select_first(el, ".entry-date, time[datetime]")
        author = first_text(el, (".author, .entry-author",))
        return ExtractedArticle(
            title=element_text(link) or UNTITLED,
            url=url,
            published_at=self._date_from(date_el),
            summary=first_text(el, (".entry-summary, .entry-excerpt",)),
            author=clean_author(author) if author else None,
            image_url=resolve_href(base_url, attr_text(select_first(el, "img[src]"), "src")),
            tags=_wordpress_tags(el),
        )

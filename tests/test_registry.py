"""Tests for site_news_scraper.registry."""

from site_news_scraper.errors import ExtractionError
from site_news_scraper.registry import StrategyRegistry
from site_news_scraper.strategies.base import ExtractionStrategy
from site_news_scraper.strategies.general import GeneralStrategy
from site_news_scraper.types import ExtractedArticle


class StubStrategy(ExtractionStrategy):
    def __init__(self, identifier, priority=0, patterns=(), articles=(), error=None):
        super().__init__()
        self.identifier = identifier
        self.priority = priority
        self.domain_patterns = tuple(patterns)
        self.articles = list(articles)
        self.error = error
        self.calls = 0

    def extract(self, markup, base_url):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.articles)


def article(url, title="t"):
    return ExtractedArticle(title=title, url=url)


class TestSelection:
    def test_global_list_sorted_by_priority(self):
        low = StubStrategy("low", priority=1)
        high = StubStrategy("high", priority=50)
        registry = StrategyRegistry([low, high])

        assert [d.identifier for d in registry.list_global()] == ["high", "low"]

    def test_equal_priorities_keep_registration_order(self):
        registry = StrategyRegistry([StubStrategy("a"), StubStrategy("b"), StubStrategy("c")])

        assert [s.identifier for s in registry.select("https://x.test/")] == ["a", "b", "c"]

    def test_domain_matched_plus_unrestricted(self):
        site = StubStrategy("site", priority=100, patterns=["*.example.com"])
        general = StubStrategy("general")
        registry = StrategyRegistry([general, site])

        assert [s.identifier for s in registry.select("https://blog.example.com/")] == ["site", "general"]
        assert [s.identifier for s in registry.select("https://other.test/")] == ["general"]

    def test_falls_back_to_all_globals_when_nothing_matches(self):
        a = StubStrategy("a", priority=2, patterns=["a.test"])
        b = StubStrategy("b", priority=1, patterns=["b.test"])
        registry = StrategyRegistry([a, b])

        assert [s.identifier for s in registry.select("https://c.test/")] == ["a", "b"]
        assert registry.strategies_for_url("https://c.test/") == []

    def test_selection_is_cached_per_host(self):
        registry = StrategyRegistry([StubStrategy("general")])
        registry.select("https://example.com/one")

        assert "example.com" in registry._host_cache

    def test_register_global_invalidates_cache(self):
        registry = StrategyRegistry([StubStrategy("general")])
        registry.select("https://example.com/")

        registry.register_global(StubStrategy("site", priority=100, patterns=["example.com"]))

        assert [s.identifier for s in registry.select("https://example.com/")] == ["site", "general"]

    def test_override_replaces_global_selection(self):
        site = StubStrategy("site", priority=100, patterns=["example.com"])
        custom = StubStrategy("custom")
        registry = StrategyRegistry([site])
        registry.set_override("src-1", [custom])

        assert registry.select("https://example.com/", "src-1") == [custom]
        assert registry.select("https://example.com/", "src-2") == [site]
        assert [d.identifier for d in registry.list_override("src-1")] == ["custom"]
        assert registry.list_override("src-2") is None

    def test_append_and_clear_override(self):
        registry = StrategyRegistry([StubStrategy("general")])
        registry.append_override("src", StubStrategy("low", priority=1))
        registry.append_override("src", StubStrategy("high", priority=9))

        assert [d.identifier for d in registry.list_override("src")] == ["high", "low"]

        registry.clear_override("src")
        assert [s.identifier for s in registry.select("https://x.test/", "src")] == ["general"]


class TestExtract:
    def test_all_strategies_run_and_first_url_wins(self):
        site = StubStrategy("site", priority=100, articles=[article("https://e.com/1", "from site")])
        general = StubStrategy(
            "general",
            articles=[article("https://e.com/1", "from general"), article("https://e.com/2")],
        )
        registry = StrategyRegistry([general, site])

        report = registry.extract("<html></html>", "https://e.com/")

        assert report.strategies_run == ["site", "general"]
        assert [(a.url, a.title) for a in report.articles] == [
            ("https://e.com/1", "from site"),
            ("https://e.com/2", "t"),
        ]
        assert report.duplicates_dropped == 1
        assert general.calls == 1

    def test_failing_strategy_does_not_stop_the_rest(self):
        broken = StubStrategy("broken", priority=10, error=ExtractionError("boom"))
        general = StubStrategy("general", articles=[article("https://e.com/1")])
        registry = StrategyRegistry([broken, general])

        report = registry.extract("<html></html>", "https://e.com/")

        assert [a.url for a in report.articles] == ["https://e.com/1"]
        assert [f.identifier for f in report.failures] == ["broken"]
        assert not report.exhausted

    def test_exhausted_when_everything_fails(self):
        registry = StrategyRegistry([StubStrategy("broken", error=RuntimeError("x"))])

        report = registry.extract("", "https://e.com/")

        assert report.articles == []
        assert report.exhausted

    def test_empty_everywhere_is_not_a_failure(self):
        registry = StrategyRegistry([StubStrategy("a"), StubStrategy("b")])

        report = registry.extract("", "https://e.com/")

        assert report.articles == []
        assert report.failures == []
        assert not report.exhausted

    def test_empty_high_priority_match_does_not_hide_fallback(self):
        site = StubStrategy("site", priority=100, patterns=["e.com"])
        general = StubStrategy("general", articles=[article("https://e.com/1")])
        registry = StrategyRegistry([site, general])

        report = registry.extract("<html></html>", "https://e.com/")

        assert report.strategies_run == ["site", "general"]
        assert [a.url for a in report.articles] == ["https://e.com/1"]
        assert site.calls == 1

    def test_incomplete_elements_are_reported(self):
        markup = """
        <article><h2><a href="/a">Article with a link that is long enough</a></h2></article>
        <article><h2>Article without any link but long enough text</h2></article>
        """
        registry = StrategyRegistry([GeneralStrategy()])

        report = registry.extract(markup, "https://e.com/")

        assert [a.url for a in report.articles] == ["https://e.com/a"]
        assert report.failures == []
        assert [(p.identifier, p.error.field) for p in report.partial_failures] == [("general", "url")]
        assert "url" in report.partial_failures[0].reason
        assert not report.exhausted

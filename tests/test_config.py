"""Tests for config loading, source lists and the CLI glue."""

from datetime import datetime, timezone

import pandas as pd

from site_news_scraper.__main__ import parse_args
from site_news_scraper.config import DEFAULT_STRATEGIES, DEFAULT_USER_AGENT, load_config, load_sources, parse_sources
from site_news_scraper.storage import ITEM_COLUMNS, items_to_frame, write_frame
from site_news_scraper.types import CanonicalItem, ExtractedArticle, SUMMARY_MAX_CHARS, UNTITLED


class TestConfig:
    def test_defaults_without_file(self):
        cfg = load_config(None)

        assert cfg.http.user_agent == DEFAULT_USER_AGENT
        assert cfg.http.timeout_seconds == 10.0
        assert cfg.max_in_flight_requests == 8
        assert cfg.enabled_strategies == list(DEFAULT_STRATEGIES)
        assert cfg.strategy_overrides == {}

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "http:\n"
            "  user_agent: TestAgent/1.0\n"
            "  timeout_seconds: 5\n"
            "  user_agent_overrides:\n"
            "    example.com: Special/2.0\n"
            "concurrency:\n"
            "  max_in_flight_requests: 3\n"
            "strategies:\n"
            "  enabled: [general]\n"
            "  overrides:\n"
            "    hn: [hacker_news, general]\n",
            encoding="utf-8",
        )
        cfg = load_config(path)

        assert cfg.http.user_agent == "TestAgent/1.0"
        assert cfg.http.timeout_seconds == 5.0
        assert cfg.http.resource_timeout_seconds == 10.0
        assert cfg.http.user_agent_overrides == {"example.com": "Special/2.0"}
        assert cfg.max_in_flight_requests == 3
        assert cfg.enabled_strategies == ["general"]
        assert cfg.strategy_overrides == {"hn": ["hacker_news", "general"]}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path).raw == {}


class TestSources:
    def test_groups_then_flat_list(self):
        groups = parse_sources(
            {
                "groups": [
                    {"name": "tech", "sources": [{"id": "hn", "label": "Hacker News", "url": "https://news.ycombinator.com/"}]},
                ],
                "sources": [{"url": "https://blog.example.com/"}],
            }
        )

        assert [g.name for g in groups] == ["tech", "default"]
        assert groups[0].sources[0].label == "Hacker News"
        flat = groups[1].sources[0]
        assert flat.id == "https://blog.example.com/"
        assert flat.label == "https://blog.example.com/"

    def test_load_sources(self, tmp_path):
        path = tmp_path / "sources.yaml"
        path.write_text(
            "sources:\n"
            "  - id: a\n"
            "    label: Alpha\n"
            "    url: https://a.example/\n",
            encoding="utf-8",
        )

        (group,) = load_sources(path)
        assert group.sources[0].id == "a"


class TestArticleNormalization:
    def test_empty_title_becomes_untitled(self):
        assert ExtractedArticle(title="  ", url="https://e.com/").title == UNTITLED

    def test_summary_is_truncated(self):
        a = ExtractedArticle(title="t", url="https://e.com/", summary="x" * 500)
        assert len(a.summary) == SUMMARY_MAX_CHARS

    def test_tags_become_tuple(self):
        assert ExtractedArticle(title="t", url="https://e.com/", tags=["a", "b"]).tags == ("a", "b")


class TestStorage:
    def _item(self):
        return CanonicalItem(
            id="abc",
            title="Title",
            url="https://e.com/1",
            published_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
            source="Example",
            source_url="https://e.com/",
            tags=("x",),
        )

    def test_items_to_frame(self):
        df = items_to_frame([self._item()])

        assert list(df.columns) == ITEM_COLUMNS
        assert df.loc[0, "tags"] == ["x"]
        assert df.loc[0, "published_at"] == pd.Timestamp("2024-01-15", tz="UTC")

    def test_write_csv_and_jsonl(self, tmp_path):
        df = items_to_frame([self._item()])

        write_frame(tmp_path / "out" / "items.csv", df)
        write_frame(tmp_path / "items.jsonl", df)

        assert (tmp_path / "out" / "items.csv").read_text(encoding="utf-8").startswith("id,title,url")
        assert '"title":"Title"' in (tmp_path / "items.jsonl").read_text(encoding="utf-8")


class TestCli:
    def test_parse_args(self, tmp_path):
        args = parse_args(["--sources", str(tmp_path / "s.yaml"), "--deadline", "30", "--verbose"])

        assert args.sources == tmp_path / "s.yaml"
        assert args.config is None
        assert args.deadline == 30.0
        assert args.verbose

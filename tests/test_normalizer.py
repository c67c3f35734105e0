"""Tests for game_news.normalizer."""

from datetime import datetime, timezone

from game_news.models import FeedItem, ParsedFeed
from game_news.normalizer import UNKNOWN_SOURCE, articles_from_feed, clean_source_name, to_article


class TestCleanSourceName:
    def test_known_host_wins_regardless_of_title(self) -> None:
        url = "https://www.gamestar.de/rss/gamestar.rss"
        assert clean_source_name("GameStar.de - News | Alles", url) == "GameStar"
        assert clean_source_name("anything at all", url) == "GameStar"
        assert clean_source_name("", url) == "GameStar"

    def test_first_table_entry_wins(self) -> None:
        table = {"example.com": "First", "www.example.com": "Second"}
        assert clean_source_name("x", "https://www.example.com/feed", name_map=table) == "First"

    def test_pcgameshardware_not_confused_with_pcgames(self) -> None:
        url = "https://www.pcgameshardware.de/feed.cfm?menu_alias=home"
        assert clean_source_name("PCGH", url) == "PC Games Hardware"

    def test_empty_title_unknown_host(self) -> None:
        assert clean_source_name("", "https://unknown.example/feed") == UNKNOWN_SOURCE
        assert clean_source_name(None, "https://unknown.example/feed") == UNKNOWN_SOURCE

    def test_strips_junk_phrases(self) -> None:
        assert clean_source_name("Example Latest Articles Feed", "https://example.org/x") == "Example"

    def test_shortest_segment_wins(self) -> None:
        name = clean_source_name("Gamers Hub | Your daily dose of games", "https://example.org/x")
        assert name == "Gamers Hub"

    def test_title_cases_words(self) -> None:
        assert clean_source_name("PLAYSTATION WORLD", "https://example.org/x") == "Playstation World"

    def test_short_brand_after_junk_removal(self) -> None:
        # Known heuristic limitation: "News: X" collapses to the fragment after the separator
        assert clean_source_name("News: X", "https://example.org/x") == "X"

    def test_title_of_only_junk_is_unknown(self) -> None:
        assert clean_source_name("News Feed", "https://example.org/x") == UNKNOWN_SOURCE

    def test_deterministic(self) -> None:
        args = ("Some Site - Reviews and more", "https://example.org/x")
        assert clean_source_name(*args) == clean_source_name(*args)


def _item(**overrides) -> FeedItem:
    data = dict(
        title="  A title  ",
        link="https://www.kotaku.com/a",
        published_at=datetime(2024, 1, 1, 12, tzinfo=timezone.utc),
        guid="k-1",
        description="<p>Hello <b>there</b></p>",
        content="<p>Hello <b>there</b></p>",
    )
    data.update(overrides)
    return FeedItem(**data)


class TestToArticle:
    def test_builds_canonical_article(self) -> None:
        article = to_article(_item(media_thumbnail="https://img.kotaku.com/t.jpg"), source="Kotaku", language="en")
        assert article.id == "k-1"
        assert article.title == "A title"
        assert article.summary == "Hello there"
        assert article.image_url == "https://img.kotaku.com/t.jpg"
        assert article.needs_scraping is False
        assert article.language == "en"

    def test_id_falls_back_to_link(self) -> None:
        article = to_article(_item(guid=""), source="Kotaku", language="en")
        assert article.id == "https://www.kotaku.com/a"

    def test_placeholder_when_no_image(self) -> None:
        article = to_article(_item(), source="Play3", language="de")
        assert "placehold.co" in article.image_url
        assert article.needs_scraping is True


class TestArticlesFromFeed:
    def test_uses_clean_source_name(self) -> None:
        parsed = ParsedFeed(
            feed_title="Kotaku Feed",
            feed_url="https://kotaku.com/rss",
            items=[_item(), _item(guid="k-2")],
        )
        articles = articles_from_feed(parsed, "en")
        assert [a.source for a in articles] == ["Kotaku", "Kotaku"]
        assert [a.id for a in articles] == ["k-1", "k-2"]

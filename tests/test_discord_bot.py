"""Tests for the command parsing and formatting in discord_bot."""

from discord_bot import MESSAGE_LIMIT, format_articles, parse_command


class TestParseCommand:
    def test_bare_command(self) -> None:
        options = parse_command("!news")
        assert options.language == "all"
        assert options.time_range == "all"
        assert options.search_query == ""

    def test_language_range_and_words(self) -> None:
        options = parse_command("!news DE today elden ring")
        assert options.language == "de"
        assert options.time_range == "today"
        assert options.search_query == "elden ring"

    def test_repeated_keywords_become_search_words(self) -> None:
        options = parse_command("!news en de 7d")
        assert options.language == "en"
        assert options.time_range == "7d"
        assert options.search_query == "de"


class TestFormatArticles:
    def test_empty(self) -> None:
        assert format_articles([]) == "No news found."

    def test_lists_at_most_limit(self, make_article) -> None:
        text = format_articles([make_article(f"a{i}") for i in range(8)], limit=5)
        assert text.startswith("📰 Latest 5 articles")
        assert text.count("**Title a") == 5
        assert "<https://example.com/a0>" in text
        assert "*GameStar - 2024-01-10 11:00*" in text

    def test_respects_message_limit(self, make_article) -> None:
        text = format_articles([make_article(f"a{i}", title="x" * 900) for i in range(5)])
        assert len(text) == MESSAGE_LIMIT
        assert text.endswith("...")

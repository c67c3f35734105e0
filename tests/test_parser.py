"""Tests for game_news.parser."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from game_news.exceptions import MalformedXml, MissingRequiredField
from game_news.normalizer import articles_from_feed
from game_news.parser import extract_item, parse_feed, to_datetime

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:media="http://search.yahoo.com/mrss/"
     xmlns:content="http://purl.org/rss/1.0/modules/content/">
<channel>
  <title>GameStar News</title>
  <link>https://www.gamestar.de</link>
  <item>
    <title>  First article  </title>
    <link>https://www.gamestar.de/artikel/1.html</link>
    <guid isPermaLink="false">gs-1</guid>
    <pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>
    <description><![CDATA[<p>Short teaser</p>]]></description>
    <content:encoded><![CDATA[<p>Full text <img src="https://img.example.com/inline.jpg"></p>]]></content:encoded>
    <media:thumbnail url="https://img.example.com/thumb.jpg"/>
    <enclosure url="https://img.example.com/enc.jpg" type="image/jpeg" length="0"/>
  </item>
  <item>
    <title>No guid here</title>
    <link>https://www.gamestar.de/artikel/2.html</link>
    <pubDate>Tue, 02 Jan 2024 08:30:00 +0100</pubDate>
  </item>
  <item>
    <title></title>
    <link>https://www.gamestar.de/artikel/3.html</link>
    <pubDate>Tue, 02 Jan 2024 08:30:00 GMT</pubDate>
  </item>
  <item>
    <title>Missing date</title>
    <link>https://www.gamestar.de/artikel/4.html</link>
  </item>
</channel>
</rss>
"""

ATOM = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Golem.de Games</title>
  <entry>
    <title>Atom one</title>
    <link rel="self" href="https://www.golem.de/self/1"/>
    <link rel="alternate" href="https://www.golem.de/news/1.html"/>
    <id>tag:golem.de,2024:1</id>
    <updated>2024-01-02T10:00:00Z</updated>
    <summary>Only updated is set</summary>
  </entry>
  <entry>
    <title>Atom two</title>
    <link href="https://www.golem.de/news/2.html"/>
    <id>tag:golem.de,2024:2</id>
    <published>2024-01-03T10:00:00+01:00</published>
    <updated>2024-01-04T10:00:00Z</updated>
  </entry>
</feed>
"""


class TestParseRss:
    def test_extracts_valid_items_only(self) -> None:
        parsed = parse_feed(RSS, "https://www.gamestar.de/rss/gamestar.rss")
        assert parsed.feed_title == "GameStar News"
        assert [i.link for i in parsed.items] == [
            "https://www.gamestar.de/artikel/1.html",
            "https://www.gamestar.de/artikel/2.html",
        ]

    def test_fields_of_full_item(self) -> None:
        item = parse_feed(RSS, "https://www.gamestar.de/rss/gamestar.rss").items[0]
        assert item.title == "First article"
        assert item.guid == "gs-1"
        assert item.published_at == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert "Short teaser" in item.description
        assert "inline.jpg" in item.content
        assert item.media_thumbnail == "https://img.example.com/thumb.jpg"
        assert item.enclosure_url == "https://img.example.com/enc.jpg"
        assert item.enclosure_type == "image/jpeg"

    def test_guid_falls_back_to_link(self) -> None:
        item = parse_feed(RSS, "https://www.gamestar.de/rss/gamestar.rss").items[1]
        assert item.guid == item.link
        assert item.published_at == datetime(2024, 1, 2, 7, 30, tzinfo=timezone.utc)

    def test_content_falls_back_to_description(self) -> None:
        doc = RSS.replace(
            '<content:encoded><![CDATA[<p>Full text <img src="https://img.example.com/inline.jpg"></p>]]></content:encoded>',
            "",
        )
        item = parse_feed(doc, "https://www.gamestar.de/rss/gamestar.rss").items[0]
        assert "Short teaser" in item.content

    def test_lazy_load_image_survives_parsing(self) -> None:
        doc = (
            '<?xml version="1.0" encoding="UTF-8"?>'
            '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/"><channel>'
            "<title>Site</title><link>https://site.example</link><item>"
            "<title>Lazy</title><link>https://site.example/a/1</link>"
            "<pubDate>Mon, 01 Jan 2024 12:00:00 GMT</pubDate>"
            '<content:encoded><![CDATA[<p><img src="https://site.example/lazy-placeholder.gif" '
            'data-src="https://site.example/real.jpg" width="600" height="400"></p>]]></content:encoded>'
            "</item></channel></rss>"
        )
        parsed = parse_feed(doc, "https://site.example/feed")
        assert "data-src" in parsed.items[0].content

        article = articles_from_feed(parsed, "en")[0]
        assert article.image_url == "https://site.example/real.jpg"
        assert not article.needs_scraping


class TestParseAtom:
    def test_detects_atom_and_prefers_alternate_link(self) -> None:
        parsed = parse_feed(ATOM, "https://rss.golem.de/rss.php?feed=ATOM1.0")
        assert parsed.feed_title == "Golem.de Games"
        assert parsed.items[0].link == "https://www.golem.de/news/1.html"
        assert parsed.items[1].link == "https://www.golem.de/news/2.html"

    def test_published_then_updated(self) -> None:
        items = parse_feed(ATOM, "https://rss.golem.de/rss.php?feed=ATOM1.0").items
        assert items[0].published_at == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)
        assert items[1].published_at == datetime(2024, 1, 3, 9, 0, tzinfo=timezone.utc)

    def test_id_used_as_guid(self) -> None:
        items = parse_feed(ATOM, "https://rss.golem.de/rss.php?feed=ATOM1.0").items
        assert items[0].guid == "tag:golem.de,2024:1"


class TestParseErrors:
    def test_non_xml_body_is_malformed(self) -> None:
        with pytest.raises(MalformedXml):
            parse_feed("Service unavailable", "https://a.de/feed")

    def test_broken_xml_is_malformed(self) -> None:
        broken = "<rss version='2.0'><channel><title>x</title><item><title>a</item></channel></rss>"
        with pytest.raises(MalformedXml):
            parse_feed(broken, "https://a.de/feed")

    def test_zero_valid_items_logs_warning(self, caplog) -> None:
        doc = (
            "<rss version='2.0'><channel><title>T</title>"
            "<item><title>no link or date</title></item>"
            "</channel></rss>"
        )
        with caplog.at_level(logging.WARNING, logger="game_news.parser"):
            parsed = parse_feed(doc, "https://a.de/feed")
        assert parsed.items == []
        assert "no valid items" in caplog.text

    def test_empty_channel_is_not_an_error(self, caplog) -> None:
        doc = "<rss version='2.0'><channel><title>T</title></channel></rss>"
        with caplog.at_level(logging.WARNING, logger="game_news.parser"):
            parsed = parse_feed(doc, "https://a.de/feed")
        assert parsed.items == []
        assert "no valid items" not in caplog.text


class TestExtractItem:
    def test_missing_link_raises(self) -> None:
        with pytest.raises(MissingRequiredField) as exc_info:
            extract_item({"title": "T", "published": "Mon, 01 Jan 2024 12:00:00 GMT"}, is_atom=False)
        assert exc_info.value.field == "link"

    def test_unparseable_date_raises(self) -> None:
        entry = {"title": "T", "link": "https://a.de/1", "published": "not a date"}
        with pytest.raises(MissingRequiredField):
            extract_item(entry, is_atom=False)

    def test_atom_first_link_when_no_alternate(self) -> None:
        entry = {
            "title": "T",
            "links": [{"rel": "related", "href": "https://a.de/rel"}, {"rel": "self", "href": "https://a.de/self"}],
            "updated": "2024-01-01T00:00:00Z",
        }
        assert extract_item(entry, is_atom=True).link == "https://a.de/rel"


class TestToDatetime:
    def test_parses_est_abbreviation(self) -> None:
        result = to_datetime("Mon, 01 Jan 2024 12:00:00 EST")
        assert result is not None
        assert result.utcoffset() == timedelta(hours=-5)

    def test_naive_is_utc(self) -> None:
        assert to_datetime("2024-01-01 12:00:00").tzinfo == timezone.utc

    def test_invalid_is_none(self) -> None:
        assert to_datetime("not a date") is None

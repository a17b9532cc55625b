"""Unit tests for FeedFetcher and the feed parsers."""
from datetime import date, datetime, timezone

import pytest
import responses
from requests.exceptions import ConnectionError as RequestsConnectionError

from scraper.feed_fetcher import FeedFetcher, FeedFetchError, is_ics
from scraper.ics_parser import parse_ics
from scraper.rss_parser import parse_date, parse_rss

ICS_URL = "https://calendar.example.org/events.ics"
RSS_URL = "https://www.example.org/RSSFeed.aspx?ModID=58"

ICS_BODY = b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Example//Calendar//EN
BEGIN:VEVENT
UID:board-1
SUMMARY:Board Meeting
DTSTART:20261021T000000Z
DTEND:20261021T020000Z
LOCATION:Village Hall - 1050 W Romeoville Rd\\, Romeoville\\, IL 60446
URL:https://www.example.org/Calendar.aspx?EID=1
END:VEVENT
BEGIN:VEVENT
UID:leaf-1
SUMMARY:Leaf Pickup
DTSTART;VALUE=DATE:20261024
DTEND;VALUE=DATE:20261025
END:VEVENT
BEGIN:VTODO
UID:todo-1
SUMMARY:Not an event
END:VTODO
END:VCALENDAR
"""

RSS_BODY = b"""<?xml version="1.0" encoding="utf-8"?>
<rss version="2.0">
<channel>
<title>Calendar</title>
<link>https://www.example.org/Calendar.aspx</link>
<description>All calendars</description>
<item>
<title>Fall Fest</title>
<link>https://www.example.org/Calendar.aspx?EID=2</link>
<description>&lt;strong&gt;Event date:&lt;/strong&gt; October 24, 2026&lt;br&gt;&lt;strong&gt;Event Time:&lt;/strong&gt; 11:00 AM - 4:00 PM&lt;br&gt;&lt;strong&gt;Location:&lt;/strong&gt;&lt;br&gt;Town Center, 1 Main St</description>
</item>
<item>
<title>Holiday Closure</title>
<link>https://www.example.org/Calendar.aspx?EID=3</link>
<description>&lt;strong&gt;Event dates:&lt;/strong&gt; November 26, 2026 - November 27, 2026</description>
</item>
</channel>
</rss>
"""


class TestFormatDetection:
    """Test cases for is_ics."""

    def test_ics_payload(self):
        assert is_ics(ICS_BODY)

    def test_ics_payload_with_bom_and_whitespace(self):
        assert is_ics(b"\xef\xbb\xbf\r\n  begin:vcalendar\r\n")

    def test_rss_payload(self):
        assert not is_ics(RSS_BODY)


class TestIcsParser:
    """Test cases for parse_ics."""

    def test_parse_events(self):
        entries = parse_ics(ICS_BODY, source_url=ICS_URL)

        kinds = [entry.kind for entry in entries]
        assert kinds == ["VEVENT", "VEVENT", "VTODO"]

        board = entries[0]
        assert board.title == "Board Meeting"
        assert board.start == datetime(2026, 10, 21, 0, 0, tzinfo=timezone.utc)
        assert board.end == datetime(2026, 10, 21, 2, 0, tzinfo=timezone.utc)
        assert board.location == "Village Hall - 1050 W Romeoville Rd, Romeoville, IL 60446"
        assert board.link == "https://www.example.org/Calendar.aspx?EID=1"
        assert board.source_url == ICS_URL

        leaf = entries[1]
        assert leaf.start == date(2026, 10, 24)
        assert leaf.end == date(2026, 10, 25)
        assert leaf.location is None

    def test_invalid_payload(self):
        with pytest.raises(ValueError):
            parse_ics(b"this is not a calendar")


class TestRssParser:
    """Test cases for parse_rss."""

    def test_parse_items(self):
        entries = parse_rss(RSS_BODY, source_url=RSS_URL)

        assert len(entries) == 2

        fest = entries[0]
        assert fest.kind == "item"
        assert fest.title == "Fall Fest"
        assert fest.start == datetime(2026, 10, 24, 11, 0)
        assert fest.end == datetime(2026, 10, 24, 16, 0)
        assert fest.location == "Town Center, 1 Main St"
        assert fest.link == "https://www.example.org/Calendar.aspx?EID=2"

    def test_date_range_without_time_is_all_day(self):
        closure = parse_rss(RSS_BODY)[1]

        assert closure.start == date(2026, 11, 26)
        # exclusive end, like an all-day DTEND
        assert closure.end == date(2026, 11, 28)
        assert closure.location is None

    def test_parse_date_retries_without_commas(self):
        assert parse_date("Saturday, October 24, 2026") == date(2026, 10, 24)

    def test_parse_date_garbage(self):
        assert parse_date("whenever") is None
        assert parse_date(None) is None


class TestFeedFetcher:
    """Test cases for FeedFetcher class."""

    @responses.activate
    def test_fetch_all_merges_feeds_in_url_order(self):
        """Test ICS and RSS feeds are fetched and merged."""
        responses.add(responses.GET, ICS_URL, body=ICS_BODY, status=200)
        responses.add(responses.GET, RSS_URL, body=RSS_BODY, status=200)

        result = FeedFetcher(timeout=5, max_retries=1).fetch_all([ICS_URL, RSS_URL])

        assert result.succeeded == [ICS_URL, RSS_URL]
        assert result.failures == []
        assert [entry.title for entry in result.entries] == [
            "Board Meeting", "Leaf Pickup", "Not an event", "Fall Fest", "Holiday Closure"
        ]

    @responses.activate
    def test_failing_feed_contributes_nothing(self):
        """Test one failing feed does not abort the others."""
        responses.add(responses.GET, ICS_URL, body=ICS_BODY, status=200)
        responses.add(responses.GET, RSS_URL, body="Server Error", status=500)

        result = FeedFetcher(timeout=5, max_retries=1).fetch_all([ICS_URL, RSS_URL])

        assert result.succeeded == [ICS_URL]
        assert len(result.failures) == 1
        assert result.failures[0].url == RSS_URL
        assert result.failures[0].error_type == "HTTPError"
        assert not result.all_failed
        assert len(result.entries) == 3

    @responses.activate
    def test_all_feeds_failing(self):
        responses.add(responses.GET, ICS_URL, body=RequestsConnectionError("refused"))

        result = FeedFetcher(timeout=5, max_retries=1).fetch_all([ICS_URL])

        assert result.all_failed
        assert result.entries == []

    def test_no_urls(self):
        result = FeedFetcher().fetch_all([])

        assert result.entries == []
        assert not result.all_failed

    @responses.activate
    def test_fetch_feed_with_retry_success(self, monkeypatch):
        """Test retry logic succeeds after initial failures."""
        monkeypatch.setattr("scraper.feed_fetcher.time.sleep", lambda seconds: None)
        responses.add(responses.GET, ICS_URL, body="Server Error", status=500)
        responses.add(responses.GET, ICS_URL, body="Server Error", status=500)
        responses.add(responses.GET, ICS_URL, body=ICS_BODY, status=200)

        entries = FeedFetcher(timeout=5, max_retries=3).fetch_feed(ICS_URL)

        assert len(entries) == 3
        assert len(responses.calls) == 3

    @responses.activate
    def test_fetch_feed_all_retries_fail(self, monkeypatch):
        """Test FeedFetchError is raised when all retries fail."""
        monkeypatch.setattr("scraper.feed_fetcher.time.sleep", lambda seconds: None)
        for _ in range(3):
            responses.add(responses.GET, ICS_URL, body="Server Error", status=500)

        with pytest.raises(FeedFetchError):
            FeedFetcher(timeout=5, max_retries=3).fetch_feed(ICS_URL)

        assert len(responses.calls) == 3

    @responses.activate
    def test_unparseable_ics_is_a_fetch_error(self):
        responses.add(
            responses.GET, ICS_URL,
            body=b"BEGIN:VCALENDAR\nthis line has no value separator\n", status=200
        )

        with pytest.raises(FeedFetchError):
            FeedFetcher(max_retries=1).fetch_feed(ICS_URL)

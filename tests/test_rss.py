from datetime import datetime, timedelta, timezone

import pytest
import responses

from ghdashboard.cache import Cache
from ghdashboard.models import ZERO_TIME, Config
from ghdashboard.rss import (
    FeedItem,
    RSSClient,
    number_after,
    parse_author,
    parse_feed,
)


def _entry(title, link, published=None, updated=None, author=None, category=None):
    parts = [f"<entry><title>{title}</title>", f'<link rel="alternate" href="{link}"/>']
    if published:
        parts.append(f"<published>{published}</published>")
    if updated:
        parts.append(f"<updated>{updated}</updated>")
    if author:
        parts.append(f"<author><name>{author}</name></author>")
    if category:
        parts.append(f'<category term="{category}"/>')
    parts.append("</entry>")
    return "".join(parts)


def _feed(*entries):
    body = "".join(entries)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<feed xmlns="http://www.w3.org/2005/Atom"><title>t</title>{body}</feed>'
    ).encode()


@pytest.fixture
def client(tmp_path):
    config = Config(user="octocat", output_dir=str(tmp_path), cache_dir=str(tmp_path))
    cache = Cache(tmp_path, timedelta(hours=1))
    return RSSClient(config, cache)


def test_parse_author_extracts_login():
    assert parse_author("Mona Lisa (@octocat)") == ("octocat", "https://github.com/octocat")


def test_parse_author_without_parenthesis_is_unchanged():
    assert parse_author("octocat") == ("octocat", "")


def test_number_after_reads_leading_integer():
    assert number_after("https://github.com/o/r/issues/42", "/issues/") == 42
    assert number_after("https://github.com/o/r/pull/7#discussion", "/pull/") == 7


def test_number_after_defaults_to_zero():
    assert number_after("https://github.com/o/r/issues/abc", "/issues/") == 0
    assert number_after("https://github.com/o/r", "/issues/") == 0


def test_parse_feed_atom_entry():
    text = _feed(
        _entry(
            "Crash on start",
            "https://github.com/o/r/issues/42",
            published="2024-01-02T03:04:05Z",
            updated="2024-01-03T03:04:05Z",
            author="Mona (@octocat)",
            category="Q&amp;A",
        )
    )
    items = parse_feed(text)
    assert items == [
        FeedItem(
            title="Crash on start",
            link="https://github.com/o/r/issues/42",
            author="Mona (@octocat)",
            categories=["Q&A"],
            published=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            updated=datetime(2024, 1, 3, 3, 4, 5, tzinfo=timezone.utc),
        )
    ]


def test_parse_feed_rss_document():
    text = (
        b"<rss version='2.0'><channel><title>x</title><item><title>Hello</title>"
        b"<link>https://github.com/o/r/pull/3</link>"
        b"<pubDate>Tue, 02 Jan 2024 03:04:05 +0000</pubDate></item></channel></rss>"
    )
    [item] = parse_feed(text)
    assert item.title == "Hello"
    assert item.link == "https://github.com/o/r/pull/3"
    assert item.published == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert item.updated is None


def test_parse_feed_rejects_garbage():
    with pytest.raises(ValueError):
        parse_feed(b"not xml at all <")


def test_parse_feed_rejects_unknown_root():
    with pytest.raises(ValueError):
        parse_feed(b"<html><body/></html>")


def test_issues_skip_pull_requests(client):
    feed = _feed(
        _entry("Bug", "https://github.com/o/r/issues/5",
               published="2024-01-02T00:00:00Z", author="M (@mona)"),
        _entry("A PR", "https://github.com/o/r/pull/6", published="2024-01-02T00:00:00Z"),
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://github.com/o/r/issues.atom", body=feed)
        issues = client.get_issues("o", "r")
    assert [issue.number for issue in issues] == [5]
    assert issues[0].author == "mona"
    assert issues[0].author_url == "https://github.com/mona"
    assert issues[0].updated_at == issues[0].created_at


def test_pull_requests_are_open_and_cached(client):
    feed = _feed(_entry("Feature", "https://github.com/o/r/pull/9",
                        published="2024-02-01T00:00:00Z", updated="2024-02-02T00:00:00Z"))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://github.com/o/r/pulls.atom", body=feed)
        first = client.get_pull_requests("o", "r")
        second = client.get_pull_requests("o", "r")
        assert len(rsps.calls) == 1
    assert first == second
    assert first[0].number == 9
    assert first[0].status == "open"
    assert first[0].labels == []
    assert first[0].updated_at > first[0].created_at


def test_feed_error_returns_empty_and_is_not_cached(client):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://github.com/o/r/pulls.atom", status=404)
        assert client.get_pull_requests("o", "r") == []
        assert client.get_pull_requests("o", "r") == []
        assert len(rsps.calls) == 2


def test_discussions_keep_only_recent(client):
    now = datetime.now(timezone.utc)
    recent = (now - timedelta(days=2)).isoformat()
    old = (now - timedelta(days=60)).isoformat()
    feed = _feed(
        _entry("Fresh", "https://github.com/o/r/discussions/1", published=recent,
               category="Ideas"),
        _entry("Stale", "https://github.com/o/r/discussions/2", published=old),
        _entry("Undated", "https://github.com/o/r/discussions/3"),
    )
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, "https://github.com/o/r/discussions.atom", body=feed)
        discussions = client.get_discussions("o", "r")
    assert [d.title for d in discussions] == ["Fresh", "Undated"]
    assert discussions[0].category == "Ideas"
    assert discussions[1].category == "Discussion"
    assert discussions[1].last_updated == ZERO_TIME
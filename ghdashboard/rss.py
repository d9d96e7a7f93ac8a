"""Pull requests, issues and discussions read from GitHub's Atom feeds."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from xml.etree.ElementTree import Element, ParseError

import requests
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring

from .cache import Cache
from .models import ZERO_TIME, Config, Discussion, Issue, PullRequest

log = logging.getLogger(__name__)

FEED_URL = "https://github.com/"
PROFILE_URL = "https://github.com/"
DISCUSSION_WINDOW = timedelta(days=30)

_ATOM = "{http://www.w3.org/2005/Atom}"
_DC_CREATOR = "{http://purl.org/dc/elements/1.1/}creator"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_MISSING = object()


@dataclass
class FeedItem:
    """One entry of a parsed feed."""

    title: str = ""
    link: str = ""
    author: str | None = None
    categories: list[str] = field(default_factory=list)
    published: datetime | None = None
    updated: datetime | None = None


def _text(element: Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _parse_date(text: str) -> datetime | None:
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _atom_link(entry: Element) -> str:
    links = entry.findall(f"{_ATOM}link")
    for link in links:
        if link.get("rel", "alternate") == "alternate" and link.get("href"):
            return link.get("href", "")
    return links[0].get("href", "") if links else ""


def _atom_items(root: Element) -> Iterator[FeedItem]:
    for entry in root.findall(f"{_ATOM}entry"):
        author_element = entry.find(f"{_ATOM}author")
        author = None
        if author_element is not None:
            author = _text(author_element.find(f"{_ATOM}name"))
        categories = [
            category.get("term") or _text(category)
            for category in entry.findall(f"{_ATOM}category")
        ]
        yield FeedItem(
            title=_text(entry.find(f"{_ATOM}title")),
            link=_atom_link(entry),
            author=author,
            categories=[category for category in categories if category],
            published=_parse_date(_text(entry.find(f"{_ATOM}published"))),
            updated=_parse_date(_text(entry.find(f"{_ATOM}updated"))),
        )


def _rss_items(root: Element) -> Iterator[FeedItem]:
    channel = root.find("channel")
    if channel is None:
        return
    for item in channel.findall("item"):
        author = _text(item.find("author")) or _text(item.find(_DC_CREATOR))
        categories = [_text(category) for category in item.findall("category")]
        yield FeedItem(
            title=_text(item.find("title")),
            link=_text(item.find("link")),
            author=author or None,
            categories=[category for category in categories if category],
            published=_parse_date(_text(item.find("pubDate"))),
        )


def parse_feed(text: str | bytes) -> list[FeedItem]:
    """Parse an Atom or RSS 2.0 document into its items."""
    try:
        root = fromstring(text)
    except (ParseError, DefusedXmlException) as exc:
        raise ValueError(f"invalid feed: {exc}") from exc
    if root.tag == f"{_ATOM}feed":
        return list(_atom_items(root))
    if root.tag == "rss":
        return list(_rss_items(root))
    raise ValueError(f"unsupported feed format: {root.tag}")


def parse_author(name: str) -> tuple[str, str]:
    """Split ``Name (@login)`` into the login and its profile URL."""
    if "(" not in name:
        return name, ""
    username = name.split("(")[1].removeprefix("@").removesuffix(")")
    return username, f"{PROFILE_URL}{username}"


def number_after(link: str, marker: str) -> int:
    """The integer that follows ``marker`` in ``link``, or 0."""
    parts = link.split(marker)
    if len(parts) < 2:
        return 0
    match = _LEADING_INT.match(parts[1])
    return int(match.group(1)) if match else 0


def _author_of(item: FeedItem) -> tuple[str, str]:
    if item.author is None:
        return "", ""
    return parse_author(item.author)


def _last_change(item: FeedItem) -> datetime:
    return item.updated or item.published or ZERO_TIME


class RSSClient:
    """Reads repository activity from the public GitHub feeds."""

    def __init__(
        self,
        config: Config,
        cache: Cache,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.session = session if session is not None else requests.Session()
        self.base_url = FEED_URL

    def _verbose(self, message: str, *args: Any) -> None:
        if self.config.verbose:
            log.info(message, *args)

    def _fetch(self, owner: str, repo: str, feed: str, what: str) -> list[FeedItem] | None:
        url = f"{self.base_url}{owner}/{repo}/{feed}.atom"
        try:
            response = self.session.get(url, timeout=30)
            response.raise_for_status()
            return parse_feed(response.content)
        except (requests.RequestException, ValueError) as exc:
            self._verbose("Error fetching %s feed for %s/%s: %s", what, owner, repo, exc)
            return None

    def get_discussions(self, owner: str, repo: str) -> list[Discussion]:
        """Discussions published within the last thirty days."""
        cache_key = f"discussions_rss_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached discussions for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching discussions from RSS for %s/%s", owner, repo)
        items = self._fetch(owner, repo, "discussions", "discussions")
        if items is None:
            return []

        cutoff = datetime.now(timezone.utc) - DISCUSSION_WINDOW
        discussions: list[Discussion] = []
        for item in items:
            if item.published is not None and item.published < cutoff:
                continue
            author, author_url = _author_of(item)
            discussions.append(
                Discussion(
                    title=item.title,
                    url=item.link,
                    author=author,
                    author_url=author_url,
                    category=item.categories[0] if item.categories else "Discussion",
                    created_at=item.published or ZERO_TIME,
                    last_updated=_last_change(item),
                )
            )

        self.cache.set(cache_key, discussions)
        return discussions

    def get_issues(self, owner: str, repo: str) -> list[Issue]:
        """Issues from the issues feed, leaving out pull requests."""
        cache_key = f"issues_rss_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached issues from RSS for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching issues from RSS for %s/%s", owner, repo)
        items = self._fetch(owner, repo, "issues", "issues")
        if items is None:
            return []

        issues: list[Issue] = []
        for item in items:
            if "/pull/" in item.link:
                continue
            author, author_url = _author_of(item)
            issues.append(
                Issue(
                    number=number_after(item.link, "/issues/"),
                    title=item.title,
                    url=item.link,
                    author=author,
                    author_url=author_url,
                    created_at=item.published or ZERO_TIME,
                    updated_at=_last_change(item),
                )
            )

        self.cache.set(cache_key, issues)
        return issues

    def get_pull_requests(self, owner: str, repo: str) -> list[PullRequest]:
        """Open pull requests from the pulls feed."""
        cache_key = f"prs_rss_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached pull requests from RSS for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching pull requests from RSS for %s/%s", owner, repo)
        items = self._fetch(owner, repo, "pulls", "pull requests")
        if items is None:
            return []

        pull_requests: list[PullRequest] = []
        for item in items:
            author, author_url = _author_of(item)
            pull_requests.append(
                PullRequest(
                    number=number_after(item.link, "/pull/"),
                    title=item.title,
                    url=item.link,
                    author=author,
                    author_url=author_url,
                    status="open",
                    created_at=item.published or ZERO_TIME,
                    updated_at=_last_change(item),
                )
            )

        self.cache.set(cache_key, pull_requests)
        return pull_requests
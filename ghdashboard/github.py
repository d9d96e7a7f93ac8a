"""Access to the GitHub REST API with caching, retries and rate limiting."""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from urllib.parse import parse_qs, urlparse

import requests

from .cache import Cache
from .models import (
    ZERO_TIME,
    Config,
    Discussion,
    Issue,
    Label,
    PullRequest,
    Repository,
    WorkflowRun,
)

log = logging.getLogger(__name__)

API_URL = "https://api.github.com/"
MAX_RETRIES = 5
RETRY_WAIT_MIN = 1.0
RETRY_WAIT_MAX = 30.0
RATE_LIMIT_BUFFER = timedelta(seconds=5)
MAX_RATE_LIMIT_WAIT = timedelta(hours=1)
LOW_REMAINING = 100

_INTEGER = re.compile(r"[+-]?\d+")
_MISSING = object()
_UNRECOVERABLE = (
    requests.exceptions.TooManyRedirects,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.SSLError,
)


class GitHubError(Exception):
    """A request to the GitHub API failed or was cancelled."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_int(text: str | None) -> int | None:
    if text is None or not _INTEGER.fullmatch(text):
        return None
    return int(text)


def _parse_time(value: Any) -> datetime:
    if not value:
        return ZERO_TIME
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return ZERO_TIME
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(data: Mapping[str, Any] | None, key: str) -> str:
    if not data:
        return ""
    value = data.get(key)
    return "" if value is None else str(value)


def _number(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    return int(value) if value is not None else 0


def _labels(data: Mapping[str, Any]) -> list[Label]:
    return [
        Label(name=_text(label, "name"), color=_text(label, "color"))
        for label in data.get("labels") or []
    ]


@dataclass
class RateLimiter:
    """What the API last reported about the remaining request budget."""

    remaining: int = 0
    reset_time: datetime | None = None
    last_checked: datetime | None = None

    def update(self, headers: Mapping[str, str]) -> None:
        """Take the rate limit figures from response headers."""
        remaining = _parse_int(headers.get("X-RateLimit-Remaining"))
        if remaining is not None:
            self.remaining = remaining
        reset = _parse_int(headers.get("X-RateLimit-Reset"))
        if reset is not None:
            self.reset_time = datetime.fromtimestamp(reset, timezone.utc)
        self.last_checked = _now()

    def wait_time(self, now: datetime) -> timedelta:
        """Time to wait for the reset when the budget runs low, else zero."""
        if self.remaining >= LOW_REMAINING or self.reset_time is None:
            return timedelta(0)
        wait = self.reset_time - now
        if timedelta(0) < wait < MAX_RATE_LIMIT_WAIT:
            return wait
        return timedelta(0)


def convert_repository(data: Mapping[str, Any]) -> Repository:
    """Build a repository record from an API object."""
    return Repository(
        name=_text(data, "name"),
        full_name=_text(data, "full_name"),
        description=_text(data, "description"),
        url=_text(data, "html_url"),
        owner=_text(data.get("owner"), "login"),
        stars=_number(data, "stargazers_count"),
        forks=_number(data, "forks_count"),
        last_updated=_parse_time(data.get("updated_at")),
    )


def convert_pull_request(data: Mapping[str, Any]) -> PullRequest:
    """Build a pull request record from an API object."""
    user = data.get("user")
    return PullRequest(
        number=_number(data, "number"),
        title=_text(data, "title"),
        url=_text(data, "html_url"),
        author=_text(user, "login"),
        author_url=_text(user, "html_url"),
        status=_text(data, "state"),
        created_at=_parse_time(data.get("created_at")),
        updated_at=_parse_time(data.get("updated_at")),
        labels=_labels(data),
    )


def convert_issue(data: Mapping[str, Any]) -> Issue:
    """Build an issue record from an API object."""
    user = data.get("user")
    return Issue(
        number=_number(data, "number"),
        title=_text(data, "title"),
        url=_text(data, "html_url"),
        author=_text(user, "login"),
        author_url=_text(user, "html_url"),
        created_at=_parse_time(data.get("created_at")),
        updated_at=_parse_time(data.get("updated_at")),
        labels=_labels(data),
    )


def convert_workflow_run(data: Mapping[str, Any]) -> WorkflowRun:
    """Build a workflow run record from an API object."""
    return WorkflowRun(
        id=_number(data, "id"),
        name=_text(data, "name"),
        url=_text(data, "html_url"),
        status=_text(data, "status"),
        conclusion=_text(data, "conclusion"),
        run_number=_number(data, "run_number"),
        branch=_text(data, "head_branch"),
        created_at=_parse_time(data.get("created_at")),
        updated_at=_parse_time(data.get("updated_at")),
    )


def _next_page(response: requests.Response) -> int:
    url = response.links.get("next", {}).get("url")
    if not url:
        return 0
    pages = parse_qs(urlparse(url).query).get("page")
    if not pages:
        return 0
    return _parse_int(pages[0]) or 0


class GitHubClient:
    """GitHub API client that caches results and respects rate limits."""

    def __init__(
        self,
        config: Config,
        cache: Cache,
        session: requests.Session | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.session = session if session is not None else requests.Session()
        self.rate_limiter = RateLimiter()
        self.base_url = API_URL
        self._stop = stop_event if stop_event is not None else threading.Event()
        self._headers = {"Accept": "application/vnd.github.v3+json"}
        if config.github_token:
            self._headers["Authorization"] = f"Bearer {config.github_token}"

    # -- plumbing -------------------------------------------------------

    def _pause(self, seconds: float) -> None:
        if self._stop.wait(seconds):
            raise GitHubError("context canceled")

    def _verbose(self, message: str, *args: Any) -> None:
        if self.config.verbose:
            log.info(message, *args)

    def _should_retry(
        self, response: requests.Response | None, error: Exception | None
    ) -> bool:
        if self._stop.is_set():
            raise GitHubError("context canceled")
        if response is not None and response.status_code == 403:
            if response.headers.get("X-RateLimit-Remaining") == "0":
                reset = _parse_int(response.headers.get("X-RateLimit-Reset"))
                if reset is not None:
                    wait = datetime.fromtimestamp(reset, timezone.utc) - _now()
                    if timedelta(0) < wait < MAX_RATE_LIMIT_WAIT:
                        log.warning("Rate limit exceeded. Waiting %s until reset...", wait)
                        self._pause((wait + RATE_LIMIT_BUFFER).total_seconds())
                        return True
        if error is not None:
            return not isinstance(error, _UNRECOVERABLE)
        if response is None:
            return True
        status = response.status_code
        return status == 429 or status == 0 or (status >= 500 and status != 501)

    @staticmethod
    def _backoff(attempt: int, response: requests.Response | None) -> float:
        if response is not None and response.status_code in (429, 503):
            retry_after = _parse_int(response.headers.get("Retry-After"))
            if retry_after is not None:
                return float(retry_after)
        return min(RETRY_WAIT_MIN * 2**attempt, RETRY_WAIT_MAX)

    def _get(self, path: str, params: Mapping[str, Any]) -> requests.Response:
        if self._stop.is_set():
            raise GitHubError("context canceled")
        url = self.base_url + path
        attempt = 0
        while True:
            response: requests.Response | None = None
            error: Exception | None = None
            try:
                response = self.session.get(
                    url, params=dict(params), headers=self._headers, timeout=30
                )
            except requests.RequestException as exc:
                error = exc
            if not self._should_retry(response, error):
                break
            if attempt >= MAX_RETRIES:
                raise GitHubError(f"GET {url} giving up after {attempt + 1} attempt(s)")
            self._pause(self._backoff(attempt, response))
            attempt += 1

        if error is not None:
            raise GitHubError(f"GET {url}: {error}") from error
        assert response is not None
        if not 200 <= response.status_code < 300:
            message = ""
            try:
                body = response.json()
                if isinstance(body, dict):
                    message = str(body.get("message", ""))
            except ValueError:
                message = response.text
            raise GitHubError(f"GET {url}: {response.status_code} {message}".rstrip())
        return response

    def _check_rate_limit(self, response: requests.Response) -> None:
        self.rate_limiter.update(response.headers)
        self._verbose(
            "Rate limit remaining: %d, resets at: %s",
            self.rate_limiter.remaining,
            self.rate_limiter.reset_time,
        )

    def _wait_for_rate_limit(self) -> None:
        wait = self.rate_limiter.wait_time(_now())
        if wait > timedelta(0):
            log.warning(
                "Approaching rate limit (%d remaining). Waiting %s for reset...",
                self.rate_limiter.remaining,
                wait,
            )
            self._pause((wait + RATE_LIMIT_BUFFER).total_seconds())
            log.warning("Rate limit reset. Continuing...")

    def _paginate(self, path: str, params: Mapping[str, Any], what: str, delay: float):
        page = 1
        while True:
            self._wait_for_rate_limit()
            try:
                response = self._get(path, {**params, "per_page": 100, "page": page})
            except GitHubError as exc:
                raise GitHubError(f"error fetching {what} (page {page}): {exc}") from exc
            self._check_rate_limit(response)
            items = response.json() or []
            yield page, items
            page = _next_page(response)
            if page == 0:
                return
            self._pause(delay)

    # -- public API -----------------------------------------------------

    def get_repositories(self) -> list[Repository]:
        """All repositories of the configured user or organization."""
        target = self.config.user or self.config.organization
        cache_key = "repos_" + target
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached repositories")
            return cached

        self._verbose("Fetching repositories from GitHub API")
        if self.config.user:
            path = f"users/{self.config.user}/repos"
        else:
            path = f"orgs/{self.config.organization}/repos"

        repositories: list[Repository] = []
        for page, items in self._paginate(path, {"sort": "updated"}, "repositories", 0.1):
            repositories.extend(convert_repository(item) for item in items)
            self._verbose("Fetched page %d with %d repositories", page, len(items))

        self.cache.set(cache_key, repositories)
        return repositories

    def get_pull_requests(self, owner: str, repo: str) -> list[PullRequest]:
        """Open pull requests of a repository, most recently updated first."""
        cache_key = f"prs_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached pull requests for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching pull requests for %s/%s", owner, repo)
        params = {"state": "open", "sort": "updated", "direction": "desc"}
        pull_requests: list[PullRequest] = []
        for _, items in self._paginate(
            f"repos/{owner}/{repo}/pulls", params, "pull requests", 0.05
        ):
            pull_requests.extend(convert_pull_request(item) for item in items)

        self.cache.set(cache_key, pull_requests)
        return pull_requests

    def get_issues(self, owner: str, repo: str) -> list[Issue]:
        """Open issues of a repository, leaving out pull requests."""
        cache_key = f"issues_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached issues for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching issues for %s/%s", owner, repo)
        params = {"state": "open", "sort": "updated", "direction": "desc"}
        issues: list[Issue] = []
        for _, items in self._paginate(
            f"repos/{owner}/{repo}/issues", params, "issues", 0.05
        ):
            issues.extend(
                convert_issue(item) for item in items if item.get("pull_request") is None
            )

        self.cache.set(cache_key, issues)
        return issues

    def get_workflow_runs(self, owner: str, repo: str) -> list[WorkflowRun]:
        """The ten most recent workflow runs of a repository."""
        cache_key = f"workflow_runs_{owner}_{repo}"
        cached = self.cache.get(cache_key, _MISSING)
        if cached is not _MISSING:
            self._verbose("Using cached workflow runs for %s/%s", owner, repo)
            return cached

        self._verbose("Fetching workflow runs for %s/%s", owner, repo)
        self._wait_for_rate_limit()
        try:
            response = self._get(f"repos/{owner}/{repo}/actions/runs", {"per_page": 10})
        except GitHubError as exc:
            raise GitHubError(f"error fetching workflow runs: {exc}") from exc
        self._check_rate_limit(response)

        body = response.json() or {}
        runs = [convert_workflow_run(item) for item in body.get("workflow_runs") or []]
        self.cache.set(cache_key, runs)
        return runs

    def get_discussions(self, owner: str, repo: str) -> list[Discussion]:
        """Discussions have no REST endpoint; they come from the feeds instead."""
        return []
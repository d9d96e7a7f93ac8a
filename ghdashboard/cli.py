"""Command line entry point: fetches repository data and writes the dashboard."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import signal
import sys
import threading
from collections.abc import Callable, Iterator, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, TypeVar

import requests

from .cache import Cache
from .config import ConfigError, build_config, resolve_settings
from .github import GitHubClient, GitHubError
from .htmlgen import HTMLGenerator
from .mdgen import MarkdownGenerator
from .models import Config, Dashboard, Repository
from .rss import RSSClient

log = logging.getLogger(__name__)

PROGRAM = "ghdashboard"
VERSION = "0.1.0"
BUILD_DATE = "unknown"
COMMIT = "unknown"
MAX_WORKERS = 32

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

# argparse destination -> settings key understood by resolve_settings
_FLAG_KEYS = {
    "user": "user",
    "org": "org",
    "output": "output",
    "token": "token",
    "cache_dir": "cache-dir",
    "cache_ttl": "cache-ttl",
    "verbose": "verbose",
}

_FETCH_ERRORS = (GitHubError, requests.RequestException, ValueError)

T = TypeVar("T")


def _common_flags() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    suppress = argparse.SUPPRESS
    common.add_argument(
        "-u", "--user", default=suppress, help="GitHub username to generate dashboard for"
    )
    common.add_argument(
        "-o", "--org", default=suppress, help="GitHub organization to generate dashboard for"
    )
    common.add_argument(
        "-d",
        "--output",
        default=suppress,
        help="Output directory for the dashboard (default ./dashboard)",
    )
    common.add_argument(
        "-t",
        "--token",
        default=suppress,
        help="GitHub API token (optional, increases rate limits)",
    )
    common.add_argument(
        "--cache-dir",
        dest="cache_dir",
        default=suppress,
        help="Directory for caching API responses (default ./.cache)",
    )
    common.add_argument(
        "--cache-ttl",
        dest="cache_ttl",
        default=suppress,
        help="Cache time-to-live duration, e.g. 1h, 30m (default 1h)",
    )
    common.add_argument(
        "-v", "--verbose", action="store_true", default=suppress, help="Enable verbose output"
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    """The argument parser with its ``generate`` and ``version`` commands."""
    common = _common_flags()
    parser = argparse.ArgumentParser(
        prog=PROGRAM,
        description=(
            "Generate a static GitHub dashboard by aggregating repository data "
            "from the GitHub API and feeds, organised repository by repository."
        ),
        parents=[common],
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.add_parser(
        "generate",
        parents=[common],
        help="Generate the GitHub dashboard",
        description="Fetches GitHub repository data and generates a static dashboard.",
    )
    commands.add_parser(
        "version",
        parents=[common],
        help="Print the version number",
        description="Print the version, build date, and commit hash.",
    )
    return parser


def version_text() -> str:
    """Version, build date and commit, one per line."""
    return f"{PROGRAM} version {VERSION}\nBuild date: {BUILD_DATE}\nCommit: {COMMIT}"


def _long_date(moment: datetime) -> str:
    return f"{_MONTHS[moment.month - 1]} {moment.day}, {moment.year}"


def render_readme(dashboard: Dashboard) -> str:
    """The README placed next to the generated dashboard."""
    target = f"@{dashboard.username}" if dashboard.username else dashboard.organization
    return (
        "# GitHub Dashboard\n\n"
        f"This dashboard was generated for {target} on "
        f"{_long_date(dashboard.generated_at)}.\n\n"
        f"- Total repositories: {len(dashboard.repositories)}\n"
        f"- Total open pull requests: {dashboard.total_prs}\n"
        f"- Total open issues: {dashboard.total_issues}\n"
        f"- Total recent discussions: {dashboard.total_discussions}\n\n"
        "To view the dashboard, open `index.html` in your browser.\n"
    )


def _attempt(
    fetch: Callable[[str, str], list[T]], owner: str, name: str, what: str
) -> list[T]:
    try:
        return fetch(owner, name)
    except _FETCH_ERRORS as exc:
        log.error("Error fetching %s for %s/%s: %s", what, owner, name, exc)
        return []


def _feed_then_api(
    feed: Callable[[str, str], list[T]],
    api: Callable[[str, str], list[T]],
    owner: str,
    name: str,
    what: str,
    verbose: bool,
) -> list[T]:
    try:
        items = feed(owner, name)
    except _FETCH_ERRORS as exc:
        if verbose:
            log.info(
                "Error fetching %s from RSS for %s/%s: %s, falling back to API",
                what,
                owner,
                name,
                exc,
            )
        items = []
    if items:
        return items
    return _attempt(api, owner, name, what)


def collect_repository(
    repo: Repository,
    github_client: Any,
    rss_client: Any,
    verbose: bool = False,
) -> Repository:
    """A copy of ``repo`` filled with its pull requests, issues, discussions and runs.

    Feeds are tried first for pull requests and issues, the API when a feed gives
    nothing. Fetch errors are logged and leave the affected list empty.
    """
    owner, name = repo.owner, repo.name
    print(f"Processing repository: {owner}/{name}", flush=True)

    pull_requests = _feed_then_api(
        rss_client.get_pull_requests,
        github_client.get_pull_requests,
        owner,
        name,
        "pull requests",
        verbose,
    )
    issues = _feed_then_api(
        rss_client.get_issues, github_client.get_issues, owner, name, "issues", verbose
    )
    discussions = _attempt(rss_client.get_discussions, owner, name, "discussions")
    workflow_runs = _attempt(github_client.get_workflow_runs, owner, name, "workflow runs")

    return dataclasses.replace(
        repo,
        pull_requests=list(pull_requests),
        issues=list(issues),
        discussions=list(discussions),
        workflow_runs=list(workflow_runs),
    )


def run_generate(
    config: Config,
    github_client: Any,
    rss_client: Any,
    stop_event: threading.Event | None = None,
) -> Dashboard:
    """Fetch everything, write the Markdown, HTML and README files, return the data."""
    stop = stop_event if stop_event is not None else threading.Event()
    markdown_generator = MarkdownGenerator(config)
    html_generator = HTMLGenerator(config)

    dashboard = Dashboard(
        username=config.user,
        organization=config.organization,
        generated_at=datetime.now().astimezone(),
    )

    print("Fetching repositories...", flush=True)
    try:
        repositories = github_client.get_repositories()
    except GitHubError as exc:
        raise GitHubError(f"error fetching repositories: {exc}") from exc
    print(f"Found {len(repositories)} repositories", flush=True)

    def process(repo: Repository) -> Repository | None:
        if stop.is_set():
            return None
        return collect_repository(repo, github_client, rss_client, config.verbose)

    workers = max(1, min(MAX_WORKERS, len(repositories)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        processed = [repo for repo in pool.map(process, repositories) if repo is not None]

    dashboard.repositories = processed
    dashboard.total_prs = sum(len(repo.pull_requests) for repo in processed)
    dashboard.total_issues = sum(len(repo.issues) for repo in processed)
    dashboard.total_discussions = sum(len(repo.discussions) for repo in processed)

    print("Generating markdown files...", flush=True)
    markdown_paths = markdown_generator.generate_all(dashboard)

    print("Converting markdown to HTML...", flush=True)
    html_generator.convert_all_markdown_to_html(markdown_paths)

    print("Generating HTML dashboard...", flush=True)
    html_generator.generate_html(dashboard)

    readme_path = Path(config.output_dir) / "README.md"
    try:
        readme_path.write_bytes(render_readme(dashboard).encode("utf-8"))
    except OSError as exc:
        log.error("Error writing README file: %s", exc)

    print(f"\nDashboard generated successfully in {config.output_dir}")
    print(f"Open {config.output_dir}/index.html in your browser to view the dashboard")
    return dashboard


def _flags(args: argparse.Namespace) -> dict[str, Any]:
    given = vars(args)
    return {key: given[dest] for dest, key in _FLAG_KEYS.items() if dest in given}


@contextmanager
def _interrupts(stop: threading.Event) -> Iterator[None]:
    """Turn SIGINT and SIGTERM into a request to stop, while the block runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: Any) -> None:
        print("\nReceived interrupt signal, shutting down gracefully...", flush=True)
        stop.set()

    previous: Mapping[int, Any] = {
        sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def _generate(settings: Mapping[str, Any]) -> int:
    try:
        config = build_config(settings)
    except (ConfigError, OSError) as exc:
        print(f"Error: error with configuration: {exc}", file=sys.stderr)
        return 1

    stop = threading.Event()
    cache = Cache(config.cache_dir, config.cache_ttl)
    github_client = GitHubClient(config, cache, stop_event=stop)
    rss_client = RSSClient(config, cache)
    try:
        with _interrupts(stop):
            run_generate(config, github_client, rss_client, stop)
    except (GitHubError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0
    if args.command == "version":
        print(version_text())
        return 0

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    return _generate(resolve_settings(_flags(args)))


if __name__ == "__main__":
    sys.exit(main())
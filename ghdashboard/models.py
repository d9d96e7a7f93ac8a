"""Domain records gathered from GitHub and rendered into the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

#: Timestamp used when the upstream data carries no time at all.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass
class Label:
    """A GitHub label."""

    name: str = ""
    color: str = ""


@dataclass
class PullRequest:
    """A GitHub pull request."""

    number: int = 0
    title: str = ""
    url: str = ""
    author: str = ""
    author_url: str = ""
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    labels: list[Label] = field(default_factory=list)
    status: str = ""


@dataclass
class Issue:
    """A GitHub issue."""

    number: int = 0
    title: str = ""
    url: str = ""
    author: str = ""
    author_url: str = ""
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    labels: list[Label] = field(default_factory=list)


@dataclass
class Discussion:
    """A GitHub discussion."""

    title: str = ""
    url: str = ""
    author: str = ""
    author_url: str = ""
    created_at: datetime = ZERO_TIME
    last_updated: datetime = ZERO_TIME
    category: str = ""


@dataclass
class WorkflowRun:
    """A GitHub Actions workflow run."""

    id: int = 0
    name: str = ""
    url: str = ""
    status: str = ""  # "completed", "in_progress", "queued"
    conclusion: str = ""  # "success", "failure", "cancelled", "skipped", ...
    created_at: datetime = ZERO_TIME
    updated_at: datetime = ZERO_TIME
    run_number: int = 0
    branch: str = ""


@dataclass
class Repository:
    """A GitHub repository together with its open work items."""

    name: str = ""
    full_name: str = ""
    description: str = ""
    url: str = ""
    owner: str = ""
    stars: int = 0
    forks: int = 0
    last_updated: datetime = ZERO_TIME

    pull_requests: list[PullRequest] = field(default_factory=list)
    issues: list[Issue] = field(default_factory=list)
    discussions: list[Discussion] = field(default_factory=list)
    workflow_runs: list[WorkflowRun] = field(default_factory=list)
    total_workflow_runs: int = 0


@dataclass
class Dashboard:
    """Everything shown on the generated dashboard."""

    username: str = ""
    organization: str = ""
    generated_at: datetime = ZERO_TIME
    repositories: list[Repository] = field(default_factory=list)
    total_prs: int = 0
    total_issues: int = 0
    total_discussions: int = 0
    total_workflow_runs: int = 0


@dataclass
class Config:
    """Application settings after validation."""

    user: str = ""
    organization: str = ""
    output_dir: str = "./dashboard"
    github_token: str = ""
    cache_dir: str = "./.cache"
    cache_ttl: timedelta = timedelta(hours=1)
    verbose: bool = False
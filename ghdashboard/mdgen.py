"""Markdown pages, one per repository."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .models import Config, Dashboard, Label, Repository

log = logging.getLogger(__name__)

_COMPLETED_TEXT = {
    "success": "✅ Success",
    "failure": "❌ Failure",
    "cancelled": "⚪ Cancelled",
    "skipped": "⏭️ Skipped",
    "timed_out": "⏱️ Timed Out",
}
_PENDING_TEXT = {
    "in_progress": "🔄 In Progress",
    "queued": "⏳ Queued",
    "": "⚪ Unknown",
}


def workflow_status_text(status: str, conclusion: str) -> str:
    """Human-readable status of a workflow run; empty when unrecognised."""
    if status == "completed":
        if conclusion == "":
            return f"⚪ {status}"
        return _COMPLETED_TEXT.get(conclusion, "")
    return _PENDING_TEXT.get(status, "")


def _date(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def _minute(moment: datetime) -> str:
    return f"{_date(moment)} {moment.hour:02d}:{moment.minute:02d}"


def _second(moment: datetime) -> str:
    return f"{_minute(moment)}:{moment.second:02d}"


def _labels(labels: Iterable[Label]) -> str:
    names = [label.name for label in labels]
    return ", ".join(names) if names else "*none*"


def _section(rows: list[str], header: str, separator: str, empty: str) -> str:
    if not rows:
        return f"\n*{empty}*\n"
    body = "".join(f"{row}\n" for row in rows)
    return f"\n{header}\n{separator}\n{body}\n"


class MarkdownGenerator:
    """Writes a Markdown summary for each repository."""

    def __init__(self, config: Config) -> None:
        self.output_dir = Path(config.output_dir)
        self.verbose = config.verbose

    def render_repository(self, repo: Repository, generated_at: datetime) -> str:
        """The Markdown page for ``repo``."""
        pull_requests = _section(
            [
                f"| [{pr.title}]({pr.url}) | [{pr.author}]({pr.author_url}) | "
                f"{_date(pr.updated_at)} | {_labels(pr.labels)} |"
                for pr in repo.pull_requests
            ],
            "| Title | Author | Updated | Labels |",
            "|-------|--------|---------|--------|",
            "No open pull requests",
        )
        issues = _section(
            [
                f"| [{issue.title}]({issue.url}) | [{issue.author}]({issue.author_url}) | "
                f"{_date(issue.updated_at)} | {_labels(issue.labels)} |"
                for issue in repo.issues
            ],
            "| Title | Author | Updated | Labels |",
            "|-------|--------|---------|--------|",
            "No open issues",
        )
        discussions = _section(
            [
                f"| [{d.title}]({d.url}) | [{d.author}]({d.author_url}) | "
                f"{_date(d.last_updated)} | {d.category} |"
                for d in repo.discussions
            ],
            "| Title | Started By | Last Activity | Category |",
            "|-------|------------|---------------|----------|",
            "No recent discussions",
        )
        workflow_runs = _section(
            [
                f"| [{run.name}]({run.url}) | {run.branch} | "
                f"{workflow_status_text(run.status, run.conclusion)} | "
                f"{run.run_number} | {_minute(run.created_at)} |"
                for run in repo.workflow_runs
            ],
            "| Workflow | Branch | Status | Run # | Created |",
            "|----------|--------|--------|-------|---------|",
            "No recent workflow runs",
        )
        description = repo.description or "No description provided."
        return (
            f"# Repository: {repo.name}\n\n"
            f"{description}\n\n"
            f"## Open Pull Requests\n\n{pull_requests}"
            f"\n\n## Open Issues\n\n{issues}"
            f"\n\n## Recent Discussions\n\n{discussions}"
            f"\n\n## Recent Workflow Runs\n\n{workflow_runs}"
            f"\n\n---\n*Generated at {_second(generated_at)}*\n"
        )

    def generate_repository_markdown(self, repo: Repository) -> str:
        """Write the page for ``repo`` and return its path."""
        if self.verbose:
            log.info("Generating markdown for repository %s", repo.full_name)
        content = self.render_repository(repo, datetime.now().astimezone())
        path = self.output_dir / "repositories" / f"{repo.name}.md"
        path.write_bytes(content.encode("utf-8"))
        return str(path)

    def generate_all(self, dashboard: Dashboard) -> list[str]:
        """Write a page for every repository, returning the paths in order."""
        return [self.generate_repository_markdown(repo) for repo in dashboard.repositories]
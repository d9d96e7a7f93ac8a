from datetime import datetime
from pathlib import Path

import pytest

from ghdashboard.mdgen import MarkdownGenerator, workflow_status_text
from ghdashboard.models import (
    Config,
    Dashboard,
    Discussion,
    Issue,
    Label,
    PullRequest,
    Repository,
    WorkflowRun,
)

STAMP = datetime(2024, 3, 5, 7, 8, 9)


@pytest.fixture
def generator(tmp_path):
    (tmp_path / "repositories").mkdir()
    return MarkdownGenerator(Config(user="octocat", output_dir=str(tmp_path)))


@pytest.mark.parametrize(
    ("status", "conclusion", "expected"),
    [
        ("completed", "success", "✅ Success"),
        ("completed", "failure", "❌ Failure"),
        ("completed", "cancelled", "⚪ Cancelled"),
        ("completed", "skipped", "⏭️ Skipped"),
        ("completed", "timed_out", "⏱️ Timed Out"),
        ("completed", "", "⚪ completed"),
        ("in_progress", "", "🔄 In Progress"),
        ("queued", "", "⏳ Queued"),
        ("", "", "⚪ Unknown"),
        ("completed", "neutral", ""),
        ("waiting", "", ""),
    ],
)
def test_workflow_status_text(status, conclusion, expected):
    assert workflow_status_text(status, conclusion) == expected


def test_empty_repository_page(generator):
    text = generator.render_repository(Repository(name="demo"), STAMP)
    lines = text.split("\n")
    assert lines[0] == "# Repository: demo"
    assert "No description provided." in lines
    for empty in (
        "*No open pull requests*",
        "*No open issues*",
        "*No recent discussions*",
        "*No recent workflow runs*",
    ):
        assert empty in lines
    assert "| Title | Author | Updated | Labels |" not in text
    assert text.endswith("*Generated at 2024-03-05 07:08:09*\n")


def test_page_with_items(generator):
    repo = Repository(
        name="demo",
        description="A demo",
        pull_requests=[
            PullRequest(
                title="Fix bug",
                url="https://github.com/o/demo/pull/1",
                author="mona",
                author_url="https://github.com/mona",
                updated_at=STAMP,
                labels=[Label(name="bug"), Label(name="docs")],
            )
        ],
        issues=[Issue(title="Broken", url="u", author="a", author_url="au", updated_at=STAMP)],
        discussions=[Discussion(title="Idea", category="Ideas", last_updated=STAMP)],
        workflow_runs=[
            WorkflowRun(name="CI", branch="main", status="completed",
                        conclusion="success", run_number=12, created_at=STAMP)
        ],
    )
    lines = generator.render_repository(repo, STAMP).split("\n")
    assert "A demo" in lines
    assert (
        "| [Fix bug](https://github.com/o/demo/pull/1) | [mona](https://github.com/mona)"
        " | 2024-03-05 | bug, docs |"
    ) in lines
    issue_row = next(line for line in lines if line.startswith("| [Broken]"))
    assert issue_row.endswith("| *none* |")
    discussion_row = next(line for line in lines if line.startswith("| [Idea]"))
    assert discussion_row.endswith("| Ideas |")
    run_row = next(line for line in lines if line.startswith("| [CI]"))
    assert "| main | ✅ Success | 12 |" in run_row
    assert run_row.endswith("07:08 |")
    assert "*No open issues*" not in lines


def test_sections_appear_in_order(generator):
    text = generator.render_repository(Repository(name="x"), STAMP)
    positions = [
        text.index(heading)
        for heading in (
            "## Open Pull Requests",
            "## Open Issues",
            "## Recent Discussions",
            "## Recent Workflow Runs",
        )
    ]
    assert positions == sorted(positions)


def test_generate_all_writes_files(generator, tmp_path):
    dashboard = Dashboard(repositories=[Repository(name="one"), Repository(name="two")])
    paths = generator.generate_all(dashboard)
    assert [Path(p).name for p in paths] == ["one.md", "two.md"]
    content = Path(paths[1]).read_text(encoding="utf-8")
    assert content.startswith("# Repository: two\n")
    assert all(Path(p).parent == tmp_path / "repositories" for p in paths)


def test_missing_directory_raises(tmp_path):
    generator = MarkdownGenerator(Config(user="octocat", output_dir=str(tmp_path / "nope")))
    with pytest.raises(FileNotFoundError):
        generator.generate_repository_markdown(Repository(name="demo"))
from datetime import datetime
from pathlib import Path

import pytest

from ghdashboard.htmlgen import HTMLGenerator
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


@pytest.fixture
def output(tmp_path):
    out = tmp_path / "out"
    (out / "repositories").mkdir(parents=True)
    return out


@pytest.fixture
def generator(output):
    return HTMLGenerator(Config(user="alice", output_dir=str(output)))


def _dashboard(**kwargs):
    base = dict(username="alice", generated_at=datetime(2006, 1, 2, 15, 4))
    base.update(kwargs)
    return Dashboard(**base)


def test_title_uses_username(generator):
    page = generator.render_index(_dashboard())
    assert "<title>GitHub Dashboard for @alice</title>" in page


def test_title_uses_organization(generator):
    page = generator.render_index(_dashboard(username="", organization="acme"))
    assert "<title>GitHub Dashboard for acme</title>" in page
    assert '<a href="https://github.com/acme">acme</a>' in page


def test_generated_at_format(generator):
    page = generator.render_index(_dashboard())
    assert "Generated on January 2, 2006 at 15:04" in page


def test_totals_and_counts(generator):
    repos = [Repository(name="one"), Repository(name="two")]
    page = generator.render_index(
        _dashboard(repositories=repos, total_prs=4, total_issues=5, total_discussions=6)
    )
    assert "<span>2 repositories</span>" in page
    assert "<span>4 open pull requests</span>" in page
    assert "<span>5 open issues</span>" in page
    assert "<span>6 recent discussions</span>" in page
    assert page.count('class="repository"') == 2


def test_missing_description_and_empty_sections(generator):
    page = generator.render_index(_dashboard(repositories=[Repository(name="one")]))
    assert "No description provided." in page
    assert "Open Pull Requests (" not in page
    assert "Open Issues (" not in page
    assert "Recent Discussions (" not in page
    assert "Recent Workflow Runs (" not in page
    assert '<a href="repositories/one.md">View as Markdown</a>' in page


def test_pull_request_row_labels(generator):
    repo = Repository(
        name="one",
        pull_requests=[
            PullRequest(title="Fix", labels=[Label(name="bug"), Label(name="help")]),
            PullRequest(title="Other"),
        ],
    )
    page = generator.render_index(_dashboard(repositories=[repo]))
    assert "Open Pull Requests (2)" in page
    assert "<td>bug, help</td>" in page
    assert "<td><em>none</em></td>" in page


def test_issue_and_discussion_sections(generator):
    repo = Repository(
        name="one",
        issues=[Issue(title="Broken", author="bob", updated_at=datetime(2024, 3, 9))],
        discussions=[Discussion(title="Idea", category="Ideas")],
    )
    page = generator.render_index(_dashboard(repositories=[repo]))
    assert "Open Issues (1)" in page
    assert "@bob</a>" in page
    assert "<td>2024-03-09</td>" in page
    assert "Recent Discussions (1)" in page
    assert "<td>Ideas</td>" in page


def test_workflow_status_rendered(generator):
    repo = Repository(
        name="one",
        workflow_runs=[
            WorkflowRun(name="CI", status="completed", conclusion="success", run_number=7)
        ],
    )
    page = generator.render_index(_dashboard(repositories=[repo]))
    assert "✅ Success" in page
    assert "workflow-status-completed workflow-conclusion-success" in page
    assert "<td>7</td>" in page


def test_text_is_escaped(generator):
    repo = Repository(name="one", description="<script>x</script>")
    page = generator.render_index(_dashboard(repositories=[repo]))
    assert "<script>x</script>" not in page
    assert "&lt;script&gt;x&lt;/script&gt;" in page


def test_generate_html_writes_files(generator, output):
    generator.generate_html(_dashboard())
    index = (output / "index.html").read_text(encoding="utf-8")
    assert index == generator.render_index(_dashboard())
    css = (output / "style.css").read_text(encoding="utf-8")
    assert "--primary-color: #0366d6;" in css


def test_convert_markdown_to_html(generator, output, tmp_path):
    source = tmp_path / "project.md"
    source.write_text(
        "# Repository: project\n\n| A | B |\n|---|---|\n| 1 | 2 |\n", encoding="utf-8"
    )
    path = generator.convert_markdown_to_html(str(source))
    assert Path(path) == output / "repositories" / "project.html"
    page = Path(path).read_text(encoding="utf-8")
    assert "<title>project</title>" in page
    assert "<table>" in page
    assert "<h1>Repository: project</h1>" in page
    assert 'href="../style.css"' in page
    assert "width: 100%;" in page


def test_convert_all_keeps_order(generator, output, tmp_path):
    sources = []
    for name in ("b", "a"):
        source = tmp_path / f"{name}.md"
        source.write_text(f"# {name}\n", encoding="utf-8")
        sources.append(str(source))
    paths = generator.convert_all_markdown_to_html(sources)
    assert [Path(p).name for p in paths] == ["b.html", "a.html"]
    assert all(Path(p).exists() for p in paths)


def test_convert_missing_file_raises(generator, tmp_path):
    with pytest.raises(FileNotFoundError):
        generator.convert_markdown_to_html(str(tmp_path / "absent.md"))
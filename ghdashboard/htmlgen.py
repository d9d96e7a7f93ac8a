"""The HTML dashboard page, its stylesheet and HTML versions of the Markdown pages."""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import jinja2
import markdown

from .mdgen import workflow_status_text
from .models import Config, Dashboard

log = logging.getLogger(__name__)

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_MARKDOWN_EXTENSIONS = ["tables", "fenced_code", "sane_lists"]


def _date(moment: datetime) -> str:
    return f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"


def _minute(moment: datetime) -> str:
    return f"{_date(moment)} {moment.hour:02d}:{moment.minute:02d}"


def _long_date(moment: datetime) -> str:
    return (
        f"{_MONTHS[moment.month - 1]} {moment.day}, {moment.year} "
        f"at {moment.hour:02d}:{moment.minute:02d}"
    )


# --- stylesheet -----------------------------------------------------------

Rule = tuple[str, dict[str, str]]

_BORDER = "1px solid var(--border-color)"
_FLEX_START = {"flex-direction": "column", "align-items": "flex-start", "gap": "5px"}

_SECTIONS: list[tuple[str, list[Rule]]] = [
    ("Base styles", [
        (":root", {
            "--primary-color": "#0366d6",
            "--secondary-color": "#586069",
            "--background-color": "#ffffff",
            "--border-color": "#e1e4e8",
            "--pr-color": "#28a745",
            "--issue-color": "#d73a49",
            "--discussion-color": "#6f42c1",
            "--hover-color": "#f6f8fa",
            "--font-family": "-apple-system, BlinkMacSystemFont, 'Segoe UI', "
                             "Helvetica, Arial, sans-serif",
        }),
        ("*", {"box-sizing": "border-box", "margin": "0", "padding": "0"}),
        ("body", {
            "font-family": "var(--font-family)",
            "line-height": "1.5",
            "color": "#24292e",
            "background-color": "var(--background-color)",
            "padding": "20px",
            "max-width": "1200px",
            "margin": "0 auto",
        }),
    ]),
    ("Header styles", [
        ("header", {"margin-bottom": "30px", "padding-bottom": "20px", "border-bottom": _BORDER}),
        ("header h1", {"margin-bottom": "10px"}),
        (".dashboard-stats", {
            "display": "flex", "flex-wrap": "wrap", "gap": "15px", "margin-bottom": "10px",
        }),
        (".dashboard-stats span", {
            "background-color": "#f1f8ff",
            "border-radius": "20px",
            "padding": "5px 12px",
            "font-size": "14px",
        }),
        (".generated-at", {"font-size": "14px", "color": "var(--secondary-color)"}),
    ]),
    ("Repository styles", [
        (".repositories", {"margin-bottom": "30px"}),
        (".repositories h2", {"margin-bottom": "20px"}),
        (".repository", {
            "margin-bottom": "15px", "border": _BORDER,
            "border-radius": "6px", "overflow": "hidden",
        }),
        (".repo-details", {"padding": "15px", "border-bottom": _BORDER}),
        (".repo-description", {"margin-bottom": "10px"}),
        (".repo-meta", {
            "display": "flex", "flex-wrap": "wrap", "gap": "15px",
            "font-size": "14px", "color": "var(--secondary-color)",
        }),
        (".repo-links", {"padding": "10px 15px", "font-size": "14px", "border-top": _BORDER}),
    ]),
    ("Collapsible sections", [
        (".collapsible", {"width": "100%"}),
        (".toggle", {"position": "absolute", "opacity": "0", "z-index": "-1"}),
        (".toggle-label", {
            "display": "flex",
            "justify-content": "space-between",
            "align-items": "center",
            "padding": "12px 15px",
            "font-weight": "600",
            "cursor": "pointer",
            "background-color": "#f6f8fa",
            "position": "relative",
        }),
        (".section-label", {"border-top": _BORDER, "font-weight": "500"}),
        (".pr-label", {"color": "var(--pr-color)"}),
        (".issue-label", {"color": "var(--issue-color)"}),
        (".discussion-label", {"color": "var(--discussion-color)"}),
        (".toggle-label::after", {
            "content": "'+'", "font-size": "18px", "transition": "transform 0.3s ease",
        }),
        (".toggle:checked ~ .toggle-label::after", {"content": "'\u2212'"}),
        (".collapsible-content", {
            "max-height": "0", "overflow": "hidden", "transition": "max-height 0.35s ease",
        }),
        (".toggle:checked ~ .collapsible-content", {"max-height": "100vh"}),
    ]),
    ("Table styles", [
        (".data-table", {"width": "100%", "border-collapse": "collapse", "font-size": "14px"}),
        (".data-table th,\n.data-table td", {
            "padding": "8px 15px", "text-align": "left", "border-bottom": _BORDER,
        }),
        (".data-table th", {"background-color": "#f6f8fa", "font-weight": "600"}),
        (".data-table tr:hover", {"background-color": "var(--hover-color)"}),
    ]),
    ("Links", [
        ("a", {"color": "var(--primary-color)", "text-decoration": "none"}),
        ("a:hover", {"text-decoration": "underline"}),
    ]),
    ("Repository name and stats", [
        (".repo-name", {"font-size": "16px"}),
        (".repo-stats", {"display": "flex", "gap": "10px"}),
        (".stat", {
            "font-size": "12px",
            "padding": "2px 8px",
            "border-radius": "12px",
            "background-color": "#f1f8ff",
            "color": "var(--primary-color)",
        }),
    ]),
    ("Footer", [
        ("footer", {
            "margin-top": "40px",
            "padding-top": "20px",
            "border-top": _BORDER,
            "font-size": "14px",
            "color": "var(--secondary-color)",
            "text-align": "center",
        }),
    ]),
]

_NARROW_SCREEN: list[Rule] = [
    (".toggle-label", dict(_FLEX_START)),
    (".repo-stats", {"align-self": "flex-start"}),
    (".data-table", {"display": "block", "overflow-x": "auto"}),
    (".dashboard-stats", dict(_FLEX_START)),
    (".workflow-label", {"color": "#2088ff"}),
    (".workflow-status", {"font-weight": "500"}),
    (".workflow-status-completed.workflow-conclusion-success", {"color": "#22863a"}),
    (".workflow-status-completed.workflow-conclusion-failure", {"color": "#cb2431"}),
    (".workflow-status-in_progress", {"color": "#dbab09"}),
    (".workflow-status-queued", {"color": "#6f42c1"}),
]

_PAGE_RULES: list[Rule] = [
    (".markdown-body", {"padding": "20px", "max-width": "1000px", "margin": "0 auto"}),
    (".markdown-body table", {
        "width": "100%", "border-collapse": "collapse", "margin": "20px 0",
    }),
    (".markdown-body th, .markdown-body td", {
        "padding": "8px 15px", "text-align": "left", "border": "1px solid var(--border-color)",
    }),
    (".markdown-body th", {"background-color": "#f6f8fa"}),
    (".back-link", {"display": "inline-block", "margin": "20px"}),
]


def _render_rules(rules: Iterable[Rule], indent: str = "") -> str:
    blocks = []
    for selector, declarations in rules:
        lines = [f"{indent}{selector} {{"]
        lines.extend(f"{indent}    {name}: {value};" for name, value in declarations.items())
        lines.append(f"{indent}}}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


STYLESHEET = (
    "\n\n".join(f"/* {title} */\n{_render_rules(rules)}" for title, rules in _SECTIONS)
    + "\n\n/* Responsive adjustments */\n@media (max-width: 768px) {\n"
    + _render_rules(_NARROW_SCREEN, "    ")
    + "\n}"
)

# --- index page -----------------------------------------------------------

_INDEX_TEMPLATE = """\
{%- macro link(url, text, prefix='') -%}
<a href="{{ url }}" target="_blank">{{ prefix }}{{ text }}</a>
{%- endmacro -%}
{%- macro label_list(labels) -%}
{% for label in labels %}{% if not loop.first %}, {% endif %}{{ label.name }}\
{% else %}<em>none</em>{% endfor %}
{%- endmacro -%}
{%- macro panel(kind, name, css, heading, count, headers) -%}
<div class="collapsible">
  <input type="checkbox" id="{{ kind }}-{{ name }}" class="toggle">
  <label for="{{ kind }}-{{ name }}" class="toggle-label section-label {{ css }}">
    {{ heading }} ({{ count }})
  </label>
  <div class="collapsible-content">
    <table class="data-table">
      <thead>
        <tr>{% for h in headers %}<th>{{ h }}</th>{% endfor %}</tr>
      </thead>
      <tbody>
{{ caller() }}
      </tbody>
    </table>
  </div>
</div>
{%- endmacro -%}
{%- set target = ('@' ~ d.username) if d.username else d.organization -%}
{%- set account = d.username or d.organization -%}
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>GitHub Dashboard for {{ target }}</title>
  <link rel="stylesheet" href="style.css">
</head>
<body>
  <header>
    <h1>GitHub Dashboard for <a href="https://github.com/{{ account }}">{{ target }}</a></h1>
    <div class="dashboard-stats">
      <span>{{ d.repositories | length }} repositories</span>
      <span>{{ d.total_prs }} open pull requests</span>
      <span>{{ d.total_issues }} open issues</span>
      <span>{{ d.total_discussions }} recent discussions</span>
      <span>{{ d.total_workflow_runs }} recent workflow runs</span>
    </div>
    <p class="generated-at">Generated on {{ d.generated_at | long_date }}</p>
  </header>
  <main>
    <div class="repositories">
      <h2>Repositories</h2>
{% for repo in d.repositories %}
      <div class="repository">
        <div class="collapsible">
          <input type="checkbox" id="repo-{{ repo.name }}" class="toggle">
          <label for="repo-{{ repo.name }}" class="toggle-label">
            <span class="repo-name">{{ repo.name }}</span>
            <div class="repo-stats">
              <span class="stat">{{ repo.pull_requests | length }} PRs</span>
              <span class="stat">{{ repo.issues | length }} issues</span>
              <span class="stat">{{ repo.discussions | length }} discussions</span>
              <span class="stat">{{ repo.workflow_runs | length }} workflows</span>
            </div>
          </label>
          <div class="collapsible-content">
            <div class="repo-details">
              <p class="repo-description">{{ repo.description or 'No description provided.' }}</p>
              <div class="repo-meta">
                {{ link(repo.url, 'View on GitHub') }}
                <span>⭐ {{ repo.stars }}</span>
                <span>🍴 {{ repo.forks }}</span>
                <span>Updated: {{ repo.last_updated | day }}</span>
              </div>
            </div>
{% if repo.pull_requests %}
{% call panel('prs', repo.name, 'pr-label', 'Open Pull Requests',
              repo.pull_requests | length, ['Title', 'Author', 'Updated', 'Labels']) %}
{% for pr in repo.pull_requests %}
        <tr>
          <td>{{ link(pr.url, pr.title) }}</td>
          <td>{{ link(pr.author_url, pr.author, '@') }}</td>
          <td>{{ pr.updated_at | day }}</td>
          <td>{{ label_list(pr.labels) }}</td>
        </tr>
{% endfor %}
{% endcall %}
{% endif %}
{% if repo.issues %}
{% call panel('issues', repo.name, 'issue-label', 'Open Issues',
              repo.issues | length, ['Title', 'Author', 'Updated', 'Labels']) %}
{% for issue in repo.issues %}
        <tr>
          <td>{{ link(issue.url, issue.title) }}</td>
          <td>{{ link(issue.author_url, issue.author, '@') }}</td>
          <td>{{ issue.updated_at | day }}</td>
          <td>{{ label_list(issue.labels) }}</td>
        </tr>
{% endfor %}
{% endcall %}
{% endif %}
{% if repo.discussions %}
{% call panel('discussions', repo.name, 'discussion-label', 'Recent Discussions',
              repo.discussions | length, ['Title', 'Started By', 'Last Activity', 'Category']) %}
{% for discussion in repo.discussions %}
        <tr>
          <td>{{ link(discussion.url, discussion.title) }}</td>
          <td>{{ link(discussion.author_url, discussion.author, '@') }}</td>
          <td>{{ discussion.last_updated | day }}</td>
          <td>{{ discussion.category }}</td>
        </tr>
{% endfor %}
{% endcall %}
{% endif %}
{% if repo.workflow_runs %}
{% call panel('workflows', repo.name, 'workflow-label', 'Recent Workflow Runs',
              repo.workflow_runs | length, ['Workflow', 'Branch', 'Status', 'Run #', 'Created']) %}
{% for run in repo.workflow_runs %}
        <tr>
          <td>{{ link(run.url, run.name) }}</td>
          <td>{{ run.branch }}</td>
          <td class="workflow-status workflow-status-{{ run.status }} \
workflow-conclusion-{{ run.conclusion }}">{{ workflow_status(run.status, run.conclusion) }}</td>
          <td>{{ run.run_number }}</td>
          <td>{{ run.created_at | minute }}</td>
        </tr>
{% endfor %}
{% endcall %}
{% endif %}
            <div class="repo-links">
              <a href="repositories/{{ repo.name }}.md">View as Markdown</a>
            </div>
          </div>
        </div>
      </div>
{% endfor %}
    </div>
  </main>
  <footer>
    <p>Generated with ghdashboard</p>
  </footer>
</body>
</html>"""


def _markdown_page(title: str, body: str) -> str:
    style = _render_rules(_PAGE_RULES, "        ")
    return "\n".join(
        [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '    <meta charset="UTF-8">',
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"    <title>{title}</title>",
            '    <link rel="stylesheet" href="../style.css">',
            "    <style>",
            style,
            "    </style>",
            "</head>",
            "<body>",
            '    <a href="../index.html" class="back-link">\u2190 Back to Dashboard</a>',
            '    <div class="markdown-body">',
            f"        {body}",
            "    </div>",
            "</body>",
            "</html>",
        ]
    )


class HTMLGenerator:
    """Writes the dashboard's index page, stylesheet and repository pages."""

    def __init__(self, config: Config) -> None:
        self.output_dir = Path(config.output_dir)
        self.verbose = config.verbose
        environment = jinja2.Environment(
            autoescape=True,
            undefined=jinja2.StrictUndefined,
            keep_trailing_newline=False,
        )
        environment.filters["day"] = _date
        environment.filters["minute"] = _minute
        environment.filters["long_date"] = _long_date
        environment.globals["workflow_status"] = workflow_status_text
        self._template = environment.from_string(_INDEX_TEMPLATE)

    def render_index(self, dashboard: Dashboard) -> str:
        """The index page for ``dashboard``."""
        return self._template.render(d=dashboard)

    def generate_css(self) -> None:
        """Write ``style.css`` into the output directory."""
        (self.output_dir / "style.css").write_bytes(STYLESHEET.encode("utf-8"))

    def generate_html(self, dashboard: Dashboard) -> None:
        """Write ``index.html`` and its stylesheet."""
        if self.verbose:
            log.info("Generating HTML dashboard")
        page = self.render_index(dashboard)
        (self.output_dir / "index.html").write_bytes(page.encode("utf-8"))
        self.generate_css()

    def convert_markdown_to_html(self, markdown_path: str) -> str:
        """Render a Markdown page as HTML under ``repositories/``; return its path."""
        if self.verbose:
            log.info("Converting markdown to HTML: %s", markdown_path)
        source = Path(markdown_path)
        text = source.read_bytes().decode("utf-8")
        body = markdown.markdown(text, extensions=_MARKDOWN_EXTENSIONS)
        stem = source.stem
        page = _markdown_page(html.escape(stem), body)
        target = self.output_dir / "repositories" / f"{stem}.html"
        target.write_bytes(page.encode("utf-8"))
        return str(target)

    def convert_all_markdown_to_html(self, markdown_paths: Iterable[str]) -> list[str]:
        """Convert every Markdown page, returning the HTML paths in order."""
        return [self.convert_markdown_to_html(path) for path in markdown_paths]
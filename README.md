# ghdashboard

Generate a static, browsable dashboard for a GitHub user or organization.
For every repository it gathers open pull requests, open issues, discussions
from the last 30 days and the ten most recent GitHub Actions workflow runs.
It then writes these files into the output directory:

- `index.html` and `style.css`: the main dashboard with collapsible sections
- `repositories/<name>.md`: one Markdown page per repository
- `repositories/<name>.html`: the same page rendered to HTML
- `README.md`: a short summary of the totals

Pull requests and issues are read from the repository Atom feeds first. The
GitHub REST API is used when a feed gives nothing. Discussions come only from
the Atom feed. API and feed results are cached on disk as `cache.pickle` in the
cache directory and are reused until their time to live runs out.

When fewer than 100 API requests remain, the client waits for the rate limit
to reset before it continues. It waits only when the reset is less than an
hour away. Failed requests are retried up to five times with growing pauses.

## Installation

```
pip install .
```

## Usage

Generate a dashboard for a user:

```
github-dashboard generate --user octocat
```

Or generate one for an organization:

```
github-dashboard generate --org my-org --output ./site
```

Exactly one of `--user` and `--org` must be given. If neither or both are
given, the command prints an error and exits with status 1. The options may
come before or after the command name.

| Option | Default | Meaning |
|---|---|---|
| `-u`, `--user` | | GitHub username |
| `-o`, `--org` | | GitHub organization |
| `-d`, `--output` | `./dashboard` | Output directory |
| `-t`, `--token` | | GitHub API token (raises rate limits) |
| `--cache-dir` | `./.cache` | Directory for cached responses |
| `--cache-ttl` | `1h` | Cache lifetime, e.g. `30m`, `1h30m`, `90s` |
| `-v`, `--verbose` | off | Verbose logging |

If an option is not given on the command line, it is read from the
environment. The variable name is `GITHUB_DASHBOARD_` followed by the option
name in upper case:

- `GITHUB_DASHBOARD_USER`
- `GITHUB_DASHBOARD_ORG`
- `GITHUB_DASHBOARD_OUTPUT`
- `GITHUB_DASHBOARD_TOKEN`
- `GITHUB_DASHBOARD_VERBOSE`, which accepts `1`, `t`, `true` and similar values as on

The hyphen in the option name is kept. The cache settings therefore live in
`GITHUB_DASHBOARD_CACHE-DIR` and `GITHUB_DASHBOARD_CACHE-TTL`.

A token in `GITHUB_TOKEN` is used when no token is given otherwise.

Sending an interrupt (Ctrl-C) or SIGTERM during a run stops further fetching.
Repositories that were not processed yet are left out of the output.

Print version information:

```
github-dashboard version
```

Running `github-dashboard` without a command prints the help.

When the run finishes, open `index.html` in the output directory in a browser.

## Use from Python

The pieces can also be driven directly. `ghdashboard.config.build_config`
turns a settings mapping from `resolve_settings` into a `Config` and creates
the directories it names. `ghdashboard.cache.Cache`,
`ghdashboard.github.GitHubClient` and `ghdashboard.rss.RSSClient` fetch the
data. `ghdashboard.cli.run_generate(config, github_client, rss_client)` writes
every output file and returns the `Dashboard` it rendered.

## Limitations

- Discussions are taken only from the public Atom feed. A repository whose
  feed cannot be read shows no discussions. No API lookup is made for them.
- Pull requests and issues read from feeds carry no labels.
- A feed or API request that fails for one repository is logged and leaves
  that list empty. The run continues.

## Tests

```
pip install .[test]
pytest
```
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ghdashboard"
version = "0.1.0"
description = "Generate a static dashboard of GitHub repositories, pull requests, issues, discussions and workflow runs"
requires-python = ">=3.11"
keywords = ["github", "dashboard", "static-site", "atom", "markdown"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]
dependencies = [
    "requests",
    "jinja2",
    "markdown",
    "defusedxml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
github-dashboard = "ghdashboard.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ghdashboard"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

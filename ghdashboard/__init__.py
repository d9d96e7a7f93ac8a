"""Static GitHub dashboard generator: fetches repository activity and writes HTML and Markdown pages."""

__version__ = "0.1.0"
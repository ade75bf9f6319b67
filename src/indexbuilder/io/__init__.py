"""
Index Builder IO Module

- GitSourceFetcher: Fetches a repository branch into a local snapshot
- fetch_source: One-shot helper around GitSourceFetcher
- grep_tree: Regex search over a fetched snapshot

Usage:
    from indexbuilder.io import fetch_source, grep_tree

    source = fetch_source("github.com/org/repo", branch="main")
    for match in grep_tree(source.path, "defineIndexer"):
        print(match)
"""

from .git import GitSourceFetcher, fetch_source
from .search import grep_tree

__all__ = [
    'GitSourceFetcher',
    'fetch_source',
    'grep_tree',
]

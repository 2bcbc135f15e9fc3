"""Fetcher library — public API for reading manifests from repositories.

Provides a local worktree reader and an HTTP reader behind a common
``ManifestFetcher`` protocol, plus a factory selecting one from settings.
"""

from pack_manager.lib.fetcher.base import FetchResult, ManifestFetcher, content_hash
from pack_manager.lib.fetcher.http import HttpFetcher
from pack_manager.lib.fetcher.worktree import WorktreeFetcher, slugify_repo_key

__all__ = [
    "FetchResult",
    "HttpFetcher",
    "ManifestFetcher",
    "WorktreeFetcher",
    "content_hash",
    "create_fetcher",
    "slugify_repo_key",
]


def create_fetcher(backend: str, *, worktree_root: str, manifest_filename: str, timeout: float) -> ManifestFetcher:
    """Build the fetcher for a configured backend name.

    Args:
        backend: ``"worktree"`` or ``"http"``.
        worktree_root: Directory holding checked-out worktrees.
        manifest_filename: Manifest file name inside each repository.
        timeout: HTTP request timeout in seconds.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if backend == "worktree":
        return WorktreeFetcher(worktree_root, manifest_filename)
    if backend == "http":
        return HttpFetcher(timeout=timeout, manifest_filename=manifest_filename)
    msg = f"Unknown fetcher backend: {backend!r}"
    raise ValueError(msg)

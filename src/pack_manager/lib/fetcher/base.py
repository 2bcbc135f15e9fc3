"""Fetcher contract shared by every manifest source.

A fetcher turns a repository key (and optional ref) into raw manifest
bytes. Transport failures are reported through ``FetchResult.ok`` instead
of being raised, so the manifest store has a single failure path.
"""

import hashlib
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a single manifest fetch.

    Attributes:
        ok: True when ``body`` holds usable manifest text.
        status_code: HTTP-style status code describing the outcome.
        body: Raw manifest text, empty on failure.
        content_id: Stable identifier of the content (ETag or SHA-256 hex).
        ref: The ref that was resolved, if any.
        detail: Human-readable failure reason.
    """

    ok: bool
    status_code: int
    body: str = ""
    content_id: str = ""
    ref: str | None = None
    detail: str = ""


class ManifestFetcher(Protocol):
    """Protocol for manifest sources."""

    async def fetch(self, repo_key: str, *, ref: str | None = None) -> FetchResult:
        """Fetch the manifest for a repository.

        Args:
            repo_key: Repository identifier (URL or slug).
            ref: Optional branch, tag, or commit.

        Returns:
            The fetch outcome. Never raises for transport failures.
        """
        ...


def content_hash(body: str) -> str:
    """Return the SHA-256 hex digest of manifest text."""
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def failure(status_code: int, detail: str, *, ref: str | None = None) -> FetchResult:
    return FetchResult(ok=False, status_code=status_code, ref=ref, detail=detail)

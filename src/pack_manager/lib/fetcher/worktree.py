"""Read manifests from local repository worktrees.

Layout: ``<root>/<slug(repo_key)>[/<ref>]/<manifest_filename>``.
"""

import re
from pathlib import Path

import aiofiles
from loguru import logger

from pack_manager.lib.fetcher.base import FetchResult, content_hash, failure

_SLUG_STRIP_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_SLUG_INVALID = re.compile(r"[^A-Za-z0-9._-]+")


def slugify_repo_key(repo_key: str) -> str:
    """Turn a repository key into a single safe path component.

    ``https://github.com/Aharoni-Lab/labki-packs`` becomes
    ``github.com-Aharoni-Lab-labki-packs``.
    """
    stripped = _SLUG_STRIP_SCHEME.sub("", repo_key.strip()).removesuffix(".git")
    slug = _SLUG_INVALID.sub("-", stripped).strip("-.")
    if not slug:
        msg = f"repository key {repo_key!r} does not produce a usable directory name"
        raise ValueError(msg)
    return slug


class WorktreeFetcher:
    """Fetcher reading manifest files from a directory of checked-out worktrees."""

    def __init__(self, root: str | Path, manifest_filename: str = "manifest.yml") -> None:
        self.root = Path(root)
        self.manifest_filename = manifest_filename

    def manifest_path(self, repo_key: str, ref: str | None = None) -> Path:
        """Resolve the manifest location for a repository and ref.

        Raises:
            ValueError: If the key or ref would escape the worktree root.
        """
        base = self.root / slugify_repo_key(repo_key)
        if ref:
            if ref.startswith("/") or ".." in Path(ref).parts:
                msg = f"invalid ref {ref!r}"
                raise ValueError(msg)
            base = base / ref
        return base / self.manifest_filename

    async def fetch(self, repo_key: str, *, ref: str | None = None) -> FetchResult:
        try:
            path = self.manifest_path(repo_key, ref)
        except ValueError as exc:
            return failure(400, str(exc), ref=ref)

        logger.debug("Reading manifest from {}", path)
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                body = await f.read()
        except FileNotFoundError:
            return failure(404, f"manifest not found at {path}", ref=ref)
        except (PermissionError, IsADirectoryError):
            return failure(403, f"manifest at {path} is not readable", ref=ref)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read manifest {}: {}", path, exc)
            return failure(500, f"failed to read manifest: {exc}", ref=ref)

        if not body.strip():
            return failure(204, f"manifest at {path} is empty", ref=ref)
        return FetchResult(ok=True, status_code=200, body=body, content_id=content_hash(body), ref=ref)

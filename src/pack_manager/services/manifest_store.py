"""Manifest store — fetch-or-reuse cache of parsed manifest bundles.

Each cache key (repository, optionally pinned to a ref) maps to one
immutable :class:`CacheEntry`. Entries are replaced whole on refresh, so
readers never observe a partially rebuilt bundle. Concurrent requests that
need a fetch for the same key share a single in-flight task.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from loguru import logger

from pack_manager.lib.fetcher import ManifestFetcher
from pack_manager.lib.manifest import (
    Graph,
    HierarchyNode,
    InvalidManifestError,
    Manifest,
    build_graph,
    build_hierarchy,
    parse_manifest,
)
from pack_manager.lib.manifest.hierarchy import DEFAULT_ROOT_LABEL
from pack_manager.models.operation import format_timestamp


class ManifestStoreErrorKind(StrEnum):
    FETCH = "fetch"
    PARSE = "parse"


class ManifestStoreError(RuntimeError):
    """Base class for manifest store failures."""

    kind: ManifestStoreErrorKind

    def __init__(self, message: str, repo_key: str) -> None:
        super().__init__(message)
        self.repo_key = repo_key


class ManifestFetchError(ManifestStoreError):
    """Raised when the fetcher could not deliver manifest content."""

    kind = ManifestStoreErrorKind.FETCH

    def __init__(self, message: str, repo_key: str, status_code: int | None = None) -> None:
        super().__init__(message, repo_key)
        self.status_code = status_code


class ManifestParseError(ManifestStoreError):
    """Raised when fetched content is not a valid manifest."""

    kind = ManifestStoreErrorKind.PARSE

    def __init__(self, cause: InvalidManifestError, repo_key: str) -> None:
        super().__init__(f"manifest for {repo_key} is invalid: {cause}", repo_key)
        self.cause = cause


@dataclass(frozen=True)
class BundleMeta:
    """Metadata describing how a bundle was produced."""

    schema_version: str
    timestamp: str
    repo: str
    refreshed: bool
    hash: str
    ref: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "timestamp": self.timestamp,
            "repo": self.repo,
            "refreshed": self.refreshed,
            "hash": self.hash,
            "ref": self.ref,
        }


@dataclass(frozen=True)
class ManifestBundle:
    """A parsed manifest together with its derived graph and hierarchy."""

    manifest: Manifest
    hierarchy: HierarchyNode
    graph: Graph
    meta: BundleMeta

    def to_dict(self, *, include_pages: bool = False) -> dict[str, Any]:
        return {
            "manifest": self.manifest.to_dict(include_pages=include_pages),
            "hierarchy": self.hierarchy.to_dict(),
            "graph": self.graph.to_dict(),
            "meta": self.meta.to_dict(),
        }


@dataclass(frozen=True)
class CacheEntry:
    """One fetch generation for a cache key."""

    key: str
    bundle: ManifestBundle
    content_hash: str
    fetched_at: datetime


def cache_key(repo_key: str, ref: str | None = None) -> str:
    return f"{repo_key}@{ref}" if ref else repo_key


class ManifestStore:
    """Cache of manifest bundles keyed by repository and ref.

    Args:
        fetcher: Source of raw manifest text.
        clock: Returns the current time; defaults to UTC now.
    """

    def __init__(self, fetcher: ManifestFetcher, clock: Callable[[], datetime] | None = None) -> None:
        self._fetcher = fetcher
        self._clock = clock or (lambda: datetime.now(UTC))
        self._entries: dict[str, CacheEntry] = {}
        self._inflight: dict[str, asyncio.Task[ManifestBundle]] = {}
        self._generations: dict[str, int] = {}

    async def get(self, repo_key: str, refresh: bool = False, *, ref: str | None = None) -> ManifestBundle:
        """Return the bundle for a repository, fetching when needed.

        A cached entry is returned as-is unless ``refresh`` is set. On any
        failure the existing entry is left untouched and never served in
        place of fresh data.

        Args:
            repo_key: Repository identifier understood by the fetcher.
            refresh: Bypass the cached entry and fetch again.
            ref: Optional branch, tag, or commit.

        Returns:
            The current ManifestBundle.

        Raises:
            ManifestFetchError: If the fetch failed.
            ManifestParseError: If the fetched content is invalid.
        """
        key = cache_key(repo_key, ref)
        entry = self._entries.get(key)
        if entry is not None and not refresh:
            return entry.bundle

        task = self._inflight.get(key)
        if task is None:
            generation = self._generations.get(key, 0)
            task = asyncio.create_task(self._load(key, repo_key, ref, refresh, generation))
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._forget(key, done))
        else:
            logger.debug("Joining in-flight manifest fetch for {}", key)
        # Shield so one cancelled waiter does not cancel the shared fetch.
        return await asyncio.shield(task)

    def peek(self, repo_key: str, *, ref: str | None = None) -> CacheEntry | None:
        """Return the cached entry without fetching."""
        return self._entries.get(cache_key(repo_key, ref))

    def invalidate(self, repo_key: str, *, ref: str | None = None) -> bool:
        """Drop the cached entry for a key. Returns True if one existed.

        A fetch already in flight for the key still answers its waiters but
        does not store its result.
        """
        key = cache_key(repo_key, ref)
        self._generations[key] = self._generations.get(key, 0) + 1
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every cached entry, including results of in-flight fetches."""
        for key in self._inflight:
            self._generations[key] = self._generations.get(key, 0) + 1
        self._entries.clear()

    def _forget(self, key: str, task: asyncio.Task[ManifestBundle]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved when every waiter has gone away.
        if not task.cancelled():
            task.exception()

    async def _load(
        self, key: str, repo_key: str, ref: str | None, refresh: bool, generation: int
    ) -> ManifestBundle:
        result = await self._fetcher.fetch(repo_key, ref=ref)
        if not result.ok:
            logger.warning("Manifest fetch for {} failed with status {}: {}", key, result.status_code, result.detail)
            msg = f"failed to fetch manifest for {key}: {result.detail or result.status_code}"
            raise ManifestFetchError(msg, repo_key, status_code=result.status_code)

        now = self._clock()
        previous = self._entries.get(key)
        if previous is not None and result.content_id and previous.content_hash == result.content_id:
            logger.debug("Manifest for {} unchanged ({}), reusing parsed bundle", key, result.content_id)
            meta = replace(previous.bundle.meta, timestamp=format_timestamp(now), refreshed=refresh)
            bundle = replace(previous.bundle, meta=meta)
        else:
            try:
                manifest = parse_manifest(result.body)
            except InvalidManifestError as exc:
                logger.warning("Manifest for {} rejected: {}", key, exc)
                raise ManifestParseError(exc, repo_key) from exc
            bundle = ManifestBundle(
                manifest=manifest,
                hierarchy=build_hierarchy(manifest.packs, label=manifest.name or DEFAULT_ROOT_LABEL),
                graph=build_graph(manifest.packs),
                meta=BundleMeta(
                    schema_version=manifest.schema_version,
                    timestamp=format_timestamp(now),
                    repo=repo_key,
                    refreshed=refresh,
                    hash=result.content_id,
                    ref=result.ref if result.ref is not None else ref,
                ),
            )
            if bundle.graph.has_cycle:
                logger.warning("Manifest for {} has a dependency cycle", key)

        if self._generations.get(key, 0) != generation:
            logger.debug("Manifest for {} was invalidated during fetch, not caching", key)
            return bundle
        self._entries[key] = CacheEntry(key=key, bundle=bundle, content_hash=result.content_id, fetched_at=now)
        logger.info(
            "Cached manifest for {}: {} packs, {} pages", key, bundle.manifest.pack_count, bundle.manifest.page_count
        )
        return bundle

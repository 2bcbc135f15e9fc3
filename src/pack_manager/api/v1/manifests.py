"""Manifest API endpoints: bundle, graph, hierarchy, Mermaid, and sync."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from loguru import logger

from pack_manager.core.background import OperationRunner, ProgressReporter
from pack_manager.core.dependencies import (
    get_manifest_store,
    get_operation_registry,
    get_operation_runner,
    get_user_id,
)
from pack_manager.lib.manifest import build_mermaid
from pack_manager.models.operation import OperationStatus, OperationType
from pack_manager.schemas.manifest import (
    GraphResponse,
    HierarchyResponse,
    ManifestBundleResponse,
    MermaidResponse,
    SyncRequest,
)
from pack_manager.schemas.operation import OperationAccepted
from pack_manager.services.manifest_store import ManifestBundle, ManifestStore
from pack_manager.services.operation_registry import OperationRegistry

manifests_router = APIRouter(prefix="/manifests", tags=["manifests"])

RepoParam = Annotated[str, Query(min_length=1, description="Repository key understood by the fetcher")]
RefParam = Annotated[str | None, Query(description="Branch, tag, or commit")]
RefreshParam = Annotated[bool, Query(description="Bypass the cache and fetch again")]


def _envelope(bundle: ManifestBundle) -> dict:
    meta = bundle.meta
    return {"repo": meta.repo, "ref": meta.ref, "hash": meta.hash, "meta": meta.to_dict()}


@manifests_router.get("", response_model=ManifestBundleResponse)
async def get_manifest(
    repo: RepoParam,
    ref: RefParam = None,
    refresh: RefreshParam = False,
    store: ManifestStore = Depends(get_manifest_store),
) -> ManifestBundleResponse:
    """Return the manifest bundle. The raw pages map is not exposed."""
    bundle = await store.get(repo, refresh, ref=ref)
    return ManifestBundleResponse(
        **_envelope(bundle),
        manifest=bundle.manifest.to_dict(include_pages=False),
        hierarchy=bundle.hierarchy.to_dict(),
        graph=bundle.graph.to_dict(),
    )


@manifests_router.get("/graph", response_model=GraphResponse)
async def get_graph(
    repo: RepoParam,
    ref: RefParam = None,
    refresh: RefreshParam = False,
    store: ManifestStore = Depends(get_manifest_store),
) -> GraphResponse:
    """Return the pack dependency and containment graph."""
    bundle = await store.get(repo, refresh, ref=ref)
    return GraphResponse(**_envelope(bundle), graph=bundle.graph.to_dict())


@manifests_router.get("/hierarchy", response_model=HierarchyResponse)
async def get_hierarchy(
    repo: RepoParam,
    ref: RefParam = None,
    refresh: RefreshParam = False,
    store: ManifestStore = Depends(get_manifest_store),
) -> HierarchyResponse:
    """Return the root-plus-packs display tree."""
    bundle = await store.get(repo, refresh, ref=ref)
    return HierarchyResponse(**_envelope(bundle), hierarchy=bundle.hierarchy.to_dict())


@manifests_router.get("/mermaid", response_model=MermaidResponse)
async def get_mermaid(
    repo: RepoParam,
    ref: RefParam = None,
    refresh: RefreshParam = False,
    include_pages: Annotated[bool, Query(description="Draw pack to page edges")] = False,
    store: ManifestStore = Depends(get_manifest_store),
) -> MermaidResponse:
    """Return the dependency graph as Mermaid flowchart source."""
    bundle = await store.get(repo, refresh, ref=ref)
    diagram = build_mermaid(bundle.graph, include_pages=include_pages)
    return MermaidResponse(**_envelope(bundle), code=diagram.code, id_map=diagram.id_map)


@manifests_router.post("/sync", response_model=OperationAccepted, status_code=status.HTTP_202_ACCEPTED)
async def sync_manifest(
    request: SyncRequest,
    store: ManifestStore = Depends(get_manifest_store),
    registry: OperationRegistry = Depends(get_operation_registry),
    runner: OperationRunner = Depends(get_operation_runner),
    user_id: int | None = Depends(get_user_id),
) -> OperationAccepted:
    """Queue a background refresh of a repository manifest."""
    operation_id = await registry.create(OperationType.REPO_SYNC, user_id=user_id)

    async def _sync(report: ProgressReporter) -> dict:
        await report(10, f"Fetching manifest for {request.repo}")
        bundle = await store.get(request.repo, True, ref=request.ref)
        await report(90, "Manifest parsed")
        return {
            "repo": request.repo,
            "ref": bundle.meta.ref,
            "hash": bundle.meta.hash,
            "pack_count": bundle.manifest.pack_count,
            "page_count": bundle.manifest.page_count,
            "has_cycle": bundle.graph.has_cycle,
        }

    runner.submit(operation_id, _sync)
    logger.info("Queued manifest sync {} for {}", operation_id, request.repo)
    return OperationAccepted(operation_id=operation_id, status=OperationStatus.QUEUED, message="Sync queued")

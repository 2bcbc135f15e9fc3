"""Integration tests for manifest API endpoints."""

from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from pack_manager.core.background import OperationRunner
from pack_manager.core.dependencies import get_manifest_store, get_operation_registry, get_operation_runner
from pack_manager.lib.fetcher import WorktreeFetcher
from pack_manager.main import register_exception_handlers
from pack_manager.models.operation import OperationStatus
from pack_manager.services.manifest_store import ManifestStore
from pack_manager.services.operation_registry import OperationRegistry

REPO = "lab-packs"


def _write_manifest(root: Path, text: str, ref: str | None = None) -> None:
    directory = root / REPO / ref if ref else root / REPO
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "manifest.yml").write_text(text, encoding="utf-8")


@pytest.fixture
def worktree(tmp_path: Path, sample_manifest_text: str) -> Path:
    _write_manifest(tmp_path, sample_manifest_text)
    return tmp_path


@pytest.fixture
def services(worktree: Path, session_factory, clock):  # type: ignore[no-untyped-def]
    store = ManifestStore(WorktreeFetcher(worktree), clock=clock)
    registry = OperationRegistry(session_factory, clock=clock)
    return store, registry, OperationRunner(registry)


def _make_app(services) -> FastAPI:  # type: ignore[no-untyped-def]
    from pack_manager.api.v1.manifests import manifests_router

    store, registry, runner = services
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(manifests_router, prefix="/api/v1")
    app.dependency_overrides[get_manifest_store] = lambda: store
    app.dependency_overrides[get_operation_registry] = lambda: registry
    app.dependency_overrides[get_operation_runner] = lambda: runner
    return app


@pytest.fixture
async def client(services) -> AsyncClient:  # type: ignore[no-untyped-def]
    transport = ASGITransport(app=_make_app(services))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestGetManifest:
    @pytest.mark.asyncio
    async def test_returns_bundle_without_pages(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests", params={"repo": REPO})

        assert response.status_code == 200
        body = response.json()
        assert body["repo"] == REPO
        assert body["ref"] is None
        assert len(body["hash"]) == 64
        assert "pages" not in body["manifest"]
        assert list(body["manifest"]["packs"]) == ["base", "publication", "onboarding"]
        assert body["graph"]["roots"] == ["onboarding"]
        assert body["hierarchy"]["meta"] == {"pack_count": 3, "page_count": 4}
        assert body["meta"]["schemaVersion"] == "1.0.0"
        assert body["meta"]["refreshed"] is False

    @pytest.mark.asyncio
    async def test_repeated_gets_are_identical(self, client: AsyncClient, worktree: Path) -> None:
        first = await client.get("/api/v1/manifests", params={"repo": REPO})
        _write_manifest(worktree, "packs:\n  changed: {}\n")
        second = await client.get("/api/v1/manifests", params={"repo": REPO})

        assert first.json() == second.json()

    @pytest.mark.asyncio
    async def test_refresh_picks_up_changes(self, client: AsyncClient, worktree: Path) -> None:
        await client.get("/api/v1/manifests", params={"repo": REPO})
        _write_manifest(worktree, "packs:\n  changed: {}\n")

        response = await client.get("/api/v1/manifests", params={"repo": REPO, "refresh": True})

        assert list(response.json()["manifest"]["packs"]) == ["changed"]
        assert response.json()["meta"]["refreshed"] is True

    @pytest.mark.asyncio
    async def test_ref_is_passed_through(self, client: AsyncClient, worktree: Path) -> None:
        _write_manifest(worktree, "packs:\n  pinned: {}\n", ref="v1")

        response = await client.get("/api/v1/manifests", params={"repo": REPO, "ref": "v1"})

        assert response.status_code == 200
        assert response.json()["ref"] == "v1"
        assert list(response.json()["manifest"]["packs"]) == ["pinned"]

    @pytest.mark.asyncio
    async def test_missing_repo_is_bad_gateway(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests", params={"repo": "unknown"})

        assert response.status_code == 502
        body = response.json()
        assert body["code"] == "manifest_fetch_error"
        assert body["errors"] == [{"kind": "fetch", "status_code": 404}]

    @pytest.mark.asyncio
    async def test_invalid_manifest_is_unprocessable(self, client: AsyncClient, worktree: Path) -> None:
        _write_manifest(worktree, "name: no packs\n")

        response = await client.get("/api/v1/manifests", params={"repo": REPO})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "manifest_parse_error"
        assert body["errors"][0]["kind"] == "missing_packs"

    @pytest.mark.asyncio
    async def test_repo_is_required(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests")
        assert response.status_code == 422


class TestDerivedViews:
    @pytest.mark.asyncio
    async def test_graph(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests/graph", params={"repo": REPO})

        assert response.status_code == 200
        graph = response.json()["graph"]
        assert {"from": "onboarding", "to": "publication"} in graph["dependsEdges"]
        assert graph["hasCycle"] is False

    @pytest.mark.asyncio
    async def test_hierarchy(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests/hierarchy", params={"repo": REPO})

        hierarchy = response.json()["hierarchy"]
        assert hierarchy["type"] == "root"
        assert hierarchy["label"] == "Lab handbook"
        assert [child["name"] for child in hierarchy["children"]] == ["base", "publication", "onboarding"]

    @pytest.mark.asyncio
    async def test_mermaid(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/manifests/mermaid", params={"repo": REPO, "include_pages": True})

        body = response.json()
        assert body["code"].startswith("graph LR")
        assert body["id_map"]["pack:onboarding"] == "n0"
        assert "page:MainPage" in body["id_map"]


class TestSyncManifest:
    @pytest.mark.asyncio
    async def test_sync_queues_operation_and_refreshes(self, client: AsyncClient, services, worktree: Path) -> None:  # type: ignore[no-untyped-def]
        store, registry, runner = services
        await client.get("/api/v1/manifests", params={"repo": REPO})
        _write_manifest(worktree, "packs:\n  synced: {pages: [a, b]}\n")

        response = await client.post("/api/v1/manifests/sync", json={"repo": REPO}, headers={"X-User-Id": "9"})

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "queued"
        assert body["operation_id"].startswith("repo_sync_")

        await runner.wait_all()
        operation = await registry.get(body["operation_id"])
        assert operation is not None
        assert operation.status == OperationStatus.SUCCESS
        assert operation.user_id == 9
        assert operation.result_data["pack_count"] == 1
        assert operation.result_data["page_count"] == 2
        assert list((await store.get(REPO)).manifest.packs) == ["synced"]

    @pytest.mark.asyncio
    async def test_sync_failure_marks_operation_failed(self, client: AsyncClient, services) -> None:  # type: ignore[no-untyped-def]
        _, registry, runner = services

        response = await client.post("/api/v1/manifests/sync", json={"repo": "unknown"})
        await runner.wait_all()

        operation = await registry.get(response.json()["operation_id"])
        assert operation is not None
        assert operation.status == OperationStatus.FAILED
        assert "failed to fetch manifest" in operation.message
        assert operation.user_id is None

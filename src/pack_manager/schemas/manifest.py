"""Manifest Pydantic v2 response schemas.

The nested graph, hierarchy, and manifest payloads are produced by the
manifest library's ``to_dict`` methods; these models fix the envelope.
"""

from typing import Any

from pydantic import BaseModel, Field


class BundleMetaResponse(BaseModel):
    """How and when a bundle was produced."""

    schemaVersion: str = Field(description="Manifest schema version")  # noqa: N815
    timestamp: str = Field(description="Fixed-width UTC build timestamp (YYYYMMDDHHMMSS)")
    repo: str
    refreshed: bool = Field(description="Whether this bundle came from an explicit refresh")
    hash: str = Field(description="Content id of the manifest the bundle was built from")
    ref: str | None = None


class ManifestBundleResponse(BaseModel):
    """Full bundle: manifest (without raw pages), hierarchy, and graph."""

    repo: str
    ref: str | None = None
    hash: str
    manifest: dict[str, Any]
    hierarchy: dict[str, Any]
    graph: dict[str, Any]
    meta: BundleMetaResponse


class GraphResponse(BaseModel):
    repo: str
    ref: str | None = None
    hash: str
    graph: dict[str, Any]
    meta: BundleMetaResponse


class HierarchyResponse(BaseModel):
    repo: str
    ref: str | None = None
    hash: str
    hierarchy: dict[str, Any]
    meta: BundleMetaResponse


class MermaidResponse(BaseModel):
    repo: str
    ref: str | None = None
    hash: str
    code: str = Field(description="Mermaid flowchart source")
    id_map: dict[str, str] = Field(description="Manifest id (prefixed pack: or page:) to diagram node id")
    meta: BundleMetaResponse


class SyncRequest(BaseModel):
    """Request to re-fetch a repository manifest in the background."""

    repo: str = Field(..., min_length=1)
    ref: str | None = None

"""Manifest library — public API for manifest parsing and derived views.

Turns manifest YAML into a normalized Manifest, then derives the
dependency/containment graph, the display hierarchy, and a Mermaid diagram.
"""

from pack_manager.lib.manifest.graph import Edge, Graph, build_graph, has_cycle
from pack_manager.lib.manifest.hierarchy import HierarchyMeta, HierarchyNode, NodeType, build_hierarchy
from pack_manager.lib.manifest.mermaid import MermaidDiagram, build_mermaid
from pack_manager.lib.manifest.parser import (
    EmptyInputError,
    InvalidManifestError,
    MalformedSyntaxError,
    ManifestErrorKind,
    MissingPacksError,
    NoValidPacksError,
    dump_manifest,
    parse_manifest,
)
from pack_manager.lib.manifest.types import Manifest, Pack, Page

__all__ = [
    "Edge",
    "EmptyInputError",
    "Graph",
    "HierarchyMeta",
    "HierarchyNode",
    "InvalidManifestError",
    "MalformedSyntaxError",
    "Manifest",
    "ManifestErrorKind",
    "MermaidDiagram",
    "MissingPacksError",
    "NoValidPacksError",
    "NodeType",
    "Pack",
    "Page",
    "build_graph",
    "build_hierarchy",
    "build_mermaid",
    "dump_manifest",
    "has_cycle",
    "parse_manifest",
]

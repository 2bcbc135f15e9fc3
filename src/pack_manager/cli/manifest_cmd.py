"""Manifest CLI commands for inspecting manifest files offline."""

import json
from enum import StrEnum
from pathlib import Path

import typer

from pack_manager.lib.manifest import (
    InvalidManifestError,
    build_graph,
    build_hierarchy,
    build_mermaid,
    parse_manifest,
)
from pack_manager.lib.manifest.hierarchy import DEFAULT_ROOT_LABEL

manifest_app = typer.Typer()


class View(StrEnum):
    MANIFEST = "manifest"
    GRAPH = "graph"
    HIERARCHY = "hierarchy"
    MERMAID = "mermaid"


@manifest_app.command("inspect")
def inspect(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Manifest YAML file"),
    view: View = typer.Option(View.MANIFEST, "--view", help="What to print"),
    include_pages: bool = typer.Option(False, "--include-pages", help="Include page data where applicable"),
) -> None:
    """Parse a manifest file and print one of its derived views."""
    try:
        manifest = parse_manifest(file.read_bytes())
    except InvalidManifestError as exc:
        typer.echo(f"Invalid manifest ({exc.kind}): {exc.detail}", err=True)
        raise typer.Exit(code=1) from exc

    if view is View.MANIFEST:
        typer.echo(json.dumps(manifest.to_dict(include_pages=include_pages), indent=2))
        return

    graph = build_graph(manifest.packs)
    if view is View.GRAPH:
        typer.echo(json.dumps(graph.to_dict(), indent=2))
        if graph.has_cycle:
            typer.echo("Warning: dependency cycle detected", err=True)
    elif view is View.HIERARCHY:
        hierarchy = build_hierarchy(manifest.packs, label=manifest.name or DEFAULT_ROOT_LABEL)
        typer.echo(json.dumps(hierarchy.to_dict(), indent=2))
    else:
        typer.echo(build_mermaid(graph, include_pages=include_pages).code)

"""Render a manifest graph as a Mermaid flowchart."""

from __future__ import annotations

from dataclasses import dataclass, field

from pack_manager.lib.manifest.graph import Graph


@dataclass
class MermaidDiagram:
    """Mermaid source plus the mapping from manifest ids to diagram node ids."""

    code: str
    id_map: dict[str, str] = field(default_factory=dict)


def build_mermaid(graph: Graph, *, include_pages: bool = False) -> MermaidDiagram:
    """Generate a left-to-right Mermaid diagram of pack dependencies.

    Node ids (``n0``, ``n1``, ...) are assigned in first-seen order, so the
    same graph always yields the same diagram. Roots are declared first so
    isolated packs still appear.

    Args:
        graph: Graph produced by :func:`build_graph`.
        include_pages: Also draw dotted pack → page containment edges.

    Returns:
        The diagram source and id map.
    """
    id_map: dict[str, str] = {}
    declarations: list[str] = []

    def node(identifier: str, prefix: str) -> str:
        key = f"{prefix}:{identifier}"
        if key not in id_map:
            node_id = f"n{len(id_map)}"
            id_map[key] = node_id
            declarations.append(f'    {node_id}["{_escape(identifier)}"]')
        return id_map[key]

    for root in graph.roots:
        node(root, "pack")

    links: list[str] = []
    for edge in graph.depends_edges:
        links.append(f"    {node(edge.source, 'pack')} --> {node(edge.target, 'pack')}")
    if include_pages:
        for edge in graph.contains_edges:
            links.append(f"    {node(edge.source, 'pack')} -.-> {node(edge.target, 'page')}")

    code = "\n".join(["graph LR", *declarations, *links])
    return MermaidDiagram(code=code, id_map=id_map)


def _escape(label: str) -> str:
    return label.replace('"', "#quot;")

"""Dependency and containment graph construction for manifest packs.

Builds contains edges (pack → page) and depends edges (pack → pack),
determines root packs, and detects dependency cycles without recursion
so adversarially deep manifests cannot exhaust the call stack.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from pack_manager.lib.manifest.types import Pack

_WHITE, _GRAY, _BLACK = 0, 1, 2


@dataclass(frozen=True)
class Edge:
    """A directed edge between two manifest identifiers."""

    source: str
    target: str

    def to_dict(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target}


@dataclass(frozen=True)
class Graph:
    """Derived structure of a manifest's packs.

    Attributes:
        contains_edges: One edge per (pack, page) pair, in pack then page order.
        depends_edges: One edge per (pack, dependency) pair, dangling targets included.
        roots: Pack ids that no other pack depends on, in pack order.
        has_cycle: True when the depends edges contain a cycle.
    """

    contains_edges: tuple[Edge, ...]
    depends_edges: tuple[Edge, ...]
    roots: tuple[str, ...]
    has_cycle: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "containsEdges": [edge.to_dict() for edge in self.contains_edges],
            "dependsEdges": [edge.to_dict() for edge in self.depends_edges],
            "roots": list(self.roots),
            "hasCycle": self.has_cycle,
        }


def build_graph(packs: Mapping[str, Pack]) -> Graph:
    """Build the contains/depends graph for a set of packs.

    Dependencies on pack ids that do not exist are kept as edges. A cycle
    does not stop construction; callers decide how to react to ``has_cycle``.

    Args:
        packs: Pack id to Pack, in manifest order.

    Returns:
        The fully populated Graph.
    """
    contains_edges: list[Edge] = []
    depends_edges: list[Edge] = []
    for pack_id, pack in packs.items():
        contains_edges.extend(Edge(pack_id, page) for page in pack.pages)
        depends_edges.extend(Edge(pack_id, dependency) for dependency in pack.depends_on)

    depended_on = {edge.target for edge in depends_edges}
    roots = tuple(pack_id for pack_id in packs if pack_id not in depended_on)

    adjacency = {pack_id: pack.depends_on for pack_id, pack in packs.items()}
    return Graph(
        contains_edges=tuple(contains_edges),
        depends_edges=tuple(depends_edges),
        roots=roots,
        has_cycle=has_cycle(adjacency),
    )


def has_cycle(adjacency: Mapping[str, Iterable[str]]) -> bool:
    """Return True if the directed graph contains a back-edge.

    Iterative depth-first search with white/gray/black coloring. Nodes that
    only appear as targets are treated as leaves.

    Args:
        adjacency: Node id to the ids it points at.
    """
    color: dict[str, int] = {}
    for start in adjacency:
        if color.get(start, _WHITE) != _WHITE:
            continue
        color[start] = _GRAY
        stack: list[tuple[str, Iterator[str]]] = [(start, iter(adjacency[start]))]
        while stack:
            node, successors = stack[-1]
            for successor in successors:
                state = color.get(successor, _WHITE)
                if state == _GRAY:
                    return True
                if state == _WHITE:
                    color[successor] = _GRAY
                    stack.append((successor, iter(adjacency.get(successor, ()))))
                    break
            else:
                color[node] = _BLACK
                stack.pop()
    return False

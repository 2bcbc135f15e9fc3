"""Display hierarchy for the pack browser.

The tree is exactly two levels deep: a synthetic root whose children are
the packs. Pages are not nested; they stay server-side.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pack_manager.lib.manifest.types import Pack

ROOT_NAME = "root"
DEFAULT_ROOT_LABEL = "Packs"


class NodeType(StrEnum):
    """Kind of hierarchy node."""

    ROOT = "root"
    PACK = "pack"


@dataclass(frozen=True)
class HierarchyMeta:
    """Aggregate counts carried by the root node."""

    pack_count: int
    page_count: int

    def to_dict(self) -> dict[str, int]:
        return {"pack_count": self.pack_count, "page_count": self.page_count}


@dataclass(frozen=True)
class HierarchyNode:
    """A node of the display tree. ``version`` is set on pack nodes, ``meta`` on the root."""

    name: str
    label: str
    type: NodeType
    children: tuple[HierarchyNode, ...] = ()
    version: str | None = None
    meta: HierarchyMeta | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "label": self.label, "type": self.type.value}
        if self.type is NodeType.PACK:
            data["version"] = self.version or ""
        data["children"] = [child.to_dict() for child in self.children]
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data


def build_hierarchy(packs: Mapping[str, Pack], *, label: str = DEFAULT_ROOT_LABEL) -> HierarchyNode:
    """Build the root-plus-packs view model.

    Children follow the iteration order of ``packs``. Sorting, if wanted,
    is the caller's job.

    Args:
        packs: Pack id to Pack, in manifest order.
        label: Display label of the root node.

    Returns:
        The root HierarchyNode.
    """
    children = tuple(
        HierarchyNode(name=pack_id, label=pack_id, type=NodeType.PACK, version=pack.version)
        for pack_id, pack in packs.items()
    )
    return HierarchyNode(
        name=ROOT_NAME,
        label=label,
        type=NodeType.ROOT,
        children=children,
        meta=HierarchyMeta(
            pack_count=len(packs),
            page_count=sum(pack.page_count for pack in packs.values()),
        ),
    )

"""Data types for the manifest library.

Defines the normalized, immutable in-memory structures produced by the
parser: pages, packs, and the manifest that owns them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class Page:
    """A single content unit listed in the manifest ``pages`` section.

    Attributes:
        name: Page identifier (the key in the ``pages`` mapping).
        file: Relative path of the page source inside the repository.
        last_updated: Free-form last-updated marker, empty when absent.
    """

    name: str
    file: str
    last_updated: str = ""

    def __post_init__(self) -> None:
        if not self.file:
            msg = f"page {self.name!r} must reference a file"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "file": self.file, "last_updated": self.last_updated}


@dataclass(frozen=True)
class Pack:
    """A named bundle of pages plus dependency and tag metadata.

    ``pages``, ``depends_on`` and ``tags`` are ordered sets: insertion order
    is kept and no value appears twice.
    """

    id: str
    version: str = ""
    description: str = ""
    pages: tuple[str, ...] = ()
    depends_on: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            msg = "pack id must not be empty"
            raise ValueError(msg)
        for name in ("pages", "depends_on", "tags"):
            object.__setattr__(self, name, tuple(dict.fromkeys(getattr(self, name))))

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "description": self.description,
            "pages": list(self.pages),
            "page_count": self.page_count,
            "depends_on": list(self.depends_on),
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class Manifest:
    """Normalized manifest. Immutable once constructed.

    Attributes:
        schema_version: Manifest schema version string.
        last_updated: Manifest-level last-updated marker.
        name: Human-readable manifest name.
        description: Manifest description.
        author: Manifest author.
        pages: Page name to Page, in manifest order.
        packs: Pack id to Pack, in manifest order.
    """

    schema_version: str
    last_updated: str
    name: str
    description: str
    author: str
    pages: Mapping[str, Page]
    packs: Mapping[str, Pack]

    def __post_init__(self) -> None:
        object.__setattr__(self, "pages", MappingProxyType(dict(self.pages)))
        object.__setattr__(self, "packs", MappingProxyType(dict(self.packs)))

    @property
    def pack_count(self) -> int:
        return len(self.packs)

    @property
    def page_count(self) -> int:
        """Total number of page references across all packs."""
        return sum(pack.page_count for pack in self.packs.values())

    def to_dict(self, *, include_pages: bool = True) -> dict[str, Any]:
        """Serialize to plain JSON-compatible structures.

        Args:
            include_pages: When False the raw ``pages`` map is omitted; it
                stays server-side when the manifest is shown to clients.
        """
        data: dict[str, Any] = {
            "schema_version": self.schema_version,
            "last_updated": self.last_updated,
            "name": self.name,
            "description": self.description,
            "author": self.author,
            "packs": {pack_id: pack.to_dict() for pack_id, pack in self.packs.items()},
        }
        if include_pages:
            data["pages"] = {name: page.to_dict() for name, page in self.pages.items()}
        return data

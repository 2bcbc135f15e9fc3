"""Parse raw manifest YAML into a normalized :class:`Manifest`.

Input example::

    schema_version: "1.0.0"
    name: "Lab handbook"
    pages:
      MainPage: {file: pages/MainPage.wiki}
    packs:
      onboarding:
        version: "0.3.1"
        pages: [MainPage]
        depends_on: [base-pack]
        tags: [core]

Parsing is pure and deterministic: identical text always yields an equal
manifest, which the manifest store relies on for hash-based reuse.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from typing import Any

import yaml

from pack_manager.lib.manifest.types import Manifest, Pack, Page

_BOM = "\ufeff"
_METADATA_FIELDS = ("schema_version", "last_updated", "name", "description", "author")


class ManifestErrorKind(StrEnum):
    """Discriminates why a manifest was rejected."""

    EMPTY_INPUT = "empty_input"
    MALFORMED_SYNTAX = "malformed_syntax"
    MISSING_PACKS = "missing_packs"
    NO_VALID_PACKS = "no_valid_packs"


class InvalidManifestError(ValueError):
    """Raised when raw manifest text cannot be turned into a Manifest.

    Subclasses pin ``kind`` to the machine-readable rejection reason.

    Args:
        detail: Human-readable description.
    """

    kind: ManifestErrorKind = ManifestErrorKind.MALFORMED_SYNTAX

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.kind}: {detail}")


class EmptyInputError(InvalidManifestError):
    kind = ManifestErrorKind.EMPTY_INPUT


class MalformedSyntaxError(InvalidManifestError):
    kind = ManifestErrorKind.MALFORMED_SYNTAX


class MissingPacksError(InvalidManifestError):
    kind = ManifestErrorKind.MISSING_PACKS


class NoValidPacksError(InvalidManifestError):
    kind = ManifestErrorKind.NO_VALID_PACKS


def parse_manifest(raw: str | bytes) -> Manifest:
    """Parse manifest YAML text into a normalized Manifest.

    Args:
        raw: Manifest text. Bytes are decoded as UTF-8.

    Returns:
        The normalized manifest.

    Raises:
        EmptyInputError: If the text is empty after BOM and whitespace removal.
        MalformedSyntaxError: If the YAML is invalid or its root is not a mapping.
        MissingPacksError: If the ``packs`` section is absent, empty, or of the wrong type.
        NoValidPacksError: If no pack entry survives normalization.
    """
    data = _load_yaml(raw)
    metadata = {field: _coerce_str(data.get(field)) for field in _METADATA_FIELDS}

    raw_packs = data.get("packs")
    if not isinstance(raw_packs, dict | list) or not raw_packs:
        msg = 'missing or empty "packs" section'
        raise MissingPacksError(msg)

    packs = _parse_packs(raw_packs)
    if not packs:
        msg = '"packs" section contained no valid entries'
        raise NoValidPacksError(msg)

    return Manifest(
        pages=_parse_pages(data.get("pages")),
        packs=packs,
        **metadata,
    )


def dump_manifest(manifest: Manifest) -> str:
    """Serialize a manifest back to YAML accepted by :func:`parse_manifest`.

    Parsing the output yields a manifest equal to ``manifest``.
    """
    document: dict[str, Any] = {field: getattr(manifest, field) for field in _METADATA_FIELDS}
    document["pages"] = {
        name: {"file": page.file, "last_updated": page.last_updated} for name, page in manifest.pages.items()
    }
    document["packs"] = {
        pack_id: {
            "version": pack.version,
            "description": pack.description,
            "pages": list(pack.pages),
            "depends_on": list(pack.depends_on),
            "tags": list(pack.tags),
        }
        for pack_id, pack in manifest.packs.items()
    }
    return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)


def _load_yaml(raw: str | bytes) -> dict[Any, Any]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"manifest is not valid UTF-8: {exc}"
            raise MalformedSyntaxError(msg) from exc

    text = raw.strip()
    # A leading BOM would otherwise become part of the first key.
    if text.startswith(_BOM):
        text = text[len(_BOM) :].strip()
    if not text:
        msg = "manifest is empty"
        raise EmptyInputError(msg)

    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"invalid YAML: {exc}"
        raise MalformedSyntaxError(msg) from exc

    if not isinstance(parsed, dict):
        msg = "expected a mapping at the manifest root"
        raise MalformedSyntaxError(msg)
    return parsed


def _parse_pages(raw_pages: Any) -> dict[str, Page]:
    pages: dict[str, Page] = {}
    if not isinstance(raw_pages, dict):
        return pages
    for name, meta in raw_pages.items():
        if not isinstance(name, str) or not isinstance(meta, dict):
            continue
        file = _coerce_str(meta.get("file")).strip()
        if not file:
            continue
        pages[name] = Page(name=name, file=file, last_updated=_coerce_str(meta.get("last_updated")))
    return pages


def _parse_packs(raw_packs: dict[Any, Any] | list[Any]) -> dict[str, Pack]:
    entries = raw_packs.items() if isinstance(raw_packs, dict) else enumerate(raw_packs)
    packs: dict[str, Pack] = {}
    for key, meta in entries:
        if not isinstance(meta, dict):
            continue
        pack_id = (key if isinstance(key, str) else _coerce_str(meta.get("id"))).strip()
        if not pack_id:
            continue
        # Duplicate ids: the later entry replaces the earlier one.
        packs[pack_id] = Pack(
            id=pack_id,
            version=_coerce_str(meta.get("version")),
            description=_coerce_str(meta.get("description")),
            pages=_string_list(meta.get("pages")),
            depends_on=_string_list(meta.get("depends_on")),
            tags=_string_list(meta.get("tags")),
        )
    return packs


def _string_list(value: Any) -> tuple[str, ...]:
    """Normalize a value to an ordered set of trimmed, non-empty strings."""
    if not isinstance(value, list):
        return ()
    items = (item.strip() if isinstance(item, str) else "" for item in value)
    return tuple(dict.fromkeys(item for item in items if item))


def _coerce_str(value: Any) -> str:
    """Coerce a YAML scalar to a string; missing values and containers become ``""``."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, int | float):
        return str(value)
    return ""

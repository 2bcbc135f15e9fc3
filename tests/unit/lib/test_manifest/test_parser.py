"""Unit tests for manifest parsing and normalization."""

from datetime import date

import pytest

from pack_manager.lib.manifest import (
    EmptyInputError,
    InvalidManifestError,
    MalformedSyntaxError,
    ManifestErrorKind,
    MissingPacksError,
    NoValidPacksError,
    dump_manifest,
    parse_manifest,
)


class TestParseManifest:
    """Tests for parse_manifest happy paths."""

    def test_parses_metadata_pages_and_packs(self, sample_manifest_text: str) -> None:
        manifest = parse_manifest(sample_manifest_text)

        assert manifest.schema_version == "1.0.0"
        assert manifest.name == "Lab handbook"
        assert manifest.author == "Lab team"
        assert list(manifest.packs) == ["base", "publication", "onboarding"]
        assert list(manifest.pages) == ["MainPage", "PubTemplate", "Onboarding"]
        assert manifest.pages["MainPage"].file == "pages/MainPage.wiki"
        assert manifest.pages["MainPage"].last_updated == "2025-08-30"

        publication = manifest.packs["publication"]
        assert publication.version == "1.2.0"
        assert publication.pages == ("MainPage", "PubTemplate")
        assert publication.depends_on == ("base",)
        assert publication.tags == ("research", "core")
        assert publication.page_count == 2

    def test_minimal_manifest(self) -> None:
        manifest = parse_manifest("packs:\n  A:\n    pages: [P1]\n")
        assert manifest.schema_version == ""
        assert manifest.name == ""
        assert manifest.packs["A"].pages == ("P1",)
        assert manifest.packs["A"].depends_on == ()
        assert dict(manifest.pages) == {}

    def test_accepts_bytes(self) -> None:
        manifest = parse_manifest(b"packs:\n  A: {}\n")
        assert list(manifest.packs) == ["A"]

    def test_strips_leading_bom(self) -> None:
        manifest = parse_manifest("\ufeffschema_version: '2'\npacks:\n  A: {}\n")
        assert manifest.schema_version == "2"

    def test_strips_utf8_bom_bytes(self) -> None:
        manifest = parse_manifest(b"\xef\xbb\xbfpacks:\n  A: {}\n")
        assert list(manifest.packs) == ["A"]

    def test_pack_list_uses_id_field(self) -> None:
        raw = "packs:\n  - id: first\n    version: '1'\n  - id: second\n  - version: '3'\n"
        manifest = parse_manifest(raw)
        assert list(manifest.packs) == ["first", "second"]

    def test_duplicate_pack_ids_last_wins(self) -> None:
        raw = "packs:\n  - id: a\n    version: '1'\n  - id: b\n  - id: a\n    version: '2'\n"
        manifest = parse_manifest(raw)
        assert manifest.packs["a"].version == "2"
        assert len(manifest.packs) == 2

    def test_list_fields_are_trimmed_filtered_and_deduplicated(self) -> None:
        raw = "packs:\n  A:\n    pages: [' P1 ', '', 3, P1, P2]\n    depends_on: B\n    tags: [x, {k: v}, x]\n"
        pack = parse_manifest(raw).packs["A"]
        assert pack.pages == ("P1", "P2")
        assert pack.depends_on == ()
        assert pack.tags == ("x",)

    def test_invalid_page_entries_are_dropped(self) -> None:
        raw = (
            "pages:\n"
            "  Good: {file: good.wiki}\n"
            "  NoFile: {last_updated: x}\n"
            "  Blank: {file: '  '}\n"
            "  Scalar: just-a-string\n"
            "  123: {file: numeric-key.wiki}\n"
            "packs:\n  A: {}\n"
        )
        manifest = parse_manifest(raw)
        assert list(manifest.pages) == ["Good"]

    def test_scalar_metadata_is_coerced_to_strings(self) -> None:
        raw = "schema_version: 1.5\nlast_updated: 2025-09-01\nname: true\ndescription: [a]\npacks:\n  A: {version: 2}\n"
        manifest = parse_manifest(raw)
        assert manifest.schema_version == "1.5"
        assert manifest.last_updated == date(2025, 9, 1).isoformat()
        assert manifest.name == "true"
        assert manifest.description == ""
        assert manifest.packs["A"].version == "2"

    def test_parsing_is_deterministic(self, sample_manifest_text: str) -> None:
        assert parse_manifest(sample_manifest_text) == parse_manifest(sample_manifest_text)


class TestParseManifestErrors:
    """Tests for rejected manifests and their error kinds."""

    @pytest.mark.parametrize("raw", ["", "   \n\t", "\ufeff", "\ufeff  \n", b""])
    def test_empty_input(self, raw: str | bytes) -> None:
        with pytest.raises(EmptyInputError) as exc_info:
            parse_manifest(raw)
        assert exc_info.value.kind is ManifestErrorKind.EMPTY_INPUT

    @pytest.mark.parametrize("raw", ["packs: [unclosed", "- just\n- a list\n", "plain scalar", "key: value: other"])
    def test_malformed_syntax(self, raw: str) -> None:
        with pytest.raises(MalformedSyntaxError) as exc_info:
            parse_manifest(raw)
        assert exc_info.value.kind is ManifestErrorKind.MALFORMED_SYNTAX

    def test_invalid_utf8_bytes(self) -> None:
        with pytest.raises(MalformedSyntaxError):
            parse_manifest(b"packs:\n  A: {}\n\xff\xfe")

    @pytest.mark.parametrize("raw", ["name: x\n", "packs: []\n", "packs: {}\n", "packs: 5\n", "packs: text\n"])
    def test_missing_packs(self, raw: str) -> None:
        with pytest.raises(MissingPacksError) as exc_info:
            parse_manifest(raw)
        assert exc_info.value.kind is ManifestErrorKind.MISSING_PACKS

    @pytest.mark.parametrize(
        "raw",
        [
            "packs:\n  A: just-a-string\n",
            "packs:\n  - version: '1'\n",
            "packs:\n  - id: '   '\n",
            "packs:\n  - 5\n  - [x]\n",
        ],
    )
    def test_no_valid_packs(self, raw: str) -> None:
        with pytest.raises(NoValidPacksError) as exc_info:
            parse_manifest(raw)
        assert exc_info.value.kind is ManifestErrorKind.NO_VALID_PACKS

    def test_errors_are_value_errors_with_detail(self) -> None:
        with pytest.raises(ValueError, match="missing_packs") as exc_info:
            parse_manifest("name: x\n")
        assert isinstance(exc_info.value, InvalidManifestError)
        assert "packs" in exc_info.value.detail


class TestDumpManifest:
    """Tests for YAML serialization."""

    def test_dump_then_parse_yields_equal_manifest(self, sample_manifest_text: str) -> None:
        manifest = parse_manifest(sample_manifest_text)
        assert parse_manifest(dump_manifest(manifest)) == manifest

    def test_dump_preserves_pack_order(self) -> None:
        manifest = parse_manifest("packs:\n  zeta: {}\n  alpha: {}\n  mid: {}\n")
        assert list(parse_manifest(dump_manifest(manifest)).packs) == ["zeta", "alpha", "mid"]

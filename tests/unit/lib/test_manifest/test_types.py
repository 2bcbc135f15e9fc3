"""Unit tests for manifest data types."""

import pytest

from pack_manager.lib.manifest import Manifest, Pack, Page


class TestPage:
    def test_requires_file(self) -> None:
        with pytest.raises(ValueError, match="must reference a file"):
            Page(name="Main", file="")

    def test_to_dict(self) -> None:
        assert Page(name="Main", file="main.wiki").to_dict() == {
            "name": "Main",
            "file": "main.wiki",
            "last_updated": "",
        }


class TestPack:
    def test_requires_id(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            Pack(id="")

    def test_list_fields_become_ordered_sets(self) -> None:
        pack = Pack(id="a", pages=("p2", "p1", "p2"), depends_on=("b", "b"), tags=("x", "y", "x"))
        assert pack.pages == ("p2", "p1")
        assert pack.depends_on == ("b",)
        assert pack.tags == ("x", "y")

    def test_page_count_matches_pages(self) -> None:
        pack = Pack(id="a", pages=("p1", "p2", "p3"))
        assert pack.page_count == 3
        assert pack.to_dict()["page_count"] == 3

    def test_is_immutable(self) -> None:
        pack = Pack(id="a")
        with pytest.raises(AttributeError):
            pack.version = "2"  # type: ignore[misc]


class TestManifest:
    def _manifest(self) -> Manifest:
        return Manifest(
            schema_version="1",
            last_updated="",
            name="m",
            description="",
            author="",
            pages={"p1": Page(name="p1", file="p1.wiki")},
            packs={"a": Pack(id="a", pages=("p1", "p2")), "b": Pack(id="b", pages=("p1",))},
        )

    def test_mappings_are_read_only(self) -> None:
        manifest = self._manifest()
        with pytest.raises(TypeError):
            manifest.packs["c"] = Pack(id="c")  # type: ignore[index]

    def test_counts(self) -> None:
        manifest = self._manifest()
        assert manifest.pack_count == 2
        assert manifest.page_count == 3

    def test_to_dict_can_omit_pages(self) -> None:
        manifest = self._manifest()
        assert "pages" in manifest.to_dict()
        data = manifest.to_dict(include_pages=False)
        assert "pages" not in data
        assert list(data["packs"]) == ["a", "b"]

"""
Asset Library Tests

Tests for registering assets (bytes, files, data URIs, directory discovery,
YAML manifests) and resolving script references like "ufo.image".

Run with: pytest tests/test_assets.py -v
"""

import base64
from pathlib import Path

import pytest

from jcscript.assets import (
    AssetKind, AssetLibrary, decode_data_uri, guess_mime_type, split_reference,
)
from jcscript.errors import AssetReferenceError


def _data_uri(mime: str, payload: bytes) -> str:
    return f"data:{mime};base64,{base64.b64encode(payload).decode('ascii')}"


class TestHelpers:
    """Tests for module-level helpers."""

    @pytest.mark.parametrize("ref,expected", [
        ("ufo.image", ("ufo", ".image")),
        ("pop.sound", ("pop", ".sound")),
        ("assets/ufo.image", ("ufo", ".image")),
        ("foo", ("foo", "")),
        ("foo.png", ("foo.png", "")),
    ])
    def test_split_reference(self, ref, expected):
        assert split_reference(ref) == expected

    @pytest.mark.parametrize("name,mime", [
        ("a.png", "image/png"),
        ("a.JPG", "image/jpeg"),
        ("a.wav", "audio/wav"),
        ("a.ogg", "audio/ogg"),
    ])
    def test_guess_mime_type(self, name, mime):
        assert guess_mime_type(Path(name)) == mime

    def test_decode_data_uri(self):
        assert decode_data_uri(_data_uri("image/png", b"abc")) == ("image/png", b"abc")

    @pytest.mark.parametrize("text", [
        "not a uri",
        "data:image/png,plain",
        "data:image/png;base64,abc",
    ])
    def test_decode_data_uri_rejects(self, text):
        with pytest.raises(ValueError):
            decode_data_uri(text)

    def test_kind_from_mime(self):
        assert AssetKind.from_mime("image/gif") is AssetKind.IMAGE
        assert AssetKind.from_mime("audio/mpeg") is AssetKind.AUDIO
        assert AssetKind.from_mime("text/plain") is AssetKind.FILE


class TestResolve:
    """Tests for resolving script references."""

    @pytest.fixture
    def library(self):
        library = AssetLibrary()
        library.add("ufo", "image/png", b"img")
        library.add("pop", "audio/wav", b"snd")
        return library

    def test_resolve_image(self, library):
        asset = library.resolve("ufo.image", AssetKind.IMAGE)
        assert asset.name == "ufo"
        assert asset.data == b"img"

    def test_resolve_sound(self, library):
        assert library.resolve("pop.sound", AssetKind.AUDIO).data == b"snd"

    def test_assets_prefix_is_ignored(self, library):
        assert library.resolve("assets/ufo.image", AssetKind.IMAGE).name == "ufo"

    def test_missing_suffix(self, library):
        with pytest.raises(AssetReferenceError) as exc:
            library.resolve("foo", AssetKind.IMAGE)
        assert str(exc.value) == (
            'Image path must end with .image extension. Use "foo.image" instead of "foo"')

    def test_not_registered(self, library):
        with pytest.raises(AssetReferenceError, match='Image "ghost.image" not found'):
            library.resolve("ghost.image", AssetKind.IMAGE)

    def test_kind_must_match(self, library):
        # A sound registered as "pop" is not an image called "pop"
        with pytest.raises(AssetReferenceError):
            library.resolve("pop.image", AssetKind.IMAGE)

    def test_same_name_different_kinds(self, library):
        library.add("ufo", "audio/wav", b"whoosh")
        assert library.resolve("ufo.image", AssetKind.IMAGE).data == b"img"
        assert library.resolve("ufo.sound", AssetKind.AUDIO).data == b"whoosh"
        assert len(library) == 3

    def test_add_replaces(self, library):
        library.add("ufo", "image/png", b"new")
        assert library.find("ufo", AssetKind.IMAGE).data == b"new"


class TestRegistration:
    """Tests for files, data URIs, discovery and manifests."""

    def test_add_data_uri(self):
        library = AssetLibrary()
        asset = library.add_data_uri("dot", _data_uri("image/png", b"\x89PNG"))
        assert asset.kind is AssetKind.IMAGE
        assert asset.source == "data-uri"

    def test_add_file_uses_stem(self, tmp_path):
        path = tmp_path / "ship.png"
        path.write_bytes(b"png")
        asset = AssetLibrary().add_file(path)
        assert asset.name == "ship"
        assert asset.mime_type == "image/png"

    def test_discover(self, tmp_path):
        (tmp_path / "ufo.png").write_bytes(b"png")
        (tmp_path / "pop.wav").write_bytes(b"wav")
        (tmp_path / "notes.txt").write_text("not an asset")
        (tmp_path / "sprites").mkdir()
        (tmp_path / "sprites" / "ship.gif").write_bytes(b"gif")

        library = AssetLibrary()
        assert library.discover(tmp_path) == 3
        assert library.find("ship", AssetKind.IMAGE) is not None
        assert library.find("notes", AssetKind.FILE) is None

    def test_discover_missing_directory(self, tmp_path):
        assert AssetLibrary().discover(tmp_path / "nope") == 0

    def test_discover_reads_manifest(self, tmp_path):
        (tmp_path / "ufo_large.png").write_bytes(b"png")
        (tmp_path / "assets.yaml").write_text(
            "assets:\n"
            "  - name: ufo\n"
            "    file: ufo_large.png\n"
            "  - name: beep\n"
            f"    data: \"{_data_uri('audio/wav', b'RIFF')}\"\n"
        )
        library = AssetLibrary()
        assert library.discover(tmp_path) == 3
        assert library.resolve("ufo.image", AssetKind.IMAGE).data == b"png"
        assert library.resolve("beep.sound", AssetKind.AUDIO).data == b"RIFF"

    def test_manifest_type_override(self, tmp_path):
        (tmp_path / "clip.bin").write_bytes(b"data")
        manifest = tmp_path / "assets.yaml"
        manifest.write_text(
            "assets:\n"
            "  - name: clip\n"
            "    file: clip.bin\n"
            "    type: audio/ogg\n"
        )
        library = AssetLibrary()
        assert library.load_manifest(manifest) == 1
        assert library.find("clip", AssetKind.AUDIO).mime_type == "audio/ogg"

    def test_manifest_skips_bad_entries(self, tmp_path):
        manifest = tmp_path / "assets.yaml"
        manifest.write_text(
            "assets:\n"
            "  - file: nameless.png\n"
            "  - name: empty\n"
            "  - name: missing\n"
            "    file: does_not_exist.png\n"
        )
        assert AssetLibrary().load_manifest(manifest) == 0

    def test_manifest_invalid_yaml(self, tmp_path):
        manifest = tmp_path / "assets.yaml"
        manifest.write_text("assets: [unclosed")
        assert AssetLibrary().load_manifest(manifest) == 0

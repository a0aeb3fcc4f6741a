"""Tests for the cached bundle loader."""

import json
import tempfile
from pathlib import Path

import pytest

from regkit.errors import BundleNotFoundError, BundleParseError, IntegrityError, SchemaValidationError
from regkit.registry.integrity import compute_integrity, integrity_content
from regkit.registry.loader import BundleCache


def _items(*names: str) -> list[dict]:
    return [
        {
            "name": name,
            "type": "registry:ui",
            "title": name,
            "description": "",
            "dependencies": [],
            "registryDependencies": [],
            "files": [{"path": f"registry/{name}.tsx", "content": f"// {name}\n"}],
        }
        for name in names
    ]


def _write_bundle(path: Path, items: list[dict], extra: dict | None = None, integrity: bool = True) -> Path:
    document = integrity_content(items, extra)
    if integrity:
        document["integrity"] = compute_integrity(integrity_content(items, extra))
    path.write_text(json.dumps(document, separators=(",", ":")))
    return path


def test_loads_items():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a", "b"))
        cache = BundleCache(path)

        assert not cache.is_loaded
        assert cache.item_names() == ["a", "b"]
        assert cache.get_item("a").files[0].content == "// a\n"
        assert cache.get_item("missing") is None
        assert cache.is_loaded


def test_memoized_for_cache_lifetime():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a"))
        cache = BundleCache(path)
        first = cache.get_or_load()

        # A rebuild on disk is not seen by an existing cache
        _write_bundle(path, _items("a", "b"))

        assert cache.get_or_load() is first
        assert BundleCache(path).item_names() == ["a", "b"]


def test_separate_caches_are_independent():
    with tempfile.TemporaryDirectory() as tmpdir:
        one = BundleCache(_write_bundle(Path(tmpdir) / "one.json", _items("a")))
        two = BundleCache(_write_bundle(Path(tmpdir) / "two.json", _items("b")))

        assert one.item_names() == ["a"]
        assert two.item_names() == ["b"]


def test_extra_content_preserved():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a"), extra={"themes": {"x": 1}})
        bundle = BundleCache(path).get_or_load()
        assert bundle.extra == {"themes": {"x": 1}}


def test_missing_bundle():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(BundleNotFoundError, match="reinstalling"):
            BundleCache(Path(tmpdir) / "nope.json").get_or_load()


def test_malformed_json():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bundle.json"
        path.write_text('{"items": [')
        with pytest.raises(BundleParseError):
            BundleCache(path).get_or_load()


def test_invalid_utf8_is_parse_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bundle.json"
        path.write_bytes(b'{"items": [], "x": "\xff\xfe"}')
        with pytest.raises(BundleParseError, match="Failed to parse registry bundle"):
            BundleCache(path).get_or_load()


def test_directory_at_bundle_path_is_not_found():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bundle.json"
        path.mkdir()
        with pytest.raises(BundleNotFoundError):
            BundleCache(path).get_or_load()


def test_schema_mismatch():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "bundle.json"
        path.write_text(json.dumps({"items": [{"name": "a"}]}))
        with pytest.raises(SchemaValidationError) as exc:
            BundleCache(path).get_or_load()
        assert "items[0]: missing required property 'files'" in exc.value.issues


def test_tampered_content_detected():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a"))
        raw = json.loads(path.read_text())
        raw["items"][0]["files"][0]["content"] = "// evil\n"
        path.write_text(json.dumps(raw))

        cache = BundleCache(path)
        with pytest.raises(IntegrityError) as exc:
            cache.get_or_load()
        assert exc.value.actual == raw["integrity"]
        assert not cache.is_loaded


def test_tampered_extra_detected():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a"), extra={"themes": {"x": 1}})
        raw = json.loads(path.read_text())
        raw["themes"]["x"] = 2
        path.write_text(json.dumps(raw))

        with pytest.raises(IntegrityError):
            BundleCache(path).get_or_load()


def test_bundle_without_integrity_loads():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_bundle(Path(tmpdir) / "bundle.json", _items("a"), integrity=False)
        assert BundleCache(path).get_or_load().integrity == ""

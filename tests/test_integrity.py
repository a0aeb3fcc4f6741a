"""Tests for bundle integrity digests."""

from regkit.registry.integrity import (
    INTEGRITY_PREFIX,
    canonical_json,
    compute_integrity,
    integrity_content,
    raw_bundle_content,
)


def _items():
    return [
        {
            "name": "button",
            "type": "registry:ui",
            "title": "Button",
            "description": "A button",
            "dependencies": [],
            "registryDependencies": [],
            "files": [{"path": "registry/button.tsx", "content": "export {}\n"}],
        }
    ]


def test_digest_format():
    digest = compute_integrity(integrity_content(_items()))
    assert digest.startswith(INTEGRITY_PREFIX)
    assert len(digest) == len(INTEGRITY_PREFIX) + 64


def test_digest_is_deterministic():
    assert compute_integrity(integrity_content(_items())) == compute_integrity(
        integrity_content(_items())
    )


def test_canonical_json_is_compact():
    assert canonical_json({"a": [1, 2], "b": "é"}) == '{"a":[1,2],"b":"é"}'


def test_items_come_first():
    content = integrity_content(_items(), {"themes": {"dark": {}}})
    assert list(content) == ["items", "themes"]


def test_extra_cannot_replace_items_or_integrity():
    content = integrity_content(_items(), {"items": [], "integrity": "x", "styles": "a"})
    assert content["items"] == _items()
    assert "integrity" not in content
    assert content["styles"] == "a"


def test_raw_bundle_content_matches_builder_preimage():
    extra = {"themes": {"dark": {"bg": "#000"}}}
    document = integrity_content(_items(), extra)
    document["integrity"] = compute_integrity(integrity_content(_items(), extra))

    assert compute_integrity(raw_bundle_content(document)) == document["integrity"]


def test_content_change_changes_digest():
    original = compute_integrity(integrity_content(_items()))
    tampered = _items()
    tampered[0]["files"][0]["content"] = "export {};\n"
    assert compute_integrity(integrity_content(tampered)) != original


def test_extra_change_changes_digest():
    a = compute_integrity(integrity_content(_items(), {"themes": {"dark": 1}}))
    b = compute_integrity(integrity_content(_items(), {"themes": {"dark": 2}}))
    assert a != b

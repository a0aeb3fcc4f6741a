"""Tests for the artifact pipeline: origins, fingerprints, freshness."""

import json
import tempfile
from pathlib import Path

import pytest

from regkit.artifacts.fingerprint import compute_inputs_fingerprint
from regkit.artifacts.freshness import validate_public_registry_fresh
from regkit.artifacts.origin import (
    DEFAULT_REGISTRY_ORIGIN,
    normalize_origin,
    rewrite_origin_value,
    rewrite_origins_in_dir,
)
from regkit.artifacts.pipeline import (
    ArtifactOptions,
    PublicRegistryOptions,
    artifact_options_from_config,
    build_registry_artifacts,
    build_registry_with_origin,
    ensure_public_registry_ready,
    resolve_local_build_bin,
    run_registry_build,
)
from regkit.errors import BuildError, ConfigError, NotFoundError, StaleArtifactError

FIX = "pnpm build:registry"


# --- Origins ---


def test_normalize_origin(monkeypatch):
    monkeypatch.delenv("REGISTRY_ORIGIN", raising=False)
    assert normalize_origin("  https://ui.example.com///  ") == "https://ui.example.com"
    assert normalize_origin() == DEFAULT_REGISTRY_ORIGIN

    monkeypatch.setenv("REGISTRY_ORIGIN", "http://localhost:3000/")
    assert normalize_origin() == "http://localhost:3000"


def test_normalize_origin_requires_scheme():
    with pytest.raises(ConfigError, match="must start with http"):
        normalize_origin("ui.example.com")


def test_rewrite_origin_value_is_recursive():
    value = {
        "url": "https://old.dev/r/a.json",
        "list": ["https://old.dev/x", 3, None, {"nested": "see https://old.dev"}],
        "flag": True,
    }
    assert rewrite_origin_value(value, "https://old.dev", "https://new.dev") == {
        "url": "https://new.dev/r/a.json",
        "list": ["https://new.dev/x", 3, None, {"nested": "see https://new.dev"}],
        "flag": True,
    }


def test_rewrite_origins_in_dir():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "sub").mkdir()
        (root / "a.json").write_text(json.dumps({"u": "https://old.dev/a"}))
        untouched = json.dumps({"u": "https://other.dev"}, indent=2) + "\n"
        (root / "sub" / "b.json").write_text(untouched)
        (root / "notes.txt").write_text("https://old.dev")

        stats = rewrite_origins_in_dir(root, "https://old.dev", "https://new.dev")

        assert (stats.changed, stats.total) == (1, 2)
        assert (root / "a.json").read_text() == '{\n  "u": "https://new.dev/a"\n}\n'
        assert (root / "sub" / "b.json").read_text() == untouched
        assert (root / "notes.txt").read_text() == "https://old.dev"


# --- Fingerprint ---


def _fingerprint_tree(root: Path) -> None:
    (root / "registry" / "ui").mkdir(parents=True)
    (root / "registry" / "ui" / "b.tsx").write_text("b")
    (root / "registry" / "ui" / "a.tsx").write_text("a")
    (root / "package.json").write_text("{}")


def test_fingerprint_is_deterministic():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _fingerprint_tree(root)
        first = compute_inputs_fingerprint(root, ["registry", "package.json"])
        assert len(first) == 64
        assert compute_inputs_fingerprint(root, ["registry", "package.json"]) == first


def test_fingerprint_changes_with_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _fingerprint_tree(root)
        before = compute_inputs_fingerprint(root, ["registry"])
        (root / "registry" / "ui" / "a.tsx").write_text("a2")
        assert compute_inputs_fingerprint(root, ["registry"]) != before


def test_fingerprint_skips_missing_inputs_and_respects_order():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _fingerprint_tree(root)
        base = compute_inputs_fingerprint(root, ["registry", "package.json"])
        assert compute_inputs_fingerprint(root, ["registry", "missing", "package.json"]) == base
        assert compute_inputs_fingerprint(root, ["package.json", "registry"]) != base


# --- Freshness ---


def _published_tree(root: Path) -> None:
    """A source registry plus a matching published copy under public/r."""
    item = {
        "name": "button",
        "type": "registry:ui",
        "title": "Button",
        "description": "",
        "dependencies": ["clsx"],
        "registryDependencies": [],
        "files": [{"path": "registry/button.tsx"}],
    }
    (root / "registry").mkdir()
    (root / "registry" / "registry.json").write_text(json.dumps({"items": [item]}))
    (root / "registry" / "button.tsx").write_text("export const Button = 1;\n")

    public = root / "public" / "r"
    public.mkdir(parents=True)
    (public / "registry.json").write_text(json.dumps({"items": [item]}))
    published_item = dict(item, files=[{"path": "registry/button.tsx", "content": "export const Button = 1;\n"}])
    (public / "button.json").write_text(json.dumps(published_item))


def test_fresh_registry_passes():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        validate_public_registry_fresh(root, FIX)


def test_stale_file_content():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        (root / "registry" / "button.tsx").write_text("export const Button = 2;\n")

        with pytest.raises(StaleArtifactError) as exc:
            validate_public_registry_fresh(root, FIX)
        assert "registry/button.tsx" in exc.value.message
        assert exc.value.message.endswith(f"Run: {FIX}")


def test_stale_dependencies():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        source = json.loads((root / "registry" / "registry.json").read_text())
        source["items"][0]["dependencies"] = ["clsx", "cva"]
        (root / "registry" / "registry.json").write_text(json.dumps(source))

        with pytest.raises(StaleArtifactError, match="dependencies mismatch"):
            validate_public_registry_fresh(root, FIX)


def test_stale_item_count():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        (root / "public" / "r" / "registry.json").write_text(json.dumps({"items": []}))

        with pytest.raises(StaleArtifactError, match="item count"):
            validate_public_registry_fresh(root, FIX)


def test_ensure_ready_without_binary():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "pkg" / "lib" / "ui"
        root.mkdir(parents=True)
        _published_tree(root)
        options = PublicRegistryOptions(fix_command=FIX)

        ensure_public_registry_ready(root, options)

        (root / "registry" / "button.tsx").write_text("changed\n")
        with pytest.raises(StaleArtifactError):
            ensure_public_registry_ready(root, options)

        (root / "public" / "r" / "registry.json").unlink()
        with pytest.raises(BuildError, match="unavailable"):
            ensure_public_registry_ready(root, options)


# --- Build binary ---


def test_resolve_local_build_bin_checks_parents():
    with tempfile.TemporaryDirectory() as tmpdir:
        workspace = Path(tmpdir)
        pkg = workspace / "packages" / "ui"
        pkg.mkdir(parents=True)
        assert resolve_local_build_bin(pkg) is None

        bin_dir = workspace / "node_modules" / ".bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "shadcn").write_text("")
        assert resolve_local_build_bin(pkg) == (bin_dir / "shadcn").resolve()


def test_run_registry_build_without_binary():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir) / "a" / "b" / "c"
        root.mkdir(parents=True)
        with pytest.raises(BuildError, match="binary not found"):
            run_registry_build(root)


# --- Artifact packaging ---


def test_build_registry_artifacts(monkeypatch):
    monkeypatch.delenv("REGISTRY_ORIGIN", raising=False)

    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _fingerprint_tree(root)
        (root / "public" / "r").mkdir(parents=True)
        (root / "public" / "r" / "button.json").write_text(
            json.dumps({"$schema": f"{DEFAULT_REGISTRY_ORIGIN}/schema.json"})
        )
        hook_calls = []

        options = ArtifactOptions(
            root_dir=root,
            manifest={"name": "ui", "version": "1.0.0"},
            inputs=["registry", "package.json"],
            required_paths=["public/r", {"path": "package.json", "label": "package manifest"}],
            copy_dirs=[{"from": "public/r", "to": "registry"}],
            rewrite_dirs=["registry"],
            origin_raw="https://cdn.example.org/",
            before_build=lambda: hook_calls.append("before"),
            after_copy=lambda result: hook_calls.append(("after", result.origin)),
        )
        result = build_registry_artifacts(options)

        assert hook_calls == ["before", ("after", "https://cdn.example.org")]
        assert result.artifact_root == (root / "dist" / "artifacts").resolve()
        copied = json.loads((result.artifact_root / "registry" / "button.json").read_text())
        assert copied["$schema"] == "https://cdn.example.org/schema.json"
        assert json.loads(result.manifest_path.read_text()) == {"name": "ui", "version": "1.0.0"}
        assert result.fingerprint_path.read_text() == result.fingerprint + "\n"
        assert result.fingerprint == compute_inputs_fingerprint(root, ["registry", "package.json"])


def test_build_registry_artifacts_resets_root():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        stale = root / "dist" / "artifacts" / "old.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        build_registry_artifacts(ArtifactOptions(root_dir=root, manifest={}, origin_raw="https://x.dev"))

        assert not stale.exists()
        assert (root / "dist" / "artifacts" / "artifact-manifest.json").read_text() == "{}\n"


def test_required_path_missing():
    with tempfile.TemporaryDirectory() as tmpdir:
        options = ArtifactOptions(
            root_dir=Path(tmpdir),
            manifest={},
            required_paths=[{"path": "public/r", "label": "public registry"}],
        )
        with pytest.raises(NotFoundError, match="public registry not found"):
            build_registry_artifacts(options)


def test_artifact_options_from_config():
    options = artifact_options_from_config(
        "/repo",
        {
            "manifest": {"name": "ui"},
            "inputs": ["registry"],
            "public_registry": {"fix_command": FIX},
        },
    )
    assert options.root_dir == Path("/repo")
    assert options.public_registry.fix_command == FIX
    assert options.public_registry.public_registry_dir == "public/r"

    with pytest.raises(ConfigError, match="manifest"):
        artifact_options_from_config("/repo", {"inputs": []})
    with pytest.raises(ConfigError, match="Unknown"):
        artifact_options_from_config("/repo", {"manifest": {}, "colour": "red"})
    with pytest.raises(ConfigError, match="fix_command"):
        artifact_options_from_config("/repo", {"manifest": {}, "public_registry": {}})


# --- External build (fake binary) ---


def _fake_build_bin(root: Path, item_content: str) -> Path:
    """Install a node_modules/.bin/shadcn script that publishes one item."""
    bin_dir = root / "node_modules" / ".bin"
    bin_dir.mkdir(parents=True)
    index = json.dumps({
        "$schema": f"{DEFAULT_REGISTRY_ORIGIN}/schema/registry.json",
        "items": [{
            "name": "button",
            "type": "registry:ui",
            "title": "Button",
            "description": "",
            "dependencies": ["clsx"],
            "registryDependencies": [],
            "files": [{"path": "registry/button.tsx"}],
        }],
    })
    item = json.dumps({"files": [{"path": "registry/button.tsx", "content": item_content}]})
    script = bin_dir / "shadcn"
    # Arguments: build <registry> --output <dir>
    script.write_text(
        "#!/bin/sh\n"
        'mkdir -p "$4"\n'
        f"cat > \"$4/registry.json\" <<'JSON'\n{index}\nJSON\n"
        f"cat > \"$4/button.json\" <<'JSON'\n{item}\nJSON\n"
    )
    script.chmod(0o755)
    return script


def test_build_registry_with_origin():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        _fake_build_bin(root, "export const Button = 1;\n")
        (root / "public" / "r" / "leftover.json").write_text("{}")
        calls = []

        origin, output = build_registry_with_origin(
            root,
            origin_raw="https://staging.example.net/",
            before_build=lambda: calls.append("before"),
        )

        assert calls == ["before"]
        assert origin == "https://staging.example.net"
        assert not (output / "leftover.json").exists()
        index = json.loads((output / "registry.json").read_text())
        assert index["$schema"] == "https://staging.example.net/schema/registry.json"


def test_ensure_ready_rebuilds_stale_registry():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _published_tree(root)
        (root / "registry" / "button.tsx").write_text("export const Button = 2;\n")
        _fake_build_bin(root, "export const Button = 2;\n")

        ensure_public_registry_ready(root, PublicRegistryOptions(fix_command=FIX))

        validate_public_registry_fresh(root, FIX)


def test_run_registry_build_failure():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        bin_dir = root / "node_modules" / ".bin"
        bin_dir.mkdir(parents=True)
        script = bin_dir / "shadcn"
        script.write_text("#!/bin/sh\necho broken >&2\nexit 3\n")
        script.chmod(0o755)

        with pytest.raises(BuildError, match="exit code 3") as exc:
            run_registry_build(root)
        assert "broken" in exc.value.details["stderr"]

"""Build, load, resolve, and install a two-item registry."""

import json
import tempfile
from pathlib import Path

from regkit.bundler.builder import BundlerConfig, build_bundle
from regkit.install.installer import build_file_ops
from regkit.install.transaction import write_files_with_rollback
from regkit.registry.loader import BundleCache
from regkit.registry.resolver import resolve_registry_deps


def _write_registry(root: Path) -> None:
    items = [
        {
            "name": "a",
            "type": "registry:ui",
            "title": "A",
            "description": "",
            "files": [{"path": "registry/a.tsx"}, {"path": "registry/a-utils.ts"}],
        },
        {
            "name": "b",
            "type": "registry:ui",
            "title": "B",
            "description": "",
            "registryDependencies": ["a"],
            "files": [{"path": "registry/b.tsx"}],
        },
    ]
    (root / "registry").mkdir(parents=True)
    (root / "registry" / "registry.json").write_text(json.dumps({"items": items}))
    (root / "registry" / "a.tsx").write_text("export const A = 1;\n")
    (root / "registry" / "a-utils.ts").write_text("export const util = 1;\n")
    (root / "registry" / "b.tsx").write_text('import { A } from "./a";\n')


def test_build_load_resolve_install():
    with tempfile.TemporaryDirectory() as tmpdir:
        source = Path(tmpdir) / "source"
        _write_registry(source)
        built = build_bundle(BundlerConfig(root_dir=source, output_path=source / "dist" / "bundle.json"))

        cache = BundleCache(built.output_path)
        bundle = cache.get_or_load()
        assert bundle.integrity == built.integrity

        order = resolve_registry_deps(["b"], cache.get_item)
        assert order == ["a", "b"]

        target = Path(tmpdir) / "target"
        ops = build_file_ops(order, cache, target, "components/ui", ["registry/"])
        result = write_files_with_rollback(ops, overwrite=False)

        expected = len(cache.get_item("a").files) + len(cache.get_item("b").files)
        assert result.written == expected == 3
        assert (target / "components" / "ui" / "b.tsx").read_text() == 'import { A } from "./a";\n'

        again = write_files_with_rollback(ops, overwrite=False)
        assert again.written == 0
        assert again.skipped == 3

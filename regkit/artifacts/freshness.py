"""Freshness check — does the published registry still match its source?

The published tree (``public/r`` by default) is produced by an external
build. It goes stale whenever an item, its dependency lists, or one of its
source files changes without a rebuild. Every mismatch is reported with the
command that regenerates the output.
"""

from __future__ import annotations

import json
from pathlib import Path

from regkit.errors import NotFoundError, StaleArtifactError

DEFAULT_PUBLIC_REGISTRY_DIR = "public/r"
PUBLIC_INDEX_FILE = "registry.json"


def _read_json(path: Path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _ensure_exists(path: Path, label: str) -> None:
    if not path.exists():
        raise NotFoundError(f'{label} not found at "{path}"', details={"path": str(path)})


def _ensure_same_list(label: str, source, published, item_name: str, fix_command: str) -> None:
    if list(source or []) != list(published or []):
        raise StaleArtifactError(
            f'Public registry is stale for "{item_name}" ({label} mismatch).', fix_command
        )


def validate_public_registry_fresh(
    root_dir: str | Path,
    fix_command: str,
    source_registry_path: str = "registry/registry.json",
    public_registry_dir: str = DEFAULT_PUBLIC_REGISTRY_DIR,
) -> None:
    """Compare the published registry against the source registry.

    Checks, in order: item count, presence of each item, ``dependencies``
    and ``registryDependencies`` (order matters), and the content of every
    declared file.

    Raises:
        StaleArtifactError: The published output no longer matches.
        NotFoundError: A published item document or a source file is missing.
    """
    root = Path(root_dir)
    source_items = _read_json(root / source_registry_path).get("items", [])
    published_items = _read_json(root / public_registry_dir / PUBLIC_INDEX_FILE).get("items", [])
    published_by_name = {item.get("name"): item for item in published_items}

    if len(source_items) != len(published_items):
        raise StaleArtifactError(
            "Public registry item count does not match source registry.", fix_command
        )

    for source_item in source_items:
        name = source_item["name"]
        published_item = published_by_name.get(name)
        if published_item is None:
            raise StaleArtifactError(f'Public registry missing item "{name}".', fix_command)

        _ensure_same_list(
            "dependencies",
            source_item.get("dependencies"),
            published_item.get("dependencies"),
            name,
            fix_command,
        )
        _ensure_same_list(
            "registryDependencies",
            source_item.get("registryDependencies"),
            published_item.get("registryDependencies"),
            name,
            fix_command,
        )

        item_path = root / public_registry_dir / f"{name}.json"
        _ensure_exists(item_path, f"public registry item JSON ({name})")
        published_files = {f.get("path"): f for f in _read_json(item_path).get("files", [])}

        for source_file in source_item.get("files", []):
            source_path = root / source_file["path"]
            _ensure_exists(source_path, f"source registry file ({name})")
            with open(source_path, encoding="utf-8", newline="") as f:
                source_content = f.read()

            published_file = published_files.get(source_file["path"])
            if not published_file or not isinstance(published_file.get("content"), str):
                raise StaleArtifactError(
                    f'Public registry file "{source_file["path"]}" missing for "{name}".',
                    fix_command,
                )
            if published_file["content"] != source_content:
                raise StaleArtifactError(
                    f'Public registry file content is stale for "{source_file["path"]}" ({name}).',
                    fix_command,
                )

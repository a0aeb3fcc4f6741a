"""Bundle builder — compile ``registry/registry.json`` into one bundle file.

Steps:
1. Load and schema-validate the source registry (every issue is reported)
2. Reject duplicate names and dangling local registryDependencies
3. Read each declared file, detect npm imports, strip core/peer deps
4. Rewrite bundle paths and merge extra top-level content
5. Compute the integrity digest and write the bundle atomically

Any failure raises a RegkitError; nothing is written unless every step
succeeded.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from regkit.bundler.imports import DEFAULT_ALIAS_PREFIXES, DEFAULT_PEER_DEPS, detect_npm_imports
from regkit.errors import (
    BundleParseError,
    DuplicateItemError,
    MissingReferenceError,
    NotFoundError,
    SchemaValidationError,
)
from regkit.registry.integrity import canonical_json, compute_integrity, integrity_content
from regkit.registry.models import ItemMeta, RegistryFile, RegistryItem
from regkit.registry.refs import parse_dependency_ref
from regkit.schema.validator import validate_source_registry

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_PATH = "registry/registry.json"


@dataclass
class BundlerConfig:
    """Options for one bundle build."""

    root_dir: Path
    output_path: Path
    source_path: str = DEFAULT_SOURCE_PATH
    peer_deps: frozenset[str] | set[str] = DEFAULT_PEER_DEPS
    core_deps: frozenset[str] | set[str] = frozenset()
    alias_prefixes: tuple[str, ...] | list[str] = DEFAULT_ALIAS_PREFIXES
    transform_path: Callable[[str], str] | None = None
    extra_content: Callable[[Path], dict] | None = None
    client_default: bool = False
    item_label: str = "item"

    def __post_init__(self):
        self.root_dir = Path(self.root_dir)
        self.output_path = Path(self.output_path)


@dataclass
class BundleResult:
    """What a successful build produced."""

    items: list[RegistryItem]
    integrity: str
    output_path: Path
    size_bytes: int = 0
    extra: dict = field(default_factory=dict)

    @property
    def file_count(self) -> int:
        return sum(len(item.files) for item in self.items)


def build_bundle(config: BundlerConfig) -> BundleResult:
    """Build and persist a bundle according to ``config``."""
    logger.info("Bundling registry...")

    source_items = _load_source(config.root_dir / config.source_path)
    _check_names(source_items, config.item_label)

    items = [_build_item(raw, config) for raw in source_items]
    extra = config.extra_content(config.root_dir) if config.extra_content else {}

    serialized_items = [item.to_dict() for item in items]
    integrity = compute_integrity(integrity_content(serialized_items, extra))

    document = integrity_content(serialized_items, extra)
    document["integrity"] = integrity
    payload = canonical_json(document)

    _write_atomic(config.output_path, payload)

    result = BundleResult(
        items=items,
        integrity=integrity,
        output_path=config.output_path,
        size_bytes=len(payload.encode("utf-8")),
        extra=extra,
    )
    _log_summary(result, config.item_label)
    return result


def _load_source(registry_path: Path) -> list[dict]:
    if not registry_path.is_file():
        raise NotFoundError(
            f"registry.json not found at {registry_path}.",
            details={"path": str(registry_path)},
        )

    try:
        with open(registry_path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BundleParseError(f"Failed to parse registry.json: {e}") from e

    issues = validate_source_registry(data)
    if issues:
        raise SchemaValidationError("registry.json schema", issues)

    return data["items"]


def _check_names(source_items: list[dict], item_label: str) -> None:
    names: set[str] = set()
    for raw in source_items:
        if raw["name"] in names:
            raise DuplicateItemError(raw["name"], item_label)
        names.add(raw["name"])

    # Cross-registry references are resolved elsewhere
    for raw in source_items:
        for dep in raw.get("registryDependencies", []):
            ref = parse_dependency_ref(dep)
            if ref.is_local and ref.name not in names:
                raise MissingReferenceError(raw["name"], dep)


def _build_item(raw: dict, config: BundlerConfig) -> RegistryItem:
    files: list[RegistryFile] = []
    deps: dict[str, None] = dict.fromkeys(raw.get("dependencies", []))

    for source_file in raw["files"]:
        file_path = config.root_dir / source_file["path"]
        if not file_path.is_file():
            raise NotFoundError(
                f'File not found for {config.item_label} "{raw["name"]}": '
                f'{source_file["path"]}\n  Expected at: {file_path.resolve()}',
                details={"item": raw["name"], "path": str(file_path)},
            )

        try:
            with open(file_path, encoding="utf-8", newline="") as f:
                content = f.read()
        except UnicodeDecodeError as e:
            raise BundleParseError(
                f"Source file {source_file['path']} is not valid UTF-8 ({e})",
                details={"item": raw["name"], "path": str(file_path)},
            ) from e

        bundle_path = source_file["path"]
        if config.transform_path:
            bundle_path = config.transform_path(bundle_path)

        files.append(
            RegistryFile(
                path=bundle_path,
                content=content,
                target_path=source_file.get("targetPath"),
                type=source_file.get("type"),
            )
        )

        for dep in detect_npm_imports(content, config.peer_deps, config.alias_prefixes):
            deps[dep] = None

    for dep in list(deps):
        if dep in config.core_deps or dep in config.peer_deps:
            del deps[dep]

    return RegistryItem(
        name=raw["name"],
        type=raw["type"],
        title=raw["title"],
        description=raw["description"],
        dependencies=list(deps),
        registry_dependencies=list(raw.get("registryDependencies", [])),
        files=files,
        meta=ItemMeta.from_dict(raw.get("meta"), client_default=config.client_default),
    )


def _write_atomic(output_path: Path, payload: str) -> None:
    """Write to ``<output>.tmp`` then rename over the destination."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = output_path.with_name(output_path.name + ".tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(payload)
        os.replace(tmp_path, output_path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def _log_summary(result: BundleResult, item_label: str) -> None:
    logger.info(
        "  Bundled %d %ss (%d files)", len(result.items), item_label, result.file_count
    )
    logger.info("  Bundle size: %.1f KB", result.size_bytes / 1024)
    logger.info("  Integrity: %s", result.integrity)
    logger.info("  Output: %s", result.output_path)

    with_deps = [item for item in result.items if item.dependencies]
    if with_deps:
        logger.info("")
        logger.info("  Dependencies:")
        for item in with_deps:
            logger.info("    %s: %s", item.name, ", ".join(item.dependencies))


def copy_generated_dir(pkg_root: str | Path, src_relative: str, dist_relative: str) -> Path:
    """Copy a generated bundle directory into the distribution tree.

    Existing files under the destination are overwritten.
    """
    pkg_root = Path(pkg_root)
    src = pkg_root / src_relative
    if not src.exists():
        raise NotFoundError(f"{src_relative}/ not found. Run prebuild first.")

    dest = pkg_root / dist_relative
    shutil.copytree(src, dest, dirs_exist_ok=True)
    logger.debug("Copied %s -> %s", src, dest)
    return dest

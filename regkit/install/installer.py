"""Add registry items to a project: resolve, write files, install packages.

The write phase and the dependency-install phase are one transaction. A
failed install, or a failed manifest update, rolls back the files the write
phase just placed. Packages already installed are left in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from regkit.config import alias_to_fs_path, require_project_config, update_manifest
from regkit.errors import ConfigError, DependencyInstallError
from regkit.install.detect import detect_package_manager, detect_source_dir
from regkit.install.fs import ensure_within_dir
from regkit.install.package_manager import install_deps, missing_deps
from regkit.install.transaction import (
    FileOp,
    WriteFilesResult,
    preview_writes,
    rollback_write_result,
    write_files_with_rollback,
)
from regkit.registry.loader import BundleCache
from regkit.registry.models import RegistryFile
from regkit.registry.resolver import collect_npm_deps, resolve_registry_deps, validate_items

logger = logging.getLogger(__name__)

# Lines of package-manager stderr shown unless debug output is on
STDERR_PREVIEW_LINES = 3


@dataclass
class AddResult:
    """Outcome of ``add_items``."""

    resolved: list[str] = field(default_factory=list)
    file_ops: list[FileOp] = field(default_factory=list)
    installed_deps: list[str] = field(default_factory=list)
    write_result: WriteFilesResult | None = None
    preview: list[tuple[str, str]] = field(default_factory=list)
    dry_run: bool = False


def get_relative_path(file: RegistryFile, prefixes: list[str]) -> str:
    """Install path of a registry file, relative to the install directory.

    An explicit ``targetPath`` wins; otherwise the first matching prefix is
    stripped from the registry path.
    """
    if file.target_path:
        return file.target_path
    for prefix in prefixes:
        if file.path.startswith(prefix):
            return file.path[len(prefix):]
    expected = ", ".join(f'"{p}"' for p in prefixes)
    raise ConfigError(
        f'Unsupported registry file path "{file.path}". '
        f"Expected path to start with one of: {expected}."
    )


def build_file_ops(
    names: list[str],
    cache: BundleCache,
    project_dir: Path,
    install_dir: str,
    prefixes: list[str],
) -> list[FileOp]:
    """One FileOp per distinct target path across the resolved items."""
    install_root = project_dir / install_dir
    ops: list[FileOp] = []
    seen: set[Path] = set()

    for name in names:
        item = cache.get_item(name)
        for file in item.files:
            relative = get_relative_path(file, prefixes)
            target = install_root / relative
            ensure_within_dir(target, install_root)
            if target in seen:
                continue
            seen.add(target)
            ops.append(
                FileOp(
                    target_path=target,
                    content=file.content or "",
                    relative_path=relative,
                    install_dir=install_dir,
                )
            )
    return ops


def install_deps_with_rollback(
    deps: list[str],
    cwd: str | Path,
    write_result: WriteFilesResult,
    debug: bool = False,
) -> None:
    """Install ``deps``; on failure undo ``write_result`` and raise.

    Raises:
        DependencyInstallError: The install failed and files were rolled back.
    """
    if not deps:
        return

    logger.info("Installing dependencies...")
    pm = detect_package_manager(cwd)
    try:
        install_deps(pm, deps, cwd)
    except DependencyInstallError as e:
        logger.error("Failed to install dependencies")
        _log_install_output(e.message, debug)
        logger.error("Try manually: %s add %s", pm, " ".join(deps))
        logger.warning("Rolling back written files due to dependency install failure...")
        rollback_write_result(write_result)
        raise DependencyInstallError(
            "Dependency installation failed.", package_manager=pm, stderr=e.stderr
        ) from e

    logger.info("Installed %d package(s)", len(deps))


def _log_install_output(message: str, debug: bool) -> None:
    lines = [line for line in message.split("\n") if line]
    limit = len(lines) if debug else STDERR_PREVIEW_LINES
    for line in lines[:limit]:
        logger.error(line)
    if not debug and len(lines) > limit:
        logger.error("  ... %d more lines (set DEBUG=1 for full output)", len(lines) - limit)


def add_items(
    names: list[str],
    cache: BundleCache,
    project_dir: str | Path,
    overwrite: bool = False,
    dry_run: bool = False,
    debug: bool = False,
    item_label: str = "item",
) -> AddResult:
    """Install the requested items and everything they depend on.

    Reads ``regkit.json`` for the install directory and path prefixes,
    resolves the dependency closure, writes all files in one transaction,
    installs npm packages the project does not declare yet, and records the
    items in the project manifest. With ``dry_run`` nothing is changed.
    """
    project_dir = Path(project_dir)
    config = require_project_config(project_dir)

    validate_items(names, cache.get_item, item_label)
    resolved = resolve_registry_deps(names, cache.get_item, item_label)
    logger.debug("Resolved %s -> %s", names, resolved)

    install_dir = alias_to_fs_path(config.install_dir, detect_source_dir(project_dir))
    file_ops = build_file_ops(resolved, cache, project_dir, install_dir, config.path_prefixes)
    deps = missing_deps(collect_npm_deps(resolved, cache.get_item), project_dir)

    result = AddResult(resolved=resolved, file_ops=file_ops, dry_run=dry_run)

    if dry_run:
        result.preview = preview_writes(file_ops, overwrite)
        result.installed_deps = deps
        return result

    result.write_result = write_files_with_rollback(file_ops, overwrite)
    install_deps_with_rollback(deps, project_dir, result.write_result, debug=debug)
    result.installed_deps = deps

    try:
        update_manifest(project_dir, add=resolved)
    except ConfigError:
        if deps:
            logger.warning("Installed packages are left in place: %s", " ".join(deps))
        logger.warning("Rolling back written files due to manifest update failure...")
        rollback_write_result(result.write_result)
        raise
    return result

"""Project detection — package manager and source directory."""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path

from regkit.install.fs import read_tsconfig_paths

logger = logging.getLogger(__name__)

# Checked in this order; the most recently modified one wins when several exist.
LOCKFILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("package-lock.json", "npm"),
)

_SOURCE_DIR_RE = re.compile(r"^\./([^*]+)\*")


def read_package_json(cwd: str | Path) -> dict | None:
    path = Path(cwd) / "package.json"
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return None
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Could not read package.json: %s", e)
        return None


def detect_package_manager(cwd: str | Path, pkg: dict | None = None) -> str:
    """Pick the package manager for a project.

    Order: ``packageManager`` in package.json, then the
    ``npm_config_user_agent`` env hint, then lock files. Defaults to npm.
    """
    pkg_json = pkg if pkg is not None else read_package_json(cwd)
    declared = pkg_json.get("packageManager") if isinstance(pkg_json, dict) else None
    if not isinstance(declared, str):
        declared = ""
    for pm in ("pnpm", "yarn", "bun"):
        if declared.startswith(pm):
            return pm

    agent = os.environ.get("npm_config_user_agent", "")
    for pm in ("pnpm", "yarn", "bun"):
        if pm in agent:
            return pm

    found = [
        (Path(cwd) / name, pm) for name, pm in LOCKFILES if (Path(cwd) / name).exists()
    ]
    if not found:
        return "npm"

    if len(found) > 1:
        unique = list(dict.fromkeys(pm for _, pm in found))
        if len(unique) > 1:
            logger.warning(
                "Multiple lockfiles detected (%s). Using the most recently modified.",
                ", ".join(unique),
            )
        found.sort(key=lambda entry: entry[0].stat().st_mtime, reverse=True)

    return found[0][1]


def detect_source_dir(cwd: str | Path) -> str:
    """Source directory behind the ``@/`` alias, e.g. ``src``.

    Uses the ``@/*`` mapping from tsconfig/jsconfig, else ``src`` when it
    exists, else the project root.
    """
    paths = read_tsconfig_paths(cwd) or {}
    mapping = paths.get("@/*")
    if isinstance(mapping, list):
        for entry in mapping:
            match = _SOURCE_DIR_RE.match(entry) if isinstance(entry, str) else None
            if match:
                return match.group(1).rstrip("/")

    return "src" if (Path(cwd) / "src").is_dir() else "."

"""Filesystem helpers for installing registry files."""

from __future__ import annotations

import json
import logging
import os
import secrets
from pathlib import Path
from typing import Literal

from regkit.errors import PathTraversalError

logger = logging.getLogger(__name__)

WriteResult = Literal["written", "skipped", "overwritten"]


def write_file_safe(file_path: str | Path, content: str, overwrite: bool = False) -> WriteResult:
    """Write ``content`` to ``file_path`` atomically.

    Existing files are left alone unless ``overwrite`` is set. The content is
    written to a temporary file in the same directory and renamed over the
    target, so a crash never leaves a partially written file behind.
    """
    path = Path(file_path)
    exists = path.exists()

    if exists and not overwrite:
        return "skipped"

    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.parent / f".tmp-{secrets.token_hex(6)}"
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise

    return "overwritten" if exists else "written"


def read_text_exact(file_path: str | Path) -> str:
    """Read a text file without newline translation."""
    with open(file_path, encoding="utf-8", newline="") as f:
        return f.read()


def clean_empty_dirs(dirs: list[str | Path]) -> None:
    """Remove each directory in order if it exists and is empty."""
    for directory in dirs:
        path = Path(directory)
        try:
            if path.is_dir() and not any(path.iterdir()):
                path.rmdir()
        except OSError as e:
            # May already be cleaned up, or something else now lives there
            logger.debug("Could not remove %s: %s", path, e)


def missing_parent_dirs(directory: str | Path) -> list[Path]:
    """Directories that would have to be created for ``directory`` to exist.

    Returned outermost first, i.e. in creation order.
    """
    missing = []
    current = Path(directory)
    while not current.exists():
        missing.append(current)
        if current.parent == current:
            break
        current = current.parent
    return list(reversed(missing))


def ensure_within_dir(target_path: str | Path, base_dir: str | Path) -> None:
    """Raise PathTraversalError if ``target_path`` resolves outside ``base_dir``."""
    target = Path(os.path.abspath(target_path))
    base = Path(os.path.abspath(base_dir))
    if target != base and base not in target.parents:
        raise PathTraversalError(str(target_path), str(base_dir))


def ensure_within_any_dir(target_path: str | Path, base_dirs: list[str | Path]) -> None:
    """Raise PathTraversalError unless ``target_path`` is inside one of ``base_dirs``."""
    target = Path(os.path.abspath(target_path))
    for base_dir in base_dirs:
        base = Path(os.path.abspath(base_dir))
        if target == base or base in target.parents:
            return
    raise PathTraversalError(str(target_path), [str(d) for d in base_dirs])


def strip_json_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside of JSON strings."""
    result = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        ch = text[i]
        if in_string:
            if ch == "\\" and i + 1 < length:
                result.append(text[i : i + 2])
                i += 2
                continue
            if ch == '"':
                in_string = False
            result.append(ch)
            i += 1
        elif ch == '"':
            in_string = True
            result.append(ch)
            i += 1
        elif text.startswith("//", i):
            while i < length and text[i] != "\n":
                i += 1
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = length if end == -1 else end + 2
        else:
            result.append(ch)
            i += 1

    return "".join(result)


def read_tsconfig_paths(cwd: str | Path) -> dict | None:
    """Return ``compilerOptions.paths`` from tsconfig.json or jsconfig.json."""
    for config_file in ("tsconfig.json", "jsconfig.json"):
        path = Path(cwd) / config_file
        if not path.is_file():
            continue
        try:
            config = json.loads(strip_json_comments(path.read_text(encoding="utf-8")))
        except (json.JSONDecodeError, OSError) as e:
            logger.debug("Ignoring unreadable %s: %s", path, e)
            continue
        paths = config.get("compilerOptions", {}).get("paths") if isinstance(config, dict) else None
        if isinstance(paths, dict):
            return paths
    return None

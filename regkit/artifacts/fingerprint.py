"""Content fingerprint over a declared list of build inputs."""

from __future__ import annotations

import hashlib
from pathlib import Path


def collect_all_files(root_dir: str | Path) -> list[Path]:
    return [p for p in Path(root_dir).rglob("*") if p.is_file()]


def compute_inputs_fingerprint(root_dir: str | Path, inputs: list[str]) -> str:
    """SHA-256 hex digest over ``inputs`` (paths relative to ``root_dir``).

    Inputs are hashed in declared order and missing inputs are skipped.
    A directory contributes every file below it, sorted by path, each as
    ``<path relative to root>\\n<content>\\n``; a file contributes
    ``<declared name>\\n<content>\\n``.
    """
    root = Path(root_dir)
    digest = hashlib.sha256()

    for input_rel in inputs:
        input_abs = root / input_rel
        if not input_abs.exists():
            continue

        if input_abs.is_dir():
            files = sorted(collect_all_files(input_abs), key=lambda p: p.relative_to(root).as_posix())
            for file_path in files:
                digest.update(file_path.relative_to(root).as_posix().encode("utf-8"))
                digest.update(b"\n")
                digest.update(file_path.read_bytes())
                digest.update(b"\n")
            continue

        digest.update(input_rel.encode("utf-8"))
        digest.update(b"\n")
        digest.update(input_abs.read_bytes())
        digest.update(b"\n")

    return digest.hexdigest()

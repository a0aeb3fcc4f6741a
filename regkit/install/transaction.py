"""Transactional file writes with rollback.

``write_files_with_rollback`` applies a list of FileOps and tracks what it
changed: files it created, the prior content of files it overwrote, and
directories it had to create. If any write fails, every change is undone
before the error propagates. The same tracking data is returned on success
so that a later phase (the package-manager install) can undo the writes too.

The target directory is assumed to be used by one install at a time;
concurrent installs into the same project are not coordinated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from regkit.errors import FileWriteError
from regkit.install.fs import (
    clean_empty_dirs,
    missing_parent_dirs,
    read_text_exact,
    write_file_safe,
)

logger = logging.getLogger(__name__)

ACTION_MARKS = {"written": "+", "overwritten": "~", "skipped": "skip"}


@dataclass
class FileOp:
    """One file to place into the target project."""

    target_path: Path
    content: str
    relative_path: str  # Label used in output, relative to install_dir
    install_dir: str

    @property
    def label(self) -> str:
        return f"{self.install_dir}/{self.relative_path}"


@dataclass
class FileBackup:
    path: Path
    content: str


@dataclass
class WriteFilesResult:
    written: int = 0
    skipped: int = 0
    overwritten: int = 0
    new_files: list[Path] = field(default_factory=list)
    backups: list[FileBackup] = field(default_factory=list)
    created_dirs: list[Path] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.new_files or self.backups)


def write_files_with_rollback(file_ops: list[FileOp], overwrite: bool) -> WriteFilesResult:
    """Write every FileOp, or none of them.

    Existing targets are skipped unless ``overwrite`` is set, in which case
    their content is backed up first.

    Raises:
        FileWriteError: A write failed; all changes were rolled back.
    """
    result = WriteFilesResult()

    try:
        for op in file_ops:
            target = Path(op.target_path)
            for directory in missing_parent_dirs(target.parent):
                if directory not in result.created_dirs:
                    result.created_dirs.append(directory)

            if overwrite and target.exists():
                result.backups.append(FileBackup(path=target, content=read_text_exact(target)))

            action = write_file_safe(target, op.content, overwrite)
            if action == "written":
                result.new_files.append(target)
                result.written += 1
            elif action == "overwritten":
                result.overwritten += 1
            else:
                result.skipped += 1
            logger.info("  %s %s", ACTION_MARKS[action], op.label)
    except Exception as e:
        if result.changed or result.created_dirs:
            logger.warning("Rolling back changes...")
            rollback_files(result.new_files, result.backups, result.created_dirs)
        raise FileWriteError(f"Failed to write files: {e}") from e

    return result


def rollback_files(
    new_files: list[Path],
    backups: list[FileBackup],
    created_dirs: list[Path],
) -> bool:
    """Undo a write phase. Best effort: one failure never stops the rest.

    Returns True when everything was restored.
    """
    failed = False

    # Newest first, so a path overwritten twice ends at its oldest content
    for backup in reversed(backups):
        try:
            write_file_safe(backup.path, backup.content, overwrite=True)
        except OSError as e:
            failed = True
            logger.warning("Failed to restore %s: %s", backup.path, e)

    for path in new_files:
        try:
            Path(path).unlink()
        except OSError as e:
            failed = True
            logger.warning("Failed to rollback %s: %s", path, e)

    clean_empty_dirs(list(reversed(created_dirs)))

    if failed:
        logger.warning(
            "Some files could not be rolled back. Check the paths above and restore them manually."
        )
    return not failed


def rollback_write_result(result: WriteFilesResult) -> bool:
    return rollback_files(result.new_files, result.backups, result.created_dirs)


def preview_writes(file_ops: list[FileOp], overwrite: bool) -> list[tuple[str, str]]:
    """What ``write_files_with_rollback`` would do, without touching disk."""
    preview = []
    for op in file_ops:
        exists = Path(op.target_path).exists()
        if exists and not overwrite:
            preview.append(("skipped", op.label))
        else:
            preview.append(("overwritten" if exists else "written", op.label))
    return preview


def format_write_summary(result: WriteFilesResult) -> str:
    parts = []
    if result.written:
        parts.append(f"{result.written} written")
    if result.skipped:
        parts.append(f"{result.skipped} skipped")
    if result.overwritten:
        parts.append(f"{result.overwritten} overwritten")
    return f"Done. {', '.join(parts) or 'nothing to do'}."

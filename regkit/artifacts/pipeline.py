"""Artifact pipeline — build, verify, and package publishable registry output.

Steps of ``build_registry_artifacts``:
1. Run the ``before_build`` hook
2. Optionally make sure the published registry exists and is fresh
3. Check that every required path exists
4. Reset the artifact root and copy the configured directories into it
5. Rewrite embedded origins in the configured directories
6. Run the ``after_copy`` hook
7. Fingerprint the inputs and write the manifest and fingerprint files
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from regkit.artifacts.fingerprint import compute_inputs_fingerprint
from regkit.artifacts.freshness import (
    DEFAULT_PUBLIC_REGISTRY_DIR,
    PUBLIC_INDEX_FILE,
    validate_public_registry_fresh,
)
from regkit.artifacts.origin import DEFAULT_REGISTRY_ORIGIN, normalize_origin, rewrite_origins_in_dir
from regkit.errors import BuildError, ConfigError, NotFoundError, StaleArtifactError

logger = logging.getLogger(__name__)

DEFAULT_BUILD_BIN = "shadcn"
DEFAULT_ARTIFACT_ROOT = "dist/artifacts"
DEFAULT_MANIFEST_FILE = "artifact-manifest.json"
DEFAULT_FINGERPRINT_FILE = "fingerprint.sha256"
DEFAULT_REGISTRY_PATH = "registry/registry.json"


@dataclass
class PublicRegistryOptions:
    """Where the published registry lives and how to regenerate it."""

    fix_command: str
    source_registry_path: str = DEFAULT_REGISTRY_PATH
    public_registry_dir: str = DEFAULT_PUBLIC_REGISTRY_DIR
    registry_path: str | None = None  # Defaults to source_registry_path
    output_dir: str | None = None  # Defaults to public_registry_dir
    label: str = "public registry index"


@dataclass
class ArtifactOptions:
    root_dir: Path
    manifest: dict
    artifact_root: str = DEFAULT_ARTIFACT_ROOT
    inputs: list[str] = field(default_factory=list)
    manifest_file: str = DEFAULT_MANIFEST_FILE
    fingerprint_file: str = DEFAULT_FINGERPRINT_FILE
    public_registry: PublicRegistryOptions | None = None
    required_paths: list = field(default_factory=list)  # str or {"path", "label"}
    copy_dirs: list[dict] = field(default_factory=list)  # {"from", "to"}
    rewrite_dirs: list[str] = field(default_factory=list)  # relative to artifact_root
    origin_raw: str | None = None
    default_origin: str = DEFAULT_REGISTRY_ORIGIN
    from_origin: str | None = None  # Defaults to default_origin
    before_build: Callable[[], None] | None = None
    after_copy: Callable[[ArtifactResult], None] | None = None

    def __post_init__(self):
        self.root_dir = Path(self.root_dir)


@dataclass
class ArtifactResult:
    origin: str
    artifact_root: Path
    fingerprint: str = ""
    manifest_path: Path | None = None
    fingerprint_path: Path | None = None
    root_dir: Path | None = None


# ── External build ───────────────────────────────────────────────────


def resolve_local_build_bin(root_dir: str | Path, bin_name: str = DEFAULT_BUILD_BIN) -> Path | None:
    """Find ``node_modules/.bin/<bin_name>`` in root_dir or up to two parents."""
    root = Path(root_dir).resolve()
    for base in (root, root.parent, root.parent.parent):
        candidate = base / "node_modules" / ".bin" / bin_name
        if candidate.exists():
            return candidate
    return None


def reset_dir(path: Path) -> None:
    shutil.rmtree(path, ignore_errors=True)
    path.mkdir(parents=True, exist_ok=True)


def run_registry_build(
    root_dir: str | Path,
    registry_path: str = DEFAULT_REGISTRY_PATH,
    output_dir: str = DEFAULT_PUBLIC_REGISTRY_DIR,
    bin_name: str = DEFAULT_BUILD_BIN,
) -> None:
    """Regenerate the published registry with the local build binary.

    The output directory is emptied first.

    Raises:
        BuildError: The binary is missing or exited non-zero.
    """
    root = Path(root_dir)
    build_bin = resolve_local_build_bin(root, bin_name)
    if build_bin is None:
        raise BuildError(
            f"Local {bin_name} CLI binary not found.\n"
            f"Install dependencies so node_modules/.bin/{bin_name} exists."
        )

    reset_dir(root / output_dir)
    args = [str(build_bin), "build", registry_path, "--output", output_dir]
    logger.info("Building registry: %s", " ".join(args[1:]))

    try:
        proc = subprocess.run(args, cwd=root, capture_output=True, text=True)
    except OSError as e:
        raise BuildError(f"Failed to run {build_bin}: {e}") from e

    if proc.stdout:
        logger.debug(proc.stdout.rstrip())
    if proc.returncode != 0:
        raise BuildError(
            f"{bin_name} {' '.join(args[1:])} failed with exit code {proc.returncode}",
            details={"stderr": proc.stderr},
        )


def ensure_public_registry_ready(
    root_dir: str | Path,
    options: PublicRegistryOptions,
    bin_name: str = DEFAULT_BUILD_BIN,
) -> None:
    """Make sure the published registry exists and matches its source.

    A missing index is built when a local binary is available. A stale
    registry is rebuilt once and checked again; without a binary the
    staleness error propagates.
    """
    root = Path(root_dir)
    registry_path = options.registry_path or options.source_registry_path
    output_dir = options.output_dir or options.public_registry_dir
    index_path = root / options.public_registry_dir / PUBLIC_INDEX_FILE
    can_build = resolve_local_build_bin(root, bin_name) is not None

    if not index_path.exists():
        if not can_build:
            raise BuildError(
                f"{options.label} is missing and local {bin_name} binary is unavailable.\n"
                f"Expected: {index_path}\n"
                f"Run: {options.fix_command}"
            )
        run_registry_build(root, registry_path, output_dir, bin_name)

    def check() -> None:
        validate_public_registry_fresh(
            root,
            options.fix_command,
            source_registry_path=options.source_registry_path,
            public_registry_dir=options.public_registry_dir,
        )

    try:
        check()
    except (StaleArtifactError, NotFoundError) as e:
        if not can_build:
            raise
        logger.warning("%s; rebuilding", e.message.split("\n")[0])
        run_registry_build(root, registry_path, output_dir, bin_name)
        check()


def build_registry_with_origin(
    root_dir: str | Path,
    registry_path: str = DEFAULT_REGISTRY_PATH,
    output_dir: str = DEFAULT_PUBLIC_REGISTRY_DIR,
    origin_raw: str | None = None,
    default_origin: str = DEFAULT_REGISTRY_ORIGIN,
    from_origin: str | None = None,
    before_build: Callable[[], None] | None = None,
    bin_name: str = DEFAULT_BUILD_BIN,
) -> tuple[str, Path]:
    """Build the published registry and retarget its origin in one step.

    Returns:
        The normalized origin and the absolute output directory.
    """
    root = Path(root_dir)
    if before_build:
        before_build()

    run_registry_build(root, registry_path, output_dir, bin_name)

    origin = normalize_origin(origin_raw, default_origin)
    output_path = (root / output_dir).resolve()
    rewrite_origins_in_dir(output_path, from_origin or default_origin, origin)
    return origin, output_path


# ── Artifact packaging ───────────────────────────────────────────────


def _check_required_paths(root: Path, required_paths: list) -> None:
    for required in required_paths:
        if isinstance(required, str):
            path, label = required, required
        elif isinstance(required, dict) and required.get("path"):
            path, label = required["path"], required.get("label", required["path"])
        else:
            raise ConfigError(f"Invalid required path entry: {required!r}")
        full_path = root / path
        if not full_path.exists():
            raise NotFoundError(f'{label} not found at "{full_path}"', details={"path": str(full_path)})


def build_registry_artifacts(options: ArtifactOptions) -> ArtifactResult:
    """Run the artifact pipeline described by ``options``."""
    if not isinstance(options.manifest, dict):
        raise ConfigError("Artifact pipeline requires a `manifest` mapping.")

    root = options.root_dir
    if options.before_build:
        options.before_build()

    if options.public_registry:
        ensure_public_registry_ready(root, options.public_registry)

    _check_required_paths(root, options.required_paths)

    origin = normalize_origin(options.origin_raw, options.default_origin)
    artifact_root = (root / options.artifact_root).resolve()
    reset_dir(artifact_root)

    for entry in options.copy_dirs:
        if not isinstance(entry, dict) or "from" not in entry or "to" not in entry:
            raise ConfigError(f"Invalid copy entry: {entry!r}")
        shutil.copytree(root / entry["from"], artifact_root / entry["to"], dirs_exist_ok=True)
        logger.debug("Copied %s -> %s", entry["from"], entry["to"])

    from_origin = options.from_origin or options.default_origin
    for relative_dir in options.rewrite_dirs:
        stats = rewrite_origins_in_dir(artifact_root / relative_dir, from_origin, origin)
        logger.info("  Rewrote origin in %d/%d files under %s", stats.changed, stats.total, relative_dir)

    result = ArtifactResult(origin=origin, artifact_root=artifact_root, root_dir=root)
    if options.after_copy:
        options.after_copy(result)

    result.fingerprint = compute_inputs_fingerprint(root, options.inputs)
    result.manifest_path = artifact_root / options.manifest_file
    result.fingerprint_path = artifact_root / options.fingerprint_file

    result.manifest_path.write_text(json.dumps(options.manifest, indent=2) + "\n", encoding="utf-8")
    result.fingerprint_path.write_text(result.fingerprint + "\n", encoding="utf-8")

    logger.info("  Artifacts: %s", artifact_root)
    logger.info("  Fingerprint: %s", result.fingerprint)
    return result


_OPTION_KEYS = {
    "artifact_root", "inputs", "manifest", "manifest_file", "fingerprint_file",
    "public_registry", "required_paths", "copy_dirs", "rewrite_dirs",
    "default_origin", "from_origin",
}


def artifact_options_from_config(root_dir: str | Path, data: dict) -> ArtifactOptions:
    """Build ArtifactOptions from the ``artifacts`` section of ``regkit.yaml``."""
    unknown = sorted(set(data) - _OPTION_KEYS)
    if unknown:
        raise ConfigError(f"Unknown artifacts option(s): {', '.join(unknown)}")
    if "manifest" not in data:
        raise ConfigError("artifacts.manifest is required")

    kwargs = dict(data)
    public = kwargs.pop("public_registry", None)
    if public is not None:
        if not isinstance(public, dict) or "fix_command" not in public:
            raise ConfigError("artifacts.public_registry must be a mapping with a fix_command")
        try:
            kwargs["public_registry"] = PublicRegistryOptions(**public)
        except TypeError as e:
            raise ConfigError(f"Invalid artifacts.public_registry: {e}") from e

    return ArtifactOptions(root_dir=Path(root_dir), **kwargs)

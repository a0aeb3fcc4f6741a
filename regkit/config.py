"""Configuration — build-side YAML and project-side JSON.

``regkit.yaml`` lives next to the source registry and configures bundling
and the artifact pipeline. ``regkit.json`` lives in a consuming project and
records where items are installed and which items are present.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import yaml

from regkit.bundler.builder import DEFAULT_SOURCE_PATH, BundlerConfig
from regkit.bundler.imports import DEFAULT_ALIAS_PREFIXES, DEFAULT_PEER_DEPS
from regkit.errors import ConfigError
from regkit.schema.validator import validate_project_config

logger = logging.getLogger(__name__)

BUILD_CONFIG_FILE = "regkit.yaml"
PROJECT_CONFIG_FILE = "regkit.json"
DEFAULT_BUNDLE_OUTPUT = "dist/registry-bundle.json"
DEFAULT_INSTALL_DIR = "@/components/ui"
DEFAULT_PATH_PREFIXES = ["registry/"]


# ── Build config (regkit.yaml) ───────────────────────────────────────


@dataclass
class BuildConfig:
    """Author-side options read from ``regkit.yaml``."""

    source: str = DEFAULT_SOURCE_PATH
    output: str = DEFAULT_BUNDLE_OUTPUT
    peer_deps: list[str] = field(default_factory=lambda: sorted(DEFAULT_PEER_DEPS))
    core_deps: list[str] = field(default_factory=list)
    alias_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_ALIAS_PREFIXES))
    client_default: bool = False
    item_label: str = "item"
    path_rewrites: dict[str, str] = field(default_factory=dict)  # source prefix -> bundle prefix
    extra: dict[str, str] = field(default_factory=dict)  # top-level key -> file path
    artifacts: dict = field(default_factory=dict)

    def rewrite_path(self, path: str) -> str:
        """Apply the first matching prefix rewrite to a bundle file path."""
        for prefix, replacement in self.path_rewrites.items():
            if path.startswith(prefix):
                return replacement + path[len(prefix):]
        return path

    def load_extra(self, root_dir: Path) -> dict:
        """Read extra top-level payloads. JSON files are parsed, others kept as text."""
        extra: dict = {}
        for key, rel_path in self.extra.items():
            path = Path(root_dir) / rel_path
            if not path.is_file():
                raise ConfigError(f"Extra content '{key}' not found at {path}")
            text = path.read_text(encoding="utf-8")
            if path.suffix == ".json":
                try:
                    extra[key] = json.loads(text)
                except json.JSONDecodeError as e:
                    raise ConfigError(f"Extra content '{key}' is not valid JSON: {e}") from e
            else:
                extra[key] = text
        return extra

    def to_bundler_config(self, root_dir: str | Path) -> BundlerConfig:
        root = Path(root_dir)
        return BundlerConfig(
            root_dir=root,
            output_path=root / self.output,
            source_path=self.source,
            peer_deps=frozenset(self.peer_deps),
            core_deps=frozenset(self.core_deps),
            alias_prefixes=tuple(self.alias_prefixes),
            transform_path=self.rewrite_path if self.path_rewrites else None,
            extra_content=self.load_extra if self.extra else None,
            client_default=self.client_default,
            item_label=self.item_label,
        )


_LIST_KEYS = ("peer_deps", "core_deps", "alias_prefixes")
_MAP_KEYS = ("path_rewrites", "extra", "artifacts")


def load_build_config(root_dir: str | Path, filename: str = BUILD_CONFIG_FILE) -> BuildConfig:
    """Load ``regkit.yaml`` from ``root_dir``; a missing file means defaults."""
    path = Path(root_dir) / filename
    if not path.exists():
        logger.debug("No %s in %s, using defaults", filename, root_dir)
        return BuildConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{filename} is malformed: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{filename} must contain a mapping at the top level")

    issues = []
    known = set(BuildConfig.__dataclass_fields__)
    for key in data:
        if key not in known:
            issues.append(f"unknown key '{key}'")
    for key in _LIST_KEYS:
        if key in data and not _is_str_list(data[key]):
            issues.append(f"'{key}' must be a list of strings")
    for key in _MAP_KEYS:
        if key in data and not isinstance(data[key], dict):
            issues.append(f"'{key}' must be a mapping")
    for key in ("source", "output", "item_label"):
        if key in data and not isinstance(data[key], str):
            issues.append(f"'{key}' must be a string")
    if "client_default" in data and not isinstance(data["client_default"], bool):
        issues.append("'client_default' must be true or false")
    if issues:
        raise ConfigError(f"Invalid {filename}:\n" + "\n".join(f"  - {i}" for i in issues))

    return BuildConfig(**data)


def _is_str_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


# ── Project config (regkit.json) ─────────────────────────────────────


@dataclass
class ProjectConfig:
    """Consumer-side settings read from ``regkit.json``."""

    install_dir: str = DEFAULT_INSTALL_DIR
    path_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_PATH_PREFIXES))
    installed: dict[str, dict] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: dict = {
            "installDir": self.install_dir,
            "pathPrefixes": list(self.path_prefixes),
        }
        if self.installed:
            data["installed"] = self.installed
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ProjectConfig:
        return cls(
            install_dir=data.get("installDir", DEFAULT_INSTALL_DIR),
            path_prefixes=list(data.get("pathPrefixes", DEFAULT_PATH_PREFIXES)),
            installed=dict(data.get("installed", {})),
        )


@dataclass
class ConfigLoadResult:
    """Outcome of reading a project config.

    ``error`` is one of ``not_found``, ``parse_error``, ``validation_error``.
    """

    ok: bool
    config: ProjectConfig | None = None
    error: str = ""
    message: str = ""


def load_project_config(cwd: str | Path, filename: str = PROJECT_CONFIG_FILE) -> ConfigLoadResult:
    path = Path(cwd) / filename
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ConfigLoadResult(ok=False, error="not_found")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return ConfigLoadResult(ok=False, error="parse_error", message=str(e))

    issues = validate_project_config(data)
    if issues:
        details = "\n".join(f"  - {i}" for i in issues)
        return ConfigLoadResult(
            ok=False, error="validation_error", message=f"Invalid {filename}:\n{details}"
        )

    return ConfigLoadResult(ok=True, config=ProjectConfig.from_dict(data))


def require_project_config(
    cwd: str | Path,
    filename: str = PROJECT_CONFIG_FILE,
    init_command: str = "regkit init",
) -> ProjectConfig:
    """Load the project config or raise a ConfigError with a fix hint."""
    result = load_project_config(cwd, filename)
    if not result.ok:
        if result.error == "not_found":
            raise ConfigError(f"No {filename} found. Run `{init_command}` first.")
        raise ConfigError(f"{filename} is malformed: {result.message}\nFix the config and try again.")
    return result.config


def write_json_config(cwd: str | Path, data: dict, filename: str = PROJECT_CONFIG_FILE) -> Path:
    """Atomically write ``data`` as pretty JSON to ``cwd/filename``."""
    config_path = Path(cwd) / filename
    tmp_path = Path(cwd) / f".tmp-{secrets.token_hex(6)}"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(json.dumps(data, indent=2) + "\n")
        os.replace(tmp_path, config_path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise ConfigError(f"Failed to write config to {config_path}: {e}") from e
    return config_path


def update_manifest(
    cwd: str | Path,
    add: list[str] | None = None,
    remove: list[str] | None = None,
    metadata: dict | None = None,
    filename: str = PROJECT_CONFIG_FILE,
) -> None:
    """Record added or removed items in the project config's ``installed`` map.

    A missing or invalid config is reported as a warning and left alone.
    """
    result = load_project_config(cwd, filename)
    if not result.ok:
        logger.warning("Could not update manifest: config not found or invalid.")
        return

    config = result.config
    if add:
        now = datetime.now(timezone.utc).isoformat()
        for name in add:
            config.installed[name] = {"installedAt": now, **(metadata or {})}
    for name in remove or []:
        config.installed.pop(name, None)

    write_json_config(cwd, config.to_dict(), filename)


def alias_to_fs_path(alias: str, source_dir: str = ".") -> str:
    """Map an install-dir alias (``@/components/ui``) onto the project tree."""
    stripped = alias[2:] if alias.startswith("@/") else alias
    if source_dir and source_dir != ".":
        return f"{source_dir}/{stripped}"
    return stripped

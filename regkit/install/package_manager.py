"""Package manager invocation and npm name handling.

Installs run the detected tool as a child process with a fixed timeout:
``npm install <pkgs>`` or ``<pnpm|yarn|bun> add <pkgs>``.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path

from regkit.errors import DependencyInstallError, RegkitError
from regkit.install.detect import read_package_json

logger = logging.getLogger(__name__)

INSTALL_TIMEOUT_SECONDS = 120

_VALID_PKG_NAME = re.compile(r"^(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*$", re.IGNORECASE)
_VERSION_SPEC = re.compile(r"^[a-zA-Z0-9._\-~/^*@:+]+$")


def dep_name(dep: str) -> str:
    """Strip a version specifier: ``foo@^1.0`` -> ``foo``, ``@s/p@2`` -> ``@s/p``."""
    if "@" not in dep:
        return dep
    search_from = dep.index("/") + 1 if dep.startswith("@") and "/" in dep else 0
    version_at = dep.find("@", search_from)
    return dep[:version_at] if version_at > 0 else dep


def normalize_version_spec(raw=None, package_name: str = "package") -> str:
    """Validate a version spec (semver, range, or dist tag). ``None`` means ``latest``."""
    spec = str("latest" if raw is None else raw).strip()
    if not spec:
        raise RegkitError(f"{package_name} version cannot be empty.")
    if spec.startswith("-") or not _VERSION_SPEC.match(spec):
        raise RegkitError(
            f'Invalid {package_name} version "{spec}". '
            "Use a semver, range, or dist tag (for example: latest, 0.1.1, ^0.1.0)."
        )
    return spec


def validate_package_names(deps: list[str]) -> None:
    for dep in deps:
        if not _VALID_PKG_NAME.match(dep_name(dep)):
            raise RegkitError(f'Invalid package name: "{dep}"')


def install_command(pm: str, deps: list[str]) -> list[str]:
    verb = "install" if pm == "npm" else "add"
    return [pm, verb, *deps]


def install_deps(
    pm: str,
    deps: list[str],
    cwd: str | Path,
    timeout: int = INSTALL_TIMEOUT_SECONDS,
) -> None:
    """Run the package manager and wait for it to finish.

    Raises:
        DependencyInstallError: Non-zero exit, timeout, or missing executable.
    """
    if not deps:
        return
    validate_package_names(deps)

    command = install_command(pm, deps)
    logger.debug("Running %s in %s", " ".join(command), cwd)
    try:
        proc = subprocess.run(
            command,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise DependencyInstallError(
            f"{pm} install timed out after {timeout}s.", package_manager=pm
        ) from e
    except FileNotFoundError as e:
        raise DependencyInstallError(
            f"{pm} not found. Install it or choose another package manager.",
            package_manager=pm,
        ) from e

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        message = f"{pm} install failed:\n{stderr}" if stderr else (
            f"{pm} install failed with exit code {proc.returncode}"
        )
        raise DependencyInstallError(message, package_manager=pm, stderr=stderr)


def get_installed_deps(cwd: str | Path) -> set[str]:
    """Names declared in package.json dependencies, devDependencies, peerDependencies."""
    pkg = read_package_json(cwd)
    if pkg is None:
        return set()
    installed: set[str] = set()
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        installed.update((pkg.get(key) or {}).keys())
    return installed


def missing_deps(deps: list[str], cwd: str | Path) -> list[str]:
    """The subset of ``deps`` not already declared by the project."""
    installed = get_installed_deps(cwd)
    return [dep for dep in deps if dep_name(dep) not in installed]

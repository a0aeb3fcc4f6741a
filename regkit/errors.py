"""Exceptions raised by regkit.

Every error derives from RegkitError so the CLI can translate failures into
a single actionable line. Library code raises; only the CLI decides to exit.
"""

from __future__ import annotations


class RegkitError(Exception):
    """Base exception for all regkit errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# ── Not found ────────────────────────────────────────────────────────


class NotFoundError(RegkitError):
    """A required file or directory does not exist."""


class BundleNotFoundError(NotFoundError):
    """The registry bundle is missing, which points at a broken build or install."""

    def __init__(self, bundle_path: str):
        super().__init__(
            f"Registry bundle not found at {bundle_path}. "
            "This usually means the package was not built correctly — try reinstalling.",
            details={"path": bundle_path},
        )
        self.bundle_path = bundle_path


# ── Validation ───────────────────────────────────────────────────────


class SchemaValidationError(RegkitError):
    """Structured data does not match its schema. Carries every issue found."""

    def __init__(self, label: str, issues: list[str]):
        lines = [f"Invalid {label}:"] + [f"  - {issue}" for issue in issues]
        super().__init__("\n".join(lines), details={"issues": issues})
        self.label = label
        self.issues = issues


class BundleParseError(RegkitError):
    """A JSON document could not be parsed."""


class DuplicateItemError(RegkitError):
    def __init__(self, name: str, item_label: str = "item"):
        super().__init__(f'Duplicate {item_label} name: "{name}"', details={"name": name})
        self.name = name


class ConfigError(RegkitError):
    """Configuration is missing, malformed, or holds an invalid value."""


class PathTraversalError(RegkitError):
    def __init__(self, target: str, base: str | list[str]):
        if isinstance(base, list):
            allowed = ", ".join(f'"{b}"' for b in base)
            message = f'Path traversal detected: "{target}" escapes all allowed directories: {allowed}'
        else:
            message = f'Path traversal detected: "{target}" escapes "{base}"'
        super().__init__(message)
        self.target = target
        self.base = base


# ── Integrity ────────────────────────────────────────────────────────


class IntegrityError(RegkitError):
    """Bundle content does not match its recorded integrity digest."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            "Registry bundle integrity mismatch. The bundle may have been tampered with. "
            "Reinstall the package or rebuild the registry bundle.",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


# ── Dependency graph ─────────────────────────────────────────────────


class CircularDependencyError(RegkitError):
    def __init__(self, cycle: list[str]):
        super().__init__(
            f"Circular registryDependency detected: {' -> '.join(cycle)}",
            details={"cycle": cycle},
        )
        self.cycle = cycle


class MissingReferenceError(RegkitError):
    """A source item references a local item that does not exist."""

    def __init__(self, item_name: str, reference: str):
        super().__init__(
            f'"{item_name}" has registryDependency "{reference}" which doesn\'t exist',
            details={"item": item_name, "reference": reference},
        )
        self.item_name = item_name
        self.reference = reference


class MissingDependencyError(RegkitError):
    """An item requested during resolution is not in the registry."""

    def __init__(self, name: str, required_by: str | None = None, item_label: str = "item"):
        requester = f' (required by "{required_by}")' if required_by else ""
        super().__init__(
            f'{item_label} "{name}" not found in registry{requester}.',
            details={"name": name, "required_by": required_by},
        )
        self.name = name
        self.required_by = required_by


# ── Installation ─────────────────────────────────────────────────────


class FileWriteError(RegkitError):
    """Writing files into the target project failed (changes were rolled back)."""


class DependencyInstallError(RegkitError):
    """The package manager exited non-zero or timed out."""

    def __init__(self, message: str, package_manager: str = "", stderr: str = ""):
        super().__init__(message, details={"package_manager": package_manager})
        self.package_manager = package_manager
        self.stderr = stderr


# ── Artifacts ────────────────────────────────────────────────────────


class StaleArtifactError(RegkitError):
    """Published registry output no longer matches the source registry."""

    def __init__(self, reason: str, fix_command: str):
        super().__init__(f"{reason}\nRun: {fix_command}", details={"fix_command": fix_command})
        self.reason = reason
        self.fix_command = fix_command


class BuildError(RegkitError):
    """The external registry build step failed or is unavailable."""

"""Cached, integrity-checked registry bundle loader.

A BundleCache owns one bundle file. The first ``get_or_load`` call reads,
validates, and verifies the file; every later call returns the same
Bundle object for the lifetime of the cache. Rebuilt bundles are only seen
by a new cache (in practice, a new process). Separate caches load
separate registries independently.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from regkit.errors import BundleNotFoundError, BundleParseError, IntegrityError, SchemaValidationError
from regkit.registry.integrity import compute_integrity, raw_bundle_content
from regkit.registry.models import Bundle, RegistryItem
from regkit.schema.validator import validate_bundle

logger = logging.getLogger(__name__)


class BundleCache:
    """Loads a registry bundle once and serves it from memory afterwards."""

    def __init__(
        self,
        bundle_path: str | Path,
        validate: Callable[[dict], list[str]] = validate_bundle,
        integrity_content: Callable[[dict], object] = raw_bundle_content,
    ):
        self.bundle_path = Path(bundle_path)
        self._validate = validate
        self._integrity_content = integrity_content
        self._bundle: Bundle | None = None

    @property
    def is_loaded(self) -> bool:
        return self._bundle is not None

    def get_or_load(self) -> Bundle:
        """Return the cached bundle, loading and verifying it on first use.

        Raises:
            BundleNotFoundError: The bundle file does not exist.
            BundleParseError: The file is not valid JSON.
            SchemaValidationError: The document does not have the bundle shape.
            IntegrityError: The recorded integrity does not match the content.
        """
        if self._bundle is not None:
            return self._bundle

        if not self.bundle_path.is_file():
            raise BundleNotFoundError(str(self.bundle_path))

        try:
            with open(self.bundle_path, encoding="utf-8") as f:
                raw = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise BundleParseError(
                f"Failed to parse registry bundle at {self.bundle_path}. ({e})"
            ) from e

        issues = self._validate(raw)
        if issues:
            raise SchemaValidationError(f"registry bundle at {self.bundle_path}", issues)

        integrity = raw.get("integrity", "")
        if integrity:
            expected = compute_integrity(self._integrity_content(raw))
            if integrity != expected:
                raise IntegrityError(expected=expected, actual=integrity)
        else:
            logger.debug("Bundle %s carries no integrity field; skipping check", self.bundle_path)

        self._bundle = Bundle.from_dict(raw)
        logger.debug(
            "Loaded %d items from %s", len(self._bundle.items), self.bundle_path
        )
        return self._bundle

    def get_item(self, name: str) -> RegistryItem | None:
        return self.get_or_load().get_item(name)

    def item_names(self) -> list[str]:
        return self.get_or_load().item_names()

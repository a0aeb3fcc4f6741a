"""Integrity digest for registry bundles.

The digest covers ``{"items": [...], **extra}`` serialized compactly in
insertion order, with items first. The ``integrity`` field itself is never
part of the hashed content, so the builder and the loader compute the same
value for the same bundle.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

INTEGRITY_PREFIX = "sha256-"


def canonical_json(data: Any) -> str:
    """Compact JSON with no whitespace; key order is insertion order."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def integrity_content(items: list, extra: dict | None = None) -> dict:
    """Build the hashed preimage: items first, then extra top-level keys."""
    content: dict = {"items": items}
    for key, value in (extra or {}).items():
        if key in ("items", "integrity"):
            continue
        content[key] = value
    return content


def compute_integrity(content: Any) -> str:
    """Return ``sha256-<hex>`` over the canonical serialization of content."""
    digest = hashlib.sha256(canonical_json(content).encode("utf-8")).hexdigest()
    return INTEGRITY_PREFIX + digest


def raw_bundle_content(raw: dict) -> dict:
    """Recover the hashed preimage from a parsed bundle document."""
    extra = {k: v for k, v in raw.items() if k not in ("items", "integrity")}
    return integrity_content(raw.get("items", []), extra)

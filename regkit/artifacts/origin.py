"""Origin rewriting for published registry JSON."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from regkit.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_ORIGIN = "https://registry.example.com"
ORIGIN_ENV_VAR = "REGISTRY_ORIGIN"


@dataclass
class RewriteStats:
    changed: int = 0
    total: int = 0


def normalize_origin(raw: str | None = None, default_origin: str = DEFAULT_REGISTRY_ORIGIN) -> str:
    """Validate an origin and strip trailing slashes.

    ``raw`` defaults to the REGISTRY_ORIGIN environment variable, then to
    ``default_origin``.
    """
    if raw is None:
        raw = os.environ.get(ORIGIN_ENV_VAR)
    value = (raw if raw is not None else default_origin).strip()
    if not (value.startswith("http://") or value.startswith("https://")):
        raise ConfigError(
            f'{ORIGIN_ENV_VAR} must start with http:// or https:// (received "{value}")'
        )
    return value.rstrip("/")


def rewrite_origin_value(value: Any, from_origin: str, to_origin: str) -> Any:
    """Replace ``from_origin`` with ``to_origin`` in every string of a JSON value."""
    if isinstance(value, str):
        return value.replace(from_origin, to_origin)
    if isinstance(value, list):
        return [rewrite_origin_value(v, from_origin, to_origin) for v in value]
    if isinstance(value, dict):
        return {k: rewrite_origin_value(v, from_origin, to_origin) for k, v in value.items()}
    return value


def collect_json_files(root_dir: str | Path) -> list[Path]:
    return sorted(p for p in Path(root_dir).rglob("*.json") if p.is_file())


def rewrite_origins_in_dir(directory: str | Path, from_origin: str, to_origin: str) -> RewriteStats:
    """Rewrite origins in every ``*.json`` file below ``directory``.

    Files are re-serialized with 2-space indentation and only written when
    their text changes.
    """
    stats = RewriteStats()
    for json_file in collect_json_files(directory):
        stats.total += 1
        raw = json_file.read_text(encoding="utf-8")
        rewritten = rewrite_origin_value(json.loads(raw), from_origin, to_origin)
        text = json.dumps(rewritten, indent=2, ensure_ascii=False) + "\n"
        if text != raw:
            json_file.write_text(text, encoding="utf-8")
            stats.changed += 1

    logger.debug(
        "Rewrote %s -> %s in %d/%d files under %s",
        from_origin, to_origin, stats.changed, stats.total, directory,
    )
    return stats

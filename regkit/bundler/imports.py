"""npm import detection for registry source files.

A line-oriented scan for static ``from "<module>"`` clauses. It is not a
parser: it only needs to find package names so that undeclared runtime
dependencies end up in the bundle.
"""

from __future__ import annotations

import re

DEFAULT_PEER_DEPS = frozenset({"react", "react-dom"})
DEFAULT_ALIAS_PREFIXES = ("@/", "./", "../", "node:")

_TYPE_ONLY_RE = re.compile(r"^\s*(import|export)\s+type\s")
_FROM_RE = re.compile(r"""from\s+["']([^"']+)["']""")


def package_root(module: str) -> str:
    """Collapse an import path to its package name.

    ``@scope/pkg/sub`` -> ``@scope/pkg``; ``pkg/sub`` -> ``pkg``.
    """
    parts = module.split("/")
    if module.startswith("@") and len(parts) > 1:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def detect_npm_imports(
    content: str,
    peer_deps: frozenset[str] | set[str] = DEFAULT_PEER_DEPS,
    alias_prefixes: tuple[str, ...] | list[str] = DEFAULT_ALIAS_PREFIXES,
) -> list[str]:
    """Return the npm packages imported by ``content``, in first-seen order.

    Type-only imports and exports are ignored, as are module paths starting
    with one of ``alias_prefixes`` and packages listed in ``peer_deps``.
    """
    found: dict[str, None] = {}

    for line in content.split("\n"):
        if _TYPE_ONLY_RE.match(line):
            continue

        match = _FROM_RE.search(line)
        if not match:
            continue

        module = match.group(1)
        if any(module.startswith(prefix) for prefix in alias_prefixes):
            continue

        name = package_root(module)
        if name not in peer_deps:
            found[name] = None

    return list(found)

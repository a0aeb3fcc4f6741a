"""Parsing of ``registryDependencies`` entries.

An entry is one of:
- a URL (``http://`` or ``https://``) pointing at another registry's item,
- a namespaced reference ``@<namespace>/<name>`` served by another registry,
- a bare local name that must exist in the same registry.

Only local references are checked at build time and walked by the resolver;
the other two kinds pass through untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

_NAMESPACE_RE = re.compile(r"^@(?P<namespace>[A-Za-z0-9._-]+)/(?P<name>[A-Za-z0-9._-]+)$")


class RefKind(Enum):
    LOCAL = "local"
    URL = "url"
    NAMESPACE = "namespace"


@dataclass(frozen=True)
class DependencyRef:
    kind: RefKind
    name: str
    namespace: str = ""

    @property
    def is_local(self) -> bool:
        return self.kind == RefKind.LOCAL


def parse_dependency_ref(ref: str) -> DependencyRef:
    """Classify a registry dependency entry."""
    if ref.startswith("http://") or ref.startswith("https://"):
        return DependencyRef(kind=RefKind.URL, name=ref)

    match = _NAMESPACE_RE.match(ref)
    if match:
        return DependencyRef(
            kind=RefKind.NAMESPACE,
            name=match.group("name"),
            namespace=match.group("namespace"),
        )

    return DependencyRef(kind=RefKind.LOCAL, name=ref)


def local_dependencies(refs: list[str]) -> list[str]:
    """Names of the local references in ``refs``, in declaration order."""
    names = []
    for ref in refs:
        parsed = parse_dependency_ref(ref)
        if parsed.is_local:
            names.append(parsed.name)
    return names

"""Dependency resolver for registry items.

Walks ``registryDependencies`` depth-first and returns the transitive
closure of the requested items in dependency-first order: every item comes
after all of its local dependencies, duplicates removed.

The walk uses an explicit work stack instead of recursion, so long chains
of dependencies never run into the interpreter's recursion limit.
Cross-registry references (URLs and ``@namespace/name``) are not walked;
another registry host resolves them.
"""

from __future__ import annotations

from typing import Callable, Iterator

from regkit.errors import (
    CircularDependencyError,
    MissingDependencyError,
    NotFoundError,
    RegkitError,
)
from regkit.registry.models import RegistryItem
from regkit.registry.refs import local_dependencies

ItemLookup = Callable[[str], "RegistryItem | None"]


def resolve_registry_deps(
    names: list[str],
    get_item: ItemLookup,
    item_label: str = "item",
) -> list[str]:
    """Resolve the requested names to their ordered transitive closure.

    Raises:
        CircularDependencyError: A cycle was found; ``cycle`` holds the path,
            starting and ending with the repeated name.
        MissingDependencyError: A name is not in the registry; ``required_by``
            names the item that asked for it, if any.
    """
    resolved: dict[str, None] = {}  # insertion-ordered set

    def lookup(name: str, required_by: str | None) -> RegistryItem:
        item = get_item(name)
        if item is None:
            raise MissingDependencyError(name, required_by, item_label=item_label)
        return item

    for root in names:
        if root in resolved:
            continue

        path: list[str] = [root]
        on_path: set[str] = {root}
        pending: list[Iterator[str]] = [
            iter(local_dependencies(lookup(root, None).registry_dependencies))
        ]

        while pending:
            dep = next(pending[-1], None)

            if dep is None:
                # All dependencies of path[-1] are resolved
                pending.pop()
                done = path.pop()
                on_path.discard(done)
                resolved[done] = None
                continue

            if dep in resolved:
                continue

            if dep in on_path:
                start = path.index(dep)
                raise CircularDependencyError(path[start:] + [dep])

            item = lookup(dep, path[-1])
            path.append(dep)
            on_path.add(dep)
            pending.append(iter(local_dependencies(item.registry_dependencies)))

    return list(resolved)


def collect_npm_deps(names: list[str], get_item: ItemLookup) -> list[str]:
    """Flattened, deduplicated npm dependencies of the given items.

    Unknown names contribute nothing.
    """
    deps: dict[str, None] = {}
    for name in names:
        item = get_item(name)
        if item is None:
            continue
        for dep in item.dependencies:
            deps[dep] = None
    return list(deps)


def get_item_or_raise(
    name: str,
    get_item: ItemLookup,
    item_label: str = "item",
    list_command: str = "regkit list",
) -> RegistryItem:
    item = get_item(name)
    if item is None:
        raise NotFoundError(
            f'{item_label} "{name}" not found in registry. '
            f"Run `{list_command}` to see available {item_label.lower()}s.",
            details={"name": name},
        )
    return item


def validate_items(
    names: list[str],
    get_item: ItemLookup,
    item_label: str = "item",
    list_command: str = "regkit list",
) -> None:
    """Check that every name exists, reporting all missing names at once."""
    missing = [name for name in names if get_item(name) is None]
    if missing:
        quoted = ", ".join(f'"{n}"' for n in missing)
        raise RegkitError(
            f"{item_label}(s) not found in registry: {quoted}. "
            f"Run `{list_command}` to see available {item_label.lower()}s.",
            details={"missing": missing},
        )

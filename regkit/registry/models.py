"""Registry data models — items, files, meta, and bundles.

Models round-trip through the camelCase JSON shape used by registry files
(``registryDependencies``, ``targetPath``, ``optionalIntegrations``).
Key order in ``to_dict`` is fixed because bundle integrity is computed
over the serialized form.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Meta keys with a typed meaning; anything else passes through untouched.
RECOGNIZED_META_KEYS = ("client", "hidden", "optionalIntegrations")


@dataclass
class RegistryFile:
    """A single source file belonging to a registry item."""

    path: str
    content: str | None = None
    target_path: str | None = None  # Overrides prefix-based placement on install
    type: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"path": self.path}
        if self.content is not None:
            data["content"] = self.content
        if self.target_path is not None:
            data["targetPath"] = self.target_path
        if self.type is not None:
            data["type"] = self.type
        return data

    @classmethod
    def from_dict(cls, data: dict) -> RegistryFile:
        return cls(
            path=data["path"],
            content=data.get("content"),
            target_path=data.get("targetPath"),
            type=data.get("type"),
        )


@dataclass
class ItemMeta:
    """Typed view of an item's ``meta`` bag.

    Defaults: ``client`` False (or the builder's configured default),
    ``hidden`` False, ``optionalIntegrations`` empty.
    """

    client: bool = False
    hidden: bool = False
    optional_integrations: list[str] = field(default_factory=list)
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: dict = {
            "client": self.client,
            "hidden": self.hidden,
            "optionalIntegrations": list(self.optional_integrations),
        }
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: dict | None, client_default: bool = False) -> ItemMeta:
        data = data or {}
        return cls(
            client=data.get("client", client_default),
            hidden=data.get("hidden", False),
            optional_integrations=list(data.get("optionalIntegrations", [])),
            extra={k: v for k, v in data.items() if k not in RECOGNIZED_META_KEYS},
        )


@dataclass
class RegistryItem:
    """A single distributable unit (component, hook, ...)."""

    name: str
    type: str
    title: str = ""
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    registry_dependencies: list[str] = field(default_factory=list)
    files: list[RegistryFile] = field(default_factory=list)
    meta: ItemMeta | None = None

    def to_dict(self) -> dict:
        data: dict = {
            "name": self.name,
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "registryDependencies": list(self.registry_dependencies),
            "files": [f.to_dict() for f in self.files],
        }
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> RegistryItem:
        meta = data.get("meta")
        return cls(
            name=data["name"],
            type=data["type"],
            title=data.get("title", ""),
            description=data.get("description", ""),
            dependencies=list(dict.fromkeys(data.get("dependencies", []))),
            registry_dependencies=list(data.get("registryDependencies", [])),
            files=[RegistryFile.from_dict(f) for f in data.get("files", [])],
            meta=ItemMeta.from_dict(meta) if meta is not None else None,
        )


@dataclass
class Bundle:
    """The built registry artifact: items, optional extra payloads, integrity."""

    items: list[RegistryItem] = field(default_factory=list)
    integrity: str = ""
    extra: dict = field(default_factory=dict)

    def __post_init__(self):
        self._by_name = {item.name: item for item in self.items}

    def get_item(self, name: str) -> RegistryItem | None:
        return self._by_name.get(name)

    def item_names(self) -> list[str]:
        return [item.name for item in self.items]

    @property
    def file_count(self) -> int:
        return sum(len(item.files) for item in self.items)

    def to_dict(self) -> dict:
        data: dict = {"items": [item.to_dict() for item in self.items]}
        data.update(self.extra)
        if self.integrity:
            data["integrity"] = self.integrity
        return data

    @classmethod
    def from_dict(cls, data: dict) -> Bundle:
        return cls(
            items=[RegistryItem.from_dict(i) for i in data.get("items", [])],
            integrity=data.get("integrity", ""),
            extra={k: v for k, v in data.items() if k not in ("items", "integrity")},
        )

"""Provider catalogs: which diagram types a cloud supports and how they render.

Engines own file layout; everything provider specific about a single resource
(native type name, attribute names, references to other resources, hourly
rate) comes from a catalog.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from archforge.architecture.models import Architecture, Resource, ResourceType

if TYPE_CHECKING:
    from archforge.architecture.mapper import MapperRegistry, MappingContext
    from archforge.diagram.graph import Node
    from archforge.rules.types import Rule


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


@dataclass(frozen=True)
class Reference:
    """Pointer to an attribute of another resource in the same Architecture."""

    resource_id: str
    attribute: str = "id"


@dataclass(frozen=True)
class ResourceSpec:
    node_type: str
    category: str
    terraform_type: str
    pulumi_type: str
    hourly_rate: float = 0.0
    aliases: Tuple[str, ...] = ()
    # property name -> resource type it must point at
    references: Mapping[str, str] = field(default_factory=dict)
    # container type -> attribute receiving a reference to the container
    parent_attributes: Mapping[str, str] = field(default_factory=dict)
    renames: Mapping[str, str] = field(default_factory=dict)
    name_attribute: Optional[str] = None
    taggable: bool = True
    # property whose value selects a rate from ``size_rates``
    size_property: Optional[str] = None
    size_rates: Mapping[str, float] = field(default_factory=dict)

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType(name=self.node_type, category=self.category, ir_type=self.terraform_type)

    def rate_for(self, properties: Mapping[str, Any]) -> float:
        if self.size_property:
            size = properties.get(self.size_property)
            if isinstance(size, str) and size in self.size_rates:
                return self.size_rates[size]
        return self.hourly_rate


@dataclass(frozen=True)
class RenderedResource:
    resource_id: str
    terraform_type: str
    pulumi_type: str
    attributes: Dict[str, Any]


@dataclass
class ProviderCatalog:
    name: str
    terraform_source: str
    terraform_version: str
    pulumi_package: str
    pulumi_module: str
    specs: Dict[str, ResourceSpec] = field(default_factory=dict)
    rule_factory: Optional[Callable[[], List["Rule"]]] = None

    def add(self, spec: ResourceSpec) -> None:
        self.specs[spec.node_type] = spec

    def resolve(self, node_type: str) -> Optional[ResourceSpec]:
        spec = self.specs.get(node_type)
        if spec is not None:
            return spec
        for candidate in self.specs.values():
            if node_type in candidate.aliases:
                return candidate
        return None

    def node_types(self) -> List[str]:
        """Every diagram type this provider accepts, aliases included."""
        types = set(self.specs)
        for spec in self.specs.values():
            types.update(spec.aliases)
        return sorted(types)

    def type_aliases(self) -> Dict[str, str]:
        return {alias: spec.node_type for spec in self.specs.values() for alias in spec.aliases}

    def default_rules(self) -> List["Rule"]:
        return self.rule_factory() if self.rule_factory else []

    def register_mappers(self, registry: "MapperRegistry") -> None:
        """Register one node mapper per supported type and alias."""
        for spec in self.specs.values():
            mapper = _node_mapper(spec)
            for node_type in (spec.node_type, *spec.aliases):
                registry.register(self.name, node_type, mapper)

    def hourly_rate(self, resource: Resource) -> float:
        spec = self.resolve(resource.type.name)
        return spec.rate_for(resource.properties) if spec else 0.0

    def render(self, resource: Resource, arch: Architecture) -> RenderedResource:
        spec = self.resolve(resource.type.name)
        if spec is None:
            raise KeyError(f"{self.name} has no rendering for resource type {resource.type.name!r}")
        known = arch.index()
        attributes: Dict[str, Any] = {}

        parent_id = arch.parent(resource.id)
        if parent_id and parent_id in known:
            attribute = spec.parent_attributes.get(known[parent_id].type.name)
            if attribute:
                attributes[attribute] = Reference(parent_id)

        for key, value in resource.properties.items():
            if key == "name":
                continue
            attribute = spec.renames.get(key) or snake_case(key)
            if key in spec.references:
                value = _reference_value(value, known)
            elif _is_block_list(value):
                value = [_snake_keys(item) for item in value]
            attributes[attribute] = value

        if spec.name_attribute and spec.name_attribute not in attributes:
            attributes[spec.name_attribute] = resource.name
        if spec.taggable:
            tags = dict(attributes.get("tags") or {})
            tags.setdefault("Name", resource.name)
            attributes["tags"] = tags
        return RenderedResource(
            resource_id=resource.id,
            terraform_type=spec.terraform_type,
            pulumi_type=spec.pulumi_type,
            attributes=attributes,
        )


def _node_mapper(spec: ResourceSpec) -> Callable[["Node", "MappingContext"], Resource]:
    resource_type = spec.resource_type

    def map_node(node: "Node", context: "MappingContext") -> Resource:
        return Resource(
            id=node.id,
            name=node.name,
            type=resource_type,
            provider=context.provider,
            region=context.region,
            properties=dict(node.properties),
        )

    return map_node


def _is_block_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value)


def _snake_keys(block: Mapping[str, Any]) -> Dict[str, Any]:
    # nested blocks (ingress rules, routes) use the same attribute casing as the resource
    return {
        snake_case(key): [_snake_keys(item) for item in value] if _is_block_list(value) else value
        for key, value in block.items()
    }


def _reference_value(value: Any, known: Mapping[str, Resource]) -> Any:
    if isinstance(value, str) and value in known:
        return Reference(value)
    if isinstance(value, list):
        return [Reference(item) if isinstance(item, str) and item in known else item for item in value]
    return value


class ProviderRegistry:
    def __init__(self, catalogs: Iterable[ProviderCatalog] = ()) -> None:
        self._catalogs: Dict[str, ProviderCatalog] = {}
        for catalog in catalogs:
            self.register(catalog)

    def register(self, catalog: ProviderCatalog) -> None:
        self._catalogs[catalog.name] = catalog

    def get(self, name: str) -> Optional[ProviderCatalog]:
        return self._catalogs.get(name)

    def names(self) -> List[str]:
        return sorted(self._catalogs)

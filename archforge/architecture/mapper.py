"""Map diagram graphs onto provider architectures."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from archforge.architecture.models import Architecture, Resource
from archforge.diagram.graph import DiagramGraph, EdgeKind, Node
from archforge.errors import MappingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingContext:
    provider: str
    region: str


NodeMapper = Callable[[Node, MappingContext], Resource]


class MapperRegistry:
    """Node mappers keyed by ``(provider, node type)``."""

    def __init__(self) -> None:
        self._mappers: Dict[Tuple[str, str], NodeMapper] = {}
        self._lock = threading.Lock()

    def register(self, provider: str, node_type: str, mapper: NodeMapper) -> None:
        with self._lock:
            self._mappers[(provider, node_type)] = mapper

    def get(self, provider: str, node_type: str) -> Optional[NodeMapper]:
        return self._mappers.get((provider, node_type))

    def node_types(self, provider: str) -> List[str]:
        return sorted(node_type for prov, node_type in self._mappers if prov == provider)


def region_from_diagram(graph: DiagramGraph) -> Optional[str]:
    node = graph.region_node()
    if node is None:
        return None
    value = node.properties.get("name") or node.properties.get("region")
    return str(value).strip() if value else None


def map_from_diagram(
    graph: DiagramGraph,
    provider: str,
    registry: MapperRegistry,
    default_region: str,
    region: Optional[str] = None,
) -> Architecture:
    """Compile ``graph`` into an Architecture for ``provider``.

    Region nodes configure the architecture region and visual-only nodes are
    decoration; neither becomes a resource, and edges touching them are
    dropped. Association edges are dropped as well. An explicit ``region``
    wins over the region node, which wins over ``default_region``.
    """
    region = region or region_from_diagram(graph) or default_region
    context = MappingContext(provider=provider, region=region)
    arch = Architecture(
        provider=provider,
        region=region,
        variables=list(graph.variables),
        outputs=list(graph.outputs),
    )

    for node in graph.nodes.values():
        if node.is_region or node.visual_only:
            continue
        mapper = registry.get(provider, node.type)
        if mapper is None:
            raise MappingError(
                f"unsupported resource type {node.type!r} for provider {provider!r} (node {node.id!r})",
                node_id=node.id,
                node_type=node.type,
            )
        arch.add_resource(mapper(node, context))

    known = set(arch.resource_ids())
    for edge in graph.edges:
        if edge.kind == EdgeKind.ASSOCIATION:
            continue
        if edge.source not in known or edge.target not in known:
            continue
        if edge.kind == EdgeKind.CONTAINMENT:
            arch.add_containment(edge.target, edge.source)
        else:
            arch.add_dependency(edge.source, edge.target)

    arch.check_integrity()
    logger.info(
        "Mapped diagram to architecture",
        extra={"provider": provider, "region": region, "resource_count": len(arch.resources)},
    )
    return arch

"""In-memory diagram graph built from a parsed canvas document."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional


class EdgeKind(str, Enum):
    CONTAINMENT = "containment"
    DEPENDENCY = "dependency"
    ASSOCIATION = "association"


REGION_NODE_TYPE = "region"


@dataclass
class Node:
    id: str
    type: str
    properties: Dict[str, Any] = field(default_factory=dict)
    label: Optional[str] = None
    visual_only: bool = False

    @property
    def name(self) -> str:
        value = self.properties.get("name")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return self.label or self.id

    @property
    def is_region(self) -> bool:
        return self.type == REGION_NODE_TYPE


@dataclass(frozen=True)
class Edge:
    """Directed edge.

    For containment the source is the child and the target its container; for
    dependency the source is the dependent and the target what it depends on.
    """

    source: str
    target: str
    kind: EdgeKind
    id: Optional[str] = None

    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.kind.value)


@dataclass
class DiagramGraph:
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: List[Edge] = field(default_factory=list)
    duplicate_node_ids: List[str] = field(default_factory=list)
    variables: List[Dict[str, Any]] = field(default_factory=list)
    outputs: List[Dict[str, Any]] = field(default_factory=list)

    def add_node(self, node: Node) -> None:
        # first occurrence wins; later ones are kept for validation reports
        if node.id in self.nodes:
            self.duplicate_node_ids.append(node.id)
            return
        self.nodes[node.id] = node

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)

    def get(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def edges_of_kind(self, kind: EdgeKind) -> Iterator[Edge]:
        return (edge for edge in self.edges if edge.kind == kind)

    def containers_of(self, node_id: str) -> List[str]:
        return [
            edge.target
            for edge in self.edges_of_kind(EdgeKind.CONTAINMENT)
            if edge.source == node_id
        ]

    def children_of(self, node_id: str) -> List[str]:
        return [
            edge.source
            for edge in self.edges_of_kind(EdgeKind.CONTAINMENT)
            if edge.target == node_id
        ]

    def region_node(self) -> Optional[Node]:
        for node in self.nodes.values():
            if node.is_region:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot used when persisting the source diagram next to a project."""
        return {
            "nodes": [
                {
                    "id": node.id,
                    "type": node.type,
                    "label": node.label,
                    "properties": dict(node.properties),
                    "isVisualOnly": node.visual_only,
                }
                for node in self.nodes.values()
            ],
            "edges": [
                {"source": edge.source, "target": edge.target, "kind": edge.kind.value}
                for edge in self.edges
            ],
            "variables": list(self.variables),
            "outputs": list(self.outputs),
        }

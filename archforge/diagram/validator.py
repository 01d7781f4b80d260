"""Structural validation of diagram graphs.

Every check runs over the whole graph and findings are accumulated, so one
call reports all defects. The graph is never modified.
"""
from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from archforge.architecture.toposort import kahn_order
from archforge.diagram.graph import DiagramGraph, Edge, EdgeKind
from archforge.diagram.schema import SchemaRegistry


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR
    node_id: Optional[str] = None
    node_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.node_id:
            payload["node_id"] = self.node_id
        if self.node_ids:
            payload["node_ids"] = list(self.node_ids)
        return payload


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def codes(self) -> List[str]:
        return [issue.code for issue in self.errors]

    def summary(self) -> str:
        return "; ".join(issue.message for issue in self.errors)


@dataclass(frozen=True)
class ValidationOptions:
    """Which node types are recognised and which property schemas apply.

    ``valid_types=None`` accepts any non-empty type. ``type_aliases`` maps
    alternate spellings (``instance``) onto the schema's type (``ec2``).
    """

    valid_types: Optional[frozenset[str]] = None
    provider: Optional[str] = None
    schemas: Optional[SchemaRegistry] = None
    type_aliases: Mapping[str, str] = field(default_factory=dict)

    def canonical_type(self, node_type: str) -> str:
        return self.type_aliases.get(node_type, node_type)


def _error(issues: List[ValidationIssue], code: str, message: str, **kwargs) -> None:
    issues.append(ValidationIssue(code=code, message=message, **kwargs))


def _warning(issues: List[ValidationIssue], code: str, message: str, **kwargs) -> None:
    issues.append(ValidationIssue(code=code, message=message, severity=IssueSeverity.WARNING, **kwargs))


def _check_nodes(graph: DiagramGraph, options: Optional[ValidationOptions], result: ValidationResult) -> None:
    for node_id in sorted(set(graph.duplicate_node_ids)):
        _error(result.errors, "DUPLICATE_NODE_ID", f"duplicate node id {node_id!r}", node_id=node_id)

    for node in graph.nodes.values():
        if not node.type:
            _error(result.errors, "EMPTY_NODE_TYPE", f"node {node.id!r} has an empty type", node_id=node.id)
            continue
        if node.visual_only or options is None or options.valid_types is None:
            continue
        if node.type not in options.valid_types:
            message = f"node {node.id!r} has unsupported type {node.type!r}"
            if options.provider:
                message += f" for provider {options.provider!r}"
            _error(result.errors, "UNKNOWN_NODE_TYPE", message, node_id=node.id)


def _check_edges(graph: DiagramGraph, result: ValidationResult) -> List[Edge]:
    """Report edge defects and return the edges whose endpoints both exist."""
    sound: List[Edge] = []
    seen: Counter[Tuple[str, str, str]] = Counter()
    for index, edge in enumerate(graph.edges):
        seen[edge.key()] += 1
        if seen[edge.key()] == 2:
            _warning(
                result.warnings,
                "DUPLICATE_EDGE",
                f"duplicate {edge.kind.value} edge {edge.source!r} -> {edge.target!r}",
                node_ids=(edge.source, edge.target),
            )
        dangling = False
        if edge.source not in graph.nodes:
            _error(
                result.errors,
                "DANGLING_EDGE_SOURCE",
                f"edge #{index} source {edge.source!r} does not reference an existing node",
                node_id=edge.source,
            )
            dangling = True
        if edge.target not in graph.nodes:
            _error(
                result.errors,
                "DANGLING_EDGE_TARGET",
                f"edge #{index} target {edge.target!r} does not reference an existing node",
                node_id=edge.target,
            )
            dangling = True
        if dangling:
            continue
        if edge.source == edge.target:
            if edge.kind == EdgeKind.ASSOCIATION:
                _warning(result.warnings, "SELF_LOOP", f"node {edge.source!r} is associated with itself", node_id=edge.source)
            else:
                _error(
                    result.errors,
                    "SELF_LOOP",
                    f"node {edge.source!r} has a {edge.kind.value} edge to itself",
                    node_id=edge.source,
                )
            continue
        if edge.kind == EdgeKind.DEPENDENCY:
            for endpoint in (edge.source, edge.target):
                if graph.nodes[endpoint].visual_only:
                    _warning(
                        result.warnings,
                        "DEPENDENCY_NON_RESOURCE",
                        f"dependency edge touches visual-only node {endpoint!r}",
                        node_id=endpoint,
                    )
        sound.append(edge)
    return sound


def _check_containers(edges: Iterable[Edge], result: ValidationResult) -> None:
    containers: Dict[str, Set[str]] = defaultdict(set)
    for edge in edges:
        if edge.kind == EdgeKind.CONTAINMENT:
            containers[edge.source].add(edge.target)
    for child in sorted(containers):
        parents = containers[child]
        if len(parents) > 1:
            _error(
                result.errors,
                "MULTIPLE_CONTAINERS",
                f"node {child!r} is contained by more than one node: {', '.join(sorted(parents))}",
                node_id=child,
                node_ids=tuple(sorted(parents)),
            )


def _cycle_members(graph: DiagramGraph, edges: Iterable[Edge]) -> List[str]:
    # edge direction does not matter for membership, only for ordering
    result = kahn_order(graph.nodes.keys(), ((edge.target, edge.source) for edge in edges))
    return sorted(result.on_cycle)


def _check_cycles(graph: DiagramGraph, edges: List[Edge], result: ValidationResult) -> None:
    containment = [edge for edge in edges if edge.kind == EdgeKind.CONTAINMENT]
    dependency = [edge for edge in edges if edge.kind == EdgeKind.DEPENDENCY]
    found = False
    for code, label, subset in (
        ("CONTAINMENT_CYCLE", "containment", containment),
        ("DEPENDENCY_CYCLE", "dependency", dependency),
    ):
        members = _cycle_members(graph, subset)
        if members:
            found = True
            _error(
                result.errors,
                code,
                f"{label} cycle detected involving nodes: {', '.join(members)}",
                node_ids=tuple(members),
            )
    if found:
        return
    members = _cycle_members(graph, containment + dependency)
    if members:
        _error(
            result.errors,
            "PRECEDENCE_CYCLE",
            f"containment and dependency edges form a cycle involving nodes: {', '.join(members)}",
            node_ids=tuple(members),
        )


def _check_schemas(graph: DiagramGraph, options: ValidationOptions, result: ValidationResult) -> None:
    if options.schemas is None or not options.provider:
        return
    for node in graph.nodes.values():
        if node.visual_only or not node.type:
            continue
        schema = options.schemas.get(options.provider, options.canonical_type(node.type))
        if schema is None:
            continue
        for problem in schema.check_properties(node.properties):
            _error(result.errors, "INVALID_PROPERTY", f"node {node.id!r}: {problem}", node_id=node.id)
        if not schema.valid_parent_types:
            continue
        for container_id in graph.containers_of(node.id):
            container = graph.get(container_id)
            if container is None or container.visual_only:
                continue
            container_type = options.canonical_type(container.type)
            if container_type not in schema.valid_parent_types:
                _warning(
                    result.warnings,
                    "INVALID_CONTAINER",
                    f"node {node.id!r} of type {node.type!r} should not be placed inside {container_type!r}",
                    node_id=node.id,
                )


def validate(graph: DiagramGraph, options: Optional[ValidationOptions] = None) -> ValidationResult:
    result = ValidationResult()
    _check_nodes(graph, options, result)
    sound_edges = _check_edges(graph, result)
    _check_containers(sound_edges, result)
    _check_cycles(graph, sound_edges, result)
    if options is not None:
        _check_schemas(graph, options, result)
    return result

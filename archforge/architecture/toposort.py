"""Dependency ordering for architectures.

Containment and dependency edges are merged into one happens-before graph:
a container precedes everything it contains and a dependency precedes its
dependents. Kahn's algorithm emits ready resources smallest id first, so the
same Architecture always sorts to the same sequence.
"""
from __future__ import annotations

import heapq
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Set, Tuple

from archforge.architecture.models import Architecture, Resource
from archforge.errors import CyclicDependencyError


class KahnResult(NamedTuple):
    order: List[str]
    levels: List[List[str]]
    leftover: Set[str]
    on_cycle: Set[str]


def kahn_order(ids: Iterable[str], edges: Iterable[Tuple[str, str]]) -> KahnResult:
    """Order ``ids`` so that every ``(before, after)`` edge is respected.

    ``levels`` groups the emitted ids by longest distance from a root;
    ``leftover`` holds every id that could not be ordered and ``on_cycle``
    narrows it to the ids on a cycle (or on a path between cycles).
    Edges naming unknown ids are ignored.
    """
    nodes = set(ids)
    successors: Dict[str, Set[str]] = defaultdict(set)
    in_degree: Dict[str, int] = {node: 0 for node in nodes}
    for before, after in edges:
        if before not in nodes or after not in nodes or after in successors[before]:
            continue
        successors[before].add(after)
        in_degree[after] += 1

    ready = [node for node, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    level_of: Dict[str, int] = {}
    order: List[str] = []
    levels: List[List[str]] = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        level = level_of.get(node, 0)
        while len(levels) <= level:
            levels.append([])
        levels[level].append(node)
        for nxt in successors.get(node, ()):
            level_of[nxt] = max(level_of.get(nxt, 0), level + 1)
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                heapq.heappush(ready, nxt)

    leftover = nodes - set(order)
    return KahnResult(order, levels, leftover, _prune_downstream(leftover, successors))


def _prune_downstream(stuck: Set[str], successors: Dict[str, Set[str]]) -> Set[str]:
    # nodes that are only blocked by a cycle have no successor left in ``stuck``
    remaining = set(stuck)
    changed = True
    while changed:
        changed = False
        for node in sorted(remaining):
            if not successors.get(node, set()) & remaining:
                remaining.discard(node)
                changed = True
    return remaining


def precedence_edges(arch: Architecture) -> List[Tuple[str, str]]:
    edges = list(arch.containment_pairs())
    edges.extend(arch.dependency_pairs())
    return edges


@dataclass
class TopologicalSortResult:
    resources: List[Resource] = field(default_factory=list)
    levels: List[List[Resource]] = field(default_factory=list)
    cycle_ids: Set[str] = field(default_factory=set)
    # subset of cycle_ids lying on a cycle rather than blocked behind one
    cycle_members: Set[str] = field(default_factory=set)

    @property
    def has_cycle(self) -> bool:
        return bool(self.cycle_ids)


def topological_sort(arch: Architecture) -> TopologicalSortResult:
    """Sort without raising; a cycle leaves ``resources`` empty and fills ``cycle_ids``
    with every resource that could not be ordered.
    """
    index = arch.index()
    result = kahn_order(index.keys(), precedence_edges(arch))
    if result.leftover:
        return TopologicalSortResult(cycle_ids=result.leftover, cycle_members=result.on_cycle)
    return TopologicalSortResult(
        resources=[index[resource_id] for resource_id in result.order],
        levels=[[index[resource_id] for resource_id in level] for level in result.levels],
    )


def sort_resources(arch: Architecture) -> List[Resource]:
    """Return resources in dependency order or raise CyclicDependencyError."""
    result = topological_sort(arch)
    if result.has_cycle:
        raise CyclicDependencyError(result.cycle_ids)
    return result.resources

"""Compiled resource graphs and their ordering."""
from archforge.architecture.models import Architecture, Resource, ResourceType
from archforge.architecture.toposort import TopologicalSortResult, sort_resources, topological_sort

__all__ = [
    "Architecture",
    "Resource",
    "ResourceType",
    "TopologicalSortResult",
    "sort_resources",
    "topological_sort",
]

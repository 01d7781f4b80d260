"""Provider-specific resource graph compiled from a diagram."""
from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Set

from pydantic import BaseModel, Field, PrivateAttr

from archforge.errors import ArchitectureIntegrityError


class ResourceType(BaseModel):
    name: str
    category: str = "general"
    ir_type: Optional[str] = None  # provider-native type, e.g. aws_instance

    model_config = {"frozen": True}


class Resource(BaseModel):
    id: str
    name: str
    type: ResourceType
    provider: str
    region: str
    properties: Dict[str, Any] = {}


class Architecture(BaseModel):
    provider: str
    region: str
    resources: List[Resource] = []
    # parent id -> child ids
    containments: Dict[str, Set[str]] = {}
    # dependent id -> ids it depends on
    dependencies: Dict[str, Set[str]] = {}
    variables: List[Dict[str, Any]] = []
    outputs: List[Dict[str, Any]] = []

    _validation: Any = PrivateAttr(default=None)

    @property
    def validation(self) -> Any:
        """Most recent rule validation result attached by the rule validator."""
        return self._validation

    def annotate(self, validation: Any) -> None:
        self._validation = validation

    def resource_ids(self) -> List[str]:
        return [resource.id for resource in self.resources]

    def get(self, resource_id: str) -> Optional[Resource]:
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def index(self) -> Dict[str, Resource]:
        return {resource.id: resource for resource in self.resources}

    def add_resource(self, resource: Resource) -> None:
        self.resources.append(resource)

    def add_containment(self, parent_id: str, child_id: str) -> None:
        self.containments.setdefault(parent_id, set()).add(child_id)

    def add_dependency(self, dependent_id: str, dependency_id: str) -> None:
        self.dependencies.setdefault(dependent_id, set()).add(dependency_id)

    def children(self, parent_id: str) -> List[str]:
        return sorted(self.containments.get(parent_id, ()))

    def parent(self, child_id: str) -> Optional[str]:
        for parent_id, children in self.containments.items():
            if child_id in children:
                return parent_id
        return None

    def dependencies_of(self, resource_id: str) -> List[str]:
        return sorted(self.dependencies.get(resource_id, ()))

    def dependents_of(self, resource_id: str) -> List[str]:
        return sorted(dep for dep, targets in self.dependencies.items() if resource_id in targets)

    def containment_pairs(self) -> Iterator[tuple[str, str]]:
        """Yield (parent, child) pairs in a stable order."""
        for parent_id in sorted(self.containments):
            for child_id in sorted(self.containments[parent_id]):
                yield parent_id, child_id

    def dependency_pairs(self) -> Iterator[tuple[str, str]]:
        """Yield (dependency, dependent) pairs in a stable order."""
        for dependent_id in sorted(self.dependencies):
            for dependency_id in sorted(self.dependencies[dependent_id]):
                yield dependency_id, dependent_id

    def integrity_problems(self) -> List[str]:
        problems: List[str] = []
        ids = self.resource_ids()
        known = set(ids)
        if len(known) != len(ids):
            seen: Set[str] = set()
            for resource_id in ids:
                if resource_id in seen:
                    problems.append(f"duplicate resource id {resource_id!r}")
                seen.add(resource_id)
        for label, table in (("containment", self.containments), ("dependency", self.dependencies)):
            for key in sorted(table):
                for member in sorted({key} | table[key]):
                    if member not in known:
                        problems.append(f"{label} references unknown resource {member!r}")
        owners: Dict[str, List[str]] = {}
        for parent_id, child_id in self.containment_pairs():
            owners.setdefault(child_id, []).append(parent_id)
        for child_id in sorted(owners):
            if len(owners[child_id]) > 1:
                problems.append(
                    f"resource {child_id!r} has more than one container: {', '.join(owners[child_id])}"
                )
        return problems

    def check_integrity(self) -> None:
        problems = self.integrity_problems()
        if problems:
            raise ArchitectureIntegrityError("architecture integrity check failed: " + "; ".join(problems), problems)

    def to_dict(self) -> Dict[str, Any]:
        payload = self.model_dump()
        payload["containments"] = {key: sorted(value) for key, value in sorted(self.containments.items())}
        payload["dependencies"] = {key: sorted(value) for key, value in sorted(self.dependencies.items())}
        return payload

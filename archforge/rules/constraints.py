"""Built-in structural rules over containment, dependencies and references."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from archforge.architecture.models import Architecture, Resource
from archforge.rules.types import ConstraintType, RuleViolation, Severity

ANY_TYPE = "*"


@dataclass(frozen=True)
class _BaseRule:
    resource_type: str
    severity: Severity = field(default=Severity.ERROR, kw_only=True)

    kind = "rule"

    @property
    def name(self) -> str:
        return f"{self.kind}:{self.resource_type}"

    def applies_to(self, resource: Resource) -> bool:
        return self.resource_type in (ANY_TYPE, resource.type.name)

    def violation(self, resource: Resource, message: str) -> RuleViolation:
        return RuleViolation(rule=self.name, resource_id=resource.id, message=message, severity=self.severity)

    def evaluate(self, resource: Resource, arch: Architecture) -> List[RuleViolation]:
        if not self.applies_to(resource):
            return []
        return self.check(resource, arch)

    def check(self, resource: Resource, arch: Architecture) -> List[RuleViolation]:
        raise NotImplementedError


def _parent_type(resource: Resource, arch: Architecture) -> Optional[str]:
    parent_id = arch.parent(resource.id)
    if parent_id is None:
        return None
    parent = arch.get(parent_id)
    return parent.type.name if parent else None


@dataclass(frozen=True)
class RequiresParent(_BaseRule):
    parent_types: Tuple[str, ...] = ()

    kind = ConstraintType.REQUIRES_PARENT.value

    def check(self, resource, arch):
        parent_type = _parent_type(resource, arch)
        if parent_type is None:
            return [self.violation(resource, f"{resource.type.name} must be placed inside one of: {', '.join(self.parent_types)}")]
        if self.parent_types and parent_type not in self.parent_types:
            return [
                self.violation(
                    resource,
                    f"{resource.type.name} must be placed inside one of: {', '.join(self.parent_types)} (found {parent_type})",
                )
            ]
        return []


@dataclass(frozen=True)
class AllowedParent(_BaseRule):
    parent_types: Tuple[str, ...] = ()

    kind = ConstraintType.ALLOWED_PARENT.value

    def check(self, resource, arch):
        parent_type = _parent_type(resource, arch)
        if parent_type is None or parent_type in self.parent_types:
            return []
        return [self.violation(resource, f"{resource.type.name} cannot be placed inside {parent_type}")]


@dataclass(frozen=True)
class RequiresRegion(_BaseRule):
    kind = ConstraintType.REQUIRES_REGION.value

    def check(self, resource, arch):
        if resource.region or arch.region:
            return []
        return [self.violation(resource, f"{resource.type.name} requires a region")]


def _children_of_type(resource: Resource, arch: Architecture, child_type: Optional[str]) -> List[str]:
    children = arch.children(resource.id)
    if child_type is None:
        return children
    index = arch.index()
    return [child for child in children if child in index and index[child].type.name == child_type]


@dataclass(frozen=True)
class MaxChildren(_BaseRule):
    limit: int = 0
    child_type: Optional[str] = None

    kind = ConstraintType.MAX_CHILDREN.value

    def check(self, resource, arch):
        count = len(_children_of_type(resource, arch, self.child_type))
        if count <= self.limit:
            return []
        what = f"{self.child_type} children" if self.child_type else "children"
        return [self.violation(resource, f"{resource.type.name} allows at most {self.limit} {what}, found {count}")]


@dataclass(frozen=True)
class MinChildren(_BaseRule):
    limit: int = 0
    child_type: Optional[str] = None

    kind = ConstraintType.MIN_CHILDREN.value

    def check(self, resource, arch):
        count = len(_children_of_type(resource, arch, self.child_type))
        if count >= self.limit:
            return []
        what = f"{self.child_type} children" if self.child_type else "children"
        return [self.violation(resource, f"{resource.type.name} requires at least {self.limit} {what}, found {count}")]


def _dependency_types(resource: Resource, arch: Architecture) -> List[Tuple[str, str]]:
    index = arch.index()
    return [
        (dependency_id, index[dependency_id].type.name)
        for dependency_id in arch.dependencies_of(resource.id)
        if dependency_id in index
    ]


@dataclass(frozen=True)
class AllowedDependencies(_BaseRule):
    allowed_types: Tuple[str, ...] = ()

    kind = ConstraintType.ALLOWED_DEPENDENCIES.value

    def check(self, resource, arch):
        return [
            self.violation(resource, f"{resource.type.name} cannot depend on {dep_type} ({dep_id})")
            for dep_id, dep_type in _dependency_types(resource, arch)
            if dep_type not in self.allowed_types
        ]


@dataclass(frozen=True)
class ForbiddenDependencies(_BaseRule):
    forbidden_types: Tuple[str, ...] = ()

    kind = ConstraintType.FORBIDDEN_DEPENDENCIES.value

    def check(self, resource, arch):
        return [
            self.violation(resource, f"{resource.type.name} must not depend on {dep_type} ({dep_id})")
            for dep_id, dep_type in _dependency_types(resource, arch)
            if dep_type in self.forbidden_types
        ]


@dataclass(frozen=True)
class ReferenceExists(_BaseRule):
    """A property naming another resource must point at one of ``target_type``.

    With ``required`` the property has to be present; otherwise the rule only
    checks references that were given.
    """

    property_name: str = ""
    target_type: str = ""
    required: bool = False

    kind = ConstraintType.REFERENCE_EXISTS.value

    @property
    def name(self) -> str:
        return f"{self.kind}:{self.resource_type}.{self.property_name}"

    def check(self, resource, arch):
        value = resource.properties.get(self.property_name)
        if value in (None, "", []):
            if self.required:
                return [
                    self.violation(
                        resource,
                        f"{resource.type.name} must reference a {self.target_type} via {self.property_name!r}",
                    )
                ]
            return []
        targets = value if isinstance(value, list) else [value]
        violations = []
        for target_id in targets:
            target = arch.get(str(target_id))
            if target is None:
                violations.append(
                    self.violation(
                        resource,
                        f"{self.property_name} references {target_id!r}, which does not exist in this architecture",
                    )
                )
            elif target.type.name != self.target_type:
                violations.append(
                    self.violation(
                        resource,
                        f"{self.property_name} must reference a {self.target_type}, not {target.type.name} ({target_id})",
                    )
                )
        return violations

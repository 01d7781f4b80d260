"""Core types for architecture rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Protocol

from archforge.architecture.models import Architecture, Resource


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ConstraintType(str, Enum):
    REQUIRES_PARENT = "requires_parent"
    ALLOWED_PARENT = "allowed_parent"
    REQUIRES_REGION = "requires_region"
    MAX_CHILDREN = "max_children"
    MIN_CHILDREN = "min_children"
    ALLOWED_DEPENDENCIES = "allowed_dependencies"
    FORBIDDEN_DEPENDENCIES = "forbidden_dependencies"
    REFERENCE_EXISTS = "reference_exists"


@dataclass(frozen=True)
class RuleViolation:
    rule: str
    resource_id: str
    message: str
    severity: Severity = Severity.ERROR

    def to_dict(self) -> Dict[str, str]:
        return {
            "rule": self.rule,
            "resource_id": self.resource_id,
            "message": self.message,
            "severity": self.severity.value,
        }


class Rule(Protocol):
    name: str
    resource_type: str
    severity: Severity

    def evaluate(self, resource: Resource, arch: Architecture) -> List[RuleViolation]:
        ...


@dataclass
class PerResourceResult:
    resource_id: str
    resource_type: str
    violations: List[RuleViolation] = field(default_factory=list)

    @property
    def errors(self) -> List[RuleViolation]:
        return [v for v in self.violations if v.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[RuleViolation]:
        return [v for v in self.violations if v.severity == Severity.WARNING]

    @property
    def valid(self) -> bool:
        return not self.errors


@dataclass
class RuleValidationResult:
    results: Dict[str, PerResourceResult] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return all(result.valid for result in self.results.values())

    def violations(self, severity: Optional[Severity] = None) -> List[RuleViolation]:
        found = [v for result in self.results.values() for v in result.violations]
        if severity is None:
            return found
        return [v for v in found if v.severity == severity]

    @property
    def errors(self) -> List[RuleViolation]:
        return self.violations(Severity.ERROR)

    def summary(self) -> str:
        return "; ".join(f"{v.resource_id}: {v.message}" for v in self.errors)

    def to_dict(self) -> Dict[str, object]:
        return {
            "valid": self.valid,
            "results": {
                resource_id: {
                    "resource_type": result.resource_type,
                    "valid": result.valid,
                    "violations": [v.to_dict() for v in result.violations],
                }
                for resource_id, result in self.results.items()
            },
        }

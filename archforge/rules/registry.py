"""Rule lookup by resource type and construction from stored constraint records."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from archforge.rules.constraints import (
    ANY_TYPE,
    AllowedDependencies,
    AllowedParent,
    ForbiddenDependencies,
    MaxChildren,
    MinChildren,
    ReferenceExists,
    RequiresParent,
    RequiresRegion,
)
from archforge.rules.types import ConstraintType, Rule, Severity

logger = logging.getLogger(__name__)


class RuleRegistry:
    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: Dict[str, List[Rule]] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        self._rules.setdefault(rule.resource_type, []).append(rule)

    def extend(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.register(rule)

    def rules_for(self, resource_type: str) -> List[Rule]:
        return list(self._rules.get(resource_type, [])) + list(self._rules.get(ANY_TYPE, []))

    def all(self) -> List[Rule]:
        return [rule for rules in self._rules.values() for rule in rules]

    def __len__(self) -> int:
        return sum(len(rules) for rules in self._rules.values())


@dataclass(frozen=True)
class ConstraintRecord:
    """A stored constraint, e.g. ``("subnet", "requires_parent", "vpc")``.

    List values are comma separated. Child counts accept ``"3"`` or
    ``"internet-gateway:1"``. References use ``"subnetId:subnet"`` with an
    optional ``":required"`` suffix.
    """

    resource_type: str
    constraint_type: str
    value: str = ""
    severity: str = Severity.ERROR.value


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _parse_count(value: str) -> Tuple[int, Optional[str]]:
    child_type: Optional[str] = None
    count = value.strip()
    if ":" in count:
        child_type, count = (part.strip() for part in count.split(":", 1))
    try:
        return int(count), child_type or None
    except ValueError:
        raise ValueError(f"invalid child count {value!r}") from None


class RuleFactory:
    def build(self, record: ConstraintRecord) -> Rule:
        try:
            constraint = ConstraintType(record.constraint_type)
        except ValueError:
            raise ValueError(f"unknown constraint type: {record.constraint_type}") from None
        try:
            severity = Severity(record.severity or Severity.ERROR.value)
        except ValueError:
            raise ValueError(f"unknown severity: {record.severity}") from None

        rtype = record.resource_type
        if constraint == ConstraintType.REQUIRES_PARENT:
            return RequiresParent(rtype, _split_list(record.value), severity=severity)
        if constraint == ConstraintType.ALLOWED_PARENT:
            return AllowedParent(rtype, _split_list(record.value), severity=severity)
        if constraint == ConstraintType.REQUIRES_REGION:
            return RequiresRegion(rtype, severity=severity)
        if constraint in (ConstraintType.MAX_CHILDREN, ConstraintType.MIN_CHILDREN):
            limit, child_type = _parse_count(record.value)
            cls = MaxChildren if constraint == ConstraintType.MAX_CHILDREN else MinChildren
            return cls(rtype, limit, child_type, severity=severity)
        if constraint == ConstraintType.ALLOWED_DEPENDENCIES:
            return AllowedDependencies(rtype, _split_list(record.value), severity=severity)
        if constraint == ConstraintType.FORBIDDEN_DEPENDENCIES:
            return ForbiddenDependencies(rtype, _split_list(record.value), severity=severity)
        parts = [part.strip() for part in record.value.split(":")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ValueError(f"invalid reference constraint {record.value!r}")
        return ReferenceExists(
            rtype,
            property_name=parts[0],
            target_type=parts[1],
            required=len(parts) > 2 and parts[2] == "required",
            severity=severity,
        )

    def build_all(self, records: Iterable[ConstraintRecord]) -> List[Rule]:
        rules = []
        for record in records:
            rules.append(self.build(record))
        logger.debug("Built rules from constraints", extra={"rule_count": len(rules)})
        return rules

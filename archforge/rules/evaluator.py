"""Evaluate every applicable rule against every resource."""
from __future__ import annotations

from archforge.architecture.models import Architecture
from archforge.rules.registry import RuleRegistry
from archforge.rules.types import PerResourceResult, RuleValidationResult


class RuleEvaluator:
    def __init__(self, registry: RuleRegistry):
        self.registry = registry

    def evaluate(self, arch: Architecture) -> RuleValidationResult:
        """Collect violations for all resources and attach the result to ``arch``."""
        result = RuleValidationResult()
        for resource in arch.resources:
            entry = PerResourceResult(resource_id=resource.id, resource_type=resource.type.name)
            for rule in self.registry.rules_for(resource.type.name):
                entry.violations.extend(rule.evaluate(resource, arch))
            result.results[resource.id] = entry
        arch.annotate(result)
        return result

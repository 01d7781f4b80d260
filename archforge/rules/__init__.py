"""Semantic rules over compiled architectures."""
from archforge.rules.evaluator import RuleEvaluator
from archforge.rules.registry import ConstraintRecord, RuleFactory, RuleRegistry
from archforge.rules.types import PerResourceResult, Rule, RuleValidationResult, RuleViolation, Severity

__all__ = [
    "ConstraintRecord",
    "PerResourceResult",
    "Rule",
    "RuleEvaluator",
    "RuleFactory",
    "RuleRegistry",
    "RuleValidationResult",
    "RuleViolation",
    "Severity",
]

"""Architecture service: mapping, rule validation and ordering."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from archforge.architecture.mapper import MapperRegistry, map_from_diagram
from archforge.architecture.models import Architecture, Resource
from archforge.architecture.toposort import TopologicalSortResult, sort_resources, topological_sort
from archforge.context import RequestContext
from archforge.diagram.graph import DiagramGraph
from archforge.providers.catalog import ProviderRegistry
from archforge.rules.evaluator import RuleEvaluator
from archforge.rules.registry import ConstraintRecord, RuleFactory, RuleRegistry
from archforge.rules.types import RuleValidationResult
from archforge.utils.config import settings

logger = logging.getLogger(__name__)


class ArchitectureService:
    def __init__(
        self,
        mappers: MapperRegistry,
        providers: ProviderRegistry,
        constraints: Iterable[ConstraintRecord] = (),
        default_region: Optional[str] = None,
    ):
        self.mappers = mappers
        self.providers = providers
        self.constraints = list(constraints)
        self.default_region = default_region or settings.default_region
        self._factory = RuleFactory()

    def map_from_diagram(
        self,
        graph: DiagramGraph,
        provider: str,
        *,
        region: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Architecture:
        if ctx is not None:
            ctx.check()
        return map_from_diagram(graph, provider, self.mappers, self.default_region, region=region)

    def rule_registry(self, provider: str) -> RuleRegistry:
        registry = RuleRegistry()
        catalog = self.providers.get(provider)
        if catalog is None:
            logger.warning("No default rules for provider", extra={"provider": provider})
        else:
            registry.extend(catalog.default_rules())
        registry.extend(self._factory.build_all(self.constraints))
        return registry

    def validate_rules(
        self,
        arch: Architecture,
        provider: str,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> RuleValidationResult:
        if ctx is not None:
            ctx.check()
        return RuleEvaluator(self.rule_registry(provider)).evaluate(arch)

    def get_sorted_resources(self, arch: Architecture, *, ctx: Optional[RequestContext] = None) -> List[Resource]:
        if ctx is not None:
            ctx.check()
        return sort_resources(arch)

    def topological_sort(self, arch: Architecture) -> TopologicalSortResult:
        return topological_sort(arch)

"""Diagram service: parse and validate user diagrams."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from archforge.context import RequestContext
from archforge.diagram.graph import REGION_NODE_TYPE, DiagramGraph
from archforge.diagram.parser import parse_diagram
from archforge.diagram.schema import SchemaRegistry, default_schema_registry
from archforge.diagram.validator import ValidationOptions, ValidationResult, validate
from archforge.providers.catalog import ProviderRegistry

logger = logging.getLogger(__name__)


class DiagramService:
    def __init__(
        self,
        providers: Optional[ProviderRegistry] = None,
        schemas: Optional[SchemaRegistry] = None,
    ):
        self.providers = providers
        self.schemas = schemas or default_schema_registry()

    def parse(self, data: bytes | str | Mapping[str, Any], *, ctx: Optional[RequestContext] = None) -> DiagramGraph:
        if ctx is not None:
            ctx.check()
        return parse_diagram(data)

    def validate(
        self,
        graph: DiagramGraph,
        options: Optional[ValidationOptions] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> ValidationResult:
        if ctx is not None:
            ctx.check()
        result = validate(graph, options)
        if not result.valid:
            logger.info(
                "Diagram validation found errors",
                extra={"error_count": len(result.errors), "codes": result.codes()},
            )
        return result

    def options_for(self, provider: str) -> Optional[ValidationOptions]:
        """Validation options for a provider's catalog, or None when it is unknown."""
        catalog = self.providers.get(provider) if self.providers else None
        if catalog is None:
            return None
        return ValidationOptions(
            valid_types=frozenset(catalog.node_types()) | {REGION_NODE_TYPE},
            provider=provider,
            schemas=self.schemas,
            type_aliases=catalog.type_aliases(),
        )

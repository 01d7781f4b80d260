"""Code generation service: sort an architecture and hand it to an engine."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from archforge.architecture.models import Architecture, Resource
from archforge.architecture.toposort import sort_resources
from archforge.codegen.output import Output
from archforge.codegen.registry import EngineRegistry
from archforge.context import RequestContext
from archforge.errors import UnknownEngineError
from archforge.utils.config import settings

logger = logging.getLogger(__name__)

Sorter = Callable[[Architecture], List[Resource]]


class CodegenService:
    def __init__(
        self,
        registry: EngineRegistry,
        default_engine: Optional[str] = None,
        sorter: Sorter = sort_resources,
    ):
        self.registry = registry
        self.default_engine = default_engine or settings.default_engine
        self.sorter = sorter

    def supported_engines(self) -> List[str]:
        return self.registry.names()

    def generate(
        self,
        arch: Architecture,
        engine_name: Optional[str] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> Output:
        name = engine_name or self.default_engine
        engine = self.registry.get(name)
        if engine is None:
            raise UnknownEngineError(name, self.supported_engines())
        resources = self.sorter(arch)
        if ctx is not None:
            ctx.check()
        logger.info("Generating code", extra={"engine": name, "resource_count": len(resources)})
        return engine.generate(arch, resources)

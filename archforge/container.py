"""Startup wiring: build registries and services once, then inject them."""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session as DbSession

from archforge.architecture.mapper import MapperRegistry
from archforge.architecture.service import ArchitectureService
from archforge.codegen.pulumi import PulumiEngine
from archforge.codegen.registry import EngineRegistry
from archforge.codegen.service import CodegenService
from archforge.codegen.terraform import TerraformEngine
from archforge.diagram.service import DiagramService
from archforge.orchestrator.pipeline import PipelineOrchestrator
from archforge.providers import default_providers
from archforge.providers.catalog import ProviderRegistry
from archforge.rules.registry import ConstraintRecord
from archforge.services.pricing_service import PricingService
from archforge.services.project_service import ProjectService
from archforge.utils.config import settings


def build_mapper_registry(providers: ProviderRegistry) -> MapperRegistry:
    registry = MapperRegistry()
    for name in providers.names():
        providers.get(name).register_mappers(registry)
    return registry


def build_engine_registry(providers: ProviderRegistry) -> EngineRegistry:
    registry = EngineRegistry()
    registry.register(TerraformEngine(providers))
    registry.register(PulumiEngine(providers))
    # the configured default has to exist before any request is served
    registry.must_get(settings.default_engine)
    return registry


def build_orchestrator(
    session_factory: Optional[Callable[[], DbSession]] = None,
    constraints: Iterable[ConstraintRecord] = (),
    providers: Optional[ProviderRegistry] = None,
    engines: Optional[EngineRegistry] = None,
) -> PipelineOrchestrator:
    providers = providers or default_providers()
    engines = engines or build_engine_registry(providers)
    pricing = PricingService(providers)
    project_kwargs = {"pricing": pricing}
    if session_factory is not None:
        project_kwargs["session_factory"] = session_factory
    return PipelineOrchestrator(
        diagrams=DiagramService(providers),
        architectures=ArchitectureService(build_mapper_registry(providers), providers, constraints),
        codegen=CodegenService(engines),
        projects=ProjectService(**project_kwargs),
        engines=engines,
    )

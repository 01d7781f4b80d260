"""Pipeline orchestrator for diagram compilation and code regeneration.

``process_diagram`` runs parse, validate, map, rule check, create project and
persist, stopping at the first failure; nothing is written before both
validation stages pass. ``generate_code`` reloads a stored architecture and
renders it, treating rule violations as warnings.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, TypeVar

from archforge.codegen.output import Output
from archforge.codegen.registry import EngineRegistry
from archforge.context import RequestContext
from archforge.errors import (
    ArchForgeError,
    DiagramValidationError,
    PersistenceError,
    PipelineCancelled,
    PipelineError,
    RuleValidationError,
    UnknownEngineError,
)
from archforge.schemas import (
    ArchitectureCostEstimate,
    CreateProjectRequest,
    GenerateCodeRequest,
    ProcessDiagramRequest,
    ProcessDiagramResult,
)
from archforge.services.interfaces import (
    ArchitectureServiceProtocol,
    CodegenServiceProtocol,
    DiagramServiceProtocol,
    ProjectServiceProtocol,
)
from archforge.utils.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineOrchestrator:
    def __init__(
        self,
        diagrams: DiagramServiceProtocol,
        architectures: ArchitectureServiceProtocol,
        codegen: CodegenServiceProtocol,
        projects: ProjectServiceProtocol,
        engines: EngineRegistry,
        *,
        default_provider: Optional[str] = None,
        default_region: Optional[str] = None,
        default_engine: Optional[str] = None,
        strict_validation: Optional[bool] = None,
    ):
        self.diagrams = diagrams
        self.architectures = architectures
        self.codegen = codegen
        self.projects = projects
        self.engines = engines
        self.default_provider = default_provider or settings.default_provider
        self.default_region = default_region or settings.default_region
        self.default_engine = default_engine or settings.default_engine
        self.strict_validation = (
            settings.strict_diagram_validation if strict_validation is None else strict_validation
        )

    def _new_context(self) -> RequestContext:
        return RequestContext.with_timeout(settings.request_timeout_seconds)

    def _stage(
        self,
        run_ctx: RequestContext,
        failure: str,
        fn: Callable[..., T],
        *args: Any,
        storage: bool = False,
        **kwargs: Any,
    ) -> T:
        """Run one collaborator call, prefixing any failure with ``failure``."""
        run_ctx.check()
        started = time.perf_counter()
        try:
            result = fn(*args, **kwargs)
        except ArchForgeError as exc:
            exc.in_stage(failure)
            raise
        except Exception as exc:
            logger.exception("Pipeline stage failed", extra={"stage": failure})
            wrapper = PersistenceError if storage else PipelineError
            raise wrapper(f"{failure}: {exc}") from exc
        logger.debug(
            "Pipeline stage finished",
            extra={"stage": failure, "duration_ms": int((time.perf_counter() - started) * 1000)},
        )
        return result

    def process_diagram(
        self, request: ProcessDiagramRequest, ctx: Optional[RequestContext] = None
    ) -> ProcessDiagramResult:
        ctx = ctx or self._new_context()
        provider = request.cloud_provider or self.default_provider
        logger.info(
            "Processing diagram",
            extra={"user_id": request.user_id, "project_name": request.project_name, "provider": provider},
        )

        graph = self._stage(ctx, "failed to parse diagram", self.diagrams.parse, request.diagram_bytes, ctx=ctx)

        options = self.diagrams.options_for(provider) if self.strict_validation else None
        validation = self._stage(
            ctx, "failed to validate diagram", self.diagrams.validate, graph, options, ctx=ctx
        )
        if not validation.valid:
            raise DiagramValidationError(
                validation.summary(), validation.errors, validation.warnings
            ).in_stage("diagram validation failed")

        arch = self._stage(
            ctx,
            "failed to map diagram to architecture",
            self.architectures.map_from_diagram,
            graph,
            provider,
            region=request.region or None,
            ctx=ctx,
        )

        rules = self._stage(
            ctx,
            "failed to validate architecture rules",
            self.architectures.validate_rules,
            arch,
            provider,
            ctx=ctx,
        )
        if not rules.valid:
            raise RuleValidationError(rules.summary(), rules.errors).in_stage(
                "architecture rule validation failed"
            )

        self._stage(
            ctx,
            "failed to resolve resource order",
            self.architectures.get_sorted_resources,
            arch,
            ctx=ctx,
        )

        project = self._stage(
            ctx,
            "failed to create project",
            self.projects.create,
            CreateProjectRequest(
                user_id=request.user_id,
                name=request.project_name,
                iac_tool_id=request.iac_tool_id or self.default_engine,
                cloud_provider=provider,
                region=arch.region or self.default_region,
            ),
            ctx=ctx,
            storage=True,
        )

        estimate: Optional[ArchitectureCostEstimate] = None
        try:
            if request.pricing_duration is not None and request.pricing_duration.total_seconds() > 0:
                persisted = self._stage(
                    ctx,
                    "failed to persist architecture with pricing",
                    self.projects.persist_architecture_with_pricing,
                    project.id,
                    arch,
                    graph,
                    request.pricing_duration,
                    ctx=ctx,
                    storage=True,
                )
                estimate = persisted.pricing
            else:
                self._stage(
                    ctx,
                    "failed to persist architecture",
                    self.projects.persist_architecture,
                    project.id,
                    arch,
                    graph,
                    ctx=ctx,
                    storage=True,
                )
        except ArchForgeError:
            self._discard_project(project.id)
            raise

        message = f"Diagram processed successfully. Project created with ID: {project.id}"
        if estimate is not None:
            message += f". Estimated cost: ${estimate.total_cost:.2f} {estimate.currency}"
        warnings = [issue.message for issue in validation.warnings]
        warnings.extend(f"{v.resource_id}: {v.message}" for v in rules.violations() if v not in rules.errors)
        logger.info("Diagram processed", extra={"project_id": str(project.id)})
        return ProcessDiagramResult(
            project_id=project.id,
            success=True,
            message=message,
            pricing_estimate=estimate,
            warnings=warnings,
        )

    def _discard_project(self, project_id: Any) -> None:
        try:
            self.projects.delete(project_id)
        except Exception:
            logger.exception("Could not remove partially created project", extra={"project_id": str(project_id)})

    def generate_code(self, request: GenerateCodeRequest, ctx: Optional[RequestContext] = None) -> Output:
        ctx = ctx or self._new_context()

        project = self._stage(
            ctx, "failed to load project", self.projects.get_by_id, request.project_id, ctx=ctx, storage=True
        )
        arch = self._stage(
            ctx, "failed to load architecture", self.projects.load_architecture, project.id, ctx=ctx, storage=True
        )
        provider = request.cloud_provider or project.cloud_provider or self.default_provider

        warnings = self._advisory_rule_check(arch, provider, ctx)

        engine_name = request.engine or self.default_engine
        self._stage(ctx, "failed to select engine", self._select_engine, engine_name)

        output = self._stage(
            ctx, "failed to generate code", self.codegen.generate, arch, engine_name, ctx=ctx
        )
        output.warnings.extend(warnings)
        logger.info(
            "Generated code",
            extra={"project_id": str(project.id), "engine": engine_name, "file_count": len(output.files)},
        )
        return output

    def _select_engine(self, name: str) -> None:
        if self.engines.get(name) is None:
            raise UnknownEngineError(name, self.engines.names())

    def _advisory_rule_check(self, arch: Any, provider: str, ctx: RequestContext) -> List[str]:
        """Rule violations never block regeneration; they come back as warnings."""
        ctx.check()
        try:
            rules = self.architectures.validate_rules(arch, provider, ctx=ctx)
        except PipelineCancelled:
            raise
        except Exception as exc:
            logger.warning("Rule validation failed during code generation", exc_info=True)
            return [f"rule validation unavailable: {exc}"]
        violations = rules.violations()
        if not rules.valid:
            logger.warning(
                "Architecture no longer passes rule validation",
                extra={"provider": provider, "violations": [v.to_dict() for v in rules.errors]},
            )
        return [f"{v.resource_id}: {v.message}" for v in violations]

"""Collaborator contracts consumed by the pipeline orchestrator."""
from __future__ import annotations

from datetime import timedelta
from typing import Any, List, Mapping, Optional, Protocol
from uuid import UUID

from archforge.architecture.models import Architecture, Resource
from archforge.codegen.output import Output
from archforge.context import RequestContext
from archforge.diagram.graph import DiagramGraph
from archforge.diagram.validator import ValidationOptions, ValidationResult
from archforge.rules.types import RuleValidationResult
from archforge.schemas import CreateProjectRequest, PersistResult, ProjectInfo, ProjectPricingInfo


class DiagramServiceProtocol(Protocol):
    def parse(self, data: bytes | str | Mapping[str, Any], *, ctx: Optional[RequestContext] = None) -> DiagramGraph:
        ...

    def validate(
        self,
        graph: DiagramGraph,
        options: Optional[ValidationOptions] = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> ValidationResult:
        ...

    def options_for(self, provider: str) -> Optional[ValidationOptions]:
        ...


class ArchitectureServiceProtocol(Protocol):
    def map_from_diagram(
        self,
        graph: DiagramGraph,
        provider: str,
        *,
        region: Optional[str] = None,
        ctx: Optional[RequestContext] = None,
    ) -> Architecture:
        ...

    def validate_rules(
        self, arch: Architecture, provider: str, *, ctx: Optional[RequestContext] = None
    ) -> RuleValidationResult:
        ...

    def get_sorted_resources(self, arch: Architecture, *, ctx: Optional[RequestContext] = None) -> List[Resource]:
        ...


class CodegenServiceProtocol(Protocol):
    def generate(
        self, arch: Architecture, engine_name: Optional[str] = None, *, ctx: Optional[RequestContext] = None
    ) -> Output:
        ...

    def supported_engines(self) -> List[str]:
        ...


class ProjectServiceProtocol(Protocol):
    def create(self, req: CreateProjectRequest, *, ctx: Optional[RequestContext] = None) -> ProjectInfo:
        ...

    def get_by_id(self, project_id: UUID | str, *, ctx: Optional[RequestContext] = None) -> ProjectInfo:
        ...

    def persist_architecture(
        self,
        project_id: UUID | str,
        arch: Architecture,
        graph: DiagramGraph | None = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        ...

    def persist_architecture_with_pricing(
        self,
        project_id: UUID | str,
        arch: Architecture,
        graph: DiagramGraph | None,
        duration: timedelta,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> PersistResult:
        ...

    def load_architecture(self, project_id: UUID | str, *, ctx: Optional[RequestContext] = None) -> Architecture:
        ...

    def get_project_pricing(self, project_id: UUID | str) -> List[ProjectPricingInfo]:
        ...

    def list_by_user_id(self, user_id: str) -> List[ProjectInfo]:
        ...

    def update(self, project: ProjectInfo) -> None:
        ...

    def delete(self, project_id: UUID | str) -> None:
        ...

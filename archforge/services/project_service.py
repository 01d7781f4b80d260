"""Project storage backed by SQLAlchemy.

The module-level functions operate on an open ``DbSession``; ``ProjectService``
wraps them with session handling and maps database failures onto
``PersistenceError``.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Callable, Iterator, List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from archforge.architecture.models import Architecture, Resource, ResourceType
from archforge.context import RequestContext
from archforge.db import SessionLocal
from archforge.db_models import Project, ProjectPricing, ProjectResource, ResourceContainment, ResourceDependency
from archforge.diagram.graph import DiagramGraph
from archforge.errors import ArchForgeError, PersistenceError, ProjectNotFoundError
from archforge.schemas import (
    ArchitectureCostEstimate,
    CreateProjectRequest,
    PersistResult,
    ProjectInfo,
    ProjectPricingInfo,
)
from archforge.services.pricing_service import PricingService

logger = logging.getLogger(__name__)


def _as_uuid(project_id: UUID | str) -> UUID:
    if isinstance(project_id, UUID):
        return project_id
    try:
        return UUID(str(project_id))
    except ValueError:
        raise ProjectNotFoundError(project_id) from None


def create_project(db: DbSession, req: CreateProjectRequest) -> Project:
    project = Project(
        user_id=req.user_id,
        name=req.name,
        description=req.description,
        tags=list(req.tags),
        iac_tool_id=req.iac_tool_id,
        cloud_provider=req.cloud_provider,
        region=req.region,
    )
    db.add(project)
    db.flush()
    return project


def get_project(db: DbSession, project_id: UUID | str) -> Project:
    project = db.get(Project, _as_uuid(project_id))
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def replace_architecture(db: DbSession, project: Project, arch: Architecture, graph: DiagramGraph | None) -> None:
    """Swap the stored architecture for ``arch``; the caller commits."""
    for model in (ProjectResource, ResourceContainment, ResourceDependency):
        db.execute(delete(model).where(model.project_id == project.id))
    for position, resource in enumerate(arch.resources):
        db.add(
            ProjectResource(
                project_id=project.id,
                resource_key=resource.id,
                name=resource.name,
                type_name=resource.type.name,
                category=resource.type.category,
                ir_type=resource.type.ir_type,
                provider=resource.provider,
                region=resource.region,
                properties=dict(resource.properties),
                position=position,
            )
        )
    for parent_key, child_key in arch.containment_pairs():
        db.add(ResourceContainment(project_id=project.id, parent_key=parent_key, child_key=child_key))
    for dependency_key, dependent_key in arch.dependency_pairs():
        db.add(ResourceDependency(project_id=project.id, dependent_key=dependent_key, dependency_key=dependency_key))
    project.cloud_provider = arch.provider
    project.region = arch.region
    project.architecture_meta = {"variables": list(arch.variables), "outputs": list(arch.outputs)}
    if graph is not None:
        project.diagram_json = graph.to_dict()
    project.updated_at = datetime.utcnow()


def load_architecture(db: DbSession, project: Project) -> Architecture:
    meta = project.architecture_meta or {}
    arch = Architecture(
        provider=project.cloud_provider,
        region=project.region,
        variables=list(meta.get("variables") or []),
        outputs=list(meta.get("outputs") or []),
    )
    rows = db.execute(
        select(ProjectResource).where(ProjectResource.project_id == project.id).order_by(ProjectResource.position)
    ).scalars()
    for row in rows:
        arch.add_resource(
            Resource(
                id=row.resource_key,
                name=row.name,
                type=ResourceType(name=row.type_name, category=row.category, ir_type=row.ir_type),
                provider=row.provider,
                region=row.region,
                properties=dict(row.properties or {}),
            )
        )
    for row in db.execute(select(ResourceContainment).where(ResourceContainment.project_id == project.id)).scalars():
        arch.add_containment(row.parent_key, row.child_key)
    for row in db.execute(select(ResourceDependency).where(ResourceDependency.project_id == project.id)).scalars():
        arch.add_dependency(row.dependent_key, row.dependency_key)
    return arch


def record_pricing(db: DbSession, project: Project, estimate: ArchitectureCostEstimate) -> ProjectPricing:
    row = ProjectPricing(
        project_id=project.id,
        total_cost=estimate.total_cost,
        currency=estimate.currency,
        period=estimate.period,
        duration_seconds=estimate.duration.total_seconds(),
        provider=estimate.provider,
        region=estimate.region,
        breakdown=[item.model_dump() for item in estimate.resource_estimates],
    )
    db.add(row)
    return row


class ProjectService:
    def __init__(
        self,
        session_factory: Callable[[], DbSession] = SessionLocal,
        pricing: Optional[PricingService] = None,
    ):
        self.session_factory = session_factory
        self.pricing = pricing

    @contextmanager
    def _session(self, action: str) -> Iterator[DbSession]:
        with self.session_factory() as db:
            try:
                yield db
            except ArchForgeError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Project storage failed", extra={"action": action})
                raise PersistenceError(f"failed to {action}: {exc}") from exc

    def create(self, req: CreateProjectRequest, *, ctx: Optional[RequestContext] = None) -> ProjectInfo:
        if ctx is not None:
            ctx.check()
        with self._session("create project") as db:
            project = create_project(db, req)
            db.commit()
            db.refresh(project)
            logger.info("Created project", extra={"project_id": str(project.id), "user_id": req.user_id})
            return ProjectInfo.model_validate(project)

    def get_by_id(self, project_id: UUID | str, *, ctx: Optional[RequestContext] = None) -> ProjectInfo:
        if ctx is not None:
            ctx.check()
        with self._session("load project") as db:
            return ProjectInfo.model_validate(get_project(db, project_id))

    def persist_architecture(
        self,
        project_id: UUID | str,
        arch: Architecture,
        graph: DiagramGraph | None = None,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> None:
        if ctx is not None:
            ctx.check()
        with self._session("persist architecture") as db:
            project = get_project(db, project_id)
            replace_architecture(db, project, arch, graph)
            db.commit()

    def persist_architecture_with_pricing(
        self,
        project_id: UUID | str,
        arch: Architecture,
        graph: DiagramGraph | None,
        duration: timedelta,
        *,
        ctx: Optional[RequestContext] = None,
    ) -> PersistResult:
        if self.pricing is None:
            raise PersistenceError("pricing estimation is not configured")
        estimate = self.pricing.estimate(arch, duration, ctx=ctx)
        with self._session("persist architecture with pricing") as db:
            project = get_project(db, project_id)
            replace_architecture(db, project, arch, graph)
            record_pricing(db, project, estimate)
            db.commit()
            return PersistResult(project_id=project.id, pricing=estimate)

    def load_architecture(self, project_id: UUID | str, *, ctx: Optional[RequestContext] = None) -> Architecture:
        if ctx is not None:
            ctx.check()
        with self._session("load architecture") as db:
            arch = load_architecture(db, get_project(db, project_id))
        arch.check_integrity()
        return arch

    def get_project_pricing(self, project_id: UUID | str) -> List[ProjectPricingInfo]:
        with self._session("load project pricing") as db:
            project = get_project(db, project_id)
            rows = db.execute(
                select(ProjectPricing)
                .where(ProjectPricing.project_id == project.id)
                .order_by(ProjectPricing.created_at)
            ).scalars()
            return [ProjectPricingInfo.model_validate(row) for row in rows]

    def list_by_user_id(self, user_id: str) -> List[ProjectInfo]:
        with self._session("list projects") as db:
            rows = db.execute(
                select(Project).where(Project.user_id == user_id).order_by(Project.created_at.desc())
            ).scalars()
            return [ProjectInfo.model_validate(row) for row in rows]

    def update(self, project: ProjectInfo) -> None:
        with self._session("update project") as db:
            row = get_project(db, project.id)
            row.name = project.name
            row.description = project.description
            row.tags = list(project.tags)
            row.iac_tool_id = project.iac_tool_id
            row.cloud_provider = project.cloud_provider
            row.region = project.region
            row.updated_at = datetime.utcnow()
            db.commit()

    def delete(self, project_id: UUID | str) -> None:
        with self._session("delete project") as db:
            db.delete(get_project(db, project_id))
            db.commit()
            logger.info("Deleted project", extra={"project_id": str(project_id)})

"""SQLAlchemy models for projects and their persisted architectures."""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from archforge.db import Base


class Project(Base):
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    iac_tool_id: Mapped[str] = mapped_column(String(64), default="terraform")
    cloud_provider: Mapped[str] = mapped_column(String(32), default="aws")
    region: Mapped[str] = mapped_column(String(64), default="us-east-1")
    diagram_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    # architecture-level settings that are not resources (variables, outputs)
    architecture_meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    resources = relationship(
        "ProjectResource",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectResource.position",
    )
    containments = relationship("ResourceContainment", back_populates="project", cascade="all, delete-orphan")
    dependencies = relationship("ResourceDependency", back_populates="project", cascade="all, delete-orphan")
    pricing = relationship("ProjectPricing", back_populates="project", cascade="all, delete-orphan")


class ProjectResource(Base):
    __tablename__ = "project_resources"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id"), index=True)
    resource_key: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(255))
    type_name: Mapped[str] = mapped_column(String(64))
    category: Mapped[str] = mapped_column(String(64), default="general")
    ir_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    provider: Mapped[str] = mapped_column(String(32))
    region: Mapped[str] = mapped_column(String(64))
    properties: Mapped[dict] = mapped_column(JSON, default=dict)
    position: Mapped[int] = mapped_column(Integer)

    project = relationship("Project", back_populates="resources")


class ResourceContainment(Base):
    __tablename__ = "resource_containments"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id"), index=True)
    parent_key: Mapped[str] = mapped_column(String(255))
    child_key: Mapped[str] = mapped_column(String(255))

    project = relationship("Project", back_populates="containments")


class ResourceDependency(Base):
    __tablename__ = "resource_dependencies"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id"), index=True)
    dependent_key: Mapped[str] = mapped_column(String(255))
    dependency_key: Mapped[str] = mapped_column(String(255))

    project = relationship("Project", back_populates="dependencies")


class ProjectPricing(Base):
    __tablename__ = "project_pricing"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("projects.id"), index=True)
    total_cost: Mapped[float] = mapped_column(Float)
    currency: Mapped[str] = mapped_column(String(8), default="USD")
    period: Mapped[str] = mapped_column(String(32))
    duration_seconds: Mapped[float] = mapped_column(Float)
    provider: Mapped[str] = mapped_column(String(32))
    region: Mapped[str] = mapped_column(String(64))
    breakdown: Mapped[list[dict]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="pricing")

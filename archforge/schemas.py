"""Pydantic schemas for pipeline requests, results and API payloads."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class CreateProjectRequest(BaseModel):
    user_id: str
    name: str
    description: Optional[str] = None
    tags: List[str] = []
    iac_tool_id: str = "terraform"
    cloud_provider: str = "aws"
    region: str = "us-east-1"


class ProjectInfo(BaseModel):
    id: UUID
    user_id: str
    name: str
    description: Optional[str] = None
    tags: List[str] = []
    iac_tool_id: str
    cloud_provider: str
    region: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ResourceCostEstimate(BaseModel):
    resource_id: str
    resource_type: str
    hourly_rate: float
    total_cost: float


class ArchitectureCostEstimate(BaseModel):
    total_cost: float
    currency: str = "USD"
    period: str
    duration: timedelta
    resource_estimates: List[ResourceCostEstimate] = []
    provider: str
    region: str


class ProjectPricingInfo(BaseModel):
    id: UUID
    project_id: UUID
    total_cost: float
    currency: str
    period: str
    duration_seconds: float
    provider: str
    region: str
    breakdown: List[Dict[str, Any]] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class PersistResult(BaseModel):
    project_id: UUID
    pricing: Optional[ArchitectureCostEstimate] = None


class ProcessDiagramRequest(BaseModel):
    diagram_bytes: bytes
    user_id: str
    project_name: str
    iac_tool_id: str = ""
    cloud_provider: str = ""
    region: str = ""
    pricing_duration: Optional[timedelta] = None

    @field_validator("pricing_duration")
    @classmethod
    def _non_negative(cls, value: Optional[timedelta]) -> Optional[timedelta]:
        if value is not None and value.total_seconds() < 0:
            raise ValueError("pricing_duration cannot be negative")
        return value


class ProcessDiagramResult(BaseModel):
    project_id: Optional[UUID] = None
    success: bool
    message: str
    pricing_estimate: Optional[ArchitectureCostEstimate] = None
    warnings: List[str] = []


class GenerateCodeRequest(BaseModel):
    project_id: UUID
    engine: str = ""
    cloud_provider: str = ""


# HTTP payloads


class DiagramSubmission(BaseModel):
    diagram: Union[Dict[str, Any], str]
    user_id: str
    project_name: str
    iac_tool_id: str = ""
    cloud_provider: str = ""
    region: str = ""
    pricing_duration_hours: Optional[float] = Field(default=None, ge=0)


class GenerateCodePayload(BaseModel):
    engine: str = ""
    cloud_provider: str = ""


class GeneratedFileResponse(BaseModel):
    path: str
    content: str
    type: str


class GenerateCodeResponse(BaseModel):
    project_id: UUID
    engine: str
    files: List[GeneratedFileResponse]
    warnings: List[str] = []

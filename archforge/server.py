"""HTTP API for compiling diagrams and generating code."""
from __future__ import annotations

import json
import logging
from datetime import timedelta
from typing import List
from uuid import UUID

from fastapi import Depends, FastAPI, HTTPException, Request

from archforge.container import build_orchestrator
from archforge.db import init_db
from archforge.errors import (
    ArchForgeError,
    CyclicDependencyError,
    DiagramValidationError,
    MappingError,
    ParseError,
    PipelineCancelled,
    ProjectNotFoundError,
    RuleValidationError,
    UnknownEngineError,
)
from archforge.orchestrator.pipeline import PipelineOrchestrator
from archforge.schemas import (
    DiagramSubmission,
    GenerateCodePayload,
    GenerateCodeRequest,
    GenerateCodeResponse,
    GeneratedFileResponse,
    ProcessDiagramRequest,
    ProcessDiagramResult,
    ProjectInfo,
    ProjectPricingInfo,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Archforge API")

def get_orchestrator(request: Request) -> PipelineOrchestrator:
    return request.app.state.orchestrator


@app.on_event("startup")
def on_startup() -> None:
    init_db()
    app.state.orchestrator = build_orchestrator()


@app.get("/health")
async def health():
    return {"status": "ok"}


_STATUS_BY_ERROR = (
    (ProjectNotFoundError, 404),
    (ParseError, 400),
    (UnknownEngineError, 400),
    (DiagramValidationError, 422),
    (RuleValidationError, 422),
    (MappingError, 422),
    (CyclicDependencyError, 422),
    (PipelineCancelled, 504),
)


def _http_error(exc: ArchForgeError) -> HTTPException:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    detail = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, DiagramValidationError):
        detail["errors"] = [issue.to_dict() for issue in exc.errors]
    elif isinstance(exc, RuleValidationError):
        detail["errors"] = [violation.to_dict() for violation in exc.violations]
    elif isinstance(exc, CyclicDependencyError):
        detail["resource_ids"] = sorted(exc.ids)
    if status == 500:
        logger.error("Request failed", extra={"error": detail})
    return HTTPException(status_code=status, detail=detail)


@app.get("/api/engines")
def list_engines(orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    return {"engines": orchestrator.codegen.supported_engines(), "default": orchestrator.default_engine}


@app.post("/api/diagrams", response_model=ProcessDiagramResult)
def process_diagram(
    payload: DiagramSubmission,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    diagram = payload.diagram if isinstance(payload.diagram, str) else json.dumps(payload.diagram)
    request = ProcessDiagramRequest(
        diagram_bytes=diagram.encode("utf-8"),
        user_id=payload.user_id,
        project_name=payload.project_name,
        iac_tool_id=payload.iac_tool_id,
        cloud_provider=payload.cloud_provider,
        region=payload.region,
        pricing_duration=timedelta(hours=payload.pricing_duration_hours) if payload.pricing_duration_hours else None,
    )
    try:
        return orchestrator.process_diagram(request)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc


@app.get("/api/projects/{project_id}", response_model=ProjectInfo)
def get_project(project_id: UUID, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.projects.get_by_id(project_id)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc


@app.get("/api/projects/{project_id}/pricing", response_model=List[ProjectPricingInfo])
def get_project_pricing(project_id: UUID, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.projects.get_project_pricing(project_id)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc


@app.get("/api/users/{user_id}/projects", response_model=List[ProjectInfo])
def list_projects(user_id: str, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    try:
        return orchestrator.projects.list_by_user_id(user_id)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc


@app.delete("/api/projects/{project_id}", status_code=204)
def delete_project(project_id: UUID, orchestrator: PipelineOrchestrator = Depends(get_orchestrator)):
    try:
        orchestrator.projects.delete(project_id)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc


@app.post("/api/projects/{project_id}/code", response_model=GenerateCodeResponse)
def generate_code(
    project_id: UUID,
    payload: GenerateCodePayload,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
):
    request = GenerateCodeRequest(project_id=project_id, engine=payload.engine, cloud_provider=payload.cloud_provider)
    try:
        output = orchestrator.generate_code(request)
    except ArchForgeError as exc:
        raise _http_error(exc) from exc
    return GenerateCodeResponse(
        project_id=project_id,
        engine=payload.engine or orchestrator.default_engine,
        files=[GeneratedFileResponse(**item.to_dict()) for item in output.files],
        warnings=list(output.warnings),
    )

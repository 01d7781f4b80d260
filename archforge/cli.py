"""CLI interface."""
from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

import typer

from archforge.architecture.service import ArchitectureService
from archforge.architecture.toposort import topological_sort
from archforge.container import build_engine_registry, build_mapper_registry, build_orchestrator
from archforge.db import init_db
from archforge.diagram.service import DiagramService
from archforge.errors import ArchForgeError
from archforge.providers import default_providers
from archforge.schemas import GenerateCodeRequest, ProcessDiagramRequest
from archforge.utils.config import settings

app = typer.Typer(add_completion=False)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level.")):
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level.upper())


def _read_diagram(path: Path) -> bytes:
    if not path.exists():
        raise typer.BadParameter(f"Diagram file not found: {path}")
    return path.read_bytes()


def _fail(exc: ArchForgeError) -> None:
    payload = {"error": type(exc).__name__, "message": str(exc)}
    errors = getattr(exc, "errors", None) or getattr(exc, "violations", None)
    if errors:
        payload["details"] = [item.to_dict() for item in errors]
    typer.echo(json.dumps(payload, indent=2), err=True)
    raise typer.Exit(code=1)


@app.command()
def validate(
    file: Path = typer.Option(..., "--file", "-f", help="Diagram JSON file."),
    provider: str = typer.Option(settings.default_provider, "--provider"),
    strict: bool = typer.Option(False, "--strict", help="Check node types and properties for the provider."),
):
    """Validate a diagram without storing anything."""
    service = DiagramService(default_providers())
    try:
        graph = service.parse(_read_diagram(file))
    except ArchForgeError as exc:
        _fail(exc)
    result = service.validate(graph, service.options_for(provider) if strict else None)
    typer.echo(
        json.dumps(
            {
                "valid": result.valid,
                "errors": [issue.to_dict() for issue in result.errors],
                "warnings": [issue.to_dict() for issue in result.warnings],
            },
            indent=2,
        )
    )
    if not result.valid:
        raise typer.Exit(code=1)


@app.command("sort")
def sort_diagram(
    file: Path = typer.Option(..., "--file", "-f", help="Diagram JSON file."),
    provider: str = typer.Option(settings.default_provider, "--provider"),
):
    """Print the dependency order of a diagram's resources."""
    providers = default_providers()
    service = ArchitectureService(build_mapper_registry(providers), providers)
    try:
        graph = DiagramService(providers).parse(_read_diagram(file))
        arch = service.map_from_diagram(graph, provider)
    except ArchForgeError as exc:
        _fail(exc)
    result = topological_sort(arch)
    typer.echo(
        json.dumps(
            {
                "order": [resource.id for resource in result.resources],
                "levels": [[resource.id for resource in level] for level in result.levels],
                "cycle": sorted(result.cycle_ids),
            },
            indent=2,
        )
    )
    if result.has_cycle:
        raise typer.Exit(code=1)


@app.command("compile")
def compile_diagram(
    file: Path = typer.Option(..., "--file", "-f", help="Diagram JSON file."),
    user: str = typer.Option("local", "--user", help="Owner of the created project."),
    name: str = typer.Option("Architecture Project", "--name"),
    provider: str = typer.Option("", "--provider"),
    region: str = typer.Option("", "--region"),
    iac_tool: str = typer.Option("", "--iac-tool"),
    pricing_hours: float = typer.Option(0.0, "--pricing-hours", help="Estimate cost over this many hours."),
):
    """Validate a diagram and store it as a new project."""
    init_db()
    orchestrator = build_orchestrator()
    request = ProcessDiagramRequest(
        diagram_bytes=_read_diagram(file),
        user_id=user,
        project_name=name,
        iac_tool_id=iac_tool,
        cloud_provider=provider,
        region=region,
        pricing_duration=timedelta(hours=pricing_hours) if pricing_hours > 0 else None,
    )
    try:
        result = orchestrator.process_diagram(request)
    except ArchForgeError as exc:
        _fail(exc)
    typer.echo(result.model_dump_json(indent=2))


@app.command()
def generate(
    project_id: str = typer.Argument(..., help="Project id returned by compile."),
    engine: str = typer.Option("", "--engine", "-e"),
    provider: str = typer.Option("", "--provider"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o"),
):
    """Generate IaC files for a stored project."""
    init_db()
    orchestrator = build_orchestrator()
    try:
        request = GenerateCodeRequest(project_id=project_id, engine=engine, cloud_provider=provider)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    try:
        output = orchestrator.generate_code(request)
    except ArchForgeError as exc:
        _fail(exc)
    target = output_dir or Path(settings.output_dir) / project_id / (engine or settings.default_engine)
    written = output.write_to(target)
    typer.echo(
        json.dumps(
            {"files": [str(path) for path in written], "warnings": output.warnings},
            indent=2,
        )
    )


@app.command()
def engines():
    """List registered IaC engines."""
    registry = build_engine_registry(default_providers())
    typer.echo(json.dumps({"engines": registry.names(), "default": settings.default_engine}, indent=2))


if __name__ == "__main__":
    app()

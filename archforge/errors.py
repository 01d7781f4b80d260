"""Error taxonomy shared by every compile stage.

Each error keeps its class when a pipeline stage adds context, so callers can
branch on the failure kind while still reading messages such as
``failed to map diagram to architecture: unsupported resource type ...``.
"""
from __future__ import annotations

from typing import Any, FrozenSet, Iterable, List, Optional, Sequence


class ArchForgeError(Exception):
    """Base class for all compile-pipeline failures."""

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def in_stage(self, stage: str) -> "ArchForgeError":
        """Prefix the error with the pipeline stage that observed it."""
        self.stage = stage if not self.stage else f"{stage}: {self.stage}"
        return self

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ParseError(ArchForgeError):
    """Raised when diagram bytes are not a well-formed diagram document."""


class DiagramValidationError(ArchForgeError):
    """Raised when a diagram has structural defects."""

    def __init__(self, message: str, errors: Sequence[Any], warnings: Sequence[Any] = ()):
        super().__init__(message)
        self.errors: List[Any] = list(errors)
        self.warnings: List[Any] = list(warnings)


class MappingError(ArchForgeError):
    """Raised when a node cannot be mapped to a provider resource."""

    def __init__(self, message: str, node_id: str | None = None, node_type: str | None = None):
        super().__init__(message)
        self.node_id = node_id
        self.node_type = node_type


class ArchitectureIntegrityError(ArchForgeError):
    """Raised when an Architecture breaks its reference or containment invariants."""

    def __init__(self, message: str, problems: Iterable[str] = ()):
        super().__init__(message)
        self.problems = list(problems)


class RuleValidationError(ArchForgeError):
    def __init__(self, message: str, violations: Sequence[Any]):
        super().__init__(message)
        self.violations: List[Any] = list(violations)


class CyclicDependencyError(ArchForgeError):
    """Raised when resources cannot be ordered because of a precedence cycle."""

    def __init__(self, ids: Iterable[str]):
        self.ids: FrozenSet[str] = frozenset(ids)
        super().__init__(
            "circular dependency detected involving resources: " + ", ".join(sorted(self.ids))
        )


class EngineRegistrationError(ArchForgeError):
    pass


class DuplicateEngineError(EngineRegistrationError):
    def __init__(self, name: str):
        super().__init__(f"engine {name!r} is already registered")
        self.name = name


class UnknownEngineError(ArchForgeError, LookupError):
    def __init__(self, name: str, supported: Sequence[str] = ()):
        self.name = name
        self.supported = list(supported)
        message = f"unsupported engine: {name}"
        if self.supported:
            message += ". Supported engines: " + ", ".join(self.supported)
        super().__init__(message)


class CodegenError(ArchForgeError):
    """Raised when an engine cannot render an architecture."""


class DuplicateOutputPathError(CodegenError):
    def __init__(self, path: str):
        super().__init__(f"duplicate output path: {path}")
        self.path = path


class PersistenceError(ArchForgeError):
    """Raised when project storage or pricing collaborators fail."""


class ProjectNotFoundError(PersistenceError, LookupError):
    def __init__(self, project_id: Any):
        super().__init__(f"project not found: {project_id}")
        self.project_id = project_id


class PipelineError(ArchForgeError):
    """Raised when a collaborator fails outside the storage stages."""


class PipelineCancelled(PipelineError):
    def __init__(self, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"pipeline cancelled: {reason}")
        self.reason = reason
        self.cause = cause

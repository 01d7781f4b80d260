"""IaC engines and the registry that selects them."""
from archforge.codegen.engine import Engine
from archforge.codegen.output import GeneratedFile, Output
from archforge.codegen.pulumi import PulumiEngine
from archforge.codegen.registry import EngineRegistry
from archforge.codegen.service import CodegenService
from archforge.codegen.terraform import TerraformEngine

__all__ = [
    "CodegenService",
    "Engine",
    "EngineRegistry",
    "GeneratedFile",
    "Output",
    "PulumiEngine",
    "TerraformEngine",
]

"""Terraform engine.

Terraform orders resources from references on its own, but resources are still
written in resolver order so diffs stay readable, and explicit dependency edges
become ``depends_on`` lists. Attribute keys are sorted for stable output.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping

from archforge.architecture.models import Architecture, Resource
from archforge.codegen.engine import unique_identifiers
from archforge.codegen.output import Output
from archforge.errors import CodegenError
from archforge.providers.catalog import ProviderCatalog, ProviderRegistry, Reference, RenderedResource

logger = logging.getLogger(__name__)

_BARE_KEY = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_TYPE_EXPRESSION = re.compile(r"(string|number|bool|any|(list|set|map)\((string|number|bool|any)\))")
_INDENT = "  "


def hcl_string(value: str) -> str:
    escaped = json.dumps(value, ensure_ascii=False)
    return escaped.replace("${", "$${").replace("%{", "%%{")


def _hcl_key(key: str) -> str:
    return key if _BARE_KEY.match(key) else hcl_string(key)


def _block_label(kind: str, name: Any) -> str:
    if not isinstance(name, str) or not _BARE_KEY.fullmatch(name):
        raise CodegenError(f"invalid {kind} name: {name!r}")
    return name


def _is_block_list(value: Any) -> bool:
    return isinstance(value, list) and bool(value) and all(isinstance(item, dict) for item in value)


class HclWriter:
    """Renders attribute maps as HCL bodies."""

    def __init__(self, addresses: Mapping[str, str]):
        self.addresses = addresses

    def value(self, value: Any, depth: int) -> str:
        if isinstance(value, Reference):
            address = self.addresses.get(value.resource_id)
            if address is None:
                return hcl_string(value.resource_id)
            return f"{address}.{value.attribute}"
        if value is None:
            return "null"
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return repr(value)
        if isinstance(value, str):
            return hcl_string(value)
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self.value(item, depth) for item in value) + "]"
        if isinstance(value, dict):
            if not value:
                return "{}"
            pad = _INDENT * (depth + 1)
            width = max(len(_hcl_key(str(key))) for key in value)
            lines = ["{"]
            for key in sorted(value, key=str):
                lines.append(f"{pad}{_hcl_key(str(key)).ljust(width)} = {self.value(value[key], depth + 1)}")
            lines.append(_INDENT * depth + "}")
            return "\n".join(lines)
        return hcl_string(str(value))

    def body(self, attributes: Mapping[str, Any], depth: int = 1) -> List[str]:
        pad = _INDENT * depth
        simple = {key: val for key, val in attributes.items() if not _is_block_list(val)}
        blocks = {key: val for key, val in attributes.items() if _is_block_list(val)}
        lines: List[str] = []
        width = max((len(key) for key in simple), default=0)
        for key in sorted(simple):
            lines.append(f"{pad}{key.ljust(width)} = {self.value(simple[key], depth)}")
        for key in sorted(blocks):
            for item in blocks[key]:
                lines.append("")
                lines.append(f"{pad}{key} {{")
                lines.extend(self.body(item, depth + 1))
                lines.append(f"{pad}}}")
        return lines

    def block(self, header: str, attributes: Mapping[str, Any]) -> str:
        return "\n".join([f"{header} {{", *self.body(attributes), "}"])


class TerraformEngine:
    name = "terraform"

    def __init__(self, providers: ProviderRegistry):
        self.providers = providers

    def _catalog(self, arch: Architecture) -> ProviderCatalog:
        catalog = self.providers.get(arch.provider)
        if catalog is None:
            raise CodegenError(f"terraform engine has no catalog for provider {arch.provider!r}")
        return catalog

    def generate(self, arch: Architecture, sorted_resources: List[Resource]) -> Output:
        catalog = self._catalog(arch)
        names = unique_identifiers(sorted_resources)
        try:
            rendered = [catalog.render(resource, arch) for resource in sorted_resources]
        except KeyError as exc:
            raise CodegenError(str(exc.args[0])) from exc
        addresses = {item.resource_id: f"{item.terraform_type}.{names[item.resource_id]}" for item in rendered}
        writer = HclWriter(addresses)

        output = Output()
        output.add("providers.tf", self._providers_file(catalog, writer), "terraform")
        output.add("variables.tf", self._variables_file(arch, writer), "terraform")
        output.add("main.tf", self._main_file(arch, rendered, names, writer), "terraform")
        output.add("outputs.tf", self._outputs_file(arch, rendered, names, writer), "terraform")
        logger.info(
            "Generated terraform files",
            extra={"provider": arch.provider, "resource_count": len(rendered)},
        )
        return output

    def _providers_file(self, catalog: ProviderCatalog, writer: HclWriter) -> str:
        lines = [
            "terraform {",
            '  required_version = ">= 1.5.0"',
            "",
            "  required_providers {",
            f"    {catalog.name} = {{",
            f"      source  = {hcl_string(catalog.terraform_source)}",
            f"      version = {hcl_string(catalog.terraform_version)}",
            "    }",
            "  }",
            "}",
            "",
            f'provider "{catalog.name}" {{',
            "  region = var.region",
            "}",
        ]
        return "\n".join(lines) + "\n"

    def _variables_file(self, arch: Architecture, writer: HclWriter) -> str:
        blocks = [
            "\n".join(
                [
                    'variable "region" {',
                    '  description = "Region to deploy into"',
                    "  type        = string",
                    f"  default     = {hcl_string(arch.region)}",
                    "}",
                ]
            )
        ]
        for variable in arch.variables:
            name = variable.get("name")
            if not name or name == "region":
                continue
            lines = [f'variable "{_block_label("variable", name)}" {{']
            if variable.get("description"):
                lines.append(f"  description = {hcl_string(str(variable['description']))}")
            if variable.get("type"):
                if not _TYPE_EXPRESSION.fullmatch(str(variable["type"])):
                    raise CodegenError(f"unsupported type for variable {name!r}: {variable['type']!r}")
                lines.append(f"  type        = {variable['type']}")
            if "default" in variable:
                lines.append(f"  default     = {writer.value(variable['default'], 1)}")
            if variable.get("sensitive"):
                lines.append("  sensitive   = true")
            lines.append("}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks) + "\n"

    def _main_file(
        self,
        arch: Architecture,
        rendered: List[RenderedResource],
        names: Dict[str, str],
        writer: HclWriter,
    ) -> str:
        blocks = []
        for item in rendered:
            attributes = dict(item.attributes)
            depends = [
                writer.addresses[dep]
                for dep in arch.dependencies_of(item.resource_id)
                if dep in writer.addresses
            ]
            header = f'resource "{item.terraform_type}" "{names[item.resource_id]}"'
            lines = [f"{header} {{", *writer.body(attributes)]
            if depends:
                if attributes:
                    lines.append("")
                lines.append(f"  depends_on = [{', '.join(sorted(depends))}]")
            lines.append("}")
            blocks.append("\n".join(lines))
        if not blocks:
            return "# No resources defined.\n"
        return "\n\n".join(blocks) + "\n"

    def _outputs_file(
        self,
        arch: Architecture,
        rendered: List[RenderedResource],
        names: Dict[str, str],
        writer: HclWriter,
    ) -> str:
        blocks = []
        declared = set()
        for entry in arch.outputs:
            name = entry.get("name")
            if not name or name in declared:
                continue
            declared.add(name)
            lines = [f'output "{_block_label("output", name)}" {{']
            if entry.get("description"):
                lines.append(f"  description = {hcl_string(str(entry['description']))}")
            lines.append(f"  value       = {self._output_value(entry, writer)}")
            lines.append("}")
            blocks.append("\n".join(lines))
        for item in rendered:
            name = f"{names[item.resource_id]}_id"
            if name in declared:
                continue
            declared.add(name)
            blocks.append(
                "\n".join(
                    [
                        f'output "{name}" {{',
                        f"  value = {writer.addresses[item.resource_id]}.id",
                        "}",
                    ]
                )
            )
        return "\n\n".join(blocks) + "\n" if blocks else ""

    def _output_value(self, entry: Mapping[str, Any], writer: HclWriter) -> str:
        value = entry.get("value")
        if isinstance(value, dict) and value.get("resource") in writer.addresses:
            return writer.value(Reference(value["resource"], value.get("attribute", "id")), 1)
        if isinstance(value, str) and "." in value:
            resource_id, attribute = value.split(".", 1)
            if resource_id in writer.addresses:
                return writer.value(Reference(resource_id, attribute), 1)
        return writer.value(value, 1)

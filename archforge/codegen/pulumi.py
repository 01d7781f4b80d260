"""Pulumi (Python) engine.

A Pulumi program is plain Python and runs top to bottom, so every resource must
be declared after the resources it references: statements follow the resolver
order exactly.
"""
from __future__ import annotations

import json
import keyword
import logging
from typing import Any, Dict, List, Set

import yaml

from archforge.architecture.models import Architecture, Resource
from archforge.codegen.engine import unique_identifiers
from archforge.codegen.output import Output
from archforge.errors import CodegenError
from archforge.providers.catalog import ProviderCatalog, ProviderRegistry, Reference, RenderedResource

logger = logging.getLogger(__name__)

_RESERVED = {"pulumi", "config", "region"}


def _py_string(value: str) -> str:
    return json.dumps(value)


class PulumiEngine:
    name = "pulumi"

    def __init__(self, providers: ProviderRegistry, stack: str = "dev"):
        self.providers = providers
        self.stack = stack

    def generate(self, arch: Architecture, sorted_resources: List[Resource]) -> Output:
        catalog = self.providers.get(arch.provider)
        if catalog is None:
            raise CodegenError(f"pulumi engine has no catalog for provider {arch.provider!r}")
        names = self._variable_names(sorted_resources, catalog)
        try:
            rendered = [catalog.render(resource, arch) for resource in sorted_resources]
        except KeyError as exc:
            raise CodegenError(str(exc.args[0])) from exc

        project = f"{arch.provider}-infrastructure"
        output = Output()
        output.add("Pulumi.yaml", self._project_file(project), "yaml")
        output.add(f"Pulumi.{self.stack}.yaml", self._stack_file(catalog, arch), "yaml")
        output.add("requirements.txt", f"pulumi>=3.0.0,<4.0.0\n{catalog.pulumi_package}\n", "text")
        output.add("__main__.py", self._program(arch, catalog, rendered, names), "python")
        logger.info(
            "Generated pulumi program",
            extra={"provider": arch.provider, "resource_count": len(rendered)},
        )
        return output

    def _variable_names(self, resources: List[Resource], catalog: ProviderCatalog) -> Dict[str, str]:
        names = unique_identifiers(resources)
        taken = set(names.values())
        reserved = _RESERVED | {catalog.name}
        for resource_id in sorted(names):
            name = names[resource_id]
            if keyword.iskeyword(name) or name in reserved:
                candidate = f"{name}_resource"
                while candidate in taken:
                    candidate += "_"
                taken.add(candidate)
                names[resource_id] = candidate
        return names

    def _project_file(self, project: str) -> str:
        data = {
            "name": project,
            "runtime": {"name": "python", "options": {"virtualenv": "venv"}},
            "description": "Infrastructure compiled from an architecture diagram",
        }
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    def _stack_file(self, catalog: ProviderCatalog, arch: Architecture) -> str:
        data = {"config": {f"{catalog.name}:region": arch.region}}
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)

    def _value(self, value: Any, names: Dict[str, str], declared: Set[str]) -> str:
        if isinstance(value, Reference):
            name = names.get(value.resource_id)
            if name is None:
                return _py_string(value.resource_id)
            if value.resource_id not in declared:
                raise CodegenError(
                    f"resource {value.resource_id!r} is referenced before it is declared; "
                    "connect the two resources with a dependency or containment edge"
                )
            return f"{name}.{value.attribute}"
        if value is None or isinstance(value, (bool, int, float)):
            return repr(value)
        if isinstance(value, str):
            return _py_string(value)
        if isinstance(value, (list, tuple)):
            return "[" + ", ".join(self._value(item, names, declared) for item in value) + "]"
        if isinstance(value, dict):
            items = ", ".join(
                f"{_py_string(str(key))}: {self._value(value[key], names, declared)}"
                for key in sorted(value, key=str)
            )
            return "{" + items + "}"
        return _py_string(str(value))

    def _program(
        self,
        arch: Architecture,
        catalog: ProviderCatalog,
        rendered: List[RenderedResource],
        names: Dict[str, str],
    ) -> str:
        lines = [
            '"""Pulumi program compiled from an architecture diagram."""',
            "import pulumi",
            f"import {catalog.pulumi_module} as {catalog.name}",
            "",
            "config = pulumi.Config()",
            "",
        ]
        declared: Set[str] = set()
        for item in rendered:
            var = names[item.resource_id]
            lines.append(f"{var} = {item.pulumi_type}(")
            lines.append(f"    {_py_string(item.resource_id)},")
            for key in sorted(item.attributes):
                lines.append(f"    {key}={self._value(item.attributes[key], names, declared)},")
            depends = [names[dep] for dep in arch.dependencies_of(item.resource_id) if dep in names]
            if depends:
                lines.append(f"    opts=pulumi.ResourceOptions(depends_on=[{', '.join(sorted(depends))}]),")
            lines.append(")")
            lines.append("")
            declared.add(item.resource_id)
        for item in rendered:
            var = names[item.resource_id]
            lines.append(f"pulumi.export({_py_string(var + '_id')}, {var}.id)")
        return "\n".join(lines).rstrip("\n") + "\n"

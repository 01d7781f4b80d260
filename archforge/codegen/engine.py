"""Engine contract shared by every IaC backend."""
from __future__ import annotations

import re
from typing import List, Protocol, runtime_checkable

from archforge.architecture.models import Architecture, Resource
from archforge.codegen.output import Output


@runtime_checkable
class Engine(Protocol):
    """Turns a sorted Architecture into target-language files.

    Engines decide file layout and whether the supplied order is honoured in
    the emitted text; per-resource details come from the provider catalog.
    """

    @property
    def name(self) -> str:
        ...

    def generate(self, arch: Architecture, sorted_resources: List[Resource]) -> Output:
        ...


_IDENTIFIER = re.compile(r"[^A-Za-z0-9_]")


def identifier(resource_id: str) -> str:
    """Turn a resource id into a name valid in HCL and Python."""
    token = _IDENTIFIER.sub("_", resource_id).strip("_") or "resource"
    if token[0].isdigit():
        token = f"r_{token}"
    return token.lower()


def unique_identifiers(resources: List[Resource]) -> dict[str, str]:
    """Map resource ids to identifiers, suffixing collisions deterministically."""
    names: dict[str, str] = {}
    taken: set[str] = set()
    for resource_id in sorted(resource.id for resource in resources):
        base = identifier(resource_id)
        candidate = base
        counter = 2
        while candidate in taken:
            candidate = f"{base}_{counter}"
            counter += 1
        taken.add(candidate)
        names[resource_id] = candidate
    return names

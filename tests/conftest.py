import json

import pytest

from archforge.architecture.models import Architecture, Resource, ResourceType


def web_diagram() -> dict:
    """vpc contains subnet, instance depends on subnet."""
    return {
        "nodes": [
            {"id": "vpc", "type": "vpc", "properties": {"name": "main", "cidr": "10.0.0.0/16"}},
            {"id": "subnet", "type": "subnet", "properties": {"name": "public", "cidr": "10.0.1.0/24"}},
            {"id": "instance", "type": "ec2", "properties": {"name": "web", "instanceType": "t3.micro"}},
        ],
        "edges": [
            {"source": "subnet", "target": "vpc", "kind": "contains"},
            {"source": "instance", "target": "subnet", "kind": "depends_on"},
        ],
    }


def make_resource(resource_id: str, type_name: str = "ec2", **properties) -> Resource:
    return Resource(
        id=resource_id,
        name=resource_id,
        type=ResourceType(name=type_name),
        provider="aws",
        region="us-east-1",
        properties=properties,
    )


def make_architecture(*resources: Resource, containments=(), dependencies=()) -> Architecture:
    """Build an Architecture from (parent, child) and (dependent, dependency) pairs."""
    arch = Architecture(provider="aws", region="us-east-1")
    for resource in resources:
        arch.add_resource(resource)
    for parent_id, child_id in containments:
        arch.add_containment(parent_id, child_id)
    for dependent_id, dependency_id in dependencies:
        arch.add_dependency(dependent_id, dependency_id)
    return arch


@pytest.fixture
def diagram_dict():
    return web_diagram()


@pytest.fixture
def diagram_bytes():
    return json.dumps(web_diagram()).encode("utf-8")

import pytest

from archforge.architecture.service import ArchitectureService
from archforge.container import build_mapper_registry
from archforge.diagram.parser import parse_diagram
from archforge.errors import MappingError
from archforge.providers import default_providers


@pytest.fixture
def service():
    providers = default_providers()
    return ArchitectureService(build_mapper_registry(providers), providers, default_region="eu-west-1")


def test_nodes_map_to_resources_with_same_ids(service, diagram_dict):
    arch = service.map_from_diagram(parse_diagram(diagram_dict), "aws")
    assert arch.resource_ids() == ["vpc", "subnet", "instance"]
    instance = arch.get("instance")
    assert instance.type.name == "ec2"
    assert instance.type.ir_type == "aws_instance"
    assert instance.name == "web"
    assert instance.provider == "aws"
    assert arch.containments == {"vpc": {"subnet"}}
    assert arch.dependencies == {"instance": {"subnet"}}


def test_mapping_is_deterministic(service, diagram_dict):
    first = service.map_from_diagram(parse_diagram(diagram_dict), "aws")
    second = service.map_from_diagram(parse_diagram(diagram_dict), "aws")
    assert first.to_dict() == second.to_dict()


def test_aliases_map_to_canonical_type(service):
    graph = parse_diagram({"nodes": [{"id": "web", "type": "instance"}, {"id": "db", "type": "database"}]})
    arch = service.map_from_diagram(graph, "aws")
    assert [resource.type.name for resource in arch.resources] == ["ec2", "rds"]


def test_unsupported_type_names_the_node(service):
    graph = parse_diagram({"nodes": [{"id": "vpc", "type": "vpc"}, {"id": "q1", "type": "quantum"}]})
    with pytest.raises(MappingError) as excinfo:
        service.map_from_diagram(graph, "aws")
    assert excinfo.value.node_id == "q1"
    assert "unsupported resource type 'quantum' for provider 'aws'" in str(excinfo.value)


def test_unknown_provider_fails_on_first_node(service, diagram_dict):
    with pytest.raises(MappingError):
        service.map_from_diagram(parse_diagram(diagram_dict), "gcp")


def test_association_edges_are_dropped(service):
    graph = parse_diagram(
        {
            "nodes": [{"id": "web", "type": "ec2"}, {"id": "assets", "type": "s3"}],
            "edges": [{"source": "web", "target": "assets", "kind": "association"}],
        }
    )
    arch = service.map_from_diagram(graph, "aws")
    assert arch.containments == {}
    assert arch.dependencies == {}


def test_region_node_sets_region_and_is_not_a_resource(service):
    graph = parse_diagram(
        {
            "nodes": [
                {"id": "region", "type": "region", "properties": {"name": "ap-south-1"}},
                {"id": "vpc", "type": "vpc", "parentId": "region"},
            ]
        }
    )
    arch = service.map_from_diagram(graph, "aws")
    assert arch.region == "ap-south-1"
    assert arch.resource_ids() == ["vpc"]
    assert arch.get("vpc").region == "ap-south-1"
    assert arch.containments == {}


def test_explicit_region_wins_over_region_node(service):
    graph = parse_diagram(
        {"nodes": [{"id": "region", "type": "region", "properties": {"name": "ap-south-1"}}, {"id": "s3", "type": "s3"}]}
    )
    assert service.map_from_diagram(graph, "aws", region="us-west-2").region == "us-west-2"


def test_default_region_applies_without_region_node(service, diagram_dict):
    assert service.map_from_diagram(parse_diagram(diagram_dict), "aws").region == "eu-west-1"


def test_visual_only_nodes_are_skipped(service):
    graph = parse_diagram(
        {
            "nodes": [{"id": "note", "type": "text", "isVisualOnly": True}, {"id": "s3", "type": "s3"}],
            "edges": [{"source": "s3", "target": "note", "kind": "depends_on"}],
        }
    )
    arch = service.map_from_diagram(graph, "aws")
    assert arch.resource_ids() == ["s3"]
    assert arch.dependencies == {}

import json

import pytest

from archforge.diagram.graph import EdgeKind
from archforge.diagram.parser import parse_diagram
from archforge.errors import ParseError


def test_parse_builds_nodes_and_typed_edges(diagram_bytes):
    graph = parse_diagram(diagram_bytes)
    assert list(graph.nodes) == ["vpc", "subnet", "instance"]
    assert graph.nodes["vpc"].properties["cidr"] == "10.0.0.0/16"
    kinds = {(edge.source, edge.target): edge.kind for edge in graph.edges}
    assert kinds[("subnet", "vpc")] == EdgeKind.CONTAINMENT
    assert kinds[("instance", "subnet")] == EdgeKind.DEPENDENCY


@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"{not json",
        b"[1, 2, 3]",
        b"\xff\xfe",
        json.dumps({"edges": []}).encode(),
        json.dumps({"nodes": "vpc"}).encode(),
        json.dumps({"nodes": [{"type": "vpc"}]}).encode(),
        json.dumps({"nodes": [], "edges": [{"source": "a"}]}).encode(),
    ],
)
def test_malformed_documents_raise_parse_error(raw):
    with pytest.raises(ParseError):
        parse_diagram(raw)


def test_schema_errors_name_the_offending_location():
    with pytest.raises(ParseError) as excinfo:
        parse_diagram({"nodes": [{"id": "a"}, {"id": 7}]})
    assert "nodes/1/id" in str(excinfo.value)


def test_unknown_edge_kind_is_rejected():
    payload = {"nodes": [{"id": "a", "type": "vpc"}], "edges": [{"source": "a", "target": "a", "kind": "owns"}]}
    with pytest.raises(ParseError) as excinfo:
        parse_diagram(payload)
    assert "unknown edge kind: owns" in str(excinfo.value)


def test_canvas_edge_types_default_to_dependency():
    payload = {
        "nodes": [{"id": "a", "type": "ec2"}, {"id": "b", "type": "subnet"}],
        "edges": [{"source": "a", "target": "b", "type": "smoothstep"}],
    }
    graph = parse_diagram(payload)
    assert graph.edges[0].kind == EdgeKind.DEPENDENCY


def test_edge_kind_can_come_from_edge_data():
    payload = {
        "nodes": [{"id": "a", "type": "ec2"}, {"id": "b", "type": "s3"}],
        "edges": [{"source": "a", "target": "b", "type": "default", "data": {"kind": "association"}}],
    }
    graph = parse_diagram(payload)
    assert graph.edges[0].kind == EdgeKind.ASSOCIATION


def test_parent_id_becomes_containment_edge():
    payload = {
        "nodes": [
            {"id": "vpc", "type": "vpc"},
            {"id": "subnet", "type": "subnet", "parentId": "vpc"},
        ]
    }
    graph = parse_diagram(payload)
    assert graph.containers_of("subnet") == ["vpc"]
    assert graph.children_of("vpc") == ["subnet"]


def test_canvas_node_data_supplies_type_config_and_visual_flag():
    payload = {
        "nodes": [
            {
                "id": "web",
                "type": "awsNode",
                "data": {"resourceType": "ec2", "label": "Web", "config": {"instanceType": "t3.small"}},
            },
            {"id": "note", "type": "text", "data": {"isVisualOnly": True}},
        ]
    }
    graph = parse_diagram(payload)
    web = graph.nodes["web"]
    assert web.type == "ec2"
    assert web.label == "Web"
    assert web.name == "Web"
    assert web.properties == {"instanceType": "t3.small"}
    assert graph.nodes["note"].visual_only


def test_double_encoded_document_is_accepted(diagram_dict):
    raw = json.dumps(json.dumps(diagram_dict))
    graph = parse_diagram(raw)
    assert set(graph.nodes) == {"vpc", "subnet", "instance"}


def test_structural_defects_are_left_for_validation():
    payload = {
        "nodes": [{"id": "a", "type": "vpc"}, {"id": "a", "type": "subnet"}, {"id": "b", "type": ""}],
        "edges": [{"source": "a", "target": "missing"}],
    }
    graph = parse_diagram(payload)
    assert graph.duplicate_node_ids == ["a"]
    assert graph.nodes["a"].type == "vpc"
    assert graph.edges[0].target == "missing"


def test_variables_and_outputs_are_kept():
    payload = {
        "nodes": [{"id": "vpc", "type": "vpc"}],
        "variables": [{"name": "env", "type": "string", "default": "dev"}],
        "outputs": [{"name": "vpc_arn", "value": "vpc.arn"}],
    }
    graph = parse_diagram(payload)
    assert graph.variables[0]["name"] == "env"
    assert graph.outputs[0]["value"] == "vpc.arn"


@pytest.mark.parametrize(
    "section, entry, location",
    [
        ("variables", {"name": 'env" {\n}\nresource "x" "y'}, "variables/0/name"),
        ("variables", {"name": "env\n"}, "variables/0/name"),
        ("variables", {"name": "env", "type": "string\n}\nresource"}, "variables/0/type"),
        ("variables", {"name": "env", "type": "object({})"}, "variables/0/type"),
        ("outputs", {"name": "1st", "value": "vpc.id"}, "outputs/0/name"),
    ],
)
def test_variable_and_output_declarations_are_checked(section, entry, location):
    with pytest.raises(ParseError) as excinfo:
        parse_diagram({"nodes": [{"id": "vpc", "type": "vpc"}], section: [entry]})
    assert location in str(excinfo.value)


def test_collection_variable_types_are_accepted():
    graph = parse_diagram(
        {"nodes": [{"id": "vpc", "type": "vpc"}], "variables": [{"name": "zones", "type": "list(string)"}]}
    )
    assert graph.variables[0]["type"] == "list(string)"

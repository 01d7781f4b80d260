import copy

from archforge.diagram.parser import parse_diagram
from archforge.diagram.schema import default_schema_registry
from archforge.diagram.service import DiagramService
from archforge.diagram.validator import IssueSeverity, validate
from archforge.providers import default_providers


def _strict_options():
    return DiagramService(default_providers()).options_for("aws")


def test_valid_diagram_has_no_errors(diagram_dict):
    result = validate(parse_diagram(diagram_dict))
    assert result.valid
    assert result.errors == []


def test_three_independent_defects_are_all_reported():
    graph = parse_diagram(
        {
            "nodes": [
                {"id": "vpc", "type": "vpc"},
                {"id": "vpc", "type": "vpc"},
                {"id": "blank", "type": ""},
            ],
            "edges": [{"source": "vpc", "target": "ghost", "kind": "depends_on"}],
        }
    )
    result = validate(graph)
    assert not result.valid
    assert sorted(result.codes()) == ["DANGLING_EDGE_TARGET", "DUPLICATE_NODE_ID", "EMPTY_NODE_TYPE"]


def test_validation_does_not_modify_the_graph(diagram_dict):
    diagram_dict["edges"].append({"source": "instance", "target": "nowhere"})
    graph = parse_diagram(diagram_dict)
    before = copy.deepcopy(graph.to_dict())
    validate(graph, _strict_options())
    assert graph.to_dict() == before


def test_dependency_cycle_names_its_members():
    graph = parse_diagram(
        {
            "nodes": [{"id": "a", "type": "ec2"}, {"id": "b", "type": "ec2"}, {"id": "c", "type": "s3"}],
            "edges": [
                {"source": "a", "target": "b", "kind": "depends_on"},
                {"source": "b", "target": "a", "kind": "depends_on"},
                {"source": "c", "target": "a", "kind": "depends_on"},
            ],
        }
    )
    result = validate(graph)
    cycle = [issue for issue in result.errors if issue.code == "DEPENDENCY_CYCLE"]
    assert len(cycle) == 1
    assert cycle[0].node_ids == ("a", "b")


def test_containment_plus_dependency_cycle_is_reported():
    graph = parse_diagram(
        {
            "nodes": [{"id": "vpc", "type": "vpc"}, {"id": "subnet", "type": "subnet", "parentId": "vpc"}],
            "edges": [{"source": "vpc", "target": "subnet", "kind": "depends_on"}],
        }
    )
    result = validate(graph)
    assert result.codes() == ["PRECEDENCE_CYCLE"]


def test_node_inside_two_containers_is_an_error():
    graph = parse_diagram(
        {
            "nodes": [
                {"id": "vpc-a", "type": "vpc"},
                {"id": "vpc-b", "type": "vpc"},
                {"id": "subnet", "type": "subnet", "parentId": "vpc-a"},
            ],
            "edges": [{"source": "subnet", "target": "vpc-b", "kind": "contains"}],
        }
    )
    result = validate(graph)
    assert result.codes() == ["MULTIPLE_CONTAINERS"]
    assert result.errors[0].node_ids == ("vpc-a", "vpc-b")


def test_self_loops_and_duplicates():
    graph = parse_diagram(
        {
            "nodes": [{"id": "a", "type": "ec2"}, {"id": "b", "type": "s3"}],
            "edges": [
                {"source": "a", "target": "a", "kind": "depends_on"},
                {"source": "b", "target": "b", "kind": "association"},
                {"source": "a", "target": "b", "kind": "association"},
                {"source": "a", "target": "b", "kind": "association"},
            ],
        }
    )
    result = validate(graph)
    assert result.codes() == ["SELF_LOOP"]
    warning_codes = sorted(issue.code for issue in result.warnings)
    assert warning_codes == ["DUPLICATE_EDGE", "SELF_LOOP"]
    assert all(issue.severity == IssueSeverity.WARNING for issue in result.warnings)


def test_strict_options_reject_unknown_types_and_bad_properties():
    graph = parse_diagram(
        {
            "nodes": [
                {"id": "vpc", "type": "vpc", "properties": {"cidr": "10.0.0.300/16"}},
                {"id": "mystery", "type": "quantum-computer"},
                {"id": "web", "type": "instance", "properties": {"instanceType": "t3.micro", "ami": "img-1"}},
            ]
        }
    )
    result = validate(graph, _strict_options())
    by_node = {(issue.code, issue.node_id) for issue in result.errors}
    assert ("UNKNOWN_NODE_TYPE", "mystery") in by_node
    assert ("INVALID_PROPERTY", "vpc") in by_node
    assert ("INVALID_PROPERTY", "web") in by_node
    messages = " ".join(issue.message for issue in result.errors)
    assert "invalid CIDR block" in messages
    assert "must start with 'ami-'" in messages


def test_strict_options_warn_about_unusual_containers():
    graph = parse_diagram(
        {
            "nodes": [
                {"id": "vpc", "type": "vpc", "properties": {"cidr": "10.0.0.0/16"}},
                {"id": "web", "type": "ec2", "parentId": "vpc", "properties": {"instanceType": "t3.micro"}},
            ]
        }
    )
    result = validate(graph, _strict_options())
    assert result.valid
    assert [issue.code for issue in result.warnings] == ["INVALID_CONTAINER"]


def test_visual_only_nodes_skip_type_checks():
    graph = parse_diagram({"nodes": [{"id": "note", "type": "sticky-note", "isVisualOnly": True}]})
    assert validate(graph, _strict_options()).valid


def test_property_schema_reports_each_failed_constraint():
    schema = default_schema_registry().get("aws", "lambda")
    problems = schema.check_properties(
        {"runtime": "cobol", "memorySize": 64, "timeout": "30", "functionName": "bad name!"}
    )
    assert problems[:2] == [
        "property 'functionName' does not match pattern [A-Za-z0-9_-]+",
        "property 'memorySize' must be >= 128",
    ]
    assert len(problems) == 3
    assert problems[2].startswith("property 'runtime' must be one of: python3.10")


def test_property_schema_required_and_type_checks():
    schema = default_schema_registry().get("aws", "listener")
    assert schema.check_properties({"port": ""}) == ["missing required property 'port'"]
    assert schema.check_properties({"port": "eighty"}) == ["property 'port' must be an integer"]
    assert schema.check_properties({"port": "443", "protocol": "HTTPS"}) == []


def test_cidr_is_checked_as_a_format():
    schema = default_schema_registry().get("aws", "subnet")
    assert schema.check_properties({"cidr": "10.0.1.0/24"}) == []
    assert schema.check_properties({"cidr": "10.0.1.0/33"}) == ["property 'cidr' invalid CIDR block '10.0.1.0/33'"]
    assert schema.json_schema()["properties"]["cidr"]["format"] == "cidr"

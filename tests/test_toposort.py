import random

import pytest

from archforge.architecture.toposort import kahn_order, sort_resources, topological_sort
from archforge.errors import CyclicDependencyError

from conftest import make_architecture, make_resource


def _ids(resources):
    return [resource.id for resource in resources]


def test_container_and_dependency_order_vpc_subnet_instance():
    arch = make_architecture(
        make_resource("instance", "ec2"),
        make_resource("subnet", "subnet"),
        make_resource("vpc", "vpc"),
        containments=[("vpc", "subnet")],
        dependencies=[("instance", "subnet")],
    )
    assert _ids(sort_resources(arch)) == ["vpc", "subnet", "instance"]


def test_every_edge_is_respected_and_every_resource_emitted_once():
    arch = make_architecture(
        *(make_resource(name) for name in ["a", "b", "c", "d", "e", "f"]),
        containments=[("a", "b"), ("a", "c")],
        dependencies=[("d", "b"), ("d", "c"), ("e", "d"), ("f", "a")],
    )
    order = _ids(sort_resources(arch))
    assert sorted(order) == ["a", "b", "c", "d", "e", "f"]
    position = {resource_id: index for index, resource_id in enumerate(order)}
    for parent_id, child_id in arch.containment_pairs():
        assert position[parent_id] < position[child_id]
    for dependency_id, dependent_id in arch.dependency_pairs():
        assert position[dependency_id] < position[dependent_id]


def test_ready_resources_are_emitted_smallest_id_first():
    arch = make_architecture(make_resource("zeta"), make_resource("alpha"), make_resource("mid"))
    assert _ids(sort_resources(arch)) == ["alpha", "mid", "zeta"]


def test_order_does_not_depend_on_insertion_order():
    names = [f"r{index:02d}" for index in range(12)]
    dependencies = [("r05", "r01"), ("r07", "r05"), ("r03", "r11"), ("r09", "r03")]
    baseline = None
    rng = random.Random(7)
    for _ in range(5):
        shuffled = names[:]
        rng.shuffle(shuffled)
        arch = make_architecture(*(make_resource(name) for name in shuffled), dependencies=dependencies)
        order = _ids(sort_resources(arch))
        if baseline is None:
            baseline = order
        assert order == baseline


def test_two_resource_cycle_names_both_ids():
    arch = make_architecture(
        make_resource("A"),
        make_resource("B"),
        dependencies=[("A", "B"), ("B", "A")],
    )
    with pytest.raises(CyclicDependencyError) as excinfo:
        sort_resources(arch)
    assert excinfo.value.ids == frozenset({"A", "B"})
    assert "A, B" in str(excinfo.value)


def test_cycle_report_names_every_unresolved_resource():
    arch = make_architecture(
        make_resource("a"),
        make_resource("b"),
        make_resource("c"),
        make_resource("downstream"),
        make_resource("free"),
        dependencies=[("a", "b"), ("b", "c"), ("c", "a"), ("downstream", "a")],
    )
    result = topological_sort(arch)
    assert result.has_cycle
    assert result.cycle_ids == {"a", "b", "c", "downstream"}
    assert result.cycle_members == {"a", "b", "c"}
    assert result.resources == []


def test_cycle_across_containment_and_dependency_is_detected():
    arch = make_architecture(
        make_resource("vpc", "vpc"),
        make_resource("subnet", "subnet"),
        containments=[("vpc", "subnet")],
        dependencies=[("vpc", "subnet")],
    )
    with pytest.raises(CyclicDependencyError) as excinfo:
        sort_resources(arch)
    assert excinfo.value.ids == {"vpc", "subnet"}


def test_levels_group_by_longest_path_from_a_root():
    arch = make_architecture(
        make_resource("vpc", "vpc"),
        make_resource("subnet", "subnet"),
        make_resource("sg", "security-group"),
        make_resource("instance", "ec2"),
        containments=[("vpc", "subnet"), ("vpc", "sg")],
        dependencies=[("instance", "subnet"), ("instance", "sg"), ("instance", "vpc")],
    )
    result = topological_sort(arch)
    assert [_ids(level) for level in result.levels] == [["vpc"], ["sg", "subnet"], ["instance"]]


def test_empty_architecture_sorts_to_empty_list():
    assert sort_resources(make_architecture()) == []


def test_kahn_order_ignores_edges_to_unknown_ids():
    result = kahn_order(["a", "b"], [("a", "b"), ("ghost", "a")])
    assert result.order == ["a", "b"]
    assert result.leftover == set()


def test_cycle_error_includes_resource_blocked_behind_the_cycle():
    arch = make_architecture(
        make_resource("A"),
        make_resource("B"),
        make_resource("C"),
        dependencies=[("A", "B"), ("B", "A"), ("C", "A")],
    )
    with pytest.raises(CyclicDependencyError) as excinfo:
        sort_resources(arch)
    assert excinfo.value.ids == frozenset({"A", "B", "C"})


def test_kahn_order_separates_cycle_members_from_blocked_ids():
    result = kahn_order(["a", "b", "c"], [("a", "b"), ("b", "a"), ("a", "c")])
    assert result.leftover == {"a", "b", "c"}
    assert result.on_cycle == {"a", "b"}

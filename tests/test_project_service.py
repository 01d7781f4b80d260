from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from archforge import db_models  # noqa: F401
from archforge.architecture.service import ArchitectureService
from archforge.container import build_mapper_registry
from archforge.db import Base
from archforge.diagram.parser import parse_diagram
from archforge.errors import PersistenceError, ProjectNotFoundError
from archforge.providers import default_providers
from archforge.schemas import CreateProjectRequest
from archforge.services.pricing_service import PricingService, describe_period
from archforge.services.project_service import ProjectService


test_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def setup_database():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield


@pytest.fixture
def providers():
    return default_providers()


@pytest.fixture
def service(providers):
    return ProjectService(session_factory=TestingSessionLocal, pricing=PricingService(providers, currency="USD"))


@pytest.fixture
def compiled(providers, diagram_dict):
    graph = parse_diagram(diagram_dict)
    mapper = ArchitectureService(build_mapper_registry(providers), providers, default_region="us-east-1")
    return graph, mapper.map_from_diagram(graph, "aws")


def _create(service, user_id="user-1", name="web"):
    return service.create(CreateProjectRequest(user_id=user_id, name=name))


def test_create_and_get_project(service):
    created = _create(service)
    loaded = service.get_by_id(created.id)
    assert loaded.id == created.id
    assert loaded.user_id == "user-1"
    assert loaded.iac_tool_id == "terraform"
    assert service.get_by_id(str(created.id)).name == "web"


@pytest.mark.parametrize("project_id", [uuid4(), "not-a-uuid"])
def test_missing_project_raises_not_found(service, project_id):
    with pytest.raises(ProjectNotFoundError):
        service.get_by_id(project_id)


def test_architecture_round_trip_keeps_order_and_edges(service, compiled):
    graph, arch = compiled
    project = _create(service)
    service.persist_architecture(project.id, arch, graph)
    loaded = service.load_architecture(project.id)
    assert loaded.resource_ids() == arch.resource_ids()
    assert loaded.containments == arch.containments
    assert loaded.dependencies == arch.dependencies
    assert loaded.get("instance").properties == {"name": "web", "instanceType": "t3.micro"}
    assert loaded.get("instance").type.ir_type == "aws_instance"
    assert loaded.region == "us-east-1"


def test_persist_replaces_previous_architecture(service, compiled):
    graph, arch = compiled
    project = _create(service)
    service.persist_architecture(project.id, arch, graph)
    smaller = parse_diagram({"nodes": [{"id": "bucket", "type": "s3"}]})
    providers = default_providers()
    replacement = ArchitectureService(build_mapper_registry(providers), providers).map_from_diagram(smaller, "aws")
    service.persist_architecture(project.id, replacement, smaller)
    loaded = service.load_architecture(project.id)
    assert loaded.resource_ids() == ["bucket"]
    assert loaded.containments == {}


def test_persist_with_pricing_records_estimate(service, compiled):
    graph, arch = compiled
    project = _create(service)
    result = service.persist_architecture_with_pricing(project.id, arch, graph, timedelta(hours=730))
    assert result.project_id == project.id
    assert result.pricing.period == "monthly"
    assert result.pricing.total_cost == pytest.approx(0.0104 * 730, abs=0.01)

    history = service.get_project_pricing(project.id)
    assert len(history) == 1
    assert history[0].total_cost == result.pricing.total_cost
    assert {item["resource_id"] for item in history[0].breakdown} == {"vpc", "subnet", "instance"}


def test_persist_with_pricing_requires_pricing_service(compiled):
    graph, arch = compiled
    service = ProjectService(session_factory=TestingSessionLocal)
    project = _create(service)
    with pytest.raises(PersistenceError):
        service.persist_architecture_with_pricing(project.id, arch, graph, timedelta(hours=1))


def test_list_update_and_delete(service, compiled):
    graph, arch = compiled
    first = _create(service, name="first")
    _create(service, name="second")
    _create(service, user_id="someone-else")
    assert {p.name for p in service.list_by_user_id("user-1")} == {"first", "second"}

    info = service.get_by_id(first.id)
    service.update(info.model_copy(update={"name": "renamed", "tags": ["prod"]}))
    assert service.get_by_id(first.id).tags == ["prod"]

    service.persist_architecture(first.id, arch, graph)
    service.delete(first.id)
    with pytest.raises(ProjectNotFoundError):
        service.load_architecture(first.id)
    assert {p.name for p in service.list_by_user_id("user-1")} == {"second"}


def test_pricing_uses_instance_size_rates(providers, compiled):
    _, arch = compiled
    arch.get("instance").properties["instanceType"] = "m5.large"
    estimate = PricingService(providers).estimate(arch, timedelta(hours=10))
    by_id = {item.resource_id: item for item in estimate.resource_estimates}
    assert by_id["instance"].hourly_rate == 0.096
    assert by_id["vpc"].total_cost == 0
    assert estimate.total_cost == pytest.approx(0.96)
    assert estimate.period == "10h"


def test_pricing_rejects_non_positive_duration(providers, compiled):
    _, arch = compiled
    with pytest.raises(ValueError):
        PricingService(providers).estimate(arch, timedelta(0))


def test_describe_period():
    assert describe_period(timedelta(hours=24)) == "daily"
    assert describe_period(timedelta(hours=1)) == "hourly"
    assert describe_period(timedelta(minutes=90)) == "1.5h"

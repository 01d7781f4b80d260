import json
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from archforge import db_models  # noqa: F401
from archforge.container import build_orchestrator
from archforge.db import Base
from archforge import server
from archforge.orchestrator.pipeline import PipelineOrchestrator
from archforge.server import app, get_orchestrator


test_engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def client():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    orchestrator = build_orchestrator(session_factory=TestingSessionLocal)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    yield TestClient(app)
    app.dependency_overrides.clear()


def _submit(client, diagram, **extra):
    payload = {"diagram": diagram, "user_id": "user-1", "project_name": "web"}
    payload.update(extra)
    return client.post("/api/diagrams", json=payload)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_list_engines(client):
    data = client.get("/api/engines").json()
    assert data == {"engines": ["pulumi", "terraform"], "default": "terraform"}


def test_compile_then_generate(client, diagram_dict):
    resp = _submit(client, diagram_dict, pricing_duration_hours=730)
    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert "Estimated cost: $7.59 USD" in data["message"]
    project_id = data["project_id"]

    project = client.get(f"/api/projects/{project_id}").json()
    assert project["name"] == "web"
    assert project["region"] == "us-east-1"

    pricing = client.get(f"/api/projects/{project_id}/pricing").json()
    assert [entry["period"] for entry in pricing] == ["monthly"]

    code = client.post(f"/api/projects/{project_id}/code", json={"engine": "pulumi"})
    assert code.status_code == 200
    body = code.json()
    assert body["engine"] == "pulumi"
    assert {item["path"] for item in body["files"]} == {"Pulumi.yaml", "Pulumi.dev.yaml", "requirements.txt", "__main__.py"}


def test_diagram_may_be_sent_as_a_string(client, diagram_dict):
    resp = _submit(client, json.dumps(diagram_dict))
    assert resp.status_code == 200
    project_id = resp.json()["project_id"]
    code = client.post(f"/api/projects/{project_id}/code", json={})
    assert code.json()["engine"] == "terraform"


def test_parse_error_is_bad_request(client):
    resp = _submit(client, "{not json")
    assert resp.status_code == 400
    assert resp.json()["detail"]["error"] == "ParseError"


def test_validation_errors_are_listed(client):
    diagram = {"nodes": [{"id": "a", "type": ""}], "edges": [{"source": "a", "target": "ghost"}]}
    resp = _submit(client, diagram)
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert detail["error"] == "DiagramValidationError"
    assert {item["code"] for item in detail["errors"]} == {"EMPTY_NODE_TYPE", "DANGLING_EDGE_TARGET"}


def test_rule_violations_are_unprocessable(client):
    resp = _submit(client, {"nodes": [{"id": "lonely", "type": "subnet"}]})
    assert resp.status_code == 422
    assert resp.json()["detail"]["errors"][0]["resource_id"] == "lonely"


def test_unknown_project_is_not_found(client):
    assert client.get(f"/api/projects/{uuid4()}").status_code == 404
    assert client.post(f"/api/projects/{uuid4()}/code", json={}).status_code == 404


def test_unknown_engine_is_bad_request(client):
    project_id = _submit(client, {"nodes": [{"id": "bucket", "type": "s3"}]}).json()["project_id"]
    resp = client.post(f"/api/projects/{project_id}/code", json={"engine": "cdk"})
    assert resp.status_code == 400
    assert "Supported engines: pulumi, terraform" in resp.json()["detail"]["message"]


def test_list_and_delete_projects(client):
    project_id = _submit(client, {"nodes": [{"id": "bucket", "type": "s3"}]}).json()["project_id"]
    listed = client.get("/api/users/user-1/projects").json()
    assert [item["id"] for item in listed] == [project_id]
    assert client.delete(f"/api/projects/{project_id}").status_code == 204
    assert client.get("/api/users/user-1/projects").json() == []


def test_startup_builds_the_orchestrator_once(monkeypatch):
    calls = []
    monkeypatch.setattr(server, "init_db", lambda: calls.append("init_db"))
    monkeypatch.setattr(server, "build_orchestrator", lambda: build_orchestrator(session_factory=TestingSessionLocal))
    Base.metadata.create_all(bind=test_engine)
    with TestClient(app) as started:
        assert calls == ["init_db"]
        assert isinstance(app.state.orchestrator, PipelineOrchestrator)
        assert started.get("/api/engines").json()["default"] == "terraform"

import json

from typer.testing import CliRunner

from archforge.cli import app

runner = CliRunner()


def _json(text):
    # log lines may precede the JSON document on the captured stream
    return json.loads(text[text.index("{"):])


def _write(tmp_path, diagram):
    path = tmp_path / "diagram.json"
    path.write_text(json.dumps(diagram), encoding="utf-8")
    return str(path)


def test_sort_prints_dependency_order(tmp_path, diagram_dict):
    result = runner.invoke(app, ["sort", "--file", _write(tmp_path, diagram_dict)])
    assert result.exit_code == 0
    data = _json(result.stdout)
    assert data["order"] == ["vpc", "subnet", "instance"]
    assert data["levels"] == [["vpc"], ["subnet"], ["instance"]]
    assert data["cycle"] == []


def test_sort_reports_cycles(tmp_path):
    diagram = {
        "nodes": [{"id": "a", "type": "s3"}, {"id": "b", "type": "s3"}],
        "edges": [
            {"source": "a", "target": "b", "kind": "depends_on"},
            {"source": "b", "target": "a", "kind": "depends_on"},
        ],
    }
    result = runner.invoke(app, ["sort", "--file", _write(tmp_path, diagram)])
    assert result.exit_code == 1
    assert _json(result.stdout)["cycle"] == ["a", "b"]


def test_validate_reports_all_errors(tmp_path):
    diagram = {
        "nodes": [{"id": "a", "type": "vpc"}, {"id": "a", "type": "vpc"}, {"id": "b", "type": ""}],
        "edges": [{"source": "a", "target": "ghost"}],
    }
    result = runner.invoke(app, ["validate", "--file", _write(tmp_path, diagram)])
    assert result.exit_code == 1
    data = _json(result.stdout)
    assert data["valid"] is False
    assert len(data["errors"]) == 3


def test_validate_strict_accepts_web_diagram(tmp_path, diagram_dict):
    result = runner.invoke(app, ["validate", "--strict", "--file", _write(tmp_path, diagram_dict)])
    assert result.exit_code == 0
    assert _json(result.stdout)["valid"] is True


def test_missing_file_is_a_usage_error(tmp_path):
    result = runner.invoke(app, ["sort", "--file", str(tmp_path / "missing.json")])
    assert result.exit_code == 2


def test_engines_lists_registered_backends():
    result = runner.invoke(app, ["engines"])
    assert result.exit_code == 0
    assert _json(result.stdout) == {"engines": ["pulumi", "terraform"], "default": "terraform"}

"""Parse canvas JSON documents into a DiagramGraph."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from jsonschema import Draft202012Validator

from archforge.diagram.graph import DiagramGraph, Edge, EdgeKind, Node
from archforge.errors import ParseError

logger = logging.getLogger(__name__)


# Variable and output names become IaC block labels; types are emitted verbatim.
IDENTIFIER_PATTERN = r"^[A-Za-z_][A-Za-z0-9_-]*\Z"
VARIABLE_TYPE_PATTERN = r"^(string|number|bool|any|(list|set|map)\((string|number|bool|any)\))\Z"

DIAGRAM_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["nodes"],
    "properties": {
        "nodes": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "type": {"type": ["string", "null"]},
                    "label": {"type": ["string", "null"]},
                    "parentId": {"type": ["string", "null"]},
                    "properties": {"type": ["object", "null"]},
                    "config": {"type": ["object", "null"]},
                    "data": {"type": ["object", "null"]},
                    "isVisualOnly": {"type": "boolean"},
                },
            },
        },
        "edges": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "required": ["source", "target"],
                "properties": {
                    "id": {"type": ["string", "null"]},
                    "source": {"type": "string"},
                    "target": {"type": "string"},
                    "kind": {"type": ["string", "null"]},
                    "type": {"type": ["string", "null"]},
                    "data": {"type": ["object", "null"]},
                },
            },
        },
        "variables": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "pattern": IDENTIFIER_PATTERN},
                    "type": {"type": "string", "pattern": VARIABLE_TYPE_PATTERN},
                    "description": {"type": ["string", "null"]},
                    "sensitive": {"type": "boolean"},
                },
            },
        },
        "outputs": {
            "type": ["array", "null"],
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "pattern": IDENTIFIER_PATTERN},
                    "description": {"type": ["string", "null"]},
                },
            },
        },
    },
}

_VALIDATOR = Draft202012Validator(DIAGRAM_SCHEMA)

_EDGE_KIND_ALIASES: Dict[str, EdgeKind] = {
    "contains": EdgeKind.CONTAINMENT,
    "containment": EdgeKind.CONTAINMENT,
    "parent": EdgeKind.CONTAINMENT,
    "depends_on": EdgeKind.DEPENDENCY,
    "depends-on": EdgeKind.DEPENDENCY,
    "dependson": EdgeKind.DEPENDENCY,
    "dependency": EdgeKind.DEPENDENCY,
    "association": EdgeKind.ASSOCIATION,
    "reference": EdgeKind.ASSOCIATION,
    "uses": EdgeKind.ASSOCIATION,
    "connects": EdgeKind.ASSOCIATION,
}

# Canvas libraries emit these as the generic edge type; they carry no kind.
_UNTYPED_EDGE_VALUES = {"", "default", "smoothstep", "straight", "step", "bezier"}


def parse_edge_kind(value: str | None) -> EdgeKind:
    token = (value or "").strip().lower()
    if token in _UNTYPED_EDGE_VALUES:
        return EdgeKind.DEPENDENCY
    try:
        return _EDGE_KIND_ALIASES[token]
    except KeyError:
        raise ParseError(f"unknown edge kind: {value}") from None


def _load_payload(raw: bytes | str | Mapping[str, Any]) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"diagram is not valid UTF-8: {exc}") from exc
    if not isinstance(raw, str) or not raw.strip():
        raise ParseError("diagram document is empty")
    try:
        payload = json.loads(raw)
        # double-encoded documents arrive as a JSON string holding the object
        if isinstance(payload, str):
            payload = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise ParseError(f"diagram is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
    if not isinstance(payload, dict):
        raise ParseError("diagram document must be a JSON object")
    return payload


def _schema_errors(payload: Dict[str, Any]) -> List[str]:
    errors = []
    for err in sorted(_VALIDATOR.iter_errors(payload), key=lambda e: [str(p) for p in e.path]):
        location = "/".join(str(part) for part in err.path) or "<root>"
        errors.append(f"{location}: {err.message}")
    return errors


def _node_from_payload(item: Dict[str, Any]) -> Node:
    data = item.get("data") or {}
    node_type = data.get("resourceType") or item.get("type") or ""
    properties: Dict[str, Any] = {}
    for source in (data.get("config"), item.get("config"), item.get("properties")):
        if isinstance(source, dict):
            properties.update(source)
    label = item.get("label") or data.get("label")
    visual_only = bool(
        item.get("isVisualOnly")
        or data.get("isVisualOnly")
        or properties.pop("isVisualOnly", False)
        or properties.pop("visual_only", False)
    )
    return Node(
        id=item["id"],
        type=str(node_type).strip(),
        properties=properties,
        label=label,
        visual_only=visual_only,
    )


def parse_diagram(raw: bytes | str | Mapping[str, Any]) -> DiagramGraph:
    """Parse diagram bytes into a graph.

    Structural defects (dangling edges, duplicate ids, empty types) are left in
    the graph for the validator to report; only a malformed document raises.
    """
    payload = _load_payload(raw)
    errors = _schema_errors(payload)
    if errors:
        raise ParseError("invalid diagram document: " + "; ".join(errors))

    graph = DiagramGraph(
        variables=list(payload.get("variables") or []),
        outputs=list(payload.get("outputs") or []),
    )
    for item in payload["nodes"]:
        node = _node_from_payload(item)
        graph.add_node(node)
        parent_id = item.get("parentId")
        if parent_id:
            graph.add_edge(Edge(source=node.id, target=parent_id, kind=EdgeKind.CONTAINMENT))

    for item in payload.get("edges") or []:
        data = item.get("data") or {}
        kind_value = item.get("kind") or data.get("kind") or item.get("type")
        graph.add_edge(
            Edge(
                source=item["source"],
                target=item["target"],
                kind=parse_edge_kind(kind_value),
                id=item.get("id"),
            )
        )

    logger.debug(
        "Parsed diagram",
        extra={"node_count": len(graph.nodes), "edge_count": len(graph.edges)},
    )
    return graph

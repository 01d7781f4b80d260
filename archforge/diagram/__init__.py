"""Diagram parsing and structural validation."""
from archforge.diagram.graph import DiagramGraph, Edge, EdgeKind, Node
from archforge.diagram.parser import parse_diagram
from archforge.diagram.validator import ValidationOptions, ValidationResult, validate

__all__ = [
    "DiagramGraph",
    "Edge",
    "EdgeKind",
    "Node",
    "ValidationOptions",
    "ValidationResult",
    "parse_diagram",
    "validate",
]

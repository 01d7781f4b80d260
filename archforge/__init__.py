"""Compile architecture diagrams into infrastructure-as-code projects."""

__version__ = "0.1.0"

"""Workflow document schema, node type registry and graph validator.

Usage::

    from src.schema import validate_workflow

    result = validate_workflow(document)
    if not result.valid:
        for error in result.errors:
            print(error)
"""

from __future__ import annotations

from src.schema.core import ValidationResult, validation_response
from src.schema.document import Edge, Node, WorkflowDocument, load_workflow_file
from src.schema.node_types import (
    NodeTypeInfo,
    NodeTypeRegistry,
    default_registry,
    get_default_registry,
    registry_from_engine,
)
from src.schema.validator import WorkflowValidator, validate_workflow

__all__ = [
    "Edge",
    "Node",
    "NodeTypeInfo",
    "NodeTypeRegistry",
    "ValidationResult",
    "WorkflowDocument",
    "WorkflowValidator",
    "default_registry",
    "get_default_registry",
    "load_workflow_file",
    "registry_from_engine",
    "validate_workflow",
    "validation_response",
]

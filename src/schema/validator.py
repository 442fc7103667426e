"""Static validation of workflow graphs.

Runs every phase over the document and returns all findings at once:

1. basic structure (name, nodes array, size heuristics)
2. per-node checks (id, name, type, position, trigger presence)
3. type-specific parameter rules
4. connection references
5. reachability from trigger nodes (BFS)
6. cycle detection (three-colour DFS)
7. performance suggestions

Validation is pure: no I/O, and the registry is only read, so one
validator may be shared across concurrent requests.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel

from src.schema.core import ValidationResult
from src.schema.node_types import NodeTypeRegistry, canonical_type, get_default_registry
from src.schema.parameter_rules import rule_for

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 255
LARGE_WORKFLOW_WARNING_THRESHOLD = 50
LARGE_WORKFLOW_SUGGESTION_THRESHOLD = 20
HTTP_REQUEST_SUGGESTION_THRESHOLD = 10

HTTP_REQUEST_TYPE = "n8n-nodes-base.httpRequest"


def _node_id(node: Mapping[str, Any]) -> str | None:
    value = node.get("id")
    if isinstance(value, bool) or not isinstance(value, str | int) or value == "":
        return None
    return str(value)


def _display_name(node: Mapping[str, Any]) -> str:
    name = node.get("name")
    return str(name) if name else str(node.get("id") or "unknown")


def _iter_targets(outputs: Any) -> Iterator[Any]:
    """Yield every raw edge entry under one source's outputs."""
    if not isinstance(outputs, Mapping):
        return
    for ports in outputs.values():
        if not isinstance(ports, list):
            continue
        for port in ports:
            if isinstance(port, list):
                yield from port


def _valid_position(position: Any) -> bool:
    if not isinstance(position, list | tuple) or len(position) != 2:
        return False
    return all(isinstance(v, int | float) and not isinstance(v, bool) for v in position)


class WorkflowValidator:
    """Validates workflow documents against a node type registry."""

    def __init__(self, registry: NodeTypeRegistry | None = None) -> None:
        self.registry = registry or get_default_registry()

    def validate(self, document: Mapping[str, Any] | BaseModel) -> ValidationResult:
        """Validate a workflow document.

        Args:
            document: Raw workflow mapping or a WorkflowDocument model.

        Returns:
            ValidationResult with every error, warning and suggestion found.
        """
        if isinstance(document, BaseModel):
            document = document.model_dump(by_alias=True, exclude_none=True)
        if not isinstance(document, Mapping):
            document = {}

        result = ValidationResult()

        if not self._check_structure(document, result):
            self._log_verdict(document, result)
            return result

        nodes = [n if isinstance(n, Mapping) else {} for n in document["nodes"]]
        connections = document.get("connections") or {}
        if not isinstance(connections, Mapping):
            connections = {}

        node_ids = self._check_nodes(nodes, result)
        self._check_connections(node_ids, connections, result)

        adjacency = self._adjacency(connections)
        self._check_reachability(nodes, adjacency, result)
        self._check_cycles(nodes, adjacency, result)
        self._check_heuristics(nodes, result)

        self._log_verdict(document, result)
        return result

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _check_structure(self, document: Mapping[str, Any], result: ValidationResult) -> bool:
        """Check name and nodes array; False stops node-based phases."""
        name = document.get("name")
        if not name or not isinstance(name, str):
            result.error("Workflow name is required and must be a string")
        elif len(name) > MAX_NAME_LENGTH:
            result.error(f"Workflow name cannot exceed {MAX_NAME_LENGTH} characters")

        nodes = document.get("nodes")
        if not isinstance(nodes, list):
            result.error("Workflow must have a nodes array")
            return False

        if not nodes:
            result.error("Workflow must have at least one node")

        if len(nodes) > LARGE_WORKFLOW_WARNING_THRESHOLD:
            result.warn(
                "Large workflow detected. Consider breaking into smaller workflows "
                "for better maintainability"
            )
        return True

    def _check_nodes(self, nodes: list[Mapping[str, Any]], result: ValidationResult) -> set[str]:
        """Per-node checks plus parameter rules. Returns the set of node ids."""
        seen: set[str] = set()
        has_trigger = False

        for node in nodes:
            node_id = _node_id(node)
            name = node.get("name")
            if node_id is None:
                result.error(f"Node missing ID: {name or 'unknown'}")
                continue

            if not name:
                result.error(f"Node missing name: {node_id}")

            if node_id in seen:
                result.error(f"Duplicate node ID: {node_id}")
            seen.add(node_id)

            node_type = node.get("type")
            if not node_type or not isinstance(node_type, str):
                result.error(f"Node missing type: {name or node_id}")
                continue

            info = self.registry.get(node_type)
            if info is None:
                result.warn(f"Unknown or uncommon node type: {node_type} in node {name}")
            elif info.is_trigger:
                has_trigger = True

            if not _valid_position(node.get("position")):
                result.warn(f"Node {name} has invalid position coordinates")

            parameters = node.get("parameters")
            if not isinstance(parameters, Mapping):
                result.warn(f"Node {name} has no parameters configured")
                continue
            rule_for(node_type)(str(name), parameters, result)

        if not has_trigger:
            result.warn("Workflow should have at least one trigger node to execute automatically")

        return seen

    def _check_connections(
        self,
        node_ids: set[str],
        connections: Mapping[str, Any],
        result: ValidationResult,
    ) -> None:
        for source, outputs in connections.items():
            if source not in node_ids:
                result.error(f"Connection from unknown node: {source}")
                continue
            for target in _iter_targets(outputs):
                target_id = target.get("node") if isinstance(target, Mapping) else target
                if not isinstance(target_id, str) or target_id not in node_ids:
                    result.error(f"Connection to unknown node: {target_id} from {source}")

    @staticmethod
    def _adjacency(connections: Mapping[str, Any]) -> dict[str, list[str]]:
        adjacency: dict[str, list[str]] = {}
        for source, outputs in connections.items():
            targets = [
                t["node"]
                for t in _iter_targets(outputs)
                if isinstance(t, Mapping) and isinstance(t.get("node"), str)
            ]
            adjacency[str(source)] = targets
        return adjacency

    def _check_reachability(
        self,
        nodes: list[Mapping[str, Any]],
        adjacency: dict[str, list[str]],
        result: ValidationResult,
    ) -> None:
        """BFS forward from every trigger node; report the rest in one warning."""
        queue: deque[str] = deque(
            node_id
            for node in nodes
            if (node_id := _node_id(node)) is not None and self.registry.is_trigger(node.get("type"))
        )
        reachable: set[str] = set()
        while queue:
            current = queue.popleft()
            if current in reachable:
                continue
            reachable.add(current)
            queue.extend(t for t in adjacency.get(current, ()) if t not in reachable)

        unreachable = [
            _display_name(node)
            for node in nodes
            if (node_id := _node_id(node)) is not None and node_id not in reachable
        ]
        if unreachable:
            result.warn(f"Unreachable nodes found: {', '.join(unreachable)}")

    def _check_cycles(
        self,
        nodes: list[Mapping[str, Any]],
        adjacency: dict[str, list[str]],
        result: ValidationResult,
    ) -> None:
        order = [node_id for node in nodes if (node_id := _node_id(node)) is not None]
        cycle_nodes = self._detect_cycles(order, adjacency)
        if cycle_nodes:
            result.error(
                f"Circular dependencies detected in workflow: {', '.join(sorted(cycle_nodes))}"
            )

    @staticmethod
    def _detect_cycles(order: list[str], adjacency: dict[str, list[str]]) -> set[str]:
        """Three-colour DFS over every node. Returns nodes on detected cycles.

        Iterative so deep chains do not hit the recursion limit. Edges to
        ids outside ``order`` are ignored.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = dict.fromkeys(order, WHITE)
        cycle_nodes: set[str] = set()

        for start in order:
            if color[start] != WHITE:
                continue
            color[start] = GRAY
            path = [start]
            stack = [iter(adjacency.get(start, ()))]
            while stack:
                for neighbor in stack[-1]:
                    if neighbor not in color:
                        continue
                    if color[neighbor] == GRAY:
                        cycle_nodes.update(path[path.index(neighbor) :])
                    elif color[neighbor] == WHITE:
                        color[neighbor] = GRAY
                        path.append(neighbor)
                        stack.append(iter(adjacency.get(neighbor, ())))
                        break
                else:
                    color[path.pop()] = BLACK
                    stack.pop()

        return cycle_nodes

    def _check_heuristics(self, nodes: list[Mapping[str, Any]], result: ValidationResult) -> None:
        if len(nodes) > LARGE_WORKFLOW_SUGGESTION_THRESHOLD:
            result.suggest("Consider breaking large workflows into smaller, reusable workflows")

        http_nodes = [
            n
            for n in nodes
            if isinstance(n.get("type"), str) and canonical_type(n["type"]) == HTTP_REQUEST_TYPE
        ]
        if len(http_nodes) > HTTP_REQUEST_SUGGESTION_THRESHOLD:
            result.suggest(
                "High number of HTTP requests detected. Consider batching or caching strategies"
            )

    @staticmethod
    def _log_verdict(document: Mapping[str, Any], result: ValidationResult) -> None:
        logger.debug(
            "Validated workflow %r: valid=%s errors=%d warnings=%d suggestions=%d",
            document.get("name"),
            result.valid,
            len(result.errors),
            len(result.warnings),
            len(result.suggestions),
        )


_default_validator = WorkflowValidator()


def validate_workflow(
    document: Mapping[str, Any] | BaseModel,
    registry: NodeTypeRegistry | None = None,
) -> ValidationResult:
    """Validate a document with the default (or a given) registry."""
    if registry is None:
        return _default_validator.validate(document)
    return WorkflowValidator(registry).validate(document)

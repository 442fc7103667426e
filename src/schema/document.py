"""Pydantic models of the workflow document JSON shape.

These mirror what the execution engine accepts:

    {
      "name": "...",
      "nodes": [{"id", "name", "type", "parameters", "position"}],
      "connections": {"<node id>": {"main": [[{"node", "type", "index"}]]}},
      "settings": {...},
      "staticData": {...}
    }

The validator works on raw mappings so it can report on malformed input;
these models are used where a document has already been accepted (stored
workflows, deploy payloads, CLI loading).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class Edge(BaseModel):
    """One directed connection to another node's input."""

    model_config = ConfigDict(extra="allow")

    node: str = Field(description="Target node id")
    type: str = "main"
    index: int = Field(default=0, ge=0, description="Target input port")

    @property
    def target_node_id(self) -> str:
        return self.node


class Node(BaseModel):
    """A single step in a workflow graph."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str
    type: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    position: list[float] | None = None
    type_version: float | None = Field(default=None, alias="typeVersion")


# source node id -> output kind ("main") -> ports -> edges
Connections = dict[str, dict[str, list[list[Edge]]]]


class WorkflowDocument(BaseModel):
    """A complete workflow graph."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    name: str = Field(min_length=1, max_length=255)
    nodes: list[Node] = Field(default_factory=list)
    connections: Connections = Field(default_factory=dict)
    settings: dict[str, Any] = Field(default_factory=dict)
    static_data: dict[str, Any] = Field(default_factory=dict, alias="staticData")

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}

    def edges(self) -> list[tuple[str, Edge]]:
        """Flatten connections into (source id, edge) pairs."""
        flat: list[tuple[str, Edge]] = []
        for source, outputs in self.connections.items():
            for ports in outputs.values():
                for port in ports:
                    flat.extend((source, edge) for edge in port)
        return flat

    def to_mapping(self) -> dict[str, Any]:
        """Wire-format dict (camelCase keys, unset id omitted)."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data.setdefault("settings", {})
        data.setdefault("staticData", {})
        return data

    def to_engine_payload(self, active: bool = False) -> dict[str, Any]:
        """Body for ``POST /workflows``."""
        data = self.to_mapping()
        return {
            "name": data["name"],
            "nodes": data["nodes"],
            "connections": data.get("connections") or {},
            "active": active,
            "settings": data.get("settings") or {},
            "staticData": data.get("staticData") or {},
        }


def load_workflow_file(path: str | Path) -> dict[str, Any]:
    """Read a workflow document from a JSON or YAML file.

    The raw mapping is returned unvalidated so the caller can run the
    graph validator over it and report every problem at once.

    Raises:
        ValueError: If the file does not parse or does not contain a mapping.
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: not valid JSON or YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a workflow object, got {type(data).__name__}")
    return data

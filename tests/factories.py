"""Test data factories.

Entity factories build transient ORM objects (never flushed), so every
column the code under test reads is set explicitly.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from src.storage.entities import (
    Deployment,
    DeploymentStatus,
    Workflow,
    WorkflowDeploymentStatus,
    WorkflowStatus,
)

ENGINE_API_URL = "http://n8n.test:5678/api/v1"
USER_ID = "00000000-0000-0000-0000-0000000000aa"


def make_node(node_id: str, name: str, node_type: str, **parameters: Any) -> dict[str, Any]:
    return {
        "id": node_id,
        "name": name,
        "type": node_type,
        "parameters": parameters,
        "position": [0, 0],
    }


def connect(*pairs: tuple[str, str]) -> dict[str, Any]:
    """Build a connections mapping from (source, target) pairs."""
    connections: dict[str, Any] = {}
    for source, target in pairs:
        ports = connections.setdefault(source, {"main": [[]]})["main"]
        ports[0].append({"node": target, "type": "main", "index": 0})
    return connections


def make_document(**overrides: Any) -> dict[str, Any]:
    """A small valid workflow: webhook trigger feeding an HTTP request."""
    document: dict[str, Any] = {
        "name": "Fetch on webhook",
        "nodes": [
            make_node("1", "Webhook", "n8n-nodes-base.webhook", path="incoming"),
            make_node("2", "Fetch", "n8n-nodes-base.httpRequest", url="https://api.example.com/items"),
        ],
        "connections": connect(("1", "2")),
    }
    document.update(overrides)
    return document


def make_workflow(**overrides: Any) -> Workflow:
    values: dict[str, Any] = {
        "id": "wf-1",
        "user_id": USER_ID,
        "name": "Fetch on webhook",
        "document": make_document(),
        "version": 1,
        "status": WorkflowStatus.VALIDATED,
        "deployment_status": WorkflowDeploymentStatus.NOT_DEPLOYED,
        "engine_workflow_id": None,
        "deployment_url": None,
        "deployment_error": None,
        "is_active": True,
        "deployment_retry_count": 0,
        "execution_count": 0,
        "successful_executions": 0,
        "failed_executions": 0,
        "last_execution_status": None,
        "last_execution_engine_id": None,
        "engine_active": None,
        "last_sync_at": None,
    }
    values.update(overrides)
    return Workflow(**values)


def make_deployment(**overrides: Any) -> Deployment:
    values: dict[str, Any] = {
        "id": "dep-1",
        "workflow_id": "wf-1",
        "user_id": USER_ID,
        "version": 1,
        "status": DeploymentStatus.PENDING,
        "started_at": datetime.now(UTC) - timedelta(seconds=2),
    }
    values.update(overrides)
    return Deployment(**values)

"""Workflow operations on the execution engine.

Create (deploy), activate, deactivate, delete, read and list workflows.
Every method returns a ``{"success": bool, ...}`` envelope.
"""

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from src.exceptions import EngineClientError
from src.schema.validator import WorkflowValidator

logger = logging.getLogger(__name__)


def build_deploy_payload(document: Mapping[str, Any], active: bool) -> dict[str, Any]:
    """Body for ``POST /workflows``; unknown top-level keys are dropped."""
    return {
        "name": document.get("name"),
        "nodes": document.get("nodes"),
        "connections": document.get("connections") or {},
        "active": active,
        "settings": document.get("settings") or {},
        "staticData": document.get("staticData") or {},
    }


class WorkflowMixin:
    """Mixin providing workflow lifecycle operations."""

    validator: WorkflowValidator

    async def test_connection(self) -> dict[str, Any]:
        """Check that the engine API is reachable and the key is accepted."""
        try:
            await self._request("GET", "/workflows", params={"limit": 1})
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "message": "Engine connection successful"}

    async def get_node_types(self) -> dict[str, Any]:
        """Fetch the engine's node type catalog."""
        try:
            node_types = await self._request("GET", "/node-types")
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "nodeTypes": node_types}

    async def list_workflows(self, limit: int = 100) -> dict[str, Any]:
        """List workflows known to the engine."""
        try:
            response = await self._request("GET", "/workflows", params={"limit": limit})
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        workflows = response.get("data", []) if isinstance(response, dict) else response
        if not isinstance(workflows, list):
            return {"success": False, "error": "Engine returned an unexpected workflow list"}
        return {"success": True, "workflows": workflows, "count": len(workflows)}

    async def get_workflow(self, workflow_id: str) -> dict[str, Any]:
        """Read one workflow, including its ``active`` flag."""
        try:
            workflow = await self._request("GET", f"/workflows/{workflow_id}")
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        active = bool(workflow.get("active")) if isinstance(workflow, dict) else False
        return {"success": True, "workflow": workflow, "active": active}

    async def deploy(
        self,
        document: Mapping[str, Any] | BaseModel,
        activate: bool = False,
    ) -> dict[str, Any]:
        """Validate a workflow and create it on the engine.

        Validation runs first; an invalid document is returned with its
        findings and never reaches the network.

        Args:
            document: Workflow mapping or WorkflowDocument
            activate: Create the workflow in the active state

        Returns:
            ``{"success": True, "workflowId", "n8nResponse", "validation"}`` or
            ``{"success": False, "error", "validation"?}``
        """
        if isinstance(document, BaseModel):
            document = document.model_dump(by_alias=True, exclude_none=True)

        validation = self.validator.validate(document).to_dict()
        if not validation["valid"]:
            logger.info(
                "Refusing to deploy %r: %d validation error(s)",
                document.get("name"),
                len(validation["errors"]),
            )
            return {
                "success": False,
                "error": "Workflow validation failed",
                "validation": validation,
            }

        try:
            response = await self._request(
                "POST", "/workflows", json=build_deploy_payload(document, activate)
            )
        except EngineClientError as e:
            return {"success": False, "error": str(e), "validation": validation}

        engine_id = response.get("id") if isinstance(response, dict) else None
        if engine_id is None:
            return {
                "success": False,
                "error": "Engine response did not include a workflow id",
                "validation": validation,
            }

        logger.info("Created engine workflow %s for %r", engine_id, document.get("name"))
        return {
            "success": True,
            "workflowId": str(engine_id),
            "n8nResponse": response,
            "validation": validation,
        }

    async def activate(self, workflow_id: str) -> dict[str, Any]:
        """Activate an engine workflow."""
        return await self._set_active(workflow_id, "activate")

    async def deactivate(self, workflow_id: str) -> dict[str, Any]:
        """Deactivate an engine workflow."""
        return await self._set_active(workflow_id, "deactivate")

    async def _set_active(self, workflow_id: str, action: str) -> dict[str, Any]:
        try:
            response = await self._request("POST", f"/workflows/{workflow_id}/{action}")
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        if not isinstance(response, dict):
            response = {}
        return {
            "success": True,
            "active": response.get("active", action == "activate"),
            "workflowId": str(response.get("id", workflow_id)),
        }

    async def delete(self, workflow_id: str) -> dict[str, Any]:
        """Delete an engine workflow."""
        try:
            await self._request("DELETE", f"/workflows/{workflow_id}")
        except EngineClientError as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "workflowId": workflow_id}

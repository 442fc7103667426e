"""Execution history reads from the execution engine."""

from typing import Any

from src.exceptions import EngineClientError


class ExecutionMixin:
    """Mixin providing execution queries."""

    async def get_executions(
        self,
        workflow_id: str | None = None,
        limit: int = 10,
    ) -> dict[str, Any]:
        """List recent executions, optionally for one workflow.

        Args:
            workflow_id: Engine workflow id to filter by
            limit: Maximum number of executions to return

        Returns:
            ``{"success": True, "executions": [...], "count": int}``
        """
        params: dict[str, Any] = {"limit": limit}
        if workflow_id:
            params["workflowId"] = workflow_id

        try:
            response = await self._request("GET", "/executions", params=params)
        except EngineClientError as e:
            return {"success": False, "error": str(e)}

        if isinstance(response, dict):
            executions = response.get("data") or []
            count = response.get("count", len(executions))
        elif isinstance(response, list):
            executions = response
            count = len(response)
        else:
            executions, count = [], 0

        return {"success": True, "executions": executions, "count": count}

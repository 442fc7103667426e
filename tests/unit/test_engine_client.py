"""Unit tests for the execution engine client (src/engine/).

HTTP traffic is intercepted with respx; no engine is contacted.
"""

import json

import httpx
import pytest
import respx

from src.engine import EngineClient, EngineClientConfig, editor_url_for, health_url_for
from tests.factories import ENGINE_API_URL, make_document

WORKFLOWS_URL = f"{ENGINE_API_URL}/workflows"
HEALTH_URL = "http://n8n.test:5678/healthz"


@pytest.fixture
async def client(engine_config):
    engine = EngineClient(engine_config)
    yield engine
    await engine.close()


class TestUrlDerivation:
    @pytest.mark.parametrize(
        "api_url",
        [
            "http://n8n:5678/api/v1",
            "http://n8n:5678/api/v1/",
            "http://n8n:5678/api/v2",
            "http://n8n:5678",
        ],
    )
    def test_health_url(self, api_url):
        assert health_url_for(api_url) == "http://n8n:5678/healthz"

    def test_health_url_keeps_path_prefix(self):
        assert health_url_for("https://host/n8n/api/v1") == "https://host/n8n/healthz"

    def test_editor_url(self):
        assert editor_url_for("http://n8n:5678/api/v1", "42") == "http://n8n:5678/workflow/42"

    def test_client_uses_configured_url(self, client):
        assert client.health_url == HEALTH_URL


class TestDeploy:
    @respx.mock
    async def test_invalid_document_never_reaches_engine(self, client):
        route = respx.post(WORKFLOWS_URL).mock(return_value=httpx.Response(200, json={"id": "1"}))

        result = await client.deploy({"name": "Broken", "nodes": []})

        assert result["success"] is False
        assert result["error"] == "Workflow validation failed"
        assert result["validation"]["valid"] is False
        assert "Workflow must have at least one node" in result["validation"]["errors"]
        assert route.call_count == 0

    @respx.mock
    async def test_success(self, client):
        route = respx.post(WORKFLOWS_URL).mock(
            return_value=httpx.Response(200, json={"id": 17, "name": "Fetch on webhook"})
        )

        result = await client.deploy(make_document(extra="dropped"), activate=True)

        assert result["success"] is True
        assert result["workflowId"] == "17"
        assert result["n8nResponse"]["name"] == "Fetch on webhook"
        assert result["validation"]["valid"] is True

        request = route.calls.last.request
        assert request.headers["X-N8N-API-KEY"] == "test-key"
        body = json.loads(request.content)
        assert body["active"] is True
        assert set(body) == {"name", "nodes", "connections", "active", "settings", "staticData"}

    @respx.mock
    async def test_api_error_uses_engine_message(self, client):
        respx.post(WORKFLOWS_URL).mock(
            return_value=httpx.Response(400, json={"message": "request/body must have name"})
        )

        result = await client.deploy(make_document())

        assert result["success"] is False
        assert result["error"] == "Engine API error 400: request/body must have name"
        assert result["validation"]["valid"] is True

    @respx.mock
    async def test_api_error_with_text_body(self, client):
        respx.post(WORKFLOWS_URL).mock(return_value=httpx.Response(502, text="Bad Gateway"))

        result = await client.deploy(make_document())

        assert result["error"] == "Engine API error 502: Bad Gateway"

    @respx.mock
    async def test_timeout(self, client):
        respx.post(WORKFLOWS_URL).mock(side_effect=httpx.ReadTimeout("slow"))

        result = await client.deploy(make_document())

        assert result == {
            "success": False,
            "error": "Engine request timed out: /workflows",
            "validation": result["validation"],
        }

    @respx.mock
    async def test_connection_failure(self, client):
        respx.post(WORKFLOWS_URL).mock(side_effect=httpx.ConnectError("refused"))

        result = await client.deploy(make_document())

        assert result["success"] is False
        assert result["error"] == "Engine connection failed: /workflows"

    @respx.mock
    async def test_missing_id_in_response(self, client):
        respx.post(WORKFLOWS_URL).mock(return_value=httpx.Response(200, json={"name": "x"}))

        result = await client.deploy(make_document())

        assert result["success"] is False
        assert result["error"] == "Engine response did not include a workflow id"


class TestWorkflowOperations:
    @respx.mock
    async def test_activate(self, client):
        respx.post(f"{WORKFLOWS_URL}/42/activate").mock(
            return_value=httpx.Response(200, json={"id": "42", "active": True})
        )

        assert await client.activate("42") == {"success": True, "active": True, "workflowId": "42"}

    @respx.mock
    async def test_deactivate(self, client):
        respx.post(f"{WORKFLOWS_URL}/42/deactivate").mock(
            return_value=httpx.Response(200, json={"id": "42", "active": False})
        )

        result = await client.deactivate("42")

        assert result["success"] is True
        assert result["active"] is False

    @respx.mock
    async def test_deactivate_not_found(self, client):
        respx.post(f"{WORKFLOWS_URL}/42/deactivate").mock(
            return_value=httpx.Response(404, json={"message": "Not Found"})
        )

        result = await client.deactivate("42")

        assert result == {"success": False, "error": "Engine API error 404: Not Found"}

    @respx.mock
    async def test_delete(self, client):
        route = respx.delete(f"{WORKFLOWS_URL}/42").mock(return_value=httpx.Response(200, json={}))

        assert await client.delete("42") == {"success": True, "workflowId": "42"}
        assert route.called

    @respx.mock
    async def test_get_workflow(self, client):
        respx.get(f"{WORKFLOWS_URL}/42").mock(
            return_value=httpx.Response(200, json={"id": "42", "active": True})
        )

        result = await client.get_workflow("42")

        assert result["success"] is True
        assert result["active"] is True

    @respx.mock
    async def test_list_workflows(self, client):
        route = respx.get(WORKFLOWS_URL).mock(
            return_value=httpx.Response(200, json={"data": [{"id": "1"}, {"id": "2"}]})
        )

        result = await client.list_workflows(limit=5)

        assert result["count"] == 2
        assert route.calls.last.request.url.params["limit"] == "5"

    @respx.mock
    async def test_list_workflows_html_page_is_an_error(self, client):
        respx.get(WORKFLOWS_URL).mock(
            return_value=httpx.Response(
                200, text="<html>Sign in</html>", headers={"content-type": "text/html"}
            )
        )

        result = await client.list_workflows()

        assert result == {
            "success": False,
            "error": "Engine returned a non-JSON response: /workflows",
        }

    @respx.mock
    async def test_list_workflows_rejects_non_list_data(self, client):
        respx.get(WORKFLOWS_URL).mock(return_value=httpx.Response(200, json={"data": "oops"}))

        result = await client.list_workflows()

        assert result["success"] is False
        assert result["error"] == "Engine returned an unexpected workflow list"

    @respx.mock
    async def test_connection_check(self, client):
        respx.get(WORKFLOWS_URL).mock(return_value=httpx.Response(200, json={"data": []}))

        assert await client.test_connection() == {
            "success": True,
            "message": "Engine connection successful",
        }

    @respx.mock
    async def test_node_types(self, client):
        respx.get(f"{ENGINE_API_URL}/node-types").mock(
            return_value=httpx.Response(200, json=[{"name": "n8n-nodes-base.set"}])
        )

        result = await client.get_node_types()

        assert result == {"success": True, "nodeTypes": [{"name": "n8n-nodes-base.set"}]}

    async def test_missing_api_key(self):
        engine = EngineClient(EngineClientConfig(api_url=ENGINE_API_URL, api_key=""))

        result = await engine.test_connection()

        assert result["success"] is False
        assert "API key is not configured" in result["error"]


class TestExecutions:
    @respx.mock
    async def test_filtered_by_workflow(self, client):
        route = respx.get(f"{ENGINE_API_URL}/executions").mock(
            return_value=httpx.Response(
                200, json={"data": [{"id": "9", "status": "success"}], "nextCursor": None}
            )
        )

        result = await client.get_executions("42", limit=25)

        assert result == {
            "success": True,
            "executions": [{"id": "9", "status": "success"}],
            "count": 1,
        }
        params = route.calls.last.request.url.params
        assert params["workflowId"] == "42"
        assert params["limit"] == "25"

    @respx.mock
    async def test_all_workflows(self, client):
        route = respx.get(f"{ENGINE_API_URL}/executions").mock(
            return_value=httpx.Response(200, json={"data": []})
        )

        await client.get_executions()

        assert "workflowId" not in route.calls.last.request.url.params

    @respx.mock
    async def test_error(self, client):
        respx.get(f"{ENGINE_API_URL}/executions").mock(
            return_value=httpx.Response(401, json={"message": "unauthorized"})
        )

        result = await client.get_executions("42")

        assert result == {"success": False, "error": "Engine API error 401: unauthorized"}


class TestHealth:
    @respx.mock
    async def test_healthy(self, client):
        respx.get(HEALTH_URL).mock(return_value=httpx.Response(200, json={"status": "ok"}))

        result = await client.health()

        assert result["success"] is True
        assert result["healthy"] is True
        assert result["status"] == 200
        assert "timestamp" in result

    @respx.mock
    async def test_unhealthy_status(self, client):
        respx.get(HEALTH_URL).mock(return_value=httpx.Response(503))

        result = await client.health()

        assert result["healthy"] is False
        assert result["status"] == 503

    @respx.mock
    async def test_timeout(self, client):
        respx.get(HEALTH_URL).mock(side_effect=httpx.ConnectTimeout("slow"))

        result = await client.health()

        assert result["success"] is False
        assert result["healthy"] is False
        assert result["error"] == "Health check timed out after 5s"

    @respx.mock
    async def test_unreachable(self, client):
        respx.get(HEALTH_URL).mock(side_effect=httpx.ConnectError("refused"))

        result = await client.health()

        assert result["healthy"] is False
        assert result["error"] == "refused"

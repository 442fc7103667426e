"""Unit tests for workflow document models and file loading."""

import json

import pytest
from pydantic import ValidationError

from src.schema import WorkflowDocument, load_workflow_file
from tests.factories import make_document


class TestWorkflowDocument:
    def test_parses_wire_format(self):
        document = WorkflowDocument.model_validate(
            make_document(staticData={"lastId": 3}, settings={"timezone": "UTC"})
        )

        assert document.node_ids() == {"1", "2"}
        assert document.static_data == {"lastId": 3}
        [(source, edge)] = document.edges()
        assert source == "1"
        assert edge.node == "2"
        assert edge.type == "main"

    def test_engine_payload(self):
        document = WorkflowDocument.model_validate(make_document())

        payload = document.to_engine_payload(active=True)

        assert set(payload) == {"name", "nodes", "connections", "active", "settings", "staticData"}
        assert payload["active"] is True
        assert payload["staticData"] == {}

    def test_name_bounds(self):
        with pytest.raises(ValidationError):
            WorkflowDocument.model_validate(make_document(name=""))
        with pytest.raises(ValidationError):
            WorkflowDocument.model_validate(make_document(name="x" * 256))

    def test_type_version_alias(self):
        raw = make_document()
        raw["nodes"][0]["typeVersion"] = 2

        document = WorkflowDocument.model_validate(raw)

        assert document.nodes[0].type_version == 2
        assert document.to_mapping()["nodes"][0]["typeVersion"] == 2


class TestLoadWorkflowFile:
    def test_json(self, tmp_path):
        path = tmp_path / "workflow.json"
        path.write_text(json.dumps(make_document()))

        assert load_workflow_file(path)["name"] == "Fetch on webhook"

    def test_yaml(self, tmp_path):
        path = tmp_path / "workflow.yaml"
        path.write_text("name: From YAML\nnodes: []\n")

        assert load_workflow_file(path) == {"name": "From YAML", "nodes": []}

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")

        with pytest.raises(ValueError, match="expected a workflow object"):
            load_workflow_file(path)

    def test_unparseable(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"name": "x", "nodes": [')

        with pytest.raises(ValueError, match="not valid JSON or YAML"):
            load_workflow_file(path)

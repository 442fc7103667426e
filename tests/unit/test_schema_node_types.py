"""Unit tests for the node type registry (src/schema/node_types.py)."""

import pytest

from src.schema.node_types import (
    NodeTypeInfo,
    NodeTypeRegistry,
    canonical_type,
    default_registry,
    get_default_registry,
    registry_from_engine,
)


class TestCanonicalType:
    def test_bare_name_is_qualified(self):
        assert canonical_type("webhook") == "n8n-nodes-base.webhook"

    def test_qualified_name_unchanged(self):
        assert canonical_type("@n8n/n8n-nodes-langchain.agent") == "@n8n/n8n-nodes-langchain.agent"


class TestDefaultRegistry:
    def test_shared_instance(self):
        assert get_default_registry() is default_registry

    @pytest.mark.parametrize(
        "type_id",
        ["webhook", "cron", "scheduleTrigger", "manualTrigger"],
    )
    def test_triggers(self, type_id):
        assert default_registry.is_trigger(type_id)
        assert default_registry.is_trigger(f"n8n-nodes-base.{type_id}")

    @pytest.mark.parametrize("type_id", ["set", "httpRequest", "slack", "postgres"])
    def test_non_triggers(self, type_id):
        assert type_id in default_registry
        assert not default_registry.is_trigger(type_id)

    def test_unknown_type(self):
        assert default_registry.get("acme.thing") is None
        assert not default_registry.is_trigger("acme.thing")
        assert "acme.thing" not in default_registry

    @pytest.mark.parametrize("value", [None, "", 5])
    def test_lookup_tolerates_junk(self, value):
        assert default_registry.get(value) is None  # type: ignore[arg-type]

    def test_catalog_contents(self):
        info = default_registry.get("httpRequest")

        assert info is not None
        assert info.category == "network"
        assert "url" in info.required_parameters
        assert len(default_registry) == 24
        assert {"trigger", "utility", "network", "communication", "productivity", "database"} == set(
            default_registry.categories()
        )

    def test_by_category(self):
        names = {info.type_id for info in default_registry.by_category("trigger")}

        assert names == {
            "n8n-nodes-base.webhook",
            "n8n-nodes-base.cron",
            "n8n-nodes-base.scheduleTrigger",
            "n8n-nodes-base.manualTrigger",
        }


class TestRegistryImmutability:
    def test_with_types_returns_new_registry(self):
        extra = NodeTypeInfo(type_id="acme.onEvent", category="trigger", display_name="On Event")

        extended = default_registry.with_types([extra])

        assert extended is not default_registry
        assert extended.is_trigger("acme.onEvent")
        assert "acme.onEvent" not in default_registry
        assert len(extended) == len(default_registry) + 1

    def test_info_is_frozen(self):
        info = default_registry.get("webhook")

        with pytest.raises(ValueError):
            info.category = "utility"  # type: ignore[misc, union-attr]

    def test_iteration(self):
        registry = NodeTypeRegistry(
            [NodeTypeInfo(type_id="a.b", category="utility", display_name="B")]
        )

        assert [info.type_id for info in registry] == ["a.b"]


class TestRegistryFromEngine:
    def test_builds_from_node_type_payload(self):
        registry = registry_from_engine(
            [
                {
                    "name": "n8n-nodes-base.webhook",
                    "displayName": "Webhook",
                    "group": ["trigger"],
                    "properties": [{"name": "path", "required": True}, {"name": "options"}],
                },
                {"name": "acme.sendThing", "group": ["output"], "properties": []},
                {"name": "acme.onThingTrigger", "group": []},
                {"displayName": "nameless"},
                "garbage",
            ]
        )

        assert len(registry) == 3
        webhook = registry.get("webhook")
        assert webhook is not None
        assert webhook.is_trigger
        assert webhook.required_parameters == ("path",)
        assert webhook.optional_parameters == ("options",)
        assert registry.get("acme.sendThing").category == "output"  # type: ignore[union-attr]
        assert registry.is_trigger("acme.onThingTrigger")

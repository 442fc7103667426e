"""Node type registry.

Read-only catalog mapping an execution-engine node type to its
metadata (category, display name, parameter names). The validator
uses it to recognise trigger nodes and to flag types it has never
seen; a miss means "unknown", never "invalid", so documents built
against a newer engine still validate.

The default registry is built once at import time and shared. It is
never mutated: ``with_types()`` returns a new registry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

BASE_NAMESPACE = "n8n-nodes-base"

TRIGGER_CATEGORY = "trigger"


def canonical_type(type_id: str) -> str:
    """Return the fully-qualified node type.

    Bare names (``"webhook"``) are qualified with the core node
    namespace; already-qualified names are returned unchanged.
    """
    if "." in type_id:
        return type_id
    return f"{BASE_NAMESPACE}.{type_id}"


class NodeTypeInfo(BaseModel):
    """Metadata about one node type."""

    model_config = ConfigDict(frozen=True)

    type_id: str
    category: str
    display_name: str
    description: str = ""
    required_parameters: tuple[str, ...] = ()
    optional_parameters: tuple[str, ...] = ()
    icon: str | None = None

    @property
    def is_trigger(self) -> bool:
        return self.category == TRIGGER_CATEGORY


class NodeTypeRegistry:
    """Immutable lookup of node type metadata."""

    def __init__(self, types: Iterable[NodeTypeInfo] = ()) -> None:
        self._types: Mapping[str, NodeTypeInfo] = MappingProxyType(
            {canonical_type(info.type_id): info for info in types}
        )

    def get(self, type_id: str | None) -> NodeTypeInfo | None:
        """Look up a node type; returns None for unknown types."""
        if not type_id or not isinstance(type_id, str):
            return None
        return self._types.get(canonical_type(type_id))

    def is_trigger(self, type_id: str | None) -> bool:
        info = self.get(type_id)
        return info is not None and info.is_trigger

    def by_category(self, category: str) -> list[NodeTypeInfo]:
        return [info for info in self._types.values() if info.category == category]

    def categories(self) -> list[str]:
        return sorted({info.category for info in self._types.values()})

    def with_types(self, extra: Iterable[NodeTypeInfo]) -> NodeTypeRegistry:
        """Return a new registry with ``extra`` layered over this one."""
        return NodeTypeRegistry([*self._types.values(), *extra])

    def __contains__(self, type_id: object) -> bool:
        return isinstance(type_id, str) and self.get(type_id) is not None

    def __iter__(self) -> Iterator[NodeTypeInfo]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)


def _info(
    name: str,
    category: str,
    display_name: str,
    description: str,
    icon: str,
    required: tuple[str, ...] = (),
    optional: tuple[str, ...] = (),
) -> NodeTypeInfo:
    return NodeTypeInfo(
        type_id=f"{BASE_NAMESPACE}.{name}",
        category=category,
        display_name=display_name,
        description=description,
        required_parameters=required,
        optional_parameters=optional,
        icon=icon,
    )


_DEFAULT_TYPES: tuple[NodeTypeInfo, ...] = (
    # Triggers
    _info(
        "webhook", "trigger", "Webhook", "Receive HTTP requests and trigger workflows",
        "webhook", optional=("path", "httpMethod", "responseMode", "options"),
    ),
    _info(
        "cron", "trigger", "Schedule", "Trigger workflows on a schedule",
        "clock", required=("rule",), optional=("timezone",),
    ),
    _info(
        "scheduleTrigger", "trigger", "Schedule Trigger", "Trigger workflows at fixed intervals",
        "clock", required=("rule",),
    ),
    _info(
        "manualTrigger", "trigger", "Manual Trigger", "Manually trigger workflow execution",
        "play",
    ),
    # Utility
    _info("set", "utility", "Set", "Set node properties and data", "cog", optional=("values", "options")),
    _info(
        "if", "utility", "IF", "Conditional logic branching",
        "split", optional=("conditions", "combineOperation"),
    ),
    _info(
        "switch", "utility", "Switch", "Route data based on multiple conditions",
        "split", optional=("mode", "rules", "options"),
    ),
    _info(
        "function", "utility", "Function", "Execute custom JavaScript code",
        "code", required=("functionCode",),
    ),
    _info(
        "functionItem", "utility", "Function Item", "Execute JavaScript on each item",
        "code", required=("functionCode",),
    ),
    _info(
        "code", "utility", "Code", "Run custom JavaScript or Python code",
        "code", optional=("language", "jsCode", "pythonCode", "mode"),
    ),
    _info("merge", "utility", "Merge", "Merge data of multiple streams", "merge", optional=("mode",)),
    _info("noOp", "utility", "No Operation", "Pass data through unchanged", "arrow-right"),
    # Network
    _info(
        "httpRequest", "network", "HTTP Request", "Make HTTP requests to external APIs",
        "globe", required=("url",), optional=("requestMethod", "method", "headers", "body", "options"),
    ),
    _info(
        "respondToWebhook", "network", "Respond to Webhook", "Send response back to webhook caller",
        "webhook", optional=("respondWith", "responseBody", "options"),
    ),
    # Communication
    _info(
        "slack", "communication", "Slack", "Send messages and interact with Slack",
        "slack", optional=("authentication", "resource", "operation"),
    ),
    _info(
        "gmail", "communication", "Gmail", "Send and manage Gmail emails",
        "gmail", optional=("authentication", "resource", "operation"),
    ),
    _info(
        "microsoftOutlook", "communication", "Microsoft Outlook", "Send and manage Outlook emails",
        "microsoft", optional=("authentication", "resource", "operation"),
    ),
    _info(
        "emailSend", "communication", "Send Email", "Send email via SMTP",
        "envelope", required=("toEmail",), optional=("fromEmail", "subject", "text"),
    ),
    # Productivity
    _info(
        "googleSheets", "productivity", "Google Sheets", "Read and write Google Sheets data",
        "googleSheets", optional=("authentication", "resource", "operation"),
    ),
    _info(
        "notion", "productivity", "Notion", "Interact with Notion databases and pages",
        "notion", optional=("authentication", "resource", "operation"),
    ),
    _info(
        "airtable", "productivity", "Airtable", "Read and write Airtable data",
        "airtable", optional=("authentication", "resource", "operation"),
    ),
    # Databases
    _info(
        "postgres", "database", "Postgres", "Execute PostgreSQL queries",
        "postgres", optional=("credentials", "operation", "query"),
    ),
    _info(
        "mysql", "database", "MySQL", "Execute MySQL queries",
        "mysql", optional=("credentials", "operation", "query"),
    ),
    _info(
        "supabase", "database", "Supabase", "Interact with Supabase database",
        "supabase", optional=("authentication", "resource", "operation"),
    ),
)

default_registry = NodeTypeRegistry(_DEFAULT_TYPES)


def get_default_registry() -> NodeTypeRegistry:
    """Return the process-wide default registry."""
    return default_registry


def registry_from_engine(node_types: Iterable[Mapping[str, Any]]) -> NodeTypeRegistry:
    """Build a registry from the engine's ``GET /node-types`` payload.

    Best effort: entries without a ``name`` are skipped. A type counts as
    a trigger when its ``group`` list mentions "trigger" or its name ends
    in ``Trigger``.

    Args:
        node_types: Node type descriptions as returned by the engine.

    Returns:
        New registry containing only the engine-described types.
    """
    infos: list[NodeTypeInfo] = []
    for entry in node_types:
        if not isinstance(entry, Mapping):
            continue
        name = entry.get("name")
        if not name or not isinstance(name, str):
            continue

        groups = entry.get("group") or []
        if isinstance(groups, str):
            groups = [groups]
        is_trigger = any("trigger" in str(g).lower() for g in groups) or name.endswith("Trigger")

        properties = entry.get("properties") or []
        param_names = tuple(
            p["name"] for p in properties if isinstance(p, Mapping) and isinstance(p.get("name"), str)
        )
        required = tuple(
            p["name"]
            for p in properties
            if isinstance(p, Mapping) and p.get("required") and isinstance(p.get("name"), str)
        )

        infos.append(
            NodeTypeInfo(
                type_id=name,
                category=TRIGGER_CATEGORY if is_trigger else str(groups[0]) if groups else "unknown",
                display_name=str(entry.get("displayName") or name),
                description=str(entry.get("description") or ""),
                required_parameters=required,
                optional_parameters=tuple(p for p in param_names if p not in required),
                icon=entry.get("icon") if isinstance(entry.get("icon"), str) else None,
            )
        )

    logger.debug("Built registry with %d engine node types", len(infos))
    return NodeTypeRegistry(infos)

"""Type-specific parameter rules.

Each rule inspects one node's ``parameters`` and records findings on a
ValidationResult. Rules are looked up by canonical node type; types
without an entry have no extra rules.

Custom code is parsed, never executed: JavaScript through esprima
(wrapped in a function expression so top-level ``return`` is legal, the
same way the engine runs it) and Python through ``ast``.
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlparse

import esprima
from esprima.error_handler import Error as JavaScriptSyntaxError

from src.schema.core import ValidationResult
from src.schema.node_types import canonical_type

ParameterRule = Callable[[str, Mapping[str, Any], ValidationResult], None]


def is_expression(value: Any) -> bool:
    """Engine expressions (``={{ ... }}``) are resolved at run time."""
    return isinstance(value, str) and value.startswith("=")


def is_valid_url(value: Any) -> bool:
    """Absolute http(s) URL with a host."""
    if not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def javascript_syntax_error(code: str) -> str | None:
    """Return the parser message for ``code``, or None if it parses."""
    try:
        esprima.parseScript("(function () {" + code + "\n})")
    except JavaScriptSyntaxError as e:
        return str(e)
    return None


def python_syntax_error(code: str) -> str | None:
    """Return the parser message for ``code``, or None if it parses."""
    try:
        ast.parse(code)
    except SyntaxError as e:
        return f"{e.msg} (line {e.lineno})"
    return None


# =============================================================================
# RULES
# =============================================================================


def _http_request(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    url = params.get("url")
    if not url:
        result.error(f"HTTP Request node {name} missing URL parameter")
    elif not is_expression(url) and not is_valid_url(url):
        result.error(f"HTTP Request node {name} has invalid URL format")


def _webhook(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    if not params.get("path"):
        result.suggest(f"Webhook node {name} should specify a path parameter")


def _function(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    code = params.get("functionCode")
    if not code or not isinstance(code, str):
        result.error(f"Function node {name} missing JavaScript code")
        return
    message = javascript_syntax_error(code)
    if message:
        result.error(f"Function node {name} has invalid JavaScript syntax: {message}")


def _code(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    language = str(params.get("language") or "javaScript").lower()
    if language.startswith("python"):
        code = params.get("pythonCode")
        if isinstance(code, str) and code:
            message = python_syntax_error(code)
            if message:
                result.error(f"Code node {name} has invalid Python syntax: {message}")
        return

    code = params.get("jsCode")
    if isinstance(code, str) and code:
        message = javascript_syntax_error(code)
        if message:
            result.error(f"Function node {name} has invalid JavaScript syntax: {message}")


def _cron(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    if not params.get("rule"):
        result.error(f"Schedule node {name} missing cron rule")


def _schedule_trigger(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    if not params.get("rule"):
        result.error(f"Schedule node {name} missing schedule rule")


def _email_send(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    if not params.get("toEmail"):
        result.error(f"Email node {name} missing recipient address")


PARAMETER_RULES: dict[str, ParameterRule] = {
    "n8n-nodes-base.httpRequest": _http_request,
    "n8n-nodes-base.webhook": _webhook,
    "n8n-nodes-base.function": _function,
    "n8n-nodes-base.functionItem": _function,
    "n8n-nodes-base.code": _code,
    "n8n-nodes-base.cron": _cron,
    "n8n-nodes-base.scheduleTrigger": _schedule_trigger,
    "n8n-nodes-base.emailSend": _email_send,
}


def _no_rules(name: str, params: Mapping[str, Any], result: ValidationResult) -> None:
    return None


def rule_for(node_type: str) -> ParameterRule:
    """Look up the rule for a node type, falling back to no extra rules."""
    return PARAMETER_RULES.get(canonical_type(node_type), _no_rules)

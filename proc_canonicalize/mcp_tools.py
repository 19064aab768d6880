"""Tool definitions served at ``/tools``.

``mcp_tools.json`` describes the payload of every ``/tool:<name>`` handler.
Loading checks the file against the handlers: each tool must have a handler
and a route, its ``properties`` must be exactly the fields the handler
accepts, and ``required`` must name the fields the handler insists on.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from proc_canonicalize.mcp_constants import (
    REQUIRED_PAYLOAD_FIELDS,
    TOOL_PAYLOAD_FIELDS,
    TOOL_ROUTE_PREFIX,
)

TOOLS_JSON_PATH = Path(__file__).with_name("mcp_tools.json")


class ToolSchemaError(RuntimeError):
    """Raised when tool definitions are unreadable or disagree with the handlers."""


def tool_route(name: str) -> str:
    return f"{TOOL_ROUTE_PREFIX}{name}"


def load_tool_definitions(
    path: Path | None = None,
    *,
    routes: Iterable[str] | None = None,
    payload_fields: Mapping[str, set[str]] | None = None,
) -> list[dict[str, Any]]:
    tool_path = path or TOOLS_JSON_PATH
    try:
        raw = tool_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ToolSchemaError(f"Tool definition file not found: {tool_path}") from exc
    except OSError as exc:
        raise ToolSchemaError(
            f"Unable to read tool definitions: {tool_path}"
        ) from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ToolSchemaError(f"Tool definitions JSON is invalid: {exc}") from exc
    if not isinstance(data, list):
        raise ToolSchemaError("Tool definitions must be a JSON array.")
    validate_tool_definitions(data, routes=routes, payload_fields=payload_fields)
    return data


def validate_tool_definitions(
    tools: list[Any],
    *,
    routes: Iterable[str] | None = None,
    payload_fields: Mapping[str, set[str]] | None = None,
) -> None:
    """Check ``tools`` against the handler payloads and, if given, served routes."""
    handlers = TOOL_PAYLOAD_FIELDS if payload_fields is None else payload_fields
    served = None if routes is None else set(routes)
    defined: set[str] = set()

    for index, tool in enumerate(tools):
        name, parameters = _unpack_tool(index, tool)
        if name in defined:
            raise ToolSchemaError(f"Tool '{name}' is defined more than once.")
        defined.add(name)

        accepted = handlers.get(name)
        if accepted is None:
            raise ToolSchemaError(f"Tool '{name}' has no payload handler.")
        if served is not None and tool_route(name) not in served:
            raise ToolSchemaError(
                f"Tool '{name}' is not served at {tool_route(name)}."
            )
        _check_parameters(name, parameters, accepted)

    undocumented = sorted(set(handlers) - defined)
    if undocumented:
        raise ToolSchemaError(
            f"Handlers without tool definitions: {', '.join(undocumented)}."
        )


def _unpack_tool(index: int, tool: Any) -> tuple[str, dict[str, Any]]:
    if not isinstance(tool, dict):
        raise ToolSchemaError(f"Tool at index {index} must be an object.")
    if tool.get("type") != "function":
        raise ToolSchemaError(f"Tool at index {index} must have type='function'.")
    function = tool.get("function")
    if not isinstance(function, dict):
        raise ToolSchemaError(f"Tool at index {index} is missing 'function' object.")
    name = function.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ToolSchemaError(f"Tool at index {index} must define a non-empty name.")
    parameters = function.get("parameters")
    if not isinstance(parameters, dict):
        raise ToolSchemaError(f"Tool '{name}' must include parameters object.")
    return name, parameters


def _check_parameters(
    name: str, parameters: dict[str, Any], accepted: set[str]
) -> None:
    properties = parameters.get("properties")
    if not isinstance(properties, dict):
        raise ToolSchemaError(f"Tool '{name}' must include a properties object.")

    declared = set(properties)
    if declared != accepted:
        raise ToolSchemaError(
            f"Tool '{name}' declares {sorted(declared)} but its handler "
            f"accepts {sorted(accepted)}."
        )

    required = parameters.get("required", [])
    if not isinstance(required, list) or not all(
        isinstance(field, str) for field in required
    ):
        raise ToolSchemaError(f"Tool '{name}' required must be a list of names.")
    unknown = sorted(set(required) - declared)
    if unknown:
        raise ToolSchemaError(
            f"Tool '{name}' requires undeclared fields: {', '.join(unknown)}."
        )
    if set(required) != REQUIRED_PAYLOAD_FIELDS & accepted:
        raise ToolSchemaError(
            f"Tool '{name}' must require exactly "
            f"{sorted(REQUIRED_PAYLOAD_FIELDS & accepted)}."
        )

    # Handlers reject unknown fields, so the schema must say so too.
    if parameters.get("additionalProperties") is not False:
        raise ToolSchemaError(
            f"Tool '{name}' must set additionalProperties to false."
        )

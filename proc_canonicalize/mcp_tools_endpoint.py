"""Tool definition endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.routing import APIRoute

from proc_canonicalize.errors import McpError, success_response
from proc_canonicalize.mcp_router import mcp_router
from proc_canonicalize.mcp_tools import ToolSchemaError, load_tool_definitions


def _served_routes(request: Request) -> set[str]:
    return {
        route.path for route in request.app.routes if isinstance(route, APIRoute)
    }


@mcp_router.get("/tools")
def list_tool_schemas(request: Request) -> dict[str, Any]:
    """Return the tool definitions once they agree with the routes being served."""
    try:
        tools = load_tool_definitions(routes=_served_routes(request))
    except ToolSchemaError as exc:
        raise McpError(
            "TOOL_SCHEMA_ERROR",
            "Tool definitions do not match the served tools.",
            {"error": str(exc)},
        ) from exc
    return success_response({"tools": tools})

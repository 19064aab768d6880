"""Tool handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

# Import modules to register routes with the shared router.
from proc_canonicalize import mcp_paths, mcp_tools_endpoint
from proc_canonicalize.mcp_router import mcp_router

# Re-export endpoints for tests and direct imports.
from proc_canonicalize.mcp_paths import (
    canonicalize_path,
    classify_path,
    detect_namespace_boundary,
)
from proc_canonicalize.mcp_tools_endpoint import list_tool_schemas


def register_mcp_handlers(app: FastAPI) -> None:
    """Attach tool routes to the FastAPI application."""
    app.include_router(mcp_router)

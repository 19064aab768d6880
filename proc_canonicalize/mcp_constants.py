"""Shared constants for tool endpoints."""

from __future__ import annotations

SERVICE_TOKEN_HEADER = "X-Proc-Canonicalize-Token"
AUTH_EXEMPT_PATHS = {"/health"}
TOOL_ROUTE_PREFIX = "/tool:"
REQUIRED_PAYLOAD_FIELDS = {"path"}
PATH_PAYLOAD_FIELDS = {"path"}
CANONICALIZE_PAYLOAD_FIELDS = {"path", "simplify_windows_paths"}

# Fields each tool handler accepts, keyed by tool name.
TOOL_PAYLOAD_FIELDS = {
    "canonicalize_path": CANONICALIZE_PAYLOAD_FIELDS,
    "detect_namespace_boundary": PATH_PAYLOAD_FIELDS,
    "classify_path": PATH_PAYLOAD_FIELDS,
}

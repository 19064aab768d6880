"""Path canonicalization tool endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import Request

from proc_canonicalize.classifier import classify
from proc_canonicalize.errors import McpError, success_response
from proc_canonicalize.mcp_constants import (
    CANONICALIZE_PAYLOAD_FIELDS,
    PATH_PAYLOAD_FIELDS,
)
from proc_canonicalize.mcp_payload import (
    _ensure_payload_dict,
    _reject_unknown_fields,
    _require_path,
)
from proc_canonicalize.mcp_router import mcp_router
from proc_canonicalize.paths import detect, resolve


def _config_simplify_windows_paths(request: Request) -> bool:
    config = getattr(request.app.state, "config", None)
    return bool(getattr(config, "simplify_windows_paths", False))


@mcp_router.post("/tool:canonicalize_path")
def canonicalize_path(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Canonicalize a path, preserving /proc namespace boundaries."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, CANONICALIZE_PAYLOAD_FIELDS)
    raw_path = _require_path(payload)

    simplify = payload.get("simplify_windows_paths")
    if simplify is None:
        simplify = _config_simplify_windows_paths(request)
    elif not isinstance(simplify, bool):
        raise McpError(
            "INVALID_TYPE",
            "simplify_windows_paths must be a boolean.",
            {"simplify_windows_paths": str(simplify), "type": type(simplify).__name__},
        )

    result = resolve(raw_path, simplify_windows_paths=simplify)
    return success_response(result.to_dict())


@mcp_router.post("/tool:detect_namespace_boundary")
def detect_namespace_boundary(
    payload: dict[str, Any], request: Request
) -> dict[str, Any]:
    """Report whether a path reaches a namespace boundary, directly or via symlinks."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, PATH_PAYLOAD_FIELDS)
    raw_path = _require_path(payload)

    outcome = detect(raw_path)
    return success_response(outcome.to_dict())


@mcp_router.post("/tool:classify_path")
def classify_path(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Match a path against the boundary patterns without touching the filesystem."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, PATH_PAYLOAD_FIELDS)
    raw_path = _require_path(payload)

    match = classify(raw_path)
    if match is None:
        return success_response({"magic": False})
    prefix = match.prefix
    return success_response(
        {
            "magic": True,
            "prefix": prefix.prefix_text,
            "token": prefix.token.text,
            "tokenKind": prefix.token.kind.value,
            "namespace": prefix.kind.value,
            "taskId": prefix.task_id,
            "remainder": list(match.remainder),
        }
    )

"""Structured error types for canonicalization failures and tool responses."""

from __future__ import annotations

import errno
from dataclasses import dataclass, field
from typing import Any, Mapping

STAGE_SCAN = "scan"
STAGE_NAMESPACE_PREFIX = "namespace_prefix"
STAGE_FULL_PATH = "full_path"
STAGE_STANDARD = "standard"

NOT_FOUND = "NOT_FOUND"
PERMISSION_DENIED = "PERMISSION_DENIED"
TOO_MANY_SYMLINKS = "TOO_MANY_SYMLINKS"
IO_ERROR = "IO_ERROR"

_CODES_BY_ERRNO = {
    errno.ENOENT: NOT_FOUND,
    errno.ENOTDIR: NOT_FOUND,
    errno.ESRCH: NOT_FOUND,
    errno.EACCES: PERMISSION_DENIED,
    errno.EPERM: PERMISSION_DENIED,
    errno.ELOOP: TOO_MANY_SYMLINKS,
}

_MESSAGES_BY_CODE = {
    NOT_FOUND: "Path does not exist.",
    PERMISSION_DENIED: "Permission denied.",
    TOO_MANY_SYMLINKS: "Too many levels of symbolic links.",
    IO_ERROR: "Path could not be resolved.",
}


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by tool handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class McpError(RuntimeError):
    """Exception carrying a structured error response."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


class CanonicalizeError(McpError):
    """A path could not be canonicalized.

    ``error.code`` is one of ``NOT_FOUND``, ``PERMISSION_DENIED``,
    ``TOO_MANY_SYMLINKS``, ``IO_ERROR`` (or ``INVALID_TYPE`` / ``INVALID_PATH``
    for unusable input). ``error.details`` always names the ``path`` and the
    ``stage`` that failed.
    """

    @property
    def code(self) -> str:
        return self.error.code

    @property
    def stage(self) -> str | None:
        return self.error.details.get("stage")


def from_os_error(exc: OSError, *, path: str, stage: str) -> CanonicalizeError:
    """Classify an ``OSError`` raised while resolving ``path``."""
    code = _CODES_BY_ERRNO.get(exc.errno, IO_ERROR)
    details: dict[str, Any] = {"path": path, "stage": stage}
    if exc.errno is not None:
        details["errno"] = exc.errno
        details["strerror"] = exc.strerror
    return CanonicalizeError(code, _MESSAGES_BY_CODE[code], details)


def too_many_symlinks(path: str, *, hops: int, loop: bool = False) -> CanonicalizeError:
    details: dict[str, Any] = {"path": path, "stage": STAGE_SCAN, "hops": hops}
    if loop:
        details["loop"] = True
    return CanonicalizeError(
        TOO_MANY_SYMLINKS, _MESSAGES_BY_CODE[TOO_MANY_SYMLINKS], details
    )


def success_response(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a successful tool response in the standard envelope."""
    return {"ok": True, "data": payload}


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return {"ok": False, "error": error.to_dict()}

"""Public entry points: canonicalize paths, preserving /proc namespace boundaries."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from proc_canonicalize.errors import STAGE_STANDARD, CanonicalizeError
from proc_canonicalize.resolver import (
    ResolutionResult,
    ResolutionStatus,
    canonicalize_standard,
    resolve_outcome,
)
from proc_canonicalize.scanner import NO_MAGIC, DetectionOutcome, scan
from proc_canonicalize.windows import simplify_extended_path

_IS_LINUX = sys.platform.startswith("linux")

PathInput = str | bytes | os.PathLike


def _coerce_path(raw_path: PathInput) -> str:
    try:
        path = os.fsdecode(raw_path)
    except TypeError:
        raise CanonicalizeError(
            "INVALID_TYPE",
            "Path must be a string, bytes or path-like object.",
            {"type": type(raw_path).__name__},
        ) from None

    if "\x00" in path:
        raise CanonicalizeError(
            "INVALID_PATH",
            "Path contains null bytes.",
            {"path": path.replace("\x00", "\\x00")},
        )
    if not path:
        raise CanonicalizeError(
            "NOT_FOUND",
            "Path does not exist.",
            {"path": path, "stage": STAGE_STANDARD},
        )
    return path


def detect(raw_path: PathInput) -> DetectionOutcome:
    """Report whether ``raw_path`` crosses a namespace boundary, and how."""
    path = _coerce_path(raw_path)
    if not _IS_LINUX:
        return NO_MAGIC
    return scan(path)


def resolve(
    raw_path: PathInput, *, simplify_windows_paths: bool = False
) -> ResolutionResult:
    """Canonicalize ``raw_path`` and report how the result was produced.

    ``status`` is ``standard`` for ordinary paths, ``preserved`` when a
    namespace boundary survives in the result and ``escaped`` when the path
    resolved outside the boundary it started in.
    """
    path = _coerce_path(raw_path)

    if not _IS_LINUX:
        resolved = canonicalize_standard(path)
        if simplify_windows_paths:
            resolved = simplify_extended_path(resolved)
        return ResolutionResult(path=Path(resolved), status=ResolutionStatus.STANDARD)

    outcome = scan(path)
    if outcome.is_magic:
        return resolve_outcome(outcome)
    return ResolutionResult(
        path=Path(canonicalize_standard(path)), status=ResolutionStatus.STANDARD
    )


def canonicalize(raw_path: PathInput, *, simplify_windows_paths: bool = False) -> Path:
    """Return the canonical absolute form of ``raw_path``.

    Behaves like ``os.path.realpath(path, strict=True)`` except that on Linux
    ``/proc/<pid>/root``, ``/proc/<pid>/cwd`` (including the ``self``,
    ``thread-self`` and ``task/<tid>`` forms) are kept in the result instead of
    collapsing to the directory they point at, even when reached through other
    symlinks::

        >>> canonicalize("/proc/self/root/etc")
        PosixPath('/proc/self/root/etc')

    Raises ``CanonicalizeError`` on failure. A path that leaves its namespace
    (``/proc/self/cwd/..``) resolves to the plain host path; use ``resolve()``
    to tell that case apart.
    """
    return resolve(raw_path, simplify_windows_paths=simplify_windows_paths).path

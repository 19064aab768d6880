"""Prefix-preserving canonicalization of detected namespace boundaries."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from proc_canonicalize.classifier import MagicPrefix
from proc_canonicalize.errors import (
    STAGE_FULL_PATH,
    STAGE_NAMESPACE_PREFIX,
    STAGE_STANDARD,
    from_os_error,
)
from proc_canonicalize.scanner import DetectionOutcome

logger = logging.getLogger(__name__)


class ResolutionStatus(str, Enum):
    STANDARD = "standard"
    PRESERVED = "preserved"
    ESCAPED = "escaped"


@dataclass(frozen=True)
class ResolutionResult:
    path: Path
    status: ResolutionStatus
    prefix: MagicPrefix | None = None

    @property
    def escaped(self) -> bool:
        return self.status is ResolutionStatus.ESCAPED

    def to_dict(self) -> dict[str, str | None]:
        return {
            "path": str(self.path),
            "status": self.status.value,
            "prefix": self.prefix.prefix_text if self.prefix else None,
        }


def canonicalize_standard(path: str, *, stage: str = STAGE_STANDARD) -> str:
    """Canonicalize with the platform resolver; every component must exist."""
    try:
        return os.path.realpath(path, strict=True)
    except OSError as exc:
        raise from_os_error(exc, path=path, stage=stage) from exc


def _strip_prefix(full: str, resolved_prefix: str) -> PurePosixPath | None:
    full_path = PurePosixPath(full)
    if not full_path.is_relative_to(resolved_prefix):
        return None
    return full_path.relative_to(resolved_prefix)


def resolve_outcome(outcome: DetectionOutcome) -> ResolutionResult:
    """Resolve a direct or indirect boundary, keeping its prefix text.

    The prefix is canonicalized on its own first, which also surfaces a missing
    or inaccessible process. When the fully resolved path no longer lies under
    the resolved prefix the result is ``ESCAPED`` and carries the host path.
    """
    prefix = outcome.prefix
    if prefix is None:
        raise ValueError("resolve_outcome requires a detected boundary")

    resolved_prefix = canonicalize_standard(
        prefix.prefix_text, stage=STAGE_NAMESPACE_PREFIX
    )
    if not outcome.remainder:
        return ResolutionResult(
            path=Path(prefix.prefix_text),
            status=ResolutionStatus.PRESERVED,
            prefix=prefix,
        )

    requested = "/".join((prefix.prefix_text, *outcome.remainder))
    full = canonicalize_standard(requested, stage=STAGE_FULL_PATH)

    suffix = _strip_prefix(full, resolved_prefix)
    if suffix is None:
        logger.debug(
            "%s escaped %s (resolved to %s)", requested, prefix.prefix_text, full
        )
        return ResolutionResult(
            path=Path(full), status=ResolutionStatus.ESCAPED, prefix=prefix
        )
    return ResolutionResult(
        path=Path(prefix.prefix_text) / suffix,
        status=ResolutionStatus.PRESERVED,
        prefix=prefix,
    )

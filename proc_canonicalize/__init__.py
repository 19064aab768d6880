"""Canonicalize paths while preserving Linux /proc namespace boundaries."""

from proc_canonicalize.classifier import (
    MagicPrefix,
    NamespaceKind,
    NamespaceToken,
    TokenKind,
    classify,
    is_magic_path,
)
from proc_canonicalize.errors import CanonicalizeError
from proc_canonicalize.paths import canonicalize, detect, resolve
from proc_canonicalize.resolver import ResolutionResult, ResolutionStatus
from proc_canonicalize.scanner import MAX_SYMLINK_FOLLOWS, DetectionOutcome, OutcomeKind

__all__ = [
    "MAX_SYMLINK_FOLLOWS",
    "CanonicalizeError",
    "DetectionOutcome",
    "MagicPrefix",
    "NamespaceKind",
    "NamespaceToken",
    "OutcomeKind",
    "ResolutionResult",
    "ResolutionStatus",
    "TokenKind",
    "canonicalize",
    "classify",
    "detect",
    "is_magic_path",
    "resolve",
]

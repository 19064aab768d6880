"""Detect namespace boundaries reached directly or through symlink chains.

The walk works on raw components of the requested path. Collapsing ``..``
before looking at the filesystem would hide a symlink such as
``innocent -> magic/etc`` in ``innocent/..``, so ``..`` only pops components
that have already been checked and found not to be symlinks.
"""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from enum import Enum

from proc_canonicalize.classifier import (
    BoundaryMatch,
    MagicPrefix,
    classify_components,
    split_components,
)
from proc_canonicalize.errors import STAGE_SCAN, from_os_error, too_many_symlinks

logger = logging.getLogger(__name__)

# Same ceiling as the kernel's MAXSYMLINKS.
MAX_SYMLINK_FOLLOWS = 40


class OutcomeKind(str, Enum):
    NO_MAGIC = "no_magic"
    DIRECT = "direct"
    INDIRECT = "indirect"


@dataclass(frozen=True)
class DetectionOutcome:
    kind: OutcomeKind
    prefix: MagicPrefix | None = None
    remainder: tuple[str, ...] = ()
    depth: int = 0

    @property
    def is_magic(self) -> bool:
        return self.kind is not OutcomeKind.NO_MAGIC

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "kind": self.kind.value,
            "remainder": list(self.remainder),
            "depth": self.depth,
        }
        if self.prefix is not None:
            payload["prefix"] = self.prefix.prefix_text
            payload["token"] = self.prefix.token.text
            payload["namespace"] = self.prefix.kind.value
        return payload


NO_MAGIC = DetectionOutcome(kind=OutcomeKind.NO_MAGIC)


def _absolute_components(path: str) -> list[str]:
    if os.path.isabs(path):
        return split_components(path)
    try:
        cwd = os.getcwd()
    except OSError as exc:
        raise from_os_error(exc, path=path, stage=STAGE_SCAN) from exc
    return split_components(cwd) + split_components(path)


def _join(components: list[str]) -> str:
    return "/" + "/".join(components)


def _outcome(match: BoundaryMatch, hops: int) -> DetectionOutcome:
    if hops == 0:
        return DetectionOutcome(
            kind=OutcomeKind.DIRECT, prefix=match.prefix, remainder=match.remainder
        )
    return DetectionOutcome(
        kind=OutcomeKind.INDIRECT,
        prefix=match.prefix,
        remainder=match.remainder,
        depth=hops,
    )


def scan(path: str) -> DetectionOutcome:
    """Walk ``path`` against the live filesystem looking for a boundary.

    Raises ``CanonicalizeError`` with ``TOO_MANY_SYMLINKS`` after more than
    ``MAX_SYMLINK_FOLLOWS`` hops or when a chain revisits a path. A component
    that cannot be inspected ends the scan with ``NO_MAGIC``; the standard
    resolution of the requested path then reports that failure.
    """
    pending = _absolute_components(path)
    hops = 0
    visited: set[str] = set()

    while True:
        accumulated: list[str] = []
        for index, name in enumerate(pending):
            match = classify_components(accumulated + pending[index:])
            if match is not None:
                outcome = _outcome(match, hops)
                logger.debug(
                    "namespace boundary %s found in %s (%s, depth=%d)",
                    match.prefix.prefix_text,
                    path,
                    outcome.kind.value,
                    hops,
                )
                return outcome

            if name == "..":
                if accumulated:
                    accumulated.pop()
                continue

            candidate = _join(accumulated + [name])
            try:
                mode = os.lstat(candidate).st_mode
            except OSError as exc:
                logger.debug("stopping scan at %s: %s", candidate, exc)
                return NO_MAGIC
            if not stat.S_ISLNK(mode):
                accumulated.append(name)
                continue

            hops += 1
            if hops > MAX_SYMLINK_FOLLOWS:
                raise too_many_symlinks(path, hops=hops)
            try:
                target = os.readlink(candidate)
            except OSError as exc:
                raise from_os_error(exc, path=candidate, stage=STAGE_SCAN) from exc

            if target.startswith("/"):
                rewritten = split_components(target)
            else:
                rewritten = accumulated + split_components(target)
            rewritten += pending[index + 1 :]

            key = _join(rewritten)
            if key in visited:
                raise too_many_symlinks(path, hops=hops, loop=True)
            visited.add(key)
            logger.debug("following %s -> %s", candidate, target)
            pending = rewritten
            break
        else:
            return NO_MAGIC

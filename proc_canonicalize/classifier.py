"""Textual recognition of /proc namespace boundaries.

A boundary is one of::

    /proc/<pid>/root                /proc/<pid>/cwd
    /proc/self/root                 /proc/self/cwd
    /proc/thread-self/root          /proc/thread-self/cwd
    /proc/<pid>/task/<tid>/root     /proc/<pid>/task/<tid>/cwd

Matching works on path components and never touches the filesystem. Repeated
separators and ``.`` components are ignored; ``..`` is never collapsed, so
``/proc/self/root/..`` is a boundary followed by a ``..`` remainder.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

PROC_COMPONENT = "proc"
TASK_COMPONENT = "task"
MAX_PID = 2**31 - 1


class TokenKind(str, Enum):
    PID = "pid"
    SELF = "self"
    THREAD_SELF = "thread-self"


class NamespaceKind(str, Enum):
    ROOT = "root"
    CWD = "cwd"


@dataclass(frozen=True)
class NamespaceToken:
    """Whose namespace a boundary refers to."""

    kind: TokenKind
    text: str
    pid: int | None = None


@dataclass(frozen=True)
class MagicPrefix:
    token: NamespaceToken
    kind: NamespaceKind
    prefix_text: str
    task_id: int | None = None

    @property
    def components(self) -> tuple[str, ...]:
        return tuple(self.prefix_text.strip("/").split("/"))


@dataclass(frozen=True)
class BoundaryMatch:
    """A recognized prefix and the components that follow it."""

    prefix: MagicPrefix
    remainder: tuple[str, ...] = ()


_SPECIAL_TOKENS = {
    TokenKind.SELF.value: TokenKind.SELF,
    TokenKind.THREAD_SELF.value: TokenKind.THREAD_SELF,
}
_NAMESPACE_KINDS = {kind.value: kind for kind in NamespaceKind}


def split_components(path: str) -> list[str]:
    """Split an absolute or relative POSIX path, dropping empty and ``.`` parts."""
    return [part for part in path.split("/") if part and part != "."]


def _parse_numeric_id(text: str) -> int | None:
    if not text or not text.isascii() or not text.isdigit():
        return None
    value = int(text)
    if value < 1 or value > MAX_PID:
        return None
    return value


def parse_token(text: str) -> NamespaceToken | None:
    """Parse the component after ``/proc``; ``None`` means not a namespace token."""
    special = _SPECIAL_TOKENS.get(text)
    if special is not None:
        return NamespaceToken(kind=special, text=text)
    pid = _parse_numeric_id(text)
    if pid is None:
        return None
    return NamespaceToken(kind=TokenKind.PID, text=text, pid=pid)


def classify_components(components: Sequence[str]) -> BoundaryMatch | None:
    """Classify components of an absolute path (the leading ``/`` excluded)."""
    if len(components) < 3 or components[0] != PROC_COMPONENT:
        return None
    token = parse_token(components[1])
    if token is None:
        return None

    kind = _NAMESPACE_KINDS.get(components[2])
    if kind is not None:
        prefix_text = f"/{PROC_COMPONENT}/{components[1]}/{components[2]}"
        return BoundaryMatch(
            prefix=MagicPrefix(token=token, kind=kind, prefix_text=prefix_text),
            remainder=tuple(components[3:]),
        )

    if components[2] != TASK_COMPONENT or len(components) < 5:
        return None
    task_id = _parse_numeric_id(components[3])
    kind = _NAMESPACE_KINDS.get(components[4])
    if task_id is None or kind is None:
        return None
    prefix_text = "/" + "/".join(components[:5])
    return BoundaryMatch(
        prefix=MagicPrefix(
            token=token, kind=kind, prefix_text=prefix_text, task_id=task_id
        ),
        remainder=tuple(components[5:]),
    )


def classify(path: str | bytes | os.PathLike) -> BoundaryMatch | None:
    """Return the boundary at the start of ``path``, or ``None``.

    Relative paths are never boundaries. Bytes are decoded with the
    filesystem encoding.
    """
    text = os.fsdecode(path)
    if not text.startswith("/"):
        return None
    return classify_components(split_components(text))


def is_magic_path(path: str | bytes | os.PathLike) -> bool:
    """True when ``path`` is a boundary or lies beneath one."""
    return classify(path) is not None

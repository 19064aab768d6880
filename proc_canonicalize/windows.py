"""Cosmetic simplification of Windows extended-length paths.

``os.path.realpath`` can return verbatim paths such as ``\\\\?\\C:\\data``. When
the plain form means exactly the same thing (short enough, no reserved device
names, no components Win32 would silently rewrite) the ``\\\\?\\`` prefix is
dropped. Otherwise the verbatim path is returned untouched.
"""

from __future__ import annotations

VERBATIM_PREFIX = "\\\\?\\"
VERBATIM_UNC_PREFIX = "\\\\?\\UNC\\"
MAX_PATH = 260

_RESERVED_NAMES = {
    "CON",
    "PRN",
    "AUX",
    "NUL",
    "CONIN$",
    "CONOUT$",
    *(f"COM{index}" for index in range(1, 10)),
    *(f"LPT{index}" for index in range(1, 10)),
}
_INVALID_CHARS = set('<>:"/|?*')


def _is_plain_component(component: str) -> bool:
    if component in {"", ".", ".."}:
        return False
    if component.endswith((".", " ")):
        return False
    if any(char in _INVALID_CHARS or ord(char) < 32 for char in component):
        return False
    stem = component.split(".", 1)[0].rstrip(" ").upper()
    return stem not in _RESERVED_NAMES


def _is_drive(component: str) -> bool:
    return (
        len(component) == 2
        and component[0].isascii()
        and component[0].isalpha()
        and component[1] == ":"
    )


def simplify_extended_path(path: str) -> str:
    if path.startswith(VERBATIM_UNC_PREFIX):
        body = path[len(VERBATIM_UNC_PREFIX) :]
        simplified = "\\\\" + body
        components = body.split("\\")
        if len(components) < 2:
            return path
    elif path.startswith(VERBATIM_PREFIX):
        body = path[len(VERBATIM_PREFIX) :]
        simplified = body
        components = body.split("\\")
        if not _is_drive(components[0]) or len(components) < 2:
            return path
        components = components[1:]
    else:
        return path

    if len(simplified) >= MAX_PATH:
        return path
    # A single trailing separator (``C:\``) is the drive root, not an empty name.
    if len(components) > 1 and components[-1] == "":
        components = components[:-1]
    if components == [""]:
        return simplified
    if not all(_is_plain_component(component) for component in components):
        return path
    return simplified

"""Heuristic mapping from linker symbol names to Go package paths.

The Go linker names symbols ``<import path>.<identifier>``, for example
``runtime.mallocgc`` or ``github.com/acme/foo.(*Client).Do``. Dots inside the
last element of an import path are escaped as ``%2e`` so the package part
ends at the first dot after the last slash. The resolver leans on that rule
but stays conservative: a name that does not look like it belongs to an
import path is left unresolved instead of being guessed.
"""

from __future__ import annotations

import re
from typing import Iterable, Tuple
from urllib.parse import unquote

DEFAULT_RESERVED: Tuple[str, ...] = ("runtime", "main", "go")

_IMPORT_PATH = re.compile(r"^[A-Za-z0-9_.~+%-]+(/[A-Za-z0-9_.~+%-]+)+$")


def resolve_package(symbol_name: str, reserved: Iterable[str] = DEFAULT_RESERVED) -> str:
    """Return the package path owning ``symbol_name`` or ``""`` when unknown."""
    reserved_set = frozenset(reserved)
    segment = _leading_segment(symbol_name)
    if not segment:
        return ""
    if segment in reserved_set:
        return segment
    if "/" not in segment and "." not in segment:
        return ""

    parts = symbol_name.split(".")
    for index in range(len(parts) - 1, 0, -1):
        candidate = ".".join(parts[:index])
        if candidate in reserved_set:
            return candidate
        if _looks_like_import_path(candidate):
            return unquote(candidate) if "%" in candidate else candidate
    return ""


def _leading_segment(symbol_name: str) -> str:
    # Generic instantiations carry other import paths inside brackets.
    head = symbol_name.split("[", 1)[0]
    slash = head.rfind("/")
    dot = head.find(".", slash + 1)
    if dot <= 0:
        return ""
    return head[:dot]


def _looks_like_import_path(candidate: str) -> bool:
    if not _IMPORT_PATH.match(candidate):
        return False
    last_element = candidate.rsplit("/", 1)[1]
    return "." not in last_element


class PackageResolver:
    """Resolves symbol names using a configured set of reserved identifiers."""

    def __init__(self, reserved: Iterable[str] = DEFAULT_RESERVED) -> None:
        self.reserved: Tuple[str, ...] = tuple(reserved)

    def __call__(self, symbol_name: str) -> str:
        return resolve_package(symbol_name, self.reserved)


__all__ = ["DEFAULT_RESERVED", "PackageResolver", "resolve_package"]

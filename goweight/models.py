"""Core data models shared across goweight components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

import humanize

DEVELOPMENT_VERSIONS = frozenset({"", "(devel)"})


class SizeMethod(str, Enum):
    """How the size of a reported entry was obtained."""

    SYMBOLS = "symbols"
    ESTIMATE = "estimate"
    MODULE_CACHE = "module-cache"
    NONE = "none"
    MIXED = "mixed"


@dataclass(frozen=True)
class ModuleEntry:
    """One row of a size report."""

    path: str
    name: str
    version: str = ""
    size: int = 0
    method: SizeMethod = SizeMethod.NONE

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ModuleEntry.name must be non-empty")
        if self.size < 0:
            raise ValueError(f"ModuleEntry.size must be non-negative, got {self.size}")

    @property
    def size_human(self) -> str:
        return humanize.naturalsize(self.size)

    def with_size(self, size: int, method: SizeMethod) -> "ModuleEntry":
        return replace(self, size=size, method=method)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "name": self.name}
        if self.version:
            data["version"] = self.version
        data["size"] = self.size
        data["size_human"] = self.size_human
        data["method"] = self.method.value
        return data


@dataclass(frozen=True)
class Symbol:
    """Raw record read from a container symbol table."""

    name: str
    size: int = 0
    address: int = 0
    package: str = ""
    section: str = ""


@dataclass(frozen=True)
class Section:
    """Descriptive record of an addressable region of a container."""

    name: str
    size: int
    type: str


@dataclass(frozen=True)
class ModuleVersion:
    """A module identity and version as recorded in embedded build info."""

    path: str
    version: str = ""
    sum: str = ""
    replace: Optional["ModuleVersion"] = None

    @property
    def is_development(self) -> bool:
        return self.version in DEVELOPMENT_VERSIONS

    @property
    def cache_key(self) -> Tuple[str, str]:
        """Return the (path, version) pair identifying the module in the module cache.

        A replacement without a version points at a local directory, so the
        key carries an empty version and is never looked up.
        """
        if self.replace is not None:
            if self.replace.version:
                return self.replace.path, self.replace.version
            return self.path, ""
        return self.path, self.version


@dataclass(frozen=True)
class Provenance:
    """Build metadata embedded by the Go toolchain at link time."""

    go_version: str
    path: str
    main: ModuleVersion
    deps: Tuple[ModuleVersion, ...] = ()
    settings: Dict[str, str] = field(default_factory=dict)

    def modules(self) -> Iterator[ModuleVersion]:
        if self.main.path:
            yield self.main
        yield from self.deps

    def module_paths(self) -> List[str]:
        return [module.path for module in self.modules()]


__all__ = [
    "DEVELOPMENT_VERSIONS",
    "ModuleEntry",
    "ModuleVersion",
    "Provenance",
    "Section",
    "SizeMethod",
    "Symbol",
]

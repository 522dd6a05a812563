"""Executable container parsers and format detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Sequence

from .base import ContainerFile, ContainerParser, FormatMismatch, Resolver, UnrecognizedContainerFormat
from .elf import ElfParser
from .macho import MachOParser
from .pe import PeParser
from ..logging import get_logger
from ..models import Section, Symbol

_logger = get_logger("containers")

# Trial order matters: the first parser that accepts the data wins.
_BUILTIN_FACTORIES: tuple[tuple[str, Callable[[], ContainerParser]], ...] = (
    ("elf", ElfParser),
    ("macho", MachOParser),
    ("pe", PeParser),
)


@dataclass(frozen=True)
class SymbolTable:
    """Symbols and sections read from one binary."""

    format: str
    file_size: int
    symbols: List[Symbol] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)

    def resolved(self) -> List[Symbol]:
        return [symbol for symbol in self.symbols if symbol.package]


def default_parsers() -> List[ContainerParser]:
    """Return the built-in parsers in detection order."""
    return [factory() for _, factory in _BUILTIN_FACTORIES]


def detect_container(data: bytes, parsers: Sequence[ContainerParser] | None = None) -> ContainerFile:
    """Return the first container format that parses ``data``."""
    candidates = list(parsers) if parsers is not None else default_parsers()
    header = data[:16]
    for parser in candidates:
        if not parser.matches(header):
            continue
        # Parsers read from immutable bytes rather than a shared stream, so a failed trial leaves no state behind.
        try:
            container = parser.parse(data)
        except FormatMismatch as exc:
            _logger.debug("%s parser rejected binary: %s", parser.name, exc)
            continue
        _logger.debug("Detected %s container", parser.name)
        return container
    tried = ", ".join(parser.name for parser in candidates)
    raise UnrecognizedContainerFormat(f"Unrecognized executable format (tried {tried})")


def open_container(path: Path, parsers: Sequence[ContainerParser] | None = None) -> ContainerFile:
    """Read ``path`` and detect its container format."""
    data = Path(path).read_bytes()
    return detect_container(data, parsers)


def read_symbols(
    path: Path,
    resolver: Resolver,
    parsers: Sequence[ContainerParser] | None = None,
) -> SymbolTable:
    """Return the symbol table of the binary at ``path``.

    An empty symbol table is a valid result and only produces a warning;
    callers can still report provenance-derived entries.
    """
    path = Path(path)
    data = path.read_bytes()
    container = detect_container(data, parsers)
    try:
        symbols = container.symbols(resolver)
    except FormatMismatch as exc:
        _logger.warning("Could not read %s symbol table of %s: %s", container.format, path, exc)
        symbols = []
    if not symbols:
        _logger.warning("No symbols found in %s binary %s", container.format, path)
    return SymbolTable(
        format=container.format,
        file_size=len(data),
        symbols=symbols,
        sections=container.sections(),
    )


__all__ = [
    "ContainerFile",
    "ContainerParser",
    "SymbolTable",
    "UnrecognizedContainerFormat",
    "default_parsers",
    "detect_container",
    "open_container",
    "read_symbols",
]

"""Base classes for executable container parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, List, Tuple

from ..models import Section, Symbol

Resolver = Callable[[str], str]


class UnrecognizedContainerFormat(RuntimeError):
    """Raised when no supported container format recognizes a binary."""


class FormatMismatch(ValueError):
    """Raised by a parser when the data is not (or not a valid) instance of its format."""


class ContainerFile(ABC):
    """A parsed executable exposing symbols, sections and virtual memory reads."""

    format: str = ""

    @abstractmethod
    def symbols(self, resolver: Resolver) -> List[Symbol]:
        """Return symbol records with ``package`` filled in by ``resolver``."""

    @abstractmethod
    def sections(self) -> List[Section]:
        """Return descriptive section records."""

    @abstractmethod
    def data_start(self) -> Tuple[int, int]:
        """Return ``(address, size)`` of the region holding Go build info."""

    @abstractmethod
    def read_data(self, address: int, size: int) -> bytes:
        """Read up to ``size`` bytes of file-backed memory at virtual ``address``."""


class ContainerParser(ABC):
    """Contract for parsers that recognize one container format."""

    name: str = ""

    @abstractmethod
    def matches(self, header: bytes) -> bool:
        """Return True when ``header`` carries this format's magic."""

    @abstractmethod
    def parse(self, data: bytes) -> ContainerFile:
        """Parse ``data`` or raise :class:`FormatMismatch`."""


def slice_at(data: bytes, offset: int, size: int) -> bytes:
    """Return ``data[offset:offset+size]`` or raise when it is truncated."""
    if offset < 0 or size < 0 or offset + size > len(data):
        raise FormatMismatch(f"read of {size} bytes at offset {offset} is out of bounds")
    return data[offset : offset + size]


def c_string(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def string_at(table: bytes, offset: int) -> str:
    if offset < 0 or offset >= len(table):
        return ""
    end = table.find(b"\x00", offset)
    if end < 0:
        end = len(table)
    return table[offset:end].decode("utf-8", errors="replace")


__all__ = [
    "ContainerFile",
    "ContainerParser",
    "FormatMismatch",
    "Resolver",
    "UnrecognizedContainerFormat",
    "c_string",
    "slice_at",
    "string_at",
]

"""ELF container support backed by pyelftools."""

from __future__ import annotations

import io
from typing import List, Optional, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.constants import P_FLAGS
from elftools.elf.elffile import ELFFile
from elftools.elf.sections import SymbolTableSection

from .base import ContainerFile, ContainerParser, FormatMismatch, Resolver
from ..models import Section, Symbol

ELF_MAGIC = b"\x7fELF"
BUILDINFO_SECTION = ".go.buildinfo"


class ElfFile(ContainerFile):
    """ELF executable parsed by pyelftools."""

    format = "ELF"

    def __init__(self, data: bytes, elf: ELFFile) -> None:
        self._data = data
        self._elf = elf
        self._sections = list(elf.iter_sections())

    def symbols(self, resolver: Resolver) -> List[Symbol]:
        try:
            records = self._read_table("SHT_SYMTAB", resolver)
            if not records:
                records = self._read_table("SHT_DYNSYM", resolver)
        except ELFError as exc:
            raise FormatMismatch(f"invalid ELF symbol table: {exc}") from exc
        return records

    def sections(self) -> List[Section]:
        return [
            Section(name=section.name, size=section["sh_size"], type=str(section["sh_type"]))
            for section in self._sections
        ]

    def data_start(self) -> Tuple[int, int]:
        for section in self._sections:
            if section.name == BUILDINFO_SECTION:
                return section["sh_addr"], section["sh_size"]
        for segment in self._elf.iter_segments():
            flags = segment["p_flags"]
            if segment["p_type"] == "PT_LOAD" and flags & (P_FLAGS.PF_X | P_FLAGS.PF_W) == P_FLAGS.PF_W:
                return segment["p_vaddr"], segment["p_memsz"]
        return 0, 0

    def read_data(self, address: int, size: int) -> bytes:
        for segment in self._elf.iter_segments():
            vaddr = segment["p_vaddr"]
            filesz = segment["p_filesz"]
            if filesz and vaddr <= address < vaddr + filesz:
                length = min(size, vaddr + filesz - address)
                offset = segment["p_offset"] + (address - vaddr)
                return self._data[offset : offset + length]
        return b""

    def _read_table(self, section_type: str, resolver: Resolver) -> List[Symbol]:
        records: List[Symbol] = []
        for table in self._sections:
            if table["sh_type"] != section_type or not isinstance(table, SymbolTableSection):
                continue
            for number, sym in enumerate(table.iter_symbols()):
                if number == 0:
                    continue
                index = _section_index(sym["st_shndx"])
                if index is None or index >= len(self._sections):
                    continue
                records.append(
                    Symbol(
                        name=sym.name,
                        size=sym["st_size"],
                        address=sym["st_value"],
                        package=resolver(sym.name),
                        section=self._sections[index].name,
                    )
                )
        return records


def _section_index(raw: object) -> Optional[int]:
    if isinstance(raw, int):
        return raw
    if raw == "SHN_UNDEF":
        return 0
    return None


class ElfParser(ContainerParser):
    """Recognizes ELF executables."""

    name = "ELF"

    def matches(self, header: bytes) -> bool:
        return header.startswith(ELF_MAGIC)

    def parse(self, data: bytes) -> ContainerFile:
        if not self.matches(data[:4]):
            raise FormatMismatch("missing ELF magic")
        try:
            elf = ELFFile(io.BytesIO(data))
            return ElfFile(data, elf)
        except Exception as exc:
            raise FormatMismatch(f"invalid ELF file: {exc}") from exc


__all__ = ["ElfFile", "ElfParser"]

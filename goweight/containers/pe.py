"""PE/COFF container support.

Go writes a COFF symbol table into Windows executables unless the binary
was linked with ``-s``; those symbols carry no sizes.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Tuple

from .base import ContainerFile, ContainerParser, FormatMismatch, Resolver, c_string, slice_at, string_at
from ..models import Section, Symbol

DOS_MAGIC = b"MZ"
PE_SIGNATURE = b"PE\x00\x00"
PE32_MAGIC = 0x10B
PE32_PLUS_MAGIC = 0x20B
COFF_SYMBOL_SIZE = 18

IMAGE_SCN_CNT_INITIALIZED_DATA = 0x00000040
IMAGE_SCN_MEM_READ = 0x40000000
IMAGE_SCN_MEM_WRITE = 0x80000000
IMAGE_SCN_ALIGN_32BYTES = 0x00600000
_DATA_CHARACTERISTICS = IMAGE_SCN_CNT_INITIALIZED_DATA | IMAGE_SCN_MEM_READ | IMAGE_SCN_MEM_WRITE


@dataclass(frozen=True)
class _Section:
    name: str
    virtual_size: int
    virtual_address: int
    raw_size: int
    raw_offset: int
    characteristics: int


class PeFile(ContainerFile):
    """PE executable decoded with :mod:`struct`."""

    format = "PE"

    def __init__(self, data: bytes) -> None:
        self._data = data
        (pe_offset,) = struct.unpack("<I", slice_at(data, 0x3C, 4))
        if slice_at(data, pe_offset, 4) != PE_SIGNATURE:
            raise FormatMismatch("missing PE signature")

        coff_offset = pe_offset + 4
        (
            _machine,
            number_of_sections,
            _timestamp,
            self._symbol_offset,
            self._symbol_count,
            optional_size,
            _characteristics,
        ) = struct.unpack("<HHIIIHH", slice_at(data, coff_offset, 20))

        optional_offset = coff_offset + 20
        self._image_base = self._read_image_base(optional_offset, optional_size)
        self._string_table = self._read_string_table()

        self._sections: List[_Section] = []
        cursor = optional_offset + optional_size
        for _ in range(number_of_sections):
            raw_name, vsize, vaddr, raw_size, raw_offset, _, _, _, _, flags = struct.unpack(
                "<8sIIIIIIHHI", slice_at(data, cursor, 40)
            )
            self._sections.append(
                _Section(self._section_name(raw_name), vsize, vaddr, raw_size, raw_offset, flags)
            )
            cursor += 40

    def symbols(self, resolver: Resolver) -> List[Symbol]:
        if not self._symbol_offset or not self._symbol_count:
            return []
        table = slice_at(self._data, self._symbol_offset, self._symbol_count * COFF_SYMBOL_SIZE)
        records: List[Symbol] = []
        index = 0
        while index < self._symbol_count:
            raw_name, value, section_number, _type, _storage, aux_count = struct.unpack_from(
                "<8sIhHBB", table, index * COFF_SYMBOL_SIZE
            )
            index += 1 + aux_count
            if section_number <= 0 or section_number > len(self._sections):
                continue
            name = self._symbol_name(raw_name)
            records.append(
                Symbol(
                    name=name,
                    size=0,
                    address=value,
                    package=resolver(name),
                    section=self._sections[section_number - 1].name,
                )
            )
        return records

    def sections(self) -> List[Section]:
        return [Section(name=sec.name, size=sec.virtual_size, type="section") for sec in self._sections]

    def data_start(self) -> Tuple[int, int]:
        for section in self._sections:
            if (
                section.virtual_address != 0
                and section.virtual_size != 0
                and section.characteristics & ~IMAGE_SCN_ALIGN_32BYTES == _DATA_CHARACTERISTICS
            ):
                return section.virtual_address + self._image_base, section.virtual_size
        return 0, 0

    def read_data(self, address: int, size: int) -> bytes:
        relative = address - self._image_base
        for section in self._sections:
            start = section.virtual_address
            if start <= relative < start + section.raw_size:
                length = min(size, start + section.raw_size - relative)
                offset = section.raw_offset + (relative - start)
                return self._data[offset : offset + length]
        return b""

    def _read_image_base(self, offset: int, size: int) -> int:
        if size < 2:
            return 0
        (magic,) = struct.unpack("<H", slice_at(self._data, offset, 2))
        if magic == PE32_PLUS_MAGIC and size >= 32:
            return struct.unpack("<Q", slice_at(self._data, offset + 24, 8))[0]
        if magic == PE32_MAGIC and size >= 32:
            return struct.unpack("<I", slice_at(self._data, offset + 28, 4))[0]
        return 0

    def _read_string_table(self) -> bytes:
        if not self._symbol_offset:
            return b""
        start = self._symbol_offset + self._symbol_count * COFF_SYMBOL_SIZE
        if start + 4 > len(self._data):
            return b""
        (length,) = struct.unpack("<I", self._data[start : start + 4])
        # Offsets into the table count its own 4-byte length field.
        return self._data[start : start + max(length, 4)]

    def _section_name(self, raw: bytes) -> str:
        name = c_string(raw)
        if name.startswith("/") and name[1:].isdigit():
            return string_at(self._string_table, int(name[1:]))
        return name

    def _symbol_name(self, raw: bytes) -> str:
        zeroes, offset = struct.unpack("<II", raw)
        if zeroes == 0:
            return string_at(self._string_table, offset)
        return c_string(raw)


class PeParser(ContainerParser):
    """Recognizes PE32 and PE32+ executables."""

    name = "PE"

    def matches(self, header: bytes) -> bool:
        return header.startswith(DOS_MAGIC)

    def parse(self, data: bytes) -> ContainerFile:
        if not self.matches(data[:2]):
            raise FormatMismatch("missing DOS header")
        try:
            return PeFile(data)
        except struct.error as exc:
            raise FormatMismatch(f"invalid PE file: {exc}") from exc


__all__ = ["PeFile", "PeParser"]

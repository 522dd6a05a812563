"""Mach-O container support.

Only the pieces needed for attribution are decoded: segment and section
load commands, and the LC_SYMTAB nlist table. Fat (universal) files are
not handled.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import List, Tuple

from .base import ContainerFile, ContainerParser, FormatMismatch, Resolver, c_string, slice_at, string_at
from ..models import Section, Symbol

MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
LC_SEGMENT = 0x1
LC_SYMTAB = 0x2
LC_SEGMENT_64 = 0x19
VM_PROT_RW = 0x3
BUILDINFO_SECTION = "__go_buildinfo"


@dataclass(frozen=True)
class _Segment:
    name: str
    vmaddr: int
    vmsize: int
    fileoff: int
    filesize: int
    maxprot: int
    initprot: int


@dataclass(frozen=True)
class _Section:
    name: str
    segment: str
    addr: int
    size: int


class MachOFile(ContainerFile):
    """Mach-O executable decoded with :mod:`struct`."""

    format = "Mach-O"

    def __init__(self, data: bytes, byte_order: str, is_64: bool) -> None:
        self._data = data
        self._order = byte_order
        self._is_64 = is_64
        self._segments: List[_Segment] = []
        self._sections: List[_Section] = []
        self._symtab: Tuple[int, int, int, int] | None = None
        self._load_commands()

    def symbols(self, resolver: Resolver) -> List[Symbol]:
        if self._symtab is None:
            return []
        symoff, nsyms, stroff, strsize = self._symtab
        strings = slice_at(self._data, stroff, strsize)
        entry_format = self._order + ("IBBHQ" if self._is_64 else "IBBHI")
        entry_size = struct.calcsize(entry_format)
        table = slice_at(self._data, symoff, nsyms * entry_size)

        records: List[Symbol] = []
        for n_strx, _n_type, n_sect, _n_desc, n_value in struct.iter_unpack(entry_format, table):
            if n_sect > len(self._sections):
                continue
            name = string_at(strings, n_strx)
            # The Go linker prefixes every Mach-O symbol with a single underscore.
            resolvable = name[1:] if name.startswith("_") else name
            records.append(
                Symbol(
                    name=name,
                    size=0,
                    address=n_value,
                    package=resolver(resolvable),
                    section=self._sections[n_sect - 1].name if n_sect else "",
                )
            )
        return records

    def sections(self) -> List[Section]:
        return [Section(name=sec.name, size=sec.size, type=sec.segment) for sec in self._sections]

    def data_start(self) -> Tuple[int, int]:
        for section in self._sections:
            if section.name == BUILDINFO_SECTION:
                return section.addr, section.size
        for segment in self._segments:
            if (
                segment.vmaddr != 0
                and segment.filesize != 0
                and segment.initprot == VM_PROT_RW
                and segment.maxprot == VM_PROT_RW
            ):
                return segment.vmaddr, segment.vmsize
        return 0, 0

    def read_data(self, address: int, size: int) -> bytes:
        for segment in self._segments:
            if segment.filesize and segment.vmaddr <= address < segment.vmaddr + segment.filesize:
                length = min(size, segment.vmaddr + segment.filesize - address)
                offset = segment.fileoff + (address - segment.vmaddr)
                return self._data[offset : offset + length]
        return b""

    def _load_commands(self) -> None:
        header_format = self._order + ("IiiIIIII" if self._is_64 else "IiiIIII")
        header_size = struct.calcsize(header_format)
        header = struct.unpack(header_format, slice_at(self._data, 0, header_size))
        ncmds, sizeofcmds = header[4], header[5]

        offset = header_size
        end = header_size + sizeofcmds
        for _ in range(ncmds):
            cmd, cmdsize = struct.unpack(self._order + "II", slice_at(self._data, offset, 8))
            if cmdsize < 8 or offset + cmdsize > end:
                raise FormatMismatch(f"malformed Mach-O load command at offset {offset}")
            if cmd in (LC_SEGMENT, LC_SEGMENT_64):
                self._read_segment(offset, cmd == LC_SEGMENT_64)
            elif cmd == LC_SYMTAB:
                _, _, symoff, nsyms, stroff, strsize = struct.unpack(
                    self._order + "6I", slice_at(self._data, offset, 24)
                )
                self._symtab = (symoff, nsyms, stroff, strsize)
            offset += cmdsize

    def _read_segment(self, offset: int, is_64: bool) -> None:
        if is_64:
            segment_format, section_format = "II16sQQQQiiII", "16s16sQQIIIIIIII"
        else:
            segment_format, section_format = "II16sIIIIiiII", "16s16sIIIIIIIII"
        segment_format = self._order + segment_format
        section_format = self._order + section_format
        segment_size = struct.calcsize(segment_format)
        section_size = struct.calcsize(section_format)

        fields = struct.unpack(segment_format, slice_at(self._data, offset, segment_size))
        segname, vmaddr, vmsize, fileoff, filesize, maxprot, initprot, nsects = fields[2:10]
        self._segments.append(
            _Segment(c_string(segname), vmaddr, vmsize, fileoff, filesize, maxprot, initprot)
        )

        cursor = offset + segment_size
        for _ in range(nsects):
            sectname, sec_segname, addr, size = struct.unpack(
                section_format, slice_at(self._data, cursor, section_size)
            )[:4]
            self._sections.append(_Section(c_string(sectname), c_string(sec_segname), addr, size))
            cursor += section_size


class MachOParser(ContainerParser):
    """Recognizes thin 32 and 64-bit Mach-O files of either byte order."""

    name = "Mach-O"

    def matches(self, header: bytes) -> bool:
        return _byte_order(header) is not None

    def parse(self, data: bytes) -> ContainerFile:
        detected = _byte_order(data[:4])
        if detected is None:
            raise FormatMismatch("missing Mach-O magic")
        byte_order, is_64 = detected
        try:
            return MachOFile(data, byte_order, is_64)
        except struct.error as exc:
            raise FormatMismatch(f"invalid Mach-O file: {exc}") from exc


def _byte_order(header: bytes) -> Tuple[str, bool] | None:
    if len(header) < 4:
        return None
    for order in ("<", ">"):
        (magic,) = struct.unpack(order + "I", header[:4])
        if magic == MH_MAGIC:
            return order, False
        if magic == MH_MAGIC_64:
            return order, True
    return None


__all__ = ["MachOFile", "MachOParser"]

"""Decoding of the build information the Go linker embeds in executables."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from .containers import ContainerFile, ContainerParser, open_container
from .logging import get_logger
from .models import ModuleVersion, Provenance

BUILDINFO_MAGIC = b"\xff Go buildinf:"
BUILDINFO_ALIGN = 16
BUILDINFO_HEADER_SIZE = 32
MAX_DATA_WINDOW = 64 * 1024
MAX_STRING_SIZE = 64 << 20

_FLAG_BIG_ENDIAN = 0x1
_FLAG_VERSION_INLINE = 0x2

_logger = get_logger("buildinfo")

DEFAULT_MODULE_LINE_PATTERN = r"^(path|mod|dep|=>|build)\t(.*)$"
_DEFAULT_LINE_PATTERN = re.compile(DEFAULT_MODULE_LINE_PATTERN)


class MissingBuildInfo(RuntimeError):
    """Raised when a binary carries no decodable Go build information."""


def load_provenance(
    path: Path,
    *,
    line_pattern: Pattern[str] | None = None,
    parsers: Sequence[ContainerParser] | None = None,
) -> Provenance:
    """Read and parse the build information embedded in the binary at ``path``."""
    container = open_container(Path(path), parsers)
    go_version, modinfo = read_build_info(container)
    provenance = parse_modinfo(modinfo, go_version=go_version, line_pattern=line_pattern)
    _logger.debug(
        "Loaded build info from %s: %s with %d dependencies",
        path,
        provenance.main.path or provenance.path or "<unknown>",
        len(provenance.deps),
    )
    return provenance


def read_build_info(container: ContainerFile) -> Tuple[str, str]:
    """Return the raw ``(go_version, modinfo)`` strings stored in ``container``."""
    address, size = container.data_start()
    if size == 0:
        raise MissingBuildInfo(f"{container.format} binary has no data region holding Go build info")
    data = container.read_data(address, min(size, MAX_DATA_WINDOW))
    header = _find_header(data)
    if header is None:
        raise MissingBuildInfo("not a Go executable: build info header not found")

    pointer_size = header[14]
    flags = header[15]
    if flags & _FLAG_VERSION_INLINE:
        version, rest = _decode_string(header[BUILDINFO_HEADER_SIZE:])
        modinfo, _ = _decode_string(rest)
    else:
        if pointer_size not in (4, 8):
            raise MissingBuildInfo(f"unsupported pointer size {pointer_size} in build info header")
        order = "big" if flags & _FLAG_BIG_ENDIAN else "little"
        version_addr = _read_pointer(header[16:], pointer_size, order)
        modinfo_addr = _read_pointer(header[16 + pointer_size :], pointer_size, order)
        version = _read_go_string(container, version_addr, pointer_size, order)
        modinfo = _read_go_string(container, modinfo_addr, pointer_size, order)

    if not version:
        raise MissingBuildInfo("not a Go executable: empty toolchain version")
    return _decode(version), _decode(_strip_sentinels(modinfo))


def parse_modinfo(
    modinfo: str,
    *,
    go_version: str = "",
    line_pattern: Pattern[str] | None = None,
) -> Provenance:
    """Parse the tab-separated module information block."""
    pattern = line_pattern or _DEFAULT_LINE_PATTERN
    main_path = ""
    main = ModuleVersion(path="")
    deps: List[ModuleVersion] = []
    settings: Dict[str, str] = {}
    # Index of the module a following "=>" line replaces: -1 for main, None when nothing precedes it.
    last: Optional[int] = None

    for line in modinfo.splitlines():
        match = pattern.match(line)
        if not match:
            continue
        kind, rest = match.group(1), match.group(2)
        if kind == "path":
            main_path = rest.strip()
        elif kind == "mod":
            main = _module_from_fields(rest)
            last = -1
        elif kind == "dep":
            deps.append(_module_from_fields(rest))
            last = len(deps) - 1
        elif kind == "=>":
            if last is None:
                raise MissingBuildInfo(f"replacement line without a module: {line!r}")
            replacement = _module_from_fields(rest)
            if last == -1:
                main = ModuleVersion(main.path, main.version, main.sum, replacement)
            else:
                dep = deps[last]
                deps[last] = ModuleVersion(dep.path, dep.version, dep.sum, replacement)
            last = None
        elif kind == "build":
            key, _, value = rest.partition("=")
            if key:
                settings[key] = value

    return Provenance(
        go_version=go_version,
        path=main_path,
        main=main,
        deps=tuple(deps),
        settings=settings,
    )


def _module_from_fields(rest: str) -> ModuleVersion:
    fields = rest.split("\t")
    path = fields[0].strip()
    if not path:
        raise MissingBuildInfo(f"module line without a path: {rest!r}")
    version = fields[1].strip() if len(fields) > 1 else ""
    checksum = fields[2].strip() if len(fields) > 2 else ""
    return ModuleVersion(path=path, version=version, sum=checksum)


def _find_header(data: bytes) -> Optional[bytes]:
    start = 0
    while True:
        index = data.find(BUILDINFO_MAGIC, start)
        if index < 0 or len(data) - index < BUILDINFO_HEADER_SIZE:
            return None
        if index % BUILDINFO_ALIGN == 0:
            return data[index:]
        start = (index + BUILDINFO_ALIGN - 1) & ~(BUILDINFO_ALIGN - 1)


def _decode_string(data: bytes) -> Tuple[bytes, bytes]:
    length, consumed = _read_uvarint(data)
    if consumed <= 0 or length > len(data) - consumed:
        return b"", b""
    end = consumed + length
    return data[consumed:end], data[end:]


def _read_uvarint(data: bytes) -> Tuple[int, int]:
    value = 0
    shift = 0
    for index, byte in enumerate(data[:10]):
        value |= (byte & 0x7F) << shift
        if byte < 0x80:
            return value, index + 1
        shift += 7
    return 0, 0


def _read_pointer(data: bytes, size: int, order: str) -> int:
    if len(data) < size:
        return 0
    return int.from_bytes(data[:size], order)


def _read_go_string(container: ContainerFile, address: int, pointer_size: int, order: str) -> bytes:
    header = container.read_data(address, 2 * pointer_size)
    if len(header) < 2 * pointer_size:
        return b""
    data_address = _read_pointer(header, pointer_size, order)
    length = _read_pointer(header[pointer_size:], pointer_size, order)
    if length > MAX_STRING_SIZE:
        return b""
    data = container.read_data(data_address, length)
    if len(data) < length:
        return b""
    return data


def _strip_sentinels(modinfo: bytes) -> bytes:
    # The linker frames module info with 16-byte sentinels; the text itself ends in a newline.
    if len(modinfo) >= 33 and modinfo[-17:-16] == b"\n":
        return modinfo[16:-16]
    return b""


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


__all__ = [
    "DEFAULT_MODULE_LINE_PATTERN",
    "MissingBuildInfo",
    "load_provenance",
    "parse_modinfo",
    "read_build_info",
]

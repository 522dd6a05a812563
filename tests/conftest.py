from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.binaries import (
    SymbolSpec,
    build_elf,
    default_buildinfo,
    go_buildinfo_blob,
    write_binary,
)


@pytest.fixture(autouse=True)
def _reset_goweight_logger() -> Iterator[None]:
    """Undo CLI logging setup so caplog keeps receiving goweight records."""
    yield
    logger = logging.getLogger("goweight")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def module_cache_root(tmp_path: Path) -> Path:
    """Provide a module cache holding github.com/acme/lib@v1.2.3 (150 bytes of sources)."""
    root = tmp_path / "gomodcache"
    module_dir = root / "github.com" / "acme" / "lib@v1.2.3"
    (module_dir / "sub").mkdir(parents=True)
    (module_dir / "lib.go").write_bytes(b"x" * 100)
    (module_dir / "sub" / "util.go").write_bytes(b"y" * 50)
    return root


@pytest.fixture
def elf_binary(tmp_path: Path) -> Path:
    """Write an ELF Go binary with sized symbols and inline build info."""
    symbols = [
        SymbolSpec("main.main", 40),
        SymbolSpec("runtime.mallocgc", 300),
        SymbolSpec("runtime.gcStart", 200),
        SymbolSpec("github.com/acme/lib.(*Client).Do", 120),
        SymbolSpec("github.com/acme/lib.New", 30),
        SymbolSpec("noise123", 7),
    ]
    blob = go_buildinfo_blob("go1.22.1", default_buildinfo())
    return write_binary(tmp_path, "app", build_elf(symbols, blob))

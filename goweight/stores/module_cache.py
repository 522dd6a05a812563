"""Read-only access to the local Go module cache for size fallbacks."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Mapping, Optional, Tuple

from ..logging import get_logger
from ..models import DEVELOPMENT_VERSIONS, ModuleVersion

_logger = get_logger("module_cache")


def resolve_module_cache_root(env: Mapping[str, str]) -> Path:
    """Return the module cache root the go command would use for ``env``."""
    modcache = env.get("GOMODCACHE", "").strip()
    if modcache:
        return Path(modcache).expanduser()

    gopath = env.get("GOPATH", "").strip()
    if gopath:
        first = gopath.split(os.pathsep)[0]
        if first:
            return Path(first).expanduser() / "pkg" / "mod"

    home = env.get("HOME") or str(Path.home())
    return Path(home) / "go" / "pkg" / "mod"


def escape_module_path(path: str) -> str:
    """Apply the module cache case encoding (``Azure`` becomes ``!azure``)."""
    escaped = []
    for char in path:
        if "A" <= char <= "Z":
            escaped.append("!" + char.lower())
        else:
            escaped.append(char)
    return "".join(escaped)


def directory_size(path: Path) -> int:
    """Return the summed size of all regular files beneath ``path``.

    Missing directories and unreadable entries are logged and contribute
    nothing; the walk never aborts part way through.
    """
    if not path.exists():
        _logger.warning("Module cache path does not exist: %s", path)
        return 0
    if not path.is_dir():
        _logger.warning("Module cache path is not a directory: %s", path)
        return 0

    def _on_error(exc: OSError) -> None:
        _logger.warning("Could not access %s: %s", exc.filename or path, exc)

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path, onerror=_on_error):
        for filename in filenames:
            file_path = os.path.join(dirpath, filename)
            try:
                info = os.lstat(file_path)
            except OSError as exc:
                _logger.warning("Could not access %s: %s", file_path, exc)
                continue
            if stat.S_ISREG(info.st_mode):
                total += info.st_size
    return total


class ModuleCache:
    """Locates and sizes module source trees keyed by (path, version)."""

    def __init__(self, root: Path | None) -> None:
        self.root = root

    def path_for(self, module_path: str, version: str) -> Optional[Path]:
        if self.root is None or not module_path or version in DEVELOPMENT_VERSIONS:
            return None
        return self.root / f"{escape_module_path(module_path)}@{escape_module_path(version)}"

    def size_of(self, module: ModuleVersion) -> Tuple[int, Optional[Path]]:
        """Return ``(size, directory)``; size is 0 when nothing can be measured."""
        module_path, version = module.cache_key
        directory = self.path_for(module_path, version)
        if directory is None:
            _logger.debug("Skipping module cache lookup for %s (version %r)", module.path, version)
            return 0, None
        size = directory_size(directory)
        return size, directory if directory.is_dir() else None


__all__ = [
    "ModuleCache",
    "directory_size",
    "escape_module_path",
    "resolve_module_cache_root",
]

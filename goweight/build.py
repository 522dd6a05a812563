"""Thin wrapper around the ``go`` command for build-based modes."""

from __future__ import annotations

import os
import re
import shlex
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .logging import get_logger
from .models import ModuleEntry

_PACKAGEFILE = re.compile(r"^packagefile (.*)=(.*)$")

Runner = Callable[[Sequence[str], Path], subprocess.CompletedProcess]


class BuildError(RuntimeError):
    """Raised when the Go toolchain fails to produce a binary."""


class GoToolchain:
    """Invokes ``go build`` and parses its traces."""

    def __init__(
        self,
        command: str = "go",
        *,
        tags: Optional[str] = None,
        flags: Sequence[str] = (),
        runner: Runner | None = None,
    ) -> None:
        self.command = command
        self.tags = tags
        self.flags = list(flags)
        self._runner = runner or self._default_runner
        self.logger = get_logger("build")

    def build_binary(self, output: Path, packages: Sequence[str], *, cwd: Path | None = None) -> Path:
        """Compile ``packages`` into ``output`` and return its path."""
        args = [self.command, "build", "-o", str(output), *self._extra_args(), *packages]
        self.logger.info("Building binary: %s", shlex.join(args))
        completed = self._runner(args, cwd or Path.cwd())
        if completed.returncode != 0:
            raise BuildError(
                f"go build failed with exit code {completed.returncode}:\n{_combined(completed)}"
            )
        return output

    def trace_build(self, packages: Sequence[str], *, output: Path, cwd: Path | None = None) -> str:
        """Run a full rebuild with command tracing and return the combined output."""
        args = [
            self.command,
            "build",
            "-work",
            "-a",
            "-x",
            *self._extra_args(),
            "-o",
            str(output),
            *(packages or ["."]),
        ]
        self.logger.info("Tracing build: %s", shlex.join(args))
        completed = self._runner(args, cwd or Path.cwd())
        if completed.returncode != 0:
            # The trace up to the failure still names the packages that compiled.
            self.logger.warning(
                "go build exited with code %d during build analysis", completed.returncode
            )
        return _combined(completed)

    def _extra_args(self) -> List[str]:
        args = list(self.flags)
        if self.tags:
            args.extend(["-tags", self.tags])
        return args

    @staticmethod
    def _default_runner(args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess:
        return subprocess.run(
            list(args),
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=True,
        )


def parse_build_output(output: str) -> List[ModuleEntry]:
    """List compiled packages found in a ``go build -x`` trace.

    Archive files live in the temporary work directory, so sizes are
    unavailable and every entry reports zero bytes.
    """
    entries: Dict[str, ModuleEntry] = {}
    for line in output.splitlines():
        archive = _archive_from_line(line)
        if archive is None:
            continue
        name = package_name_from_archive(archive)
        if name and name not in entries:
            entries[name] = ModuleEntry(path=archive, name=name)
    return list(entries.values())


def _archive_from_line(line: str) -> Optional[str]:
    stripped = line.strip()
    if "/compile" in stripped and "-o" in stripped and "_pkg_.a" in stripped:
        parts = stripped.split()
        for index, part in enumerate(parts[:-1]):
            if part == "-o":
                return parts[index + 1]
        return None
    if stripped.startswith("pack r "):
        parts = stripped.split()
        if len(parts) >= 3 and parts[2].endswith("_pkg_.a"):
            return parts[2]
    return None


def parse_importcfg(text: str) -> Dict[str, str]:
    """Map archive paths to package import paths from ``packagefile`` lines."""
    mapping: Dict[str, str] = {}
    for line in text.splitlines():
        match = _PACKAGEFILE.match(line.strip())
        if match:
            mapping[match.group(2).strip()] = match.group(1).strip()
    return mapping


def package_name_from_archive(archive: str) -> str:
    """Return the import path for ``archive`` using the sibling ``importcfg`` if readable."""
    action_dir = os.path.dirname(archive)
    importcfg = Path(os.path.dirname(action_dir)) / "importcfg"
    try:
        mapping = parse_importcfg(importcfg.read_text(encoding="utf-8"))
    except OSError:
        mapping = {}
    if archive in mapping:
        return mapping[archive]
    base = os.path.basename(archive)
    return os.path.splitext(base)[0]


def _combined(completed: subprocess.CompletedProcess) -> str:
    out = completed.stdout or ""
    err = completed.stderr or ""
    if out.strip() and err.strip():
        return f"{out.rstrip()}\n{err.rstrip()}"
    return (out or err).rstrip()


__all__ = [
    "BuildError",
    "GoToolchain",
    "package_name_from_archive",
    "parse_build_output",
    "parse_importcfg",
]

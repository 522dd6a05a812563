"""Pipeline tying provenance, symbols, reconciliation and reporting together."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .build import GoToolchain, parse_build_output
from .buildinfo import load_provenance
from .config import GoWeightConfig
from .containers import ContainerParser, read_symbols
from .logging import get_logger
from .models import ModuleEntry
from .reconcile import reconcile
from .report import assemble_report
from .resolver import PackageResolver
from .stores import ModuleCache


@dataclass
class BinaryOutcome:
    """Result of analysing one binary in a batch."""

    path: Path
    entries: List[ModuleEntry] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GoWeight:
    """Attributes the size of Go binaries to the packages and modules they contain."""

    def __init__(
        self,
        config: GoWeightConfig | None = None,
        *,
        toolchain: GoToolchain | None = None,
        parsers: Sequence[ContainerParser] | None = None,
    ) -> None:
        self.config = config or GoWeightConfig(root=Path.cwd())
        self.toolchain = toolchain or GoToolchain(
            self.config.build.command,
            tags=self.config.build.tags,
            flags=self.config.build.flags,
        )
        self.parsers = parsers
        self.resolver = PackageResolver(self.config.analysis.reserved_packages)
        self.module_cache = ModuleCache(self.config.module_cache)
        self.logger = get_logger("analyzer")

    def process_binary(self, path: Path) -> List[ModuleEntry]:
        """Return the ranked size report for one binary.

        Unreadable files, unrecognized formats and missing build information
        propagate to the caller; everything after that degrades to zero sizes.
        """
        path = Path(path)
        self.logger.info("Analysing %s", path)
        provenance = load_provenance(
            path,
            line_pattern=self.config.analysis.module_line_pattern,
            parsers=self.parsers,
        )
        table = read_symbols(path, self.resolver, self.parsers)
        result = reconcile(
            table.resolved(),
            provenance,
            file_size=table.file_size,
            code_fraction=self.config.analysis.code_fraction,
            module_cache=self.module_cache,
        )
        self.logger.debug("Size strategies applied: %s", ", ".join(result.strategies))
        if result.estimated:
            self.logger.info("%s exposes no symbol sizes; package sizes are estimates", path)
        return assemble_report(provenance, result, binary_path=str(path))

    def process_binaries(self, paths: Iterable[Path]) -> List[BinaryOutcome]:
        """Analyse each binary independently; a failure is recorded on its outcome."""
        outcomes: List[BinaryOutcome] = []
        for path in paths:
            path = Path(path)
            try:
                entries = self.process_binary(path)
            except (RuntimeError, OSError) as exc:
                self.logger.error("Failed to analyse %s: %s", path, exc)
                outcomes.append(BinaryOutcome(path=path, error=str(exc)))
                continue
            outcomes.append(BinaryOutcome(path=path, entries=entries))
        return outcomes

    def build_and_analyze(self, packages: Sequence[str] = ()) -> List[ModuleEntry]:
        """Build ``packages`` into a temporary binary and analyse it."""
        with tempfile.TemporaryDirectory(prefix="goweight-") as workdir:
            output = Path(workdir) / "goweight-bin"
            self.toolchain.build_binary(output, packages, cwd=self.config.root)
            return self.process_binary(output)

    def analyze_build_process(self, packages: Sequence[str] = ()) -> List[ModuleEntry]:
        """List the packages compiled by a traced rebuild of ``packages``."""
        with tempfile.TemporaryDirectory(prefix="goweight-") as workdir:
            output = Path(workdir) / "goweight-bin"
            trace = self.toolchain.trace_build(packages, output=output, cwd=self.config.root)
        entries = parse_build_output(trace)
        self.logger.info("Build trace listed %d packages", len(entries))
        return entries


__all__ = ["BinaryOutcome", "GoWeight"]

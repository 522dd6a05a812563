"""Reconciliation of symbol sizes, proportional estimates and module cache sizes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .logging import get_logger
from .models import Provenance, SizeMethod, Symbol
from .stores import ModuleCache

DEFAULT_CODE_FRACTION = 0.7

_logger = get_logger("reconcile")


@dataclass(frozen=True)
class PackageSize:
    """Size attributed to one package or module and how it was obtained."""

    size: int
    method: SizeMethod
    path: str = ""


@dataclass
class StrategyOutcome:
    """Sizes produced by a strategy and whether later strategies can be skipped."""

    sizes: Dict[str, PackageSize] = field(default_factory=dict)
    sufficient: bool = False


@dataclass
class ReconcileInput:
    symbols: Sequence[Symbol]
    provenance: Optional[Provenance]
    file_size: int


@dataclass
class Reconciliation:
    """Final identity to size mapping together with the strategies that contributed."""

    sizes: Dict[str, PackageSize] = field(default_factory=dict)
    strategies: List[str] = field(default_factory=list)

    def as_bytes(self) -> Dict[str, int]:
        return {name: entry.size for name, entry in self.sizes.items()}

    @property
    def estimated(self) -> bool:
        return any(entry.method is SizeMethod.ESTIMATE for entry in self.sizes.values())


class SizeStrategy(ABC):
    """One step of the fallback chain."""

    name: str = ""

    @abstractmethod
    def apply(self, data: ReconcileInput, current: Dict[str, PackageSize]) -> StrategyOutcome:
        """Return sizes to merge into ``current``."""


class DirectAggregation(SizeStrategy):
    """Sums symbol sizes per resolved package."""

    name = "symbols"

    def apply(self, data: ReconcileInput, current: Dict[str, PackageSize]) -> StrategyOutcome:
        totals: Dict[str, int] = defaultdict(int)
        for symbol in data.symbols:
            if symbol.package:
                totals[symbol.package] += symbol.size
        sizes = {
            package: PackageSize(size, SizeMethod.SYMBOLS if size else SizeMethod.NONE)
            for package, size in totals.items()
        }
        sufficient = sum(totals.values()) > 0
        if totals and not sufficient:
            _logger.warning("All %d resolved packages have zero symbol size", len(totals))
        return StrategyOutcome(sizes=sizes, sufficient=sufficient)


class ProportionalEstimate(SizeStrategy):
    """Distributes a fraction of the file size by relative symbol count.

    This is an approximation used when the container format exposes no
    symbol sizes; every size it produces is tagged as an estimate.
    """

    name = "estimate"

    def __init__(self, code_fraction: float = DEFAULT_CODE_FRACTION) -> None:
        if not 0.0 < code_fraction <= 1.0:
            raise ValueError(f"code_fraction must be within (0, 1], got {code_fraction}")
        self.code_fraction = code_fraction

    def apply(self, data: ReconcileInput, current: Dict[str, PackageSize]) -> StrategyOutcome:
        counts = Counter(symbol.package for symbol in data.symbols if symbol.package)
        total = sum(counts.values())
        if not total or data.file_size <= 0:
            return StrategyOutcome()
        budget = data.file_size * self.code_fraction
        sizes = {
            package: PackageSize(round(count * budget / total), SizeMethod.ESTIMATE)
            for package, count in counts.items()
        }
        _logger.info(
            "Estimated sizes for %d packages from %d symbols (code fraction %.2f)",
            len(sizes),
            total,
            self.code_fraction,
        )
        return StrategyOutcome(sizes=sizes, sufficient=any(entry.size for entry in sizes.values()))


class ModuleCacheFallback(SizeStrategy):
    """Sizes every provenance module from its module cache directory."""

    name = "module-cache"

    def __init__(self, cache: ModuleCache) -> None:
        self.cache = cache

    def apply(self, data: ReconcileInput, current: Dict[str, PackageSize]) -> StrategyOutcome:
        outcome = StrategyOutcome(sufficient=True)
        if data.provenance is None:
            return outcome
        for module in data.provenance.modules():
            size, directory = self.cache.size_of(module)
            method = SizeMethod.MODULE_CACHE if size else SizeMethod.NONE
            outcome.sizes[module.path] = PackageSize(size, method, str(directory) if directory else "")
        return outcome


def reconcile(
    symbols: Sequence[Symbol],
    provenance: Optional[Provenance],
    *,
    file_size: int = 0,
    code_fraction: float = DEFAULT_CODE_FRACTION,
    module_cache: ModuleCache | Path | None = None,
) -> Reconciliation:
    """Return per-package sizes from the first strategy that produces any bytes.

    Symbol aggregation, the proportional estimate and the module cache are
    tried in that order; each only runs when everything before it left the
    map at zero. Missing information never raises; it degrades to a zero size.
    """
    cache = module_cache if isinstance(module_cache, ModuleCache) else ModuleCache(module_cache)
    chain: List[SizeStrategy] = [
        DirectAggregation(),
        ProportionalEstimate(code_fraction),
        ModuleCacheFallback(cache),
    ]

    data = ReconcileInput(symbols=symbols, provenance=provenance, file_size=file_size)
    result = Reconciliation()
    for strategy in chain:
        outcome = strategy.apply(data, result.sizes)
        _merge(result.sizes, outcome.sizes)
        result.strategies.append(strategy.name)
        if outcome.sufficient:
            break

    return result


def _merge(target: Dict[str, PackageSize], sizes: Dict[str, PackageSize]) -> None:
    for name, entry in sizes.items():
        existing = target.get(name)
        if existing is None or existing.size == 0:
            target[name] = entry


__all__ = [
    "DEFAULT_CODE_FRACTION",
    "DirectAggregation",
    "ModuleCacheFallback",
    "PackageSize",
    "ProportionalEstimate",
    "ReconcileInput",
    "Reconciliation",
    "SizeStrategy",
    "StrategyOutcome",
    "reconcile",
]

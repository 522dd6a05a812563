"""Assembly of ranked, de-duplicated size reports."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from .models import ModuleEntry, Provenance, SizeMethod
from .reconcile import PackageSize, Reconciliation

GroupKey = Callable[[str], str]


def sort_entries(entries: Iterable[ModuleEntry]) -> List[ModuleEntry]:
    """Order by size descending, then by name so equal sizes stay deterministic."""
    return sorted(entries, key=lambda entry: (-entry.size, entry.name))


def assemble_report(
    provenance: Optional[Provenance],
    reconciliation: Reconciliation,
    *,
    binary_path: str = "",
) -> List[ModuleEntry]:
    """Merge provenance modules and symbol-derived packages into one ranked list."""
    entries: Dict[str, ModuleEntry] = {}
    symbol_derived = {
        name: sized
        for name, sized in reconciliation.sizes.items()
        if sized.method in (SizeMethod.SYMBOLS, SizeMethod.ESTIMATE)
    }

    if provenance is not None:
        for module in provenance.modules():
            sized = symbol_derived.get(module.path)
            if sized is None or sized.size == 0:
                sized = reconciliation.sizes.get(module.path, PackageSize(0, SizeMethod.NONE))
                path = sized.path
            else:
                path = binary_path
            entries[module.path] = ModuleEntry(
                path=path,
                name=module.path,
                version=module.version,
                size=sized.size,
                method=sized.method,
            )

    for name, sized in reconciliation.sizes.items():
        if name in entries:
            continue
        entries[name] = ModuleEntry(
            path=binary_path if name in symbol_derived else sized.path,
            name=name,
            size=sized.size,
            method=sized.method,
        )

    return sort_entries(entries.values())


def top_level_package(name: str) -> str:
    """Return the coarse grouping key used when rolling up a report."""
    if name.startswith("runtime"):
        return "runtime"
    if name.startswith("internal/"):
        return "internal/*"
    if name.startswith("vendor/"):
        return "vendor/*"
    if "/" in name:
        # Both domain-rooted paths (github.com/user/...) and other slash paths keep two elements.
        return "/".join(name.split("/")[:2])
    return name


def rollup(entries: Iterable[ModuleEntry], key: GroupKey = top_level_package) -> List[ModuleEntry]:
    """Collapse entries sharing ``key(name)`` by summing their sizes."""
    totals: Dict[str, int] = {}
    methods: Dict[str, SizeMethod] = {}
    for entry in entries:
        group = key(entry.name)
        totals[group] = totals.get(group, 0) + entry.size
        previous = methods.get(group)
        if previous is None:
            methods[group] = entry.method
        elif previous is not entry.method:
            methods[group] = SizeMethod.MIXED

    grouped = [
        ModuleEntry(path=group, name=group, size=size, method=methods[group])
        for group, size in totals.items()
    ]
    return sort_entries(grouped)


__all__ = ["assemble_report", "rollup", "sort_entries", "top_level_package"]

"""Tests for goweight.report."""

from __future__ import annotations

from pathlib import Path

from goweight.models import ModuleEntry, ModuleVersion, Provenance, SizeMethod
from goweight.reconcile import PackageSize, Reconciliation, reconcile
from goweight.report import assemble_report, rollup, sort_entries, top_level_package


def _entry(name: str, size: int, method: SizeMethod = SizeMethod.SYMBOLS) -> ModuleEntry:
    return ModuleEntry(path="bin", name=name, size=size, method=method)


def test_sort_entries_breaks_ties_by_name() -> None:
    entries = [_entry("b", 10), _entry("c", 30), _entry("a", 10), _entry("d", 0)]

    ordered = sort_entries(entries)

    assert [entry.name for entry in ordered] == ["c", "a", "b", "d"]
    assert sort_entries(reversed(entries)) == ordered


def test_assemble_report_end_to_end_without_symbols(module_cache_root: Path) -> None:
    provenance = Provenance(
        go_version="go1.22.1",
        path="example.com/app",
        main=ModuleVersion("example.com/app", "(devel)"),
        deps=(ModuleVersion("github.com/acme/lib", "v1.2.3"),),
    )
    result = reconcile([], provenance, module_cache=module_cache_root)

    report = assemble_report(provenance, result, binary_path="/tmp/app")

    assert [(entry.name, entry.size) for entry in report] == [
        ("github.com/acme/lib", 150),
        ("example.com/app", 0),
    ]
    assert report[0].version == "v1.2.3"
    assert report[0].method is SizeMethod.MODULE_CACHE
    assert report[1].method is SizeMethod.NONE


def test_assemble_report_deduplicates_modules_and_packages() -> None:
    provenance = Provenance(
        go_version="go1.22.1",
        path="example.com/app",
        main=ModuleVersion("example.com/app", "(devel)"),
        deps=(ModuleVersion("github.com/x/y", "v0.1.0"),),
    )
    reconciliation = Reconciliation(
        sizes={
            "github.com/x/y": PackageSize(20, SizeMethod.SYMBOLS),
            "runtime": PackageSize(5, SizeMethod.SYMBOLS),
            "main": PackageSize(10, SizeMethod.SYMBOLS),
            "example.com/app": PackageSize(0, SizeMethod.NONE),
        }
    )

    report = assemble_report(provenance, reconciliation, binary_path="app")

    assert [entry.name for entry in report] == ["github.com/x/y", "main", "runtime", "example.com/app"]
    assert report[0].version == "v0.1.0"
    assert report[0].path == "app"
    assert len({entry.name for entry in report}) == len(report)


def test_top_level_package_groups() -> None:
    assert top_level_package("runtime/internal/atomic") == "runtime"
    assert top_level_package("internal/poll") == "internal/*"
    assert top_level_package("vendor/golang.org/x/net/http2") == "vendor/*"
    assert top_level_package("github.com/acme/lib/sub/pkg") == "github.com/acme"
    assert top_level_package("encoding/json") == "encoding/json"
    assert top_level_package("main") == "main"


def test_rollup_preserves_total_size() -> None:
    entries = [
        _entry("github.com/acme/lib", 100),
        _entry("github.com/acme/other", 50, SizeMethod.MODULE_CACHE),
        _entry("runtime", 70),
        _entry("runtime/internal/sys", 5),
        _entry("main", 1),
    ]

    rolled = rollup(entries)

    assert sum(entry.size for entry in rolled) == sum(entry.size for entry in entries)
    assert [(entry.name, entry.size) for entry in rolled] == [
        ("github.com/acme", 150),
        ("runtime", 75),
        ("main", 1),
    ]
    assert rolled[0].method is SizeMethod.MIXED
    assert rolled[1].method is SizeMethod.SYMBOLS


def test_rollup_accepts_custom_grouping() -> None:
    entries = [_entry("a1", 3), _entry("a2", 4), _entry("b1", 5)]

    rolled = rollup(entries, key=lambda name: name[0])

    assert sum(entry.size for entry in rolled) == 12
    assert [(entry.name, entry.size) for entry in rolled] == [("a", 7), ("b", 5)]

"""Tests for goweight.reconcile."""

from __future__ import annotations

import random
from pathlib import Path

import pytest

from goweight.models import ModuleVersion, Provenance, SizeMethod, Symbol
from goweight.reconcile import ProportionalEstimate, reconcile
from goweight.report import assemble_report
from goweight.resolver import resolve_package


def _symbols(pairs):
    return [Symbol(name=name, size=size, package=resolve_package(name)) for name, size in pairs]


def _provenance(*deps: ModuleVersion) -> Provenance:
    return Provenance(
        go_version="go1.22.1",
        path="example.com/app",
        main=ModuleVersion("example.com/app", "(devel)"),
        deps=tuple(deps),
    )


def test_direct_aggregation_sums_sizes_per_package() -> None:
    symbols = _symbols(
        [("main.run", 10), ("runtime.gcStart", 5), ("github.com/x/y.Do", 20), ("noise123", 3)]
    )

    result = reconcile(symbols, None)

    assert result.as_bytes() == {"main": 10, "runtime": 5, "github.com/x/y": 20}
    assert {entry.method for entry in result.sizes.values()} == {SizeMethod.SYMBOLS}
    assert result.strategies == ["symbols"]


def test_direct_aggregation_is_order_invariant() -> None:
    pairs = [("main.run", 10), ("runtime.gcStart", 5), ("runtime.mallocgc", 7), ("github.com/x/y.Do", 20)]
    shuffled = list(pairs)
    random.Random(7).shuffle(shuffled)

    first = reconcile(_symbols(pairs), None).as_bytes()
    second = reconcile(_symbols(shuffled), None).as_bytes()

    assert first == second
    assert sum(first.values()) <= sum(size for _, size in pairs)


def test_proportional_estimate_when_symbols_have_no_size() -> None:
    symbols = [Symbol(name=f"a{i}", package="A") for i in range(2)]
    symbols += [Symbol(name=f"b{i}", package="B") for i in range(8)]

    result = reconcile(symbols, None, file_size=1000, code_fraction=0.7)

    assert result.as_bytes() == {"A": 140, "B": 560}
    assert result.estimated
    assert result.strategies == ["symbols", "estimate"]


def test_proportional_estimate_rejects_invalid_fraction() -> None:
    with pytest.raises(ValueError):
        ProportionalEstimate(0.0)


def test_module_cache_fills_modules_without_symbol_sizes(module_cache_root: Path) -> None:
    provenance = _provenance(ModuleVersion("github.com/acme/lib", "v1.2.3"))

    result = reconcile([], provenance, module_cache=module_cache_root)

    lib = result.sizes["github.com/acme/lib"]
    assert lib.size == 150
    assert lib.method is SizeMethod.MODULE_CACHE
    assert lib.path.endswith("lib@v1.2.3")
    main = result.sizes["example.com/app"]
    assert (main.size, main.method) == (0, SizeMethod.NONE)


def test_module_cache_does_not_override_symbol_sizes(module_cache_root: Path) -> None:
    provenance = _provenance(ModuleVersion("github.com/acme/lib", "v1.2.3"))
    symbols = _symbols([("github.com/acme/lib.New", 42)])

    result = reconcile(symbols, provenance, module_cache=module_cache_root)

    assert result.sizes["github.com/acme/lib"].size == 42
    assert result.sizes["github.com/acme/lib"].method is SizeMethod.SYMBOLS


def test_module_cache_is_skipped_when_symbols_have_sizes(module_cache_root: Path) -> None:
    provenance = _provenance(ModuleVersion("github.com/acme/lib", "v1.2.3"))
    symbols = _symbols([("main.run", 10), ("github.com/acme/lib/sub.Do", 20)])

    result = reconcile(symbols, provenance, module_cache=module_cache_root)

    assert result.as_bytes() == {"main": 10, "github.com/acme/lib/sub": 20}
    assert sum(result.as_bytes().values()) <= sum(symbol.size for symbol in symbols)
    assert result.strategies == ["symbols"]
    report = assemble_report(provenance, result)
    assert sum(entry.size for entry in report) == 30


def test_missing_information_degrades_to_zero(tmp_path: Path) -> None:
    provenance = _provenance(ModuleVersion("github.com/acme/lib", "v9.9.9"))

    result = reconcile([], provenance, module_cache=tmp_path / "missing")

    assert result.as_bytes() == {"example.com/app": 0, "github.com/acme/lib": 0}

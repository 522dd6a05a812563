"""Tests for the goweight CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from goweight import __version__
from goweight.cli import _build_parser, main
from tests._fixtures.binaries import SymbolSpec, build_elf, write_binary


@pytest.fixture
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, module_cache_root: Path) -> Path:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GOMODCACHE", str(module_cache_root))
    return tmp_path


def test_parser_accepts_flags_in_any_order() -> None:
    parser = _build_parser()

    first = parser.parse_args(["./cmd/app", "-j", "--tags", "netgo", "-b", "a", "-b", "b", "-v"])
    second = parser.parse_args(["-v", "-b", "a", "--tags", "netgo", "-b", "b", "-j", "./cmd/app"])

    assert vars(first) == vars(second)
    assert first.binary == [Path("a"), Path("b")]
    assert first.packages == "./cmd/app"


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_main_prints_json_report_for_binary(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["-b", str(elf_binary), "--json", "-v"])

    rows = json.loads(capsys.readouterr().out)
    assert [row["name"] for row in rows] == ["runtime", "github.com/acme/lib", "main", "example.com/app"]
    assert rows[1]["version"] == "v1.2.3"
    assert rows[0]["method"] == "symbols"


def test_main_rolls_up_text_report_by_default(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["--binary", str(elf_binary)])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].split() == ["500", "Bytes", "runtime"]
    assert lines[1].split() == ["150", "Bytes", "github.com/acme"]
    assert lines[-1].split() == ["0", "Bytes", "example.com/app"]


def test_main_respects_config_rollup_setting(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (isolated / ".goweight.yml").write_text("report:\n  rollup: false\n", encoding="utf-8")

    main(["-b", str(elf_binary)])

    names = [line.split()[-1] for line in capsys.readouterr().out.splitlines()]
    assert "github.com/acme/lib" in names


def test_main_exits_with_error_for_non_go_binary(
    isolated: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = write_binary(isolated, "plain", build_elf([SymbolSpec("main", 4)]))

    with pytest.raises(SystemExit) as excinfo:
        main(["-b", str(path)])

    assert excinfo.value.code == 1
    assert "goweight:" in capsys.readouterr().err


def test_main_reports_each_binary_and_fails_if_any_fail(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["-b", str(elf_binary), "-b", str(isolated / "missing")])

    captured = capsys.readouterr()
    assert excinfo.value.code == 1
    assert f"# {elf_binary}" in captured.out
    assert "could not be analysed" in captured.err


def test_main_exits_on_invalid_config(isolated: Path, elf_binary: Path) -> None:
    (isolated / ".goweight.yml").write_text("analysis:\n  code_fraction: 2\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["-b", str(elf_binary)])

    assert excinfo.value.code == 1


def test_main_prints_one_json_document_for_several_binaries(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    copy = write_binary(isolated, "app-copy", elf_binary.read_bytes())

    main(["-b", str(elf_binary), "-b", str(copy), "--json", "-v"])

    reports = json.loads(capsys.readouterr().out)
    assert [report["path"] for report in reports] == [str(elf_binary), str(copy)]
    sizes = [[(row["name"], row["size"]) for row in report["entries"]] for report in reports]
    assert sizes[0] == sizes[1]
    assert reports[0]["entries"][0]["name"] == "runtime"


def test_main_json_for_several_binaries_omits_failures(
    isolated: Path, elf_binary: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    missing = isolated / "missing"

    with pytest.raises(SystemExit) as excinfo:
        main(["-b", str(elf_binary), "-b", str(missing), "--json"])

    captured = capsys.readouterr()
    assert excinfo.value.code == 1
    reports = json.loads(captured.out)
    assert [report["path"] for report in reports] == [str(elf_binary)]
    assert str(missing) in captured.err

"""Tests for goweight.logging."""

from __future__ import annotations

import io
from pathlib import Path

from goweight.logging import component_of, configure_logging, get_logger


def test_get_logger_nests_under_goweight() -> None:
    assert get_logger("reconcile").name == "goweight.reconcile"
    assert get_logger().name == "goweight"
    assert component_of("goweight.stores.module_cache") == "stores.module_cache"
    assert component_of("goweight") == ""


def test_console_output_uses_plain_tag_by_default() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)

    get_logger("reconcile").warning("All %d resolved packages have zero symbol size", 3)
    get_logger("reconcile").debug("hidden")

    assert stream.getvalue() == "[goweight] WARNING All 3 resolved packages have zero symbol size\n"


def test_verbose_console_output_names_the_component() -> None:
    stream = io.StringIO()
    configure_logging(verbose=True, stream=stream)

    get_logger("module_cache").debug("Skipping module cache lookup for %s", "example.com/app")

    assert stream.getvalue() == (
        "[goweight:module_cache] DEBUG Skipping module cache lookup for example.com/app\n"
    )


def test_log_file_receives_debug_records(tmp_path: Path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "logs" / "goweight.log"
    configure_logging(log_file=log_file, stream=stream)

    get_logger("cli").debug("Fatal error")

    assert stream.getvalue() == ""
    assert "DEBUG goweight.cli: Fatal error" in log_file.read_text(encoding="utf-8")


def test_reconfiguring_replaces_handlers() -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging(stream=first)
    logger = configure_logging(stream=second)

    get_logger("cli").info("once")

    assert len(logger.handlers) == 1
    assert first.getvalue() == ""
    assert second.getvalue() == "[goweight] INFO once\n"

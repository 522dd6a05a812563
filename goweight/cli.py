"""CLI entrypoint for goweight."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List

from . import __version__
from .analyzer import GoWeight
from .config import load_config
from .logging import configure_logging, get_logger
from .models import ModuleEntry
from .render import render_json, render_json_reports, render_text
from .report import rollup


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goweight",
        description="Show how much each package or module contributes to a Go binary.",
    )
    parser.add_argument(
        "packages",
        nargs="?",
        default=None,
        help="Package pattern to build and analyse (defaults to the current directory).",
    )
    parser.add_argument(
        "-j",
        "--json",
        action="store_true",
        help="Print the report as JSON.",
    )
    parser.add_argument(
        "--tags",
        default=None,
        help="Build tags passed to go build.",
    )
    parser.add_argument(
        "-b",
        "--binary",
        action="append",
        default=[],
        type=Path,
        help="Analyse an existing binary instead of building (repeatable).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="List every package instead of rolling up to top-level groups.",
    )
    parser.add_argument(
        "--build-analysis",
        action="store_true",
        help="List the packages compiled by a traced rebuild.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .goweight.yml or the directory containing it.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log output to this file.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for goweight."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.debug), log_file=args.log_file)
    logger = get_logger("cli")

    try:
        config = load_config(args.config if args.config is not None else Path.cwd())
        if args.tags:
            config.build.tags = args.tags
        goweight = GoWeight(config)
        packages = [args.packages] if args.packages else []
        do_rollup = config.report.rollup and not args.verbose

        if args.binary:
            outcomes = goweight.process_binaries(args.binary)
            if len(outcomes) == 1:
                outcome = outcomes[0]
                if outcome.error is not None:
                    parser.exit(1, f"goweight: {outcome.error}\n")
                _emit(outcome.entries, as_json=args.json, do_rollup=do_rollup)
                return
            failed = False
            reports = []
            for outcome in outcomes:
                if outcome.error is not None:
                    failed = True
                    logger.error("Could not analyse %s: %s", outcome.path, outcome.error)
                    continue
                entries = rollup(outcome.entries) if do_rollup else outcome.entries
                reports.append((outcome.path, entries))
            if args.json:
                print(render_json_reports(reports))
            else:
                for path, entries in reports:
                    print(f"# {path}")
                    print(render_text(entries))
            if failed:
                parser.exit(1, "goweight: one or more binaries could not be analysed\n")
            return

        if args.build_analysis:
            entries = goweight.analyze_build_process(packages)
        else:
            entries = goweight.build_and_analyze(packages)
    except (RuntimeError, OSError) as exc:
        logger.debug("Fatal error", exc_info=True)
        parser.exit(1, f"goweight: {exc}\n")

    _emit(entries, as_json=args.json, do_rollup=do_rollup)


def _emit(entries: List[ModuleEntry], *, as_json: bool, do_rollup: bool) -> None:
    if do_rollup:
        entries = rollup(entries)
    print(render_json(entries) if as_json else render_text(entries))


__all__ = ["main"]

"""Text and JSON renderings of a size report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Sequence, Tuple

from .models import ModuleEntry


def render_text(entries: Iterable[ModuleEntry]) -> str:
    return "\n".join(f"{entry.size_human:>8} {entry.name}" for entry in entries)


def render_json(entries: Iterable[ModuleEntry], *, indent: int | None = None) -> str:
    return json.dumps([entry.to_dict() for entry in entries], indent=indent)


def render_json_reports(
    reports: Iterable[Tuple[Path, Sequence[ModuleEntry]]], *, indent: int | None = None
) -> str:
    """Render several binaries' reports as one array of ``{"path", "entries"}`` objects."""
    return json.dumps(
        [
            {"path": str(path), "entries": [entry.to_dict() for entry in entries]}
            for path, entries in reports
        ],
        indent=indent,
    )


__all__ = ["render_json", "render_json_reports", "render_text"]

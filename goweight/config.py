"""Configuration loading for goweight (.goweight.yml)."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern, Sequence

import yaml

from .buildinfo import DEFAULT_MODULE_LINE_PATTERN
from .reconcile import DEFAULT_CODE_FRACTION
from .resolver import DEFAULT_RESERVED
from .stores.module_cache import resolve_module_cache_root

CONFIG_FILENAME = ".goweight.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AnalysisConfig:
    """Settings for symbol attribution and build info decoding."""

    code_fraction: float = DEFAULT_CODE_FRACTION
    reserved_packages: List[str] = field(default_factory=lambda: list(DEFAULT_RESERVED))
    module_line_pattern: Pattern[str] = field(
        default_factory=lambda: re.compile(DEFAULT_MODULE_LINE_PATTERN)
    )


@dataclass
class BuildConfig:
    """How the Go toolchain is invoked in build modes."""

    command: str = "go"
    tags: Optional[str] = None
    flags: List[str] = field(default_factory=list)


@dataclass
class ReportConfig:
    """Presentation defaults."""

    rollup: bool = True


@dataclass
class GoWeightConfig:
    """Represents the high-level settings defined in .goweight.yml."""

    root: Path
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    module_cache: Optional[Path] = None


def load_config(config_path: Path, env: Mapping[str, str] | None = None) -> GoWeightConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    environ = os.environ if env is None else env
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return GoWeightConfig(root=root, module_cache=resolve_module_cache_root(environ))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    analysis = AnalysisConfig()
    analysis_data = _as_dict(data.get("analysis"))
    if analysis_data:
        fraction = _as_float(analysis_data.get("code_fraction"))
        if fraction is not None:
            if not 0.0 < fraction <= 1.0:
                raise ConfigError(f"analysis.code_fraction must be within (0, 1], got {fraction}")
            analysis.code_fraction = fraction
        reserved = _as_str_list(analysis_data.get("reserved_packages"))
        if reserved:
            analysis.reserved_packages = reserved
        pattern = _as_str(analysis_data.get("module_line_pattern"))
        if pattern:
            try:
                analysis.module_line_pattern = re.compile(pattern)
            except re.error as exc:
                raise ConfigError(f"Invalid analysis.module_line_pattern: {exc}") from exc

    build = BuildConfig()
    build_data = _as_dict(data.get("build"))
    if build_data:
        build.command = _as_str(build_data.get("command")) or build.command
        build.tags = _as_str(build_data.get("tags"))
        build.flags = _as_str_list(build_data.get("flags"))

    report = ReportConfig()
    report_data = _as_dict(data.get("report"))
    if report_data:
        rollup = _as_bool(report_data.get("rollup"))
        if rollup is not None:
            report.rollup = rollup

    module_cache_str = _as_str(data.get("module_cache"))
    if module_cache_str:
        module_cache: Optional[Path] = (root / Path(module_cache_str).expanduser()).resolve()
    else:
        module_cache = resolve_module_cache_root(environ)

    return GoWeightConfig(
        root=root,
        analysis=analysis,
        build=build,
        report=report,
        module_cache=module_cache,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []

from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
import tomllib
from typing import Mapping

from tikzplot.errors import PipelineConfigError
from tikzplot.render.markup import DEFAULT_COMPAT


CONFIG_ENV_VAR = "TIKZPLOT_CONFIG"
TIMEOUT_ENV_VAR = "TIKZPLOT_COMPILE_TIMEOUT_S"

# Exactly these two suffixes select the compiled pipeline; the match is case-sensitive.
COMPILED_SUFFIXES = (".pdf", ".dvi")
DEFAULT_COMPILERS: Mapping[str, tuple[str, ...]] = {
    ".pdf": ("pdflatex",),
    ".dvi": ("latex",),
}

_COMPILE_KEYS = {"pdf", "dvi", "timeout_s", "compat"}


@dataclass(frozen=True)
class PipelineConfig:
    compilers: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_COMPILERS))
    source_suffix: str = ".tex"
    aux_suffixes: tuple[str, ...] = (".aux", ".log")
    compat: str = DEFAULT_COMPAT
    timeout_s: float | None = None

    def __post_init__(self) -> None:
        unknown = set(self.compilers) - set(COMPILED_SUFFIXES)
        if unknown:
            raise PipelineConfigError(f"compilers may only be configured for {COMPILED_SUFFIXES}: {sorted(unknown)}")
        for suffix in COMPILED_SUFFIXES:
            command = self.compilers.get(suffix)
            if not command:
                raise PipelineConfigError(f"no compiler command configured for {suffix}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise PipelineConfigError("timeout_s must be > 0")

    def compiler_for(self, suffix: str) -> tuple[str, ...]:
        return tuple(self.compilers[suffix])


def load_pipeline_config(path: str | Path) -> PipelineConfig:
    """Read a ``[compile]`` table from a TOML file.

    Example::

        [compile]
        pdf = ["lualatex"]
        dvi = "latex"
        timeout_s = 60
        compat = "1.17"
    """
    config_path = Path(path)
    if not config_path.exists():
        raise PipelineConfigError(f"pipeline config not found: {config_path}")
    try:
        with config_path.open("rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise PipelineConfigError(f"invalid TOML in {config_path}: {exc}") from exc
    table = raw.get("compile", {})
    if not isinstance(table, dict):
        raise PipelineConfigError("compile must be a table")
    unknown = set(table) - _COMPILE_KEYS
    if unknown:
        raise PipelineConfigError(f"unknown compile keys: {sorted(unknown)}")

    compilers = dict(DEFAULT_COMPILERS)
    for key in ("pdf", "dvi"):
        if key in table:
            compilers[f".{key}"] = _coerce_command(table[key], f"compile.{key}")
    compat = _coerce_optional_str(table.get("compat"), "compile.compat") or DEFAULT_COMPAT
    timeout_s = _coerce_optional_timeout(table.get("timeout_s"), "compile.timeout_s")
    return PipelineConfig(compilers=compilers, compat=compat, timeout_s=timeout_s)


def resolve_pipeline_config(env: Mapping[str, str] | None = None) -> PipelineConfig:
    environ = os.environ if env is None else env
    config_path = environ.get(CONFIG_ENV_VAR, "").strip()
    config = load_pipeline_config(config_path) if config_path else PipelineConfig()
    raw_timeout = environ.get(TIMEOUT_ENV_VAR, "").strip()
    if raw_timeout:
        try:
            timeout_s = float(raw_timeout)
        except ValueError as exc:
            raise PipelineConfigError(f"{TIMEOUT_ENV_VAR} must be a number, got {raw_timeout!r}") from exc
        config = replace(config, timeout_s=timeout_s)
    return config


def _coerce_command(value: object, field_name: str) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not value:
        raise PipelineConfigError(f"{field_name} must be a string or a non-empty list of strings")
    out: list[str] = []
    for item in value:
        if not isinstance(item, str) or not item:
            raise PipelineConfigError(f"{field_name} entries must be non-empty strings")
        out.append(item)
    return tuple(out)


def _coerce_optional_str(value: object, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PipelineConfigError(f"{field_name} must be a string if provided")
    return value


def _coerce_optional_timeout(value: object, field_name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PipelineConfigError(f"{field_name} must be a number if provided")
    return float(value)

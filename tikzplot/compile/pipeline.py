from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
import subprocess

from tikzplot.config import COMPILED_SUFFIXES, PipelineConfig, resolve_pipeline_config
from tikzplot.errors import CleanupFailedError, CompilerFailedError, PlotResourceError
from tikzplot.figure import Figure
from tikzplot.render.markup import render_document_text, render_markup


LOGGER = logging.getLogger(__name__)

OUTPUT_TAIL_CHARS = 2000


class OutputMode(str, Enum):
    RAW = "raw"
    COMPILED = "compiled"


@dataclass(frozen=True)
class SaveResult:
    mode: OutputMode
    output: Path
    intermediate: Path | None = None
    removed: tuple[Path, ...] = ()


def select_mode(target: str | Path) -> OutputMode:
    """Pick the output mode from the final suffix of ``target``.

    Suffixes follow :class:`pathlib.Path`: a bare dotfile name such as
    ``.pdf`` has no suffix and is written raw.
    """
    suffix = Path(target).suffix
    if suffix in COMPILED_SUFFIXES:
        return OutputMode.COMPILED
    return OutputMode.RAW


def intermediate_paths(target: str | Path, config: PipelineConfig) -> tuple[Path, tuple[Path, ...]]:
    """Return the markup source path and the compiler artifacts derived from ``target``."""
    path = Path(target)
    source = path.with_suffix(config.source_suffix)
    aux = tuple(path.with_suffix(s) for s in config.aux_suffixes)
    return source, aux


def save_figure(figure: Figure, config: PipelineConfig | None = None) -> SaveResult:
    """Write ``figure`` to its target and release it.

    The figure is released on every exit path, so a failed save leaves the
    caller with no usable figure.
    """
    figure.ensure_open()
    target = figure.target
    mode = select_mode(target)
    LOGGER.debug("saving figure to %s (%s mode)", target, mode.value)
    try:
        if mode == OutputMode.RAW:
            return _save_raw(figure, target)
        cfg = config if config is not None else resolve_pipeline_config()
        return _save_compiled(figure, target, cfg)
    finally:
        figure.close()


def _save_raw(figure: Figure, target: Path) -> SaveResult:
    text = render_markup(figure)
    _write_text(target, text)
    LOGGER.info("wrote markup to %s", target)
    return SaveResult(mode=OutputMode.RAW, output=target)


def _save_compiled(figure: Figure, target: Path, config: PipelineConfig) -> SaveResult:
    source, aux = intermediate_paths(target, config)
    text = render_document_text(figure, compat=config.compat)
    _write_text(source, text)
    figure.close()

    command = [*config.compiler_for(target.suffix), source.name]
    _run_compiler(command, cwd=source.parent, timeout_s=config.timeout_s)
    removed = _remove_artifacts((source, *aux))
    LOGGER.info("compiled %s", target)
    return SaveResult(mode=OutputMode.COMPILED, output=target, intermediate=source, removed=removed)


def _write_text(path: Path, text: str) -> None:
    # Only a file opened here is removed on a failed write.
    try:
        f = path.open("w", encoding="utf-8")
    except OSError as exc:
        raise PlotResourceError(f"cannot write {path}: {exc}", path=path) from exc
    try:
        with f:
            f.write(text)
    except OSError as exc:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            LOGGER.debug("could not remove partial file %s", path)
        raise PlotResourceError(f"cannot write {path}: {exc}", path=path) from exc


def _run_compiler(command: list[str], *, cwd: Path, timeout_s: float | None) -> None:
    LOGGER.info("running %s in %s", " ".join(command), cwd)
    try:
        proc = subprocess.run(
            command,
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except OSError as exc:
        raise CompilerFailedError(f"cannot start compiler {command[0]}: {exc}", command=command) from exc
    except subprocess.TimeoutExpired as exc:
        output = exc.output if isinstance(exc.output, str) else ""
        raise CompilerFailedError(
            f"compiler timed out after {timeout_s}s: {' '.join(command)}",
            command=command,
            output=output[-OUTPUT_TAIL_CHARS:],
        ) from exc
    if proc.returncode != 0:
        tail = (proc.stdout or "")[-OUTPUT_TAIL_CHARS:]
        LOGGER.warning("compiler exited with %d: %s", proc.returncode, " ".join(command))
        raise CompilerFailedError(
            f"compiler exited with status {proc.returncode}: {' '.join(command)}",
            command=command,
            returncode=proc.returncode,
            output=tail,
        )


def _remove_artifacts(paths: tuple[Path, ...]) -> tuple[Path, ...]:
    removed: list[Path] = []
    for path in paths:
        if not path.exists():
            continue
        try:
            path.unlink()
        except OSError as exc:
            raise CleanupFailedError(f"cannot remove intermediate artifact {path}: {exc}") from exc
        removed.append(path)
    LOGGER.debug("removed %d intermediate artifacts", len(removed))
    return tuple(removed)

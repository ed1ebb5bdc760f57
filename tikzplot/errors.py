from __future__ import annotations

from pathlib import Path
from typing import Sequence


class TikzPlotError(Exception):
    """Base class for every error raised by tikzplot."""


class InvalidArgumentError(TikzPlotError, ValueError):
    pass


class FigureReleasedError(TikzPlotError, RuntimeError):
    pass


class PlotResourceError(TikzPlotError, OSError):
    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ExternalToolError(TikzPlotError, RuntimeError):
    """An external step of the compiled save pipeline failed.

    ``step`` names the failing stage ("compile" or "cleanup") so callers can
    decide whether a retry makes sense.
    """

    step = "external"

    def __init__(
        self,
        message: str,
        *,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.command = tuple(command) if command is not None else None
        self.returncode = returncode
        self.output = output


class CompilerFailedError(ExternalToolError):
    step = "compile"


class CleanupFailedError(ExternalToolError):
    step = "cleanup"


class PipelineConfigError(TikzPlotError, ValueError):
    pass

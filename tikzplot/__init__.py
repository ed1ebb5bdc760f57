from tikzplot.api import figure, new_figure
from tikzplot.compile import OutputMode, SaveResult, save_figure, select_mode
from tikzplot.config import PipelineConfig, load_pipeline_config, resolve_pipeline_config
from tikzplot.errors import (
    CleanupFailedError,
    CompilerFailedError,
    ExternalToolError,
    FigureReleasedError,
    InvalidArgumentError,
    PipelineConfigError,
    PlotResourceError,
    TikzPlotError,
)
from tikzplot.figure import AxisConfig, AxisStyle, Figure, LegendPosition
from tikzplot.render import render_figure, render_markup
from tikzplot.series import Series, SeriesCollection, SeriesKind

__all__ = [
    "AxisConfig",
    "AxisStyle",
    "CleanupFailedError",
    "CompilerFailedError",
    "ExternalToolError",
    "Figure",
    "FigureReleasedError",
    "InvalidArgumentError",
    "LegendPosition",
    "OutputMode",
    "PipelineConfig",
    "PipelineConfigError",
    "PlotResourceError",
    "SaveResult",
    "Series",
    "SeriesCollection",
    "SeriesKind",
    "TikzPlotError",
    "figure",
    "load_pipeline_config",
    "new_figure",
    "render_figure",
    "render_markup",
    "resolve_pipeline_config",
    "save_figure",
    "select_mode",
]

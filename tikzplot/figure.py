from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import math
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tikzplot.adapters import normalize_xy
from tikzplot.errors import FigureReleasedError, InvalidArgumentError
from tikzplot.series import Series, SeriesCollection, SeriesKind

if TYPE_CHECKING:
    from tikzplot.compile.pipeline import SaveResult
    from tikzplot.config import PipelineConfig


class AxisStyle(str, Enum):
    STANDARD = "standard"
    CENTERED = "center"


class LegendPosition(str, Enum):
    NORTH_EAST = "north east"
    SOUTH_EAST = "south east"
    SOUTH_WEST = "south west"
    NORTH_WEST = "north west"


def coerce_axis_style(value: AxisStyle | str) -> AxisStyle:
    try:
        return AxisStyle(value)
    except ValueError as exc:
        allowed = ", ".join(repr(s.value) for s in AxisStyle)
        raise InvalidArgumentError(f"unsupported axis style {value!r}; expected one of {allowed}") from exc


def coerce_legend_position(value: LegendPosition | str) -> LegendPosition:
    try:
        return LegendPosition(value)
    except ValueError as exc:
        allowed = ", ".join(repr(p.value) for p in LegendPosition)
        raise InvalidArgumentError(f"unsupported legend position {value!r}; expected one of {allowed}") from exc


def _coerce_range(lo: float, hi: float, *, name: str) -> tuple[float, float]:
    try:
        lo_f = float(lo)
        hi_f = float(hi)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{name} bounds must be numbers") from exc
    if not (math.isfinite(lo_f) and math.isfinite(hi_f)):
        raise InvalidArgumentError(f"{name} bounds must be finite")
    return (lo_f, hi_f)


@dataclass(frozen=True)
class AxisConfig:
    """Independently optional axis settings applied by ``Figure.define_axis``."""

    style: AxisStyle | str | None = None
    x_range: tuple[float, float] | None = None
    y_range: tuple[float, float] | None = None


@dataclass
class Figure:
    target: Path
    axis_style: AxisStyle = AxisStyle.STANDARD
    x_range: tuple[float, float] | None = None
    y_range: tuple[float, float] | None = None
    grid: bool = False
    dimensions: tuple[float, float] | None = None
    x_label: str | None = None
    y_label: str | None = None
    legend_position: LegendPosition | None = None
    series: SeriesCollection = field(default_factory=SeriesCollection)
    _released: bool = False

    def __post_init__(self) -> None:
        if not str(self.target):
            raise InvalidArgumentError("figure target must not be empty")
        self.target = Path(self.target)

    @property
    def released(self) -> bool:
        return self._released

    # axis configuration

    def set_axis_style(self, style: AxisStyle | str) -> "Figure":
        self.ensure_open()
        self.axis_style = coerce_axis_style(style)
        return self

    def set_x_range(self, xmin: float, xmax: float) -> "Figure":
        self.ensure_open()
        self.x_range = _coerce_range(xmin, xmax, name="x range")
        return self

    def set_y_range(self, ymin: float, ymax: float) -> "Figure":
        self.ensure_open()
        self.y_range = _coerce_range(ymin, ymax, name="y range")
        return self

    def define_axis(self, config: AxisConfig) -> "Figure":
        self.ensure_open()
        # Validate everything before mutating so a bad member leaves no partial update.
        style = coerce_axis_style(config.style) if config.style is not None else None
        x_range = _coerce_range(*config.x_range, name="x range") if config.x_range is not None else None
        y_range = _coerce_range(*config.y_range, name="y range") if config.y_range is not None else None
        if style is not None:
            self.axis_style = style
        if x_range is not None:
            self.x_range = x_range
        if y_range is not None:
            self.y_range = y_range
        return self

    def set_dimensions(self, width: float, height: float) -> "Figure":
        self.ensure_open()
        w, h = _coerce_range(width, height, name="dimensions")
        if w <= 0 or h <= 0:
            raise InvalidArgumentError("width and height must be > 0")
        self.dimensions = (w, h)
        return self

    def enable_grid(self) -> "Figure":
        self.ensure_open()
        self.grid = True
        return self

    set_grid = enable_grid

    def set_x_label(self, text: str) -> "Figure":
        self.ensure_open()
        self.x_label = str(text)
        return self

    def set_y_label(self, text: str) -> "Figure":
        self.ensure_open()
        self.y_label = str(text)
        return self

    def set_legend_position(self, position: LegendPosition | str) -> "Figure":
        self.ensure_open()
        self.legend_position = coerce_legend_position(position)
        return self

    # series

    def add_line_series(self, xs: Any, ys: Any, color: str | None = None, legend: str | None = None) -> "Figure":
        return self._add_series(SeriesKind.LINE, xs, ys, color=color, legend=legend)

    def add_stem_series(self, xs: Any, ys: Any, color: str | None = None, legend: str | None = None) -> "Figure":
        return self._add_series(SeriesKind.STEM, xs, ys, color=color, legend=legend)

    plot = add_line_series
    stem = add_stem_series

    def _add_series(
        self,
        kind: SeriesKind,
        xs: Any,
        ys: Any,
        *,
        color: str | None,
        legend: str | None,
    ) -> "Figure":
        self.ensure_open()
        x_arr, y_arr = normalize_xy(xs, ys)
        self.series.append(Series(kind=kind, x=x_arr, y=y_arr, color=color or None, legend=legend))
        return self

    # output

    def to_markup(self) -> str:
        from tikzplot.render.markup import render_markup

        return render_markup(self)

    def save(self, config: "PipelineConfig | None" = None) -> "SaveResult":
        """Serialize the figure to ``target`` and release it.

        The figure cannot be used afterwards, whether or not the save succeeds.
        """
        from tikzplot.compile.pipeline import save_figure

        return save_figure(self, config=config)

    def close(self) -> None:
        """Release the figure without saving it."""
        self.series.clear()
        self._released = True

    def __enter__(self) -> "Figure":
        self.ensure_open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if not self._released:
            self.close()

    def ensure_open(self) -> None:
        if self._released:
            raise FigureReleasedError(f"figure for {self.target} was already saved or closed")

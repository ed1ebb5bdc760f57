"""TikZ/pgfplots serialization of a figure.

Rendering is a pure walk over the figure: options are emitted in a fixed
order and only when set, then one ``\\addplot`` entry per series in
insertion order.
"""

from __future__ import annotations

import io
import math
from typing import TextIO

from tikzplot.errors import InvalidArgumentError
from tikzplot.figure import AxisStyle, Figure
from tikzplot.series import Series, SeriesKind


DEFAULT_COMPAT = "1.18"

CENTERED_AXIS_BLOCK = (
    "axis lines=center,\n"
    "axis x line = middle,\n"
    "every axis x label/.style={\n"
    "at={(ticklabel* cs:1.0)},\n"
    "anchor=west,\n"
    "},\n"
    "axis y line = left,\n"
    "every axis y label/.style={\n"
    "at={(ticklabel* cs:1.0)},\n"
    "anchor=south,\n"
    "},\n"
)

LINE_WIDTH = "1pt"


def format_number(value: float) -> str:
    """Fixed-point, six fractional digits, locale independent."""
    v = float(value)
    if math.isnan(v):
        return "nan"
    if math.isinf(v):
        return "inf" if v > 0 else "-inf"
    return f"{v:.6f}"


def render_markup(figure: Figure) -> str:
    buf = io.StringIO()
    render_figure(figure, buf)
    return buf.getvalue()


def render_figure(figure: Figure, sink: TextIO) -> None:
    figure.ensure_open()
    sink.write("\\begin{tikzpicture}\n")
    sink.write("\\begin{axis}[\n")
    sink.write(_axis_style_block(figure.axis_style))
    for line in _option_lines(figure):
        sink.write(line + "\n")
    sink.write("]\n")
    for series in figure.series:
        _write_series(series, sink)
    sink.write("\\end{axis}\n")
    sink.write("\\end{tikzpicture}\n")


def render_document(figure: Figure, sink: TextIO, *, compat: str = DEFAULT_COMPAT) -> None:
    """Wrap the figure markup in a minimal standalone LaTeX document."""
    figure.ensure_open()
    sink.write("\\documentclass{standalone}\n")
    sink.write("\\usepackage{tikz}\n")
    sink.write("\\usepackage{pgfplots}\n")
    sink.write(f"\\pgfplotsset{{compat={compat}}}\n")
    sink.write("\\begin{document}\n")
    render_figure(figure, sink)
    sink.write("\\end{document}\n")


def render_document_text(figure: Figure, *, compat: str = DEFAULT_COMPAT) -> str:
    buf = io.StringIO()
    render_document(figure, buf, compat=compat)
    return buf.getvalue()


def _axis_style_block(style: AxisStyle) -> str:
    if style == AxisStyle.CENTERED:
        return CENTERED_AXIS_BLOCK
    if style == AxisStyle.STANDARD:
        return ""
    raise InvalidArgumentError(f"unsupported axis style: {style!r}")


def _option_lines(figure: Figure) -> list[str]:
    lines: list[str] = []
    if figure.x_range is not None:
        xmin, xmax = figure.x_range
        lines.append(f"xmin = {format_number(xmin)}, xmax = {format_number(xmax)},")
    if figure.y_range is not None:
        ymin, ymax = figure.y_range
        lines.append(f"ymin = {format_number(ymin)}, ymax = {format_number(ymax)},")
    if figure.grid:
        lines.append("grid=major,")
    if figure.dimensions is not None:
        width, height = figure.dimensions
        lines.append(f"width={format_number(width)} cm,")
        lines.append(f"height={format_number(height)} cm,")
    if figure.x_label is not None:
        lines.append(f"xlabel={{{figure.x_label}}},")
    if figure.y_label is not None:
        lines.append(f"ylabel={{{figure.y_label}}},")
    if figure.legend_position is not None:
        lines.append(f"legend pos={figure.legend_position.value},")
    return lines


def _plot_header(series: Series) -> str:
    if series.kind == SeriesKind.LINE:
        color = f"color={series.color}, " if series.color else ""
        return f"\\addplot [{color}line width={LINE_WIDTH}] coordinates {{\n"
    if series.kind == SeriesKind.STEM:
        # Color stays positional even when empty; pgfkeys skips the blank entry.
        return f"\\addplot+ [ycomb, {series.color or ''}, mark=*, mark options={{solid}}] coordinates {{\n"
    raise InvalidArgumentError(f"unsupported plot type: {series.kind!r}")


def _write_series(series: Series, sink: TextIO) -> None:
    sink.write(_plot_header(series))
    for x, y in series.points:
        sink.write(f"    ({format_number(x)},{format_number(y)})\n")
    sink.write("};\n")
    if series.legend is not None:
        sink.write(f"\\addlegendentry{{{series.legend}}}\n")

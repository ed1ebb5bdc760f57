from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

import numpy as np

from tikzplot import ExternalToolError, Figure, TikzPlotError, load_pipeline_config, new_figure


LOGGER = logging.getLogger("tikzplot.main")


def damped_sine(x: np.ndarray) -> np.ndarray:
    return np.exp(-x / 8.0) * np.sin(2.0 * x)


def critically_damped(x: np.ndarray) -> np.ndarray:
    return x * np.exp(-x / 2.0)


def build_demo_figure(target: str | Path) -> Figure:
    x = np.arange(1000, dtype=np.float64) * 0.01
    x_dt = np.arange(11, dtype=np.float64)

    fig = new_figure(target)
    fig.plot(x, damped_sine(x), "teal", "$y_1(t)$")
    fig.plot(x, critically_damped(x), "orange", "$y_2(t)$")
    fig.stem(x_dt, np.power(0.75, x_dt), "red", "$y_d[n]$")

    fig.set_axis_style("center")
    fig.set_x_range(0, 10)
    fig.set_y_range(-1.1, 1.1)
    fig.enable_grid()
    fig.set_dimensions(12, 8)
    fig.set_x_label("$t$")
    fig.set_y_label("$y(t)$")
    return fig


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="tikzplot")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    demo = sub.add_parser("demo", help="Build the damped-oscillation demo figure and save it.")
    demo.add_argument("--out", type=Path, default=Path("out.pdf"), help="Target file; .pdf/.dvi are compiled.")
    demo.add_argument("--config", type=Path, default=None, help="TOML file with a [compile] table.")

    sub.add_parser("markup", help="Print the demo figure markup to stdout.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    if args.command == "markup":
        with build_demo_figure("demo.tikz") as fig:
            sys.stdout.write(fig.to_markup())
        return 0

    try:
        config = load_pipeline_config(args.config) if args.config is not None else None
        with build_demo_figure(args.out) as fig:
            result = fig.save(config)
    except ExternalToolError as exc:
        LOGGER.error("%s step failed: %s", exc.step, exc)
        if exc.output:
            sys.stderr.write(exc.output + "\n")
        return 1
    except TikzPlotError as exc:
        LOGGER.error("%s", exc)
        return 1
    print(f"{result.mode.value}: {result.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

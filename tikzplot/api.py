from __future__ import annotations

from pathlib import Path

from tikzplot.figure import Figure


def new_figure(target: str | Path) -> Figure:
    """Return an empty figure that ``save()`` will write to ``target``.

    A ``.pdf`` or ``.dvi`` target is compiled through LaTeX; any other target
    receives the raw TikZ markup.
    """
    return Figure(target=Path(target))


figure = new_figure

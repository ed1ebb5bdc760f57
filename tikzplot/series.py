from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

import numpy as np

from tikzplot.errors import InvalidArgumentError


class SeriesKind(str, Enum):
    LINE = "line"
    STEM = "stem"


@dataclass(frozen=True, eq=False)
class Series:
    kind: SeriesKind
    x: np.ndarray
    y: np.ndarray
    color: str | None = None
    legend: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", np.array(self.x, dtype=np.float64))
        object.__setattr__(self, "y", np.array(self.y, dtype=np.float64))
        if self.x.shape != self.y.shape:
            raise InvalidArgumentError("x and y must share one shape")
        self.x.setflags(write=False)
        self.y.setflags(write=False)

    def __len__(self) -> int:
        return int(self.x.size)

    @property
    def points(self) -> Iterator[tuple[float, float]]:
        return zip(self.x.tolist(), self.y.tolist())


@dataclass
class SeriesCollection:
    """Append-only, insertion-ordered series owned by one figure."""

    _items: list[Series] = field(default_factory=list)

    def append(self, series: Series) -> None:
        self._items.append(series)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Series]:
        return iter(tuple(self._items))

    def __getitem__(self, index: int) -> Series:
        return self._items[index]

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import Any

import numpy as np

from tikzplot.errors import InvalidArgumentError


try:
    import pandas as pd
except ImportError:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except ImportError:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def normalize_xy(xs: Any, ys: Any) -> tuple[np.ndarray, np.ndarray]:
    """Coerce caller coordinates into owned float64 arrays.

    The returned arrays never alias the caller's buffers. Lengths must match;
    empty input is allowed.
    """
    if xs is None or ys is None:
        raise InvalidArgumentError("xs and ys are required")
    x_arr = _coerce_1d_numeric(xs, label="x")
    y_arr = _coerce_1d_numeric(ys, label="y")
    if x_arr.shape != y_arr.shape:
        raise InvalidArgumentError(f"x and y length mismatch: {x_arr.size} != {y_arr.size}")
    return x_arr, y_arr


def _coerce_1d_numeric(value: Any, *, label: str) -> np.ndarray:
    if torch is not None and isinstance(value, torch.Tensor):
        tensor = value.detach()
        if tensor.ndim != 1:
            raise InvalidArgumentError(f"{label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.to(torch.float64).numpy().copy()

    if pd is not None and isinstance(value, pd.Series):
        return _coerce_ndarray(value.to_numpy(), label=label)

    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise InvalidArgumentError(f"{label} must be 1-D")
        return _coerce_ndarray(value, label=label)

    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        arr = np.asarray(value, dtype=object)
        if arr.ndim != 1:
            raise InvalidArgumentError(f"{label} must be 1-D")
        return _coerce_ndarray(arr, label=label)

    raise InvalidArgumentError(f"unsupported {label} input type: {type(value)!r}")


def _coerce_ndarray(arr: np.ndarray, *, label: str) -> np.ndarray:
    if arr.dtype.kind in {"i", "u", "f", "b"}:
        return np.array(arr, dtype=np.float64, copy=True)

    out = np.empty(arr.shape[0], dtype=np.float64)
    for i, raw in enumerate(arr.tolist()):
        if raw is None:
            out[i] = np.nan
            continue
        if isinstance(raw, Decimal):
            out[i] = float(raw)
            continue
        if isinstance(raw, (str, bytes)) or not np.isscalar(raw):
            raise InvalidArgumentError(f"{label} contains non-numeric value at index {i}: {raw!r}")
        try:
            out[i] = float(raw)
        except (TypeError, ValueError) as exc:
            raise InvalidArgumentError(f"{label} contains non-numeric value at index {i}: {raw!r}") from exc
    return out

"""Performance metrics on an equity curve."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import pandas as pd

EquityLike = Union[pd.Series, Sequence[float]]


def max_drawdown(equity: EquityLike) -> float:
    """Maximum drawdown (as positive fraction)."""
    x = np.asarray(equity, dtype=float)
    if len(x) == 0:
        return float("nan")
    peak = np.maximum.accumulate(x)
    dd = 1.0 - (x / np.maximum(peak, np.finfo(float).tiny))
    return float(np.nanmax(dd))


def total_return(equity: EquityLike) -> float:
    """Last / first - 1."""
    x = np.asarray(equity, dtype=float)
    if len(x) == 0 or x[0] == 0:
        return float("nan")
    return float(x[-1] / x[0] - 1.0)

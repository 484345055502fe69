"""Indicator computation utilities.

Every public function is pure: it takes a numeric sequence (list, ndarray or
Series) and returns a list of the same length. ``None`` marks indices without
enough history. Values at index i depend only on inputs[0..i] (no lookahead).

Computation is done on float Series; NaN is converted to ``None`` on the way out.
"""

from __future__ import annotations

from typing import Callable, List, NamedTuple, Optional, Sequence

import numpy as np
import pandas as pd

# Display fallback for RSI during warm-up. Never a computed reading.
RSI_NEUTRAL = 50.0

# %K when the trailing window has no range (highest high == lowest low)
STOCH_FLAT_K = 50.0

OptionalSeries = List[Optional[float]]


class MacdResult(NamedTuple):
    line: OptionalSeries
    signal: OptionalSeries
    histogram: OptionalSeries


class BollingerResult(NamedTuple):
    upper: OptionalSeries
    middle: OptionalSeries
    lower: OptionalSeries


class StochasticResult(NamedTuple):
    k: OptionalSeries
    d: OptionalSeries


def _check_window(window: int, name: str = "window") -> int:
    if int(window) <= 0:
        raise ValueError(f"{name} must be positive")
    return int(window)


def _as_series(values: Sequence[float]) -> pd.Series:
    # positional index; callers may pass a datetime-indexed Series
    return pd.Series(np.asarray(values, dtype=float), dtype=float)


def _to_optional(series: pd.Series) -> OptionalSeries:
    return [float(x) if pd.notna(x) else None for x in series.to_numpy()]


def _sma(s: pd.Series, window: int) -> pd.Series:
    return s.rolling(window=window, min_periods=window).mean()


def _ema(s: pd.Series, window: int) -> pd.Series:
    """EMA seeded with the SMA of the first ``window`` samples.

    After the seed the recursion is ``ema[i] = v[i]*m + ema[i-1]*(1-m)`` with
    ``m = 2/(window+1)``, which is pandas ewm(span=window, adjust=False).
    """
    out = pd.Series(np.nan, index=s.index, dtype=float)
    if len(s) < window:
        return out
    tail = s.iloc[window - 1 :].copy()
    tail.iloc[0] = s.iloc[:window].mean()
    out.iloc[window - 1 :] = tail.ewm(span=window, adjust=False).mean().to_numpy()
    return out


def _on_compacted(s: pd.Series, func: Callable[[pd.Series, int], pd.Series], window: int) -> pd.Series:
    """Apply ``func`` to the defined samples only, then re-expand onto ``s.index``."""
    out = pd.Series(np.nan, index=s.index, dtype=float)
    compact = s.dropna()
    if len(compact) == 0:
        return out
    res = func(compact.reset_index(drop=True), window)
    out.loc[compact.index] = res.to_numpy()
    return out


def sma(values: Sequence[float], window: int) -> OptionalSeries:
    """Simple moving average over the trailing ``window`` samples."""
    window = _check_window(window)
    return _to_optional(_sma(_as_series(values), window))


def ema(values: Sequence[float], window: int) -> OptionalSeries:
    """Exponential moving average, undefined before index ``window-1``."""
    window = _check_window(window)
    return _to_optional(_ema(_as_series(values), window))


def macd(values: Sequence[float], fast: int = 12, slow: int = 26, signal: int = 9) -> MacdResult:
    """MACD line, signal line, and histogram.

    The signal line is the EMA of the defined line values only, so its own
    warm-up starts where the line becomes defined.
    """
    fast = _check_window(fast, "fast")
    slow = _check_window(slow, "slow")
    signal = _check_window(signal, "signal")

    s = _as_series(values)
    line = _ema(s, fast) - _ema(s, slow)
    sig = _on_compacted(line, _ema, signal)
    hist = line - sig
    return MacdResult(_to_optional(line), _to_optional(sig), _to_optional(hist))


def bollinger_bands(values: Sequence[float], window: int = 20, k: float = 2.0) -> BollingerResult:
    """SMA middle band +/- ``k`` population standard deviations."""
    window = _check_window(window)
    s = _as_series(values)
    middle = _sma(s, window)
    std = s.rolling(window=window, min_periods=window).std(ddof=0)
    upper = middle + float(k) * std
    lower = middle - float(k) * std
    return BollingerResult(_to_optional(upper), _to_optional(middle), _to_optional(lower))


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    k_period: int = 14,
    d_period: int = 3,
) -> StochasticResult:
    """Stochastic oscillator %K and %D.

    A window with no range yields %K = 50 rather than a division error.
    """
    k_period = _check_window(k_period, "k_period")
    d_period = _check_window(d_period, "d_period")

    high = _as_series(highs)
    low = _as_series(lows)
    close = _as_series(closes)

    highest = high.rolling(window=k_period, min_periods=k_period).max()
    lowest = low.rolling(window=k_period, min_periods=k_period).min()
    rng = highest - lowest

    with np.errstate(divide="ignore", invalid="ignore"):
        raw_k = ((close - lowest) / rng) * 100.0
    k = raw_k.where(rng != 0, STOCH_FLAT_K)
    d = _on_compacted(k, _sma, d_period)
    return StochasticResult(_to_optional(k), _to_optional(d))


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        # RS is +inf
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi(closes: Sequence[float], window: int = 14) -> OptionalSeries:
    """Relative Strength Index with Wilder smoothing.

    The first value is emitted at index ``window`` (after ``window``
    transitions). Earlier indices are ``None``; see ``RSI_NEUTRAL`` for a
    display fallback.
    """
    window = _check_window(window)
    c = _as_series(closes).to_numpy()
    out = np.full(len(c), np.nan)
    if len(c) <= window:
        return _to_optional(pd.Series(out))

    delta = np.diff(c)
    gains = np.clip(delta, 0.0, None)
    losses = np.clip(-delta, 0.0, None)

    avg_gain = float(gains[:window].sum()) / window
    avg_loss = float(losses[:window].sum()) / window
    out[window] = _rsi_value(avg_gain, avg_loss)

    for i in range(window + 1, len(c)):
        # delta[i-1] is the transition close[i-1] -> close[i]
        avg_gain = (avg_gain * (window - 1) + float(gains[i - 1])) / window
        avg_loss = (avg_loss * (window - 1) + float(losses[i - 1])) / window
        out[i] = _rsi_value(avg_gain, avg_loss)

    return _to_optional(pd.Series(out))

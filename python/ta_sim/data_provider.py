"""Data providers (CSV / yfinance) and a standardized OHLCV schema.

Everything that can fail while acquiring a dataset fails here, as a
:class:`DatasetLoadError`, before the simulator core sees any data.
"""

from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import numpy as np
import pandas as pd

from .types import Candle

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ["open", "high", "low", "close", "volume"]
_DATETIME_ALIASES = ["timestamp", "date", "datetime", "time"]


class DatasetLoadError(RuntimeError):
    """A dataset could not be fetched, parsed, or validated."""

    def __init__(self, message: str, source: str = ""):
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.message} (source={self.source})"
        return self.message


@dataclass(frozen=True)
class OhlcvFrame:
    """Standard OHLCV dataframe wrapper."""

    df: pd.DataFrame  # columns: open, high, low, close, volume; index: ISO-8601 strings, ascending
    symbol: str

    def to_candles(self) -> List[Candle]:
        return [
            Candle(
                timestamp=str(ts),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
            )
            for ts, row in zip(self.df.index, self.df.itertuples(index=False))
        ]


def _is_finite(v) -> bool:
    try:
        return math.isfinite(float(v))
    except (TypeError, ValueError):
        return False


def _bar_problem(o: float, hi: float, lo: float, c: float, v: float) -> str | None:
    """Why a finite OHLCV bar cannot be replayed, or None if it can."""
    if min(o, hi, lo, c) <= 0:
        return "prices must be > 0"
    if v < 0:
        return "volume must be >= 0"
    if lo > hi or not (lo <= o <= hi and lo <= c <= hi):
        return "open/close must lie within [low, high]"
    return None


def validate_candles(candles: Sequence[Candle], source: str = "<candles>") -> None:
    """Reject candle lists the core cannot replay.

    Numeric fields must be finite, prices positive, volume >= 0, open and
    close inside [low, high], timestamps parseable and ascending.
    """
    prev_ts = None
    for i, c in enumerate(candles):
        values = (c.open, c.high, c.low, c.close, c.volume)
        if not all(_is_finite(v) for v in values):
            raise DatasetLoadError(f"Row {i}: OHLCV values must be finite numbers", source)
        problem = _bar_problem(*(float(v) for v in values))
        if problem is not None:
            raise DatasetLoadError(f"Row {i}: {problem}", source)
        ts = pd.to_datetime(c.timestamp, errors="coerce")
        if not c.timestamp or pd.isna(ts):
            raise DatasetLoadError(f"Row {i}: invalid timestamp {c.timestamp!r}", source)
        try:
            if prev_ts is not None and ts <= prev_ts:
                raise DatasetLoadError(f"Row {i}: timestamps must be strictly ascending", source)
        except TypeError as e:
            # tz-aware next to tz-naive
            raise DatasetLoadError(f"Row {i}: inconsistent timestamp time zones", source) from e
        prev_ts = ts


def _standardize_ohlcv_columns(df: pd.DataFrame, source: str) -> pd.DataFrame:
    """Normalize column names, drop malformed rows, sort by time.

    Expects a DatetimeIndex. Returns a frame indexed by ISO-8601 strings.
    """
    # yfinance can return MultiIndex columns depending on options/version.
    if isinstance(df.columns, pd.MultiIndex):
        tickers = list(dict.fromkeys(df.columns.get_level_values(-1)))
        if len(tickers) == 1:
            df = df.copy()
            df.columns = df.columns.get_level_values(0)
        else:
            df = df.xs(tickers[0], axis=1, level=-1, drop_level=True)

    rename_map = {}
    for col in df.columns:
        c = str(col).strip().lower()
        if c in REQUIRED_COLUMNS:
            rename_map[col] = c
        elif c in {"adj close", "adjclose"}:
            rename_map[col] = "adjclose"
    df = df.rename(columns=rename_map).copy()

    # If provider only has an adjusted close, use it as close.
    if "close" not in df.columns and "adjclose" in df.columns:
        df = df.rename(columns={"adjclose": "close"})

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise DatasetLoadError(f"Missing required columns: {', '.join(missing)}", source)

    df = df[REQUIRED_COLUMNS].apply(pd.to_numeric, errors="coerce")

    values = df.to_numpy(dtype=float)
    o, hi, lo, c, v = values.T
    with np.errstate(invalid="ignore"):
        valid = np.isfinite(values).all(axis=1) & (v >= 0)
        valid &= (np.minimum.reduce([o, hi, lo, c]) > 0) & (lo <= hi)
        valid &= (lo <= o) & (o <= hi) & (lo <= c) & (c <= hi)
    valid &= ~pd.isna(df.index)
    dropped = int((~valid).sum())
    if dropped:
        logger.warning("Rejected %d malformed row(s) from %s", dropped, source or "<frame>")
    df = df.loc[valid]
    if len(df) == 0:
        raise DatasetLoadError("No valid data rows found", source)

    df = df[~df.index.duplicated(keep="last")].sort_index()
    df.index = [ts.isoformat() for ts in df.index]
    df.index.name = "timestamp"
    return df


class CsvProvider:
    """Load OHLCV data from a CSV file or CSV text.

    Header: timestamp,open,high,low,close,volume (case-insensitive; common
    datetime column aliases are accepted).
    """

    def fetch(self, csv_path: str | Path, symbol: str | None = None) -> OhlcvFrame:
        path = Path(csv_path)
        if not path.exists():
            raise DatasetLoadError("Dataset file not found", str(path))
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DatasetLoadError(f"Failed to read dataset: {e}", str(path)) from e
        return self.parse_text(text, symbol=symbol or path.stem, source=str(path))

    def parse_text(self, text: str, symbol: str = "custom", source: str = "<text>") -> OhlcvFrame:
        try:
            df = pd.read_csv(io.StringIO(text), skip_blank_lines=True)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise DatasetLoadError(f"CSV parsing error: {e}", source) from e

        cols = {str(c).strip().lower(): c for c in df.columns}
        datetime_col = None
        for cand in _DATETIME_ALIASES:
            if cand in cols:
                datetime_col = cols[cand]
                break
        if datetime_col is None:
            raise DatasetLoadError("Missing required columns: timestamp", source)

        try:
            df[datetime_col] = pd.to_datetime(df[datetime_col], format="ISO8601", errors="coerce")
        except (ValueError, TypeError) as e:
            # e.g. tz-aware rows mixed with naive ones
            raise DatasetLoadError(f"Invalid timestamp column: {e}", source) from e
        df = df.set_index(datetime_col)
        df = _standardize_ohlcv_columns(df, source)
        logger.info("Loaded %d candles for %s from %s", len(df), symbol, source)
        return OhlcvFrame(df=df, symbol=symbol)


class YfinanceProvider:
    """Fetch daily bars from yfinance (network)."""

    def fetch(self, symbol: str, start: str, end: str, interval: str = "1d") -> OhlcvFrame:
        try:
            import yfinance as yf  # local import to keep dependency optional in some environments
        except ImportError as e:
            raise DatasetLoadError("yfinance is not installed", symbol) from e

        try:
            df = yf.download(
                tickers=symbol,
                start=start,
                end=end,
                interval=interval,
                auto_adjust=False,
                progress=False,
            )
        except Exception as e:
            raise DatasetLoadError(f"Failed to load dataset: {e}", symbol) from e
        if df is None or len(df) == 0:
            raise DatasetLoadError("yfinance returned empty data", symbol)

        df = _standardize_ohlcv_columns(df, symbol)
        return OhlcvFrame(df=df, symbol=symbol)

"""Data manager: computes indicators once and serves decorated candles.

The candle series and its decorations are built at construction time and are
read-only afterwards. A new dataset means a new data manager.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .config import IndicatorConfig
from .data_provider import REQUIRED_COLUMNS, OhlcvFrame
from .indicators import bollinger_bands, ema, macd, rsi, sma, stochastic
from .types import Candle, IndicatorPoint


class OhlcvDataManager:
    """Holds the decorated candle series and aligned display series for one symbol."""

    def __init__(self, frame: OhlcvFrame, ind_cfg: IndicatorConfig = IndicatorConfig()):
        self.symbol = frame.symbol
        self.ind_cfg = ind_cfg
        self._build(frame.to_candles())

    @classmethod
    def from_candles(
        cls,
        candles: Iterable[Candle],
        ind_cfg: IndicatorConfig = IndicatorConfig(),
        symbol: str = "custom",
    ) -> "OhlcvDataManager":
        """Build from an already validated, chronologically sorted candle list."""
        rows = [(c.timestamp, c.open, c.high, c.low, c.close, c.volume) for c in candles]
        df = pd.DataFrame(rows, columns=["timestamp", *REQUIRED_COLUMNS]).set_index("timestamp")
        return cls(OhlcvFrame(df=df, symbol=symbol), ind_cfg)

    def _build(self, raw: List[Candle]) -> None:
        cfg = self.ind_cfg

        closes = [c.close for c in raw]
        highs = [c.high for c in raw]
        lows = [c.low for c in raw]

        sma_short = sma(closes, cfg.sma_short)
        sma_long = sma(closes, cfg.sma_long)
        sma_reversion = sma(closes, cfg.mean_reversion_window)
        ema_short = ema(closes, cfg.ema_short)
        ema_long = ema(closes, cfg.ema_long)
        macd_res = macd(closes, cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
        bands = bollinger_bands(closes, cfg.bollinger_window, cfg.bollinger_k)
        stoch = stochastic(highs, lows, closes, cfg.stoch_k_period, cfg.stoch_d_period)
        rsi_values = rsi(closes, cfg.rsi_window)

        self._candles: Tuple[Candle, ...] = tuple(
            replace(
                c,
                sma_short=sma_short[i],
                sma_long=sma_long[i],
                sma_reversion=sma_reversion[i],
                ema_short=ema_short[i],
                ema_long=ema_long[i],
                macd_line=macd_res.line[i],
                macd_signal=macd_res.signal[i],
                macd_histogram=macd_res.histogram[i],
                bollinger_upper=bands.upper[i],
                bollinger_middle=bands.middle[i],
                bollinger_lower=bands.lower[i],
                stoch_k=stoch.k[i],
                stoch_d=stoch.d[i],
                rsi=rsi_values[i],
            )
            for i, c in enumerate(raw)
        )

        self.rsi_series: Tuple[IndicatorPoint, ...] = tuple(
            IndicatorPoint(timestamp=c.timestamp, value=c.rsi) for c in self._candles
        )
        self.macd_series: Tuple[IndicatorPoint, ...] = tuple(
            IndicatorPoint(
                timestamp=c.timestamp,
                value=c.macd_line,
                signal=c.macd_signal,
                histogram=c.macd_histogram,
            )
            for c in self._candles
        )
        self.stochastic_series: Tuple[IndicatorPoint, ...] = tuple(
            IndicatorPoint(timestamp=c.timestamp, value=c.stoch_k, signal=c.stoch_d) for c in self._candles
        )
        self.bollinger_series: Tuple[IndicatorPoint, ...] = tuple(
            IndicatorPoint(
                timestamp=c.timestamp,
                value=c.bollinger_middle,
                upper=c.bollinger_upper,
                lower=c.bollinger_lower,
            )
            for c in self._candles
        )

    @property
    def candles(self) -> Tuple[Candle, ...]:
        return self._candles

    def __len__(self) -> int:
        return len(self._candles)

    def candle(self, i: int) -> Candle:
        return self._candles[i]

    def get_close(self, i: int) -> float:
        return self._candles[i].close

    def get_bar_timestamp(self, i: int) -> str:
        return self._candles[i].timestamp

    def date_range(self) -> Optional[Tuple[str, str]]:
        if not self._candles:
            return None
        return self._candles[0].timestamp, self._candles[-1].timestamp

    def readout(self, i: int) -> Dict[str, Optional[float]]:
        """Indicator values at index i, keyed by decoration name."""
        c = self._candles[i]
        return {
            "sma_short": c.sma_short,
            "sma_long": c.sma_long,
            "sma_reversion": c.sma_reversion,
            "ema_short": c.ema_short,
            "ema_long": c.ema_long,
            "macd_line": c.macd_line,
            "macd_signal": c.macd_signal,
            "macd_histogram": c.macd_histogram,
            "bollinger_upper": c.bollinger_upper,
            "bollinger_middle": c.bollinger_middle,
            "bollinger_lower": c.bollinger_lower,
            "stoch_k": c.stoch_k,
            "stoch_d": c.stoch_d,
            "rsi": c.rsi,
        }

    def warmup_start_index(self) -> int:
        """First index where both SMAs are defined (0 if never).

        Applied to every strategy alike; slower indicators (e.g. the MACD
        signal) may still be warming up at this index.
        """
        for i, c in enumerate(self._candles):
            if c.sma_short is not None and c.sma_long is not None:
                return i
        return 0


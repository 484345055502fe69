"""Shared types for the replay simulator.

The guiding principle is to keep the runtime objects small and explicit.
Indicator decorations are ``Optional[float]``: ``None`` marks warm-up, never a
numeric sentinel.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class LedgerState(str, Enum):
    IDLE = "IDLE"  # no steps executed since reset
    ADVANCING = "ADVANCING"  # transient, inside step()
    AT_END = "AT_END"  # current index is the last candle


@dataclass(frozen=True)
class Candle:
    """OHLCV bar plus optional indicator decorations.

    Raw candles carry only the OHLCV fields; the data manager produces
    decorated copies via ``dataclasses.replace``.
    """

    timestamp: str  # ISO-8601
    open: float
    high: float
    low: float
    close: float
    volume: float

    sma_short: Optional[float] = None
    sma_long: Optional[float] = None
    sma_reversion: Optional[float] = None
    ema_short: Optional[float] = None
    ema_long: Optional[float] = None
    macd_line: Optional[float] = None
    macd_signal: Optional[float] = None
    macd_histogram: Optional[float] = None
    bollinger_upper: Optional[float] = None
    bollinger_middle: Optional[float] = None
    bollinger_lower: Optional[float] = None
    stoch_k: Optional[float] = None
    stoch_d: Optional[float] = None
    rsi: Optional[float] = None


@dataclass(frozen=True)
class IndicatorPoint:
    """One sample of a display series, index-aligned with the candles."""

    timestamp: str
    value: Optional[float]
    signal: Optional[float] = None
    histogram: Optional[float] = None
    upper: Optional[float] = None
    lower: Optional[float] = None


@dataclass(frozen=True)
class Decision:
    action: Action
    reason: str


@dataclass(frozen=True)
class Trade:
    """A single executed trade (full-lot BUY or full liquidation SELL)."""

    index: int
    type: Action  # BUY / SELL
    price: float
    reason: str
    quantity: int = 0


@dataclass(frozen=True)
class EquityPoint:
    timestamp: str
    value: float  # cash + shares * close


@dataclass(frozen=True)
class SimulatorSnapshot:
    cash: float
    shares: int
    portfolio_value: float
    current_index: int
    is_playing: bool

"""Strategy catalog and the pure decision function.

``decide()`` looks only at the candle at ``index`` and the one before it. It
has no side effects, so calling it twice for the same index gives the same
Decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

from .config import SignalConfig
from .types import Action, Candle, Decision

SIGNALS = SignalConfig()


class StrategyId(str, Enum):
    SMA_CROSSOVER = "SMA_CROSSOVER"
    EMA_CROSSOVER = "EMA_CROSSOVER"
    RSI = "RSI"
    MACD = "MACD"
    BOLLINGER_BANDS = "BOLLINGER_BANDS"
    STOCHASTIC = "STOCHASTIC"
    MEAN_REVERSION = "MEAN_REVERSION"
    BUY_AND_HOLD = "BUY_AND_HOLD"


@dataclass(frozen=True)
class StrategyConfig:
    """Static catalog entry.

    ``parameters`` documents the periods/thresholds for display. The
    indicator pipeline is driven by ``IndicatorConfig`` and the decision
    thresholds by ``SignalConfig``, not by this mapping.
    """

    id: StrategyId
    display_name: str
    description: str
    parameters: Mapping[str, float] = field(default_factory=dict)
    indicators: Tuple[str, ...] = ()


def _entry(id, display_name, description, parameters, indicators) -> StrategyConfig:
    return StrategyConfig(
        id=id,
        display_name=display_name,
        description=description,
        parameters=MappingProxyType(dict(parameters)),
        indicators=tuple(indicators),
    )


STRATEGY_CATALOG: Tuple[StrategyConfig, ...] = (
    _entry(
        StrategyId.SMA_CROSSOVER,
        "SMA Crossover",
        "Simple Moving Average crossover strategy using 10 and 20 period SMAs",
        {"shortPeriod": 10, "longPeriod": 20},
        ["SMA Short", "SMA Long"],
    ),
    _entry(
        StrategyId.EMA_CROSSOVER,
        "EMA Crossover",
        "Exponential Moving Average crossover strategy - more responsive than SMA",
        {"shortPeriod": 12, "longPeriod": 26},
        ["EMA Short", "EMA Long"],
    ),
    _entry(
        StrategyId.RSI,
        "RSI Oscillator",
        "Relative Strength Index - buy oversold, sell overbought conditions",
        {"period": 14, "oversold": 30, "overbought": 70},
        ["RSI"],
    ),
    _entry(
        StrategyId.MACD,
        "MACD Strategy",
        "Moving Average Convergence Divergence - momentum and trend following",
        {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9},
        ["MACD Line", "MACD Signal", "MACD Histogram"],
    ),
    _entry(
        StrategyId.BOLLINGER_BANDS,
        "Bollinger Bands",
        "Volatility-based strategy - buy at lower band, sell at upper band",
        {"period": 20, "stdDev": 2},
        ["Bollinger Upper", "Bollinger Middle", "Bollinger Lower"],
    ),
    _entry(
        StrategyId.STOCHASTIC,
        "Stochastic Oscillator",
        "Momentum oscillator - identifies overbought and oversold conditions",
        {"kPeriod": 14, "dPeriod": 3, "oversold": 20, "overbought": 80},
        ["Stoch %K", "Stoch %D"],
    ),
    _entry(
        StrategyId.MEAN_REVERSION,
        "Mean Reversion",
        "Price reversion to moving average - contrarian strategy",
        {"period": 20, "threshold": 2},
        ["SMA", "Price Deviation"],
    ),
    _entry(
        StrategyId.BUY_AND_HOLD,
        "Buy & Hold",
        "Simple buy and hold strategy - buy once at the beginning",
        {},
        [],
    ),
)


def parse_strategy_id(name: Union[str, StrategyId]) -> Optional[StrategyId]:
    """Return the StrategyId for ``name`` (case-insensitive), or None."""
    if isinstance(name, StrategyId):
        return name
    try:
        return StrategyId(str(name).strip().upper())
    except ValueError:
        return None


def get_strategy_config(strategy_id: Union[str, StrategyId]) -> Optional[StrategyConfig]:
    sid = parse_strategy_id(strategy_id)
    for cfg in STRATEGY_CATALOG:
        if cfg.id == sid:
            return cfg
    return None


# ---------- rules ----------

Rule = Callable[[int, Candle, Optional[Candle]], Decision]


def _hold(reason: str) -> Decision:
    return Decision(Action.HOLD, reason)


def _defined(*values: Optional[float]) -> bool:
    return all(v is not None for v in values)


def _crossover(label: str, short_attr: str, long_attr: str, fmt: str = ".2f") -> Rule:
    """Short/long crossover rule on two decorations of the candle."""

    def rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
        if prev is None:
            return _hold(f"No {label} crossover signal")
        s, l = getattr(c, short_attr), getattr(c, long_attr)
        ps, pl = getattr(prev, short_attr), getattr(prev, long_attr)
        if not _defined(s, l, ps, pl):
            return _hold(f"No {label} crossover signal")
        if ps <= pl and s > l:
            return Decision(Action.BUY, f"{label} bullish crossover ({s:{fmt}} crosses above {l:{fmt}})")
        if ps >= pl and s < l:
            return Decision(Action.SELL, f"{label} bearish crossover ({s:{fmt}} crosses below {l:{fmt}})")
        return _hold(f"No {label} crossover signal")

    return rule


def _rsi_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if prev is None or not _defined(c.rsi, prev.rsi):
        return _hold("RSI warming up")
    value = c.rsi
    if value < SIGNALS.rsi_oversold:
        return Decision(Action.BUY, f"RSI oversold signal ({value:.1f} < {SIGNALS.rsi_oversold:g})")
    if value > SIGNALS.rsi_overbought:
        return Decision(Action.SELL, f"RSI overbought signal ({value:.1f} > {SIGNALS.rsi_overbought:g})")
    return _hold(f"RSI neutral ({value:.1f})")


def _macd_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if prev is None or not _defined(c.macd_line, c.macd_signal, prev.macd_line, prev.macd_signal):
        return _hold("No MACD crossover signal")
    line, sig = c.macd_line, c.macd_signal
    if prev.macd_line <= prev.macd_signal and line > sig:
        return Decision(Action.BUY, f"MACD bullish crossover ({line:.3f} > {sig:.3f})")
    if prev.macd_line >= prev.macd_signal and line < sig:
        return Decision(Action.SELL, f"MACD bearish crossover ({line:.3f} < {sig:.3f})")
    return _hold("No MACD crossover signal")


def _bollinger_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if prev is None or not _defined(
        c.bollinger_upper, c.bollinger_lower, prev.bollinger_upper, prev.bollinger_lower
    ):
        return _hold("Price within Bollinger Bands")
    if c.close <= c.bollinger_lower:
        return Decision(
            Action.BUY, f"Price at lower Bollinger Band ({c.close:.2f} <= {c.bollinger_lower:.2f})"
        )
    if c.close >= c.bollinger_upper:
        return Decision(
            Action.SELL, f"Price at upper Bollinger Band ({c.close:.2f} >= {c.bollinger_upper:.2f})"
        )
    return _hold("Price within Bollinger Bands")


def _stochastic_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if prev is None or not _defined(c.stoch_k, c.stoch_d, prev.stoch_k, prev.stoch_d):
        return _hold("Stochastic in neutral range")
    k, d = c.stoch_k, c.stoch_d
    if k < SIGNALS.stoch_oversold and d < SIGNALS.stoch_oversold:
        return Decision(Action.BUY, f"Stochastic oversold (%K: {k:.1f}, %D: {d:.1f})")
    if k > SIGNALS.stoch_overbought and d > SIGNALS.stoch_overbought:
        return Decision(Action.SELL, f"Stochastic overbought (%K: {k:.1f}, %D: {d:.1f})")
    return _hold("Stochastic in neutral range")


def _mean_reversion_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if prev is None or not _defined(c.sma_reversion, prev.sma_reversion):
        return _hold("Price near moving average")
    ma = c.sma_reversion
    if ma == 0:
        return _hold("Price near moving average")
    deviation = (c.close - ma) / ma * 100.0
    if deviation < -SIGNALS.mean_reversion_pct:
        return Decision(
            Action.BUY,
            f"Price below MA by {abs(deviation):.1f}% ({c.close:.2f} vs {ma:.2f}) - mean reversion buy",
        )
    if deviation > SIGNALS.mean_reversion_pct:
        return Decision(
            Action.SELL,
            f"Price above MA by {deviation:.1f}% ({c.close:.2f} vs {ma:.2f}) - mean reversion sell",
        )
    return _hold("Price near moving average")


def _buy_and_hold_rule(index: int, c: Candle, prev: Optional[Candle]) -> Decision:
    if index == 0:
        return Decision(Action.BUY, "Initial buy and hold")
    return _hold("Hold position")


_RULES: Dict[StrategyId, Rule] = {
    StrategyId.SMA_CROSSOVER: _crossover("SMA", "sma_short", "sma_long"),
    StrategyId.EMA_CROSSOVER: _crossover("EMA", "ema_short", "ema_long"),
    StrategyId.RSI: _rsi_rule,
    StrategyId.MACD: _macd_rule,
    StrategyId.BOLLINGER_BANDS: _bollinger_rule,
    StrategyId.STOCHASTIC: _stochastic_rule,
    StrategyId.MEAN_REVERSION: _mean_reversion_rule,
    StrategyId.BUY_AND_HOLD: _buy_and_hold_rule,
}


def decide(strategy_id: Union[str, StrategyId], index: int, candles: Sequence[Candle]) -> Decision:
    """Map (strategy, index, decorated candles) to a BUY/SELL/HOLD Decision."""
    if index < 0 or index >= len(candles):
        return _hold("No candle")
    sid = parse_strategy_id(strategy_id)
    if sid is None:
        return _hold("Unknown strategy")
    c = candles[index]
    prev = candles[index - 1] if index > 0 else None
    return _RULES[sid](index, c, prev)

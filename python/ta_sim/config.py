"""Configuration objects.

Style rules:
- keep signatures stable (no alias chaos)
- prefer explicit field names
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IndicatorConfig:
    """Indicator window configuration.

    Defaults are the fixed periods the decision rules were written against.
    """

    sma_short: int = 10
    sma_long: int = 20
    ema_short: int = 12
    ema_long: int = 26

    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9

    bollinger_window: int = 20
    bollinger_k: float = 2.0

    stoch_k_period: int = 14
    stoch_d_period: int = 3

    rsi_window: int = 14

    # SMA the mean reversion rule measures deviation from
    mean_reversion_window: int = 20


@dataclass(frozen=True)
class SignalConfig:
    """Decision thresholds (fixed; the strategy catalog only describes them)."""

    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0
    stoch_oversold: float = 20.0
    stoch_overbought: float = 80.0
    # percent distance of close from the 20-bar SMA
    mean_reversion_pct: float = 2.0


@dataclass(frozen=True)
class SimulationConfig:
    """Replay run configuration."""

    initial_capital: float = 10_000.0

    # playback tick interval
    speed_ms: int = 500

    default_strategy: str = "SMA_CROSSOVER"

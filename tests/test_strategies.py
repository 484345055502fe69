from __future__ import annotations

import pytest

from ta_sim import strategies
from ta_sim.config import IndicatorConfig, SignalConfig
from ta_sim.data_manager import OhlcvDataManager
from ta_sim.indicators import sma
from ta_sim.strategies import (
    STRATEGY_CATALOG,
    StrategyId,
    decide,
    get_strategy_config,
    parse_strategy_id,
)
from ta_sim.types import Action, Candle


def _c(close=100.0, **decorations) -> Candle:
    return Candle(
        timestamp="2024-01-01T00:00:00",
        open=close,
        high=close + 1,
        low=close - 1,
        close=close,
        volume=1000.0,
        **decorations,
    )


@pytest.mark.parametrize(
    "sid,short,long,label",
    [
        (StrategyId.SMA_CROSSOVER, "sma_short", "sma_long", "SMA"),
        (StrategyId.EMA_CROSSOVER, "ema_short", "ema_long", "EMA"),
    ],
)
def test_moving_average_crossovers(sid, short, long, label):
    prev = _c(**{short: 99.0, long: 100.0})
    up = _c(**{short: 101.25, long: 100.8})
    d = decide(sid, 1, [prev, up])
    assert d.action is Action.BUY
    assert label in d.reason and "101.25" in d.reason and "100.80" in d.reason

    prev = _c(**{short: 101.0, long: 100.0})
    down = _c(**{short: 99.5, long: 100.0})
    d = decide(sid, 1, [prev, down])
    assert d.action is Action.SELL
    assert "99.50" in d.reason

    # no swap in order -> hold
    d = decide(sid, 1, [up, up])
    assert d.action is Action.HOLD


@pytest.mark.parametrize("sid", [StrategyId.SMA_CROSSOVER, StrategyId.EMA_CROSSOVER, StrategyId.MACD])
def test_crossovers_hold_without_history(sid):
    full = _c(
        sma_short=1.0, sma_long=2.0, ema_short=1.0, ema_long=2.0, macd_line=1.0, macd_signal=2.0
    )
    crossed = _c(
        sma_short=3.0, sma_long=2.0, ema_short=3.0, ema_long=2.0, macd_line=3.0, macd_signal=2.0
    )
    # index 0 has no previous candle
    assert decide(sid, 0, [crossed]).action is Action.HOLD
    # previous candle without indicator values
    assert decide(sid, 1, [_c(), crossed]).action is Action.HOLD
    # sanity: same pair with values defined does trade
    assert decide(sid, 1, [full, crossed]).action is Action.BUY


def test_rsi_thresholds():
    prev = _c(rsi=40.0)
    d = decide(StrategyId.RSI, 1, [prev, _c(rsi=27.34)])
    assert d.action is Action.BUY and "27.3" in d.reason
    d = decide(StrategyId.RSI, 1, [prev, _c(rsi=75.0)])
    assert d.action is Action.SELL and "75.0" in d.reason
    d = decide(StrategyId.RSI, 1, [prev, _c(rsi=50.0)])
    assert d.action is Action.HOLD
    # warm-up: undefined RSI is never read as a neutral 50 or as a signal
    assert decide(StrategyId.RSI, 1, [_c(), _c(rsi=10.0)]).action is Action.HOLD
    assert decide(StrategyId.RSI, 1, [prev, _c()]).action is Action.HOLD


def test_macd_crossover():
    prev = _c(macd_line=-0.5, macd_signal=-0.2)
    cur = _c(macd_line=0.1234, macd_signal=-0.1)
    d = decide(StrategyId.MACD, 1, [prev, cur])
    assert d.action is Action.BUY and "0.123" in d.reason

    d = decide(StrategyId.MACD, 1, [cur, prev])
    assert d.action is Action.SELL


def test_bollinger_band_touches():
    bands = dict(bollinger_upper=110.0, bollinger_middle=100.0, bollinger_lower=90.0)
    prev = _c(**bands)
    assert decide(StrategyId.BOLLINGER_BANDS, 1, [prev, _c(close=90.0, **bands)]).action is Action.BUY
    assert decide(StrategyId.BOLLINGER_BANDS, 1, [prev, _c(close=111.0, **bands)]).action is Action.SELL
    assert decide(StrategyId.BOLLINGER_BANDS, 1, [prev, _c(close=100.0, **bands)]).action is Action.HOLD


def test_stochastic_needs_both_lines():
    prev = _c(stoch_k=50.0, stoch_d=50.0)
    d = decide(StrategyId.STOCHASTIC, 1, [prev, _c(stoch_k=10.0, stoch_d=15.0)])
    assert d.action is Action.BUY and "10.0" in d.reason and "15.0" in d.reason
    assert decide(StrategyId.STOCHASTIC, 1, [prev, _c(stoch_k=10.0, stoch_d=25.0)]).action is Action.HOLD
    assert decide(StrategyId.STOCHASTIC, 1, [prev, _c(stoch_k=85.0, stoch_d=90.0)]).action is Action.SELL
    assert decide(StrategyId.STOCHASTIC, 1, [prev, _c(stoch_k=85.0, stoch_d=75.0)]).action is Action.HOLD


def test_mean_reversion_deviation():
    prev = _c(sma_reversion=100.0)
    d = decide(StrategyId.MEAN_REVERSION, 1, [prev, _c(close=97.0, sma_reversion=100.0)])
    assert d.action is Action.BUY and "3.0%" in d.reason
    d = decide(StrategyId.MEAN_REVERSION, 1, [prev, _c(close=103.0, sma_reversion=100.0)])
    assert d.action is Action.SELL and "3.0%" in d.reason
    d = decide(StrategyId.MEAN_REVERSION, 1, [prev, _c(close=101.0, sma_reversion=100.0)])
    assert d.action is Action.HOLD


def test_mean_reversion_ignores_bollinger_window(wave_candles, wave_closes):
    default = OhlcvDataManager.from_candles(wave_candles)
    narrow = OhlcvDataManager.from_candles(wave_candles, IndicatorConfig(bollinger_window=5))
    assert [c.sma_reversion for c in narrow.candles] == sma(wave_closes, 20)
    assert narrow.candle(30).bollinger_middle != narrow.candle(30).sma_reversion

    sid = StrategyId.MEAN_REVERSION
    assert [decide(sid, i, narrow.candles) for i in range(len(narrow))] == [
        decide(sid, i, default.candles) for i in range(len(default))
    ]


def test_buy_and_hold_only_at_index_zero():
    candles = [_c(), _c()]
    assert decide(StrategyId.BUY_AND_HOLD, 0, candles).action is Action.BUY
    assert decide(StrategyId.BUY_AND_HOLD, 1, candles).action is Action.HOLD


def test_unknown_strategy_and_out_of_range_hold():
    d = decide("NOT_A_STRATEGY", 0, [_c()])
    assert d.action is Action.HOLD and d.reason == "Unknown strategy"
    assert decide(StrategyId.RSI, 5, [_c()]).reason == "No candle"
    # names are accepted case-insensitively
    assert parse_strategy_id("rsi") is StrategyId.RSI
    assert parse_strategy_id("nope") is None


def test_every_strategy_has_a_rule():
    assert set(strategies._RULES) == set(StrategyId)


@pytest.mark.parametrize("sid", list(StrategyId))
def test_decide_is_idempotent(sid, wave_candles):
    dm = OhlcvDataManager.from_candles(wave_candles)
    first = [decide(sid, i, dm.candles) for i in range(len(dm))]
    second = [decide(sid, i, dm.candles) for i in range(len(dm))]
    assert first == second


@pytest.mark.parametrize(
    "sid,fields",
    [
        (StrategyId.SMA_CROSSOVER, ("sma_short", "sma_long")),
        (StrategyId.EMA_CROSSOVER, ("ema_short", "ema_long")),
        (StrategyId.MACD, ("macd_line", "macd_signal")),
    ],
)
def test_crossover_signals_only_where_defined(sid, fields, wave_candles):
    dm = OhlcvDataManager.from_candles(wave_candles)
    signals = 0
    for i in range(len(dm)):
        d = decide(sid, i, dm.candles)
        if d.action is not Action.HOLD:
            signals += 1
            assert i > 0
            for f in fields:
                assert getattr(dm.candle(i), f) is not None
                assert getattr(dm.candle(i - 1), f) is not None
    assert signals > 0


def test_catalog_describes_pipeline_constants():
    assert len(STRATEGY_CATALOG) == len(StrategyId)
    ind, sig = IndicatorConfig(), SignalConfig()

    sma_cfg = get_strategy_config(StrategyId.SMA_CROSSOVER)
    assert dict(sma_cfg.parameters) == {"shortPeriod": ind.sma_short, "longPeriod": ind.sma_long}
    macd_cfg = get_strategy_config("MACD")
    assert dict(macd_cfg.parameters) == {
        "fastPeriod": ind.macd_fast,
        "slowPeriod": ind.macd_slow,
        "signalPeriod": ind.macd_signal,
    }
    rsi_cfg = get_strategy_config(StrategyId.RSI)
    assert rsi_cfg.parameters["oversold"] == sig.rsi_oversold
    assert rsi_cfg.parameters["overbought"] == sig.rsi_overbought
    stoch_cfg = get_strategy_config(StrategyId.STOCHASTIC)
    assert stoch_cfg.parameters["kPeriod"] == ind.stoch_k_period
    assert stoch_cfg.parameters["oversold"] == sig.stoch_oversold

    # read-only
    with pytest.raises(TypeError):
        sma_cfg.parameters["shortPeriod"] = 5

from __future__ import annotations

import math

import pandas as pd
import pytest

from ta_sim.backtest import run_replay_from_csv
from ta_sim.metrics import max_drawdown, total_return
from ta_sim.strategies import StrategyId


def test_max_drawdown_and_total_return():
    eq = [100.0, 120.0, 90.0, 130.0]
    assert max_drawdown(eq) == pytest.approx(0.25)
    assert total_return(eq) == pytest.approx(0.3)
    assert math.isnan(max_drawdown([]))
    assert math.isnan(total_return([]))
    assert total_return(pd.Series([50.0])) == 0.0


def test_run_replay_from_csv_writes_outputs(tmp_path, make_csv_text, wave_closes):
    csv_path = tmp_path / "wave.csv"
    csv_path.write_text(make_csv_text(wave_closes), encoding="utf-8")

    result = run_replay_from_csv(csv_path, strategy_id=StrategyId.SMA_CROSSOVER, output_dir=tmp_path / "out")
    s = result.summary
    assert s.symbol == "wave"
    assert s.bars == len(wave_closes)
    assert s.steps == len(wave_closes) - 1 - 19

    eq = pd.read_csv(result.paths["equity"])
    assert list(eq.columns) == ["timestamp", "equity"]
    assert len(eq) == s.steps + 1
    assert eq["equity"].iloc[0] == 10_000.0
    assert eq["equity"].iloc[-1] == pytest.approx(s.final_value)

    trades = pd.read_csv(result.paths["trades"])
    assert list(trades.columns) == ["index", "type", "price", "reason", "quantity"]
    assert len(trades) == s.trades > 0
    assert set(trades["type"]) <= {"BUY", "SELL"}
    assert trades["index"].is_monotonic_increasing

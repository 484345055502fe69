"""Batch replay runner: reset, step to the last bar, write CSV outputs."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Union

import pandas as pd

from .config import IndicatorConfig, SimulationConfig
from .data_manager import OhlcvDataManager
from .data_provider import CsvProvider, OhlcvFrame, validate_candles
from .metrics import max_drawdown, total_return
from .strategies import StrategyId
from .trader import PortfolioLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplaySummary:
    symbol: str
    strategy: str
    bars: int
    steps: int
    trades: int
    final_value: float
    total_return: float
    max_drawdown: float


@dataclass(frozen=True)
class ReplayResult:
    paths: Dict[str, Path]
    summary: ReplaySummary


def run_replay_from_csv(
    csv_path: str | Path,
    symbol: str | None = None,
    strategy_id: Union[str, StrategyId] = StrategyId.SMA_CROSSOVER,
    output_dir: str | Path = "outputs",
    sim_cfg: SimulationConfig = SimulationConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
) -> ReplayResult:
    frame = CsvProvider().fetch(csv_path=csv_path, symbol=symbol)
    return run_replay(frame, strategy_id, output_dir, sim_cfg, ind_cfg)


def run_replay(
    frame: OhlcvFrame,
    strategy_id: Union[str, StrategyId] = StrategyId.SMA_CROSSOVER,
    output_dir: str | Path = "outputs",
    sim_cfg: SimulationConfig = SimulationConfig(),
    ind_cfg: IndicatorConfig = IndicatorConfig(),
) -> ReplayResult:
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    validate_candles(frame.to_candles(), frame.symbol)
    dm = OhlcvDataManager(frame, ind_cfg)
    ledger = PortfolioLedger(dm=dm, strategy_id=strategy_id, sim_cfg=sim_cfg)
    steps = ledger.run_to_end()

    eq = pd.DataFrame(
        [(p.timestamp, p.value) for p in ledger.equity_curve], columns=["timestamp", "equity"]
    ).set_index("timestamp")
    trades = pd.DataFrame(
        [{**asdict(t), "type": t.type.value} for t in ledger.trade_log],
        columns=["index", "type", "price", "reason", "quantity"],
    )

    tag = frame.symbol.replace(".", "_")
    eq_path = out_dir / f"equity_{tag}.csv"
    tr_path = out_dir / f"trades_{tag}.csv"
    eq.to_csv(eq_path, encoding="utf-8")
    trades.to_csv(tr_path, index=False, encoding="utf-8")

    values = eq["equity"]
    summary = ReplaySummary(
        symbol=frame.symbol,
        strategy=ledger.strategy_id.value,
        bars=len(dm),
        steps=steps,
        trades=len(ledger.trade_log),
        final_value=float(values.iloc[-1]) if len(values) else float(sim_cfg.initial_capital),
        total_return=total_return(values),
        max_drawdown=max_drawdown(values),
    )
    logger.info(
        "Replay %s/%s: %d steps, %d trades, final=%.2f return=%.4f mdd=%.4f",
        summary.symbol,
        summary.strategy,
        summary.steps,
        summary.trades,
        summary.final_value,
        summary.total_return,
        summary.max_drawdown,
    )
    return ReplayResult(paths={"equity": eq_path, "trades": tr_path}, summary=summary)

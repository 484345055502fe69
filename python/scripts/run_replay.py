from __future__ import annotations

import argparse
import asyncio
import logging

from ta_sim.backtest import run_replay
from ta_sim.config import SimulationConfig
from ta_sim.data_provider import CsvProvider, DatasetLoadError, YfinanceProvider
from ta_sim.indicators import RSI_NEUTRAL
from ta_sim.logging_utils import setup_logger
from ta_sim.simulator import Simulator
from ta_sim.strategies import STRATEGY_CATALOG, parse_strategy_id

logger = logging.getLogger("ta_sim.scripts.run_replay")


async def animate(sim: Simulator) -> None:
    """Replay with the playback controller, logging every bar's explanation."""

    def on_tick(ledger) -> None:
        rsi = ledger.dm.candle(ledger.current_index).rsi
        logger.info(
            "[%d] %s | rsi=%.1f value=%.2f",
            ledger.current_index,
            ledger.last_explanation,
            RSI_NEUTRAL if rsi is None else rsi,
            ledger.portfolio_value,
        )

    sim.playback.on_tick = on_tick
    async with sim.playback:
        sim.play()
        await sim.playback.join()
    snap = sim.snapshot()
    logger.info("Done: cash=%.2f shares=%d value=%.2f trades=%d", snap.cash, snap.shares, snap.portfolio_value, len(sim.trades))


def main():
    p = argparse.ArgumentParser()
    p.add_argument("--csv", type=str, default=None, help="OHLCV CSV path (timestamp,open,high,low,close,volume).")
    p.add_argument("--yf_symbol", type=str, default=None, help="Fetch daily bars from yfinance instead of a CSV.")
    p.add_argument("--start", type=str, default="2020-01-01")
    p.add_argument("--end", type=str, default="2021-01-01")
    p.add_argument("--symbol", type=str, default=None)
    p.add_argument("--strategy", type=str, default="SMA_CROSSOVER")
    p.add_argument("--output_dir", type=str, default="outputs")
    p.add_argument("--initial_capital", type=float, default=10_000.0)
    p.add_argument("--list_strategies", action="store_true", help="Print the strategy catalog and exit.")
    p.add_argument("--play", action="store_true", help="Animate with the playback controller instead of a batch run.")
    p.add_argument("--speed_ms", type=int, default=500)
    p.add_argument("--log_level", type=str, default="INFO")
    args = p.parse_args()

    setup_logger("ta_sim", level=getattr(logging, args.log_level.upper(), logging.INFO))

    if args.list_strategies:
        for cfg in STRATEGY_CATALOG:
            print(f"{cfg.id.value:16s} {cfg.display_name:22s} {dict(cfg.parameters)}")
        return

    sid = parse_strategy_id(args.strategy)
    if sid is None:
        p.error(f"unknown strategy {args.strategy!r}")
    if not args.csv and not args.yf_symbol:
        p.error("one of --csv or --yf_symbol is required")

    sim_cfg = SimulationConfig(initial_capital=args.initial_capital, speed_ms=args.speed_ms)

    try:
        if args.yf_symbol:
            frame = YfinanceProvider().fetch(args.yf_symbol, start=args.start, end=args.end)
        else:
            frame = CsvProvider().fetch(args.csv, symbol=args.symbol)

        if args.play:
            sim = Simulator(sim_cfg)
            sim.load_frame(frame)
            sim.set_strategy(sid)
            asyncio.run(animate(sim))
            return

        result = run_replay(frame, strategy_id=sid, output_dir=args.output_dir, sim_cfg=sim_cfg)
    except DatasetLoadError as e:
        raise SystemExit(f"error: {e}")

    print(result.paths["equity"])
    print(result.paths["trades"])
    print(result.summary)


if __name__ == "__main__":
    main()

"""Single-symbol replay ledger.

One ``step()`` advances the replay by one bar:
- decides for bar i+1 using the decorated candles (no lookahead)
- executes at Close(i+1): full-lot BUY or full-liquidation SELL
- marks-to-market at Close(i+1) and appends one equity point
"""

from __future__ import annotations

import logging
import math
import threading
from typing import List, Union

from .config import SimulationConfig
from .data_manager import OhlcvDataManager
from .strategies import StrategyId, decide, parse_strategy_id
from .types import Action, EquityPoint, LedgerState, SimulatorSnapshot, Trade

logger = logging.getLogger(__name__)


class PortfolioLedger:
    """Cash + whole-share portfolio driven by one strategy over one candle series.

    State is mutated only by ``step()`` and (re)initialized by ``reset()``.
    """

    def __init__(
        self,
        dm: OhlcvDataManager,
        strategy_id: Union[str, StrategyId] = StrategyId.SMA_CROSSOVER,
        sim_cfg: SimulationConfig = SimulationConfig(),
    ):
        self.sim_cfg = sim_cfg
        self.initial_capital = float(sim_cfg.initial_capital)
        self.dm = dm
        self.strategy_id = self._require_strategy(strategy_id)

        self.cash = float(self.initial_capital)
        self.shares = int(0)
        self.current_index = 0
        self.last_explanation = ""
        self.state = LedgerState.IDLE

        self.trade_log: List[Trade] = []
        self.equity_curve: List[EquityPoint] = []

        # serializes step(); a request arriving mid-step is dropped
        self._step_lock = threading.Lock()

        self.reset()

    @staticmethod
    def _require_strategy(strategy_id: Union[str, StrategyId]) -> StrategyId:
        sid = parse_strategy_id(strategy_id)
        if sid is None:
            raise ValueError(f"Unknown strategy: {strategy_id!r}")
        return sid

    # ---------- public API ----------

    @property
    def last_index(self) -> int:
        return len(self.dm) - 1

    @property
    def is_at_end(self) -> bool:
        return self.current_index >= self.last_index

    @property
    def portfolio_value(self) -> float:
        if len(self.dm) == 0:
            return float(self.cash)
        return self._equity_value(self.dm.get_close(self.current_index))

    def reset(self) -> None:
        """Back to the warm-up start with initial capital and empty logs."""
        start = self.dm.warmup_start_index()
        self.current_index = start
        self.cash = float(self.initial_capital)
        self.shares = 0
        self.last_explanation = ""
        self.trade_log = []
        if len(self.dm) == 0:
            self.equity_curve = []
        else:
            self.equity_curve = [EquityPoint(self.dm.get_bar_timestamp(start), float(self.initial_capital))]
        self.state = LedgerState.AT_END if self.is_at_end else LedgerState.IDLE
        logger.info(
            "Ledger reset: strategy=%s start_index=%d bars=%d capital=%.2f",
            self.strategy_id.value,
            start,
            len(self.dm),
            self.initial_capital,
        )

    def set_strategy(self, strategy_id: Union[str, StrategyId]) -> None:
        self.strategy_id = self._require_strategy(strategy_id)
        self.reset()

    def replace_data(self, dm: OhlcvDataManager) -> None:
        """Swap in a newly built candle series and start over."""
        self.dm = dm
        self.reset()

    def step(self) -> bool:
        """Advance one bar. Returns False when nothing happened.

        Nothing happens at the last index or when another step is in flight.
        """
        if not self._step_lock.acquire(blocking=False):
            logger.debug("step() dropped: another step is in flight")
            return False
        try:
            if self.is_at_end:
                self.state = LedgerState.AT_END
                return False
            self.state = LedgerState.ADVANCING
            self._advance(self.current_index + 1)
            self.state = LedgerState.AT_END if self.is_at_end else LedgerState.IDLE
            return True
        finally:
            self._step_lock.release()

    def run_to_end(self) -> int:
        """Step until the last bar. Returns the number of steps executed."""
        n = 0
        while self.step():
            n += 1
        return n

    def snapshot(self, is_playing: bool = False) -> SimulatorSnapshot:
        return SimulatorSnapshot(
            cash=float(self.cash),
            shares=int(self.shares),
            portfolio_value=self.portfolio_value,
            current_index=int(self.current_index),
            is_playing=bool(is_playing),
        )

    # ---------- internal helpers ----------

    def _equity_value(self, price: float) -> float:
        return float(self.cash + float(self.shares) * float(price))

    def _advance(self, t: int) -> None:
        candle = self.dm.candle(t)
        price = float(candle.close)
        decision = decide(self.strategy_id, t, self.dm.candles)
        explanation = decision.reason

        if decision.action is Action.BUY and price > 0 and self.cash >= price:
            qty = int(math.floor(self.cash / price))
            if qty * price > self.cash:
                # cash / price rounded up to the next integer
                qty -= 1
            if qty > 0:
                self._execute_buy(t, price, qty, decision.reason)
                explanation = f"BUY {qty} @ ${price:.2f} - {decision.reason}"
        elif decision.action is Action.SELL and self.shares > 0:
            qty = self.shares
            self._execute_sell(t, price, decision.reason)
            explanation = f"SELL {qty} @ ${price:.2f} - {decision.reason}"

        self.current_index = t
        self.last_explanation = explanation
        self.equity_curve.append(EquityPoint(candle.timestamp, self._equity_value(price)))

    def _execute_buy(self, t: int, price: float, qty: int, reason: str) -> None:
        self.cash -= float(qty) * price
        self.shares += qty
        self.trade_log.append(Trade(index=t, type=Action.BUY, price=price, reason=reason, quantity=qty))
        logger.debug("BUY %d @ %.4f idx=%d cash=%.2f (%s)", qty, price, t, self.cash, reason)

    def _execute_sell(self, t: int, price: float, reason: str) -> None:
        qty = int(self.shares)
        self.cash += float(qty) * price
        self.trade_log.append(Trade(index=t, type=Action.SELL, price=price, reason=reason, quantity=qty))
        self.shares = 0
        logger.debug("SELL %d @ %.4f idx=%d cash=%.2f (%s)", qty, price, t, self.cash, reason)

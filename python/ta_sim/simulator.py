"""Simulator facade: dataset loading, strategy selection, stepping and playback.

This is the surface a presentation layer talks to. Loading a dataset builds
the new candle series completely before anything is replaced, so a failed
load leaves the previous series and portfolio as they were.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

from .config import IndicatorConfig, SimulationConfig
from .data_manager import OhlcvDataManager
from .data_provider import CsvProvider, DatasetLoadError, OhlcvFrame, validate_candles
from .playback import PlaybackController
from .strategies import STRATEGY_CATALOG, StrategyConfig, StrategyId, get_strategy_config, parse_strategy_id
from .trader import PortfolioLedger
from .types import Candle, EquityPoint, IndicatorPoint, SimulatorSnapshot, Trade

logger = logging.getLogger(__name__)


class Simulator:
    def __init__(
        self,
        sim_cfg: SimulationConfig = SimulationConfig(),
        ind_cfg: IndicatorConfig = IndicatorConfig(),
    ):
        self.sim_cfg = sim_cfg
        self.ind_cfg = ind_cfg
        self.dataset_error: Optional[str] = None

        empty = OhlcvDataManager.from_candles([], ind_cfg)
        self.ledger = PortfolioLedger(empty, sim_cfg.default_strategy, sim_cfg)
        self.playback = PlaybackController(self.ledger, speed_ms=sim_cfg.speed_ms)

    # ---------- dataset loading ----------

    def load_frame(self, frame: OhlcvFrame) -> None:
        try:
            validate_candles(frame.to_candles(), frame.symbol)
            dm = OhlcvDataManager(frame, self.ind_cfg)
        except DatasetLoadError as e:
            raise self._failed(e)
        except (ValueError, TypeError) as e:
            raise self._failed(DatasetLoadError(f"Failed to build indicators: {e}", frame.symbol)) from e
        self._install(dm)

    def load_candles(self, candles: Iterable[Candle], symbol: str = "custom") -> None:
        candles = list(candles)
        try:
            validate_candles(candles)
            dm = OhlcvDataManager.from_candles(candles, self.ind_cfg, symbol=symbol)
        except DatasetLoadError as e:
            raise self._failed(e)
        except (ValueError, TypeError) as e:
            raise self._failed(DatasetLoadError(f"Failed to build indicators: {e}", symbol)) from e
        self._install(dm)

    def load_csv(self, csv_path: Union[str, Path], symbol: Optional[str] = None) -> None:
        try:
            frame = CsvProvider().fetch(csv_path, symbol=symbol)
        except DatasetLoadError as e:
            raise self._failed(e)
        self.load_frame(frame)

    def load_csv_text(self, text: str, symbol: str = "custom") -> None:
        try:
            frame = CsvProvider().parse_text(text, symbol=symbol)
        except DatasetLoadError as e:
            raise self._failed(e)
        self.load_frame(frame)

    def _failed(self, err: DatasetLoadError) -> DatasetLoadError:
        self.dataset_error = err.message
        logger.error("Dataset load failed: %s", err)
        return err

    def _install(self, dm: OhlcvDataManager) -> None:
        # stop the driver before the series it is stepping goes away
        self.playback.pause()
        self.ledger.replace_data(dm)
        self.dataset_error = None
        logger.info("Dataset %s installed: %d candles %s", dm.symbol, len(dm), dm.date_range())

    # ---------- control ----------

    def set_strategy(self, strategy_id: Union[str, StrategyId]) -> None:
        sid = parse_strategy_id(strategy_id)
        if sid is None:
            raise ValueError(f"Unknown strategy: {strategy_id!r}")
        self.playback.pause()
        self.ledger.set_strategy(sid)

    def reset(self) -> None:
        self.playback.pause()
        self.ledger.reset()

    def step(self) -> bool:
        return self.ledger.step()

    def play(self) -> None:
        self.playback.play()

    def pause(self) -> None:
        self.playback.pause()

    def set_speed_ms(self, ms: int) -> None:
        self.playback.set_speed_ms(ms)

    # ---------- read-only views ----------

    @property
    def symbol(self) -> str:
        return self.ledger.dm.symbol

    @property
    def strategy_id(self) -> StrategyId:
        return self.ledger.strategy_id

    @property
    def candles(self) -> Tuple[Candle, ...]:
        return self.ledger.dm.candles

    @property
    def trades(self) -> Tuple[Trade, ...]:
        return tuple(self.ledger.trade_log)

    @property
    def equity_curve(self) -> Tuple[EquityPoint, ...]:
        return tuple(self.ledger.equity_curve)

    @property
    def rsi_series(self) -> Sequence[IndicatorPoint]:
        return self.ledger.dm.rsi_series

    @property
    def macd_series(self) -> Sequence[IndicatorPoint]:
        return self.ledger.dm.macd_series

    @property
    def stochastic_series(self) -> Sequence[IndicatorPoint]:
        return self.ledger.dm.stochastic_series

    @property
    def bollinger_series(self) -> Sequence[IndicatorPoint]:
        return self.ledger.dm.bollinger_series

    @property
    def last_explanation(self) -> str:
        return self.ledger.last_explanation

    @property
    def strategy_catalog(self) -> Tuple[StrategyConfig, ...]:
        return STRATEGY_CATALOG

    def readout(self, i: Optional[int] = None) -> Dict[str, Optional[float]]:
        """Indicator readouts at ``i`` (default: the current index)."""
        return self.ledger.dm.readout(self.ledger.current_index if i is None else i)

    def current_strategy_config(self) -> Optional[StrategyConfig]:
        return get_strategy_config(self.ledger.strategy_id)

    def snapshot(self) -> SimulatorSnapshot:
        return self.ledger.snapshot(is_playing=self.playback.is_playing)


import math
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# make the python/ source root importable without installing the package
ROOT = Path(__file__).resolve().parents[1] / "python"
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from ta_sim.types import Candle  # noqa: E402


def _candles(closes, spread=1.0, volume=1000.0):
    ts0 = datetime(2024, 1, 1)
    return [
        Candle(
            timestamp=(ts0 + timedelta(days=i)).isoformat(),
            open=float(c),
            high=float(c) + spread,
            low=float(c) - spread,
            close=float(c),
            volume=volume,
        )
        for i, c in enumerate(closes)
    ]


def _wave(n=120):
    return [100.0 + 10.0 * math.sin(i / 5.0) + 0.1 * i for i in range(n)]


@pytest.fixture
def make_candles():
    return _candles


@pytest.fixture
def wave_closes():
    return _wave()


@pytest.fixture
def wave_candles():
    return _candles(_wave())


@pytest.fixture
def make_csv_text():
    def _csv(closes, start=datetime(2024, 1, 1)):
        lines = ["timestamp,open,high,low,close,volume"]
        for i, c in enumerate(closes):
            ts = (start + timedelta(days=i)).strftime("%Y-%m-%d")
            lines.append(f"{ts},{c},{c + 1},{c - 1},{c},1000")
        return "\n".join(lines) + "\n"

    return _csv

"""
Momentum Signal Engine: deterministic buy/sell markers from candles.

For each adjacent pair (prev, cur) the relative close change
    delta = (cur.c - prev.c) / prev.c
marks a buy at cur when delta > buy_threshold and a sell at cur when
delta < sell_threshold. Only the immediately preceding candle is looked
at: this is a one-step detector with no smoothing, so it fires on noise in
choppy intraday data. That is a known limitation of the method.
"""

from config import SIGNAL_BUY_THRESHOLD, SIGNAL_SELL_THRESHOLD
from data.errors import InsufficientData
from data.schemas import Candle, Signal, SignalSet


def _relative_change(prev: float, cur: float) -> float | None:
    if not prev:
        return None
    return (cur - prev) / prev


def signal_indices(
    candles: list[Candle],
    buy_threshold: float = SIGNAL_BUY_THRESHOLD,
    sell_threshold: float = SIGNAL_SELL_THRESHOLD,
) -> tuple[list[int], list[int]]:
    buys = []
    sells = []
    for i in range(1, len(candles)):
        delta = _relative_change(candles[i - 1].c, candles[i].c)
        if delta is None:
            continue
        if delta > buy_threshold:
            buys.append(i)
        elif delta < sell_threshold:
            sells.append(i)
    return buys, sells


def compute_signals(
    candles: list[Candle],
    buy_threshold: float = SIGNAL_BUY_THRESHOLD,
    sell_threshold: float = SIGNAL_SELL_THRESHOLD,
) -> SignalSet:
    if len(candles) < 2:
        return SignalSet()
    buy_idx, sell_idx = signal_indices(candles, buy_threshold, sell_threshold)
    return SignalSet(
        buys=[Signal(x=candles[i].t, y=candles[i].c) for i in buy_idx],
        sells=[Signal(x=candles[i].t, y=candles[i].c) for i in sell_idx],
    )


def percent_change(closes: list[float]) -> float:
    """Percent change from the first to the last close in the window."""
    if len(closes) < 2:
        raise InsufficientData(2, len(closes))
    first, last = closes[0], closes[-1]
    if not first:
        raise InsufficientData(2, 0)
    return (last - first) / first * 100

"""
Candle normalization for Yahoo-style chart payloads.

A chart result carries a timestamp array (epoch seconds) and parallel
OHLCV arrays under indicators.quote[0]. The arrays are sparse: any
position may be null, and the value arrays can be shorter than the
timestamp array. Zip by index, convert to milliseconds, drop incomplete
entries. Order is kept exactly as delivered.

Alpha Vantage daily series go through normalize_daily_series instead.
"""
import math
from datetime import datetime, timezone

from data.errors import SymbolNotFound
from data.schemas import Candle


def _is_finite_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _at(values: list, idx: int):
    if values is None or idx >= len(values):
        return None
    return values[idx]


def extract_chart_result(payload: dict, symbol: str = "") -> dict:
    """
    Return the first chart result entry. Zero result entries means the
    symbol is unknown upstream, which is reported as SymbolNotFound rather
    than an empty candle list.
    """
    chart = (payload or {}).get("chart") or {}
    results = chart.get("result") or []
    if not results or not isinstance(results[0], dict):
        error = chart.get("error") or {}
        detail = error.get("description") if isinstance(error, dict) else None
        raise SymbolNotFound(symbol, detail or "No data found")
    return results[0]


def _quote_arrays(result: dict) -> dict:
    indicators = result.get("indicators") or {}
    quotes = indicators.get("quote") or [{}]
    return quotes[0] or {}


def normalize_chart(result: dict) -> list[Candle]:
    """
    Build candles from one chart result entry. An entry missing a finite
    o, h, l or c is dropped; a missing volume is kept as None.
    """
    timestamps = result.get("timestamp") or []
    quote = _quote_arrays(result)
    opens = quote.get("open") or []
    highs = quote.get("high") or []
    lows = quote.get("low") or []
    closes = quote.get("close") or []
    volumes = quote.get("volume") or []

    candles = []
    for idx, ts in enumerate(timestamps):
        if not _is_finite_number(ts):
            continue
        o = _at(opens, idx)
        h = _at(highs, idx)
        l = _at(lows, idx)
        c = _at(closes, idx)
        if not all(_is_finite_number(x) for x in (o, h, l, c)):
            continue
        v = _at(volumes, idx)
        candles.append(Candle(
            t=int(ts) * 1000,
            o=float(o),
            h=float(h),
            l=float(l),
            c=float(c),
            v=float(v) if _is_finite_number(v) else None,
        ))
    return candles


def valid_closes(result: dict) -> list[float]:
    """Finite close prices in delivery order, ignoring the other fields."""
    closes = _quote_arrays(result).get("close") or []
    return [float(c) for c in closes if _is_finite_number(c)]


def _parse_number(raw):
    if isinstance(raw, str):
        try:
            raw = float(raw)
        except ValueError:
            return None
    return raw if _is_finite_number(raw) else None


def normalize_daily_series(series: dict) -> list[Candle]:
    """
    Candles from an Alpha Vantage "Time Series (Daily)" object, keyed by
    YYYY-MM-DD with string values under "1. open" ... "5. volume". The
    object carries no order of its own, so candles come out oldest first,
    stamped at midnight UTC.
    """
    candles = []
    for day in sorted(series or {}):
        bar = series[day]
        if not isinstance(bar, dict):
            continue
        try:
            ts = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            continue
        o = _parse_number(bar.get("1. open"))
        h = _parse_number(bar.get("2. high"))
        l = _parse_number(bar.get("3. low"))
        c = _parse_number(bar.get("4. close"))
        if None in (o, h, l, c):
            continue
        v = _parse_number(bar.get("5. volume"))
        candles.append(Candle(
            t=int(ts.timestamp()) * 1000,
            o=float(o),
            h=float(h),
            l=float(l),
            c=float(c),
            v=float(v) if v is not None else None,
        ))
    return candles

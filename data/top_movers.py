"""
Top movers over a fixed symbol universe.

Each symbol is fetched on its own, in parallel. A symbol whose fetch fails
or that has fewer than two valid closes is left out of the ranking
entirely; it is never counted as a zero move.
"""
import asyncio

from config import SOURCE_TIMEOUT_SECONDS, TOP_MOVERS_LIMIT, TOP_MOVERS_UNIVERSE
from core.signal_engine import percent_change
from data.candles import valid_closes
from data.errors import InsufficientData
from data.schemas import MoverEntry
from data.sources import settle


class TopMoversRanker:
    def __init__(self, yahoo, timeout: float = SOURCE_TIMEOUT_SECONDS):
        self.yahoo = yahoo
        self.timeout = timeout

    async def _mover(self, symbol: str, range_: str, interval: str) -> MoverEntry | None:
        res = await settle(
            f"yahoo:{symbol}",
            lambda: self.yahoo.get_chart(symbol, range_, interval),
            self.timeout,
        )
        if not res.ok:
            return None
        try:
            pct = percent_change(valid_closes(res.payload))
        except InsufficientData:
            return None
        return MoverEntry(symbol=symbol, change_pct=round(pct, 4))

    async def rank(self, universe: list[str] = None, range_: str = "1d", interval: str = "1m",
                   limit: int = TOP_MOVERS_LIMIT) -> list[MoverEntry]:
        if universe is None:
            universe = TOP_MOVERS_UNIVERSE
        universe = [s.upper() for s in universe]
        results = await asyncio.gather(
            *[self._mover(sym, range_, interval) for sym in universe],
            return_exceptions=True,
        )
        entries = []
        for sym, r in zip(universe, results):
            if isinstance(r, Exception):
                print(f"[TOPMOVERS] {sym} exception: {r}")
                continue
            if r is not None:
                entries.append(r)
        entries.sort(key=lambda e: e.change_pct, reverse=True)
        print(f"[TOPMOVERS] ranked {len(entries)}/{len(universe)} symbols ({range_}/{interval})")
        return entries[:limit]

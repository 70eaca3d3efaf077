from agent.recommendation import RecommendationEngine
from core.signal_engine import compute_signals
from data.errors import NOT_FOUND, SymbolNotFound
from data.market_data_service import MarketDataService
from data.schemas import AnalysisReport


class MarketAnalyst:
    """Gathers the analysis context for a symbol, marks signals on its candles and asks for a recommendation."""

    def __init__(self, data_service: MarketDataService, engine: RecommendationEngine,
                 buy_threshold: float = None, sell_threshold: float = None):
        self.data = data_service
        self.engine = engine
        self.buy_threshold = buy_threshold
        self.sell_threshold = sell_threshold

    def _signal_kwargs(self) -> dict:
        kwargs = {}
        if self.buy_threshold is not None:
            kwargs["buy_threshold"] = self.buy_threshold
        if self.sell_threshold is not None:
            kwargs["sell_threshold"] = self.sell_threshold
        return kwargs

    async def analyze(self, symbol: str, range_: str = "5d", interval: str = "15m") -> AnalysisReport:
        """
        Raises SymbolNotFound when the price source does not know the
        symbol. No recommendation is requested in that case.
        """
        symbol = symbol.upper()
        context = await self.data.build_analysis_context(symbol, range_, interval)
        if context.price.error == NOT_FOUND:
            print(f"[ANALYST] {symbol}: unknown symbol, skipping recommendation")
            raise SymbolNotFound(symbol)

        candles = context.price.payload if context.price.ok and context.price.payload else []
        signals = compute_signals(candles, **self._signal_kwargs())
        recommendation = await self.engine.recommend(context)
        print(f"[ANALYST] {symbol}: {len(candles)} candles, {len(signals.buys)} buys, "
              f"{len(signals.sells)} sells, basis={recommendation.basis}")
        return AnalysisReport(
            symbol=symbol,
            context=context,
            signals=signals,
            recommendation=recommendation,
        )

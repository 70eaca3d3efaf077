import asyncio
import re

from agent.prompts import AUXILIARY_SYSTEM_PROMPT, AUXILIARY_USER_PROMPT
from config import (
    ALPHA_VANTAGE_API_KEY,
    NEWSAPI_API_KEY,
    OPENROUTER_API_KEY,
    OPENROUTER_MODEL,
    SERPER_API_KEY,
    SOURCE_TIMEOUT_SECONDS,
    X_API_KEY,
)
from data.alphavantage_provider import AlphaVantageProvider
from data.candles import normalize_chart
from data.newsapi_provider import NewsAPIProvider
from data.openrouter_provider import OpenRouterProvider
from data.schemas import AnalysisContext, SourceResult
from data.serper_provider import SerperProvider
from data.sources import settle, settle_with_fallback
from data.stocktwits_provider import StockTwitsProvider
from data.x_provider import XProvider
from data.yahoo_provider import YahooFinanceProvider

NEWS_LIMIT = 10
SOCIAL_LIMIT = 10

_SYMBOL_RE = re.compile(r"^\$?[A-Za-z][A-Za-z0-9.\-]{0,9}$")


def looks_like_symbol(text: str) -> bool:
    return bool(_SYMBOL_RE.match(text.strip()))


class MarketDataService:
    """
    Unified interface for all market data.
    Callers talk to THIS, never directly to a provider. Every method that
    reaches upstream returns a SourceResult instead of raising.
    """

    def __init__(self, newsapi_key: str = None, serper_key: str = None, x_key: str = None,
                 openrouter_key: str = None, openrouter_model: str = None,
                 alphavantage_key: str = None, timeout: float = SOURCE_TIMEOUT_SECONDS):
        self.timeout = timeout
        self.yahoo = YahooFinanceProvider(timeout=timeout)
        self.stocktwits = StockTwitsProvider()

        newsapi_key = newsapi_key or NEWSAPI_API_KEY
        serper_key = serper_key or SERPER_API_KEY
        x_key = x_key or X_API_KEY
        openrouter_key = openrouter_key or OPENROUTER_API_KEY
        alphavantage_key = alphavantage_key or ALPHA_VANTAGE_API_KEY

        self.newsapi = NewsAPIProvider(newsapi_key) if newsapi_key else None
        self.serper = SerperProvider(serper_key) if serper_key else None
        self.x = XProvider(x_key) if x_key else None
        self.openrouter = (
            OpenRouterProvider(openrouter_key, openrouter_model or OPENROUTER_MODEL)
            if openrouter_key else None
        )
        self.alphavantage = AlphaVantageProvider(alphavantage_key) if alphavantage_key else None
        for name, provider in (("NewsAPI", self.newsapi), ("Serper", self.serper),
                               ("X", self.x), ("OpenRouter", self.openrouter),
                               ("Alpha Vantage", self.alphavantage)):
            if provider:
                print(f"[INIT] {name} provider initialized")
            else:
                print(f"[INIT] {name} provider SKIPPED (no API key)")

    def configured_sources(self) -> dict:
        return {
            "yahoo": True,
            "stocktwits": True,
            "newsapi": self.newsapi is not None,
            "serper": self.serper is not None,
            "x": self.x is not None,
            "openrouter": self.openrouter is not None,
            "alphavantage": self.alphavantage is not None,
        }

    async def get_price_history(self, symbol: str, range_: str = "1d", interval: str = "1m") -> SourceResult:
        """
        Yahoo candles for the requested window. When Yahoo fails or has no
        candles, Alpha Vantage daily candles are used instead (source
        "alphavantage"). A symbol Yahoo does not know is reported as
        not_found without asking Alpha Vantage.
        """
        symbol = symbol.upper()

        async def fetch():
            result = await self.yahoo.get_chart(symbol, range_, interval)
            return normalize_chart(result)

        secondary = None
        if self.alphavantage:
            secondary = ("alphavantage", lambda: self.alphavantage.get_daily(symbol))
        res = await settle_with_fallback("price", ("yahoo", fetch), secondary, self.timeout)
        if res.ok:
            print(f"[CANDLES] {symbol} {range_}/{interval}: {len(res.payload)} candles from {res.source}")
        return res

    async def get_daily_history(self, symbol: str, full: bool = False) -> SourceResult:
        symbol = symbol.upper()
        fetch = (lambda: self.alphavantage.get_daily(symbol, full)) if self.alphavantage else None
        return await settle("alphavantage", fetch, self.timeout)

    async def _news(self, primary_query: str, secondary_query: str) -> SourceResult:
        primary = ("newsapi", (lambda: self.newsapi.search(primary_query, NEWS_LIMIT)) if self.newsapi else None)
        secondary = ("serper", (lambda: self.serper.search(secondary_query, NEWS_LIMIT)) if self.serper else None)
        if primary[1] is None and secondary[1] is not None:
            return await settle(*secondary, timeout=self.timeout)
        return await settle_with_fallback("news", primary, secondary, self.timeout)

    async def get_news(self, symbol: str) -> SourceResult:
        symbol = symbol.upper()
        return await self._news(symbol, f"{symbol} stock news")

    async def search_news(self, query: str) -> SourceResult:
        """Free-text news search. The query goes to both sources untouched."""
        return await self._news(query, query)

    async def get_social(self, symbol: str) -> SourceResult:
        symbol = symbol.upper().lstrip("$")
        primary = ("x", (lambda: self.x.search(f"${symbol}", SOCIAL_LIMIT)) if self.x else None)
        secondary = ("stocktwits", lambda: self.stocktwits.get_messages(symbol, SOCIAL_LIMIT))
        if primary[1] is None:
            return await settle(*secondary, timeout=self.timeout)
        return await settle_with_fallback("social", primary, secondary, self.timeout)

    async def search_social(self, query: str) -> SourceResult:
        """
        Free-text post search on X. StockTwits only has per-symbol streams,
        so it is the fallback only when the query is a single ticker.
        """
        primary = ("x", (lambda: self.x.search(query, SOCIAL_LIMIT)) if self.x else None)
        secondary = None
        if looks_like_symbol(query):
            ticker = query.strip().upper().lstrip("$")
            secondary = ("stocktwits", lambda: self.stocktwits.get_messages(ticker, SOCIAL_LIMIT))
        if primary[1] is None and secondary is not None:
            return await settle(*secondary, timeout=self.timeout)
        return await settle_with_fallback("social", primary, secondary, self.timeout)

    async def get_auxiliary_analysis(self, symbol: str) -> SourceResult:
        symbol = symbol.upper()
        fetch = None
        if self.openrouter:
            fetch = lambda: self.openrouter.complete(
                AUXILIARY_SYSTEM_PROMPT,
                AUXILIARY_USER_PROMPT.format(symbol=symbol),
                max_tokens=200,
            )
        return await settle("openrouter", fetch, self.timeout)

    async def search_symbols(self, query: str) -> SourceResult:
        return await settle("yahoo_search", lambda: self.yahoo.search_symbols(query), self.timeout)

    async def build_analysis_context(self, symbol: str, range_: str = "5d", interval: str = "15m") -> AnalysisContext:
        """
        Fan out to price, news, social and auxiliary commentary at once and
        wait for all of them. Each field carries its own outcome; a failed
        source never blanks the others.
        """
        symbol = symbol.upper()
        price, news, social, aux = await asyncio.gather(
            self.get_price_history(symbol, range_, interval),
            self.get_news(symbol),
            self.get_social(symbol),
            self.get_auxiliary_analysis(symbol),
        )
        context = AnalysisContext(
            symbol=symbol,
            price=price,
            news=news,
            social=social,
            auxiliary_analysis=aux,
        )
        status = {k: ("ok" if getattr(context, k).ok else "fail")
                  for k in ("price", "news", "social", "auxiliary_analysis")}
        print(f"[AGGREGATE] {symbol} sources: {status}")
        return context

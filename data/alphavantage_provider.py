import httpx

from data.candles import normalize_daily_series
from data.errors import ProviderUnavailable, SymbolNotFound
from data.schemas import Candle


class AlphaVantageProvider:
    """
    Daily OHLCV history via Alpha Vantage's TIME_SERIES_DAILY.

    NOTE: Free tier is limited to 25 requests per day, so this is only
    called when Yahoo cannot serve a symbol it knows.
    """

    BASE_URL = "https://www.alphavantage.co/query"

    def __init__(self, api_key: str):
        self.api_key = api_key
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=20.0)
        return self._client

    async def get_daily(self, symbol: str, full: bool = False) -> list[Candle]:
        """
        Daily candles, oldest first. Alpha Vantage answers 200 for almost
        everything: an "Error Message" body means the symbol is unknown,
        a "Note" or "Information" body means the quota is spent.
        """
        symbol = symbol.upper()
        params = {
            "function": "TIME_SERIES_DAILY",
            "symbol": symbol,
            "outputsize": "full" if full else "compact",
            "apikey": self.api_key,
        }
        try:
            client = await self._get_client()
            resp = await client.get(self.BASE_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("alphavantage", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("alphavantage", f"HTTP {resp.status_code}", resp.status_code)

        data = resp.json() or {}
        if "Error Message" in data:
            raise SymbolNotFound(symbol, data["Error Message"])
        series = data.get("Time Series (Daily)")
        if series is None:
            detail = data.get("Note") or data.get("Information") or "No daily series in response"
            raise ProviderUnavailable("alphavantage", detail)
        return normalize_daily_series(series)

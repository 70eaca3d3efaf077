from urllib.parse import quote

import httpx

from data.candles import extract_chart_result
from data.errors import ProviderUnavailable, SymbolNotFound
from data.schemas import SymbolMatch

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; MarketPulse/1.0)",
    "Accept": "application/json",
}


class YahooFinanceProvider:
    """Price history (chart API) and symbol lookup from Yahoo Finance. No key needed."""

    CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"
    SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers=HEADERS, timeout=self.timeout)
        return self._client

    async def get_chart(self, symbol: str, range_: str = "1d", interval: str = "1m") -> dict:
        """
        Raw chart result entry for a symbol. Raises SymbolNotFound when
        Yahoo has no result for it and ProviderUnavailable on transport or
        status failures.
        """
        symbol = symbol.upper()
        params = {"range": range_, "interval": interval, "includePrePost": "false"}
        try:
            client = await self._get_client()
            resp = await client.get(f"{self.CHART_URL}/{quote(symbol, safe='')}", params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("yahoo", str(e) or type(e).__name__) from e

        if resp.status_code == 404:
            # Unknown symbols come back as 404 with chart.result = null
            try:
                error = ((resp.json() or {}).get("chart") or {}).get("error") or {}
            except ValueError:
                error = {}
            raise SymbolNotFound(symbol, error.get("description") or "No data found")
        if resp.status_code != 200:
            raise ProviderUnavailable("yahoo", f"HTTP {resp.status_code}", resp.status_code)

        return extract_chart_result(resp.json(), symbol)

    async def search_symbols(self, query: str, limit: int = 10) -> list[SymbolMatch]:
        params = {"q": query, "quotesCount": limit, "newsCount": 0}
        try:
            client = await self._get_client()
            resp = await client.get(self.SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("yahoo", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("yahoo", f"HTTP {resp.status_code}", resp.status_code)

        quotes = (resp.json() or {}).get("quotes") or []
        results = []
        for q in quotes[:limit]:
            if not isinstance(q, dict) or not q.get("symbol"):
                continue
            results.append(SymbolMatch(
                symbol=q["symbol"],
                name=q.get("longname") or q.get("shortname") or q.get("name") or q["symbol"],
            ))
        return results

    async def aclose(self):
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

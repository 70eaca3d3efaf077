from urllib.parse import quote

import httpx

from data.errors import ProviderUnavailable


class StockTwitsProvider:
    """Symbol message stream from StockTwits. Secondary social source, no key required."""

    BASE_URL = "https://api.stocktwits.com/api/2"

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=15.0)
        return self._client

    async def get_messages(self, ticker: str, limit: int = 10) -> list[dict]:
        """Recent messages for a ticker, tagged with the poster's Bullish/Bearish label when set."""
        ticker = ticker.upper().lstrip("$")
        try:
            client = await self._get_client()
            resp = await client.get(f"{self.BASE_URL}/streams/symbol/{quote(ticker, safe='')}.json")
        except httpx.HTTPError as e:
            raise ProviderUnavailable("stocktwits", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("stocktwits", f"HTTP {resp.status_code}", resp.status_code)

        data = resp.json()
        if not data or not isinstance(data, dict):
            return []

        posts = []
        for msg in (data.get("messages") or [])[:limit]:
            if not msg or not isinstance(msg, dict):
                continue
            entities = msg.get("entities") or {}
            sentiment = entities.get("sentiment") or {}
            posts.append({
                "text": (msg.get("body") or "")[:280],
                "author": (msg.get("user") or {}).get("username"),
                "created_at": msg.get("created_at"),
                "source": "stocktwits",
                "sentiment": sentiment.get("basic") if isinstance(sentiment, dict) else None,
                "likes": (msg.get("likes") or {}).get("total"),
            })
        return posts

import httpx

from data.errors import ProviderUnavailable


class SerperProvider:
    """Google News results through serper.dev. Used as the secondary news source."""

    NEWS_URL = "https://google.serper.dev/news"

    def __init__(self, api_key: str):
        self.api_key = api_key
        self.headers = {
            "X-API-KEY": api_key,
            "Content-Type": "application/json",
        }
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers=self.headers, timeout=15.0)
        return self._client

    async def search(self, query: str, limit: int = 10) -> list[dict]:
        try:
            client = await self._get_client()
            resp = await client.post(self.NEWS_URL, json={"q": query, "num": limit})
        except httpx.HTTPError as e:
            raise ProviderUnavailable("serper", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("serper", f"HTTP {resp.status_code}", resp.status_code)

        news = (resp.json() or {}).get("news") or []
        return [
            {
                "title": n.get("title") or "",
                "snippet": n.get("snippet") or "",
                "source": n.get("source") or "Google News",
                "url": n.get("link") or "",
                "published_at": n.get("date") or "",
            }
            for n in news[:limit]
            if isinstance(n, dict) and n.get("title")
        ]

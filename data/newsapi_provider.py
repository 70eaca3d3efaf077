import httpx

from data.errors import ProviderUnavailable


class NewsAPIProvider:
    """Keyword news search via NewsAPI's /everything endpoint."""

    BASE_URL = "https://newsapi.org/v2/everything"

    def __init__(self, api_key: str, language: str = None):
        self.api_key = api_key
        self.language = language
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=15.0)
        return self._client

    async def search(self, query: str, limit: int = 10) -> list[dict]:
        params = {
            "q": query,
            "sortBy": "publishedAt",
            "pageSize": limit,
            "apiKey": self.api_key,
        }
        if self.language:
            params["language"] = self.language
        try:
            client = await self._get_client()
            resp = await client.get(self.BASE_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("newsapi", str(e) or type(e).__name__) from e

        data = resp.json() if resp.content else {}
        if resp.status_code != 200 or data.get("status") == "error":
            detail = data.get("message") or f"HTTP {resp.status_code}"
            raise ProviderUnavailable("newsapi", detail, resp.status_code)

        return [
            {
                "title": a.get("title") or "",
                "snippet": a.get("description") or "",
                "source": (a.get("source") or {}).get("name") or "NewsAPI",
                "url": a.get("url") or "",
                "published_at": a.get("publishedAt") or "",
            }
            for a in (data.get("articles") or [])[:limit]
            if isinstance(a, dict) and a.get("title")
        ]

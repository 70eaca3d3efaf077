import httpx

from data.errors import ProviderUnavailable


class XProvider:
    """Recent posts from the X v2 recent-search endpoint (bearer token auth)."""

    SEARCH_URL = "https://api.twitter.com/2/tweets/search/recent"

    def __init__(self, bearer_token: str):
        self.headers = {"Authorization": f"Bearer {bearer_token}"}
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers=self.headers, timeout=15.0)
        return self._client

    async def search(self, query: str, limit: int = 10) -> list[dict]:
        # The endpoint only accepts max_results between 10 and 100
        params = {
            "query": f"{query} -is:retweet",
            "max_results": max(10, min(limit, 100)),
            "tweet.fields": "created_at,lang,public_metrics,author_id",
        }
        try:
            client = await self._get_client()
            resp = await client.get(self.SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("x", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("x", f"HTTP {resp.status_code}", resp.status_code)

        tweets = (resp.json() or {}).get("data") or []
        return [
            {
                "text": (t.get("text") or "")[:280],
                "author": t.get("author_id"),
                "created_at": t.get("created_at"),
                "source": "x",
                "sentiment": None,
                "likes": (t.get("public_metrics") or {}).get("like_count"),
            }
            for t in tweets[:limit]
            if isinstance(t, dict)
        ]

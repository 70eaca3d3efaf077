"""
OpenRouter completion provider.

OpenRouter speaks the OpenAI chat-completions protocol, so this is a plain
POST to /chat/completions. Used for the auxiliary commentary that rides
along in the analysis context, not for the final recommendation.
"""

import httpx

from data.errors import ProviderUnavailable


class OpenRouterProvider:

    BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(self, api_key: str, model: str = "openai/gpt-3.5-turbo"):
        self.model = model
        self.headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(headers=self.headers, timeout=30.0)
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300, temperature: float = 0.7) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        try:
            client = await self._get_client()
            resp = await client.post(f"{self.BASE_URL}/chat/completions", json=body)
        except httpx.HTTPError as e:
            raise ProviderUnavailable("openrouter", str(e) or type(e).__name__) from e
        if resp.status_code != 200:
            raise ProviderUnavailable("openrouter", f"HTTP {resp.status_code}: {resp.text[:200]}", resp.status_code)

        choices = (resp.json() or {}).get("choices") or []
        content = ((choices[0] if choices else {}).get("message") or {}).get("content") or ""
        content = content.strip()
        if not content:
            raise ProviderUnavailable("openrouter", "empty completion")
        return content

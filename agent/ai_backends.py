import asyncio

import anthropic
import google.generativeai as genai
import openai

from config import AI_TIMEOUT_SECONDS


class OpenAIBackend:
    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = openai.OpenAI(api_key=api_key, timeout=AI_TIMEOUT_SECONDS)
        self.model = model

    def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        return (response.choices[0].message.content or "").strip()

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300, temperature: float = 0.7) -> str:
        return await asyncio.wait_for(
            asyncio.to_thread(self._complete, system_prompt, user_prompt, max_tokens, temperature),
            timeout=AI_TIMEOUT_SECONDS,
        )


class AnthropicBackend:
    name = "anthropic"

    def __init__(self, api_key: str, model: str = "claude-sonnet-4-5-20250929"):
        self.client = anthropic.Anthropic(api_key=api_key, timeout=AI_TIMEOUT_SECONDS)
        self.model = model

    def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        response = self.client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        parts = [b.text for b in response.content if getattr(b, "type", "") == "text"]
        return "".join(parts).strip()

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300, temperature: float = 0.7) -> str:
        return await asyncio.wait_for(
            asyncio.to_thread(self._complete, system_prompt, user_prompt, max_tokens, temperature),
            timeout=AI_TIMEOUT_SECONDS,
        )


class GeminiBackend:
    name = "gemini"

    def __init__(self, api_key: str, model: str = "gemini-2.5-flash"):
        genai.configure(api_key=api_key)
        self.model = model

    def _complete(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        model = genai.GenerativeModel(self.model, system_instruction=system_prompt)
        response = model.generate_content(
            user_prompt,
            generation_config=genai.types.GenerationConfig(
                temperature=temperature,
                max_output_tokens=max_tokens,
            ),
        )
        # .text raises when the candidate was blocked or carries no parts
        if not response.candidates or not response.candidates[0].content.parts:
            return ""
        return response.text.strip()

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 300, temperature: float = 0.7) -> str:
        return await asyncio.wait_for(
            asyncio.to_thread(self._complete, system_prompt, user_prompt, max_tokens, temperature),
            timeout=AI_TIMEOUT_SECONDS,
        )


def build_backends(openai_key: str = None, anthropic_key: str = None,
                   openai_model: str = None, anthropic_model: str = None,
                   gemini_key: str = None, gemini_model: str = None) -> list:
    """Backends in preference order, one per configured key."""
    backends = []
    if openai_key:
        backends.append(OpenAIBackend(openai_key, openai_model or "gpt-4o-mini"))
    if anthropic_key:
        backends.append(AnthropicBackend(anthropic_key, anthropic_model or "claude-sonnet-4-5-20250929"))
    if gemini_key:
        backends.append(GeminiBackend(gemini_key, gemini_model or "gemini-2.5-flash"))
    return backends

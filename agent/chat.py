from agent.prompts import CHAT_FALLBACK_REPLY, CHAT_SYSTEM_PROMPT


class ChatAssistant:
    """Free-form Q&A. Tries each configured backend once, then gives the fixed fallback reply."""

    def __init__(self, backends: list, max_tokens: int = 300, temperature: float = 0.7):
        self.backends = list(backends)
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def reply(self, message: str) -> str:
        for backend in self.backends:
            name = getattr(backend, "name", type(backend).__name__)
            try:
                text = await backend.complete(CHAT_SYSTEM_PROMPT, message, self.max_tokens, self.temperature)
            except Exception as e:
                print(f"[CHAT] {name} failed: {type(e).__name__}: {e}")
                continue
            if text and text.strip():
                return text.strip()
            print(f"[CHAT] {name} returned an empty reply")
        return CHAT_FALLBACK_REPLY

"""
Recommendation Engine.

An ordered list of strategies, each exposing
    async produce(context) -> Recommendation | None
The engine walks the list and keeps the first recommendation with
non-blank text. A strategy that raises or returns nothing hands over to
the next one. The AI strategies come first when a backend is configured,
the momentum heuristic is always last, and a static message tagged
"heuristic" covers the case where everything fails.
"""
import json
import re

from agent.prompts import RECOMMENDATION_SYSTEM_PROMPT, build_recommendation_prompt
from config import HEURISTIC_BAND_PCT
from core.signal_engine import percent_change
from data.errors import InsufficientData
from data.schemas import AnalysisContext, Candle, Recommendation, SourceResult

CLOSES_WINDOW = 30
MAX_HEADLINES = 5
MAX_POSTS = 5

INSUFFICIENT_DATA_MESSAGE = "Not enough price data to generate a recommendation."
STATIC_FALLBACK_MESSAGE = "No recommendation could be generated from the available data."

ACTIONS = ("Buy", "Sell", "Hold")

ACTION_SUMMARIES = {
    "Buy": "The combined price, news and social picture leans positive. Recommendation: Buy.",
    "Sell": "The combined price, news and social picture leans negative. Recommendation: Sell.",
    "Hold": "The combined price, news and social picture is mixed. Recommendation: Hold.",
}


def _has_text(rec: Recommendation | None) -> bool:
    return rec is not None and bool(rec.text and rec.text.strip())


def _normalize_action(raw) -> str | None:
    if not isinstance(raw, str):
        return None
    word = raw.strip().lower()
    if word.startswith("buy"):
        return "Buy"
    if word.startswith("sell"):
        return "Sell"
    if word in ("hold", "wait", "hold/wait"):
        return "Hold"
    return None


def _infer_action(text: str) -> str | None:
    lowered = text.lower()
    hits = [a for a in ACTIONS if re.search(rf"\b{a.lower()}\b", lowered)]
    if len(hits) == 1:
        return hits[0]
    if "wait" in lowered and not hits:
        return "Hold"
    return None


def parse_ai_response(text: str) -> tuple[str, str | None]:
    """
    Pull (rationale, action) out of a model reply. Replies that are not the
    requested JSON are used as-is with the action guessed from keywords.
    """
    cleaned = re.sub(r"```json\s*", "", text)
    cleaned = re.sub(r"```\s*", "", cleaned).strip()
    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            rationale = str(data.get("rationale") or "").strip()
            action = _normalize_action(data.get("action"))
            if rationale:
                text_out = f"{rationale} Recommendation: {action}." if action else rationale
                return text_out, action
            if action:
                return ACTION_SUMMARIES[action], action
            # JSON with neither field is an empty answer
            return "", None
    return cleaned, _infer_action(cleaned)


def _headlines(news: SourceResult) -> list[str]:
    if not news.ok or not isinstance(news.payload, list):
        return []
    return [a.get("title", "") for a in news.payload[:MAX_HEADLINES] if a.get("title")]


def _posts(social: SourceResult) -> list[str]:
    if not social.ok or not isinstance(social.payload, list):
        return []
    out = []
    for p in social.payload[:MAX_POSTS]:
        text = (p.get("text") or "").replace("\n", " ").strip()
        if text:
            tag = f" [{p['sentiment']}]" if p.get("sentiment") else ""
            out.append(f"{text[:200]}{tag}")
    return out


class AIStrategy:
    """One attempt against one completion backend. Never retried."""

    basis = "ai"

    def __init__(self, backend, max_tokens: int = 300, temperature: float = 0.7):
        self.backend = backend
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def name(self) -> str:
        return f"ai:{getattr(self.backend, 'name', 'backend')}"

    async def produce(self, context: AnalysisContext) -> Recommendation | None:
        commentary = context.auxiliary_analysis.payload if context.auxiliary_analysis.ok else None
        prompt = build_recommendation_prompt(
            context.symbol,
            context.closes()[-CLOSES_WINDOW:],
            _headlines(context.news),
            _posts(context.social),
            commentary,
        )
        raw = await self.backend.complete(
            RECOMMENDATION_SYSTEM_PROMPT, prompt, self.max_tokens, self.temperature,
        )
        if not raw or not raw.strip():
            return None
        text, action = parse_ai_response(raw)
        if not text:
            return None
        return Recommendation(text=text, basis="ai", action=action)


class HeuristicStrategy:
    """First-to-last close momentum over the recent window."""

    basis = "heuristic"
    name = "heuristic"

    def __init__(self, band_pct: float = HEURISTIC_BAND_PCT, window: int = CLOSES_WINDOW):
        self.band_pct = band_pct
        self.window = window

    def recommend(self, closes: list[float]) -> Recommendation:
        recent = closes[-self.window:]
        try:
            pct = percent_change(recent)
        except InsufficientData:
            return Recommendation(text=INSUFFICIENT_DATA_MESSAGE, basis="heuristic", action=None)

        if pct > self.band_pct:
            text = (f"Price is up {pct:.2f}% over the last {len(recent)} samples. "
                    f"The trend is pointing up, which suggests a buy signal.")
            action = "Buy"
        elif pct < -self.band_pct:
            text = (f"Price is down {abs(pct):.2f}% over the last {len(recent)} samples. "
                    f"The price is falling, so a sell signal is reasonable right now.")
            action = "Sell"
        else:
            text = (f"Price moved {pct:+.2f}% over the last {len(recent)} samples. "
                    f"The stock is moving sideways; it may be wise to hold and wait.")
            action = "Hold"
        return Recommendation(text=text, basis="heuristic", action=action)

    async def produce(self, context: AnalysisContext) -> Recommendation | None:
        return self.recommend(context.closes())


class RecommendationEngine:
    def __init__(self, strategies: list):
        self.strategies = list(strategies)

    @property
    def has_ai(self) -> bool:
        return any(getattr(s, "basis", "") == "ai" for s in self.strategies)

    async def recommend(self, context: AnalysisContext) -> Recommendation:
        for strategy in self.strategies:
            name = getattr(strategy, "name", type(strategy).__name__)
            try:
                rec = await strategy.produce(context)
            except Exception as e:
                print(f"[AGENT] Strategy {name} failed for {context.symbol}: {type(e).__name__}: {e}")
                continue
            if _has_text(rec):
                if rec.basis != getattr(strategy, "basis", rec.basis):
                    rec = rec.model_copy(update={"basis": strategy.basis})
                print(f"[AGENT] {context.symbol} recommendation from {name} (action={rec.action})")
                return rec
            print(f"[AGENT] Strategy {name} returned empty text for {context.symbol}")
        return Recommendation(text=STATIC_FALLBACK_MESSAGE, basis="heuristic", action=None)

    async def recommend_from_closes(self, symbol: str, closes: list[float]) -> Recommendation:
        """Recommendation from a bare close series, with no news or social input."""
        candles = [Candle(t=i, o=c, h=c, l=c, c=c) for i, c in enumerate(closes)]
        context = AnalysisContext(
            symbol=symbol.upper(),
            price=SourceResult.success(candles, source="client"),
            news=SourceResult.failure("not requested"),
            social=SourceResult.failure("not requested"),
            auxiliary_analysis=SourceResult.failure("not requested"),
        )
        return await self.recommend(context)


def build_engine(backends: list) -> RecommendationEngine:
    strategies = [AIStrategy(b) for b in backends]
    strategies.append(HeuristicStrategy())
    return RecommendationEngine(strategies)

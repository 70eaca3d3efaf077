import asyncio
import json
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from unittest.mock import AsyncMock
from agent.recommendation import (
    ACTION_SUMMARIES,
    INSUFFICIENT_DATA_MESSAGE,
    STATIC_FALLBACK_MESSAGE,
    AIStrategy,
    HeuristicStrategy,
    RecommendationEngine,
    build_engine,
    parse_ai_response,
)
from data.schemas import AnalysisContext, Candle, Recommendation, SourceResult


def _context(closes, news=None, social=None, aux=None):
    candles = [Candle(t=i * 60000, o=c, h=c, l=c, c=c) for i, c in enumerate(closes)]
    return AnalysisContext(
        symbol="AAPL",
        price=SourceResult.success(candles, source="yahoo"),
        news=news or SourceResult.failure("newsapi not configured"),
        social=social or SourceResult.failure("x not configured"),
        auxiliary_analysis=aux or SourceResult.failure("openrouter not configured"),
    )


class FakeBackend:
    name = "fake"

    def __init__(self, reply=None, exc=None):
        self.reply = reply
        self.exc = exc
        self.calls = []

    async def complete(self, system_prompt, user_prompt, max_tokens=300, temperature=0.7):
        self.calls.append(user_prompt)
        if self.exc:
            raise self.exc
        return self.reply


# ── Heuristic ──

def test_heuristic_buy():
    rec = HeuristicStrategy().recommend([50, 52])
    assert rec.action == "Buy"
    assert rec.basis == "heuristic"
    assert "4.00%" in rec.text


def test_heuristic_sell():
    rec = HeuristicStrategy().recommend([50, 48])
    assert rec.action == "Sell"
    assert "4.00%" in rec.text


def test_heuristic_hold():
    rec = HeuristicStrategy().recommend([50, 50])
    assert rec.action == "Hold"
    assert "sideways" in rec.text


def test_heuristic_band_edges_are_hold():
    assert HeuristicStrategy().recommend([100, 101.5]).action == "Hold"
    assert HeuristicStrategy().recommend([100, 98.5]).action == "Hold"
    assert HeuristicStrategy().recommend([100, 102.5]).action == "Buy"


@pytest.mark.parametrize("closes", [[], [50]])
def test_heuristic_insufficient_data(closes):
    rec = HeuristicStrategy().recommend(closes)
    assert rec.text == INSUFFICIENT_DATA_MESSAGE
    assert rec.action is None


def test_heuristic_uses_recent_window():
    closes = [10.0] + [100.0] * 29 + [103.0]
    rec = HeuristicStrategy(window=30).recommend(closes)
    assert rec.action == "Buy"


# ── Engine ──

@pytest.mark.asyncio
async def test_engine_without_ai_uses_heuristic():
    engine = build_engine([])
    assert engine.has_ai is False
    rec = await engine.recommend(_context([50, 52]))
    assert rec.basis == "heuristic"
    assert rec.action == "Buy"


@pytest.mark.asyncio
async def test_engine_ai_success():
    backend = FakeBackend(reply=json.dumps({"rationale": "Strong uptrend on good news.", "action": "Buy"}))
    engine = build_engine([backend])
    rec = await engine.recommend(_context([50, 52]))
    assert rec.basis == "ai"
    assert rec.action == "Buy"
    assert "Strong uptrend" in rec.text


@pytest.mark.asyncio
async def test_engine_ai_error_falls_back_once():
    backend = FakeBackend(exc=RuntimeError("insufficient_quota"))
    engine = build_engine([backend])
    rec = await engine.recommend(_context([50, 48]))
    assert rec.basis == "heuristic"
    assert rec.action == "Sell"
    assert rec.text.strip()
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_engine_ai_timeout_falls_back():
    backend = FakeBackend(exc=asyncio.TimeoutError())
    rec = await build_engine([backend]).recommend(_context([50, 50]))
    assert rec.basis == "heuristic"
    assert rec.action == "Hold"


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   \n ", None])
async def test_engine_ai_empty_falls_back(reply):
    rec = await build_engine([FakeBackend(reply=reply)]).recommend(_context([50, 52]))
    assert rec.basis == "heuristic"
    assert rec.text.strip()


@pytest.mark.asyncio
async def test_engine_second_backend_used_before_heuristic():
    first = FakeBackend(exc=RuntimeError("401"))
    second = FakeBackend(reply="Hold for now, the trend is unclear.")
    rec = await build_engine([first, second]).recommend(_context([50, 52]))
    assert rec.basis == "ai"
    assert rec.action == "Hold"
    assert len(first.calls) == 1
    assert len(second.calls) == 1


@pytest.mark.asyncio
async def test_engine_static_fallback_when_all_fail():
    class Broken:
        basis = "heuristic"
        name = "broken"
        produce = AsyncMock(side_effect=ValueError("bad"))

    class Blank:
        basis = "heuristic"
        name = "blank"
        produce = AsyncMock(return_value=Recommendation(text="  ", basis="heuristic"))

    engine = RecommendationEngine([Broken(), Blank()])
    rec = await engine.recommend(_context([50, 52]))
    assert rec.text == STATIC_FALLBACK_MESSAGE
    assert rec.basis == "heuristic"


@pytest.mark.asyncio
async def test_engine_insufficient_data_without_ai():
    rec = await build_engine([]).recommend(_context([50]))
    assert rec.text == INSUFFICIENT_DATA_MESSAGE
    assert rec.basis == "heuristic"


@pytest.mark.asyncio
async def test_ai_prompt_includes_context_sources():
    backend = FakeBackend(reply='{"rationale": "ok", "action": "Hold"}')
    ctx = _context(
        [float(i) for i in range(1, 41)],
        news=SourceResult.success([{"title": "Apple unveils new chip"}], source="newsapi"),
        social=SourceResult.success([{"text": "$AAPL to the moon", "sentiment": "Bullish"}], source="stocktwits"),
        aux=SourceResult.success("Looks overbought short term.", source="openrouter"),
    )
    await AIStrategy(backend).produce(ctx)
    prompt = backend.calls[0]
    assert "Apple unveils new chip" in prompt
    assert "$AAPL to the moon [Bullish]" in prompt
    assert "Looks overbought" in prompt
    # Only the last 30 closes go into the prompt
    assert "11, 12" in prompt
    assert "1, 2, 3" not in prompt


@pytest.mark.asyncio
async def test_ai_prompt_marks_missing_sources():
    backend = FakeBackend(reply="Buy.")
    await AIStrategy(backend).produce(_context([50, 52]))
    assert "headlines: unavailable" in backend.calls[0]
    assert "posts: unavailable" in backend.calls[0]


@pytest.mark.asyncio
async def test_recommend_from_closes():
    rec = await build_engine([]).recommend_from_closes("aapl", [50, 48])
    assert rec.action == "Sell"
    assert rec.basis == "heuristic"


# ── Parsing ──

def test_parse_json_with_fences():
    text, action = parse_ai_response('```json\n{"rationale": "Sideways chop.", "action": "hold"}\n```')
    assert action == "Hold"
    assert text.startswith("Sideways chop.")


def test_parse_wait_maps_to_hold():
    _, action = parse_ai_response('{"rationale": "Unclear.", "action": "Wait"}')
    assert action == "Hold"


def test_parse_plain_text_infers_action():
    text, action = parse_ai_response("The trend is up, I would buy here.")
    assert action == "Buy"
    assert text == "The trend is up, I would buy here."


def test_parse_plain_text_ambiguous_action():
    _, action = parse_ai_response("Either buy or sell depending on your horizon.")
    assert action is None


def test_parse_json_without_rationale_uses_action_summary():
    text, action = parse_ai_response('{"rationale": "", "action": "Sell"}')
    assert action == "Sell"
    assert text == ACTION_SUMMARIES["Sell"]
    assert "{" not in text


def test_parse_json_without_rationale_or_action_is_empty():
    assert parse_ai_response('{"rationale": "  ", "action": "maybe"}') == ("", None)


@pytest.mark.asyncio
async def test_engine_ai_action_only_reply():
    backend = FakeBackend(reply='```json\n{"rationale": "", "action": "Buy"}\n```')
    rec = await build_engine([backend]).recommend(_context([50, 48]))
    assert rec.basis == "ai"
    assert rec.action == "Buy"
    assert rec.text == ACTION_SUMMARIES["Buy"]


@pytest.mark.asyncio
async def test_engine_ai_empty_json_falls_back():
    backend = FakeBackend(reply='{"rationale": null}')
    rec = await build_engine([backend]).recommend(_context([50, 48]))
    assert rec.basis == "heuristic"
    assert rec.action == "Sell"

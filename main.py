from fastapi import FastAPI, Request, Header, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

import json as _json
import math
import uuid as _uuid
from datetime import datetime as _dt, timezone as _tz

from config import API_RATE_LIMIT, SIGNAL_BUY_THRESHOLD, SIGNAL_SELL_THRESHOLD, TOP_MOVERS_LIMIT
from core.generation import LatestOnly
from core.signal_engine import compute_signals
from data.errors import NOT_FOUND, SymbolNotFound
from data.schemas import Candle

app = FastAPI(title="Market Analysis API")

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def _now_iso() -> str:
    return _dt.now(_tz.utc).isoformat()


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    print(f"[VALIDATION_ERROR] path={request.url.path} method={request.method}")
    print(f"[VALIDATION_ERROR] errors={exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "detail": _json.loads(_json.dumps(exc.errors(), default=str)),
            "message": "Request validation failed. Check field names and types.",
            "request_id": str(_uuid.uuid4()),
            "as_of": _now_iso(),
        },
    )


@app.exception_handler(_json.JSONDecodeError)
async def json_decode_exception_handler(request: Request, exc: _json.JSONDecodeError):
    print(f"[JSON_DECODE_ERROR] path={request.url.path} method={request.method} error={exc}")
    return JSONResponse(
        status_code=400,
        content={
            "detail": f"Malformed JSON: {str(exc)}",
            "message": "Could not parse request body as JSON.",
            "request_id": str(_uuid.uuid4()),
            "as_of": _now_iso(),
        },
    )


@app.exception_handler(SymbolNotFound)
async def symbol_not_found_handler(request: Request, exc: SymbolNotFound):
    print(f"[API] path={request.url.path} symbol not found: {exc.symbol}")
    return JSONResponse(
        status_code=404,
        content={
            "detail": f"No data found for {exc.symbol}",
            "error": NOT_FOUND,
            "request_id": str(_uuid.uuid4()),
            "as_of": _now_iso(),
        },
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

data_service = None
analyst = None
ranker = None
chat_assistant = None
search_guard = LatestOnly()
_init_done = False


def _do_init():
    global data_service, analyst, ranker, chat_assistant, _init_done
    try:
        from config import (
            OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY,
            OPENAI_MODEL, ANTHROPIC_MODEL, GEMINI_MODEL,
        )
        from agent.ai_backends import build_backends
        from agent.chat import ChatAssistant
        from agent.market_analyst import MarketAnalyst
        from agent.recommendation import build_engine
        from data.market_data_service import MarketDataService
        from data.top_movers import TopMoversRanker

        backends = build_backends(
            OPENAI_API_KEY, ANTHROPIC_API_KEY, OPENAI_MODEL, ANTHROPIC_MODEL,
            gemini_key=GEMINI_API_KEY, gemini_model=GEMINI_MODEL,
        )
        data_service = MarketDataService()
        analyst = MarketAnalyst(data_service, build_engine(backends))
        ranker = TopMoversRanker(data_service.yahoo)
        chat_assistant = ChatAssistant(backends)
        if backends:
            print(f"[INIT] AI backends: {[b.name for b in backends]}")
        else:
            print("[INIT] No AI backend configured, recommendations use the momentum heuristic")
        _init_done = True
        print("[INIT] All services initialized successfully")
    except Exception as e:
        print(f"[INIT] ERROR during initialization: {e}")
        import traceback
        traceback.print_exc()
        _init_done = True


@app.on_event("startup")
async def startup_event():
    _do_init()


def _require(service, name: str):
    if service is None:
        raise HTTPException(status_code=503, detail=f"{name} is not available. Please try again in a moment.")
    return service


def _stamp(payload: dict, req_id: str = None) -> dict:
    payload["request_id"] = req_id or str(_uuid.uuid4())
    payload["as_of"] = _now_iso()
    return payload


# ============================================================
# API Routes
# ============================================================


@app.get("/")
async def root():
    """Health check. Visit this URL to confirm the backend is running."""
    return {"status": "running", "message": "Market Analysis API is live"}


@app.get("/ping")
async def ping():
    return {"status": "ok"}


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "init_complete": _init_done,
        "analyst_loaded": analyst is not None,
        "data_service_loaded": data_service is not None,
        "ai_enabled": bool(analyst and analyst.engine.has_ai),
        "sources": data_service.configured_sources() if data_service else {},
    }


@app.get("/api/candles")
async def get_candles(symbol: Optional[str] = None, range_: str = Query("1d", alias="range"), interval: str = "1m"):
    if not symbol or not symbol.strip():
        raise HTTPException(status_code=400, detail="Missing symbol")
    svc = _require(data_service, "Market data service")
    symbol = symbol.strip().upper()

    res = await svc.get_price_history(symbol, range_, interval)
    if res.error == NOT_FOUND:
        raise SymbolNotFound(symbol)
    candles = res.payload if res.ok else []
    signals = compute_signals(candles)
    return _stamp({
        "symbol": symbol,
        "ok": res.ok,
        "error": res.error,
        "source": res.source,
        "candles": [c.model_dump() for c in candles],
        "signals": signals.model_dump(),
    })


@app.get("/api/alphavantage")
async def get_daily_candles(symbol: Optional[str] = None, full: bool = False):
    """Alpha Vantage daily candles, oldest first."""
    if not symbol or not symbol.strip():
        raise HTTPException(status_code=400, detail="Missing symbol")
    svc = _require(data_service, "Market data service")
    symbol = symbol.strip().upper()

    res = await svc.get_daily_history(symbol, full)
    if res.error == NOT_FOUND:
        raise SymbolNotFound(symbol)
    candles = res.payload if res.ok else []
    return _stamp({
        "symbol": symbol,
        "ok": res.ok,
        "error": res.error,
        "candles": [c.model_dump() for c in candles],
    })


class SignalsRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    candles: List[Candle] = Field(default_factory=list)
    buy_threshold: Optional[float] = None
    sell_threshold: Optional[float] = None


@app.post("/api/signals")
async def get_signals(body: SignalsRequest):
    signals = compute_signals(
        body.candles,
        buy_threshold=body.buy_threshold if body.buy_threshold is not None else SIGNAL_BUY_THRESHOLD,
        sell_threshold=body.sell_threshold if body.sell_threshold is not None else SIGNAL_SELL_THRESHOLD,
    )
    return _stamp(signals.model_dump())


@app.get("/api/search")
async def search_symbols(q: Optional[str] = None, x_session_id: Optional[str] = Header(None)):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Missing search query")
    svc = _require(data_service, "Market data service")
    query = q.strip()

    if x_session_id:
        res, stale = await search_guard.run(f"search:{x_session_id}", svc.search_symbols(query))
        if stale:
            print(f"[SEARCH] session={x_session_id} query={query!r} superseded, discarding")
            return _stamp({"results": [], "stale": True, "error": None})
    else:
        res = await svc.search_symbols(query)

    results = [m.model_dump() for m in res.payload] if res.ok else []
    return _stamp({"results": results, "stale": False, "error": res.error})


@app.get("/api/analyze")
@limiter.limit(API_RATE_LIMIT)
async def analyze(request: Request, symbol: Optional[str] = None, range_: str = Query("5d", alias="range"), interval: str = "15m"):
    if not symbol or not symbol.strip():
        raise HTTPException(status_code=400, detail="Missing symbol")
    svc = _require(analyst, "Analyst")
    req_id = str(_uuid.uuid4())
    print(f"[REQ] id={req_id} analyze symbol={symbol} range={range_} interval={interval}")

    report = await svc.analyze(symbol.strip(), range_, interval)
    print(f"[RESP] id={req_id} basis={report.recommendation.basis}")
    return _stamp(report.model_dump(), req_id)


class RecommendationRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    ticker: Optional[str] = None
    closes: Optional[List[Optional[float]]] = None
    data: Optional[List[dict]] = None


def _closes_from_request(body: RecommendationRequest) -> list[float] | None:
    if body.closes is not None:
        raw = body.closes
    elif body.data is not None:
        raw = [row.get("c") for row in body.data if isinstance(row, dict)]
    else:
        return None
    return [
        float(v) for v in raw
        if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
    ]


@app.post("/api/recommendation")
@limiter.limit(API_RATE_LIMIT)
async def recommendation(request: Request, body: RecommendationRequest):
    closes = _closes_from_request(body)
    if not body.ticker or closes is None:
        raise HTTPException(status_code=400, detail="Missing ticker or data")
    svc = _require(analyst, "Analyst")

    rec = await svc.engine.recommend_from_closes(body.ticker, closes)
    return _stamp({
        "recommendation": rec.text,
        "basis": rec.basis,
        "action": rec.action,
    })


@app.get("/api/topstocks")
async def top_stocks(range_: str = Query("1d", alias="range"), interval: str = "1m", limit: int = TOP_MOVERS_LIMIT):
    if limit < 1 or limit > 50:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 50")
    svc = _require(ranker, "Top movers ranker")
    top = await svc.rank(range_=range_, interval=interval, limit=limit)
    return _stamp({"top": [e.model_dump() for e in top]})


@app.get("/api/news")
async def news(query: Optional[str] = None):
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Missing search query")
    svc = _require(data_service, "Market data service")
    res = await svc.search_news(query.strip())
    return _stamp(res.model_dump())


@app.get("/api/social")
async def social(query: Optional[str] = None):
    if not query or not query.strip():
        raise HTTPException(status_code=400, detail="Missing search query")
    svc = _require(data_service, "Market data service")
    res = await svc.search_social(query.strip())
    return _stamp(res.model_dump())


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")
    message: Optional[str] = None


@app.post("/api/chat")
@limiter.limit(API_RATE_LIMIT)
async def chat(request: Request, body: ChatRequest):
    if not body.message or not body.message.strip():
        raise HTTPException(status_code=400, detail="Missing or invalid message")
    svc = _require(chat_assistant, "Chat assistant")
    print(f"[API] chat message_len={len(body.message)}")
    reply = await svc.reply(body.message.strip())
    return _stamp({"reply": reply})


if __name__ == "__main__":
    import os
    import uvicorn

    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)

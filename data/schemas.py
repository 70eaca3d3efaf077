from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Candle(BaseModel):
    """One OHLC(V) sample. t is epoch milliseconds."""
    model_config = ConfigDict(frozen=True)

    t: int
    o: float
    h: float
    l: float
    c: float
    v: Optional[float] = None


class Signal(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: int
    y: float


class SignalSet(BaseModel):
    buys: list[Signal] = Field(default_factory=list)
    sells: list[Signal] = Field(default_factory=list)


class SymbolMatch(BaseModel):
    symbol: str
    name: str


class SourceResult(BaseModel):
    """
    Outcome of a single source fetch. A failed fetch is represented here,
    never raised: ok=False with the reason in error.
    """
    ok: bool
    payload: Any = None
    error: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def success(cls, payload: Any, source: str = None) -> "SourceResult":
        return cls(ok=True, payload=payload, source=source)

    @classmethod
    def failure(cls, error: str, source: str = None) -> "SourceResult":
        return cls(ok=False, payload=None, error=error, source=source)


class AnalysisContext(BaseModel):
    symbol: str
    price: SourceResult
    news: SourceResult
    social: SourceResult
    auxiliary_analysis: SourceResult

    def closes(self) -> list[float]:
        if not self.price.ok or not self.price.payload:
            return []
        return [c.c for c in self.price.payload]


class Recommendation(BaseModel):
    text: str
    basis: Literal["ai", "heuristic"]
    action: Optional[Literal["Buy", "Sell", "Hold"]] = None


class MoverEntry(BaseModel):
    symbol: str
    change_pct: float


class AnalysisReport(BaseModel):
    symbol: str
    context: AnalysisContext
    signals: SignalSet
    recommendation: Recommendation

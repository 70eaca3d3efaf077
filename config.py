import os


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[CONFIG] Invalid value for {name}={raw!r}, using {default}")
        return default


def _list_env(name: str, default: list) -> list:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
NEWSAPI_API_KEY = os.getenv("NEWSAPI_API_KEY")
SERPER_API_KEY = os.getenv("SERPER_API_KEY")
ALPHA_VANTAGE_API_KEY = os.getenv("ALPHA_VANTAGE_API_KEY")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
X_API_KEY = os.getenv("X_API_KEY") or os.getenv("x_api_key")

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5-20250929")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
OPENROUTER_MODEL = os.getenv("OPENROUTER_MODEL", "openai/gpt-3.5-turbo")

SIGNAL_BUY_THRESHOLD = _float_env("SIGNAL_BUY_THRESHOLD", 0.005)
SIGNAL_SELL_THRESHOLD = _float_env("SIGNAL_SELL_THRESHOLD", -0.005)

HEURISTIC_BAND_PCT = _float_env("HEURISTIC_BAND_PCT", 2.0)

SOURCE_TIMEOUT_SECONDS = _float_env("SOURCE_TIMEOUT_SECONDS", 10.0)
AI_TIMEOUT_SECONDS = _float_env("AI_TIMEOUT_SECONDS", 30.0)

TOP_MOVERS_UNIVERSE = _list_env("TOP_MOVERS_UNIVERSE", [
    "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "META", "TSLA", "NFLX",
    "BABA", "ADBE", "AMD", "INTC", "JPM", "BAC", "V", "MA", "DIS",
    "NKE", "KO", "PEP", "CSCO", "CRM", "ORCL", "UBER", "SHOP", "SQ",
])
TOP_MOVERS_LIMIT = int(_float_env("TOP_MOVERS_LIMIT", 10))

API_RATE_LIMIT = os.getenv("API_RATE_LIMIT", "30/minute")

"""
Error taxonomy for market data sources.

SymbolNotFound is the only one allowed to reach a caller as a request
failure. ProviderUnavailable is raised inside providers and absorbed at
the fetcher boundary (data/sources.py). InsufficientData is reported as a
message, never as a number.
"""


class MarketDataError(Exception):
    """Base class for market data failures."""


class SymbolNotFound(MarketDataError):
    def __init__(self, symbol: str, detail: str = "No data found"):
        self.symbol = symbol
        self.detail = detail
        super().__init__(f"{symbol}: {detail}")


class ProviderUnavailable(MarketDataError):
    def __init__(self, provider: str, detail: str, status: int | None = None):
        self.provider = provider
        self.detail = detail
        self.status = status
        super().__init__(f"{provider} unavailable: {detail}")


class InsufficientData(MarketDataError):
    def __init__(self, needed: int, got: int):
        self.needed = needed
        self.got = got
        super().__init__(f"Need at least {needed} data points, got {got}")


NOT_FOUND = "not_found"

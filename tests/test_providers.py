import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.alphavantage_provider import AlphaVantageProvider
from data.errors import ProviderUnavailable, SymbolNotFound
from data.newsapi_provider import NewsAPIProvider
from data.openrouter_provider import OpenRouterProvider
from data.serper_provider import SerperProvider
from data.stocktwits_provider import StockTwitsProvider
from data.x_provider import XProvider
from data.yahoo_provider import YahooFinanceProvider


MOCK_CHART_JSON = {
    "chart": {
        "result": [{
            "meta": {"symbol": "AAPL"},
            "timestamp": [1700000000, 1700000060, 1700000120],
            "indicators": {"quote": [{
                "open": [189.1, 189.4, None],
                "high": [189.6, 189.9, 190.2],
                "low": [188.9, 189.2, 189.7],
                "close": [189.4, 189.8, 190.0],
                "volume": [12000, None, 9000],
            }]},
        }],
        "error": None,
    }
}

MOCK_NOT_FOUND_JSON = {
    "chart": {
        "result": None,
        "error": {"code": "Not Found", "description": "No data found, symbol may be delisted"},
    }
}


class MockResponse:
    def __init__(self, json_data, status_code=200):
        self._json = json_data
        self.status_code = status_code
        self.content = b"{}" if json_data is not None else b""
        self.text = str(json_data)

    def json(self):
        return self._json


class MockClient:
    def __init__(self, responses=None):
        self.responses = responses or {}
        self.requests = []
        self.is_closed = False

    def _match(self, url):
        for pattern, resp in self.responses.items():
            if pattern in url:
                return resp
        return MockResponse({}, 404)

    async def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self._match(url)

    async def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self._match(url)


# ── Yahoo ──

@pytest.mark.asyncio
async def test_yahoo_chart_ok():
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/chart/AAPL": MockResponse(MOCK_CHART_JSON)})
    result = await provider.get_chart("aapl", "1d", "1m")
    assert result["meta"]["symbol"] == "AAPL"
    url, kwargs = provider._client.requests[0]
    assert url.endswith("/AAPL")
    assert kwargs["params"]["range"] == "1d"
    assert kwargs["params"]["interval"] == "1m"


@pytest.mark.asyncio
async def test_yahoo_chart_not_found():
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/chart/": MockResponse(MOCK_NOT_FOUND_JSON, 404)})
    with pytest.raises(SymbolNotFound) as exc:
        await provider.get_chart("ZZZZZZ")
    assert exc.value.symbol == "ZZZZZZ"
    assert "delisted" in exc.value.detail


@pytest.mark.asyncio
async def test_yahoo_chart_empty_result_is_not_found():
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/chart/": MockResponse({"chart": {"result": [], "error": None}})})
    with pytest.raises(SymbolNotFound):
        await provider.get_chart("QQQQ")


@pytest.mark.asyncio
async def test_yahoo_chart_server_error():
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/chart/": MockResponse({}, 500)})
    with pytest.raises(ProviderUnavailable) as exc:
        await provider.get_chart("AAPL")
    assert exc.value.status == 500


@pytest.mark.asyncio
@pytest.mark.parametrize("symbol,encoded", [
    ("BRK/B", "/chart/BRK%2FB"),
    ("A?range=max&x=", "/chart/A%3FRANGE%3DMAX%26X%3D"),
    ("^GSPC", "/chart/%5EGSPC"),
])
async def test_yahoo_chart_symbol_is_path_encoded(symbol, encoded):
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/chart/": MockResponse(MOCK_NOT_FOUND_JSON, 404)})
    with pytest.raises(SymbolNotFound):
        await provider.get_chart(symbol)
    url, kwargs = provider._client.requests[0]
    assert url.endswith(encoded)
    assert "?" not in url
    assert kwargs["params"]["range"] == "1d"


@pytest.mark.asyncio
async def test_yahoo_search_name_fallback():
    quotes = {"quotes": [
        {"symbol": "AAPL", "longname": "Apple Inc.", "shortname": "Apple"},
        {"symbol": "APLE", "shortname": "Apple Hospitality"},
        {"symbol": "APC.F"},
        {"longname": "no symbol, skipped"},
    ]}
    provider = YahooFinanceProvider()
    provider._client = MockClient({"/search": MockResponse(quotes)})
    matches = await provider.search_symbols("apple")
    assert [(m.symbol, m.name) for m in matches] == [
        ("AAPL", "Apple Inc."),
        ("APLE", "Apple Hospitality"),
        ("APC.F", "APC.F"),
    ]


# ── News ──

@pytest.mark.asyncio
async def test_newsapi_articles():
    body = {"status": "ok", "articles": [
        {"title": "Apple beats", "description": "Q3 results", "source": {"name": "Reuters"},
         "url": "https://example.com/a", "publishedAt": "2026-10-01T12:00:00Z"},
        {"title": None, "description": "dropped"},
    ]}
    provider = NewsAPIProvider("key")
    provider._client = MockClient({"newsapi.org": MockResponse(body)})
    articles = await provider.search("AAPL", limit=5)
    assert len(articles) == 1
    assert articles[0]["title"] == "Apple beats"
    assert articles[0]["source"] == "Reuters"
    _, kwargs = provider._client.requests[0]
    assert kwargs["params"]["pageSize"] == 5


@pytest.mark.asyncio
async def test_newsapi_error_status():
    body = {"status": "error", "code": "rateLimited", "message": "You have made too many requests"}
    provider = NewsAPIProvider("key")
    provider._client = MockClient({"newsapi.org": MockResponse(body, 429)})
    with pytest.raises(ProviderUnavailable) as exc:
        await provider.search("AAPL")
    assert "too many requests" in exc.value.detail
    assert exc.value.status == 429


@pytest.mark.asyncio
async def test_serper_news():
    body = {"news": [{"title": "Tesla rallies", "snippet": "s", "source": "CNBC", "link": "u", "date": "1 hour ago"}]}
    provider = SerperProvider("key")
    provider._client = MockClient({"serper.dev": MockResponse(body)})
    articles = await provider.search("TSLA")
    assert articles[0]["source"] == "CNBC"
    _, kwargs = provider._client.requests[0]
    assert kwargs["json"]["q"] == "TSLA"


# ── Social ──

@pytest.mark.asyncio
async def test_x_clamps_max_results():
    provider = XProvider("bearer")
    provider._client = MockClient({"tweets/search": MockResponse({"data": [{"text": "$AAPL up", "author_id": "1"}]})})
    posts = await provider.search("$AAPL", limit=3)
    assert posts[0]["source"] == "x"
    _, kwargs = provider._client.requests[0]
    assert kwargs["params"]["max_results"] == 10


@pytest.mark.asyncio
async def test_x_unauthorized():
    provider = XProvider("bad")
    provider._client = MockClient({"tweets/search": MockResponse({"title": "Unauthorized"}, 401)})
    with pytest.raises(ProviderUnavailable):
        await provider.search("$AAPL")


@pytest.mark.asyncio
async def test_stocktwits_sentiment():
    body = {"messages": [
        {"body": "Loading up", "user": {"username": "bull"}, "entities": {"sentiment": {"basic": "Bullish"}}},
        {"body": "Selling", "user": {"username": "bear"}, "entities": {"sentiment": {"basic": "Bearish"}}},
        {"body": "Watching", "user": {"username": "meh"}, "entities": {"sentiment": None}},
    ]}
    provider = StockTwitsProvider()
    provider._client = MockClient({"symbol/NVDA.json": MockResponse(body)})
    posts = await provider.get_messages("$nvda")
    assert [p["sentiment"] for p in posts] == ["Bullish", "Bearish", None]
    assert posts[0]["author"] == "bull"


# ── OpenRouter ──

@pytest.mark.asyncio
async def test_openrouter_completion():
    body = {"choices": [{"message": {"content": "  Short-term momentum is positive.  "}}]}
    provider = OpenRouterProvider("key", model="openai/gpt-3.5-turbo")
    provider._client = MockClient({"chat/completions": MockResponse(body)})
    text = await provider.complete("system", "user")
    assert text == "Short-term momentum is positive."
    _, kwargs = provider._client.requests[0]
    assert kwargs["json"]["model"] == "openai/gpt-3.5-turbo"


@pytest.mark.asyncio
async def test_openrouter_empty_completion():
    provider = OpenRouterProvider("key")
    provider._client = MockClient({"chat/completions": MockResponse({"choices": []})})
    with pytest.raises(ProviderUnavailable):
        await provider.complete("system", "user")


# ── Alpha Vantage ──

@pytest.mark.asyncio
async def test_alphavantage_daily():
    body = {
        "Meta Data": {"2. Symbol": "IBM"},
        "Time Series (Daily)": {
            "2026-10-16": {"1. open": "231.0", "2. high": "233.1", "3. low": "230.2", "4. close": "232.7", "5. volume": "3100000"},
            "2026-10-15": {"1. open": "229.5", "2. high": "231.4", "3. low": "228.9", "4. close": "230.8", "5. volume": "2900000"},
        },
    }
    provider = AlphaVantageProvider("key")
    provider._client = MockClient({"alphavantage.co": MockResponse(body)})
    candles = await provider.get_daily("ibm")
    assert [c.c for c in candles] == [230.8, 232.7]
    _, kwargs = provider._client.requests[0]
    assert kwargs["params"]["function"] == "TIME_SERIES_DAILY"
    assert kwargs["params"]["symbol"] == "IBM"
    assert kwargs["params"]["outputsize"] == "compact"


@pytest.mark.asyncio
async def test_alphavantage_unknown_symbol():
    body = {"Error Message": "Invalid API call. Please retry or visit the documentation for TIME_SERIES_DAILY."}
    provider = AlphaVantageProvider("key")
    provider._client = MockClient({"alphavantage.co": MockResponse(body)})
    with pytest.raises(SymbolNotFound):
        await provider.get_daily("ZZZZZZ")


@pytest.mark.asyncio
async def test_alphavantage_quota_note():
    body = {"Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."}
    provider = AlphaVantageProvider("key")
    provider._client = MockClient({"alphavantage.co": MockResponse(body)})
    with pytest.raises(ProviderUnavailable) as exc:
        await provider.get_daily("IBM")
    assert "rate limit" in exc.value.detail


@pytest.mark.asyncio
async def test_stocktwits_symbol_is_path_encoded():
    provider = StockTwitsProvider()
    provider._client = MockClient({"symbol/BRK%2FB.json": MockResponse({"messages": []})})
    assert await provider.get_messages("brk/b") == []
    url, _ = provider._client.requests[0]
    assert url.endswith("/streams/symbol/BRK%2FB.json")

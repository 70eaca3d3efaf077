RECOMMENDATION_SYSTEM_PROMPT = """You are a trading assistant that gives short, clear
recommendations based on price data, news and social chatter.

Rules:
- Base the call on the data provided. Do not invent prices, headlines or posts.
- Weigh the price trend first, then news catalysts, then social sentiment.
- If the sources disagree, say so in one sentence.
- Keep the rationale to 2-4 sentences.

Return ONLY a JSON object (no markdown, no backticks):
{"rationale": "why, in 2-4 sentences", "action": "Buy" | "Sell" | "Hold"}"""

AUXILIARY_SYSTEM_PROMPT = "Analyze the market data and give a brief market assessment."

AUXILIARY_USER_PROMPT = "Give a quick analysis of {symbol} based on market data and news."

CHAT_SYSTEM_PROMPT = """You are a helpful investment assistant. You answer questions
about stocks, trends and news in plain language. Be brief and concrete, and say
when a question needs data you do not have."""

CHAT_FALLBACK_REPLY = "I can't answer right now. Please try again later or ask a different question."


def build_recommendation_prompt(symbol: str, closes: list[float], headlines: list[str],
                                posts: list[str], commentary: str | None) -> str:
    lines = [f"Ticker: {symbol}"]
    if closes:
        lines.append(f"Most recent closing prices (oldest first): {', '.join(f'{c:g}' for c in closes)}")
    else:
        lines.append("Closing prices: unavailable")

    if headlines:
        lines.append("\nRecent news headlines:")
        lines.extend(f"- {h}" for h in headlines)
    else:
        lines.append("\nRecent news headlines: unavailable")

    if posts:
        lines.append("\nRecent social posts:")
        lines.extend(f"- {p}" for p in posts)
    else:
        lines.append("\nRecent social posts: unavailable")

    if commentary:
        lines.append(f"\nSecond-opinion commentary:\n{commentary}")

    lines.append(f"\nBased on this, should one buy, sell or hold {symbol} right now?")
    return "\n".join(lines)

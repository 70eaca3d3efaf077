"""
Fetcher boundary.

Every upstream call goes through settle(), which turns whatever happens
(payload, SymbolNotFound, timeout, transport error, bad status) into a
SourceResult. Nothing except task cancellation escapes, so one slow or
broken provider cannot abort the others in a gather().
"""
import asyncio

from config import SOURCE_TIMEOUT_SECONDS
from data.errors import NOT_FOUND, SymbolNotFound
from data.schemas import SourceResult


async def settle(name: str, fetch, timeout: float = SOURCE_TIMEOUT_SECONDS) -> SourceResult:
    """Run fetch() (a zero-arg coroutine factory) with a bounded wait."""
    if fetch is None:
        return SourceResult.failure(f"{name} not configured", source=name)
    try:
        payload = await asyncio.wait_for(fetch(), timeout=timeout)
        return SourceResult.success(payload, source=name)
    except SymbolNotFound as e:
        print(f"[SOURCE] {name} not found: {e.detail}")
        return SourceResult.failure(NOT_FOUND, source=name)
    except asyncio.TimeoutError:
        print(f"[SOURCE] {name} timed out after {timeout}s")
        return SourceResult.failure(f"timeout after {timeout}s", source=name)
    except Exception as e:
        print(f"[SOURCE] {name} failed: {e}")
        return SourceResult.failure(str(e) or type(e).__name__, source=name)


def _is_empty(payload) -> bool:
    if payload is None:
        return True
    if isinstance(payload, (list, dict, str)):
        return len(payload) == 0
    return False


async def settle_with_fallback(
    category: str,
    primary: tuple,
    secondary: tuple = None,
    timeout: float = SOURCE_TIMEOUT_SECONDS,
) -> SourceResult:
    """
    Tiered fetch. primary/secondary are (name, fetch) pairs. The secondary
    runs only when the primary fails or comes back empty. An empty primary
    success is kept when there is nothing better.
    """
    name, fetch = primary
    result = await settle(name, fetch, timeout)
    if result.ok and not _is_empty(result.payload):
        return result
    if result.error == NOT_FOUND or secondary is None:
        return result

    alt_name, alt_fetch = secondary
    if alt_fetch is None:
        return result
    print(f"[FALLBACK] {category}: {name} gave nothing ({result.error or 'empty'}), trying {alt_name}")
    alt = await settle(alt_name, alt_fetch, timeout)
    if alt.ok:
        return alt
    if result.ok:
        return result
    return SourceResult.failure(f"{name}: {result.error}; {alt_name}: {alt.error}", source=category)

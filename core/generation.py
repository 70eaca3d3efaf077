"""
Latest-query-wins guard.

A client that fires a new search before the previous one resolves only
cares about the newest answer. Each key (usually a client session id) has
a monotonic generation counter; a result whose generation is no longer
current is stale and must be discarded instead of applied.
"""
import asyncio
import itertools


class QueryGeneration:
    def __init__(self):
        self._counter = itertools.count(1)
        self._current: dict[str, int] = {}

    def begin(self, key: str) -> int:
        token = next(self._counter)
        self._current[key] = token
        return token

    def is_current(self, key: str, token: int) -> bool:
        return self._current.get(key) == token

    def finish(self, key: str, token: int):
        if self._current.get(key) == token:
            del self._current[key]


class LatestOnly:
    """
    Runs at most one live task per key. Starting a new one cancels the
    previous task for that key, and a task that finishes after being
    superseded reports itself as stale.
    """

    def __init__(self):
        self.generations = QueryGeneration()
        self._tasks: dict[str, asyncio.Task] = {}

    async def run(self, key: str, coro) -> tuple:
        """Return (result, stale). result is None when stale."""
        token = self.generations.begin(key)
        previous = self._tasks.get(key)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(coro)
        self._tasks[key] = task
        try:
            result = await task
        except asyncio.CancelledError:
            if task.cancelled() and not self.generations.is_current(key, token):
                return None, True
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]

        if not self.generations.is_current(key, token):
            return None, True
        self.generations.finish(key, token)
        return result, False

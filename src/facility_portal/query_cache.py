"""
facility_portal.query_cache

Per-session request cache for backend queries.

Responsibilities:
- Cache query results under tuple keys with a freshness window.
- De-duplicate concurrent fetches of the same key (one in-flight task per key).
- Retry failed fetches with capped exponential backoff.
- Invalidate keys and refetch them in the background (not awaited).
- Track mutation status and run success hooks (`Mutation`).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from facility_portal.observability.logging import get_logger
from facility_portal.settings import Settings

log = get_logger(__name__)

QueryKey = tuple[Any, ...]
Fetcher = Callable[[], Awaitable[Any]]
T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry:
    data: Any = None
    error: BaseException | None = None
    updated_at: float | None = None
    stale: bool = True
    fetcher: Fetcher | None = None
    fetch_count: int = 0
    generation: int = 0


def _matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix


class QueryCache:
    def __init__(
        self,
        *,
        stale_seconds: float = 0.0,
        retries: int = 3,
        retry_base_delay: float = 1.0,
        retry_max_delay: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._stale_seconds = stale_seconds
        self._retries = retries
        self._retry_base_delay = retry_base_delay
        self._retry_max_delay = retry_max_delay
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._inflight: dict[QueryKey, asyncio.Task[Any]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> QueryCache:
        return cls(
            stale_seconds=settings.query_stale_seconds,
            retries=settings.query_retries,
            retry_base_delay=settings.query_retry_base_delay,
            retry_max_delay=settings.query_retry_max_delay,
        )

    def peek(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(key)

    def is_fetching(self, key: QueryKey) -> bool:
        return key in self._inflight

    def _is_fresh(self, entry: CacheEntry) -> bool:
        if entry.stale or entry.updated_at is None:
            return False
        return self._clock() - entry.updated_at < self._stale_seconds

    async def fetch(self, key: QueryKey, fetcher: Fetcher) -> Any:
        entry = self._entries.setdefault(key, CacheEntry())
        entry.fetcher = fetcher
        if self._is_fresh(entry):
            return entry.data

        task = self._inflight.get(key)
        if task is None:
            task = self._start(key)
        # Shield: one caller going away must not cancel the fetch for the others.
        return await asyncio.shield(task)

    def _start(self, key: QueryKey) -> asyncio.Task[Any]:
        task = asyncio.create_task(self._run(key))
        self._inflight[key] = task

        def _done(t: asyncio.Task[Any]) -> None:
            if self._inflight.get(key) is t:
                del self._inflight[key]

        task.add_done_callback(_done)
        return task

    def _retry_delay(self, attempt: int) -> float:
        return min(self._retry_base_delay * (2**attempt), self._retry_max_delay)

    async def _run(self, key: QueryKey) -> Any:
        entry = self._entries[key]
        while True:
            generation = entry.generation
            data = await self._fetch_with_retry(key, entry)
            entry.fetch_count += 1
            if entry.generation != generation:
                # Invalidated while in flight: this result predates the write.
                log.debug("query_refetch_after_invalidate", key=list(key))
                continue

            entry.data = data
            entry.error = None
            entry.updated_at = self._clock()
            entry.stale = False
            return data

    async def _fetch_with_retry(self, key: QueryKey, entry: CacheEntry) -> Any:
        fetcher = entry.fetcher
        assert fetcher is not None
        attempt = 0
        while True:
            try:
                return await fetcher()
            except Exception as e:
                if attempt >= self._retries:
                    entry.error = e
                    raise
                delay = self._retry_delay(attempt)
                attempt += 1
                log.info("query_retry", key=list(key), attempt=attempt, delay=delay, error=str(e))
                await asyncio.sleep(delay)

    def invalidate(self, prefix: QueryKey) -> int:
        """
        Mark every key starting with `prefix` stale and start a background refetch
        for keys that have a fetcher. A fetch already in flight for such a key
        discards its result and fetches again. Returns the number of keys
        invalidated.
        """

        count = 0
        for key, entry in self._entries.items():
            if not _matches(key, prefix):
                continue
            count += 1
            entry.stale = True
            entry.generation += 1
            # An in-flight fetch sees the new generation and fetches again.
            if entry.fetcher is not None and key not in self._inflight:
                self._start(key).add_done_callback(self._report_background_failure(key))
        log.debug("query_invalidated", prefix=list(prefix), keys=count)
        return count

    @staticmethod
    def _report_background_failure(key: QueryKey):
        def _callback(t: asyncio.Task[Any]) -> None:
            if t.cancelled():
                return
            error = t.exception()
            if error is not None:
                log.warning("query_refetch_failed", key=list(key), error=str(error))

        return _callback

    def clear(self) -> None:
        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._entries.clear()

    async def close(self) -> None:
        tasks = list(self._inflight.values())
        self.clear()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


MutationStatus = Literal["idle", "pending", "success", "error"]


class Mutation(Generic[T]):
    """
    Wraps a write so callers can observe its status; `on_success` runs only after
    the write returned, before `mutate` returns.
    """

    def __init__(
        self,
        fn: Callable[..., Awaitable[T]],
        *,
        on_success: Callable[[T], None] | None = None,
    ) -> None:
        self._fn = fn
        self._on_success = on_success
        self.status: MutationStatus = "idle"
        self.error: BaseException | None = None

    async def mutate(self, *args: Any, **kwargs: Any) -> T:
        self.status = "pending"
        self.error = None
        try:
            result = await self._fn(*args, **kwargs)
        except Exception as e:
            self.status = "error"
            self.error = e
            raise
        self.status = "success"
        if self._on_success is not None:
            self._on_success(result)
        return result


# --- Module Notes -----------------------------------------------------------
# Mutations are not retried. Callers joining an in-flight fetch always get a
# result fetched after the most recent `invalidate` of that key.

"""
Query Client - keyed async data cache with polling

WHY: Block heights and subgraph metadata are read repeatedly by many callers.
Each query key is fetched once, shared by every caller, and kept fresh by a
background poller instead of a fetch per call.

DESIGN:
- One entry per query key (tuple), holding the latest data and error
- First read awaits the fetch; later reads return cached data immediately
- Concurrent fetches of the same key are coalesced into one in-flight task
- Failed fetches retry with exponential backoff before surfacing the error
- Optional refetch interval keeps a polling task alive per key
- Injected, never global: each caller owns its client and closes it
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field, fields
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Optional, Set

from .errors import retry

logger = logging.getLogger("SubgraphKit.QueryClient")

QueryKey = Hashable
Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[["QueryState"], None]


@dataclass
class QueryOptions:
    """
    Per-query fetch behaviour.

    refetch_interval: seconds between background refetches, None disables polling
    stale_time: seconds after which cached data triggers a background refetch
                on read, None means data only refreshes through polling
    retry: number of retries after the first failed attempt
    retry_delay: base delay in seconds, doubled per attempt (capped at 30s)
    """
    refetch_interval: Optional[float] = None
    stale_time: Optional[float] = None
    retry: int = 3
    retry_delay: float = 1.0

    @classmethod
    def build(cls, options: Optional[Dict[str, Any]] = None, **defaults) -> "QueryOptions":
        """Merge caller overrides on top of accessor defaults."""
        merged = {**defaults, **(options or {})}
        known = {f.name for f in fields(cls)}
        unknown = set(merged) - known
        if unknown:
            raise TypeError(f"Unknown query options: {', '.join(sorted(unknown))}")
        return cls(**merged)


@dataclass
class QueryState:
    """Latest known result for a query key."""
    data: Any = None
    error: Optional[BaseException] = None
    data_updated_at: float = 0.0
    error_updated_at: float = 0.0
    fetch_count: int = 0

    @property
    def has_data(self) -> bool:
        return self.data_updated_at > 0

    @property
    def status(self) -> str:
        if self.error is not None and self.error_updated_at >= self.data_updated_at:
            return "error"
        return "success" if self.has_data else "pending"


@dataclass
class Query:
    key: QueryKey
    fetcher: Fetcher
    options: QueryOptions
    state: QueryState = field(default_factory=QueryState)
    in_flight: Optional[asyncio.Future] = None
    poller: Optional[asyncio.Task] = None
    listeners: List[Listener] = field(default_factory=list)

    def is_stale(self) -> bool:
        if self.options.stale_time is None:
            return False
        return time.monotonic() - self.state.data_updated_at > self.options.stale_time


class QueryClient:
    """
    Async query cache with coalescing, retries and interval polling.

    Usage:
        async with QueryClient() as client:
            block = await client.fetch_query(
                ("networkBlockNumber", 1),
                fetch_block_number,
                QueryOptions(refetch_interval=5),
            )
    """

    def __init__(self):
        self._queries: Dict[QueryKey, Query] = {}
        self._closed = False
        self._background_tasks: Set[asyncio.Task] = set()

        # Statistics for monitoring
        self._stats = {
            "hits": 0,
            "misses": 0,
            "initiated": 0,
            "coalesced": 0,
            "failures": 0,
        }

    async def __aenter__(self) -> "QueryClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def fetch_query(
        self,
        key: QueryKey,
        fetcher: Fetcher,
        options: Optional[QueryOptions] = None
    ) -> Any:
        """
        Read a query, fetching it if no data exists yet.

        The latest fetcher and options replace the previous ones, so pollers
        always run the most recent closure.

        Raises the fetch error when the query has no data to fall back on.
        """
        if self._closed:
            raise RuntimeError("QueryClient is closed")

        options = options or QueryOptions()
        query = self._queries.get(key)
        if query is None:
            query = Query(key=key, fetcher=fetcher, options=options)
            self._queries[key] = query
        else:
            query.fetcher = fetcher
            query.options = options

        if query.state.has_data:
            self._stats["hits"] += 1
            if query.is_stale() and query.in_flight is None:
                logger.debug(f"Stale data for {key}, refreshing in background")
                task = asyncio.create_task(self._background_fetch(query))
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)
            self._ensure_poller(query)
            return query.state.data

        self._stats["misses"] += 1
        try:
            return await self._fetch(query)
        finally:
            self._ensure_poller(query)

    async def refetch(self, key: QueryKey) -> Any:
        """Fetch a known query now with its latest fetcher."""
        query = self._queries.get(key)
        if query is None:
            raise KeyError(key)
        return await self._fetch(query)

    def get_query_state(self, key: QueryKey) -> Optional[QueryState]:
        query = self._queries.get(key)
        return query.state if query else None

    def get_query_data(self, key: QueryKey) -> Any:
        state = self.get_query_state(key)
        return state.data if state and state.has_data else None

    def set_query_data(self, key: QueryKey, data: Any):
        """Seed or overwrite cached data for a known query."""
        query = self._queries.get(key)
        if query is None:
            raise KeyError(key)
        self._store(query, data)

    def subscribe(self, key: QueryKey, listener: Listener) -> Callable[[], None]:
        """
        Call listener with the query state after every fetch of key.
        Returns an unsubscribe callable.
        """
        query = self._queries.get(key)
        if query is None:
            raise KeyError(key)
        query.listeners.append(listener)

        def unsubscribe():
            if listener in query.listeners:
                query.listeners.remove(listener)

        return unsubscribe

    async def remove(self, key: QueryKey):
        """Stop polling and drop a query."""
        query = self._queries.pop(key, None)
        if query is not None:
            await self._stop(query)

    def get_stats(self) -> Dict:
        """Get cache statistics for monitoring."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = self._stats["hits"] / max(1, total)

        return {
            **self._stats,
            "hit_rate": f"{hit_rate:.1%}",
            "queries": len(self._queries),
            "polling": sum(1 for q in self._queries.values() if q.poller and not q.poller.done()),
        }

    async def close(self):
        """Cancel every poller and in-flight fetch."""
        self._closed = True
        queries = list(self._queries.values())
        self._queries.clear()
        for query in queries:
            await self._stop(query)

        background = [t for t in self._background_tasks if not t.done()]
        for task in background:
            task.cancel()
        if background:
            await asyncio.gather(*background, return_exceptions=True)
        logger.debug(f"Query client closed ({len(queries)} queries)")

    # ------------------------------------------------------------------

    async def _fetch(self, query: Query) -> Any:
        if query.in_flight is None:
            self._stats["initiated"] += 1
            query.in_flight = asyncio.ensure_future(self._run_fetcher(query))
        else:
            self._stats["coalesced"] += 1
            logger.debug(f"Coalescing fetch for {query.key}")
        return await asyncio.shield(query.in_flight)

    async def _run_fetcher(self, query: Query) -> Any:
        options = query.options
        fetch = retry(max_attempts=options.retry + 1, delay=options.retry_delay)(query.fetcher)
        try:
            data = await fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._stats["failures"] += 1
            query.state.error = e
            query.state.error_updated_at = time.monotonic()
            query.state.fetch_count += 1
            self._notify(query)
            raise
        else:
            self._store(query, data)
            return data
        finally:
            query.in_flight = None

    def _store(self, query: Query, data: Any):
        query.state.data = data
        query.state.data_updated_at = time.monotonic()
        query.state.error = None
        query.state.fetch_count += 1
        self._notify(query)

    def _notify(self, query: Query):
        for listener in list(query.listeners):
            listener(query.state)

    async def _background_fetch(self, query: Query):
        try:
            await self._fetch(query)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Error stays on query.state for readers and listeners
            logger.warning(f"Background refetch failed for {query.key}: {e}")

    def _ensure_poller(self, query: Query):
        if self._closed or query.options.refetch_interval is None:
            return
        if query.poller is None or query.poller.done():
            query.poller = asyncio.create_task(self._poll(query))

    async def _poll(self, query: Query):
        while query.options.refetch_interval is not None:
            await asyncio.sleep(query.options.refetch_interval)
            if query.options.refetch_interval is None:
                break
            await self._background_fetch(query)

    async def _stop(self, query: Query):
        tasks = [t for t in (query.poller, query.in_flight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        query.poller = None
        query.in_flight = None
        query.listeners.clear()

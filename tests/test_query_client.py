"""
Query Client Tests
Caching, coalescing, retries and polling

Run: python -m pytest tests/test_query_client.py -v
"""

import asyncio

import pytest
from unittest.mock import AsyncMock

from subgraph_kit.infrastructure.errors import ConfigurationError, SchemaLookupError
from subgraph_kit.infrastructure.query_client import QueryClient, QueryOptions

NO_RETRY = QueryOptions(retry=0)


# =============================================================================
# TEST: Options
# =============================================================================

class TestQueryOptions:

    def test_overrides_win_over_defaults(self):
        options = QueryOptions.build({"refetch_interval": 1}, refetch_interval=5, retry=2)

        assert options.refetch_interval == 1
        assert options.retry == 2

    def test_defaults_used_without_overrides(self):
        assert QueryOptions.build(None, refetch_interval=10).refetch_interval == 10

    def test_polling_can_be_disabled(self):
        assert QueryOptions.build({"refetch_interval": None}, refetch_interval=5).refetch_interval is None

    def test_unknown_option_rejected(self):
        with pytest.raises(TypeError, match="queryKey"):
            QueryOptions.build({"queryKey": "x"})


# =============================================================================
# TEST: Fetching and caching
# =============================================================================

class TestFetchQuery:

    @pytest.mark.asyncio
    async def test_first_read_awaits_fetch(self, query_client):
        fetcher = AsyncMock(return_value=42)

        assert await query_client.fetch_query(("block", 1), fetcher, NO_RETRY) == 42
        fetcher.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_read_served_from_cache(self, query_client):
        fetcher = AsyncMock(side_effect=[1, 2])

        await query_client.fetch_query(("block", 1), fetcher, NO_RETRY)
        assert await query_client.fetch_query(("block", 1), fetcher, NO_RETRY) == 1

        assert fetcher.await_count == 1
        assert query_client.get_stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, query_client):
        await query_client.fetch_query(("block", 1), AsyncMock(return_value=1), NO_RETRY)
        await query_client.fetch_query(("block", 10), AsyncMock(return_value=10), NO_RETRY)

        assert query_client.get_query_data(("block", 1)) == 1
        assert query_client.get_query_data(("block", 10)) == 10

    @pytest.mark.asyncio
    async def test_concurrent_reads_coalesce(self, query_client):
        calls = 0

        async def slow_fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return "meta"

        results = await asyncio.gather(*[
            query_client.fetch_query(("meta",), slow_fetch, NO_RETRY) for _ in range(5)
        ])

        assert results == ["meta"] * 5
        assert calls == 1
        assert query_client.get_stats()["coalesced"] == 4

    @pytest.mark.asyncio
    async def test_error_without_data_is_raised(self, query_client):
        fetcher = AsyncMock(side_effect=ValueError("invalid url"))

        with pytest.raises(ValueError, match="invalid url"):
            await query_client.fetch_query(("meta",), fetcher, NO_RETRY)

        state = query_client.get_query_state(("meta",))
        assert state.status == "error"
        assert isinstance(state.error, ValueError)

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, query_client):
        fetcher = AsyncMock(side_effect=[ConnectionError("reset"), ConnectionError("reset"), 7])

        value = await query_client.fetch_query(
            ("block", 1), fetcher, QueryOptions(retry=3, retry_delay=0.001)
        )

        assert value == 7
        assert fetcher.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, query_client):
        fetcher = AsyncMock(side_effect=ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await query_client.fetch_query(("block", 1), fetcher, QueryOptions(retry=2, retry_delay=0.001))

        assert fetcher.await_count == 3

    @pytest.mark.asyncio
    async def test_lookup_errors_not_retried(self, query_client):
        fetcher = AsyncMock(side_effect=SchemaLookupError("aave", 1))

        with pytest.raises(SchemaLookupError):
            await query_client.fetch_query(("meta",), fetcher, QueryOptions(retry=3, retry_delay=0.001))

        assert fetcher.await_count == 1

    @pytest.mark.asyncio
    async def test_configuration_errors_not_retried(self, query_client):
        fetcher = AsyncMock(side_effect=ConfigurationError("production"))

        with pytest.raises(ConfigurationError):
            await query_client.fetch_query(("meta",), fetcher, QueryOptions(retry=3, retry_delay=0.001))

        assert fetcher.await_count == 1

    @pytest.mark.asyncio
    async def test_latest_fetcher_replaces_previous(self, query_client):
        await query_client.fetch_query(("meta",), AsyncMock(return_value="old"), NO_RETRY)
        await query_client.fetch_query(("meta",), AsyncMock(return_value="new"), NO_RETRY)

        assert await query_client.refetch(("meta",)) == "new"

    @pytest.mark.asyncio
    async def test_refetch_unknown_key(self, query_client):
        with pytest.raises(KeyError):
            await query_client.refetch(("missing",))

    @pytest.mark.asyncio
    async def test_stale_data_refreshed_in_background(self, query_client):
        fetcher = AsyncMock(side_effect=[1, 2])
        options = QueryOptions(stale_time=0, retry=0)

        assert await query_client.fetch_query(("block", 1), fetcher, options) == 1
        await asyncio.sleep(0.001)
        # stale value served immediately, refresh happens behind it
        assert await query_client.fetch_query(("block", 1), fetcher, options) == 1
        assert len(query_client._background_tasks) == 1
        await asyncio.sleep(0.01)

        assert query_client.get_query_data(("block", 1)) == 2
        assert not query_client._background_tasks

    @pytest.mark.asyncio
    async def test_failed_refetch_serves_last_data(self, query_client):
        fetcher = AsyncMock(side_effect=["ok", RuntimeError("boom")])

        assert await query_client.fetch_query(("meta",), fetcher, NO_RETRY) == "ok"
        with pytest.raises(RuntimeError, match="boom"):
            await query_client.refetch(("meta",))

        assert await query_client.fetch_query(("meta",), fetcher, NO_RETRY) == "ok"
        state = query_client.get_query_state(("meta",))
        assert state.status == "error"
        assert str(state.error) == "boom"

    @pytest.mark.asyncio
    async def test_closed_client_rejects_reads(self):
        client = QueryClient()
        await client.close()

        with pytest.raises(RuntimeError):
            await client.fetch_query(("block", 1), AsyncMock(return_value=1))


# =============================================================================
# TEST: Polling
# =============================================================================

class TestPolling:

    @pytest.mark.asyncio
    async def test_refetch_interval_polls(self, query_client):
        fetcher = AsyncMock(side_effect=range(100))

        await query_client.fetch_query(("block", 1), fetcher, QueryOptions(refetch_interval=0.01, retry=0))
        await asyncio.sleep(0.06)

        assert fetcher.await_count >= 3
        assert query_client.get_query_data(("block", 1)) > 0
        assert query_client.get_stats()["polling"] == 1

    @pytest.mark.asyncio
    async def test_no_polling_without_interval(self, query_client):
        fetcher = AsyncMock(return_value=1)

        await query_client.fetch_query(("block", 1), fetcher, NO_RETRY)
        await asyncio.sleep(0.03)

        assert fetcher.await_count == 1
        assert query_client.get_stats()["polling"] == 0

    @pytest.mark.asyncio
    async def test_background_error_keeps_data(self, query_client):
        fetcher = AsyncMock(side_effect=[5, RuntimeError("rpc down"), RuntimeError("rpc down")])
        options = QueryOptions(refetch_interval=0.01, retry=0)

        await query_client.fetch_query(("block", 1), fetcher, options)
        await asyncio.sleep(0.015)

        state = query_client.get_query_state(("block", 1))
        assert state.data == 5
        assert isinstance(state.error, RuntimeError)
        assert await query_client.fetch_query(("block", 1), fetcher, options) == 5

    @pytest.mark.asyncio
    async def test_subscribers_notified_on_poll(self, query_client):
        fetcher = AsyncMock(side_effect=range(100))
        seen = []

        await query_client.fetch_query(("block", 1), fetcher, QueryOptions(refetch_interval=0.01, retry=0))
        unsubscribe = query_client.subscribe(("block", 1), lambda state: seen.append(state.data))
        await asyncio.sleep(0.035)
        unsubscribe()
        count = len(seen)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert seen == sorted(seen)
        assert len(seen) == count

    @pytest.mark.asyncio
    async def test_remove_stops_polling(self, query_client):
        fetcher = AsyncMock(side_effect=range(100))

        await query_client.fetch_query(("block", 1), fetcher, QueryOptions(refetch_interval=0.01, retry=0))
        await query_client.remove(("block", 1))
        count = fetcher.await_count
        await asyncio.sleep(0.03)

        assert fetcher.await_count == count
        assert query_client.get_query_state(("block", 1)) is None

    @pytest.mark.asyncio
    async def test_close_cancels_pollers(self):
        fetcher = AsyncMock(side_effect=range(100))

        async with QueryClient() as client:
            await client.fetch_query(("block", 1), fetcher, QueryOptions(refetch_interval=0.01, retry=0))

        count = fetcher.await_count
        await asyncio.sleep(0.03)
        assert fetcher.await_count == count

"""Tests for concurrent all-or-nothing aggregation."""

import asyncio

import httpx
import pytest

from checksum_sentinel.errors import NetworkError
from checksum_sentinel.feeds.aggregator import aggregate
from checksum_sentinel.feeds.fetcher import FeedFetcher
from checksum_sentinel.feeds.sources import FeedSource
from conftest import FakeFeeds, source, text_response


@pytest.mark.asyncio
async def test_aggregate_returns_union():
    feeds = FakeFeeds({
        "https://feeds.test/1": text_response("h1\nh2\n"),
        "https://feeds.test/2": text_response("h2\nh3\n"),
        "https://feeds.test/3": text_response("h3\nh4\nh1\n"),
    })
    sources = [source(url) for url in feeds.routes]

    async with feeds.client() as client:
        hashes = await aggregate(FeedFetcher(client), sources)

    assert hashes == {"h1", "h2", "h3", "h4"}


@pytest.mark.asyncio
async def test_aggregate_empty_batch():
    feeds = FakeFeeds({})

    async with feeds.client() as client:
        assert await aggregate(FeedFetcher(client), []) == set()

    assert feeds.requested == []


@pytest.mark.asyncio
async def test_aggregate_fails_when_any_source_fails():
    feeds = FakeFeeds({
        "https://feeds.test/1": text_response("h1\n"),
        "https://feeds.test/2": httpx.Response(500),
        "https://feeds.test/3": text_response("h3\n"),
    })
    sources = [source(url) for url in feeds.routes]

    async with feeds.client() as client:
        with pytest.raises(NetworkError):
            await aggregate(FeedFetcher(client), sources)

    # siblings were not cancelled
    assert sorted(feeds.requested) == sorted(feeds.routes)


class _StaggeredFetcher:
    """Completes fetches in reverse order and records concurrency."""

    def __init__(self, results):
        self.results = results
        self.in_flight = 0
        self.peak = 0

    async def fetch(self, feed: FeedSource):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        delay = 0.01 * (len(self.results) - list(self.results).index(feed.url))
        await asyncio.sleep(delay)
        self.in_flight -= 1
        result = self.results[feed.url]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.asyncio
async def test_aggregate_runs_fetches_concurrently():
    fetcher = _StaggeredFetcher({
        "https://feeds.test/1": {"a"},
        "https://feeds.test/2": {"b"},
        "https://feeds.test/3": {"a", "c"},
    })
    sources = [source(url) for url in fetcher.results]

    hashes = await aggregate(fetcher, sources)

    assert hashes == {"a", "b", "c"}
    assert fetcher.peak == 3


@pytest.mark.asyncio
async def test_aggregate_reports_first_failure_in_source_order():
    first = NetworkError("https://feeds.test/1", "HTTP 500", status_code=500)
    second = NetworkError("https://feeds.test/2", "HTTP 502", status_code=502)
    fetcher = _StaggeredFetcher({
        "https://feeds.test/1": first,
        "https://feeds.test/2": second,
    })
    sources = [source(url) for url in fetcher.results]

    with pytest.raises(NetworkError) as excinfo:
        await aggregate(fetcher, sources)

    assert excinfo.value is first

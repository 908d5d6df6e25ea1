"""
Aggregator

Fans a batch of hash feeds out concurrently and merges their results.
The batch is all-or-nothing: a single failing feed fails the whole batch.
"""

import asyncio
import logging
from typing import List, Set

from checksum_sentinel.feeds.fetcher import FeedFetcher
from checksum_sentinel.feeds.sources import FeedSource

logger = logging.getLogger(__name__)


async def aggregate(fetcher: FeedFetcher, sources: List[FeedSource]) -> Set[str]:
    """
    Fetch every source concurrently and return the union of their records.
    
    All fetches run to completion even when one fails; the merge only
    happens if every fetch succeeded.
    
    Args:
        fetcher: Fetcher holding the shared HTTP client
        sources: Feeds in this batch
        
    Returns:
        Union of all fetched records
        
    Raises:
        FeedSyncError: The first failure, in source order
    """
    if not sources:
        return set()

    results = await asyncio.gather(
        *(fetcher.fetch(source) for source in sources),
        return_exceptions=True,
    )

    failures = [
        (source, result) for source, result in zip(sources, results)
        if isinstance(result, BaseException)
    ]
    if failures:
        logger.error(f"{len(failures)}/{len(sources)} feeds failed, discarding batch")
        raise failures[0][1]

    combined: Set[str] = set()
    for result in results:
        combined.update(result)

    logger.info(f"✓ Merged {len(combined)} unique records from {len(sources)} feeds")
    return combined
